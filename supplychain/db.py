"""
LevelDB storage for ledger state, keyed by ledger address.
"""
import plyvel
import logging
from typing import Optional, Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


def _key(address: str) -> bytes:
    return address.encode('ascii')


class DB:
    def __init__(self, db_path: str, create_if_missing: bool = True,
                 write_buffer_size: int = 64 * 1024 * 1024,  # 64MB
                 max_open_files: int = 1000,
                 compression: Optional[str] = 'snappy'):
        """
        Open (or create) a state database.

        Args:
            db_path: Directory holding the LevelDB files
            create_if_missing: Create the database if the directory is empty
            write_buffer_size: LevelDB write buffer size in bytes
            max_open_files: LevelDB open file limit
            compression: 'snappy' or None
        """
        self.path = db_path
        try:
            self._db = plyvel.DB(
                db_path,
                create_if_missing=create_if_missing,
                write_buffer_size=write_buffer_size,
                max_open_files=max_open_files,
                compression=compression,
            )
        except plyvel.Error as e:
            logger.error(f"Failed to open state database at {db_path}: {e}")
            raise
        self._closed = False
        logger.info(f"State database opened at {db_path}")

    def _require_open(self):
        if self._closed:
            raise RuntimeError(f"State database at {self.path} is closed")

    def get(self, address: str) -> Optional[bytes]:
        """The record stored at `address`, or None."""
        self._require_open()
        try:
            return self._db.get(_key(address))
        except plyvel.Error as e:
            logger.error(f"Error reading {address}: {e}")
            raise

    def put(self, address: str, value: bytes):
        self._require_open()
        try:
            self._db.put(_key(address), value)
        except plyvel.Error as e:
            logger.error(f"Error writing {address}: {e}")
            raise

    def delete(self, address: str):
        self._require_open()
        try:
            self._db.delete(_key(address))
        except plyvel.Error as e:
            logger.error(f"Error deleting {address}: {e}")
            raise

    def exists(self, address: str) -> bool:
        return self.get(address) is not None

    @contextmanager
    def write_batch(self):
        """
        Atomic write of several records. Nothing is written if the block raises.

            with db.write_batch() as batch:
                batch.put(company_address.encode('ascii'), company_bytes)
                batch.put(batch_address.encode('ascii'), batch_bytes)
        """
        self._require_open()
        batch = self._db.write_batch(transaction=True)
        try:
            with batch:
                yield batch
        except Exception as e:
            logger.error(f"State batch write to {self.path} aborted: {e}")
            raise

    def write_entries(self, entries: dict[str, bytes]):
        """Writes every (address, record) pair in one atomic batch."""
        with self.write_batch() as batch:
            for address in sorted(entries):
                batch.put(_key(address), entries[address])

    def iterator(self, prefix: str = '') -> Iterator[tuple[str, bytes]]:
        """(address, record) pairs whose address starts with `prefix`, in key order."""
        self._require_open()
        for key, value in self._db.iterator(prefix=_key(prefix) if prefix else None):
            yield key.decode('ascii'), value

    def close(self):
        if not self._closed:
            self._db.close()
            self._closed = True
            logger.info(f"State database at {self.path} closed")

    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
