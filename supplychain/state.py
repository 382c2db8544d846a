"""
State Access Port implementations.

A context is what handlers read ledger state through and what the
dispatcher writes an accepted write-set into. Reads return b'' for any
address holding nothing. Writes are all-or-nothing.
"""
import logging
from typing import Iterable
from .addressing import is_valid_address
from .db import DB

logger = logging.getLogger(__name__)


class Context:
    """Interface consumed by the transaction handler."""

    def get_state(self, addresses: Iterable[str]) -> dict[str, bytes]:
        raise NotImplementedError

    def set_state(self, entries: dict[str, bytes]):
        raise NotImplementedError


def _check_entries(entries: dict[str, bytes]):
    for address, value in entries.items():
        if not is_valid_address(address):
            raise ValueError(f"Refusing to write malformed address {address!r}")
        if not isinstance(value, bytes):
            raise ValueError(f"Value for {address} must be bytes")


class InMemoryContext(Context):
    """Dict backed context, used by tests and by dry runs."""

    def __init__(self, initial: dict[str, bytes] = None):
        self._state = dict(initial or {})

    def get_state(self, addresses: Iterable[str]) -> dict[str, bytes]:
        return {address: self._state.get(address, b'') for address in addresses}

    def set_state(self, entries: dict[str, bytes]):
        _check_entries(entries)
        self._state.update(entries)

    def snapshot(self) -> dict[str, bytes]:
        """A copy of everything stored so far."""
        return dict(self._state)


class DBContext(Context):
    """Context persisting state in a LevelDB database."""

    def __init__(self, db: DB):
        self.db = db

    def get_state(self, addresses: Iterable[str]) -> dict[str, bytes]:
        return {address: self.db.get(address) or b'' for address in addresses}

    def set_state(self, entries: dict[str, bytes]):
        _check_entries(entries)
        self.db.write_entries(entries)
        logger.debug(f"Committed {len(entries)} state entries")
