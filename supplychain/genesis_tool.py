"""
Genesis State Tool

Initializes a ledger database with the System Admin and the initial
Task and Product Types, and applies individual payload files against an
existing database. Every record is written through the regular
transaction handlers, so the genesis state obeys the same rules as any
later transaction.
"""
import json
import time
import shutil
import argparse
import logging
from pathlib import Path
from cryptography.hazmat.primitives import serialization

from supplychain.config import Config, configure_logging
from supplychain.crypto import generate_key_pair, serialize_public_key
from supplychain.db import DB
from supplychain.payload import Action, Payload
from supplychain.processor import TransactionHandler
from supplychain.state import DBContext

logger = logging.getLogger(__name__)


def open_db(config: Config) -> DB:
    return DB(
        config.database.path,
        write_buffer_size=config.database.write_buffer_size,
        max_open_files=config.database.max_open_files,
        compression=config.database.compression or None,
    )


def genesis_payloads(genesis: dict, timestamp: int) -> list[Payload]:
    """The ordered payloads that build the genesis state."""
    payloads = [Payload(Action.CREATE_SYSTEM_ADMIN, timestamp, {})]
    for task_type in genesis.get('task_types', []):
        payloads.append(Payload(Action.CREATE_TASK_TYPE, timestamp, task_type))
    for product_type in genesis.get('product_types', []):
        payloads.append(Payload(Action.CREATE_PRODUCT_TYPE, timestamp, product_type))
    return payloads


def create_genesis_state(genesis_path: str, config: Config) -> bool:
    """
    Build the genesis state described by a genesis JSON file.

    Returns False at the first rejected payload, removing the partly
    built database.
    """
    logger.info(f"Loading genesis configuration from: {genesis_path}")
    with open(genesis_path, 'r') as f:
        genesis = json.load(f)

    db_path = Path(config.database.path)
    if db_path.exists():
        logger.error(f"Output database path '{db_path}' already exists. Please remove it first.")
        return False

    handler = TransactionHandler.from_config(config)
    system_admin = genesis.get('system_admin')
    if not system_admin:
        logger.error(f"Genesis file {genesis_path} does not name a system_admin public key")
        return False
    timestamp = int(genesis.get('timestamp', time.time()))

    rejected = None
    with open_db(config) as db:
        context = DBContext(db)
        for payload in genesis_payloads(genesis, timestamp):
            result = handler.apply(payload, system_admin, context)
            if not result.ok:
                rejected = (payload, result.error)
                break

    if rejected:
        payload, error = rejected
        logger.error(f"Genesis payload {payload.action.value} rejected: {error.reason}")
        shutil.rmtree(db_path)
        logger.info(f"Removed partial genesis state at: {db_path}")
        return False

    logger.info(f"Genesis state initialized at: {db_path}")
    return True


def apply_payload_file(payload_path: str, signer_public_key: str, config: Config) -> bool:
    """Apply one msgpack payload file to an existing database."""
    payload = Path(payload_path).read_bytes()
    handler = TransactionHandler.from_config(config)

    with open_db(config) as db:
        result = handler.apply(payload, signer_public_key, DBContext(db))

    if result.ok:
        logger.info(f"Applied {payload_path}: {len(result.writes)} state updates")
    else:
        logger.error(f"Rejected {payload_path}: {result.error.kind}: {result.error.reason}")
    return result.ok


def generate_sample_config(output_path: str) -> str:
    """Generates a sample genesis.json with a fresh System Admin key."""
    private_key, public_key = generate_key_pair()
    system_admin = serialize_public_key(public_key)

    genesis = {
        "system_admin": system_admin,
        "task_types": [
            {"id": "harvest", "role": "Harvester"},
            {"id": "quality-control", "role": "Quality Inspector"},
        ],
        "product_types": [
            {"id": "grape", "name": "Grape", "description": "Wine grapes", "measure": 1},
        ],
    }

    with open(output_path, 'w') as f:
        json.dump(genesis, f, indent=2)

    print(f"\nGenerated sample genesis configuration at: {output_path}")
    print("\nSample System Admin private key (DO NOT USE IN PRODUCTION):")
    print(private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode('utf-8'))
    return system_admin


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Genesis State Tool")
    parser.add_argument("--config", type=str, default=None, help="Path to processor config JSON")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parser_sample = subparsers.add_parser("sample-config", help="Generate a sample genesis.json")
    parser_sample.add_argument("--output", type=str, default="genesis.json", help="Output file path")

    parser_create = subparsers.add_parser("create", help="Create the genesis state from a genesis file")
    parser_create.add_argument("--genesis", type=str, default="genesis.json", help="Path to genesis file")
    parser_create.add_argument("--output-db", type=str, default=None, help="Path for the new database")

    parser_apply = subparsers.add_parser("apply", help="Apply a msgpack payload file")
    parser_apply.add_argument("payload", type=str, help="Path to the payload file")
    parser_apply.add_argument("--signer", type=str, required=True, help="Signer public key (hex)")
    parser_apply.add_argument("--db", type=str, default=None, help="Path of the database")

    args = parser.parse_args(argv)

    config = Config.from_file(args.config) if args.config else Config.default()
    configure_logging(config.logging)

    if args.command == "sample-config":
        generate_sample_config(args.output)
        return 0
    elif args.command == "create":
        if args.output_db:
            config.database.path = args.output_db
        return 0 if create_genesis_state(args.genesis, config) else 1
    elif args.command == "apply":
        if args.db:
            config.database.path = args.db
        return 0 if apply_payload_file(args.payload, args.signer, config) else 1
    return 1


if __name__ == '__main__':
    raise SystemExit(main())
