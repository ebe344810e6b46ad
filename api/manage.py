"""
Operations CLI.

    experience-hub-manage migrate [--dir migrations]
    experience-hub-manage create-key [--name NAME] [--key RAW]
    experience-hub-manage deactivate-key --key RAW

All commands read DATABASE_URL from the environment.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from auth import security
from auth.repository import ApiKeyRepository
from core.db import Database
from core.logging import configure_logging
from core.settings import load_settings

logger = logging.getLogger("manage")


def migration_files(directory: Path) -> list[Path]:
    """
    Every *.sql file in `directory`, in lexical order (001_..., 002_..., ...).
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"Migrations directory not found: {directory}")
    return sorted(directory.glob("*.sql"), key=lambda path: path.name)


async def _connect() -> Database:
    settings = load_settings()
    return await Database.connect(settings.database_url, min_size=1, max_size=2)


async def migrate(directory: Path) -> int:
    files = migration_files(directory)
    database = await _connect()
    try:
        async with database.pool.acquire() as conn:
            for path in files:
                logger.info("migration_start file=%s", path.name)
                async with conn.transaction():
                    await conn.execute(path.read_text(encoding="utf-8"))
                logger.info("migration_done file=%s", path.name)
    finally:
        await database.close()
    return len(files)


async def create_key(*, name: str | None, raw_key: str | None) -> tuple[str, dict]:
    api_key = raw_key or security.build_api_key()
    database = await _connect()
    try:
        row = await ApiKeyRepository(database).create(
            key_hash=security.hash_api_key(api_key),
            name=name,
        )
    finally:
        await database.close()
    return api_key, row


async def deactivate_key(raw_key: str) -> bool:
    database = await _connect()
    try:
        return await ApiKeyRepository(database).deactivate(security.hash_api_key(raw_key))
    finally:
        await database.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="experience-hub-manage", description="Experience Hub operations.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate_parser = subparsers.add_parser("migrate", help="Apply SQL migrations in order.")
    migrate_parser.add_argument("--dir", default="migrations", help="Directory containing *.sql files.")

    create_parser = subparsers.add_parser("create-key", help="Issue an API key and print it once.")
    create_parser.add_argument("--name", default=None, help="Label stored with the key.")
    create_parser.add_argument("--key", default=None, help="Use this raw key instead of a random one.")

    deactivate_parser = subparsers.add_parser("deactivate-key", help="Disable an API key.")
    deactivate_parser.add_argument("--key", required=True, help="Raw API key to disable.")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("INFO")

    if args.command == "migrate":
        applied = asyncio.run(migrate(Path(args.dir)))
        print(f"Applied {applied} migration file(s).")
        return 0

    if args.command == "create-key":
        if args.key is not None and not args.key.strip():
            print("--key must not be empty.", file=sys.stderr)
            return 2
        api_key, row = asyncio.run(create_key(name=args.name, raw_key=args.key))
        print(f"ID: {row['id']}")
        print(f"Name: {row.get('name') or '-'}")
        print(f"Created: {row['created_at']}")
        print()
        print(f"API key (shown once): {api_key}")
        print(f"Example: curl -H \"Authorization: Bearer {api_key}\" http://localhost:8080/v1/experiences")
        return 0

    if args.command == "deactivate-key":
        if not args.key.strip():
            print("--key must not be empty.", file=sys.stderr)
            return 2
        if not asyncio.run(deactivate_key(args.key)):
            print("API key not found.", file=sys.stderr)
            return 1
        print("API key deactivated.")
        return 0

    return 2


if __name__ == "__main__":
    sys.exit(main())
