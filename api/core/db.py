"""
Async database access helpers (raw SQL) using asyncpg.

`Database` owns the connection pool. The app builds one instance in its
lifespan (see `api/main.py`) and hands it to repositories explicitly.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Iterator

import asyncpg
from fastapi import Request

from .errors import StoreError

logger = logging.getLogger(__name__)

# Driver and network failures. asyncio.CancelledError is a BaseException and
# passes through untouched.
_STORE_FAILURES = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """
    Wrap driver errors raised inside the block into StoreError("failed to <operation>").
    """
    try:
        yield
    except _STORE_FAILURES as exc:
        raise StoreError(f"failed to {operation}") from exc


def json_arg(value: Any) -> str | None:
    """
    asyncpg does not automatically encode Python values for json/jsonb parameters.
    We pass JSON as a string and cast to jsonb in SQL.
    """
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=True)


def json_value(raw: Any) -> Any:
    if raw is None or not isinstance(raw, str):
        return raw
    return json.loads(raw)


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


class Database:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    @classmethod
    async def connect(
        cls,
        dsn: str,
        *,
        min_size: int = 1,
        max_size: int = 10,
        command_timeout: float = 30.0,
    ) -> Database:
        pool = await asyncpg.create_pool(
            dsn=dsn,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
        )
        logger.info("db_pool_ready min_size=%s max_size=%s", min_size, max_size)
        return cls(pool)

    @property
    def pool(self) -> asyncpg.Pool:
        return self._pool

    async def close(self) -> None:
        await self._pool.close()
        logger.info("db_pool_closed")

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        row = await self._pool.fetchrow(sql, *args)
        return _record_to_dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        rows = await self._pool.fetch(sql, *args)
        return [_record_to_dict(r) for r in rows]

    async def fetch_val(self, sql: str, *args: Any) -> Any:
        return await self._pool.fetchval(sql, *args)

    async def execute(self, sql: str, *args: Any) -> str:
        """
        Run a statement (INSERT/UPDATE/DELETE/DDL). Returns the command status, e.g. "DELETE 1".
        """
        return await self._pool.execute(sql, *args)


def affected_rows(status: str) -> int:
    # Command status looks like "UPDATE 3" or "INSERT 0 1".
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, IndexError):
        return 0


def get_database(request: Request) -> Database:
    """
    FastAPI dependency: the Database instance attached to the app in its lifespan.
    """
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database is not initialized. It is attached on startup.")
    return database
