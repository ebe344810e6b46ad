"""
API key persistence helpers.
"""

from __future__ import annotations

from typing import Any

from core.db import Database, affected_rows, store_errors

_KEY_COLUMNS = "id, key_hash, name, is_active, created_at, updated_at, last_used_at"


class ApiKeyRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    async def get_active_by_hash(self, key_hash: str) -> dict[str, Any] | None:
        with store_errors("validate API key"):
            return await self._db.fetch_one(
                f"""
                SELECT {_KEY_COLUMNS}
                FROM api_keys
                WHERE key_hash = $1
                  AND is_active = true
                """,
                key_hash,
            )

    async def touch_last_used(self, key_hash: str) -> None:
        with store_errors("update API key last_used_at"):
            await self._db.execute(
                """
                UPDATE api_keys
                SET last_used_at = now(),
                    updated_at = now()
                WHERE key_hash = $1
                """,
                key_hash,
            )

    async def create(self, *, key_hash: str, name: str | None = None) -> dict[str, Any]:
        """
        Insert a key, or re-activate (and rename) the existing row with the same digest.
        """
        with store_errors("create API key"):
            row = await self._db.fetch_one(
                f"""
                INSERT INTO api_keys (key_hash, name, is_active)
                VALUES ($1, $2, true)
                ON CONFLICT (key_hash) DO UPDATE
                SET is_active = true,
                    name = COALESCE(EXCLUDED.name, api_keys.name),
                    updated_at = now()
                RETURNING {_KEY_COLUMNS}
                """,
                key_hash,
                name,
            )
        if row is None:
            raise RuntimeError("Failed to create API key.")
        return row

    async def deactivate(self, key_hash: str) -> bool:
        with store_errors("deactivate API key"):
            status = await self._db.execute(
                """
                UPDATE api_keys
                SET is_active = false,
                    updated_at = now()
                WHERE key_hash = $1
                """,
                key_hash,
            )
        return affected_rows(status) > 0
