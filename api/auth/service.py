"""
API key validation.
"""

from __future__ import annotations

import logging
from typing import Any

from core.errors import ServiceError, UnauthorizedError

from . import security
from .repository import ApiKeyRepository

logger = logging.getLogger(__name__)

# Same message for every failure mode.
UNAUTHORIZED_MESSAGE = "Invalid or missing API key."


class ApiKeyValidator:
    def __init__(self, repository: ApiKeyRepository) -> None:
        self._repository = repository

    async def validate(self, raw_api_key: str) -> dict[str, Any]:
        """
        Return the active key row whose digest matches `raw_api_key`.

        Raises UnauthorizedError when the key is empty, unknown or inactive.
        Store failures propagate as StoreError (500), not as 401.
        """
        try:
            key_hash = security.hash_api_key(raw_api_key)
        except security.AuthSecurityError as exc:
            raise UnauthorizedError(UNAUTHORIZED_MESSAGE) from exc

        row = await self._repository.get_active_by_hash(key_hash)
        if row is None or not bool(row.get("is_active", False)):
            raise UnauthorizedError(UNAUTHORIZED_MESSAGE)
        return row

    async def record_use(self, key_hash: str) -> None:
        """
        BackgroundTasks entrypoint for the last_used_at bump.

        Runs after the response is sent. It never raises; concurrent bumps for
        the same key may land in any order.
        """
        try:
            await self._repository.touch_last_used(key_hash)
        except ServiceError:
            logger.warning("api_key_touch_failed key_hash_prefix=%s", key_hash[:8], exc_info=True)
        except Exception:
            logger.exception("api_key_touch_failed key_hash_prefix=%s", key_hash[:8])
