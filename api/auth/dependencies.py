"""
Auth dependencies for protected FastAPI routes.
"""

from __future__ import annotations

from fastapi import BackgroundTasks, Depends, Header

from core.db import Database, get_database
from core.errors import UnauthorizedError

from . import security
from .repository import ApiKeyRepository
from .service import UNAUTHORIZED_MESSAGE, ApiKeyValidator


def get_api_key_validator(database: Database = Depends(get_database)) -> ApiKeyValidator:
    return ApiKeyValidator(ApiKeyRepository(database))


async def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    try:
        return security.extract_bearer_token(authorization)
    except security.AuthSecurityError as exc:
        raise UnauthorizedError(UNAUTHORIZED_MESSAGE) from exc


async def require_api_key(
    background_tasks: BackgroundTasks,
    token: str = Depends(get_bearer_token),
    validator: ApiKeyValidator = Depends(get_api_key_validator),
) -> dict:
    api_key = await validator.validate(token)
    # Fire-and-forget: runs after the response, outside the request path.
    background_tasks.add_task(validator.record_use, str(api_key["key_hash"]))
    return api_key
