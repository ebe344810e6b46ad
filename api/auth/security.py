"""
API key security helpers.

Raw keys are never stored. Issuance (`manage create-key`) and validation both
go through `hash_api_key`.
"""

from __future__ import annotations

import hashlib
import secrets

API_KEY_PREFIX = "exh_"


class AuthSecurityError(RuntimeError):
    pass


def build_api_key() -> str:
    # exh_ prefix followed by 43 URL-safe characters.
    return API_KEY_PREFIX + secrets.token_urlsafe(32)


def hash_api_key(raw_api_key: str) -> str:
    token = (raw_api_key or "").encode("utf-8")
    if not token:
        raise AuthSecurityError("API key is empty.")
    return hashlib.sha256(token).hexdigest()


def extract_bearer_token(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        raise AuthSecurityError("Missing Authorization header.")

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise AuthSecurityError("Invalid Authorization header format.")

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise AuthSecurityError("Authorization must be: Bearer <api-key>.")
    return token
