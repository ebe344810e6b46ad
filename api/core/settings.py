"""
Environment-driven settings.

Everything is read from the process environment once at startup. Unset or
unparsable values fall back to defaults; only DATABASE_URL is mandatory.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.environ.get(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _env_log_level(name: str, default: str) -> str:
    level = _env_str(name, default).upper()
    # getLevelName maps known names to their numeric level.
    if not isinstance(logging.getLevelName(level), int):
        return default
    return level


def _sanitize_database_url(url: str) -> str:
    # asyncpg rejects libpq-only options such as sslmode=disable.
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


@dataclass(frozen=True)
class Settings:
    database_url: str
    pool_min_size: int = 1
    pool_max_size: int = 10
    command_timeout_s: float = 30.0
    log_level: str = "INFO"
    cors_allow_origins: tuple[str, ...] = field(default_factory=tuple)
    host: str = "0.0.0.0"
    port: int = 8080


def load_settings() -> Settings:
    min_size = max(_env_int("DB_POOL_MIN_SIZE", 1), 0)
    max_size = max(_env_int("DB_POOL_MAX_SIZE", 10), 1)
    return Settings(
        database_url=database_url(),
        pool_min_size=min(min_size, max_size),
        pool_max_size=max_size,
        command_timeout_s=_env_float("DB_COMMAND_TIMEOUT_S", 30.0),
        log_level=_env_log_level("LOG_LEVEL", "INFO"),
        cors_allow_origins=_env_list("CORS_ALLOW_ORIGINS"),
        host=_env_str("HOST", "0.0.0.0"),
        port=_env_int("PORT", 8080),
    )


def cors_allow_origins() -> tuple[str, ...]:
    return _env_list("CORS_ALLOW_ORIGINS")
