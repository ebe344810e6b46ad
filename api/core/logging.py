"""
Logging setup and per-request access logging.
"""

from __future__ import annotations

import logging
import time

from fastapi import Request

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

logger = logging.getLogger("access")


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level)

    # Reconfiguring (tests, reloads) must not stack handlers.
    for handler in root.handlers:
        if getattr(handler, "_experience_hub", False):
            return None

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._experience_hub = True  # type: ignore[attr-defined]
    root.addHandler(handler)


async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        logger.info(
            "request method=%s path=%s status=%s duration_ms=%.1f",
            request.method,
            request.url.path,
            status_code,
            (time.perf_counter() - started) * 1000,
        )
