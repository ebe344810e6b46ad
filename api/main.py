from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from core.db import Database
from core.errors import install_exception_handlers
from core.logging import configure_logging, log_requests
from core.settings import Settings, cors_allow_origins, load_settings
from experiences import router as experiences_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """
    Build the application.

    Pass `database` to reuse an existing pool (tests, scripts); otherwise the
    lifespan opens one from `settings` (or the environment) and closes it on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if database is not None:
            app.state.database = database
            yield
            return

        # One pool per process, built here and passed down explicitly.
        config = settings or load_settings()
        configure_logging(config.log_level)
        owned = await Database.connect(
            config.database_url,
            min_size=config.pool_min_size,
            max_size=config.pool_max_size,
            command_timeout=config.command_timeout_s,
        )
        app.state.database = owned
        try:
            yield
        finally:
            await owned.close()

    app = FastAPI(title="Experience Hub API", version="1.0.0", lifespan=lifespan)
    install_exception_handlers(app)
    app.middleware("http")(log_requests)

    origins = settings.cors_allow_origins if settings is not None else cors_allow_origins()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(experiences_router.router, tags=["experiences"])

    @app.get("/health", response_class=PlainTextResponse, tags=["health"])
    def health() -> str:
        return "OK"

    return app


def run() -> None:
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info("starting_server host=%s port=%s", settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


app = create_app()


if __name__ == "__main__":
    run()
