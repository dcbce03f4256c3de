"""
SimpleNotes API application.

``create_app()`` assembles routes, middleware and error handlers; the
lifespan owns the ConnectionSupervisor. Serve with:

    uvicorn simplenotes.backend.main:app
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from simplenotes.backend.api import health
from simplenotes.backend.api.endpoints import router as notes_router
from simplenotes.backend.core.config import get_app_config, get_database_url, get_environment
from simplenotes.backend.core.config_schema import DatabaseSchema
from simplenotes.backend.core.database import ConnectionSupervisor
from simplenotes.backend.core.exception_handlers import register_exception_handlers
from simplenotes.backend.core.logging import get_logger, setup_logging
from simplenotes.backend.core.middleware import RequestContextMiddleware
from simplenotes.backend.core.resilience import QueryExecutor

logger = get_logger(__name__)


async def _open_database(db_config: DatabaseSchema) -> ConnectionSupervisor:
    """
    Start supervising the pool. An unreachable database, or a failed schema
    bootstrap, is logged and the app serves anyway.
    """
    supervisor = ConnectionSupervisor.from_config(get_database_url(), db_config)
    await supervisor.start()

    if db_config.auto_create_schema:
        try:
            await supervisor.ensure_schema()
        except Exception as e:
            logger.error("Failed to create database schema", extra={"error": str(e)})

    return supervisor


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    config = get_app_config()
    setup_logging()
    logger.info(
        "Application starting",
        extra={"app_name": config.application.name, "env": get_environment()},
    )

    supervisor = await _open_database(config.database)
    app.state.supervisor = supervisor
    app.state.executor = QueryExecutor.from_config(supervisor, config.database)

    try:
        yield
    finally:
        logger.info("Application shutting down")
        await supervisor.stop()


def create_app() -> FastAPI:
    config = get_app_config()
    settings = config.application
    prefix = settings.api_prefix

    app = FastAPI(
        title=settings.name,
        description=settings.description,
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware, log_requests=config.features.api_request_logging)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app, detailed_errors=config.features.api_detailed_errors)

    app.include_router(health.router, tags=["health"])
    app.include_router(health.api_router, prefix=prefix, tags=["health"])
    app.include_router(notes_router, prefix=prefix)
    return app


def __getattr__(name: str) -> FastAPI:
    # ``app`` is built on first access so importing this module never reads config.
    if name != "app":
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    app = create_app()
    globals()["app"] = app
    return app
