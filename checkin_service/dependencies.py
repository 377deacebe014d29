from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI, Request

from .config import Settings
from .db import Database
from .logging_config import setup_logging

if TYPE_CHECKING:
    from .api.http_metrics import ServiceMetrics


async def init_resources(app: FastAPI) -> None:
    """
    Initialize shared resources held on `app.state`:

    - structlog logging
    - async DB pool (only when the database is enabled)
    - background consumer for pool errors
    """
    settings: Settings = app.state.settings

    # Logging first so everything after can log nicely
    setup_logging(settings)
    log = structlog.get_logger("startup")

    if settings.db_enabled:
        if app.state.database is None:
            app.state.database = Database.from_settings(settings)
        app.state.database.start()
        log.info(
            "database_initialized",
            host=settings.db_host,
            database=settings.db_name,
            pool_size=settings.db_pool_size,
        )
    else:
        app.state.database = None
        log.warning(
            "db_disabled",
            reasons=settings.db_disabled_reasons(),
            detail="Database routes answer 503 until DB_HOST/DB_PORT/DB_USER/DB_PASSWORD/DB_NAME are set.",
        )

    log.info(
        "app_listening",
        env=settings.env,
        port=settings.port,
        db_enabled=settings.db_enabled,
    )


async def close_resources(app: FastAPI) -> None:
    """
    Clean up resources at shutdown. A failing pool close is logged, not raised.
    """
    log = structlog.get_logger("shutdown")
    log.info("shutdown_started")

    database: Database | None = app.state.database
    if database is not None:
        try:
            await database.close()
            log.info("database_disposed")
        except Exception as exc:
            log.error("db_pool_close_failed", error=str(exc))
        app.state.database = None


def get_database(request: Request) -> Database | None:
    """
    FastAPI dependency for the Database (None when the database is disabled).

    Handlers must treat None as degraded mode and never attempt a query.
    """
    return request.app.state.database


def get_metrics(request: Request) -> ServiceMetrics:
    """
    FastAPI dependency returning the app's ServiceMetrics.
    """
    return request.app.state.metrics


def get_logger() -> structlog.BoundLogger:
    """
    FastAPI dependency returning a structlog logger.
    """
    return structlog.get_logger("service")
