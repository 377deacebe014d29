from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api import router as api_router
from .api.http_metrics import RequestMetricsMiddleware, ServiceMetrics
from .config import Settings, get_settings
from .db import Database
from .dependencies import close_resources, init_resources


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context:
    - Initialize shared resources (logging, DB pool)
    - Clean them up on shutdown, after in-flight requests have drained
    """
    await init_resources(app)
    try:
        yield
    finally:
        await close_resources(app)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Unknown paths and known paths with another method are both "not found".
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "not_found"})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "http_error", "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    structlog.get_logger("http").error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error"},
    )


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    metrics: ServiceMetrics | None = None,
) -> FastAPI:
    """
    Application factory for the check-in service.

    `database` and `metrics` can be injected (tests do); otherwise the pool
    is created at startup when the database is enabled, and a fresh metrics
    registry is built here. A database is never kept when the settings
    disable it.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database if settings.db_enabled else None
    app.state.metrics = metrics or ServiceMetrics(prefix=settings.metrics_prefix)

    # Per-route Prometheus metrics; /metrics itself is not recorded
    app.add_middleware(RequestMetricsMiddleware, metrics=app.state.metrics)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(api_router)

    return app


# ASGI entrypoint for uvicorn / hypercorn, etc.
# e.g. uvicorn checkin_service.main:app
app = create_app()
