from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import structlog
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.sql.elements import TextClause

from ..config import Settings


@dataclass(frozen=True)
class PoolError:
    """
    A background fault reported by the connection pool.
    """

    kind: str
    message: str


class Database:
    """
    Thin wrapper around an async SQLAlchemy engine (asyncpg pool).

    Route handlers depend on this class instead of the raw engine. Pool
    faults (invalidated connections) are pushed onto an in-memory channel
    and logged by a background consumer started with `start()`, so they
    never reach request handling.
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._errors: asyncio.Queue[PoolError] = asyncio.Queue()
        self._consumer: Optional[asyncio.Task[None]] = None

        pool = engine.sync_engine.pool
        event.listen(pool, "invalidate", self._on_invalidate)
        event.listen(pool, "soft_invalidate", self._on_invalidate)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """
        Create a Database backed by a bounded asyncpg pool.

        The pool never grows past `db_pool_size`; callers wait at most
        `db_pool_timeout` seconds for a free connection.
        """
        engine = create_async_engine(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=0,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=True,
            connect_args={"timeout": settings.db_connect_timeout},
        )
        return cls(engine)

    @property
    def errors(self) -> "asyncio.Queue[PoolError]":
        return self._errors

    def _on_invalidate(self, dbapi_connection: Any, connection_record: Any, exception: Any) -> None:
        if exception is None:
            return
        self.report_error(PoolError(kind=type(exception).__name__, message=str(exception)))

    def report_error(self, error: PoolError) -> None:
        self._errors.put_nowait(error)

    async def _consume_errors(self) -> None:
        log = structlog.get_logger("db")
        while True:
            error = await self._errors.get()
            log.error("db_pool_error", kind=error.kind, error=error.message)
            self._errors.task_done()

    def start(self) -> None:
        """
        Start the background consumer for pool errors.
        """
        if self._consumer is None:
            self._consumer = asyncio.create_task(self._consume_errors())

    async def ping(self) -> None:
        """
        Run a trivial liveness query; raises on any failure.
        """
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def fetch_all(
        self,
        query: TextClause,
        params: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Run a read-only query and return the rows as plain dicts.
        """
        async with self._engine.connect() as conn:
            result = await conn.execute(query, dict(params or {}))
            return [dict(row) for row in result.mappings().all()]

    async def close(self) -> None:
        """
        Stop the error consumer and close the underlying pool.
        """
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None
        await self._engine.dispose()
