"""
Shared test fixtures for the check-in service.

No real Postgres: routes get a FakeDatabase standing in for the pool.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

import pytest
from fastapi.testclient import TestClient

from checkin_service.api.http_metrics import ServiceMetrics
from checkin_service.config import Settings
from checkin_service.main import create_app


class FakeDatabase:
    """In-memory stand-in for checkin_service.db.Database."""

    def __init__(
        self,
        rows: Optional[List[Dict[str, Any]]] = None,
        *,
        ping_error: Exception | None = None,
        query_error: Exception | None = None,
        close_error: Exception | None = None,
        delay: float = 0.0,
    ):
        self.rows = rows or []
        self.ping_error = ping_error
        self.query_error = query_error
        self.close_error = close_error
        self.delay = delay
        self.pings = 0
        self.queries: List[tuple[str, Dict[str, Any]]] = []
        self.started = False
        self.closed = False
        self.query_started = asyncio.Event()

    def start(self) -> None:
        self.started = True

    async def ping(self) -> None:
        self.pings += 1
        if self.ping_error is not None:
            raise self.ping_error

    async def fetch_all(self, query: Any, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        params = dict(params or {})
        self.queries.append((str(query), params))
        self.query_started.set()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.query_error is not None:
            raise self.query_error
        return self.rows[: params.get("limit", len(self.rows))]

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


def make_rows(count: int) -> List[Dict[str, Any]]:
    """Check-in rows ordered newest first, like the query returns them."""
    newest = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    return [
        {
            "pessoa": f"Pessoa {i}",
            "curso": "Engenharia",
            "semestre": "2024.1",
            "sala": f"B-{100 + i}",
            "criado_em": newest - timedelta(minutes=i),
        }
        for i in range(count)
    ]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def enabled_settings() -> Settings:
    return Settings(
        _env_file=None,
        env="test",
        db_support=True,
        db_host="db.internal",
        db_port="5432",
        db_user="app",
        db_password="secret",
        db_name="presenca",
    )


@pytest.fixture
def disabled_settings() -> Settings:
    return Settings(
        _env_file=None,
        env="test",
        db_host=None,
        db_user=None,
        db_password=None,
        db_name=None,
    )


@pytest.fixture
def metrics() -> ServiceMetrics:
    return ServiceMetrics()


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase(rows=make_rows(30))


@pytest.fixture
def client(enabled_settings, fake_db, metrics) -> TestClient:
    app = create_app(enabled_settings, database=fake_db, metrics=metrics)
    return TestClient(app)


@pytest.fixture
def disabled_client(disabled_settings, metrics) -> TestClient:
    app = create_app(disabled_settings, metrics=metrics)
    return TestClient(app)
