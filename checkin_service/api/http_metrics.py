"""
Prometheus HTTP metrics for the FastAPI layer.

Per-route metrics with labels:
- route (literal request path, e.g. /checkins/recentes)
- method (GET/POST/...)
- status (HTTP status code as string, counter only)

From these, you can derive things like:
- error ratio for the check-ins route:
    sum(rate(svc_requests_total{route="/checkins/recentes",status=~"5.."}[5m]))
      / sum(rate(svc_requests_total{route="/checkins/recentes"}[5m]))
"""

from __future__ import annotations

import time
from typing import Iterable, Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_DURATION_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5)


class ServiceMetrics:
    """
    Owns a Prometheus registry with the HTTP request series and the
    default process/runtime collectors.

    One instance is created per application and handed to the middleware
    and the /metrics route, so tests can build isolated registries.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(
        self,
        prefix: str = "svc",
        *,
        registry: Optional[CollectorRegistry] = None,
        default_collectors: bool = True,
    ):
        self.registry = registry if registry is not None else CollectorRegistry()

        if default_collectors:
            ProcessCollector(namespace=prefix, registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)

        self.requests = Counter(
            "requests_total",
            "Total number of HTTP requests labeled by route, method and status",
            labelnames=("route", "method", "status"),
            namespace=prefix,
            registry=self.registry,
        )
        self.request_duration = Histogram(
            "request_duration_seconds",
            "HTTP request latency in seconds by route and method",
            labelnames=("route", "method"),
            namespace=prefix,
            buckets=REQUEST_DURATION_BUCKETS,
            registry=self.registry,
        )

    def observe_request(self, route: str, method: str, status: str, duration: float) -> None:
        self.request_duration.labels(route=route, method=method).observe(duration)
        self.requests.labels(route=route, method=method, status=status).inc()

    def render(self) -> bytes:
        """
        Serialize the whole registry in the Prometheus text exposition format.
        """
        return generate_latest(self.registry)


class RequestMetricsMiddleware:
    """
    ASGI middleware recording per-request metrics into a ServiceMetrics.

    The timer starts before the request is handed to the app; the duration
    and the counter are recorded once the last body chunk has been sent,
    with the final status code. Requests to excluded paths (the metrics
    route itself) are not recorded.
    """

    def __init__(
        self,
        app: ASGIApp,
        metrics: ServiceMetrics,
        *,
        exclude_paths: Iterable[str] = ("/metrics",),
    ) -> None:
        self.app = app
        self.metrics = metrics
        self.exclude_paths = frozenset(exclude_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        route = scope["path"]
        method = scope["method"].upper()
        start = time.perf_counter()
        status_code: int | None = None
        recorded = False

        def record(status: str) -> None:
            nonlocal recorded
            if recorded:
                return
            recorded = True
            self.metrics.observe_request(route, method, status, time.perf_counter() - start)

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                record(str(status_code))

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            # The outer error handler answers 500 unless a response already started.
            record(str(status_code) if status_code is not None else "500")
            raise
