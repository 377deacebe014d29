from __future__ import annotations

import asyncio
import contextlib
import signal
import threading
from typing import Iterator

import structlog
import uvicorn
from fastapi import FastAPI

from .config import Settings, get_settings

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

# Module-level ASGI app, built once from the cached settings
APP_IMPORT_STRING = "checkin_service.main:app"


class GracefulServer(uvicorn.Server):
    """
    uvicorn server that drains in-flight requests on SIGINT/SIGTERM and
    then returns normally, so the process exits with status 0.

    Shutdown order: stop accepting connections, wait for open requests,
    run the lifespan shutdown (closes the DB pool).
    """

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        # Signal handlers can only be installed from the main thread.
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        loop = asyncio.get_running_loop()
        for sig in HANDLED_SIGNALS:
            loop.add_signal_handler(sig, self._on_signal, sig)
        try:
            yield
        finally:
            for sig in HANDLED_SIGNALS:
                loop.remove_signal_handler(sig)

    def _on_signal(self, sig: signal.Signals) -> None:
        structlog.get_logger("shutdown").info("shutdown_signal_received", signal=sig.name)
        self.handle_exit(sig, None)


def build_server(
    settings: Settings | None = None,
    *,
    app: FastAPI | None = None,
) -> GracefulServer:
    """
    Build the server; without an explicit `app`, uvicorn loads the
    module-level app instead of building another one.
    """
    settings = settings or get_settings()
    config = uvicorn.Config(
        app if app is not None else APP_IMPORT_STRING,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        lifespan="on",
    )
    return GracefulServer(config)


def run() -> None:
    """
    Console entry point: serve the app on the configured host/port.
    """
    build_server().run()
