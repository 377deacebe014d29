from __future__ import annotations

import logging
import sys
from typing import Any, Callable, Mapping

import structlog

from .config import Settings


def _app_context(settings: Settings) -> Callable[..., Mapping[str, Any]]:
    """
    Build a processor that enriches log records with app context (name, env).
    """

    def _add_app_context(
        logger: structlog.BoundLogger,
        method_name: str,
        event_dict: Mapping[str, Any],
    ) -> Mapping[str, Any]:
        event_dict["app"] = settings.app_name
        event_dict["env"] = settings.env
        return event_dict

    return _add_app_context


def setup_logging(settings: Settings) -> None:
    """
    Configure structlog + stdlib logging for JSON logs.

    Call this once at startup (e.g., in init_resources).
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    # Configure root logging for libraries
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
    )

    # Access lines are already covered by the request metrics
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        _app_context(settings),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
