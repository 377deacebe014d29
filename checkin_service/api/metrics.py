from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Response
from fastapi.responses import PlainTextResponse

from .http_metrics import ServiceMetrics
from ..dependencies import get_metrics

router = APIRouter(tags=["metrics"])


@router.get("/metrics", include_in_schema=False)
def metrics(service_metrics: ServiceMetrics = Depends(get_metrics)) -> Response:
    """
    Expose Prometheus metrics for this service.

    A serialization failure answers 500 with a comment line and the error
    message, which scrapers reject visibly.
    """
    try:
        data = service_metrics.render()
    except Exception as exc:
        structlog.get_logger("metrics").error("metrics_render_failed", error=str(exc))
        return PlainTextResponse(f"# metrics error\n{exc}", status_code=500)
    return Response(content=data, media_type=service_metrics.content_type)
