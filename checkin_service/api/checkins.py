from __future__ import annotations

import re
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..db import Database
from ..db.checkins_client import get_recent_checkins
from ..dependencies import get_database, get_logger

router = APIRouter(tags=["checkins"], prefix="/checkins")

DEFAULT_LIMIT = 10
MIN_LIMIT = 1
MAX_LIMIT = 200

_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")

DATABASE_UNAVAILABLE_MESSAGE = (
    "Database disabled. Enable database support and set "
    "DB_HOST/DB_PORT/DB_USER/DB_PASSWORD/DB_NAME."
)


def resolve_limit(raw: Optional[str]) -> int:
    """
    Turn the raw `limit` query value into the row limit used by the query.

    The leading integer of the value is used ("12abc" -> 12, "5.7" -> 5);
    missing, empty or non-numeric values fall back to the default. The
    result is always clamped to [MIN_LIMIT, MAX_LIMIT].
    """
    value = DEFAULT_LIMIT
    if raw:
        match = _LEADING_INT.match(raw)
        if match is not None:
            value = int(match.group(1))
    return min(max(value, MIN_LIMIT), MAX_LIMIT)


@router.get("/recentes", summary="Most recent check-ins")
async def recent_checkins(
    limit: Optional[str] = Query(
        default=None,
        description=f"Number of rows, default {DEFAULT_LIMIT}, clamped to {MIN_LIMIT}-{MAX_LIMIT}.",
    ),
    db: Database | None = Depends(get_database),
    logger=Depends(get_logger),
) -> JSONResponse:
    """
    List the most recent check-ins, newest first.

    - 503 `database_unavailable` when the database is not configured
    - 500 `query_failed` when the configured database rejects the query
    """
    resolved = resolve_limit(limit)

    if db is None:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "error": "database_unavailable",
                "message": DATABASE_UNAVAILABLE_MESSAGE,
            },
        )

    try:
        rows = await get_recent_checkins(db, resolved)
    except Exception as exc:
        logger.error("checkins_query_failed", limit=resolved, error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "query_failed", "message": str(exc)},
        )

    body: Dict[str, Any] = {"count": len(rows), "items": rows}
    return JSONResponse(content=jsonable_encoder(body))
