from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, Depends

from ..db import Database
from ..dependencies import get_database, get_logger

router = APIRouter(tags=["system"])


@router.get("/health", summary="Liveness check")
async def health(
    db: Database | None = Depends(get_database),
    logger=Depends(get_logger),
) -> Dict[str, str]:
    """
    Liveness check that also reports the database state.

    Always answers 200: an unhealthy database shows up as `db: down` so
    orchestrators do not restart the process because of its dependency.
    """
    if db is None:
        return {"status": "ok", "db": "disabled"}

    try:
        await db.ping()
    except Exception as exc:
        logger.warning("health_db_check_failed", error=str(exc))
        return {"status": "ok", "db": "down"}

    return {"status": "ok", "db": "up"}
