from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy import text

from .pool import Database

RECENT_CHECKINS_QUERY = text(
    """
    SELECT
        pessoa,
        curso,
        semestre,
        sala,
        criado_em
    FROM checkins
    ORDER BY criado_em DESC
    LIMIT :limit
    """
)


async def get_recent_checkins(db: Database, limit: int) -> List[Dict[str, Any]]:
    """
    Fetch the most recent check-ins, newest first.

    Assumes a `checkins` table with (at least):
      - pessoa (text)
      - curso (text)
      - semestre (text)
      - sala (text)
      - criado_em (timestamptz)

    `limit` is always sent as a bound parameter.
    """
    return await db.fetch_all(RECENT_CHECKINS_QUERY, {"limit": limit})
