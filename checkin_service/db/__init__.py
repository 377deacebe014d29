"""
Database layer for the check-in service.

- pool: async engine/pool wrapper (ping, fetch, pool error channel, close)
- checkins_client: read-only queries over the `checkins` table

Route handlers should depend on these modules rather than talking to the
raw driver directly.
"""

from .pool import Database, PoolError

__all__ = [
    "Database",
    "PoolError",
    "checkins_client",
]
