from __future__ import annotations

from fastapi import APIRouter

from . import checkins, metrics, system

__all__ = ["router", "checkins", "system", "metrics"]

# Aggregate router; the app factory mounts it at the root.
router = APIRouter()
router.include_router(system.router)
router.include_router(metrics.router)
router.include_router(checkins.router)
