"""Cache management API routes."""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends

from app.dependencies import get_cache_service, get_config_service
from app.services.cache_service import CacheService
from app.services.config_service import ConfigService

router = APIRouter(tags=["cache"])


@router.get("/api/cache/status")
async def cache_status(
    cache: CacheService = Depends(get_cache_service),
    cfg: ConfigService = Depends(get_config_service),
):
    status = await cache.status(cfg.cache_key)
    if status.get("cached"):
        status["saved_at"] = datetime.fromtimestamp(status["timestamp"] / 1000).isoformat()
        status["expires"] = datetime.fromtimestamp(status["expires_at"] / 1000).isoformat()
    return status


@router.post("/api/cache/clear")
async def clear_cache(
    cache: CacheService = Depends(get_cache_service),
    cfg: ConfigService = Depends(get_config_service),
):
    cleared = await cache.delete(cfg.cache_key)
    return {"status": "ok" if cleared else "error", "message": "Cache cleared" if cleared else "Could not clear cache"}
