"""Configuration and options API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.dependencies import get_cache_service, get_config_service
from app.services.cache_service import CacheService
from app.services.config_service import ConfigService

router = APIRouter(tags=["config"])


# ---- Generic options ----

@router.get("/api/options")
async def get_options(cfg: ConfigService = Depends(get_config_service)):
    return cfg.config.get("options", {})


@router.post("/api/options")
async def update_options(
    request: Request,
    cfg: ConfigService = Depends(get_config_service),
    cache: CacheService = Depends(get_cache_service),
):
    data = await request.json()
    if not isinstance(data, dict):
        return JSONResponse({"status": "error", "message": "Expected a JSON object"}, status_code=400)
    try:
        options = cfg.update_options(data)
    except ValidationError as e:
        return JSONResponse({"status": "error", "message": str(e)}, status_code=400)
    cache.ttl_ms = options["cache_ttl_ms"]
    cache.fallback_category = options["fallback_category"]
    return {"status": "ok", "options": options}


# ---- Classifier keywords ----

@router.get("/api/options/classifier")
async def get_classifier_rules(cfg: ConfigService = Depends(get_config_service)):
    return cfg.classifier_rules.model_dump()
