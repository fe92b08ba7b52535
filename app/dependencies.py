"""FastAPI dependency injection — provides services via Depends()."""
from __future__ import annotations

from fastapi import Request

from app.services.cache_service import CacheService
from app.services.config_service import ConfigService
from app.services.http_client import HttpClientService
from app.services.library_service import LibraryService


def get_config_service(request: Request) -> ConfigService:
    return request.app.state.config_service


def get_http_client(request: Request) -> HttpClientService:
    return request.app.state.http_client


def get_cache_service(request: Request) -> CacheService:
    return request.app.state.cache_service


def get_library_service(request: Request) -> LibraryService:
    return request.app.state.library_service
