import logging
import os
import sqlite3
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request

from app.database import DB_NAME, init_db
from app.routes import cache_api, catalog_api, config_api, health
from app.services.cache_service import CacheService
from app.services.config_service import ConfigService
from app.services.fetch_service import FetchService
from app.services.http_client import HttpClientService
from app.services.ingest_service import IngestionService
from app.services.library_service import LibraryService

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
logger = logging.getLogger(__name__)

# Data directory - use environment variable or default to /data (Docker) or ./data (local)
DATA_DIR = os.environ.get("DATA_DIR", "/data" if os.path.exists("/data") else "./data")


def create_app(
    data_dir: str = DATA_DIR,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build a fully-wired FastAPI app storing its config and cache in *data_dir*."""
    cfg = ConfigService(data_dir)
    http = HttpClientService(transport=transport)
    cache = CacheService(data_dir)
    fetcher = FetchService(http)
    ingestion = IngestionService(cfg, fetcher, cache)
    library = LibraryService(ingestion)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager - handles startup and shutdown"""
        # Startup
        os.makedirs(data_dir, exist_ok=True)
        cfg.load()
        cache.ttl_ms = cfg.cache_ttl_ms
        cache.fallback_category = cfg.options.fallback_category
        try:
            init_db(os.path.join(data_dir, DB_NAME))
        except (sqlite3.Error, OSError) as e:
            # The cache is optional; loads still work without it
            logger.error(f"Failed to initialise cache database: {e}")

        if cfg.options.load_on_startup:
            logger.info("Loading playlist on startup...")
            library.start_background_load()

        yield

        # Shutdown
        await library.close()
        await http.close()
        logger.info("Application shutdown complete")

    app = FastAPI(title="Playlist Catalog", lifespan=lifespan)

    # Attach state for DI
    app.state.config_service = cfg
    app.state.http_client = http
    app.state.cache_service = cache
    app.state.library_service = library

    # Middleware to ensure UTF-8 charset in JSON responses
    @app.middleware("http")
    async def add_utf8_charset(request: Request, call_next):
        response = await call_next(request)
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type and "charset" not in content_type:
            response.headers["content-type"] = "application/json; charset=utf-8"
        return response

    for r in (health, config_api, cache_api, catalog_api):
        app.include_router(r.router)

    return app


app = create_app()


# ============================================
# MAIN ENTRY POINT
# ============================================


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=5000)
