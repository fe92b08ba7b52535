"""Ingestion service — cache lookup, download, parse and persist in one run."""
from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable, Optional

from pydantic import BaseModel, Field

from app.models.catalog import Catalog
from app.services.catalog_builder import CatalogBuilder
from app.services.classifier import Classifier
from app.services.fetch_service import build_alternates
from app.services.parser_service import PlaylistParser

if TYPE_CHECKING:
    from app.services.cache_service import CacheService
    from app.services.config_service import ConfigService
    from app.services.fetch_service import FetchService

logger = logging.getLogger(__name__)

SAVE_PERCENT = 85


class IngestionProgress(BaseModel):
    """Snapshot of a running (or finished) load."""

    phase: str = "idle"  # idle, cache, download, parse, save, done, error
    percent: Optional[int] = 0
    loaded: Optional[int] = None
    total: Optional[int] = None
    items: int = 0
    message: str = ""


class IngestionResult(BaseModel):
    """Outcome of one ingestion run, owned by whoever called ``load``."""

    catalog: Catalog = Field(default_factory=Catalog)
    from_cache: bool = False
    persisted: bool = False
    timestamp: int = 0  # epoch ms of the data, from the cache record when cached
    elapsed: float = 0.0


ProgressCallback = Callable[[IngestionProgress], None]


class IngestionService:
    """Runs the Fetcher → Parser → Classifier → Builder → Cache pipeline."""

    def __init__(
        self,
        config_service: "ConfigService",
        fetch_service: "FetchService",
        cache_service: "CacheService",
    ):
        self.config_service = config_service
        self.fetch_service = fetch_service
        self.cache_service = cache_service

    async def load(
        self,
        force: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> IngestionResult:
        """Return a catalog from a fresh cache hit, or build and persist a new one.

        Raises :class:`~app.services.fetch_service.NetworkError` when the
        playlist cannot be downloaded from any source.
        """
        options = self.config_service.options
        key = options.cache_key
        start_time = time.time()

        def report(phase: str, percent: Optional[int], message: str = "", **extra) -> None:
            if on_progress:
                on_progress(IngestionProgress(phase=phase, percent=percent, message=message, **extra))

        if not force:
            report("cache", 0, "Checking local cache...")
            record = await self.cache_service.read(key)
            if record is not None:
                report("done", 100, "Loaded from local cache", items=len(record.catalog.entries))
                return IngestionResult(
                    catalog=record.catalog,
                    from_cache=True,
                    persisted=True,
                    timestamp=record.timestamp,
                    elapsed=time.time() - start_time,
                )

        # Download
        report("download", 0, "Downloading playlist...")

        def download_progress(loaded: int, total: Optional[int]) -> None:
            percent = min(round(loaded / total * 100), 100) if total else None
            report("download", percent, "Downloading playlist...", loaded=loaded, total=total)

        alternates = build_alternates(options.playlist_url, options.proxy_prefixes)
        text = await self.fetch_service.fetch(options.playlist_url, alternates, download_progress)

        # Parse, classify and index
        builder = CatalogBuilder(options.fallback_category)
        report("parse", 0, "Processing content...")
        parser = PlaylistParser(
            classifier=Classifier(self.config_service.classifier_rules),
            batch_size=self.config_service.batch_size,
            progress_max=options.parse_progress_max,
            on_progress=lambda percent: report(
                "parse", percent, f"Processing... {builder.next_id} items", items=builder.next_id
            ),
        )
        catalog = await parser.parse_into(text, builder)

        # Persist
        report("save", SAVE_PERCENT, "Saving local cache...", items=len(catalog.entries))
        persisted = await self.cache_service.write(key, catalog)
        if not persisted:
            logger.warning("Playlist loaded but could not be cached; next load will download again")

        elapsed = time.time() - start_time
        report("done", 100, f"Loaded {len(catalog.entries)} items", items=len(catalog.entries))
        logger.info(
            f"Ingestion complete: {len(catalog.entries)} items, "
            f"{len(catalog.categories)} categories in {elapsed:.1f}s"
        )
        return IngestionResult(
            catalog=catalog,
            from_cache=False,
            persisted=persisted,
            timestamp=int(start_time * 1000),
            elapsed=elapsed,
        )
