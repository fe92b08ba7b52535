"""Library service — keeps the latest ingestion result for the HTTP layer."""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from app.services.fetch_service import NetworkError
from app.services.ingest_service import IngestionProgress

if TYPE_CHECKING:
    from app.models.catalog import Catalog
    from app.services.ingest_service import IngestionResult, IngestionService

logger = logging.getLogger(__name__)


class LibraryService:
    """Serializes loads and exposes the current catalog and progress.

    Only one load runs at a time; a second request while one is in flight
    is a no-op.
    """

    def __init__(self, ingestion_service: "IngestionService"):
        self.ingestion_service = ingestion_service
        self.result: Optional["IngestionResult"] = None
        self.progress = IngestionProgress()
        self.last_error: Optional[str] = None
        self._load_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def catalog(self) -> Optional["Catalog"]:
        return self.result.catalog if self.result else None

    @property
    def loading(self) -> bool:
        return self._load_lock.locked()

    def _set_progress(self, progress: IngestionProgress) -> None:
        self.progress = progress

    async def load(self, force: bool = False) -> Optional["IngestionResult"]:
        """Run one load; returns None if it failed or another load was running."""
        if self._load_lock.locked():
            logger.info("Load already in progress, skipping")
            return None

        async with self._load_lock:
            self.last_error = None
            try:
                result = await self.ingestion_service.load(force=force, on_progress=self._set_progress)
            except NetworkError as e:
                logger.error(f"Error loading playlist: {e}")
                self.last_error = str(e)
                self.progress = IngestionProgress(phase="error", percent=None, message=str(e))
                return None
            except Exception as e:
                logger.error(f"Unexpected error loading playlist: {e}", exc_info=True)
                self.last_error = f"Unexpected error: {e}"
                self.progress = IngestionProgress(phase="error", percent=None, message=self.last_error)
                return None
            self.result = result
            return result

    def start_background_load(self, force: bool = False) -> bool:
        """Schedule a load on the running loop. Returns False if one is already running."""
        if self.loading or (self._task is not None and not self._task.done()):
            return False
        self._task = asyncio.create_task(self.load(force=force))
        return True

    async def close(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
