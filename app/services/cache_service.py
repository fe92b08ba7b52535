"""Cache service — TTL-bound persistence of the playlist catalog in SQLite.

Every public operation is fail-soft: storage errors are logged and turned
into ``None`` (read) or ``False`` (write/delete), never raised to the
ingestion pipeline.
"""
from __future__ import annotations

import asyncio
import functools
import json
import logging
import os
import sqlite3
import time
from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import TypeAdapter, ValidationError

from app.database import DB_NAME, db_connect
from app.models.catalog import DEFAULT_FALLBACK_CATEGORY, CacheRecord, Catalog, MediaEntry
from app.models.config import DEFAULT_CACHE_TTL_MS

logger = logging.getLogger(__name__)

_ENTRIES_ADAPTER = TypeAdapter(list[MediaEntry])

# Anything the storage layer or a damaged row can throw at us
_STORAGE_ERRORS = (sqlite3.Error, OSError)
_DECODE_ERRORS = (
    json.JSONDecodeError, ValidationError, KeyError, IndexError, TypeError, ValueError, AttributeError,
)


def now_ms() -> int:
    return int(time.time() * 1000)


def serialize_catalog(catalog: Catalog) -> tuple[str, str]:
    """Return ``(items_json, categories_json)``; categories hold entry ids."""
    items = _ENTRIES_ADAPTER.dump_json(catalog.entries, by_alias=True).decode("utf-8")
    categories = {
        key: [entry.id for entry in members]
        for key, members in catalog.categories.items()
    }
    return items, json.dumps(categories, ensure_ascii=False)


def deserialize_catalog(
    items_json: str,
    categories_json: str,
    fallback_category: str = DEFAULT_FALLBACK_CATEGORY,
) -> Catalog:
    """Rebuild a Catalog whose category buckets reference the decoded entries.

    Raises ``ValueError`` unless every entry sits in exactly one bucket and
    that bucket is the entry's own category key.
    """
    entries = _ENTRIES_ADAPTER.validate_json(items_json)
    for index, entry in enumerate(entries):
        if entry.id != index:
            raise ValueError(f"Cached entry at position {index} has id {entry.id}")

    seen: set[int] = set()
    categories: dict[str, list[MediaEntry]] = {}
    stored = json.loads(categories_json)
    if not isinstance(stored, dict):
        raise ValueError("Cached categories are not an object")
    for key, ids in stored.items():
        members = []
        for i in ids:
            if isinstance(i, bool) or not isinstance(i, int) or not 0 <= i < len(entries):
                raise ValueError(f"Category '{key}' references unknown entry {i!r}")
            if i in seen:
                raise ValueError(f"Entry {i} appears in more than one category")
            entry = entries[i]
            if entry.category_key(fallback_category) != key:
                raise ValueError(f"Entry {i} does not belong in category '{key}'")
            seen.add(i)
            members.append(entry)
        categories[key] = members

    if len(seen) != len(entries):
        raise ValueError(f"{len(entries) - len(seen)} cached entries have no category")
    return Catalog(entries=entries, categories=categories)


class CacheService:
    """Reads, writes and expires CacheRecords stored under a fixed key."""

    def __init__(
        self,
        data_dir: str,
        ttl_ms: int = DEFAULT_CACHE_TTL_MS,
        clock: Callable[[], int] = now_ms,
        fallback_category: str = DEFAULT_FALLBACK_CATEGORY,
    ):
        self.data_dir = data_dir
        self.db_path = os.path.join(data_dir, DB_NAME)
        self.ttl_ms = ttl_ms
        self.clock = clock
        self.fallback_category = fallback_category
        self._cache_lock = asyncio.Lock()

    async def _run(self, func: Callable, *args) -> Any:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    # ------------------------------------------------------------------
    # Synchronous storage helpers (run in the default executor)
    # ------------------------------------------------------------------

    def _select(self, key: str) -> Optional[sqlite3.Row]:
        conn = db_connect(self.db_path)
        try:
            return conn.execute(
                "SELECT id, items, categories, timestamp FROM playlist_cache WHERE id = ?",
                (key,),
            ).fetchone()
        finally:
            conn.close()

    def _upsert(self, key: str, catalog: Catalog, timestamp: int) -> None:
        items, categories = serialize_catalog(catalog)
        conn = db_connect(self.db_path)
        try:
            conn.execute(
                "INSERT OR REPLACE INTO playlist_cache (id, items, categories, timestamp) "
                "VALUES (?,?,?,?)",
                (key, items, categories, timestamp),
            )
            conn.commit()
        finally:
            conn.close()

    def _remove(self, key: str) -> None:
        conn = db_connect(self.db_path)
        try:
            conn.execute("DELETE FROM playlist_cache WHERE id = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def read(self, key: str) -> Optional[CacheRecord]:
        """Return the stored record for *key*, or None if absent, expired or unreadable."""
        async with self._cache_lock:
            try:
                row = await self._run(self._select, key)
            except _STORAGE_ERRORS as e:
                logger.warning(f"Cache read error: {e}")
                return None

            if row is None:
                logger.info(f"No cached playlist under '{key}'")
                return None

            try:
                timestamp = int(row["timestamp"])
            except _DECODE_ERRORS as e:
                logger.warning(f"Cached playlist '{key}' has an unreadable timestamp, discarding: {e}")
                await self._delete_unlocked(key)
                return None

            if self.clock() - timestamp > self.ttl_ms:
                logger.info(f"Cached playlist '{key}' expired, discarding")
                await self._delete_unlocked(key)
                return None

            try:
                catalog = await self._run(
                    deserialize_catalog, row["items"], row["categories"], self.fallback_category
                )
            except _DECODE_ERRORS as e:
                logger.warning(f"Cached playlist '{key}' is corrupt, discarding: {e}")
                await self._delete_unlocked(key)
                return None

        logger.info(f"Loaded {len(catalog.entries)} items from cache '{key}'")
        return CacheRecord(key=key, catalog=catalog, timestamp=timestamp)

    async def write(self, key: str, catalog: Catalog) -> bool:
        """Replace the record for *key*. Returns False instead of raising on failure."""
        async with self._cache_lock:
            try:
                await self._run(self._upsert, key, catalog, self.clock())
            except (*_STORAGE_ERRORS, ValueError, TypeError) as e:
                logger.warning(f"Could not save playlist cache: {e}")
                return False
        logger.info(f"Cache saved to DB at {datetime.now().isoformat()}")
        return True

    async def delete(self, key: str) -> bool:
        """Best-effort removal of the record for *key*."""
        async with self._cache_lock:
            return await self._delete_unlocked(key)

    async def _delete_unlocked(self, key: str) -> bool:
        try:
            await self._run(self._remove, key)
        except _STORAGE_ERRORS as e:
            logger.warning(f"Error clearing cache: {e}")
            return False
        logger.info(f"Cache '{key}' cleared")
        return True

    async def status(self, key: str) -> dict:
        """Describe the stored record without decoding the full catalog."""
        async with self._cache_lock:
            try:
                row = await self._run(self._select, key)
            except _STORAGE_ERRORS as e:
                logger.warning(f"Cache status error: {e}")
                row = None

        if row is None:
            return {"cached": False, "key": key, "ttl_ms": self.ttl_ms}

        try:
            timestamp = int(row["timestamp"])
        except _DECODE_ERRORS:
            logger.warning(f"Cached playlist '{key}' has an unreadable timestamp")
            return {"cached": False, "key": key, "ttl_ms": self.ttl_ms}

        age = self.clock() - timestamp
        try:
            categories = json.loads(row["categories"])
            items_count = sum(len(ids) for ids in categories.values())
            categories_count = len(categories)
        except _DECODE_ERRORS:
            items_count = categories_count = None
        return {
            "cached": True,
            "key": key,
            "ttl_ms": self.ttl_ms,
            "timestamp": timestamp,
            "age_ms": age,
            "expires_at": timestamp + self.ttl_ms,
            "expired": age > self.ttl_ms,
            "items": items_count,
            "categories": categories_count,
        }
