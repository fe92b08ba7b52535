"""Catalog builder — accumulates parsed entries into a Catalog incrementally."""
from __future__ import annotations

from app.models.catalog import DEFAULT_FALLBACK_CATEGORY, Catalog, MediaEntry


class CatalogBuilder:
    """Owns the Catalog under construction for a single ingestion run."""

    def __init__(self, fallback_category: str = DEFAULT_FALLBACK_CATEGORY):
        self.fallback_category = fallback_category
        self._catalog = Catalog()

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def next_id(self) -> int:
        return len(self._catalog.entries)

    def category_key(self, entry: MediaEntry) -> str:
        return entry.category_key(self.fallback_category)

    def add(self, entry: MediaEntry) -> None:
        if entry.id != self.next_id:
            raise ValueError(f"Entry id {entry.id} out of order, expected {self.next_id}")

        self._catalog.entries.append(entry)
        key = self.category_key(entry)
        bucket = self._catalog.categories.get(key)
        if bucket is None:
            bucket = []
            self._catalog.categories[key] = bucket
        bucket.append(entry)
