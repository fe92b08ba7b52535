"""Pydantic models for playlist entries, the catalog and cache records."""
from __future__ import annotations

import enum
import random
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_FALLBACK_CATEGORY = "Outros"


class ContentType(str, enum.Enum):
    MOVIES = "movies"
    SERIES = "series"
    CHANNELS = "channels"
    OTHER = "other"


class MediaEntry(BaseModel):
    """A single playable item from the playlist."""
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(ge=0)
    name: str = ""
    group: str = ""
    logo: str = ""
    tvg_id: str = Field(default="", alias="tvgId")
    tvg_name: str = Field(default="", alias="tvgName")
    duration: int = -1  # -1 = live / unknown length
    url: str
    type: ContentType = ContentType.OTHER

    @field_validator("url")
    @classmethod
    def _url_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("url must not be empty")
        return value

    def category_key(self, fallback: str = DEFAULT_FALLBACK_CATEGORY) -> str:
        return self.group or fallback


class Catalog(BaseModel):
    """Ordered entries plus a category index holding references to them.

    ``categories`` never holds copies: every bucket member is the same
    object found in ``entries``.
    """

    entries: list[MediaEntry] = Field(default_factory=list)
    categories: dict[str, list[MediaEntry]] = Field(default_factory=dict)

    def get(self, entry_id: int) -> Optional[MediaEntry]:
        if 0 <= entry_id < len(self.entries):
            return self.entries[entry_id]
        return None

    def featured(self, rng: Optional[random.Random] = None) -> Optional[MediaEntry]:
        """Pick a random entry that has a logo, else the first entry."""
        if not self.entries:
            return None
        rng = rng or random
        with_logo = [e for e in self.entries if e.logo.strip()]
        if with_logo:
            return rng.choice(with_logo)
        return self.entries[0]

    def filter(
        self,
        type: Optional[ContentType] = None,
        category: Optional[str] = None,
        search: str = "",
    ) -> list[MediaEntry]:
        """Entries matching a content type, a category key and a search term."""
        if category is not None:
            items = list(self.categories.get(category, []))
        else:
            items = list(self.entries)

        if type is not None:
            items = [e for e in items if e.type == type]

        query = search.strip().lower()
        if query:
            items = [
                e for e in items
                if query in e.name.lower()
                or query in e.group.lower()
                or query in e.tvg_name.lower()
            ]
        return items

    def category_counts(self) -> dict[str, int]:
        return {name: len(members) for name, members in self.categories.items()}

    def type_counts(self) -> dict[str, int]:
        counts = {t.value: 0 for t in ContentType}
        for entry in self.entries:
            counts[entry.type.value] += 1
        return counts

    def to_compact(self) -> dict:
        """Compact export: group names once, items referencing them by index."""
        group_index: dict[str, int] = {}
        items = []
        for entry in self.entries:
            item: dict = {"n": entry.name}
            if entry.group:
                if entry.group not in group_index:
                    group_index[entry.group] = len(group_index)
                item["g"] = group_index[entry.group]
            if entry.logo:
                item["l"] = entry.logo
            item["u"] = entry.url
            items.append(item)
        return {"g": list(group_index), "i": items}


class CacheRecord(BaseModel):
    """Persisted snapshot of one ingestion run."""

    key: str
    catalog: Catalog
    timestamp: int  # epoch milliseconds

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.timestamp

    def is_expired(self, ttl_ms: int, now_ms: int) -> bool:
        return self.age_ms(now_ms) > ttl_ms
