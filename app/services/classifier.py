"""Classifier — tags playlist entries as movies, series, channels or other."""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from app.models.catalog import ContentType
from app.models.config import ClassifierRules

if TYPE_CHECKING:
    from app.models.catalog import MediaEntry


def contains_any(value: str, keywords: list[str]) -> bool:
    """Check if any keyword appears as a substring of an already lower-cased value."""
    return any(k and k in value for k in keywords)


class Classifier:
    """Maps an entry's group, name and url to a ContentType.

    Rules are evaluated in a fixed order and the first match wins:

      1. movie keywords in group or name      -> movies
      2. series keywords in group or name     -> series
      3. channel keywords in group or name    -> channels
      4. live-stream marker in the url        -> channels
      5. anything else                        -> other
    """

    def __init__(self, rules: Optional[ClassifierRules] = None):
        rules = rules or ClassifierRules()
        self.rules = rules
        self._movie = [k.lower() for k in rules.movie_keywords]
        self._series = [k.lower() for k in rules.series_keywords]
        self._channel = [k.lower() for k in rules.channel_keywords]
        self._url_markers = [m.lower() for m in rules.live_url_markers]

    def classify(self, group: str, name: str, url: str) -> ContentType:
        group_lower = (group or "").lower()
        name_lower = (name or "").lower()
        url_lower = (url or "").lower()

        if contains_any(group_lower, self._movie) or contains_any(name_lower, self._movie):
            return ContentType.MOVIES
        if contains_any(group_lower, self._series) or contains_any(name_lower, self._series):
            return ContentType.SERIES
        if contains_any(group_lower, self._channel) or contains_any(name_lower, self._channel):
            return ContentType.CHANNELS
        if contains_any(url_lower, self._url_markers):
            return ContentType.CHANNELS
        return ContentType.OTHER

    def classify_entry(self, entry: "MediaEntry") -> ContentType:
        return self.classify(entry.group, entry.name, entry.url)
