"""Pydantic models for application configuration."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PLAYLIST_URL = "https://pub-f8e264b0f9ce4788ba346df77c54fef5.r2.dev/2024/ListaVip.m3u8"

DEFAULT_PROXY_PREFIXES = [
    "https://api.allorigins.win/raw?url=",
    "https://corsproxy.io/?",
]

# 24 hours
DEFAULT_CACHE_TTL_MS = 24 * 60 * 60 * 1000


class ClassifierRules(BaseModel):
    """Keyword sets used to tag entries, checked in declaration order.

    All keywords are matched as lower-case substrings of the entry's group
    or name; ``live_url_markers`` are matched against the url.
    """
    model_config = ConfigDict(extra="allow")

    movie_keywords: list[str] = Field(default_factory=lambda: [
        "filme", "filmes", "movie", "movies", "cinema", "lançamento", "dublado", "legendado",
    ])
    series_keywords: list[str] = Field(default_factory=lambda: [
        "série", "series", "temporada", "episódio", "episode", "season", "s0", "e0",
    ])
    channel_keywords: list[str] = Field(default_factory=lambda: [
        "tv", "canal", "channel", "ao vivo", "live", "hd", "fhd", "sd", "24h", "aberto",
    ])
    live_url_markers: list[str] = Field(default_factory=lambda: [".m3u8", "/live/"])


class Options(BaseModel):
    """Application options."""
    model_config = ConfigDict(extra="allow")

    playlist_url: str = DEFAULT_PLAYLIST_URL
    proxy_prefixes: list[str] = Field(default_factory=lambda: list(DEFAULT_PROXY_PREFIXES))
    cache_key: str = "playlist"
    cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS
    batch_size: int = 5000
    fallback_category: str = "Outros"
    parse_progress_max: int = 80
    load_on_startup: bool = True


class AppConfig(BaseModel):
    """Root application configuration."""
    model_config = ConfigDict(extra="allow")

    options: Options = Field(default_factory=Options)
    classifier: ClassifierRules = Field(default_factory=ClassifierRules)
