"""Configuration service — loads, saves and provides access to AppConfig."""
from __future__ import annotations

import json
import logging
import os

from pydantic import ValidationError

from app.models.config import AppConfig, ClassifierRules, Options

logger = logging.getLogger(__name__)


class ConfigService:
    """Manages application configuration with file persistence.

    The config is kept in-memory after first load and re-read on explicit
    ``load()`` or ``reload()`` calls.  Every route that needs the config
    should depend on this service rather than reading the JSON directly.
    """

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.config_file = os.path.join(data_dir, "config.json")
        self._config: dict = self._default_config()

    # ------------------------------------------------------------------
    # Defaults
    # ------------------------------------------------------------------

    @staticmethod
    def _default_config() -> dict:
        return AppConfig().model_dump()

    # ------------------------------------------------------------------
    # Load / Save
    # ------------------------------------------------------------------

    def load(self) -> dict:
        """Load configuration from disk, filling in defaults for missing keys."""
        if os.path.exists(self.config_file):
            try:
                with open(self.config_file) as f:
                    raw = json.load(f)
                self._config = AppConfig.model_validate(raw).model_dump()
                return self._config
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                logger.error(f"Error loading config: {e}")

        self._config = self._default_config()
        return self._config

    def reload(self) -> dict:
        """Alias for ``load()``."""
        return self.load()

    def save(self, config: dict | None = None) -> None:
        """Persist the config to disk."""
        if config is not None:
            self._config = config
        os.makedirs(self.data_dir, exist_ok=True)
        with open(self.config_file, "w") as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)

    @property
    def config(self) -> dict:
        return self._config

    def update_options(self, changes: dict) -> dict:
        """Validate and apply a partial options update, then persist it."""
        merged = {**self._config.get("options", {}), **changes}
        self._config["options"] = Options.model_validate(merged).model_dump()
        self.save()
        return self._config["options"]

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------

    @property
    def options(self) -> Options:
        return Options.model_validate(self._config.get("options", {}))

    def get_playlist_url(self) -> str:
        return self.options.playlist_url

    playlist_url = property(get_playlist_url)

    def get_proxy_prefixes(self) -> list[str]:
        return self.options.proxy_prefixes

    proxy_prefixes = property(get_proxy_prefixes)

    def get_cache_key(self) -> str:
        return self.options.cache_key

    cache_key = property(get_cache_key)

    def get_cache_ttl_ms(self) -> int:
        return self.options.cache_ttl_ms

    cache_ttl_ms = property(get_cache_ttl_ms)

    def get_batch_size(self) -> int:
        return max(self.options.batch_size, 1)

    batch_size = property(get_batch_size)

    def get_classifier_rules(self) -> ClassifierRules:
        return ClassifierRules.model_validate(self._config.get("classifier", {}))

    classifier_rules = property(get_classifier_rules)
