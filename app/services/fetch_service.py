"""Fetch service — downloads the playlist text with progress and fallback sources."""
from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable, Optional
from urllib.parse import quote

import httpx

if TYPE_CHECKING:
    from app.services.http_client import HttpClientService

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, Optional[int]], None]


class NetworkError(Exception):
    """Raised when the primary locator and every alternate failed."""

    def __init__(self, message: str, attempts: list[str] | None = None):
        super().__init__(message)
        self.attempts = attempts or []


def build_alternates(url: str, proxy_prefixes: list[str]) -> list[str]:
    """Turn proxy prefixes into alternate locators for *url*, keeping their order."""
    return [f"{prefix}{quote(url, safe='')}" for prefix in proxy_prefixes if prefix]


def _declared_length(response: httpx.Response) -> int:
    try:
        return int(response.headers.get("content-length", 0))
    except (TypeError, ValueError):
        return 0


class FetchService:
    """Retrieves playlist documents, trying the primary locator then each alternate once."""

    def __init__(self, http_client: "HttpClientService"):
        self.http_client = http_client

    async def fetch(
        self,
        primary: str,
        alternates: list[str] | None = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        locators = [primary] + list(alternates or [])
        for index, locator in enumerate(locators):
            if index > 0:
                logger.info(f"Trying alternate source {index}/{len(locators) - 1}")
            text = await self._fetch_one(locator, on_progress)
            if text:
                return text
        raise NetworkError(
            f"Could not load playlist from {len(locators)} source(s)", attempts=locators
        )

    async def _fetch_one(self, url: str, on_progress: Optional[ProgressCallback]) -> Optional[str]:
        """Download one locator; return None on any failure or an empty body."""
        client = await self.http_client.get_client()
        start_time = time.time()
        try:
            async with client.stream("GET", url) as response:
                if not response.is_success:
                    logger.warning(f"Fetch {url} failed with status {response.status_code}")
                    return None

                total = _declared_length(response)
                if not total:
                    # Unknown size: one read, indeterminate progress
                    if on_progress:
                        on_progress(0, None)
                    body = await response.aread()
                else:
                    body = await self._read_chunks(response, total, on_progress)
        except httpx.TimeoutException:
            logger.error(f"Timeout fetching {url}")
            return None
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Error fetching {url}: {e}")
            return None

        elapsed = time.time() - start_time
        if not body:
            logger.warning(f"Fetch {url} returned an empty body")
            return None
        logger.info(f"Downloaded {len(body) / 1024 / 1024:.1f} MB in {elapsed:.1f}s")
        return body.decode("utf-8", errors="replace")

    @staticmethod
    async def _read_chunks(
        response: httpx.Response, total: int, on_progress: Optional[ProgressCallback]
    ) -> bytes:
        chunks: list[bytes] = []
        loaded = 0
        async for chunk in response.aiter_bytes():
            chunks.append(chunk)
            loaded += len(chunk)
            if on_progress:
                on_progress(loaded, total)

        if loaded != total and "content-encoding" not in response.headers:
            # Integrity is not enforced, only reported
            logger.warning(f"Received {loaded} bytes, server declared {total}")
        return b"".join(chunks)
