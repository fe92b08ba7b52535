"""Tests for the ingestion pipeline and the library service."""

import asyncio
import os

import httpx
import pytest

from app.database import DB_NAME, init_db
from app.models.catalog import ContentType
from app.services.cache_service import CacheService
from app.services.config_service import ConfigService
from app.services.fetch_service import FetchService, NetworkError
from app.services.http_client import HttpClientService
from app.services.ingest_service import IngestionProgress, IngestionService
from app.services.library_service import LibraryService

PRIMARY = "http://origin.example/list.m3u8"
PLAYLIST = (
    "#EXTM3U\n"
    '#EXTINF:-1 group-title="Filmes" tvg-logo="http://x/y.png",Matrix\n'
    "http://cdn/matrix.m3u8\n"
    '#EXTINF:-1 tvg-id="globo" group-title="Canais Abertos",Globo\n'
    "http://cdn/live/globo.ts\n"
    "#EXTINF:-1,Sem grupo\n"
    "http://cdn/other.mp3\n"
)


class FakeClock:
    def __init__(self, now=1_700_000_000_000):
        self.now = now

    def __call__(self):
        return self.now


class Upstream:
    """MockTransport handler serving the playlist from the primary url only."""

    def __init__(self, body=PLAYLIST, primary_status=200):
        self.body = body.encode("utf-8")
        self.primary_status = primary_status
        self.requests = []

    def __call__(self, request):
        url = str(request.url)
        self.requests.append(url)
        if url == PRIMARY and self.primary_status == 200:
            return httpx.Response(200, content=self.body)
        if url.startswith("http://proxy/") and self.primary_status != 200:
            return httpx.Response(200, content=self.body)
        return httpx.Response(self.primary_status)


def _service(tmp_path, upstream, clock=None, proxies=None, db=True):
    cfg = ConfigService(str(tmp_path))
    cfg.update_options({"playlist_url": PRIMARY, "proxy_prefixes": proxies or [], "batch_size": 2})
    if db:
        init_db(os.path.join(str(tmp_path), DB_NAME))
    http = HttpClientService(transport=httpx.MockTransport(upstream))
    cache = CacheService(str(tmp_path), ttl_ms=cfg.cache_ttl_ms, clock=clock or FakeClock())
    return IngestionService(cfg, FetchService(http), cache), http


def _load(service, http, **kwargs):
    async def run():
        try:
            return await service.load(**kwargs)
        finally:
            await http.close()
    return asyncio.run(run())


class TestIngestionService:

    def test_cold_load_builds_and_persists(self, tmp_path):
        upstream = Upstream()
        service, http = _service(tmp_path, upstream)
        result = _load(service, http)

        assert result.from_cache is False
        assert result.persisted is True
        catalog = result.catalog
        assert [e.name for e in catalog.entries] == ["Matrix", "Globo", "Sem grupo"]
        assert [e.type for e in catalog.entries] == [
            ContentType.MOVIES, ContentType.CHANNELS, ContentType.OTHER,
        ]
        assert set(catalog.categories) == {"Filmes", "Canais Abertos", "Outros"}
        assert upstream.requests == [PRIMARY]

    def test_second_load_served_from_cache(self, tmp_path):
        upstream = Upstream()
        service, http = _service(tmp_path, upstream)
        first = _load(service, http)
        second = _load(service, http)

        assert second.from_cache is True
        assert second.catalog == first.catalog
        assert upstream.requests == [PRIMARY]

    def test_force_bypasses_cache(self, tmp_path):
        upstream = Upstream()
        service, http = _service(tmp_path, upstream)
        _load(service, http)
        result = _load(service, http, force=True)
        assert result.from_cache is False
        assert upstream.requests == [PRIMARY, PRIMARY]

    def test_expired_cache_triggers_download(self, tmp_path):
        clock = FakeClock()
        upstream = Upstream()
        service, http = _service(tmp_path, upstream, clock=clock)
        _load(service, http)

        clock.now += service.config_service.cache_ttl_ms + 1
        result = _load(service, http)
        assert result.from_cache is False
        assert len(upstream.requests) == 2

    def test_uses_proxy_when_primary_fails(self, tmp_path):
        upstream = Upstream(primary_status=503)
        service, http = _service(tmp_path, upstream, proxies=["http://proxy/?"])
        result = _load(service, http)
        assert len(result.catalog.entries) == 3
        assert upstream.requests[0] == PRIMARY
        assert upstream.requests[1].startswith("http://proxy/?http%3A%2F%2Forigin.example")

    def test_network_error_propagates(self, tmp_path):
        service, http = _service(tmp_path, Upstream(primary_status=500))
        with pytest.raises(NetworkError):
            _load(service, http)

    def test_cache_failure_is_not_fatal(self, tmp_path):
        service, http = _service(tmp_path, Upstream(), db=False)
        result = _load(service, http)
        assert result.persisted is False
        assert len(result.catalog.entries) == 3

    def test_progress_phases(self, tmp_path):
        service, http = _service(tmp_path, Upstream())
        events = []
        _load(service, http, on_progress=events.append)

        phases = [e.phase for e in events]
        assert phases[0] == "cache"
        assert "download" in phases
        assert "parse" in phases
        assert phases[-2:] == ["save", "done"]
        parse_values = [e.percent for e in events if e.phase == "parse"]
        assert parse_values == sorted(parse_values)
        assert max(parse_values) <= 80
        assert events[-1].percent == 100
        assert events[-1].items == 3


class TestLibraryService:

    def test_load_keeps_latest_result(self, tmp_path):
        service, http = _service(tmp_path, Upstream())
        library = LibraryService(service)

        async def run():
            try:
                return await library.load()
            finally:
                await http.close()

        result = asyncio.run(run())
        assert library.result is result
        assert len(library.catalog.entries) == 3
        assert library.progress.phase == "done"
        assert library.last_error is None

    def test_failed_load_records_error(self, tmp_path):
        service, http = _service(tmp_path, Upstream(primary_status=500))
        library = LibraryService(service)

        async def run():
            try:
                return await library.load()
            finally:
                await http.close()

        assert asyncio.run(run()) is None
        assert library.catalog is None
        assert library.progress.phase == "error"
        assert "Could not load playlist" in library.last_error

    def test_unexpected_error_records_error(self):
        class BrokenIngestion:
            async def load(self, force=False, on_progress=None):
                on_progress(IngestionProgress(phase="parse", percent=40))
                raise RuntimeError("boom")

        library = LibraryService(BrokenIngestion())
        assert asyncio.run(library.load()) is None
        assert library.catalog is None
        assert library.progress.phase == "error"
        assert "boom" in library.last_error
        assert not library.loading
