"""Playlist parser — cooperative line scanner for extended M3U documents.

The scanner has two states.  ``AWAITING_DIRECTIVE`` is the initial one;
an ``#EXTINF:`` line moves it to ``AWAITING_URL`` with a pending record.
The next non-empty, non-comment line is the locator for that record: the
entry is finalized (id, url, type) and emitted, and the scanner goes back
to ``AWAITING_DIRECTIVE``.  Everything else is ignored, so a directive
that never gets a locator simply produces nothing.

Large documents are processed in fixed-size batches with an explicit
``await asyncio.sleep(0)`` between them so the event loop keeps serving
other tasks while millions of lines are scanned.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator, Callable, Optional

from app.models.catalog import MediaEntry
from app.services.classifier import Classifier

if TYPE_CHECKING:
    from app.models.catalog import Catalog
    from app.services.catalog_builder import CatalogBuilder

logger = logging.getLogger(__name__)

EXTINF_PREFIX = "#EXTINF:"
COMMENT_PREFIX = "#"
DEFAULT_BATCH_SIZE = 5000
DEFAULT_PROGRESS_MAX = 80

_DURATION_RE = re.compile(r"^#EXTINF:\s*([+-]?\d+)")
_GROUP_RE = re.compile(r'group-title="([^"]*)"')
_LOGO_RE = re.compile(r'tvg-logo="([^"]*)"')
_TVG_ID_RE = re.compile(r'tvg-id="([^"]*)"')
_TVG_NAME_RE = re.compile(r'tvg-name="([^"]*)"')


@dataclass
class ExtInf:
    """Fields extracted from one directive line."""

    name: str = ""
    group: str = ""
    logo: str = ""
    tvg_id: str = ""
    tvg_name: str = ""
    duration: int = -1


def _attr(pattern: re.Pattern, line: str) -> str:
    m = pattern.search(line)
    return m.group(1) if m else ""


def parse_extinf(line: str) -> ExtInf:
    """Extract duration, attributes and display name from an ``#EXTINF:`` line."""
    info = ExtInf(
        group=_attr(_GROUP_RE, line),
        logo=_attr(_LOGO_RE, line),
        tvg_id=_attr(_TVG_ID_RE, line),
        tvg_name=_attr(_TVG_NAME_RE, line),
    )

    m = _DURATION_RE.match(line)
    if m:
        info.duration = int(m.group(1))

    # Display name is whatever follows the final comma
    if "," in line:
        info.name = line.rsplit(",", 1)[1].strip()
    if not info.name:
        info.name = info.tvg_name
    return info


class ParserState(str, enum.Enum):
    AWAITING_DIRECTIVE = "awaiting_directive"
    AWAITING_URL = "awaiting_url"


class PlaylistParser:
    """Stateful, cooperative scanner turning playlist text into MediaEntry objects.

    *on_progress* receives an integer percentage in ``0..progress_max``
    after every batch and once more when the input is exhausted.  Values
    never decrease.
    """

    def __init__(
        self,
        classifier: Optional[Classifier] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        progress_max: int = DEFAULT_PROGRESS_MAX,
        on_progress: Optional[Callable[[int], None]] = None,
        start_id: int = 0,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.classifier = classifier or Classifier()
        self.batch_size = batch_size
        self.progress_max = progress_max
        self.on_progress = on_progress
        self.state = ParserState.AWAITING_DIRECTIVE
        self._pending: Optional[ExtInf] = None
        self._next_id = start_id
        self._last_percent = -1

    @property
    def emitted(self) -> int:
        return self._next_id

    # ------------------------------------------------------------------
    # Line-level state machine
    # ------------------------------------------------------------------

    def feed_line(self, raw_line: str) -> Optional[MediaEntry]:
        """Advance the scanner by one line; return an entry when one is finalized."""
        line = raw_line.strip()

        if line.startswith(EXTINF_PREFIX):
            self._pending = parse_extinf(line)
            self.state = ParserState.AWAITING_URL
            return None

        if self.state is ParserState.AWAITING_URL and line and not line.startswith(COMMENT_PREFIX):
            return self._finalize(line)

        return None

    def _finalize(self, url: str) -> MediaEntry:
        info = self._pending
        entry = MediaEntry(
            id=self._next_id,
            name=info.name,
            group=info.group,
            logo=info.logo,
            tvg_id=info.tvg_id,
            tvg_name=info.tvg_name,
            duration=info.duration,
            url=url,
            type=self.classifier.classify(info.group, info.name, url),
        )
        self._next_id += 1
        self._pending = None
        self.state = ParserState.AWAITING_DIRECTIVE
        return entry

    def reset_pending(self) -> None:
        """Drop an unfinished directive (end of input)."""
        self._pending = None
        self.state = ParserState.AWAITING_DIRECTIVE

    # ------------------------------------------------------------------
    # Cooperative iteration
    # ------------------------------------------------------------------

    def _report(self, processed: int, total: int) -> None:
        if not total:
            percent = self.progress_max
        else:
            percent = round(processed / total * self.progress_max)
        if percent <= self._last_percent:
            return
        self._last_percent = percent
        if self.on_progress:
            self.on_progress(percent)

    async def iter_entries(self, text: str) -> AsyncIterator[MediaEntry]:
        """Yield entries in input order, suspending after every batch of lines."""
        lines = text.split("\n")
        total = len(lines)

        for processed, raw_line in enumerate(lines, start=1):
            entry = self.feed_line(raw_line)
            if entry is not None:
                yield entry
            if processed % self.batch_size == 0:
                self._report(processed, total)
                await asyncio.sleep(0)

        self.reset_pending()
        self._report(total, total)

    async def parse_into(self, text: str, builder: "CatalogBuilder") -> "Catalog":
        """Stream every entry of *text* into *builder* and return its catalog."""
        start_time = time.time()
        async for entry in self.iter_entries(text):
            builder.add(entry)
        catalog = builder.catalog
        elapsed = time.time() - start_time
        logger.info(
            f"Parsed {len(catalog.entries)} items in {len(catalog.categories)} categories "
            f"in {elapsed:.1f}s"
        )
        return catalog
