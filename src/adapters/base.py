"""
ContentSnapshot / FetchFailure dataclasses and the SourceAdapter ABC.
Every adapter returns either a ContentSnapshot or a FetchFailure from
fetch_latest() — failures are values, never exceptions for the caller.
"""
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, AsyncIterator

import httpx


class SourceType(str, Enum):
    LIVE_STREAM  = "live_stream"     # HTML-scraped live-stream platform (Rumble)
    API_VIDEO    = "api_video"       # REST API video platform (YouTube)
    PODCAST_FEED = "podcast_feed"    # podcast RSS/XML feed


@dataclass(frozen=True)
class CreatorIdentity:
    creator_id: str
    handle:     str                  # platform handle, channel id, or feed URL
    hints:      dict[str, Any] = field(default_factory=dict)   # path_type, title_filter…


@dataclass
class ContentSnapshot:
    creator_id:        str
    source_type:       SourceType
    title:             str = ""
    thumbnail_url:     str = ""
    canonical_url:     str = ""
    view_count:        int = 0
    is_live:           bool = False
    live_viewer_count: int | None = None
    last_checked_at:   datetime | None = None     # None = never fetched
    extras:            dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        return self.creator_id, self.source_type.value


@dataclass(frozen=True)
class FetchFailure:
    source_type: SourceType
    reason:      str


FetchResult = ContentSnapshot | FetchFailure

HEADERS_HTML = {
    "Accept":          "text/html,application/xhtml+xml",
    "Accept-Language": "en-US,en;q=0.9",
}


class SourceAdapter(ABC):
    """One adapter per source type. Stateless between calls."""

    source_type: SourceType

    def __init__(self, client: httpx.AsyncClient | None = None):
        # Injected client is reused (tests, long-lived workers); otherwise one per fetch.
        self._client = client

    @abstractmethod
    async def fetch_latest(self, identity: CreatorIdentity) -> FetchResult:
        """Fetch the newest content for one creator."""
        ...

    def fail(self, identity: CreatorIdentity, reason: str) -> FetchFailure:
        return FetchFailure(self.source_type, f"{identity.handle}: {reason}")

    @asynccontextmanager
    async def session(self, **client_kwargs) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(follow_redirects=True, **client_kwargs) as client:
            yield client
