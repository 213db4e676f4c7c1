"""Pytest fixtures for livecards tests."""

import asyncio
import copy
from datetime import datetime, timedelta, timezone

import pytest

from src.adapters.base import (
    ContentSnapshot,
    CreatorIdentity,
    FetchFailure,
    SourceAdapter,
    SourceType,
)
from src.cache.store import SnapshotStore

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock the tests can move forward."""

    def __init__(self, start: datetime = NOW):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class StubAdapter(SourceAdapter):
    """Adapter returning canned results (the last one repeats). Exceptions are raised."""

    def __init__(self, source_type: SourceType, *results, delay: float = 0.0):
        super().__init__()
        self.source_type = source_type
        self.results = list(results)
        self.delay = delay
        self.calls: list[CreatorIdentity] = []
        self.finished = 0

    async def fetch_latest(self, identity):
        self.calls.append(identity)
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        self.finished += 1
        if isinstance(result, Exception):
            raise result
        return copy.deepcopy(result)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "livecards.db"


@pytest.fixture
def store(db_path) -> SnapshotStore:
    return SnapshotStore(db_path)


@pytest.fixture
def identity() -> CreatorIdentity:
    return CreatorIdentity("creator-1", "@examplechannel")


@pytest.fixture
def rumble_snapshot() -> ContentSnapshot:
    """A complete live-stream snapshot as an adapter would return it."""
    return ContentSnapshot(
        creator_id        = "creator-1",
        source_type       = SourceType.LIVE_STREAM,
        title             = "Friday Night Stream With Guests",
        thumbnail_url     = "https://1a-1791.com/video/s8/1/a-small-Friday.jpg",
        canonical_url     = "https://rumble.com/v5abc12-friday-night-stream.html",
        view_count        = 5120,
        is_live           = True,
        live_viewer_count = 1234,
        extras            = {"channel_url": "https://rumble.com/c/examplechannel"},
    )


@pytest.fixture
def failure() -> FetchFailure:
    return FetchFailure(SourceType.LIVE_STREAM, "@examplechannel: all attempts exhausted")
