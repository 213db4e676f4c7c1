"""Tests for the scheduled sweep and the YAML registry seeding."""

from datetime import timedelta

import pytest

from scripts.setup_db import seed_creators
from src.adapters.base import ContentSnapshot, FetchFailure, SourceType
from src.cache.coordinator import RefreshCoordinator
from src.cache.sweep import run_sweep
from src.database.db import get_creator_sources, get_db, upsert_creator_source
from tests.conftest import NOW, StubAdapter

CREATORS_YAML = """
creators:
  - id: jane
    rumble:
      handle: "@janeshow"
      path_type: c
      title_filter: Full Show
    youtube: "@jane"
    podcast:
      handle: https://feeds.example.com/jane.xml
      enabled: false
  - id: sam
    youtube: "@samtalks"
"""


class TestRunSweep:
    @pytest.mark.asyncio
    async def test_only_stale_entries_are_refreshed(self, store, clock, rumble_snapshot):
        with get_db(store.db_path) as conn:
            upsert_creator_source(conn, "creator-1", SourceType.LIVE_STREAM, "@examplechannel")
            upsert_creator_source(conn, "creator-2", SourceType.API_VIDEO, "@fresh")
            upsert_creator_source(conn, "creator-3", SourceType.PODCAST_FEED, "https://f.example/x.xml")

        fresh_video = ContentSnapshot(
            creator_id      = "creator-2",
            source_type     = SourceType.API_VIDEO,
            title           = "Recent Upload",
            thumbnail_url   = "https://i.ytimg.com/vi/x/hqdefault.jpg",
            canonical_url   = "https://www.youtube.com/watch?v=x",
            last_checked_at = NOW - timedelta(minutes=2),
        )
        store.upsert(fresh_video)

        rumble  = StubAdapter(SourceType.LIVE_STREAM, rumble_snapshot)
        youtube = StubAdapter(SourceType.API_VIDEO, fresh_video)
        feed    = StubAdapter(SourceType.PODCAST_FEED, FetchFailure(SourceType.PODCAST_FEED, "timeout"))
        coordinator = RefreshCoordinator(
            store,
            {a.source_type: a for a in (rumble, youtube, feed)},
            clock=clock,
        )

        stats = await run_sweep(coordinator, pause=0)

        assert stats == {"registered": 3, "checked": 2, "updated": 1, "live": 1}
        assert youtube.calls == []
        assert [i.creator_id for i in rumble.calls] == ["creator-1"]
        assert [i.creator_id for i in feed.calls] == ["creator-3"]
        assert store.get("creator-3", SourceType.PODCAST_FEED) is None

    @pytest.mark.asyncio
    async def test_filter_by_source_type(self, store, clock, rumble_snapshot):
        with get_db(store.db_path) as conn:
            upsert_creator_source(conn, "creator-1", SourceType.LIVE_STREAM, "@examplechannel")
            upsert_creator_source(conn, "creator-2", SourceType.API_VIDEO, "@other")

        rumble  = StubAdapter(SourceType.LIVE_STREAM, rumble_snapshot)
        youtube = StubAdapter(SourceType.API_VIDEO, rumble_snapshot)
        coordinator = RefreshCoordinator(
            store, {a.source_type: a for a in (rumble, youtube)}, clock=clock
        )

        stats = await run_sweep(coordinator, SourceType.LIVE_STREAM, pause=0)

        assert stats["registered"] == 1
        assert youtube.calls == []


class TestSeedCreators:
    def test_seed_from_yaml(self, store, tmp_path):
        path = tmp_path / "creators.yaml"
        path.write_text(CREATORS_YAML, encoding="utf-8")

        written = seed_creators(path, store.db_path)

        with get_db(store.db_path) as conn:
            sources = get_creator_sources(conn)

        assert written == 4
        assert [(t.value, i.creator_id, i.handle) for t, i in sources] == [
            ("api_video", "jane", "@jane"),
            ("live_stream", "jane", "@janeshow"),
            ("api_video", "sam", "@samtalks"),
        ]
        rumble = sources[1][1]
        assert rumble.hints == {"path_type": "c", "title_filter": "Full Show"}

    def test_reseed_is_idempotent(self, store, tmp_path):
        path = tmp_path / "creators.yaml"
        path.write_text(CREATORS_YAML, encoding="utf-8")

        seed_creators(path, store.db_path)
        seed_creators(path, store.db_path)

        with get_db(store.db_path) as conn:
            assert len(get_creator_sources(conn)) == 3
