"""
Refresh coordinator — the only write path into the snapshot store.

get_card_data() is called from the render path. It never waits on the
network: it answers from the store (or a placeholder) and, when the stored
snapshot is stale or missing, fires a background refresh through the adapter
for that source type.  A successful refresh upserts; a FetchFailure leaves
the store untouched, and the next page view simply tries again.

There is no single-flight guard: N concurrent views of a stale card may start
N refreshes.  Upserts are full-object and idempotent, so the last successful
write wins.
"""
import asyncio
import sqlite3
import threading
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Callable

from loguru import logger

from src.adapters.base import (
    ContentSnapshot,
    CreatorIdentity,
    FetchFailure,
    SourceAdapter,
    SourceType,
)
from src.adapters.podcast import PodcastAdapter
from src.adapters.scraper import RumbleAdapter
from src.adapters.youtube import YouTubeAdapter
from src.cache.freshness import has_required_field, is_stale, placeholder_for
from src.cache.store import SnapshotStore


def default_adapters() -> dict[SourceType, SourceAdapter]:
    return {
        SourceType.LIVE_STREAM:  RumbleAdapter(),
        SourceType.API_VIDEO:    YouTubeAdapter(),
        SourceType.PODCAST_FEED: PodcastAdapter(),
    }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshCoordinator:
    def __init__(
        self,
        store: SnapshotStore,
        adapters: dict[SourceType, SourceAdapter] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store    = store
        self.adapters = adapters if adapters is not None else default_adapters()
        self._clock   = clock

        self._tasks:   set[asyncio.Task] = set()      # refreshes on the caller's loop
        self._futures: set[Future]       = set()      # refreshes on the background loop
        self._loop:    asyncio.AbstractEventLoop | None = None
        self._thread:  threading.Thread | None = None
        self._lock     = threading.Lock()

    def now(self) -> datetime:
        return self._clock()

    # ── Render path ───────────────────────────────────────────────────────────

    def get_card_data(
        self,
        creator_id: str,
        source_type: SourceType,
        handle: str,
        hints: dict | None = None,
    ) -> ContentSnapshot:
        """Return something renderable right now; refresh in the background if stale."""
        source_type = SourceType(source_type)
        identity    = CreatorIdentity(creator_id, handle, dict(hints or {}))

        try:
            stored = self.store.get(creator_id, source_type)
        except sqlite3.Error as exc:
            logger.error(f"[Coordinator] store read failed for {creator_id}/{source_type.value}: {exc}")
            stored = None

        if not is_stale(stored, self._clock()):
            return stored

        self._dispatch(source_type, identity)
        return stored if stored is not None else placeholder_for(source_type, identity)

    # ── Refresh ───────────────────────────────────────────────────────────────

    async def refresh(self, source_type: SourceType, identity: CreatorIdentity) -> bool:
        """Run one adapter fetch and upsert on success. Never raises."""
        source_type = SourceType(source_type)
        adapter = self.adapters.get(source_type)
        if adapter is None:
            logger.warning(f"[Coordinator] no adapter registered for {source_type.value}")
            return False

        try:
            result = await adapter.fetch_latest(identity)
        except Exception:
            logger.exception(
                f"[Coordinator] {type(adapter).__name__} raised for {identity.handle}"
            )
            return False

        if isinstance(result, FetchFailure):
            logger.info(f"[Coordinator] {source_type.value} refresh failed — {result.reason}")
            return False

        if not has_required_field(result):
            logger.info(
                f"[Coordinator] {source_type.value} {identity.handle}: nothing recognizable, keeping cache"
            )
            return False

        result.last_checked_at = self._clock()
        try:
            return self.store.upsert(result)
        except sqlite3.Error as exc:
            logger.error(f"[Coordinator] store write failed for {result.key}: {exc}")
            return False

    def _dispatch(self, source_type: SourceType, identity: CreatorIdentity) -> None:
        coro = self.refresh(source_type, identity)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            future = asyncio.run_coroutine_threadsafe(coro, self._background_loop())
            self._futures.add(future)
            future.add_done_callback(self._futures.discard)
            return

        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ── Background loop (render paths without a running event loop) ───────────

    def _background_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                self._loop   = asyncio.new_event_loop()
                self._thread = threading.Thread(
                    target=self._loop.run_forever, name="livecards-refresh", daemon=True
                )
                self._thread.start()
                logger.debug("[Coordinator] background refresh loop started")
            return self._loop

    async def wait_idle(self) -> None:
        """Wait for refreshes started on the current loop (tests, graceful shutdown)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self, timeout: float | None = 5.0) -> None:
        """Let background refreshes finish (up to `timeout` each), then stop the loop."""
        for future in list(self._futures):
            try:
                future.result(timeout=timeout)
            except Exception as exc:
                logger.debug(f"[Coordinator] background refresh not finished: {exc!r}")
        with self._lock:
            if self._loop is None:
                return
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=timeout)
            self._loop.close()
            self._loop, self._thread = None, None
