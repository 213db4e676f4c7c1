"""
Scheduled sweep — refreshes every registered creator whose card is stale,
so popular and unpopular bio pages alike stay warm between visits.

Uses RefreshCoordinator.refresh(), so the write rule is the same as for
page-view refreshes: upsert on success, leave the cache alone on failure.
"""
import asyncio

from loguru import logger

from config.settings import SWEEP_PAUSE_S
from src.adapters.base import SourceType
from src.cache.coordinator import RefreshCoordinator
from src.cache.freshness import is_stale
from src.database.db import get_creator_sources, get_db


async def run_sweep(
    coordinator: RefreshCoordinator,
    source_type: SourceType | None = None,
    pause: float = SWEEP_PAUSE_S,
) -> dict[str, int]:
    """One pass over the creator registry. Returns checked/updated/live counts."""
    store = coordinator.store
    with get_db(store.db_path) as conn:
        sources = get_creator_sources(conn, source_type)

    stats = {"registered": len(sources), "checked": 0, "updated": 0, "live": 0}
    for type_, identity in sources:
        stored = store.get(identity.creator_id, type_)
        if not is_stale(stored, coordinator.now()):
            continue

        stats["checked"] += 1
        if await coordinator.refresh(type_, identity):
            stats["updated"] += 1
            fresh = store.get(identity.creator_id, type_)
            if fresh and fresh.is_live:
                stats["live"] += 1

        # Small gap between creators to be nice to upstreams and mirrors
        if pause:
            await asyncio.sleep(pause)

    logger.info(
        f"[Sweep] {stats['registered']} registered, {stats['checked']} stale checked, "
        f"{stats['updated']} updated, {stats['live']} currently live"
    )
    return stats
