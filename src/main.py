"""
Entry point — initialises APScheduler and runs the cache sweep.

Page views refresh stale cards on their own (see cache/coordinator.py); the
sweep keeps cards warm for creators whose pages nobody has opened lately.
It runs every SWEEP_INTERVAL_MINUTES and only touches stale snapshots, so
podcast feeds (12 h TTL) are hit far less often than video platforms.

Usage:
    python src/main.py
    # or via systemd
"""
import asyncio
import signal
import sys
from datetime import datetime, timezone
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config.settings import DB_PATH, LOG_LEVEL, LOGS_DIR, SWEEP_INTERVAL_MINUTES
from src.cache.coordinator import RefreshCoordinator
from src.cache.store import SnapshotStore
from src.cache.sweep import run_sweep


def setup_logging() -> None:
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    logger.remove()
    logger.add(sys.stderr, level=LOG_LEVEL)
    logger.add(
        LOGS_DIR / "livecards_{time:YYYY-MM-DD}.log",
        rotation="00:00",
        retention="14 days",
        level=LOG_LEVEL,
        encoding="utf-8",
    )


# ── Job runners ────────────────────────────────────────────────────────────────

async def _run_sweep(coordinator: RefreshCoordinator) -> None:
    try:
        await run_sweep(coordinator)
    except Exception as exc:
        logger.error(f"[Scheduler] sweep failed: {exc}")


# ── Scheduler setup ────────────────────────────────────────────────────────────

def build_scheduler(coordinator: RefreshCoordinator) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        _run_sweep,
        "interval",
        minutes       = SWEEP_INTERVAL_MINUTES,
        args          = [coordinator],
        id            = "cache_sweep",
        name          = "Refresh stale creator cards",
        max_instances = 1,
        coalesce      = True,
        next_run_time = datetime.now(timezone.utc),
    )
    logger.debug(f"[Scheduler] sweep every {SWEEP_INTERVAL_MINUTES} min")
    return scheduler


# ── Main ───────────────────────────────────────────────────────────────────────

async def main() -> None:
    setup_logging()
    logger.info(f"LiveCards sweep starting up (db={DB_PATH})")

    store       = SnapshotStore(DB_PATH)
    coordinator = RefreshCoordinator(store)
    scheduler   = build_scheduler(coordinator)
    scheduler.start()

    logger.info(f"Scheduler running — {len(scheduler.get_jobs())} jobs active")

    # Graceful shutdown on SIGINT / SIGTERM
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(_shutdown(scheduler)))

    # Keep running until cancelled
    try:
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        pass


async def _shutdown(scheduler: AsyncIOScheduler) -> None:
    logger.info("Shutting down scheduler…")
    scheduler.shutdown(wait=False)
    tasks = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
    for t in tasks:
        t.cancel()


if __name__ == "__main__":
    asyncio.run(main())
