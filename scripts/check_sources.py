"""
Adapter smoke test — hits the real upstreams for one handle per platform
and prints what a card would show.  Nothing is written to the database.

Usage:
    python scripts/check_sources.py rumble @somechannel
    python scripts/check_sources.py youtube @somechannel      # needs YOUTUBE_API_KEY
    python scripts/check_sources.py podcast https://feeds.example.com/show.xml
"""
import asyncio
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger

from src.adapters.base import CreatorIdentity, FetchFailure
from src.cache.coordinator import default_adapters
from scripts.setup_db import PLATFORM_KEYS


async def main(platform: str, handle: str) -> int:
    source_type = PLATFORM_KEYS.get(platform)
    if source_type is None:
        logger.error(f"unknown platform {platform!r} — use one of {', '.join(PLATFORM_KEYS)}")
        return 2

    adapter = default_adapters()[source_type]
    t0 = time.time()
    result = await adapter.fetch_latest(CreatorIdentity("smoke-test", handle))
    elapsed = time.time() - t0

    logger.info("=" * 60)
    if isinstance(result, FetchFailure):
        logger.warning(f"FAILED in {elapsed:.2f}s — {result.reason}")
        return 1

    logger.info(f"{type(adapter).__name__} OK in {elapsed:.2f}s")
    logger.info(f"  title      : {result.title}")
    logger.info(f"  thumbnail  : {result.thumbnail_url or '(none)'}")
    logger.info(f"  url        : {result.canonical_url}")
    logger.info(f"  views      : {result.view_count}")
    logger.info(f"  live       : {result.is_live} ({result.live_viewer_count} watching)")
    logger.info(f"  extras     : {result.extras}")
    logger.info("=" * 60)
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)
    sys.exit(asyncio.run(main(sys.argv[1], sys.argv[2])))
