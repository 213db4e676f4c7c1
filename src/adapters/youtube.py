"""
YouTube Data API v3 adapter — live broadcast or latest upload for one channel.
Requires YOUTUBE_API_KEY in .env.

Call sequence per fetch:
  1. resolve the channel id  (forHandle → forUsername → id, first match wins)
  2. search for an in-progress live broadcast; if found, read concurrentViewers
  3. otherwise take the newest upload from a date-ordered search
  4. read viewCount statistics for whichever video was chosen

Steps 2's viewer count and step 4 are enrichment: their failure leaves the
field at 0 instead of failing the fetch.
"""
import re

import httpx
from loguru import logger

from config.settings import YOUTUBE_API_KEY
from src.adapters.base import (
    ContentSnapshot,
    CreatorIdentity,
    FetchResult,
    SourceAdapter,
    SourceType,
)

_BASE_URL   = "https://www.googleapis.com/youtube/v3"
_TIMEOUT    = 15
_CHANNEL_RE = re.compile(r"^UC[\w-]{22}$")

_THUMB_ORDER = ("maxres", "high", "medium", "default")


def channel_page_url(handle: str) -> str:
    clean = _clean_handle(handle)
    if _CHANNEL_RE.match(clean):
        return f"https://www.youtube.com/channel/{clean}"
    return f"https://www.youtube.com/@{clean}"


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


class YouTubeAdapter(SourceAdapter):
    """identity.handle may be an @handle, a legacy username, a UC… id, or a channel URL."""

    source_type = SourceType.API_VIDEO

    def __init__(self, client=None, api_key: str | None = None):
        super().__init__(client)
        self.api_key = api_key if api_key is not None else YOUTUBE_API_KEY

    async def fetch_latest(self, identity: CreatorIdentity) -> FetchResult:
        if not self.api_key:
            logger.warning("[YouTube] YOUTUBE_API_KEY not set — skipping")
            return self.fail(identity, "no API key configured")

        async with self.session(timeout=_TIMEOUT) as client:
            channel = await self._resolve_channel(client, _clean_handle(identity.handle))
            if channel is None:
                logger.warning(f"[YouTube] channel {identity.handle} not found")
                return self.fail(identity, "channel could not be resolved")
            channel_id, channel_title = channel

            item = await self._search(client, channel_id, eventType="live")
            is_live = item is not None
            if not is_live:
                item = await self._search(client, channel_id, order="date")

            video_id = (item or {}).get("id", {}).get("videoId", "")
            if not video_id:
                return self.fail(identity, f"no live or recent video for {channel_id}")

            live_viewers = await self._live_viewers(client, video_id) if is_live else None
            views        = await self._view_count(client, video_id)

        snippet = item.get("snippet", {})
        logger.info(f"[YouTube] {identity.handle} → {video_id} (live={is_live})")
        return ContentSnapshot(
            creator_id        = identity.creator_id,
            source_type       = SourceType.API_VIDEO,
            title             = snippet.get("title", ""),
            thumbnail_url     = _best_thumbnail(snippet.get("thumbnails", {})),
            canonical_url     = watch_url(video_id),
            view_count        = views,
            is_live           = is_live,
            live_viewer_count = live_viewers,
            extras            = {
                "channel_id":    channel_id,
                "channel_title": snippet.get("channelTitle") or channel_title,
                "video_id":      video_id,
            },
        )

    # ── Internal ──────────────────────────────────────────────────────────────

    async def _get(self, client: httpx.AsyncClient, path: str, params: dict) -> dict | None:
        try:
            resp = await client.get(f"{_BASE_URL}{path}", params={**params, "key": self.api_key})
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"[YouTube] {path} {params} failed: {exc}")
            return None

    async def _resolve_channel(
        self, client: httpx.AsyncClient, handle: str
    ) -> tuple[str, str] | None:
        """Return (channel_id, channel_title) from the first lookup that matches."""
        lookups = (
            ("forHandle",   f"@{handle}"),
            ("forUsername", handle),
            ("id",          handle),
        )
        for param, value in lookups:
            data  = await self._get(client, "/channels", {"part": "id,snippet", param: value})
            items = (data or {}).get("items") or []
            if items:
                logger.debug(f"[YouTube] {handle} resolved via {param}")
                return items[0]["id"], items[0].get("snippet", {}).get("title", "")
        return None

    async def _search(self, client: httpx.AsyncClient, channel_id: str, **filters) -> dict | None:
        data = await self._get(
            client,
            "/search",
            {
                "part":       "snippet",
                "channelId":  channel_id,
                "type":       "video",
                "maxResults": 1,
                **filters,
            },
        )
        items = (data or {}).get("items") or []
        return items[0] if items else None

    async def _live_viewers(self, client: httpx.AsyncClient, video_id: str) -> int:
        data  = await self._get(client, "/videos", {"part": "liveStreamingDetails", "id": video_id})
        items = (data or {}).get("items") or []
        if not items:
            return 0
        return _to_int(items[0].get("liveStreamingDetails", {}).get("concurrentViewers"))

    async def _view_count(self, client: httpx.AsyncClient, video_id: str) -> int:
        data  = await self._get(client, "/videos", {"part": "statistics", "id": video_id})
        items = (data or {}).get("items") or []
        if not items:
            return 0
        return _to_int(items[0].get("statistics", {}).get("viewCount"))


# ── Helpers ───────────────────────────────────────────────────────────────────

def _clean_handle(handle: str) -> str:
    """'https://youtube.com/@name/videos' → 'name', '@name' → 'name'."""
    handle = handle.strip().rstrip("/")
    if "youtube.com/" in handle:
        parts = handle.split("youtube.com/", 1)[1].split("/")
        handle = parts[1] if parts[0] in ("channel", "c", "user") and len(parts) > 1 else parts[0]
    return handle.lstrip("@")


def _best_thumbnail(thumbnails: dict) -> str:
    for size in _THUMB_ORDER:
        url = thumbnails.get(size, {}).get("url")
        if url:
            return url
    return ""


def _to_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
