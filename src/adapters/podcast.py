"""
Podcast RSS adapter — latest episode, artwork and listening-platform links.

The feed is fetched through mirror transports first and a direct request
last (many podcast hosts block or rate-limit datacenter IPs), then parsed
with feedparser.  A body that doesn't parse into a channel with items counts
as a miss and the next transport is tried.  Every card field has its own
fallback chain; the first non-empty value wins.

Platform deep-links are merged from several places, later steps winning:
  - links found in the feed (channel-level before item-level)
  - PodcastIndex by feed URL (Apple id, home link)
  - a Spotify show search, only if the feed had no Spotify link
  - search pages for YouTube / Amazon / iHeart, only where nothing else was found
  - ListenNotes direct links

The "view" count is an ESTIMATE derived from the enclosure size — feeds carry
no play counts — and is flagged as such in extras.
"""
import asyncio

import feedparser
import httpx
from loguru import logger

from config.settings import FEED_PROXIES, USER_AGENT
from src.adapters import directories
from src.adapters.base import (
    ContentSnapshot,
    CreatorIdentity,
    FetchResult,
    SourceAdapter,
    SourceType,
)
from src.adapters.directories import DirectoryKeys
from src.adapters.fallback import DIRECT, build_chain, proxy_transports, run_chain

_TIMEOUT           = 10
DEFAULT_TITLE      = "Latest Episode"
_AVG_EPISODE_BYTES = 50_000_000     # ~50 MB per downloaded episode

_HEADERS = {
    "Accept": "application/rss+xml, application/xml, text/xml;q=0.9, */*;q=0.8",
}

# Checked in order; the first domain substring found in a link decides its platform
_PLATFORM_DOMAINS: list[tuple[str, tuple[str, ...]]] = [
    ("spotify", ("open.spotify.com", "spotify.com/show", "spotify.link")),
    ("apple",   ("podcasts.apple.com", "itunes.apple.com")),
    ("youtube", ("youtube.com", "youtu.be")),
    ("amazon",  ("music.amazon.", "amazon.com/podcasts")),
    ("iheart",  ("iheart.com",)),
]


class PodcastAdapter(SourceAdapter):
    """identity.handle is the RSS feed URL."""

    source_type = SourceType.PODCAST_FEED

    def __init__(
        self,
        client=None,
        proxies: list[str] | None = None,
        timeout: float = _TIMEOUT,
        keys: DirectoryKeys | None = None,
    ):
        super().__init__(client)
        self.transports = proxy_transports(
            FEED_PROXIES if proxies is None else proxies
        ) + [DIRECT]
        self.timeout = timeout
        self.keys    = keys if keys is not None else DirectoryKeys.from_settings()

    async def fetch_latest(self, identity: CreatorIdentity) -> FetchResult:
        feed_url = identity.handle.strip()
        attempts = build_chain([feed_url], self.transports, self.timeout)

        async with self.session() as client:
            hit = await run_chain(
                client,
                attempts,
                headers = {**_HEADERS, "User-Agent": USER_AGENT},
                parse   = _parse_body,
                tag     = "Podcast",
            )
            if hit is None:
                return self.fail(identity, "feed unreachable or unparseable on every transport")

            snapshot = parse_feed(hit.parsed, feed_url, identity.creator_id)
            snapshot.extras["transport"] = hit.attempt.transport.name
            await self._enrich_links(client, feed_url, snapshot)

        logger.info(
            f"[Podcast] {feed_url[:60]} → {snapshot.title[:50]!r} "
            f"({len(snapshot.extras['platform_links'])} platform links)"
        )
        return snapshot

    # ── Enrichment ────────────────────────────────────────────────────────────

    async def _enrich_links(
        self, client: httpx.AsyncClient, feed_url: str, snapshot: ContentSnapshot
    ) -> None:
        links = snapshot.extras["platform_links"]
        title = snapshot.extras["podcast_title"]

        record = await directories.podcastindex_feed(client, self.keys, feed_url, self.timeout)
        if record:
            title = record.get("title") or title
            if record.get("itunesId"):
                links["apple"] = f"https://podcasts.apple.com/podcast/id{record['itunesId']}"
            home = record.get("link") or ""
            platform = platform_for(home)
            if platform and platform not in links:
                links[platform] = home

        if not title:
            return

        if "spotify" not in links:
            spotify = await directories.spotify_show_url(client, self.keys, title, self.timeout)
            if spotify:
                links["spotify"] = spotify

        for platform, url in directories.search_links(title).items():
            links.setdefault(platform, url)

        links.update(await directories.listennotes_links(client, self.keys, title, self.timeout))


# ── Parse ─────────────────────────────────────────────────────────────────────

async def _parse_body(body: str):
    """feedparser result, or None when the body has no channel or no items."""
    parsed = await asyncio.to_thread(feedparser.parse, body)
    if not parsed.get("feed") or not parsed.entries:
        logger.debug(
            f"[Podcast] body is not a usable feed (bozo={parsed.get('bozo_exception')!r})"
        )
        return None
    return parsed


def parse_feed(parsed, feed_url: str, creator_id: str) -> ContentSnapshot:
    channel = parsed.feed
    episode = parsed.entries[0]
    enclosure = _first_enclosure(episode)

    title = episode.get("title") or channel.get("title") or DEFAULT_TITLE
    thumbnail = _first(
        (episode.get("image") or {}).get("href"),
        _media_thumbnail(episode),
        _media_image(episode),
        (channel.get("image") or {}).get("href"),
        (channel.get("image") or {}).get("url"),
    )
    episode_url = _first(
        episode.get("link"),
        enclosure.get("href"),
        channel.get("link"),
        feed_url,
    )

    extras = {
        "podcast_title":  channel.get("title", ""),
        "published":      episode.get("published", ""),
        "platform_links": scan_platform_links(parsed),
    }
    estimate = _estimate_listens(enclosure.get("length"))
    if estimate is not None:
        extras["view_count_estimated"] = True

    return ContentSnapshot(
        creator_id    = creator_id,
        source_type   = SourceType.PODCAST_FEED,
        title         = title.strip(),
        thumbnail_url = thumbnail,
        canonical_url = episode_url,
        view_count    = estimate or 0,
        extras        = extras,
    )


def platform_for(url: str) -> str | None:
    lower = url.lower()
    for platform, domains in _PLATFORM_DOMAINS:
        if any(d in lower for d in domains):
            return platform
    return None


def scan_platform_links(parsed) -> dict[str, str]:
    """First link per platform; channel-level links are scanned before items."""
    found: dict[str, str] = {}
    for href in _link_candidates(parsed):
        platform = platform_for(href)
        if platform and platform not in found:
            found[platform] = href
    return found


def _link_candidates(parsed):
    channel = parsed.feed
    yield channel.get("link", "")
    for link in channel.get("links", []):
        yield link.get("href", "")
    for entry in parsed.entries:
        yield entry.get("link", "")
        for link in entry.get("links", []):
            yield link.get("href", "")
        for enc in entry.get("enclosures", []):
            yield enc.get("href", "")


def _first(*values) -> str:
    for value in values:
        if value:
            return value
    return ""


def _first_enclosure(entry) -> dict:
    for enc in entry.get("enclosures", []):
        if enc.get("href"):
            return enc
    return {}


def _media_thumbnail(entry) -> str:
    for t in entry.get("media_thumbnail", []):
        if t.get("url"):
            return t["url"]
    return ""


def _media_image(entry) -> str:
    for m in entry.get("media_content", []):
        if m.get("medium") == "image" or m.get("type", "").startswith("image"):
            return m.get("url", "")
    return ""


def _estimate_listens(length) -> int | None:
    """Rough listen count from enclosure bytes. Never a measured value."""
    try:
        size = int(length)
    except (TypeError, ValueError):
        return None
    if size <= 0:
        return None
    return size // _AVG_EPISODE_BYTES
