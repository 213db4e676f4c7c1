"""
Rumble channel scraper — live status and latest video from the public
channel page.

Rumble has no public API and often blocks server-side requests, so each
channel page is tried through an ordered fallback chain: for every candidate
channel URL (/c/<handle> and /user/<handle> when the path type is unknown),
a direct request first, then the configured mirror transports.  The first
body that carries a thumbnail/title marker is accepted.

Live status is a page-wide regex check.  Video fields are read per tile
(the widest block around one video link that holds no other video), so the
title, thumbnail and views on a card always belong to the same video.  A
missing secondary field just keeps its default.
"""
import html
import re
from dataclasses import dataclass

from bs4 import BeautifulSoup
from loguru import logger

from config.settings import SCRAPE_PROXIES, USER_AGENT
from src.adapters.base import (
    HEADERS_HTML,
    ContentSnapshot,
    CreatorIdentity,
    FetchResult,
    SourceAdapter,
    SourceType,
)
from src.adapters.fallback import DIRECT, build_chain, proxy_transports, run_chain

RUMBLE_BASE   = "https://rumble.com"
DEFAULT_TITLE = "Latest Video"
_TIMEOUT      = 8

# Any of these means we got a real channel page, not a block/error page
_CONTENT_MARKERS = ("thumbnail__image", "thumbnail__title", "1a-1791.com", "rmbl.ws")

# ── Patterns (checked against the page with <style>/<script> stripped) ────────
_STRIP_RE      = re.compile(r"<(style|script)[^>]*>[\s\S]*?</\1>", re.I)
_LIVE_RE       = re.compile(
    r'class="[^"]*(?:videostream__status--live|thumbnail__thumb--live)[^"]*"', re.I
)
_WATCHING_RE   = re.compile(r"(\d[\d,]*)\s*(?:watching|viewers)", re.I)
_THUMB_RE      = re.compile(
    r'src="((?:https?:)?//1a-1791\.com/video/[^"]*-small-[^"]*\.(?:jpg|jpeg|webp|png))"',
    re.I,
)
_VIDEO_HREF_RE = re.compile(r"^(?:https?://rumble\.com)?(/v[a-z0-9]+-[^?#]+\.html)", re.I)
_THUMB_HOST_RE = re.compile(r"(?:1a-1791\.com|rmbl\.ws)/", re.I)
_TILE_TITLE_RE = re.compile(r"^thumbnail__title")
_GRID_TITLE_RE = re.compile(r'class="thumbnail__title[^"]*"[^>]*title="([^"]{10,200})"', re.I)
_PERMALINK_RE  = re.compile(r'href="(/v[a-z0-9]+-[^"?]+\.html)', re.I)
_VIEWS_ATTR_RE = re.compile(r'data-views="(\d+)"', re.I)
_VIEWS_TEXT_RE = re.compile(r"(\d[\d,]*(?:\.\d+)?[KkMm]?)\s*views", re.I)


def candidate_urls(handle: str, path_type: str | None = None) -> list[str]:
    """Channel URLs to try, most likely first."""
    handle = handle.strip()
    if handle.startswith("http"):
        return [handle.rstrip("/")]
    clean = handle.lstrip("@")
    if path_type == "user":
        return [f"{RUMBLE_BASE}/user/{clean}"]
    if path_type == "c":
        return [f"{RUMBLE_BASE}/c/{clean}"]
    return [f"{RUMBLE_BASE}/c/{clean}", f"{RUMBLE_BASE}/user/{clean}"]


class RumbleAdapter(SourceAdapter):
    """
    identity.hints keys:
        path_type    (str)  "c" | "user" — when set, only that URL form is tried
        title_filter (str)  prefer the newest video whose title contains this
    """

    source_type = SourceType.LIVE_STREAM

    def __init__(self, client=None, proxies: list[str] | None = None, timeout: float = _TIMEOUT):
        super().__init__(client)
        self.transports = [DIRECT] + proxy_transports(
            SCRAPE_PROXIES if proxies is None else proxies
        )
        self.timeout = timeout

    async def fetch_latest(self, identity: CreatorIdentity) -> FetchResult:
        targets  = candidate_urls(identity.handle, identity.hints.get("path_type"))
        attempts = build_chain(targets, self.transports, self.timeout)

        async with self.session() as client:
            hit = await run_chain(
                client,
                attempts,
                accept  = _has_content,
                headers = {**HEADERS_HTML, "User-Agent": USER_AGENT},
                tag     = "Scraper",
            )

        if hit is None:
            return self.fail(identity, "no candidate URL / transport returned a channel page")

        snapshot = parse_channel_page(
            hit.body,
            channel_url  = hit.attempt.target,
            creator_id   = identity.creator_id,
            title_filter = identity.hints.get("title_filter"),
        )
        snapshot.extras["transport"] = hit.attempt.transport.name
        logger.info(
            f"[Scraper] {identity.handle}: live={snapshot.is_live} "
            f"title={snapshot.title[:50]!r} via {hit.attempt.transport.name}"
        )
        return snapshot


# ── Parse ─────────────────────────────────────────────────────────────────────

@dataclass
class VideoEntry:
    """One video tile on the channel page. Every field comes from the same tile."""
    url:       str
    title:     str = ""
    thumbnail: str = ""
    views:     int = 0


def _has_content(body: str) -> bool:
    return any(marker in body for marker in _CONTENT_MARKERS)


def parse_channel_page(
    page: str,
    channel_url: str,
    creator_id: str,
    title_filter: str | None = None,
) -> ContentSnapshot:
    clean = _STRIP_RE.sub("", page)

    is_live      = bool(_LIVE_RE.search(clean))
    live_viewers = None
    if is_live:
        m = _WATCHING_RE.search(clean)
        live_viewers = _parse_count(m.group(1)) if m else 0

    entry = _pick(video_entries(clean), title_filter)
    if entry is not None:
        title, video_url = entry.title or DEFAULT_TITLE, entry.url
        thumbnail, views = entry.thumbnail, entry.views
    else:
        # No usable video tile: page-wide patterns are all there is
        title, video_url = _fallback_title(clean), _fallback_permalink(clean, channel_url)
        thumbnail, views = _first_thumbnail(clean), _views(clean)

    return ContentSnapshot(
        creator_id        = creator_id,
        source_type       = SourceType.LIVE_STREAM,
        title             = title,
        thumbnail_url     = thumbnail or _og_image(page),
        canonical_url     = video_url,
        view_count        = views,
        is_live           = is_live,
        live_viewer_count = live_viewers,
        extras            = {"channel_url": channel_url},
    )


def video_entries(clean: str) -> list[VideoEntry]:
    """One entry per distinct video link, in page order (newest first)."""
    soup = BeautifulSoup(clean, "html.parser")
    entries: list[VideoEntry] = []
    seen: set[str] = set()

    for link in soup.find_all("a", href=True):
        path = _video_path(link["href"])
        if path is None or path in seen:
            continue
        seen.add(path)

        tile  = _tile_for(link, path)
        entry = VideoEntry(
            url       = f"{RUMBLE_BASE}{path}",
            title     = _tile_title(tile, path),
            thumbnail = _tile_thumbnail(tile),
            views     = _tile_views(tile),
        )
        if entry.title or entry.thumbnail:
            entries.append(entry)
    return entries


def _pick(entries: list[VideoEntry], title_filter: str | None) -> VideoEntry | None:
    """Newest entry, or the newest whose title contains title_filter."""
    if not entries:
        return None
    if title_filter and title_filter.strip():
        needle = title_filter.strip().lower()
        for entry in entries:
            if needle in entry.title.lower():
                return entry
    return entries[0]


def _video_path(href: str) -> str | None:
    m = _VIDEO_HREF_RE.match(href.strip())
    return m.group(1) if m else None


def _video_paths(tag) -> set[str]:
    paths = set()
    for link in tag.find_all("a", href=True):
        path = _video_path(link["href"])
        if path:
            paths.add(path)
    return paths


def _tile_for(link, path: str):
    """Widest ancestor of link that still contains no other video."""
    tile = link
    for parent in link.parents:
        if parent.name in ("[document]", "html", "body"):
            break
        if _video_paths(parent) != {path}:
            break
        tile = parent
    return tile


def _tile_title(tile, path: str) -> str:
    links = ([tile] if tile.name == "a" else []) + tile.find_all("a", href=True)
    for link in links:
        if link.get("title") and _video_path(link.get("href", "")) == path:
            return link["title"].strip()
    heading = tile.find(class_=_TILE_TITLE_RE)
    if heading is not None:
        return (heading.get("title") or heading.get_text(" ", strip=True)).strip()
    return ""


def _tile_thumbnail(tile) -> str:
    for img in tile.find_all("img"):
        src = img.get("src") or img.get("data-src") or ""
        if src and ("thumbnail__image" in (img.get("class") or []) or _THUMB_HOST_RE.search(src)):
            return _absolute(src)
    return ""


def _tile_views(tile) -> int:
    tagged = tile if tile.has_attr("data-views") else tile.find(attrs={"data-views": True})
    if tagged is not None:
        return _parse_count(tagged["data-views"])
    m = _VIEWS_TEXT_RE.search(tile.get_text(" "))
    return _parse_count(m.group(1)) if m else 0


def _first_thumbnail(clean: str) -> str:
    m = _THUMB_RE.search(clean)
    return _absolute(m.group(1)) if m else ""


def _fallback_title(clean: str) -> str:
    m = _GRID_TITLE_RE.search(clean)
    return html.unescape(m.group(1)).strip() if m else DEFAULT_TITLE


def _fallback_permalink(clean: str, channel_url: str) -> str:
    m = _PERMALINK_RE.search(clean)
    return f"{RUMBLE_BASE}{m.group(1)}" if m else channel_url


def _og_image(page: str) -> str:
    """Channel-specific og:image — last resort when no video thumbnail matched."""
    soup = BeautifulSoup(page, "html.parser")
    meta = soup.find("meta", attrs={"property": "og:image"})
    if meta and meta.get("content"):
        return _absolute(meta["content"])
    return ""


def _views(clean: str) -> int:
    m = _VIEWS_ATTR_RE.search(clean) or _VIEWS_TEXT_RE.search(clean)
    return _parse_count(m.group(1)) if m else 0


def _parse_count(text: str) -> int:
    """'1,234' → 1234, '12.5K' → 12500, '1.2M' → 1200000."""
    text = text.replace(",", "").strip().lower()
    multiplier = 1
    if text.endswith("k"):
        multiplier, text = 1_000, text[:-1]
    elif text.endswith("m"):
        multiplier, text = 1_000_000, text[:-1]
    try:
        return round(float(text) * multiplier)
    except ValueError:
        return 0


def _absolute(url: str) -> str:
    return f"https:{url}" if url.startswith("//") else url
