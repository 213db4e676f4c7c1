"""
Podcast directory lookups — where else a show can be listened to.

All lookups are optional enrichment for the podcast adapter: each one is
skipped when its credentials are missing, and any HTTP or payload error is
logged and treated as "nothing found".

  PodcastIndex   feed URL → directory record (title, itunesId, home link)
  Spotify        show search by title (client-credentials token)
  ListenNotes    podcast search by title; its direct links beat search pages

API references:
  https://podcastindex-org.github.io/docs-api/
  https://developer.spotify.com/documentation/web-api/reference/search
  https://www.listennotes.com/api/docs/
"""
import hashlib
import re
import time
from dataclasses import dataclass
from urllib.parse import quote

import httpx
from loguru import logger

from config.settings import (
    LISTENNOTES_API_KEY,
    PODCASTINDEX_API_KEY,
    PODCASTINDEX_API_SECRET,
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    USER_AGENT,
)

_PODCASTINDEX_URL  = "https://api.podcastindex.org/api/1.0/podcasts/byfeedurl"
_SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
_SPOTIFY_SEARCH    = "https://api.spotify.com/v1/search"
_LISTENNOTES_URL   = "https://listen-api.listennotes.com/api/v2/search"

_MIN_SIMILARITY = 0.5       # word-overlap needed to trust Spotify's top hit
_WORD_RE        = re.compile(r"\s+")

_LOOKUP_ERRORS = (httpx.HTTPError, ValueError, AttributeError, TypeError)


@dataclass(frozen=True)
class DirectoryKeys:
    podcastindex_key:      str = ""
    podcastindex_secret:   str = ""
    spotify_client_id:     str = ""
    spotify_client_secret: str = ""
    listennotes_key:       str = ""

    @classmethod
    def from_settings(cls) -> "DirectoryKeys":
        return cls(
            podcastindex_key      = PODCASTINDEX_API_KEY or "",
            podcastindex_secret   = PODCASTINDEX_API_SECRET or "",
            spotify_client_id     = SPOTIFY_CLIENT_ID or "",
            spotify_client_secret = SPOTIFY_CLIENT_SECRET or "",
            listennotes_key       = LISTENNOTES_API_KEY or "",
        )


async def podcastindex_feed(
    client: httpx.AsyncClient, keys: DirectoryKeys, feed_url: str, timeout: float
) -> dict:
    """Directory record for a feed URL, or {}."""
    if not (keys.podcastindex_key and keys.podcastindex_secret):
        return {}

    now  = str(int(time.time()))
    auth = hashlib.sha1(
        f"{keys.podcastindex_key}{keys.podcastindex_secret}{now}".encode()
    ).hexdigest()
    try:
        resp = await client.get(
            _PODCASTINDEX_URL,
            params  = {"url": feed_url},
            headers = {
                "User-Agent":    USER_AGENT,
                "X-Auth-Key":    keys.podcastindex_key,
                "X-Auth-Date":   now,
                "Authorization": auth,
            },
            timeout = timeout,
        )
        resp.raise_for_status()
        return resp.json().get("feed") or {}
    except _LOOKUP_ERRORS as exc:
        logger.debug(f"[Directories] PodcastIndex lookup failed for {feed_url[:60]}: {exc}")
        return {}


async def spotify_show_url(
    client: httpx.AsyncClient, keys: DirectoryKeys, title: str, timeout: float
) -> str | None:
    """
    Search Spotify shows by title.  A name that equals or contains the title
    (or vice versa) wins; otherwise the top hit is used only if its words
    overlap the title enough.
    """
    if not (keys.spotify_client_id and keys.spotify_client_secret and title):
        return None

    try:
        token_resp = await client.post(
            _SPOTIFY_TOKEN_URL,
            data    = {"grant_type": "client_credentials"},
            auth    = (keys.spotify_client_id, keys.spotify_client_secret),
            timeout = timeout,
        )
        token_resp.raise_for_status()
        token = token_resp.json()["access_token"]

        resp = await client.get(
            _SPOTIFY_SEARCH,
            params  = {"q": title, "type": "show", "limit": 5},
            headers = {"Authorization": f"Bearer {token}"},
            timeout = timeout,
        )
        resp.raise_for_status()
        shows = [s for s in (resp.json().get("shows") or {}).get("items") or [] if s]
    except (*_LOOKUP_ERRORS, KeyError) as exc:
        logger.debug(f"[Directories] Spotify search failed for {title!r}: {exc}")
        return None

    if not shows:
        return None

    wanted = title.lower().strip()
    for show in shows:
        name = (show.get("name") or "").lower().strip()
        if name and (name == wanted or wanted in name or name in wanted):
            logger.debug(f"[Directories] Spotify match {show.get('name')!r} for {title!r}")
            return _spotify_url(show)

    top = shows[0]
    if title_similarity(title, top.get("name") or "") > _MIN_SIMILARITY:
        logger.debug(f"[Directories] Spotify partial match {top.get('name')!r} for {title!r}")
        return _spotify_url(top)
    return None


async def listennotes_links(
    client: httpx.AsyncClient, keys: DirectoryKeys, title: str, timeout: float
) -> dict[str, str]:
    """Direct platform links from ListenNotes' top title match."""
    if not (keys.listennotes_key and title):
        return {}

    try:
        resp = await client.get(
            _LISTENNOTES_URL,
            params  = {"q": title, "type": "podcast", "only_in": "title"},
            headers = {"X-ListenAPI-Key": keys.listennotes_key},
            timeout = timeout,
        )
        resp.raise_for_status()
        results = resp.json().get("results") or []
    except _LOOKUP_ERRORS as exc:
        logger.debug(f"[Directories] ListenNotes search failed for {title!r}: {exc}")
        return {}

    if not results:
        return {}
    top = results[0]
    links = {
        "listennotes": top.get("listennotes_url") or "",
        "spotify":     top.get("spotify_url") or "",
        "youtube":     top.get("youtube_url") or "",
    }
    return {platform: url for platform, url in links.items() if url}


def search_links(title: str) -> dict[str, str]:
    """Search-page links for platforms with no lookup API; used only to fill gaps."""
    if not title:
        return {}
    return {
        "youtube": f"https://www.youtube.com/results?search_query={quote(title + ' podcast', safe='')}",
        "amazon":  f"https://music.amazon.com/search/{quote(title, safe='')}?filter=IsInPodcasts",
        "iheart":  f"https://www.iheart.com/search/podcasts/?q={quote(title, safe='')}",
    }


def title_similarity(a: str, b: str) -> float:
    """Jaccard index over the words longer than two characters."""
    words_a = {w for w in _WORD_RE.split(a.lower()) if len(w) > 2}
    words_b = {w for w in _WORD_RE.split(b.lower()) if len(w) > 2}
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def _spotify_url(show: dict) -> str:
    return (show.get("external_urls") or {}).get("spotify") or (
        f"https://open.spotify.com/show/{show.get('id', '')}"
    )
