"""
Freshness policy — pure functions, no I/O.

is_stale() decides whether a stored snapshot should be refreshed;
placeholder_for() builds the card shown before anything was ever fetched.
"""
from datetime import datetime, timedelta

from src.adapters import podcast, scraper
from src.adapters.base import ContentSnapshot, CreatorIdentity, SourceType
from src.adapters.scraper import candidate_urls
from src.adapters.youtube import channel_page_url

# Feeds change far less often, and each refresh may hit the directory API
TTL: dict[SourceType, timedelta] = {
    SourceType.LIVE_STREAM:  timedelta(minutes=15),
    SourceType.API_VIDEO:    timedelta(minutes=15),
    SourceType.PODCAST_FEED: timedelta(hours=12),
}

PLACEHOLDER_TITLE: dict[SourceType, str] = {
    SourceType.LIVE_STREAM:  "Watch on Rumble",
    SourceType.API_VIDEO:    "Watch on YouTube",
    SourceType.PODCAST_FEED: "Listen to the podcast",
}


def ttl(source_type: SourceType) -> timedelta:
    return TTL[SourceType(source_type)]


def is_stale(snapshot: ContentSnapshot | None, now: datetime) -> bool:
    if snapshot is None:
        return True
    # An incomplete card is not useful yet, however recent
    if not snapshot.thumbnail_url:
        return True
    if snapshot.last_checked_at is None:
        return True
    return now - snapshot.last_checked_at > ttl(snapshot.source_type)


def has_required_field(snapshot: ContentSnapshot) -> bool:
    """True if a fetch recognized enough of the page to be worth storing."""
    generic = {
        "",
        PLACEHOLDER_TITLE[snapshot.source_type],
        scraper.DEFAULT_TITLE,
        podcast.DEFAULT_TITLE,
    }
    return bool(snapshot.thumbnail_url) or snapshot.title not in generic


def default_canonical_url(source_type: SourceType, identity: CreatorIdentity) -> str:
    source_type = SourceType(source_type)
    if source_type is SourceType.LIVE_STREAM:
        return candidate_urls(identity.handle, identity.hints.get("path_type"))[0]
    if source_type is SourceType.API_VIDEO:
        return channel_page_url(identity.handle)
    return identity.handle.strip()


def placeholder_for(source_type: SourceType, identity: CreatorIdentity) -> ContentSnapshot:
    """Immediately renderable card built from the declared handle alone."""
    source_type = SourceType(source_type)
    return ContentSnapshot(
        creator_id    = identity.creator_id,
        source_type   = source_type,
        title         = PLACEHOLDER_TITLE[source_type],
        canonical_url = default_canonical_url(source_type, identity),
        view_count    = 0,
        is_live       = False,
        extras        = {"placeholder": True},
    )
