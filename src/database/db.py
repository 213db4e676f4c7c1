"""
SQLite helpers — connection, init, snapshot reads/upserts, creator registry.
All public functions accept an open sqlite3.Connection so callers control
the transaction boundary via the get_db() context manager.
"""
import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

from config.settings import DB_PATH
from src.adapters.base import ContentSnapshot, CreatorIdentity, SourceType

_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"   # fixed width so text comparison == time order


# ── Connection ─────────────────────────────────────────────────────────────────

@contextmanager
def get_db(db_path: Path | str | None = None) -> Generator[sqlite3.Connection, None, None]:
    """Yield an open connection; commit on clean exit, rollback on exception."""
    conn = sqlite3.connect(db_path or DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


# ── Schema init ────────────────────────────────────────────────────────────────

def init_db(db_path: Path | str | None = None) -> None:
    """Create tables and indexes from schema.sql. Safe to call repeatedly."""
    path = Path(db_path or DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    schema_path = Path(__file__).parent / "schema.sql"
    sql = schema_path.read_text(encoding="utf-8")
    with get_db(path) as conn:
        conn.executescript(sql)


# ── Snapshots ──────────────────────────────────────────────────────────────────

def get_snapshot(
    conn: sqlite3.Connection, creator_id: str, source_type: SourceType
) -> ContentSnapshot | None:
    row = conn.execute(
        "SELECT * FROM content_snapshots WHERE creator_id = ? AND source_type = ?",
        (creator_id, SourceType(source_type).value),
    ).fetchone()
    return _row_to_snapshot(row) if row else None


def upsert_snapshot(conn: sqlite3.Connection, snapshot: ContentSnapshot) -> bool:
    """
    Full-object replace keyed by (creator_id, source_type).
    Returns False (and writes nothing) when the stored row was checked more
    recently than `snapshot` — last_checked_at never moves backward.
    """
    checked = snapshot.last_checked_at or datetime.now(timezone.utc)
    cur = conn.execute(
        """INSERT INTO content_snapshots
               (creator_id, source_type, title, thumbnail_url, canonical_url,
                view_count, is_live, live_viewer_count, last_checked_at, extras)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
           ON CONFLICT (creator_id, source_type) DO UPDATE SET
               title             = excluded.title,
               thumbnail_url     = excluded.thumbnail_url,
               canonical_url     = excluded.canonical_url,
               view_count        = excluded.view_count,
               is_live           = excluded.is_live,
               live_viewer_count = excluded.live_viewer_count,
               last_checked_at   = excluded.last_checked_at,
               extras            = excluded.extras
           WHERE excluded.last_checked_at >= content_snapshots.last_checked_at""",
        (
            snapshot.creator_id,
            snapshot.source_type.value,
            snapshot.title,
            snapshot.thumbnail_url,
            snapshot.canonical_url,
            int(snapshot.view_count or 0),
            int(snapshot.is_live),
            snapshot.live_viewer_count,
            format_ts(checked),
            json.dumps(snapshot.extras, sort_keys=True),
        ),
    )
    return cur.rowcount == 1


# ── Creator registry ───────────────────────────────────────────────────────────

def upsert_creator_source(
    conn: sqlite3.Connection,
    creator_id: str,
    source_type: SourceType,
    handle: str,
    hints: dict | None = None,
    enabled: bool = True,
) -> None:
    """Register (or update) the handle a creator declared for one platform."""
    conn.execute(
        """INSERT INTO creator_sources (creator_id, source_type, handle, hints, enabled)
           VALUES (?, ?, ?, ?, ?)
           ON CONFLICT (creator_id, source_type) DO UPDATE SET
               handle  = excluded.handle,
               hints   = excluded.hints,
               enabled = excluded.enabled""",
        (
            creator_id,
            SourceType(source_type).value,
            handle,
            json.dumps(hints or {}),
            int(enabled),
        ),
    )


def get_creator_sources(
    conn: sqlite3.Connection, source_type: SourceType | None = None
) -> list[tuple[SourceType, CreatorIdentity]]:
    """Return all enabled (source_type, identity) pairs, optionally for one source type."""
    sql    = "SELECT * FROM creator_sources WHERE enabled = 1"
    params: tuple = ()
    if source_type is not None:
        sql   += " AND source_type = ?"
        params = (SourceType(source_type).value,)
    rows = conn.execute(sql + " ORDER BY creator_id, source_type", params).fetchall()
    return [
        (
            SourceType(row["source_type"]),
            CreatorIdentity(row["creator_id"], row["handle"], json.loads(row["hints"] or "{}")),
        )
        for row in rows
    ]


# ── Helpers ────────────────────────────────────────────────────────────────────

def format_ts(dt: datetime) -> str:
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime(_TS_FORMAT)


def parse_ts(value: str) -> datetime:
    return datetime.strptime(value, _TS_FORMAT).replace(tzinfo=timezone.utc)


def _row_to_snapshot(row: sqlite3.Row) -> ContentSnapshot:
    return ContentSnapshot(
        creator_id        = row["creator_id"],
        source_type       = SourceType(row["source_type"]),
        title             = row["title"],
        thumbnail_url     = row["thumbnail_url"],
        canonical_url     = row["canonical_url"],
        view_count        = row["view_count"],
        is_live           = bool(row["is_live"]),
        live_viewer_count = row["live_viewer_count"],
        last_checked_at   = parse_ts(row["last_checked_at"]),
        extras            = json.loads(row["extras"] or "{}"),
    )
