"""
SnapshotStore — key-value access to content_snapshots plus notify-on-write.

Views either poll get() or subscribe() to be told when a background refresh
lands. Listeners run synchronously after the write commits; a listener that
raises is logged and skipped.
"""
from typing import Callable

from loguru import logger

from src.adapters.base import ContentSnapshot, SourceType
from src.database.db import get_db, get_snapshot, init_db, upsert_snapshot

Listener = Callable[[ContentSnapshot], None]


class SnapshotStore:
    def __init__(self, db_path=None, create: bool = True):
        self.db_path = db_path
        self._listeners: list[Listener] = []
        if create:
            init_db(db_path)

    def get(self, creator_id: str, source_type: SourceType) -> ContentSnapshot | None:
        with get_db(self.db_path) as conn:
            return get_snapshot(conn, creator_id, source_type)

    def upsert(self, snapshot: ContentSnapshot) -> bool:
        """Replace the row for snapshot.key. Returns False if an older check was rejected."""
        with get_db(self.db_path) as conn:
            written = upsert_snapshot(conn, snapshot)

        if not written:
            logger.debug(f"[Store] {snapshot.key} skipped — stored row is newer")
            return False

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:
                logger.error(f"[Store] listener {listener!r} failed for {snapshot.key}: {exc}")
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a write listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
