"""In-process snapshot cache keyed by (user, as-of hour)."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from datetime import datetime

from recovery_engine.models.snapshot import ReadinessSnapshot

logger = logging.getLogger(__name__)

_DEFAULT_MAX_ENTRIES_PER_USER = 256


def floor_to_hour(moment: datetime) -> datetime:
    """Truncate *moment* to the start of its hour."""
    return moment.replace(minute=0, second=0, microsecond=0)


class SnapshotCache:
    """Thread-safe memo of readiness snapshots.

    Snapshots are keyed by their (already floored) ``as_of``. A write at
    time t for a user drops every snapshot of that user with as_of >= t;
    earlier snapshots stay valid because they never saw the write.
    """

    def __init__(self, max_entries_per_user: int = _DEFAULT_MAX_ENTRIES_PER_USER) -> None:
        self._max_entries = max_entries_per_user
        self._entries: dict[str, dict[datetime, ReadinessSnapshot]] = defaultdict(dict)
        self._lock = threading.Lock()

    def get(self, user_id: str, as_of: datetime) -> ReadinessSnapshot | None:
        key = floor_to_hour(as_of)
        with self._lock:
            snapshot = self._entries.get(user_id, {}).get(key)
        logger.debug("Cache %s for %s at %s", "hit" if snapshot else "miss", user_id, key.isoformat())
        return snapshot

    def put(self, snapshot: ReadinessSnapshot) -> None:
        key = floor_to_hour(snapshot.as_of)
        with self._lock:
            entries = self._entries[snapshot.user_id]
            entries[key] = snapshot
            while len(entries) > self._max_entries:
                del entries[min(entries)]

    def latest_before(self, user_id: str, as_of: datetime) -> ReadinessSnapshot | None:
        """Most recent snapshot with as_of at or before the given time."""
        key = floor_to_hour(as_of)
        with self._lock:
            candidates = [k for k in self._entries.get(user_id, {}) if k <= key]
            if not candidates:
                return None
            return self._entries[user_id][max(candidates)]

    def invalidate(self, user_id: str, since: datetime | None = None) -> int:
        """Drop snapshots of *user_id* with as_of >= *since* (all when None).

        Returns the number of entries removed.
        """
        with self._lock:
            entries = self._entries.get(user_id)
            if not entries:
                return 0
            stale = [k for k in entries if since is None or k >= since]
            for key in stale:
                del entries[key]
        if stale:
            logger.debug(
                "Invalidated %d snapshot(s) for %s since %s",
                len(stale),
                user_id,
                since.isoformat() if since else "beginning",
            )
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(v) for v in self._entries.values())
