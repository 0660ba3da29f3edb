"""In-process reference backend holding raw persisted rows.

Rows are stored exactly as written (any schema version) and handed back
unparsed; mapping and validation happen in the client. Training rows are
additionally indexed per user by timestamp so a time-range read only
touches the rows in range. The whole store can be saved to and loaded
from a single JSON file, which is what the scheduler uses between runs.
"""

from __future__ import annotations

import bisect
import json
import logging
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any

from event_store.mapper import parse_date, parse_timestamp
from recovery_engine.exceptions import InvalidInput

logger = logging.getLogger(__name__)


def _row_timestamp(row: dict[str, Any]) -> datetime | None:
    """Sort key of a training row, None when it cannot be parsed."""
    value = row.get("timestamp")
    if "set_metadata" in row:
        value = row.get("performed_at", value)
    try:
        return parse_timestamp(value)
    except InvalidInput:
        return None


class _UserIndex:
    """Rows of one user ordered by timestamp, plus rows with no usable timestamp."""

    def __init__(self) -> None:
        self.keys: list[datetime] = []
        self.rows: list[dict[str, Any]] = []
        self.unordered: list[dict[str, Any]] = []

    def add(self, row: dict[str, Any]) -> None:
        moment = _row_timestamp(row)
        if moment is None:
            self.unordered.append(row)
            return
        position = bisect.bisect_right(self.keys, moment)
        self.keys.insert(position, moment)
        self.rows.insert(position, row)

    def select(self, start: datetime | None, end: datetime | None) -> list[dict[str, Any]]:
        low = bisect.bisect_left(self.keys, start) if start is not None else 0
        high = bisect.bisect_right(self.keys, end) if end is not None else len(self.keys)
        # Malformed rows always come back so the client can report them
        return self.rows[low:high] + self.unordered


class InMemoryBackend:
    """Thread-safe row store keyed by user."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._training: list[dict[str, Any]] = []
        self._by_user: dict[str, _UserIndex] = {}
        self._context: dict[tuple[str, str], dict[str, Any]] = {}
        self._parameters: dict[str, dict[str, Any]] = {}
        self._snapshots: dict[str, dict[str, dict[str, Any]]] = {}

    # ------------------------------------------------------------------
    # Training rows
    # ------------------------------------------------------------------

    def insert_training_row(self, row: dict[str, Any]) -> None:
        with self._lock:
            self._add_training(dict(row))

    def select_training_rows(
        self,
        user_id: str,
        start: datetime | str | None = None,
        end: datetime | str | None = None,
    ) -> list[dict[str, Any]]:
        """Rows of *user_id* with timestamps in [start, end]; open bounds when None."""
        low = parse_timestamp(start) if start is not None else None
        high = parse_timestamp(end) if end is not None else None
        with self._lock:
            index = self._by_user.get(user_id)
            if index is None:
                return []
            return [dict(r) for r in index.select(low, high)]

    def select_session_rows(self, session_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(r) for r in self._training if r.get("session_id") == session_id]

    def soft_delete_session(self, session_id: str, deleted_at: str) -> int:
        """Tombstone every row of a session. Returns the number of rows marked."""
        marked = 0
        with self._lock:
            for row in self._training:
                if row.get("session_id") != session_id:
                    continue
                if "set_metadata" in row:
                    row["deleted_at"] = deleted_at
                else:
                    row["is_deleted"] = True
                marked += 1
        return marked

    # ------------------------------------------------------------------
    # Context rows
    # ------------------------------------------------------------------

    def insert_context_row(self, row: dict[str, Any]) -> None:
        """Insert or replace the check-in for (user_id, date)."""
        key = (str(row.get("user_id")), str(row.get("date")))
        with self._lock:
            self._context[key] = dict(row)

    def select_context_rows(
        self,
        user_id: str,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[dict[str, Any]]:
        """Check-ins of *user_id* dated within [from_date, to_date]."""
        with self._lock:
            rows = [dict(r) for (uid, _), r in self._context.items() if uid == user_id]
        return [r for r in rows if _within(r, from_date, to_date)]

    # ------------------------------------------------------------------
    # Parameters and snapshots
    # ------------------------------------------------------------------

    def select_parameters(self, user_id: str) -> dict[str, Any] | None:
        with self._lock:
            data = self._parameters.get(user_id)
            return dict(data) if data is not None else None

    def upsert_parameters(self, user_id: str, data: dict[str, Any]) -> None:
        with self._lock:
            self._parameters[user_id] = dict(data)

    def upsert_snapshot(self, user_id: str, as_of: str, data: dict[str, Any]) -> None:
        with self._lock:
            self._snapshots.setdefault(user_id, {})[as_of] = dict(data)

    def select_snapshots(self, user_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(d) for d in self._snapshots.get(user_id, {}).values()]

    def list_user_ids(self) -> list[str]:
        with self._lock:
            users = {str(r.get("user_id")) for r in self._training if r.get("user_id")}
            users.update(uid for uid, _ in self._context)
            users.update(self._parameters)
        return sorted(users)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, path: Path | str) -> None:
        with self._lock:
            payload = {
                "training": self._training,
                "context": list(self._context.values()),
                "parameters": self._parameters,
                "snapshots": self._snapshots,
            }
            text = json.dumps(payload, indent=2, default=str)
        Path(path).write_text(text)
        logger.info("Saved event store to %s", path)

    @classmethod
    def load(cls, path: Path | str) -> "InMemoryBackend":
        """Load a store written by :meth:`save`. A missing file yields an empty store."""
        backend = cls()
        path = Path(path)
        if not path.exists():
            logger.info("No event store at %s, starting empty", path)
            return backend

        payload = json.loads(path.read_text())
        for row in payload.get("training", []):
            backend._add_training(dict(row))
        for row in payload.get("context", []):
            backend._context[(str(row.get("user_id")), str(row.get("date")))] = dict(row)
        backend._parameters = dict(payload.get("parameters", {}))
        backend._snapshots = {
            uid: dict(items) for uid, items in payload.get("snapshots", {}).items()
        }
        logger.info(
            "Loaded event store from %s (%d training rows, %d users)",
            path,
            len(backend._training),
            len(backend.list_user_ids()),
        )
        return backend

    def _add_training(self, row: dict[str, Any]) -> None:
        """Append *row* and index it. Callers hold the lock."""
        self._training.append(row)
        user_id = str(row.get("user_id"))
        self._by_user.setdefault(user_id, _UserIndex()).add(row)


def _within(row: dict[str, Any], from_date: date | None, to_date: date | None) -> bool:
    try:
        day = parse_date(row.get("date", row.get("day")))
    except InvalidInput:
        return True
    if from_date is not None and day < from_date:
        return False
    return to_date is None or day <= to_date
