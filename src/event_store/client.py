"""High-level event store facade implementing the engine's EventSource.

Every backend call goes through :meth:`EventStoreClient._safe_call`, which
bounds it with a timeout and retries transient failures with exponential
backoff. Failures surface as EventStoreUnavailable / EventStoreTimeout,
both UpstreamUnavailable to the engine.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Callable, Mapping

from event_store.exceptions import EventStoreTimeout, EventStoreUnavailable
from event_store.mapper import (
    context_to_row,
    event_to_row,
    map_context_row,
    map_training_row,
    parse_timestamp,
    validate_event,
    validate_sample,
)
from recovery_engine.exceptions import InvalidInput
from recovery_engine.models.events import ContextSample, TrainingEvent
from recovery_engine.models.parameters import RecoveryParameters
from recovery_engine.models.snapshot import ReadinessSnapshot
from recovery_engine.ports import WriteListener
from recovery_engine.serialization import (
    parameters_from_dict,
    parameters_to_dict,
    snapshot_from_dict,
    snapshot_to_dict,
)

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_S = 5.0
_MAX_RETRIES = 2
_BASE_BACKOFF_S = 0.2

# Errors worth another attempt; anything else fails fast
_TRANSIENT_ERRORS = (ConnectionError, TimeoutError, OSError)


class EventStoreClient:
    """Facade over a row backend: reads, ingestion and engine state.

    Usage:
        store = EventStoreClient(InMemoryBackend.load(path))
        store.add_listener(engine)
        store.record_training_event({...})
    """

    def __init__(
        self,
        backend: Any,
        timeout_s: float = _DEFAULT_TIMEOUT_S,
        max_retries: int = _MAX_RETRIES,
        base_backoff_s: float = _BASE_BACKOFF_S,
    ) -> None:
        self.backend = backend
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.base_backoff_s = base_backoff_s
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="event-store")
        self._listeners: list[WriteListener] = []

    def add_listener(self, listener: WriteListener) -> None:
        self._listeners.append(listener)

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def __enter__(self) -> "EventStoreClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def fetch_training_events(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[TrainingEvent]:
        """Events in [start, end], ascending, soft-deleted sessions excluded.

        The range is handed to the backend so only rows near the window are
        read and mapped; the exact bounds are re-checked after mapping.
        """
        start, end = _as_utc(start), _as_utc(end)
        rows = self._safe_call(
            "select_training_rows", self.backend.select_training_rows, user_id, start, end
        )
        events = [
            e
            for e in self._map_rows(rows)
            if not e.is_deleted and start <= e.timestamp <= end
        ]
        return sorted(events, key=lambda e: e.timestamp)

    def fetch_session_events(self, session_id: str) -> list[TrainingEvent]:
        rows = self._safe_call("select_session_rows", self.backend.select_session_rows, session_id)
        events = [e for e in self._map_rows(rows) if not e.is_deleted]
        return sorted(events, key=lambda e: e.timestamp)

    def fetch_context_samples(
        self, user_id: str, from_date: date, to_date: date
    ) -> list[ContextSample]:
        rows = self._safe_call(
            "select_context_rows", self.backend.select_context_rows, user_id, from_date, to_date
        )
        samples: list[ContextSample] = []
        for row in rows:
            try:
                sample = map_context_row(row)
            except InvalidInput as exc:
                logger.warning("Skipping malformed context row for %s: %s", user_id, exc)
                continue
            if from_date <= sample.day <= to_date:
                samples.append(sample)
        return sorted(samples, key=lambda s: s.day)

    def fetch_recovery_parameters(self, user_id: str) -> RecoveryParameters:
        """Stored parameters, or population defaults when none are usable."""
        data = self._safe_call("select_parameters", self.backend.select_parameters, user_id)
        if data is None:
            return RecoveryParameters.population_defaults(user_id)
        try:
            return parameters_from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Stored parameters for %s unreadable (%s), using defaults", user_id, exc)
            return RecoveryParameters.population_defaults(user_id)

    def fetch_cached_snapshot(self, user_id: str, as_of: datetime) -> ReadinessSnapshot | None:
        """Latest persisted snapshot at or before *as_of*."""
        items = self._safe_call("select_snapshots", self.backend.select_snapshots, user_id)
        as_of = _as_utc(as_of)
        best: ReadinessSnapshot | None = None
        for data in items:
            try:
                snapshot = snapshot_from_dict(data)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable snapshot for %s: %s", user_id, exc)
                continue
            if snapshot.as_of <= as_of and (best is None or snapshot.as_of > best.as_of):
                best = snapshot
        return best

    def list_user_ids(self) -> list[str]:
        return self._safe_call("list_user_ids", self.backend.list_user_ids)

    # ------------------------------------------------------------------
    # Engine state writes
    # ------------------------------------------------------------------

    def persist_recovery_parameters(self, user_id: str, params: RecoveryParameters) -> None:
        self._safe_call(
            "upsert_parameters", self.backend.upsert_parameters, user_id, parameters_to_dict(params)
        )

    def persist_readiness_snapshot(self, user_id: str, snapshot: ReadinessSnapshot) -> None:
        self._safe_call(
            "upsert_snapshot",
            self.backend.upsert_snapshot,
            user_id,
            snapshot.as_of.isoformat(),
            snapshot_to_dict(snapshot),
        )

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def record_training_event(self, row: Mapping[str, Any] | TrainingEvent) -> TrainingEvent:
        """Validate, persist and announce one exercise.

        Accepts a row of any schema version or a TrainingEvent; both pass the
        same validation. Raises InvalidInput before anything is written when
        the record is bad.
        """
        event = validate_event(row) if isinstance(row, TrainingEvent) else map_training_row(row)
        self._safe_call("insert_training_row", self.backend.insert_training_row, event_to_row(event))
        logger.debug("Recorded %s for %s at %s", event.exercise_id, event.user_id, event.timestamp)
        for listener in self._listeners:
            listener.on_training_event_written(event)
        return event

    def record_context_sample(self, row: Mapping[str, Any] | ContextSample) -> ContextSample:
        sample = validate_sample(row) if isinstance(row, ContextSample) else map_context_row(row)
        self._safe_call("insert_context_row", self.backend.insert_context_row, context_to_row(sample))
        for listener in self._listeners:
            listener.on_context_sample_written(sample)
        return sample

    def delete_session(self, session_id: str) -> list[TrainingEvent]:
        """Soft-delete every exercise of a session and announce each one.

        Returns the tombstoned events. Listeners see them with
        ``is_deleted`` set so snapshots from the session onwards are
        dropped.
        """
        events = self.fetch_session_events(session_id)
        if not events:
            return []
        deleted_at = datetime.now(timezone.utc).isoformat()
        self._safe_call(
            "soft_delete_session", self.backend.soft_delete_session, session_id, deleted_at
        )
        logger.info("Soft-deleted session %s (%d exercises)", session_id, len(events))

        tombstones = [_tombstone(e) for e in events]
        for event in tombstones:
            for listener in self._listeners:
                listener.on_training_event_written(event)
        return tombstones

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _map_rows(self, rows: list[dict[str, Any]]) -> list[TrainingEvent]:
        events: list[TrainingEvent] = []
        for row in rows:
            try:
                events.append(map_training_row(row))
            except InvalidInput as exc:
                logger.warning("Skipping malformed training row: %s", exc)
        return events

    def _safe_call(self, operation: str, fn: Callable, *args: Any, **kwargs: Any) -> Any:
        """Call *fn* with a timeout, retrying transient errors with backoff."""
        attempts = self.max_retries + 1
        last_error: EventStoreUnavailable | None = None
        for attempt in range(attempts):
            future = self._executor.submit(fn, *args, **kwargs)
            try:
                return future.result(timeout=self.timeout_s)
            except FuturesTimeout as exc:
                future.cancel()
                last_error = EventStoreTimeout(
                    f"{operation} timed out after {self.timeout_s}s",
                    operation=operation,
                    timeout_s=self.timeout_s,
                )
                last_error.__cause__ = exc
            except _TRANSIENT_ERRORS as exc:
                last_error = EventStoreUnavailable(f"{operation} failed: {exc}", operation=operation)
                last_error.__cause__ = exc
            except Exception as exc:
                # Non-retryable error
                raise EventStoreUnavailable(f"{operation} failed: {exc}", operation=operation) from exc

            if attempt + 1 < attempts:
                wait = self.base_backoff_s * (2 ** attempt)
                logger.warning(
                    "%s failed (attempt %d/%d), retrying in %.2fs",
                    operation,
                    attempt + 1,
                    attempts,
                    wait,
                )
                time.sleep(wait)

        assert last_error is not None
        logger.error("%s gave up after %d attempts: %s", operation, attempts, last_error)
        raise last_error


def _as_utc(moment: datetime) -> datetime:
    return parse_timestamp(moment)


def _tombstone(event: TrainingEvent) -> TrainingEvent:
    return replace(event, is_deleted=True)
