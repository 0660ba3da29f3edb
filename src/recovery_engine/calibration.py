"""CalibrationService: the only writer of RecoveryParameters.

Runs off the readiness path. Write notifications queue a user; the
scheduler drains the queue periodically and sweeps every user nightly.
Runs for the same user are serialized by a per-user lock; the last run to
finish wins.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from recovery_engine.exceptions import CalibrationStale, UpstreamUnavailable
from recovery_engine.math.calibration import calibrate, count_sessions
from recovery_engine.models.enums import MIN_SESSIONS_FOR_CALIBRATION
from recovery_engine.models.events import ContextSample, TrainingEvent
from recovery_engine.models.parameters import RecoveryParameters
from recovery_engine.models.weights import ImpulseWeights
from recovery_engine.ports import EventSource, ParametersListener

logger = logging.getLogger(__name__)

HISTORY_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CalibrationService:
    """Recomputes per-user recovery parameters from their full history.

    Usage:
        service = CalibrationService(store)
        service.add_listener(engine)        # engine drops stale snapshots
        store.add_listener(service)         # new sessions queue a run
        service.run_pending()               # from the scheduler
    """

    def __init__(
        self,
        store: EventSource,
        impulse_weights: ImpulseWeights | None = None,
        min_sessions: int = MIN_SESSIONS_FOR_CALIBRATION,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.impulse_weights = impulse_weights or ImpulseWeights()
        self.min_sessions = min_sessions
        self._clock = clock
        self._listeners: list[ParametersListener] = []
        self._user_locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._pending: set[str] = set()
        self._pending_lock = threading.Lock()

    def add_listener(self, listener: ParametersListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Request queue
    # ------------------------------------------------------------------

    def request_calibration(self, user_id: str) -> None:
        """Queue *user_id* for the next drain. Never runs inline."""
        with self._pending_lock:
            self._pending.add(user_id)

    def on_training_event_written(self, event: TrainingEvent) -> None:
        self.request_calibration(event.user_id)

    def on_context_sample_written(self, sample: ContextSample) -> None:
        self.request_calibration(sample.user_id)

    @property
    def pending(self) -> frozenset[str]:
        with self._pending_lock:
            return frozenset(self._pending)

    def run_pending(self) -> dict[str, RecoveryParameters | None]:
        """Calibrate every queued user. Failed users are re-queued."""
        with self._pending_lock:
            batch = sorted(self._pending)
            self._pending.clear()

        results: dict[str, RecoveryParameters | None] = {}
        for user_id in batch:
            try:
                results[user_id] = self.calibrate_user(user_id)
            except CalibrationStale as exc:
                logger.warning("Calibration deferred for %s: %s", user_id, exc)
                self.request_calibration(user_id)
        return results

    def calibrate_all(self) -> dict[str, RecoveryParameters | None]:
        """Nightly sweep over every known user."""
        try:
            user_ids = self.store.list_user_ids()
        except UpstreamUnavailable as exc:
            raise CalibrationStale(f"Could not list users: {exc}") from exc
        for user_id in user_ids:
            self.request_calibration(user_id)
        return self.run_pending()

    # ------------------------------------------------------------------
    # Single-user run
    # ------------------------------------------------------------------

    def calibrate_user(
        self, user_id: str, as_of: datetime | None = None
    ) -> RecoveryParameters | None:
        """Recalibrate one user.

        Returns the new parameters, or None when the user has fewer than
        ``min_sessions`` completed sessions (parameters stay unchanged).

        Raises:
            CalibrationStale: the store could not be read or written.
        """
        as_of = as_of or self._clock()
        with self._lock_for(user_id):
            try:
                current = self.store.fetch_recovery_parameters(user_id)
                events = self.store.fetch_training_events(user_id, HISTORY_EPOCH, as_of)
                samples = (
                    self.store.fetch_context_samples(
                        user_id, events[0].timestamp.date(), as_of.date()
                    )
                    if events
                    else []
                )
            except UpstreamUnavailable as exc:
                raise CalibrationStale(f"Could not read history: {exc}", user_id=user_id) from exc

            sessions = count_sessions(events)
            if sessions < self.min_sessions:
                logger.debug(
                    "Skipping calibration for %s: %d/%d sessions",
                    user_id,
                    sessions,
                    self.min_sessions,
                )
                return None

            updated = calibrate(current, events, samples, as_of, self.impulse_weights)
            try:
                self.store.persist_recovery_parameters(user_id, updated)
            except UpstreamUnavailable as exc:
                raise CalibrationStale(f"Could not persist parameters: {exc}", user_id=user_id) from exc

        logger.info(
            "Calibrated %s from %d sessions: confidence=%.2f (%s), resistance=%.1f",
            user_id,
            sessions,
            updated.confidence,
            updated.confidence_level.value,
            updated.fatigue_resistance,
        )
        for listener in self._listeners:
            listener.on_parameters_updated(updated)
        return updated

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._user_locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._user_locks[user_id] = lock
            return lock
