"""Interfaces the engine consumes from the persistence layer."""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol

from recovery_engine.models.events import ContextSample, TrainingEvent
from recovery_engine.models.parameters import RecoveryParameters
from recovery_engine.models.snapshot import ReadinessSnapshot


class EventSource(Protocol):
    """Read-mostly view over persisted training history.

    Every method may raise UpstreamUnavailable (or a subclass) when the
    backing store fails or times out.
    """

    def fetch_training_events(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[TrainingEvent]:
        """Events in [start, end], ascending, soft-deleted sessions excluded."""
        ...

    def fetch_session_events(self, session_id: str) -> list[TrainingEvent]:
        ...

    def fetch_context_samples(
        self, user_id: str, from_date: date, to_date: date
    ) -> list[ContextSample]:
        """Samples for days in [from_date, to_date]; may be empty."""
        ...

    def fetch_recovery_parameters(self, user_id: str) -> RecoveryParameters:
        """Stored parameters, or population defaults when none exist."""
        ...

    def persist_recovery_parameters(self, user_id: str, params: RecoveryParameters) -> None:
        ...

    def persist_readiness_snapshot(self, user_id: str, snapshot: ReadinessSnapshot) -> None:
        ...

    def fetch_cached_snapshot(self, user_id: str, as_of: datetime) -> ReadinessSnapshot | None:
        """Latest persisted snapshot at or before *as_of*."""
        ...

    def list_user_ids(self) -> list[str]:
        ...


class WriteListener(Protocol):
    """Notified after the ingestion API accepts a write."""

    def on_training_event_written(self, event: TrainingEvent) -> None:
        ...

    def on_context_sample_written(self, sample: ContextSample) -> None:
        ...


class ParametersListener(Protocol):
    """Notified after calibration persists new parameters for a user."""

    def on_parameters_updated(self, params: RecoveryParameters) -> None:
        ...
