"""Shared test fixtures: training events, histories and an in-memory store."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from event_store import EventStoreClient, InMemoryBackend
from recovery_engine.models.enums import MuscleGroup
from recovery_engine.models.events import ContextSample, TrainingEvent

UTC = timezone.utc


@pytest.fixture
def make_event() -> Callable[..., TrainingEvent]:
    """Factory for TrainingEvents. Defaults to bench press 4 x 8 @ 225 lb, RPE 8."""

    def _make(
        timestamp: datetime = datetime(2024, 1, 1, 10, 0, tzinfo=UTC),
        exercise_id: str = "bench_press",
        muscles: tuple[str, ...] = ("chest", "triceps"),
        sets: int = 4,
        reps: int = 8,
        load: float = 225.0,
        rpe: float | None = 8.0,
        user_id: str = "user-1",
        session_id: str | None = None,
        **kwargs: object,
    ) -> TrainingEvent:
        return TrainingEvent(
            user_id=user_id,
            timestamp=timestamp,
            exercise_id=exercise_id,
            muscle_groups=frozenset(MuscleGroup(m) for m in muscles),
            sets=sets,
            reps=reps,
            load=load,
            rpe=rpe,
            session_id=session_id,
            **kwargs,  # type: ignore[arg-type]
        )

    return _make


@pytest.fixture
def make_sample() -> Callable[..., ContextSample]:
    def _make(day: object, user_id: str = "user-1", **kwargs: object) -> ContextSample:
        return ContextSample(user_id=user_id, day=day, **kwargs)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def bench_press(make_event: Callable[..., TrainingEvent]) -> TrainingEvent:
    """Bench press 4 x 8 @ 225 lb at RPE 8, 2024-01-01 10:00 UTC."""
    return make_event()


@pytest.fixture
def history_start() -> datetime:
    return datetime(2024, 3, 1, 10, 0, tzinfo=UTC)


@pytest.fixture
def steady_history(
    make_event: Callable[..., TrainingEvent], history_start: datetime
) -> list[TrainingEvent]:
    """30 consecutive days of identical squat sessions at 10:00 (acute == chronic)."""
    return [
        make_event(
            timestamp=history_start + timedelta(days=i),
            exercise_id="back_squat",
            muscles=("quads", "glutes"),
            sets=3,
            reps=5,
            load=225.0,
            rpe=7.0,
            session_id=f"steady-{i}",
        )
        for i in range(30)
    ]


@pytest.fixture
def spiked_history(
    make_event: Callable[..., TrainingEvent], history_start: datetime
) -> list[TrainingEvent]:
    """21 steady days followed by 7 days at triple the volume."""
    return [
        make_event(
            timestamp=history_start + timedelta(days=i),
            exercise_id="back_squat",
            muscles=("quads", "glutes"),
            sets=3 if i < 21 else 9,
            reps=5,
            load=225.0,
            rpe=7.0,
            session_id=f"spike-{i}",
        )
        for i in range(28)
    ]


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def store(backend: InMemoryBackend) -> EventStoreClient:
    client = EventStoreClient(backend, timeout_s=2.0, base_backoff_s=0.0)
    yield client
    client.close()
