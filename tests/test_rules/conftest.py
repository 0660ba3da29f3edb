"""Fixtures for building ReadinessInputs by hand."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from recovery_engine.math.muscle_recovery import classify_recovery
from recovery_engine.math.training_load import classify_acwr
from recovery_engine.models.enums import MuscleGroup
from recovery_engine.models.fatigue import FatigueState
from recovery_engine.models.inputs import ReadinessInputs
from recovery_engine.models.muscle import MuscleRecoveryState
from recovery_engine.models.parameters import RecoveryParameters
from recovery_engine.models.workload import WorkloadWindow

AS_OF = datetime(2024, 3, 30, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_workload() -> Callable[[float | None], WorkloadWindow]:
    def _make(ratio: float | None) -> WorkloadWindow:
        chronic = 10000.0
        acute = chronic * ratio if ratio is not None else 4000.0
        return WorkloadWindow(
            acute=acute,
            chronic=chronic,
            ratio=ratio,
            zone=classify_acwr(ratio),
            history_days=30.0 if ratio is not None else 5.0,
        )

    return _make


@pytest.fixture
def make_muscle() -> Callable[..., MuscleRecoveryState]:
    def _make(muscle: str, fatigue: float) -> MuscleRecoveryState:
        return MuscleRecoveryState(
            muscle_group=MuscleGroup(muscle),
            as_of=AS_OF,
            fatigue=fatigue,
            estimated_full_recovery_at=AS_OF + timedelta(hours=12) if fatigue > 5 else None,
            tau_hours=16.0,
            status=classify_recovery(fatigue),
        )

    return _make


@pytest.fixture
def make_inputs() -> Callable[..., ReadinessInputs]:
    def _make(**kwargs: object) -> ReadinessInputs:
        return ReadinessInputs(
            user_id="user-1",
            as_of=AS_OF,
            params=RecoveryParameters.population_defaults("user-1"),
            **kwargs,  # type: ignore[arg-type]
        )

    return _make


@pytest.fixture
def make_fatigue_state() -> Callable[[float, float], FatigueState]:
    def _make(fitness: float, fatigue: float) -> FatigueState:
        return FatigueState(
            as_of=AS_OF,
            fitness=fitness,
            fatigue=fatigue,
            first_event_at=AS_OF - timedelta(days=30),
            last_event_at=AS_OF - timedelta(hours=3),
        )

    return _make
