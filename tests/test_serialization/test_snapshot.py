"""Tests for snapshot and parameter serialization."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from recovery_engine.engine import ReadinessEngine
from recovery_engine.models.enums import ConfidenceLevel, MuscleCategory, SnapshotSource
from recovery_engine.models.parameters import ExerciseCalibration, RecoveryParameters
from recovery_engine.serialization import (
    parameters_from_dict,
    parameters_to_dict,
    snapshot_from_dict,
    snapshot_to_dict,
    snapshot_to_json_string,
)
from recovery_engine.serialization.snapshot import SNAPSHOT_FORMAT_VERSION


@pytest.fixture
def computed_snapshot(steady_history, store):
    engine = ReadinessEngine(store)
    as_of = steady_history[-1].timestamp + timedelta(hours=12)
    params = RecoveryParameters.population_defaults("user-1")
    return engine.compute_snapshot("user-1", as_of, steady_history, [], params)


class TestSnapshotSerialization:
    def test_round_trip(self, computed_snapshot) -> None:
        restored = snapshot_from_dict(snapshot_to_dict(computed_snapshot))
        assert restored == computed_snapshot

    def test_survives_json(self, computed_snapshot) -> None:
        data = json.loads(snapshot_to_json_string(computed_snapshot))
        assert data["format_version"] == SNAPSHOT_FORMAT_VERSION
        assert data["risk_zone"] == "optimal"
        assert data["source"] == "COMPUTED"
        assert snapshot_from_dict(data) == computed_snapshot

    def test_muscles_keyed_by_name(self, computed_snapshot) -> None:
        data = snapshot_to_dict(computed_snapshot)
        assert set(data["muscle_states"]) == {"quads", "glutes"}
        assert data["muscle_states"]["quads"]["muscle_group"] == "quads"

    def test_insufficient_snapshot(self, store) -> None:
        engine = ReadinessEngine(store)
        as_of = datetime(2024, 3, 1, 12, tzinfo=timezone.utc)
        empty = engine.compute_snapshot("user-1", as_of, [], [], RecoveryParameters.population_defaults("user-1"))
        data = snapshot_to_dict(empty)
        assert data["score"] is None
        assert data["workload"] is None
        restored = snapshot_from_dict(data)
        assert restored.source == SnapshotSource.NO_HISTORY
        assert restored == empty


class TestParameterSerialization:
    def test_round_trip(self) -> None:
        params = RecoveryParameters(
            user_id="user-1",
            recovery_hours={MuscleCategory.UPPER: 40.0, MuscleCategory.LOWER: 80.0},
            fatigue_resistance=62.5,
            tau_fatigue_days=2.4,
            last_calibrated_at=datetime(2024, 3, 1, 3, 0, tzinfo=timezone.utc),
            confidence=0.4,
            confidence_level=ConfidenceLevel.MEDIUM,
            sessions_observed=10,
            exercise_calibrations={"bench_press": ExerciseCalibration("bench_press", 0.92, 6)},
        )
        assert parameters_from_dict(json.loads(json.dumps(parameters_to_dict(params)))) == params

    def test_missing_keys_use_defaults(self) -> None:
        params = parameters_from_dict({"user_id": "user-9"})
        assert params == RecoveryParameters.population_defaults("user-9")

    def test_partial_recovery_hours(self) -> None:
        params = parameters_from_dict({"user_id": "u", "recovery_hours": {"upper": 36.0}})
        assert params.recovery_hours_for(MuscleCategory.UPPER) == 36.0
        assert params.recovery_hours_for(MuscleCategory.LOWER) == 72.0
