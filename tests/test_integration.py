"""End-to-end integration tests: ingestion → calibration → readiness.

Covers a lifter's month of mixed legacy and current rows, session deletion,
and the scheduler jobs running against a store file on disk.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

import scheduler.nightly as nightly
from event_store import EventStoreClient, InMemoryBackend
from recovery_engine import CalibrationService, ReadinessEngine
from recovery_engine.models.enums import (
    MuscleCategory,
    MuscleGroup,
    RecoveryStatus,
    RiskZone,
    SnapshotSource,
)

UTC = timezone.utc
START = datetime(2024, 5, 6, 18, 0, tzinfo=UTC)  # a Monday


def _push_day(day: int) -> list[dict]:
    """Current-schema rows for one push session."""
    at = START + timedelta(days=day)
    session = f"push-{day}"
    return [
        {
            "schema_version": 2,
            "user_id": "alex",
            "timestamp": at.isoformat(),
            "exercise_id": "bench_press",
            "primary_muscles": ["chest", "triceps", "shoulders"],
            "sets": 4,
            "reps": 6,
            "load": 205,
            "rpe": 8,
            "session_id": session,
        },
        {
            "schema_version": 2,
            "user_id": "alex",
            "timestamp": (at + timedelta(minutes=25)).isoformat(),
            "exercise_id": "dips",
            "primary_muscles": ["chest", "triceps"],
            "sets": 3,
            "reps": 10,
            "load": 180,
            "rpe": 9,
            "session_id": session,
        },
    ]


def _legacy_leg_day(day: int) -> dict:
    """Pre-migration row: per-set blob and comma-separated muscles."""
    return {
        "user_id": "alex",
        "performed_at": (START + timedelta(days=day)).isoformat(),
        "exercise_id": "back_squat",
        "muscle_groups": "quadriceps,glutes",
        "set_metadata": json.dumps([{"reps": 5, "weight": 275, "rpe": 8}] * 4),
        "session_id": f"legs-{day}",
    }


@pytest.fixture
def services(store):
    engine = ReadinessEngine(store)
    calibration = CalibrationService(store, clock=lambda: START + timedelta(days=28))
    calibration.add_listener(engine)
    store.add_listener(engine)
    store.add_listener(calibration)
    return engine, calibration


@pytest.fixture
def month_of_training(store, backend) -> None:
    """Four weeks: legacy leg rows in the backend, push days ingested live."""
    for week in range(4):
        backend.insert_training_row(_legacy_leg_day(7 * week + 1))
        backend.insert_training_row(_legacy_leg_day(7 * week + 4))
        for day in (0, 3):
            for row in _push_day(7 * week + day):
                store.record_training_event(row)
    store.record_context_sample(
        {"user_id": "alex", "date": "2024-06-02", "sleep_hours": 7.5, "sleep_quality": "good"}
    )


class TestEndToEndIntegration:
    def test_month_of_training(self, services, month_of_training, store) -> None:
        engine, calibration = services
        as_of = START + timedelta(days=27, hours=2)

        snapshot = engine.get_readiness("alex", as_of)
        assert snapshot.source == SnapshotSource.COMPUTED
        assert snapshot.has_score
        assert 0.0 <= snapshot.score <= 100.0
        assert snapshot.workload.ratio is not None
        assert snapshot.risk_zone != RiskZone.INSUFFICIENT_DATA
        assert MuscleGroup.QUADS in snapshot.muscle_states

        results = calibration.run_pending()
        params = results["alex"]
        assert params is not None
        assert params.sessions_observed == 16
        assert set(params.exercise_calibrations) >= {"bench_press", "back_squat"}

        recalibrated = engine.get_readiness("alex", as_of)
        assert recalibrated is not snapshot
        assert recalibrated.parameters_calibrated_at == params.last_calibrated_at

    def test_push_day_leaves_chest_not_ready(self, services, month_of_training) -> None:
        engine, _ = services
        after_push = START + timedelta(days=21, hours=2)
        chest = engine.get_muscle_recovery("alex", "chest", after_push)
        assert chest.status == RecoveryStatus.NOT_READY
        quads = engine.get_muscle_recovery("alex", MuscleGroup.QUADS, after_push)
        assert quads.fatigue < chest.fatigue

        snapshot = engine.get_readiness("alex", after_push)
        upper = snapshot.category_multipliers[MuscleCategory.UPPER]
        assert upper < snapshot.category_multipliers[MuscleCategory.LOWER]

    def test_session_efficiency(self, services, month_of_training) -> None:
        engine, _ = services
        bench, dips = engine.get_exercise_efficiency("push-21")
        assert bench.exercise_id == "bench_press"
        assert dips.fatigue_cost > 0
        # Dips follow bench on the same muscles, so they pay for it
        assert dips.sfr < bench.sfr

    def test_deleting_session_recomputes(self, services, month_of_training, store) -> None:
        engine, _ = services
        as_of = START + timedelta(days=21, hours=2)
        before = engine.get_readiness("alex", as_of)

        store.delete_session("push-21")
        after = engine.get_readiness("alex", as_of)

        assert after is not before
        assert after.muscle_states[MuscleGroup.CHEST].fatigue < before.muscle_states[MuscleGroup.CHEST].fatigue


class TestSchedulerJobs:
    @pytest.fixture
    def store_path(self, tmp_path, monkeypatch):
        path = tmp_path / "data" / "store.json"
        monkeypatch.setattr(nightly, "EVENT_STORE_PATH", path)
        return path

    def _seed(self, path, make_event, users=("alex",)) -> None:
        backend = InMemoryBackend()
        with EventStoreClient(backend) as client:
            for user_id in users:
                for day in range(6):
                    client.record_training_event(
                        make_event(
                            timestamp=START + timedelta(days=2 * day),
                            user_id=user_id,
                            session_id=f"{user_id}-{day}",
                        )
                    )
        path.parent.mkdir(parents=True, exist_ok=True)
        backend.save(path)

    def test_nightly_sweep_persists_parameters_and_snapshots(self, store_path, make_event) -> None:
        self._seed(store_path, make_event, users=("alex", "sam"))
        services = nightly.build_services()
        try:
            nightly.nightly_sweep_job(services)
        finally:
            services.store.close()

        reloaded = InMemoryBackend.load(store_path)
        for user_id in ("alex", "sam"):
            assert reloaded.select_parameters(user_id)["last_calibrated_at"] is not None
            assert len(reloaded.select_snapshots(user_id)) == 1

    def test_drain_without_pending_does_not_write(self, store_path) -> None:
        services = nightly.build_services()
        try:
            nightly.calibration_drain_job(services)
        finally:
            services.store.close()
        assert not store_path.exists()

    def test_drain_calibrates_queued_users(self, store_path, make_event) -> None:
        self._seed(store_path, make_event)
        services = nightly.build_services()
        try:
            services.calibration.request_calibration("alex")
            nightly.calibration_drain_job(services)
        finally:
            services.store.close()
        assert InMemoryBackend.load(store_path).select_parameters("alex") is not None
