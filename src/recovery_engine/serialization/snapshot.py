"""JSON-compatible dict conversion for ReadinessSnapshot and RecoveryParameters.

Used by the event store to persist calibration output and write-through
snapshots. All functions are pure (no I/O).
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from recovery_engine.models.enums import (
    AcwrMethod,
    ConfidenceLevel,
    MuscleCategory,
    MuscleGroup,
    RecoveryStatus,
    RiskZone,
    SnapshotSource,
)
from recovery_engine.models.fatigue import FatigueState
from recovery_engine.models.muscle import MuscleRecoveryState
from recovery_engine.models.parameters import ExerciseCalibration, RecoveryParameters
from recovery_engine.models.snapshot import ReadinessSnapshot
from recovery_engine.models.workload import WorkloadWindow

SNAPSHOT_FORMAT_VERSION = 1


def snapshot_to_dict(snapshot: ReadinessSnapshot) -> dict[str, Any]:
    """Convert a ReadinessSnapshot to a JSON-compatible dict."""
    return {
        "format_version": SNAPSHOT_FORMAT_VERSION,
        "user_id": snapshot.user_id,
        "as_of": snapshot.as_of.isoformat(),
        "score": snapshot.score,
        "risk_zone": snapshot.risk_zone.value,
        "load_delta": snapshot.load_delta,
        "category_multipliers": {c.value: m for c, m in snapshot.category_multipliers.items()},
        "workload": _workload_to_dict(snapshot.workload),
        "fatigue_state": _fatigue_to_dict(snapshot.fatigue_state),
        "muscle_states": {m.value: _muscle_to_dict(s) for m, s in snapshot.muscle_states.items()},
        "components": dict(snapshot.components),
        "calibration_stale": snapshot.calibration_stale,
        "parameters_calibrated_at": _iso(snapshot.parameters_calibrated_at),
        "source": snapshot.source.name,
    }


def snapshot_to_json_string(snapshot: ReadinessSnapshot, indent: int = 2) -> str:
    return json.dumps(snapshot_to_dict(snapshot), indent=indent)


def snapshot_from_dict(data: dict[str, Any]) -> ReadinessSnapshot:
    """Rebuild a ReadinessSnapshot from :func:`snapshot_to_dict` output."""
    return ReadinessSnapshot(
        user_id=data["user_id"],
        as_of=datetime.fromisoformat(data["as_of"]),
        score=data.get("score"),
        risk_zone=RiskZone(data["risk_zone"]),
        load_delta=float(data.get("load_delta", 0.0)),
        category_multipliers={
            MuscleCategory(c): float(m) for c, m in (data.get("category_multipliers") or {}).items()
        },
        workload=_workload_from_dict(data.get("workload")),
        fatigue_state=_fatigue_from_dict(data.get("fatigue_state")),
        muscle_states={
            MuscleGroup(m): _muscle_from_dict(s, MuscleGroup(m)) for m, s in (data.get("muscle_states") or {}).items()
        },
        components={k: float(v) for k, v in (data.get("components") or {}).items()},
        calibration_stale=bool(data.get("calibration_stale", False)),
        parameters_calibrated_at=_parse(data.get("parameters_calibrated_at")),
        source=SnapshotSource[data.get("source", SnapshotSource.COMPUTED.name)],
    )


def parameters_to_dict(params: RecoveryParameters) -> dict[str, Any]:
    """Convert RecoveryParameters to a JSON-compatible dict."""
    return {
        "user_id": params.user_id,
        "recovery_hours": {c.value: h for c, h in params.recovery_hours.items()},
        "fatigue_resistance": params.fatigue_resistance,
        "tau_fitness_days": params.tau_fitness_days,
        "tau_fatigue_days": params.tau_fatigue_days,
        "performance_baseline": params.performance_baseline,
        "last_calibrated_at": _iso(params.last_calibrated_at),
        "confidence": params.confidence,
        "confidence_level": params.confidence_level.value,
        "sessions_observed": params.sessions_observed,
        "exercise_calibrations": {
            ex_id: {"factor": cal.factor, "observations": cal.observations}
            for ex_id, cal in params.exercise_calibrations.items()
        },
    }


def parameters_from_dict(data: dict[str, Any]) -> RecoveryParameters:
    """Rebuild RecoveryParameters; missing keys fall back to population defaults."""
    defaults = RecoveryParameters.population_defaults(data["user_id"])
    hours = dict(defaults.recovery_hours)
    hours.update({MuscleCategory(c): float(h) for c, h in (data.get("recovery_hours") or {}).items()})
    return RecoveryParameters(
        user_id=data["user_id"],
        recovery_hours=hours,
        fatigue_resistance=float(data.get("fatigue_resistance", defaults.fatigue_resistance)),
        tau_fitness_days=float(data.get("tau_fitness_days", defaults.tau_fitness_days)),
        tau_fatigue_days=float(data.get("tau_fatigue_days", defaults.tau_fatigue_days)),
        performance_baseline=float(data.get("performance_baseline", defaults.performance_baseline)),
        last_calibrated_at=_parse(data.get("last_calibrated_at")),
        confidence=float(data.get("confidence", 0.0)),
        confidence_level=ConfidenceLevel(data.get("confidence_level", ConfidenceLevel.VERY_LOW.value)),
        sessions_observed=int(data.get("sessions_observed", 0)),
        exercise_calibrations={
            ex_id: ExerciseCalibration(
                exercise_id=ex_id,
                factor=float(cal.get("factor", 1.0)),
                observations=int(cal.get("observations", 0)),
            )
            for ex_id, cal in (data.get("exercise_calibrations") or {}).items()
        },
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _iso(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _workload_to_dict(workload: WorkloadWindow | None) -> dict[str, Any] | None:
    if workload is None:
        return None
    return {
        "acute": workload.acute,
        "chronic": workload.chronic,
        "ratio": workload.ratio,
        "zone": workload.zone.value,
        "method": workload.method.name,
        "history_days": workload.history_days,
        "monotony": workload.monotony,
        "strain": workload.strain,
    }


def _workload_from_dict(data: dict[str, Any] | None) -> WorkloadWindow | None:
    if not data:
        return None
    return WorkloadWindow(
        acute=float(data["acute"]),
        chronic=float(data["chronic"]),
        ratio=data.get("ratio"),
        zone=RiskZone(data["zone"]),
        method=AcwrMethod[data.get("method", AcwrMethod.ROLLING.name)],
        history_days=float(data.get("history_days", 0.0)),
        monotony=data.get("monotony"),
        strain=data.get("strain"),
    )


def _fatigue_to_dict(state: FatigueState | None) -> dict[str, Any] | None:
    if state is None:
        return None
    return {
        "as_of": state.as_of.isoformat(),
        "fitness": state.fitness,
        "fatigue": state.fatigue,
        "baseline": state.baseline,
        "first_event_at": _iso(state.first_event_at),
        "last_event_at": _iso(state.last_event_at),
    }


def _fatigue_from_dict(data: dict[str, Any] | None) -> FatigueState | None:
    if not data:
        return None
    return FatigueState(
        as_of=datetime.fromisoformat(data["as_of"]),
        fitness=float(data.get("fitness", 0.0)),
        fatigue=float(data.get("fatigue", 0.0)),
        baseline=float(data.get("baseline", 0.0)),
        first_event_at=_parse(data.get("first_event_at")),
        last_event_at=_parse(data.get("last_event_at")),
    )


def _muscle_to_dict(state: MuscleRecoveryState) -> dict[str, Any]:
    return {
        "muscle_group": state.muscle_group.value,
        "as_of": state.as_of.isoformat(),
        "fatigue": state.fatigue,
        "estimated_full_recovery_at": _iso(state.estimated_full_recovery_at),
        "tau_hours": state.tau_hours,
        "status": state.status.value,
        "last_trained_at": _iso(state.last_trained_at),
    }


def _muscle_from_dict(data: dict[str, Any], muscle: MuscleGroup | None = None) -> MuscleRecoveryState:
    return MuscleRecoveryState(
        muscle_group=muscle if muscle is not None else MuscleGroup(data["muscle_group"]),
        as_of=datetime.fromisoformat(data["as_of"]),
        fatigue=float(data["fatigue"]),
        estimated_full_recovery_at=_parse(data.get("estimated_full_recovery_at")),
        tau_hours=float(data["tau_hours"]),
        status=RecoveryStatus(data["status"]),
        last_trained_at=_parse(data.get("last_trained_at")),
    )
