"""Pure functions mapping persisted rows to canonical engine records.

Two training-row layouts exist in storage:

    v1  one row per exercise with a ``set_metadata`` JSON blob holding the
        per-set records ``[{"reps": 8, "weight": 225, "rpe": 8}, ...]`` and
        ``muscle_groups`` as a comma-separated string.
    v2  flat columns: ``sets``, ``reps``, ``load``, ``rpe``,
        ``primary_muscles`` list, modality flags.

Rows without ``schema_version`` are detected from their shape. Every
mapping validates the record and raises InvalidInput naming the offending
field. No I/O.
"""

from __future__ import annotations

import json
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Mapping

from recovery_engine.exceptions import InvalidInput
from recovery_engine.models.enums import MuscleGroup
from recovery_engine.models.events import ContextSample, TrainingEvent

CURRENT_SCHEMA_VERSION = 2

# Legacy free-text sleep quality -> 1-10 scale
_SLEEP_QUALITY_LABELS = {
    "poor": 2.5,
    "fair": 5.0,
    "good": 7.5,
    "excellent": 10.0,
}

# Legacy muscle names seen in v1 rows
_MUSCLE_ALIASES = {
    "pecs": MuscleGroup.CHEST,
    "lats": MuscleGroup.BACK,
    "upper_back": MuscleGroup.BACK,
    "delts": MuscleGroup.SHOULDERS,
    "abdominals": MuscleGroup.ABS,
    "core": MuscleGroup.ABS,
    "quadriceps": MuscleGroup.QUADS,
    "glute": MuscleGroup.GLUTES,
    "calf": MuscleGroup.CALVES,
    "lower back": MuscleGroup.LOWER_BACK,
}


def detect_schema_version(row: Mapping[str, Any]) -> int:
    """Schema version of a training row, explicit or inferred from its keys."""
    version = row.get("schema_version")
    if version is not None:
        try:
            return int(version)
        except (TypeError, ValueError) as exc:
            raise InvalidInput(f"Bad schema_version: {version!r}", field="schema_version") from exc
    if "set_metadata" in row:
        return 1
    return CURRENT_SCHEMA_VERSION


def map_training_row(row: Mapping[str, Any]) -> TrainingEvent:
    """Map a persisted training row of any known version to a TrainingEvent."""
    version = detect_schema_version(row)
    if version == 1:
        return _map_v1(row)
    if version == 2:
        return _map_v2(row)
    raise InvalidInput(f"Unsupported schema_version {version}", field="schema_version")


def event_to_row(event: TrainingEvent) -> dict[str, Any]:
    """Serialize a TrainingEvent to the current (v2) row layout."""
    return {
        "schema_version": CURRENT_SCHEMA_VERSION,
        "user_id": event.user_id,
        "timestamp": event.timestamp.isoformat(),
        "exercise_id": event.exercise_id,
        "primary_muscles": sorted(str(getattr(m, "value", m)) for m in event.muscle_groups),
        "sets": event.sets,
        "reps": event.reps,
        "load": event.load,
        "rpe": event.rpe,
        "is_eccentric": event.is_eccentric,
        "is_ballistic": event.is_ballistic,
        "set_duration_s": event.set_duration_s,
        "rest_interval_s": event.rest_interval_s,
        "session_id": event.session_id,
        "is_deleted": event.is_deleted,
    }


def map_context_row(row: Mapping[str, Any]) -> ContextSample:
    """Map a daily check-in row to a ContextSample. Missing fields stay None."""
    user_id = _require_str(row, "user_id")
    day = parse_date(row.get("date", row.get("day")), "date")
    return ContextSample(
        user_id=user_id,
        day=day,
        sleep_hours=_optional_float(row, "sleep_hours", 0.0, 24.0),
        sleep_quality=_sleep_quality(row.get("sleep_quality")),
        stress=_optional_float(row, "stress", 0.0, 10.0, alias="stress_level"),
        nutrition_quality=_optional_float(row, "nutrition_quality", 1.0, 10.0),
        soreness=_optional_float(row, "soreness", 0.0, 10.0),
    )


def context_to_row(sample: ContextSample) -> dict[str, Any]:
    return {
        "user_id": sample.user_id,
        "date": sample.day.isoformat(),
        "sleep_hours": sample.sleep_hours,
        "sleep_quality": sample.sleep_quality,
        "stress": sample.stress,
        "nutrition_quality": sample.nutrition_quality,
        "soreness": sample.soreness,
    }


def validate_event(event: TrainingEvent) -> TrainingEvent:
    """Run an already-built TrainingEvent through the same checks as a stored row."""
    return map_training_row(event_to_row(event))


def validate_sample(sample: ContextSample) -> ContextSample:
    """Run an already-built ContextSample through the same checks as a stored row."""
    return replace(map_context_row(context_to_row(sample)), notes=sample.notes)


def parse_timestamp(value: Any, field: str = "timestamp") -> datetime:
    """Parse an ISO-8601 string, epoch seconds or datetime into aware UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(float(value), tz=timezone.utc)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidInput(f"Malformed timestamp: {value!r}", field=field) from exc
    else:
        raise InvalidInput(f"Missing or malformed timestamp: {value!r}", field=field)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_date(value: Any, field: str = "date") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as exc:
            raise InvalidInput(f"Malformed date: {value!r}", field=field) from exc
    raise InvalidInput(f"Missing or malformed date: {value!r}", field=field)


# ---------------------------------------------------------------------------
# Version-specific mappers
# ---------------------------------------------------------------------------


def _map_v1(row: Mapping[str, Any]) -> TrainingEvent:
    """v1: aggregate the per-set blob into sets x mean reps x average load.

    Mean reps are rounded to a whole number (never below one when the
    sets hold any reps) and the load is chosen so that the
    event's volume equals the summed volume of the individual sets.
    """
    records = row.get("set_metadata")
    if isinstance(records, str):
        try:
            records = json.loads(records)
        except json.JSONDecodeError as exc:
            raise InvalidInput("set_metadata is not valid JSON", field="set_metadata") from exc
    if not isinstance(records, list):
        raise InvalidInput("set_metadata must be a list of set records", field="set_metadata")

    total_reps = 0
    total_volume = 0.0
    rpes: list[float] = []
    for record in records:
        if not isinstance(record, Mapping):
            raise InvalidInput("set record must be an object", field="set_metadata")
        reps = _number(record.get("reps", 0), "reps")
        weight = _number(record.get("weight", record.get("load", 0)), "load")
        if reps < 0:
            raise InvalidInput(f"Negative reps: {reps}", field="reps")
        if weight < 0:
            raise InvalidInput(f"Negative load: {weight}", field="load")
        total_reps += int(reps)
        total_volume += reps * weight
        if record.get("rpe") is not None:
            rpes.append(_validate_rpe(record["rpe"]))

    sets = len(records)
    # At least one rep per set whenever any were done, so load keeps the tonnage
    reps = max(1, round(total_reps / sets)) if sets and total_reps else 0
    load = total_volume / (sets * reps) if sets and reps else 0.0
    rpe = round(sum(rpes) / len(rpes) * 2) / 2 if rpes else None

    return TrainingEvent(
        user_id=_require_str(row, "user_id"),
        timestamp=parse_timestamp(row.get("performed_at", row.get("timestamp")), "performed_at"),
        exercise_id=_require_str(row, "exercise_id"),
        muscle_groups=_muscles(row.get("muscle_groups"), "muscle_groups"),
        sets=sets,
        reps=reps,
        load=load,
        rpe=rpe,
        is_eccentric=bool(row.get("is_eccentric", False)),
        is_ballistic=bool(row.get("is_ballistic", False)),
        session_id=_optional_str(row, "session_id"),
        is_deleted=row.get("deleted_at") is not None or bool(row.get("is_deleted", False)),
    )


def _map_v2(row: Mapping[str, Any]) -> TrainingEvent:
    sets = _number(row.get("sets"), "sets")
    reps = _number(row.get("reps"), "reps")
    load = _number(row.get("load"), "load")
    if sets < 0:
        raise InvalidInput(f"Negative sets: {sets}", field="sets")
    if reps < 0:
        raise InvalidInput(f"Negative reps: {reps}", field="reps")
    if load < 0:
        raise InvalidInput(f"Negative load: {load}", field="load")
    if int(sets) != sets:
        raise InvalidInput(f"sets must be a whole number, got {sets}", field="sets")
    if int(reps) != reps:
        raise InvalidInput(f"reps must be a whole number, got {reps}", field="reps")

    rpe = row.get("rpe")
    return TrainingEvent(
        user_id=_require_str(row, "user_id"),
        timestamp=parse_timestamp(row.get("timestamp"), "timestamp"),
        exercise_id=_require_str(row, "exercise_id"),
        muscle_groups=_muscles(row.get("primary_muscles", row.get("muscle_groups")), "primary_muscles"),
        sets=int(sets),
        reps=int(reps),
        load=float(load),
        rpe=_validate_rpe(rpe) if rpe is not None else None,
        is_eccentric=bool(row.get("is_eccentric", False)),
        is_ballistic=bool(row.get("is_ballistic", False)),
        set_duration_s=_optional_float(row, "set_duration_s", 0.0, None),
        rest_interval_s=_optional_float(row, "rest_interval_s", 0.0, None),
        session_id=_optional_str(row, "session_id"),
        is_deleted=bool(row.get("is_deleted", False)),
    )


# ---------------------------------------------------------------------------
# Internal extractors: each raises InvalidInput naming the field
# ---------------------------------------------------------------------------


def _number(value: Any, field: str) -> float:
    if isinstance(value, bool) or value is None:
        raise InvalidInput(f"{field} is required and must be numeric", field=field)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"{field} must be numeric, got {value!r}", field=field) from exc


def _validate_rpe(value: Any) -> float:
    rpe = _number(value, "rpe")
    if not 1.0 <= rpe <= 10.0:
        raise InvalidInput(f"RPE must be within 1-10, got {rpe}", field="rpe")
    if rpe * 2 != int(rpe * 2):
        raise InvalidInput(f"RPE must use half-point steps, got {rpe}", field="rpe")
    return rpe


def _require_str(row: Mapping[str, Any], key: str) -> str:
    value = row.get(key)
    if value is None or str(value).strip() == "":
        raise InvalidInput(f"{key} is required", field=key)
    return str(value)


def _optional_str(row: Mapping[str, Any], key: str) -> str | None:
    value = row.get(key)
    return str(value) if value not in (None, "") else None


def _optional_float(
    row: Mapping[str, Any],
    key: str,
    low: float,
    high: float | None,
    alias: str | None = None,
) -> float | None:
    value = row.get(key)
    if value is None and alias is not None:
        value = row.get(alias)
    if value is None:
        return None
    number = _number(value, key)
    if number < low or (high is not None and number > high):
        raise InvalidInput(f"{key}={number} outside [{low}, {high}]", field=key)
    return number


def _sleep_quality(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in _SLEEP_QUALITY_LABELS:
        return _SLEEP_QUALITY_LABELS[value.strip().lower()]
    number = _number(value, "sleep_quality")
    if not 1.0 <= number <= 10.0:
        raise InvalidInput(f"sleep_quality={number} outside [1, 10]", field="sleep_quality")
    return number


def _muscles(value: Any, field: str) -> frozenset[MuscleGroup]:
    if isinstance(value, str):
        names = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        names = list(value)
    else:
        raise InvalidInput(f"{field} is required", field=field)

    muscles: set[MuscleGroup] = set()
    for name in names:
        if isinstance(name, MuscleGroup):
            muscles.add(name)
            continue
        key = str(name).strip().lower()
        if not key:
            continue
        if key in _MUSCLE_ALIASES:
            muscles.add(_MUSCLE_ALIASES[key])
            continue
        try:
            muscles.add(MuscleGroup(key.replace(" ", "_")))
        except ValueError as exc:
            raise InvalidInput(f"Unknown muscle group: {name!r}", field=field) from exc
    if not muscles:
        raise InvalidInput(f"{field} must name at least one muscle group", field=field)
    return frozenset(muscles)
