"""Canonical input records: logged training events and daily context samples."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from recovery_engine.models.enums import MuscleCategory, MuscleGroup


@dataclass(frozen=True)
class TrainingEvent:
    """One exercise within one session, as logged by the user.

    Events are immutable. Soft-deleted sessions keep their events with
    ``is_deleted`` set so they stay auditable, but every aggregation
    skips them.
    """

    user_id: str
    timestamp: datetime  # timezone-aware, UTC
    exercise_id: str
    muscle_groups: frozenset[MuscleGroup]
    sets: int
    reps: int
    load: float  # External load in lb
    rpe: float | None = None  # 1-10 in half points, None when unrated

    is_eccentric: bool = False
    is_ballistic: bool = False
    set_duration_s: float | None = None
    rest_interval_s: float | None = None

    session_id: str | None = None
    is_deleted: bool = False

    @property
    def volume(self) -> float:
        """Tonnage of the exercise: sets x reps x load."""
        return self.sets * self.reps * self.load

    @property
    def categories(self) -> frozenset[MuscleCategory]:
        return frozenset(m.category for m in self.muscle_groups)


@dataclass(frozen=True)
class ContextSample:
    """Self-reported recovery context for one calendar day.

    Every field is optional; a missing value falls back to population
    behaviour rather than raising.
    """

    user_id: str
    day: date
    sleep_hours: float | None = None
    sleep_quality: float | None = None  # 1-10
    stress: float | None = None  # 0-10, perceived
    nutrition_quality: float | None = None  # 1-10
    soreness: float | None = None  # 0-10, whole body
    notes: tuple[str, ...] = field(default_factory=tuple)
