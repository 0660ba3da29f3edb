"""Stimulus-to-fatigue efficiency of a single exercise."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from recovery_engine.models.enums import SFRZone


@dataclass(frozen=True)
class ExerciseEfficiency:
    """SFR of one exercise within a session.

    ``fatigue_cost`` is the fatigue the exercise added on top of the state
    immediately before it started. ``sfr`` and ``zone`` are None when that
    cost is zero.
    """

    exercise_id: str
    timestamp: datetime
    effective_volume: float
    fatigue_cost: float
    sfr: float | None
    zone: SFRZone | None

    @property
    def is_junk_volume(self) -> bool:
        return self.zone == SFRZone.JUNK_VOLUME
