"""Per-user calibrated recovery parameters."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from recovery_engine.models.enums import (
    DEFAULT_RECOVERY_HOURS,
    FATIGUE_RESISTANCE_PRIOR,
    MUSCLE_RECOVERY_SCALE,
    TAU_FATIGUE_DAYS,
    TAU_FITNESS_DAYS,
    ConfidenceLevel,
    MuscleCategory,
    MuscleGroup,
)


@dataclass(frozen=True)
class ExerciseCalibration:
    """Shrunk fatigue multiplier for a single exercise.

    ``factor`` scales the fatigue the exercise produces (1.0 = behaves
    like the user's average exercise).
    """

    exercise_id: str
    factor: float = 1.0
    observations: int = 0


@dataclass(frozen=True)
class RecoveryParameters:
    """Calibrated parameters for one user.

    Written only by the calibration layer; every simulator reads them.
    A freshly created instance carries population defaults with zero
    confidence.
    """

    user_id: str
    recovery_hours: dict[MuscleCategory, float] = field(
        default_factory=lambda: dict(DEFAULT_RECOVERY_HOURS)
    )
    fatigue_resistance: float = FATIGUE_RESISTANCE_PRIOR  # 0-100
    tau_fitness_days: float = TAU_FITNESS_DAYS
    tau_fatigue_days: float = TAU_FATIGUE_DAYS
    performance_baseline: float = 0.0

    last_calibrated_at: datetime | None = None
    confidence: float = 0.0  # 0-1
    confidence_level: ConfidenceLevel = ConfidenceLevel.VERY_LOW
    sessions_observed: int = 0
    exercise_calibrations: dict[str, ExerciseCalibration] = field(default_factory=dict)

    def recovery_hours_for(self, category: MuscleCategory) -> float:
        return self.recovery_hours.get(category, DEFAULT_RECOVERY_HOURS[category])

    def recovery_hours_for_muscle(self, muscle: MuscleGroup) -> float:
        """Category recovery hours scaled by the muscle's relative recovery speed."""
        return self.recovery_hours_for(muscle.category) * MUSCLE_RECOVERY_SCALE[muscle]

    def exercise_factor(self, exercise_id: str) -> float:
        calibration = self.exercise_calibrations.get(exercise_id)
        return calibration.factor if calibration is not None else 1.0

    @property
    def is_calibrated(self) -> bool:
        return self.last_calibrated_at is not None

    @classmethod
    def population_defaults(cls, user_id: str) -> RecoveryParameters:
        return cls(user_id=user_id)
