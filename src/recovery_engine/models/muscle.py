"""Per-muscle recovery state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from recovery_engine.models.enums import MuscleGroup, RecoveryStatus


@dataclass(frozen=True)
class MuscleRecoveryState:
    """Remaining fatigue of one muscle group at ``as_of``.

    Attributes:
        fatigue: Remaining fatigue, 0-100 (100 = fully fatigued).
        estimated_full_recovery_at: When fatigue falls below the full
            recovery threshold; None when it already has.
        tau_hours: Decay time-constant used, after context adjustment.
        status: Three-bucket classification for display.
    """

    muscle_group: MuscleGroup
    as_of: datetime
    fatigue: float
    estimated_full_recovery_at: datetime | None
    tau_hours: float
    status: RecoveryStatus
    last_trained_at: datetime | None = None

    @property
    def recovery_pct(self) -> float:
        return 100.0 - self.fatigue
