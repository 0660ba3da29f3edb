"""Readiness snapshot: the orchestrator's cached output."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from recovery_engine.models.enums import (
    MuscleCategory,
    MuscleGroup,
    RiskZone,
    SnapshotSource,
)
from recovery_engine.models.fatigue import FatigueState
from recovery_engine.models.muscle import MuscleRecoveryState
from recovery_engine.models.workload import WorkloadWindow


@dataclass(frozen=True)
class ReadinessSnapshot:
    """Daily readiness for one user at one hour.

    ``score`` is None and ``risk_zone`` is INSUFFICIENT_DATA when the user
    has no training history. ``components`` keeps the individual score
    contributions so a reading can be explained.
    """

    user_id: str
    as_of: datetime  # floored to the hour
    score: float | None
    risk_zone: RiskZone
    load_delta: float
    category_multipliers: dict[MuscleCategory, float] = field(default_factory=dict)

    workload: WorkloadWindow | None = None
    fatigue_state: FatigueState | None = None
    muscle_states: dict[MuscleGroup, MuscleRecoveryState] = field(default_factory=dict)
    components: dict[str, float] = field(default_factory=dict)

    calibration_stale: bool = False
    parameters_calibrated_at: datetime | None = None
    source: SnapshotSource = SnapshotSource.COMPUTED

    @property
    def has_score(self) -> bool:
        return self.score is not None
