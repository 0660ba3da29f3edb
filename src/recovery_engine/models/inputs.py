"""Frozen readiness inputs: everything a rule may look at for one evaluation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from recovery_engine.models.enums import MuscleGroup
from recovery_engine.models.events import ContextSample
from recovery_engine.models.fatigue import FatigueState
from recovery_engine.models.muscle import MuscleRecoveryState
from recovery_engine.models.parameters import RecoveryParameters
from recovery_engine.models.weights import ReadinessWeights
from recovery_engine.models.workload import WorkloadWindow


@dataclass(frozen=True)
class ReadinessInputs:
    """Immutable bundle of derived signals for one user at one hour.

    Built by the ReadinessEngine from the simulators and handed to every
    rule. Freezing prevents rules from mutating shared state.
    """

    user_id: str
    as_of: datetime
    params: RecoveryParameters
    weights: ReadinessWeights = field(default_factory=ReadinessWeights)

    workload: WorkloadWindow | None = None
    fatigue_state: FatigueState | None = None
    muscle_states: dict[MuscleGroup, MuscleRecoveryState] = field(default_factory=dict)

    # Optional daily context; None means training-only signals
    context: ContextSample | None = None
    context_modifier: float = 1.0
