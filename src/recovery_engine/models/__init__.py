"""Data models for the recovery engine."""

from recovery_engine.models.adjustment import ReadinessAdjustment, ResolvedReadiness
from recovery_engine.models.efficiency import ExerciseEfficiency
from recovery_engine.models.enums import (
    AcwrMethod,
    ConfidenceLevel,
    MuscleCategory,
    MuscleGroup,
    Priority,
    RecoveryStatus,
    RiskZone,
    SFRZone,
    SnapshotSource,
)
from recovery_engine.models.events import ContextSample, TrainingEvent
from recovery_engine.models.fatigue import FatigueSeries, FatigueState
from recovery_engine.models.inputs import ReadinessInputs
from recovery_engine.models.muscle import MuscleRecoveryState
from recovery_engine.models.parameters import ExerciseCalibration, RecoveryParameters
from recovery_engine.models.snapshot import ReadinessSnapshot
from recovery_engine.models.weights import ImpulseWeights, ReadinessWeights
from recovery_engine.models.workload import WorkloadWindow

__all__ = [
    "AcwrMethod",
    "ConfidenceLevel",
    "ContextSample",
    "ExerciseCalibration",
    "ExerciseEfficiency",
    "FatigueSeries",
    "FatigueState",
    "ImpulseWeights",
    "MuscleCategory",
    "MuscleGroup",
    "MuscleRecoveryState",
    "Priority",
    "ReadinessAdjustment",
    "ReadinessInputs",
    "ReadinessSnapshot",
    "ReadinessWeights",
    "RecoveryParameters",
    "RecoveryStatus",
    "ResolvedReadiness",
    "RiskZone",
    "SFRZone",
    "SnapshotSource",
    "TrainingEvent",
    "WorkloadWindow",
]
