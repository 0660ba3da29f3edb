"""Recovery engine: readiness, muscle recovery and training efficiency from logged sets."""

from recovery_engine.cache import SnapshotCache
from recovery_engine.calibration import CalibrationService
from recovery_engine.engine import ReadinessEngine
from recovery_engine.exceptions import (
    CalibrationStale,
    InvalidInput,
    RecoveryEngineError,
    RuleConfigurationError,
    UpstreamUnavailable,
)

__all__ = [
    "CalibrationService",
    "CalibrationStale",
    "InvalidInput",
    "ReadinessEngine",
    "RecoveryEngineError",
    "RuleConfigurationError",
    "SnapshotCache",
    "UpstreamUnavailable",
]
