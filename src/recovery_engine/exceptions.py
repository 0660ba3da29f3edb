"""Custom exception hierarchy for the recovery engine."""

from __future__ import annotations


class RecoveryEngineError(Exception):
    """Base exception for all recovery_engine errors."""


class InvalidInput(RecoveryEngineError, ValueError):
    """A record was rejected at the ingestion boundary.

    Raised for negative reps or load, out-of-range RPE, unknown muscle
    groups and malformed timestamps.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class UpstreamUnavailable(RecoveryEngineError):
    """A persistence call failed or timed out."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class CalibrationStale(RecoveryEngineError):
    """Calibration could not run; current parameters were kept.

    Advisory only. Readiness keeps working on the previous parameters.
    """

    def __init__(self, message: str, user_id: str | None = None) -> None:
        super().__init__(message)
        self.user_id = user_id


class RuleConfigurationError(RecoveryEngineError):
    """A readiness rule is declared inconsistently with where it lives.

    Raised at discovery time, e.g. for a rule whose priority differs from
    its tier package or that needs an input the engine never provides.
    """

    def __init__(self, message: str, rule_id: str | None = None) -> None:
        super().__init__(message)
        self.rule_id = rule_id
