"""Abstract base class for all readiness rules."""

from __future__ import annotations

from abc import ABC, abstractmethod

from recovery_engine.models.adjustment import ReadinessAdjustment
from recovery_engine.models.enums import Priority
from recovery_engine.models.inputs import ReadinessInputs


class ReadinessRule(ABC):
    """Base class for all rules feeding the readiness score.

    Each rule turns one derived signal into a ReadinessAdjustment. Rules are
    discovered automatically by the RuleRegistry and evaluated by the
    ReadinessEngine.

    Subclasses must define:
        rule_id: unique identifier (e.g. "acwr_risk")
        version: semantic version string
        priority: Priority tier (SAFETY, RECOVERY, PERFORMANCE, CONTEXT)
        required_data: list of ReadinessInputs field names needed by this rule
        evaluate(): the rule's decision logic
    """

    rule_id: str
    version: str
    priority: Priority
    required_data: list[str]

    def has_required_data(self, inputs: ReadinessInputs) -> bool:
        """Check that all required ReadinessInputs fields are present."""
        for field_name in self.required_data:
            value = getattr(inputs, field_name, None)
            if value is None:
                return False
            # Empty collections count as missing
            if isinstance(value, (list, tuple, dict)) and len(value) == 0:
                return False
        return True

    @abstractmethod
    def evaluate(self, inputs: ReadinessInputs) -> ReadinessAdjustment | None:
        """Evaluate this rule against the current readiness inputs.

        Returns a ReadinessAdjustment if the rule has something to say,
        or None if it does not apply.
        """
        ...
