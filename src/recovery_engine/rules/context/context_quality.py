"""CONTEXT rule: the day's sleep, stress and soreness.

Reference:
    Fullagar et al. (2015). Sleep and Athletic Performance. Sports Med
    45(Suppl 1):S161-S186.
"""

from __future__ import annotations

from recovery_engine.math.context import context_penalty
from recovery_engine.models.adjustment import ReadinessAdjustment
from recovery_engine.models.enums import Priority
from recovery_engine.models.inputs import ReadinessInputs
from recovery_engine.rules.base import ReadinessRule


class ContextQualityRule(ReadinessRule):
    """Lowers readiness after a poor night, a stressful day or heavy soreness."""

    rule_id = "context_quality"
    version = "1.0.0"
    priority = Priority.CONTEXT
    required_data = ["context"]

    def evaluate(self, inputs: ReadinessInputs) -> ReadinessAdjustment | None:
        penalty = context_penalty(inputs.context, inputs.weights.context_cap)  # type: ignore[arg-type]
        if penalty <= 0:
            return None  # Context is fine

        return ReadinessAdjustment(
            rule_id=self.rule_id,
            rule_version=self.version,
            priority=self.priority,
            component="context",
            score_delta=-penalty,
            explanation=(
                f"Context penalty {penalty:.1f} (recovery modifier "
                f"{inputs.context_modifier:.2f}). Ref: Fullagar et al. (2015)."
            ),
        )
