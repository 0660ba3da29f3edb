"""PERFORMANCE rule: fitness-fatigue balance.

Positive predicted performance (fitness outweighs fatigue) raises
readiness, a fatigue-dominated state lowers it. The contribution saturates
smoothly at +/- performance_cap.

Reference:
    Banister et al. (1975). A systems model of training for athletic
    performance. Aust J Sports Med 7:57-61.
"""

from __future__ import annotations

import math

from recovery_engine.models.adjustment import ReadinessAdjustment
from recovery_engine.models.enums import Priority
from recovery_engine.models.inputs import ReadinessInputs
from recovery_engine.rules.base import ReadinessRule


class FitnessFatigueRule(ReadinessRule):
    """Adds the bounded performance contribution to the score."""

    rule_id = "fitness_fatigue"
    version = "1.0.0"
    priority = Priority.PERFORMANCE
    required_data = ["fatigue_state"]

    def evaluate(self, inputs: ReadinessInputs) -> ReadinessAdjustment | None:
        state = inputs.fatigue_state
        weights = inputs.weights
        performance = state.performance  # type: ignore[union-attr]
        delta = weights.performance_cap * math.tanh(performance / weights.performance_scale)

        return ReadinessAdjustment(
            rule_id=self.rule_id,
            rule_version=self.version,
            priority=self.priority,
            component="performance",
            score_delta=delta,
            explanation=(
                f"Fitness {state.fitness:.1f}, fatigue {state.fatigue:.1f}, "  # type: ignore[union-attr]
                f"performance {performance:+.1f}. Ref: Banister et al. (1975)."
            ),
        )
