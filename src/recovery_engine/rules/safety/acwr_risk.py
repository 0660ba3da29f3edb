"""SAFETY rule: injury risk from the Acute:Chronic Workload Ratio.

Reference:
    Gabbett (2016). The training-injury prevention paradox: should athletes
    be training smarter and harder? Br J Sports Med 50(5):273-280.

Zones (inclusive lower bound):
    ACWR >= 1.5     -> HIGH_RISK: large penalty, cut load 20 %
    ACWR 1.3-1.5    -> CAUTION: moderate penalty, cut load 10 %
    ACWR 0.8-1.3    -> OPTIMAL: no penalty, progress 5 %
    ACWR < 0.8      -> UNDERTRAINING: small penalty, progress 10 %
    no ratio        -> INSUFFICIENT_DATA: no penalty, hold load
"""

from __future__ import annotations

from recovery_engine.models.adjustment import ReadinessAdjustment
from recovery_engine.models.enums import Priority, RiskZone
from recovery_engine.models.inputs import ReadinessInputs
from recovery_engine.rules.base import ReadinessRule


class AcwrRiskRule(ReadinessRule):
    """Classifies injury risk and penalises readiness outside the sweet spot."""

    rule_id = "acwr_risk"
    version = "1.0.0"
    priority = Priority.SAFETY
    required_data = ["workload"]

    def evaluate(self, inputs: ReadinessInputs) -> ReadinessAdjustment | None:
        workload = inputs.workload  # guaranteed not None by required_data
        zone = workload.zone  # type: ignore[union-attr]
        penalty = inputs.weights.acwr_penalty.get(zone, 0.0)

        if zone == RiskZone.INSUFFICIENT_DATA:
            explanation = "Less than two weeks of chronic load; ACWR not assessed."
        else:
            explanation = (
                f"ACWR={workload.ratio:.2f} ({zone.value}). "  # type: ignore[union-attr]
                f"Ref: Gabbett (2016)."
            )

        return ReadinessAdjustment(
            rule_id=self.rule_id,
            rule_version=self.version,
            priority=self.priority,
            component="acwr",
            score_delta=-penalty,
            risk_zone=zone,
            explanation=explanation,
        )
