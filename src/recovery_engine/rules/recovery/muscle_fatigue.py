"""RECOVERY rule: residual per-muscle fatigue.

Readiness drops in proportion to the mean remaining fatigue of the muscles
carrying fatigue within the recovery horizon, directly trained or
reached through spillover. When at least half of them are still
NOT_READY the rule escalates a benign workload zone to CAUTION.

Reference:
    Schoenfeld & Grgic (2018). Evidence-based guidelines for resistance
    training volume to maximize muscle hypertrophy. Strength Cond J
    40(4):107-112.
"""

from __future__ import annotations

import numpy as np

from recovery_engine.models.adjustment import ReadinessAdjustment
from recovery_engine.models.enums import Priority, RecoveryStatus, RiskZone
from recovery_engine.models.inputs import ReadinessInputs
from recovery_engine.rules.base import ReadinessRule


class MuscleFatigueRule(ReadinessRule):
    """Penalises residual muscle fatigue and escalates risk when most muscles are spent."""

    rule_id = "muscle_fatigue"
    version = "1.0.0"
    priority = Priority.RECOVERY
    required_data = ["muscle_states"]

    def evaluate(self, inputs: ReadinessInputs) -> ReadinessAdjustment | None:
        states = list(inputs.muscle_states.values())
        weights = inputs.weights

        mean_fatigue = float(np.mean([s.fatigue for s in states]))
        penalty = min(weights.muscle_cap, weights.muscle_weight * mean_fatigue)

        not_ready = [s for s in states if s.status == RecoveryStatus.NOT_READY]
        share = len(not_ready) / len(states)
        escalate = share >= weights.not_ready_escalation_share

        explanation = (
            f"Mean residual fatigue {mean_fatigue:.0f}/100 across {len(states)} muscles, "
            f"{len(not_ready)} not ready."
        )
        if escalate:
            explanation += " Most trained muscles are not recovered; treating risk as caution."

        return ReadinessAdjustment(
            rule_id=self.rule_id,
            rule_version=self.version,
            priority=self.priority,
            component="muscle",
            score_delta=-penalty,
            risk_zone=RiskZone.CAUTION if escalate else None,
            explanation=explanation,
        )
