"""Strategies for combining rule adjustments into a readiness decision."""

from __future__ import annotations

from abc import ABC, abstractmethod

from recovery_engine.models.adjustment import ReadinessAdjustment, ResolvedReadiness
from recovery_engine.models.enums import Priority, RiskZone
from recovery_engine.models.weights import ReadinessWeights


class ResolutionStrategy(ABC):
    """Base class for adjustment combination strategies."""

    @abstractmethod
    def resolve(
        self, adjustments: list[ReadinessAdjustment], weights: ReadinessWeights
    ) -> ResolvedReadiness:
        """Combine adjustments into a score, risk zone and load delta."""
        ...


class MostConservativeWins(ResolutionStrategy):
    """Additive score with the most conservative risk zone.

    Score: base + sum of every score_delta, clamped to [0, 100].

    Risk zone: the SAFETY tier sets the zone. Lower tiers may only escalate
    it, and never out of INSUFFICIENT_DATA: without a workload ratio there
    is nothing to escalate from. Among candidate zones the most severe wins.

    Load delta: taken from the final zone, so a HIGH_RISK or CAUTION
    reading always asks for less load.
    """

    def resolve(
        self, adjustments: list[ReadinessAdjustment], weights: ReadinessWeights
    ) -> ResolvedReadiness:
        components: dict[str, float] = {}
        for adj in adjustments:
            components[adj.component] = components.get(adj.component, 0.0) + adj.score_delta

        raw = weights.base_score + sum(components.values())
        score = max(0.0, min(100.0, raw))

        safety_zones = [
            a.risk_zone
            for a in adjustments
            if a.priority == Priority.SAFETY and a.risk_zone is not None
        ]
        zone = max(safety_zones, key=lambda z: z.severity) if safety_zones else RiskZone.INSUFFICIENT_DATA

        escalations = [
            a for a in adjustments if a.priority != Priority.SAFETY and a.risk_zone is not None
        ]
        notes = [f"Base zone {zone.value} from SAFETY tier."]
        if zone != RiskZone.INSUFFICIENT_DATA:
            for adj in escalations:
                if adj.risk_zone.severity > zone.severity:  # type: ignore[union-attr]
                    zone = adj.risk_zone  # type: ignore[assignment]
                    notes.append(f"Escalated to {zone.value} by {adj.rule_id}.")

        load_delta = weights.load_delta.get(zone, 0.0)
        notes.append(f"Score {score:.1f} (raw {raw:.1f}), load delta {load_delta:+.2f}.")
        return ResolvedReadiness(
            score=score,
            risk_zone=zone,
            load_delta=load_delta,
            components=components,
            notes=" ".join(notes),
        )
