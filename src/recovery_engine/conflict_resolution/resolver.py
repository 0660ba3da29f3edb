"""Conflict resolver: turns many rule adjustments into one readiness decision."""

from __future__ import annotations

from recovery_engine.conflict_resolution.strategies import (
    MostConservativeWins,
    ResolutionStrategy,
)
from recovery_engine.models.adjustment import ReadinessAdjustment, ResolvedReadiness
from recovery_engine.models.weights import ReadinessWeights


class ConflictResolver:
    """Resolves rule adjustments with a pluggable strategy.

    Default is MostConservativeWins.
    """

    def __init__(self, strategy: ResolutionStrategy | None = None) -> None:
        self.strategy = strategy or MostConservativeWins()

    def resolve(
        self,
        adjustments: list[ReadinessAdjustment],
        weights: ReadinessWeights | None = None,
    ) -> ResolvedReadiness:
        """Resolve adjustments into the final score, zone and load delta."""
        return self.strategy.resolve(adjustments, weights or ReadinessWeights())
