"""Rule output and the combined readiness decision."""

from __future__ import annotations

from dataclasses import dataclass, field

from recovery_engine.models.enums import Priority, RiskZone


@dataclass(frozen=True)
class ReadinessAdjustment:
    """A single rule's contribution to the readiness decision.

    ``score_delta`` is added to the base score. ``risk_zone`` is set only
    by rules that classify or escalate injury risk.
    """

    rule_id: str
    rule_version: str
    priority: Priority
    component: str
    score_delta: float = 0.0
    risk_zone: RiskZone | None = None
    explanation: str = ""


@dataclass(frozen=True)
class ResolvedReadiness:
    """Combined output of all adjustments for one evaluation."""

    score: float
    risk_zone: RiskZone
    load_delta: float
    components: dict[str, float] = field(default_factory=dict)
    notes: str = ""
