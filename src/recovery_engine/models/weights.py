"""Tunable weighting functions for impulses and readiness scoring.

Both dataclasses are injectable into ReadinessEngine so deployments can
retune the model without touching the math. Defaults are engineering
choices calibrated against typical hypertrophy training volumes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from recovery_engine.models.enums import (
    BALLISTIC_MULTIPLIER,
    DEFAULT_RPE,
    ECCENTRIC_MULTIPLIER,
    IMPULSE_VOLUME_NORMALIZER,
    RPE_MULTIPLIER_CEILING,
    RPE_MULTIPLIER_FLOOR,
    RiskZone,
)


@dataclass(frozen=True)
class ImpulseWeights:
    """How a logged exercise turns into a training impulse.

    impulse = volume / volume_normalizer x m(RPE) x modality multipliers
    m(RPE) = clip(rpe_intercept + rpe_slope x (RPE - rpe_pivot) / rpe_span,
                  rpe_floor, rpe_ceiling)

    With the defaults RPE 6 maps to 0.3, RPE 8 to 0.9 and RPE 10 to 1.5.
    """

    volume_normalizer: float = IMPULSE_VOLUME_NORMALIZER
    rpe_intercept: float = 0.3
    rpe_slope: float = 1.2
    rpe_pivot: float = 6.0
    rpe_span: float = 4.0
    rpe_floor: float = RPE_MULTIPLIER_FLOOR
    rpe_ceiling: float = RPE_MULTIPLIER_CEILING
    default_rpe: float = DEFAULT_RPE
    eccentric_multiplier: float = ECCENTRIC_MULTIPLIER
    ballistic_multiplier: float = BALLISTIC_MULTIPLIER


def _default_zone_penalties() -> dict[RiskZone, float]:
    return {
        RiskZone.INSUFFICIENT_DATA: 0.0,
        RiskZone.UNDERTRAINING: 5.0,
        RiskZone.OPTIMAL: 0.0,
        RiskZone.CAUTION: 10.0,
        RiskZone.HIGH_RISK: 25.0,
    }


def _default_load_deltas() -> dict[RiskZone, float]:
    return {
        RiskZone.INSUFFICIENT_DATA: 0.0,
        RiskZone.UNDERTRAINING: 0.10,
        RiskZone.OPTIMAL: 0.05,
        RiskZone.CAUTION: -0.10,
        RiskZone.HIGH_RISK: -0.20,
    }


@dataclass(frozen=True)
class ReadinessWeights:
    """How the individual signals combine into the 0-100 readiness score.

    score = base
            + performance_cap x tanh(performance / performance_scale)
            - acwr_penalty[zone]
            - min(muscle_cap, muscle_weight x mean tracked muscle fatigue)
            - context penalty (<= context_cap)

    The result is clamped to [0, 100].
    """

    base_score: float = 50.0
    performance_scale: float = 40.0
    performance_cap: float = 20.0
    acwr_penalty: dict[RiskZone, float] = field(default_factory=_default_zone_penalties)
    muscle_weight: float = 0.3
    muscle_cap: float = 30.0
    context_cap: float = 10.0
    load_delta: dict[RiskZone, float] = field(default_factory=_default_load_deltas)
    not_ready_escalation_share: float = 0.5  # share of trained muscles NOT_READY
    category_slope: float = 0.5
    category_floor: float = 0.5
