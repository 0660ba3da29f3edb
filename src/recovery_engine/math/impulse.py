"""Training impulse: how much load a single logged exercise represents.

References:
    - Banister (1991): impulse-response training load
    - Helms et al. (2016): RPE-based load autoregulation in resistance training
    - Hyldahl & Hubal (2014): eccentric exercise and muscle damage
"""

from __future__ import annotations

from recovery_engine.models.events import TrainingEvent
from recovery_engine.models.weights import ImpulseWeights

DEFAULT_IMPULSE_WEIGHTS = ImpulseWeights()


def rpe_multiplier(rpe: float | None, weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS) -> float:
    """Effort multiplier for a set performed at *rpe*.

    Unrated events are treated as ``weights.default_rpe``.
    """
    effective = weights.default_rpe if rpe is None else rpe
    raw = weights.rpe_intercept + weights.rpe_slope * (effective - weights.rpe_pivot) / weights.rpe_span
    return max(weights.rpe_floor, min(weights.rpe_ceiling, raw))


def modality_multiplier(
    event: TrainingEvent, weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS
) -> float:
    """Extra fatigue for eccentric-emphasis and ballistic work."""
    multiplier = 1.0
    if event.is_eccentric:
        multiplier *= weights.eccentric_multiplier
    if event.is_ballistic:
        multiplier *= weights.ballistic_multiplier
    return multiplier


def training_impulse(
    event: TrainingEvent, weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS
) -> float:
    """Training impulse *w* of one event.

    w = volume / normalizer x m(RPE) x modality multipliers

    Example:
        Bench press 4 x 8 @ 225 lb at RPE 8 = 7200 lb x 0.9 -> w = 6.48
    """
    if event.volume <= 0:
        return 0.0
    return (
        event.volume
        / weights.volume_normalizer
        * rpe_multiplier(event.rpe, weights)
        * modality_multiplier(event, weights)
    )
