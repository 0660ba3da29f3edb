"""Per-muscle exponential fatigue decay and time-to-recovery.

Each event touching a muscle leaves an initial fatigue F0 that decays as

    remaining(t) = F0 * exp(-elapsed(t_event, t) / tau_muscle)

Contributions from several events add up and the total is capped at 100.
The time constant is derived from the muscle's recovery hours so that a
fully fatigued muscle (100) crosses the 5 % threshold exactly at that many
hours:

    tau_muscle = recovery_hours x muscle_scale / ln(100 / 5)

``elapsed`` is wall-clock hours weighted by the daily context modifier, so
a well-rested day counts for more than an hour of recovery per hour and a
poor day for less. Synergists an event does not list as trained receive a
fixed share of its F0 (see ``SPILLOVER``).

References:
    - Schoenfeld & Grgic (2018). Evidence-based guidelines for resistance
      training volume. Strength Cond J 40(4):107-112.
    - Damas et al. (2016). Resistance training-induced changes in integrated
      myofibrillar protein synthesis. J Physiol 594(18):5209-5222.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
from typing import Mapping, Sequence

from recovery_engine.math.fitness_fatigue import resistance_scale
from recovery_engine.math.impulse import (
    DEFAULT_IMPULSE_WEIGHTS,
    modality_multiplier,
    rpe_multiplier,
)
from recovery_engine.models.enums import (
    FATIGUE_VOLUME_REFERENCE,
    FULL_RECOVERY_THRESHOLD,
    MAX_MUSCLE_FATIGUE,
    MUSCLE_HISTORY_HORIZON_DAYS,
    PARTIAL_FATIGUE_MAX,
    READY_FATIGUE_MAX,
    RECOVERY_DECAY_LOG_RATIO,
    SPILLOVER,
    MuscleGroup,
    RecoveryStatus,
)
from recovery_engine.models.events import TrainingEvent
from recovery_engine.models.muscle import MuscleRecoveryState
from recovery_engine.models.parameters import RecoveryParameters
from recovery_engine.models.weights import ImpulseWeights

_SECONDS_PER_HOUR = 3600.0


def tau_from_recovery_hours(recovery_hours: float, context_modifier: float = 1.0) -> float:
    """Decay time-constant in hours.

    A context modifier above 1.0 (good sleep, low stress) shortens tau.
    """
    return recovery_hours / RECOVERY_DECAY_LOG_RATIO / context_modifier


def effective_hours(
    start: datetime, end: datetime, modifiers: Mapping[date, float] | None = None
) -> float:
    """Recovery hours between *start* and *end*.

    Every calendar day is weighted by its own modifier (1.0 where the day
    has none), so the result never decreases as *end* moves forward.
    """
    if end <= start:
        return 0.0
    if not modifiers:
        return (end - start).total_seconds() / _SECONDS_PER_HOUR

    total = 0.0
    cursor = start
    while cursor < end:
        midnight = datetime.combine(
            cursor.date() + timedelta(days=1), time.min, tzinfo=cursor.tzinfo
        )
        segment_end = min(end, midnight)
        hours = (segment_end - cursor).total_seconds() / _SECONDS_PER_HOUR
        total += hours * modifiers.get(cursor.date(), 1.0)
        cursor = segment_end
    return total


def spillover_fraction(event: TrainingEvent, muscle: MuscleGroup) -> float:
    """Share of the event's F0 that lands on *muscle*.

    1.0 for a muscle the event trains, otherwise the largest spillover
    from any of its trained muscles (0.0 if none reaches it).
    """
    if muscle in event.muscle_groups:
        return 1.0
    return max(
        (SPILLOVER.get(source, {}).get(muscle, 0.0) for source in event.muscle_groups),
        default=0.0,
    )


def affected_muscles(event: TrainingEvent) -> set[MuscleGroup]:
    """Muscles the event trains plus every muscle it spills over to."""
    affected = set(event.muscle_groups)
    for source in event.muscle_groups:
        affected.update(SPILLOVER.get(source, {}))
    return affected


def initial_fatigue(
    event: TrainingEvent,
    params: RecoveryParameters | None = None,
    weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS,
) -> float:
    """Fatigue (0-100) an event leaves on each muscle it trains.

    F0 = min(100, volume / 10000 x m(RPE) x 100 x modality x resistance x exercise factor)

    Example:
        Bench press 4 x 8 @ 225 lb at RPE 8 -> 0.72 x 0.9 x 100 = 64.8
    """
    if event.volume <= 0:
        return 0.0
    raw = event.volume / FATIGUE_VOLUME_REFERENCE * rpe_multiplier(event.rpe, weights) * 100.0
    raw *= modality_multiplier(event, weights)
    if params is not None:
        raw *= resistance_scale(params.fatigue_resistance)
        raw *= params.exercise_factor(event.exercise_id)
    return min(MAX_MUSCLE_FATIGUE, raw)


def classify_recovery(fatigue: float) -> RecoveryStatus:
    """Three-bucket classification of remaining fatigue."""
    if fatigue <= READY_FATIGUE_MAX:
        return RecoveryStatus.READY
    if fatigue <= PARTIAL_FATIGUE_MAX:
        return RecoveryStatus.PARTIALLY_RECOVERED
    return RecoveryStatus.NOT_READY


def raw_muscle_fatigue(
    events: Sequence[TrainingEvent],
    muscle: MuscleGroup,
    as_of: datetime,
    tau_hours: float,
    params: RecoveryParameters | None = None,
    weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS,
    inclusive: bool = True,
    modifiers: Mapping[date, float] | None = None,
) -> float:
    """Uncapped sum of decayed contributions to *muscle* at *as_of*.

    *tau_hours* is the muscle's neutral time constant; *modifiers* bend the
    elapsed time day by day. With ``inclusive=False`` an event exactly at
    *as_of* is left out, which gives the state immediately before that event.
    """
    total = 0.0
    for event in events:
        if event.is_deleted:
            continue
        if event.timestamp > as_of or (not inclusive and event.timestamp == as_of):
            continue
        fraction = spillover_fraction(event, muscle)
        if fraction <= 0:
            continue
        hours = effective_hours(event.timestamp, as_of, modifiers)
        total += initial_fatigue(event, params, weights) * fraction * math.exp(-hours / tau_hours)
    return total


def estimate_full_recovery(raw_fatigue: float, as_of: datetime, tau_hours: float) -> datetime | None:
    """When fatigue decays below the full-recovery threshold, or None if it already has."""
    if raw_fatigue <= FULL_RECOVERY_THRESHOLD:
        return None
    hours = tau_hours * math.log(raw_fatigue / FULL_RECOVERY_THRESHOLD)
    return as_of + timedelta(hours=hours)


def muscle_state(
    events: Sequence[TrainingEvent],
    muscle: MuscleGroup,
    as_of: datetime,
    params: RecoveryParameters | None = None,
    weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS,
    modifiers: Mapping[date, float] | None = None,
) -> MuscleRecoveryState:
    """Recovery state of one muscle. An untrained muscle is fully recovered.

    The reported tau and the full-recovery projection assume today's
    modifier holds from *as_of* onwards.
    """
    if params is None:
        params = RecoveryParameters.population_defaults("")
    base_tau = tau_from_recovery_hours(params.recovery_hours_for_muscle(muscle))
    raw = raw_muscle_fatigue(events, muscle, as_of, base_tau, params, weights, modifiers=modifiers)
    fatigue = min(MAX_MUSCLE_FATIGUE, raw)
    tau = base_tau / (modifiers or {}).get(as_of.date(), 1.0)

    trained = [
        e.timestamp
        for e in events
        if not e.is_deleted and muscle in e.muscle_groups and e.timestamp <= as_of
    ]
    return MuscleRecoveryState(
        muscle_group=muscle,
        as_of=as_of,
        fatigue=fatigue,
        estimated_full_recovery_at=estimate_full_recovery(raw, as_of, tau),
        tau_hours=tau,
        status=classify_recovery(fatigue),
        last_trained_at=max(trained) if trained else None,
    )


def compute_muscle_states(
    events: Sequence[TrainingEvent],
    as_of: datetime,
    params: RecoveryParameters | None = None,
    weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS,
    modifiers: Mapping[date, float] | None = None,
) -> dict[MuscleGroup, MuscleRecoveryState]:
    """States for every muscle trained, directly or through spillover, within the horizon."""
    horizon = as_of - timedelta(days=MUSCLE_HISTORY_HORIZON_DAYS)
    recent = [
        e for e in events if not e.is_deleted and horizon <= e.timestamp <= as_of
    ]
    touched = sorted({m for e in recent for m in affected_muscles(e)}, key=lambda m: m.value)
    return {
        muscle: muscle_state(recent, muscle, as_of, params, weights, modifiers)
        for muscle in touched
    }
