"""Stimulus-to-fatigue ratio (SFR) of individual exercises.

    SFR = effective_volume / fatigue_cost

Effective volume weights tonnage by proximity to failure. Fatigue cost is
the fatigue the exercise added given the state immediately before it
started, so an exercise performed on already-fatigued muscles costs more.
Exercises are processed in temporal order and each one only sees what
happened before it: a later exercise never changes an earlier score.

References:
    - Israetel, Hoffmann & Smith (2019). Scientific Principles of Hypertrophy
      Training. Renaissance Periodization.
    - Helms et al. (2018). RPE vs. percentage 1RM loading in periodized
      programs. Front Physiol 9:247.
"""

from __future__ import annotations

from datetime import date
from typing import Mapping, Sequence

from recovery_engine.math.fitness_fatigue import fatigue_before
from recovery_engine.math.impulse import DEFAULT_IMPULSE_WEIGHTS
from recovery_engine.math.muscle_recovery import (
    initial_fatigue,
    raw_muscle_fatigue,
    tau_from_recovery_hours,
)
from recovery_engine.models.efficiency import ExerciseEfficiency
from recovery_engine.models.enums import (
    DEFAULT_RPE,
    MAX_MUSCLE_FATIGUE,
    PROXIMITY_WEIGHT_FAR,
    PROXIMITY_WEIGHT_MODERATE,
    PROXIMITY_WEIGHT_NEAR_FAILURE,
    SFR_EXCELLENT,
    SFR_JUNK,
    SFR_LOCAL_COMPOUNDING,
    SFR_SYSTEMIC_COMPOUNDING,
    SYSTEMIC_FATIGUE_REFERENCE,
    SFRZone,
)
from recovery_engine.models.events import TrainingEvent
from recovery_engine.models.parameters import RecoveryParameters
from recovery_engine.models.weights import ImpulseWeights


def proximity_weight(rpe: float | None) -> float:
    """Stimulus weight by proximity to failure. Unrated sets count as RPE 7."""
    effective = DEFAULT_RPE if rpe is None else rpe
    if effective >= 9:
        return PROXIMITY_WEIGHT_NEAR_FAILURE
    if effective >= 7:
        return PROXIMITY_WEIGHT_MODERATE
    return PROXIMITY_WEIGHT_FAR


def effective_volume(event: TrainingEvent) -> float:
    return event.volume * proximity_weight(event.rpe)


def classify_sfr(sfr: float | None) -> SFRZone | None:
    """> 200 excellent, 50-200 acceptable, < 50 junk volume."""
    if sfr is None:
        return None
    if sfr > SFR_EXCELLENT:
        return SFRZone.EXCELLENT
    if sfr >= SFR_JUNK:
        return SFRZone.ACCEPTABLE
    return SFRZone.JUNK_VOLUME


def fatigue_cost(
    event: TrainingEvent,
    prior_events: Sequence[TrainingEvent],
    params: RecoveryParameters | None = None,
    weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS,
    modifiers: Mapping[date, float] | None = None,
) -> float:
    """Incremental fatigue of *event* given everything in *prior_events*.

    cost = F0 x (1 + 0.5 x local_prior / 100 + 0.25 x systemic_prior)

    local_prior is the mean pre-existing fatigue over the event's muscles,
    systemic_prior the Banister fatigue just before the event normalised
    to [0, 1]. Local fatigue decays with the same daily context
    *modifiers* the muscle recovery states use.
    """
    base = initial_fatigue(event, params, weights)
    if base <= 0:
        return 0.0
    if params is None:
        params = RecoveryParameters.population_defaults(event.user_id)

    local_levels = []
    for muscle in event.muscle_groups:
        tau = tau_from_recovery_hours(params.recovery_hours_for_muscle(muscle))
        level = raw_muscle_fatigue(
            prior_events,
            muscle,
            event.timestamp,
            tau,
            params,
            weights,
            inclusive=False,
            modifiers=modifiers,
        )
        local_levels.append(min(MAX_MUSCLE_FATIGUE, level))
    local_prior = sum(local_levels) / len(local_levels) if local_levels else 0.0

    systemic = fatigue_before(prior_events, event.timestamp, params, weights)
    systemic_prior = max(0.0, min(1.0, systemic / SYSTEMIC_FATIGUE_REFERENCE))

    return base * (
        1.0
        + SFR_LOCAL_COMPOUNDING * local_prior / MAX_MUSCLE_FATIGUE
        + SFR_SYSTEMIC_COMPOUNDING * systemic_prior
    )


def analyze_session(
    session_events: Sequence[TrainingEvent],
    history: Sequence[TrainingEvent] = (),
    params: RecoveryParameters | None = None,
    weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS,
    modifiers: Mapping[date, float] | None = None,
) -> list[ExerciseEfficiency]:
    """Score every exercise of a session in temporal order.

    Args:
        session_events: Exercises of the session, in any order.
        history: Earlier events of the same user. Events that belong to
            the session are ignored here.
        modifiers: Daily recovery-speed multipliers, see
            ``recovery_engine.math.context.daily_modifiers``.

    Returns:
        One ExerciseEfficiency per non-deleted exercise, ordered by time.
    """
    session = sorted(
        (e for e in session_events if not e.is_deleted), key=lambda e: e.timestamp
    )
    in_session = set(session)
    earlier = [e for e in history if e not in in_session and not e.is_deleted]

    results: list[ExerciseEfficiency] = []
    done: list[TrainingEvent] = []
    for event in session:
        prior = [e for e in earlier if e.timestamp <= event.timestamp] + done
        cost = fatigue_cost(event, prior, params, weights, modifiers)
        stimulus = effective_volume(event)
        sfr = stimulus / cost if cost > 0 else None
        results.append(
            ExerciseEfficiency(
                exercise_id=event.exercise_id,
                timestamp=event.timestamp,
                effective_volume=stimulus,
                fatigue_cost=cost,
                sfr=sfr,
                zone=classify_sfr(sfr),
            )
        )
        done.append(event)
    return results
