"""Hierarchical Bayesian calibration of per-user recovery parameters.

Population priors are updated with per-session observations through a
conjugate normal-normal model. Exercise-level factors are shrunk toward the
user level in proportion to how much exercise-specific data exists.

    posterior_precision = 1 / prior_sd^2 + n / obs_sd^2
    posterior_mean = (prior_mean / prior_sd^2 + sum(obs) / obs_sd^2) / posterior_precision

References:
    - Gelman & Hill (2006). Data Analysis Using Regression and
      Multilevel/Hierarchical Models, ch. 12 (partial pooling).
    - McElreath (2020). Statistical Rethinking, 2nd ed., ch. 13.
    - Epley (1985). Poundage Chart. Boyd Epley Workout.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Sequence

import numpy as np

from recovery_engine.math.fitness_fatigue import simulate
from recovery_engine.math.impulse import DEFAULT_IMPULSE_WEIGHTS
from recovery_engine.math.muscle_recovery import initial_fatigue
from recovery_engine.models.enums import (
    ADAPTIVE_TAU_MIN_CONFIDENCE,
    CONFIDENCE_SESSION_SCALE,
    DEFAULT_RECOVERY_HOURS,
    EXERCISE_FACTOR_BOUNDS,
    EXERCISE_SHRINKAGE_K,
    FATIGUE_RESISTANCE_OBSERVATION_SD,
    FATIGUE_RESISTANCE_PRIOR,
    FATIGUE_RESISTANCE_PRIOR_SD,
    FULL_RECOVERY_THRESHOLD,
    MAX_MUSCLE_FATIGUE,
    MUSCLE_HISTORY_HORIZON_DAYS,
    OBSERVATION_MAX_GAP_DAYS,
    OBSERVATION_MIN_GAP_DAYS,
    PERFORMANCE_TO_E1RM_PCT,
    RECOVERY_DECAY_LOG_RATIO,
    RECOVERY_HOURS_BOUNDS,
    RECOVERY_HOURS_OBSERVATION_SD,
    RECOVERY_HOURS_PRIOR_SD,
    RESISTANCE_POINTS_PER_PCT_ERROR,
    TAU_FATIGUE_DAYS,
    ConfidenceLevel,
    MuscleCategory,
)
from recovery_engine.models.events import ContextSample, TrainingEvent
from recovery_engine.models.parameters import ExerciseCalibration, RecoveryParameters
from recovery_engine.models.weights import ImpulseWeights

# Soreness check-ins are treated as taken in the morning of their day
CHECK_IN_TIME = time(8, 0, tzinfo=timezone.utc)
_SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class Posterior:
    """Result of a conjugate normal update."""

    mean: float
    sd: float
    observations: int

    @property
    def relative_uncertainty(self) -> float:
        return self.sd / abs(self.mean) if self.mean else math.inf


@dataclass(frozen=True)
class ResistanceObservation:
    """One e1RM comparison between two performances of the same exercise."""

    exercise_id: str
    timestamp: datetime
    error_pct: float  # actual minus predicted e1RM change, in percent
    resistance: float  # implied fatigue resistance, 0-100


def conjugate_normal_update(
    prior_mean: float,
    prior_sd: float,
    observations: Sequence[float],
    observation_sd: float,
) -> Posterior:
    """Posterior of a normal mean with known observation noise."""
    if not observations:
        return Posterior(prior_mean, prior_sd, 0)
    obs = np.asarray(observations, dtype=np.float64)
    prior_precision = 1.0 / prior_sd**2
    data_precision = len(obs) / observation_sd**2
    precision = prior_precision + data_precision
    mean = (prior_precision * prior_mean + data_precision * float(obs.mean())) / precision
    return Posterior(mean=float(mean), sd=float(math.sqrt(1.0 / precision)), observations=len(obs))


def confidence_from_sessions(sessions: int) -> float:
    """Calibration confidence in [0, 1): 1 - exp(-sessions / 20)."""
    if sessions <= 0:
        return 0.0
    return 1.0 - math.exp(-sessions / CONFIDENCE_SESSION_SCALE)


def confidence_level(observations: int, relative_uncertainty: float) -> ConfidenceLevel:
    """Qualitative band from observation count and posterior sd / mean."""
    if observations >= 20 and relative_uncertainty < 0.15:
        return ConfidenceLevel.VERY_HIGH
    if observations >= 10 and relative_uncertainty < 0.25:
        return ConfidenceLevel.HIGH
    if observations >= 5 and relative_uncertainty < 0.35:
        return ConfidenceLevel.MEDIUM
    if observations >= 2:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.VERY_LOW


def shrinkage_weight(n: int, k: float = EXERCISE_SHRINKAGE_K) -> float:
    """Weight n / (n + k) given to group-specific data."""
    if n <= 0:
        return 0.0
    return n / (n + k)


def epley_e1rm(load: float, reps: int) -> float:
    """Estimated one-rep max, Epley (1985): load x (1 + reps / 30)."""
    if reps <= 0 or load <= 0:
        return 0.0
    if reps == 1:
        return load
    return load * (1.0 + reps / 30.0)


def count_sessions(events: Sequence[TrainingEvent]) -> int:
    """Distinct completed sessions. Events without a session id group by day."""
    keys = {
        e.session_id if e.session_id is not None else f"{e.user_id}:{e.timestamp.date()}"
        for e in events
        if not e.is_deleted
    }
    return len(keys)


# ---------------------------------------------------------------------------
# Recovery-rate observations
# ---------------------------------------------------------------------------


def _predicted_fatigue(contributions: Sequence[tuple[float, float]], recovery_hours: float) -> float:
    tau = recovery_hours / RECOVERY_DECAY_LOG_RATIO
    return sum(f0 * math.exp(-hours / tau) for f0, hours in contributions)


def infer_recovery_hours(
    observed_fatigue: float,
    contributions: Sequence[tuple[float, float]],
    bounds: tuple[float, float] = RECOVERY_HOURS_BOUNDS,
    iterations: int = 60,
) -> float | None:
    """Recovery hours that make the decay model reproduce *observed_fatigue*.

    Args:
        observed_fatigue: Fatigue reported at the check-in (0-100).
        contributions: (F0, hours since event) pairs before the check-in.

    Predicted fatigue grows with recovery hours, so bisection converges.
    Returns None when the check-in carries no information: soreness below
    the full-recovery threshold, or a value no recovery rate within
    *bounds* can reproduce.
    """
    low, high = bounds
    target = min(observed_fatigue, MAX_MUSCLE_FATIGUE)
    if target < FULL_RECOVERY_THRESHOLD:
        return None
    if target < _predicted_fatigue(contributions, low):
        return None
    if target > _predicted_fatigue(contributions, high):
        return None
    for _ in range(iterations):
        mid = (low + high) / 2.0
        if _predicted_fatigue(contributions, mid) < target:
            low = mid
        else:
            high = mid
    return (low + high) / 2.0


def recovery_observations(
    events: Sequence[TrainingEvent],
    samples: Sequence[ContextSample],
    params: RecoveryParameters | None = None,
    weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS,
) -> dict[MuscleCategory, list[float]]:
    """Observed recovery hours per category from soreness check-ins.

    Soreness (0-10) is read as fatigue x 10 at the morning check-in. Each
    category trained in the preceding recovery horizon yields at most one
    observation per check-in. Check-ins the decay model cannot reproduce
    are skipped.
    """
    observed: dict[MuscleCategory, list[float]] = defaultdict(list)
    counted = [e for e in events if not e.is_deleted]
    for sample in samples:
        if sample.soreness is None:
            continue
        check_in = datetime.combine(sample.day, CHECK_IN_TIME)
        horizon = check_in - timedelta(days=MUSCLE_HISTORY_HORIZON_DAYS)
        for category in MuscleCategory:
            contributions = [
                (
                    initial_fatigue(e, params, weights),
                    (check_in - e.timestamp).total_seconds() / _SECONDS_PER_HOUR,
                )
                for e in counted
                if horizon <= e.timestamp < check_in and category in e.categories
            ]
            if not contributions:
                continue
            hours = infer_recovery_hours(sample.soreness * 10.0, contributions)
            if hours is not None:
                observed[category].append(hours)
    return dict(observed)


# ---------------------------------------------------------------------------
# Fatigue-resistance observations
# ---------------------------------------------------------------------------


def resistance_observations(
    events: Sequence[TrainingEvent],
    params: RecoveryParameters | None = None,
    weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS,
) -> list[ResistanceObservation]:
    """Compare e1RM changes between repeats of an exercise with the model.

    For two performances 1-14 days apart the Banister model predicts a
    performance change. Doing better than predicted means the user tolerates
    fatigue better than assumed, which maps to a higher resistance score.
    """
    counted = sorted((e for e in events if not e.is_deleted), key=lambda e: e.timestamp)
    by_exercise: dict[str, list[TrainingEvent]] = defaultdict(list)
    for event in counted:
        by_exercise[event.exercise_id].append(event)

    observations: list[ResistanceObservation] = []
    for exercise_id, performances in by_exercise.items():
        for before, after in zip(performances, performances[1:]):
            gap_days = (after.timestamp - before.timestamp).total_seconds() / 86400.0
            if not OBSERVATION_MIN_GAP_DAYS <= gap_days <= OBSERVATION_MAX_GAP_DAYS:
                continue
            e1rm_before = epley_e1rm(before.load, before.reps)
            e1rm_after = epley_e1rm(after.load, after.reps)
            if e1rm_before <= 0 or e1rm_after <= 0:
                continue

            actual_pct = (e1rm_after / e1rm_before - 1.0) * 100.0
            perf_before = simulate(
                [e for e in counted if e.timestamp < before.timestamp], before.timestamp, params, weights
            ).performance
            perf_after = simulate(
                [e for e in counted if e.timestamp < after.timestamp], after.timestamp, params, weights
            ).performance
            predicted_pct = (perf_after - perf_before) * PERFORMANCE_TO_E1RM_PCT
            error = actual_pct - predicted_pct
            resistance = FATIGUE_RESISTANCE_PRIOR + error * RESISTANCE_POINTS_PER_PCT_ERROR
            observations.append(
                ResistanceObservation(
                    exercise_id=exercise_id,
                    timestamp=after.timestamp,
                    error_pct=error,
                    resistance=max(0.0, min(100.0, resistance)),
                )
            )
    return observations


def exercise_factors(observations: Sequence[ResistanceObservation]) -> dict[str, tuple[float, int]]:
    """Shrunk per-exercise fatigue factors and their observation counts.

    An exercise that repeatedly underperforms the prediction fatigues more
    than the user's average exercise and gets a factor above 1.0.
    """
    grouped: dict[str, list[float]] = defaultdict(list)
    for obs in observations:
        grouped[obs.exercise_id].append(obs.error_pct)

    low, high = EXERCISE_FACTOR_BOUNDS
    factors: dict[str, tuple[float, int]] = {}
    for exercise_id, errors in grouped.items():
        raw = max(low, min(high, 1.0 - float(np.mean(errors)) / 20.0))
        weight = shrinkage_weight(len(errors))
        factors[exercise_id] = (1.0 + weight * (raw - 1.0), len(errors))
    return factors


def adaptive_tau_fatigue(
    recovery_hours: dict[MuscleCategory, float],
    confidence: float,
    base_tau: float = TAU_FATIGUE_DAYS,
) -> float:
    """Scale the fatigue time-constant by how fast this user recovers.

    Stays at the population value until calibration is confident enough.
    """
    if confidence < ADAPTIVE_TAU_MIN_CONFIDENCE:
        return base_tau
    user = float(np.mean([recovery_hours.get(c, DEFAULT_RECOVERY_HOURS[c]) for c in MuscleCategory]))
    population = float(np.mean(list(DEFAULT_RECOVERY_HOURS.values())))
    return base_tau * user / population


def calibrate(
    current: RecoveryParameters,
    events: Sequence[TrainingEvent],
    samples: Sequence[ContextSample],
    as_of: datetime,
    weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS,
) -> RecoveryParameters:
    """Posterior parameters for one user from their full history.

    Priors are always the population values, so recalibrating on the same
    history is idempotent. Observations are generated with population
    parameters to keep the inversion independent of earlier runs.
    """
    population = RecoveryParameters.population_defaults(current.user_id)
    sessions = count_sessions(events)

    recovery_hours: dict[MuscleCategory, float] = {}
    levels: list[ConfidenceLevel] = []
    by_category = recovery_observations(events, samples, population, weights)
    for category in MuscleCategory:
        posterior = conjugate_normal_update(
            DEFAULT_RECOVERY_HOURS[category],
            RECOVERY_HOURS_PRIOR_SD,
            by_category.get(category, []),
            RECOVERY_HOURS_OBSERVATION_SD,
        )
        low, high = RECOVERY_HOURS_BOUNDS
        recovery_hours[category] = max(low, min(high, posterior.mean))
        levels.append(confidence_level(posterior.observations, posterior.relative_uncertainty))

    resistance_obs = resistance_observations(events, population, weights)
    resistance = conjugate_normal_update(
        FATIGUE_RESISTANCE_PRIOR,
        FATIGUE_RESISTANCE_PRIOR_SD,
        [o.resistance for o in resistance_obs],
        FATIGUE_RESISTANCE_OBSERVATION_SD,
    )
    levels.append(confidence_level(resistance.observations, resistance.relative_uncertainty))

    calibrations = {
        exercise_id: ExerciseCalibration(exercise_id=exercise_id, factor=factor, observations=n)
        for exercise_id, (factor, n) in exercise_factors(resistance_obs).items()
    }
    confidence = confidence_from_sessions(sessions)

    return RecoveryParameters(
        user_id=current.user_id,
        recovery_hours=recovery_hours,
        fatigue_resistance=max(0.0, min(100.0, resistance.mean)),
        tau_fitness_days=population.tau_fitness_days,
        tau_fatigue_days=adaptive_tau_fatigue(recovery_hours, confidence),
        performance_baseline=current.performance_baseline,
        last_calibrated_at=as_of,
        confidence=confidence,
        confidence_level=min(levels, key=_LEVEL_ORDER.index),
        sessions_observed=sessions,
        exercise_calibrations=calibrations,
    )


_LEVEL_ORDER = [
    ConfidenceLevel.VERY_LOW,
    ConfidenceLevel.LOW,
    ConfidenceLevel.MEDIUM,
    ConfidenceLevel.HIGH,
    ConfidenceLevel.VERY_HIGH,
]
