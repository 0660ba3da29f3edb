"""Banister fitness-fatigue impulse-response model.

Each training impulse w at time t_i adds

    fitness(t) += k1 * w * exp(-(t - t_i) / tau1)
    fatigue(t) += k2 * w * exp(-(t - t_i) / tau2)

and predicted performance is baseline + fitness - fatigue. Because both
terms are sums of exponentials, the state at t1 can be obtained either by
replaying every event or by decaying the state at t0 and adding the events
in (t0, t1]. Both paths give the same numbers.

References:
    - Banister et al. (1975). A systems model of training for athletic
      performance. Aust J Sports Med 7:57-61.
    - Busso (2003). Variable dose-response relationship between exercise
      training and performance. Med Sci Sports Exerc 35(7):1188-1195.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Sequence

import numpy as np

from recovery_engine.math.impulse import DEFAULT_IMPULSE_WEIGHTS, training_impulse
from recovery_engine.models.enums import (
    FATIGUE_RESISTANCE_PRIOR,
    K_FATIGUE,
    K_FITNESS,
)
from recovery_engine.models.events import TrainingEvent
from recovery_engine.models.fatigue import FatigueSeries, FatigueState
from recovery_engine.models.parameters import RecoveryParameters
from recovery_engine.models.weights import ImpulseWeights

_SECONDS_PER_DAY = 86400.0


def resistance_scale(fatigue_resistance: float) -> float:
    """Fatigue gain scale from a 0-100 resistance score (50 -> 1.0)."""
    return 1.5 - fatigue_resistance / 100.0


def fatigue_gain(params: RecoveryParameters | None) -> float:
    """k2 for this user: population gain scaled by fatigue resistance."""
    resistance = params.fatigue_resistance if params is not None else FATIGUE_RESISTANCE_PRIOR
    return K_FATIGUE * resistance_scale(resistance)


def _time_constants(params: RecoveryParameters | None) -> tuple[float, float]:
    if params is None:
        params = RecoveryParameters.population_defaults("")
    return params.tau_fitness_days, params.tau_fatigue_days


def _impulse_arrays(
    events: Sequence[TrainingEvent],
    start: datetime | None,
    end: datetime,
    weights: ImpulseWeights,
) -> tuple[np.ndarray, np.ndarray]:
    """Event ages (days before *end*) and impulses for events in (start, end]."""
    selected = [
        e
        for e in events
        if not e.is_deleted
        and e.timestamp <= end
        and (start is None or e.timestamp > start)
    ]
    ages = np.array(
        [(end - e.timestamp).total_seconds() / _SECONDS_PER_DAY for e in selected],
        dtype=np.float64,
    )
    impulses = np.array([training_impulse(e, weights) for e in selected], dtype=np.float64)
    return ages, impulses


def _bounds(events: Sequence[TrainingEvent], end: datetime) -> tuple[datetime | None, datetime | None]:
    stamps = [e.timestamp for e in events if not e.is_deleted and e.timestamp <= end]
    if not stamps:
        return None, None
    return min(stamps), max(stamps)


def simulate(
    events: Sequence[TrainingEvent],
    as_of: datetime,
    params: RecoveryParameters | None = None,
    weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS,
) -> FatigueState:
    """Replay the full history up to and including *as_of*.

    The state before the first event is zero.
    """
    tau_fitness, tau_fatigue = _time_constants(params)
    ages, impulses = _impulse_arrays(events, None, as_of, weights)

    fitness = float(np.sum(K_FITNESS * impulses * np.exp(-ages / tau_fitness)))
    fatigue = float(np.sum(fatigue_gain(params) * impulses * np.exp(-ages / tau_fatigue)))
    first, last = _bounds(events, as_of)

    return FatigueState(
        as_of=as_of,
        fitness=max(0.0, fitness),
        fatigue=max(0.0, fatigue),
        baseline=params.performance_baseline if params is not None else 0.0,
        first_event_at=first,
        last_event_at=last,
    )


def update_state(
    state: FatigueState,
    events: Sequence[TrainingEvent],
    as_of: datetime,
    params: RecoveryParameters | None = None,
    weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS,
) -> FatigueState:
    """Advance *state* to *as_of* using only the events in (state.as_of, as_of].

    Events at or before ``state.as_of`` are already folded into *state* and
    are ignored here.
    """
    if as_of < state.as_of:
        raise ValueError(
            f"Cannot update backwards: state at {state.as_of.isoformat()}, "
            f"requested {as_of.isoformat()}"
        )

    tau_fitness, tau_fatigue = _time_constants(params)
    elapsed = (as_of - state.as_of).total_seconds() / _SECONDS_PER_DAY
    ages, impulses = _impulse_arrays(events, state.as_of, as_of, weights)

    fitness = state.fitness * np.exp(-elapsed / tau_fitness)
    fitness += np.sum(K_FITNESS * impulses * np.exp(-ages / tau_fitness))
    fatigue = state.fatigue * np.exp(-elapsed / tau_fatigue)
    fatigue += np.sum(fatigue_gain(params) * impulses * np.exp(-ages / tau_fatigue))

    new_first, new_last = _bounds(
        [e for e in events if e.timestamp > state.as_of], as_of
    )
    first = state.first_event_at or new_first
    last = new_last or state.last_event_at

    return FatigueState(
        as_of=as_of,
        fitness=max(0.0, float(fitness)),
        fatigue=max(0.0, float(fatigue)),
        baseline=params.performance_baseline if params is not None else state.baseline,
        first_event_at=first,
        last_event_at=last,
    )


def fatigue_before(
    events: Sequence[TrainingEvent],
    moment: datetime,
    params: RecoveryParameters | None = None,
    weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS,
) -> float:
    """Systemic (Banister) fatigue just before *moment*, excluding events at it."""
    prior = [e for e in events if e.timestamp < moment]
    return simulate(prior, moment, params, weights).fatigue


def simulate_series(
    events: Sequence[TrainingEvent],
    start: datetime,
    end: datetime,
    step: timedelta = timedelta(days=1),
    params: RecoveryParameters | None = None,
    weights: ImpulseWeights = DEFAULT_IMPULSE_WEIGHTS,
) -> FatigueSeries:
    """Sample fitness, fatigue and performance on a regular grid.

    Uses a (time x event) broadcast so the whole series is one numpy pass.
    """
    if end < start:
        raise ValueError("end must not precede start")
    if step <= timedelta(0):
        raise ValueError("step must be positive")

    n_points = int((end - start) / step) + 1
    grid = [start + i * step for i in range(n_points)]
    tau_fitness, tau_fatigue = _time_constants(params)

    counted = [e for e in events if not e.is_deleted]
    event_times = np.array(
        [(e.timestamp - start).total_seconds() / _SECONDS_PER_DAY for e in counted],
        dtype=np.float64,
    )
    impulses = np.array([training_impulse(e, weights) for e in counted], dtype=np.float64)
    grid_times = np.arange(n_points, dtype=np.float64) * (step.total_seconds() / _SECONDS_PER_DAY)

    ages = grid_times[:, None] - event_times[None, :]
    active = ages >= 0
    safe_ages = np.where(active, ages, 0.0)

    fitness = np.sum(np.where(active, K_FITNESS * impulses * np.exp(-safe_ages / tau_fitness), 0.0), axis=1)
    fatigue = np.sum(
        np.where(active, fatigue_gain(params) * impulses * np.exp(-safe_ages / tau_fatigue), 0.0),
        axis=1,
    )
    fitness = np.maximum(fitness, 0.0)
    fatigue = np.maximum(fatigue, 0.0)
    baseline = params.performance_baseline if params is not None else 0.0

    return FatigueSeries(
        timestamps=tuple(grid),
        fitness=tuple(float(v) for v in fitness),
        fatigue=tuple(float(v) for v in fatigue),
        performance=tuple(float(v) for v in baseline + fitness - fatigue),
    )
