"""Recovery-speed modifiers and readiness penalty from daily context.

The modifier multiplies recovery speed: effective tau = tau / modifier, so a
value above 1.0 (long, good sleep, low stress) shortens recovery and a value
below 1.0 stretches it. Missing data always yields a neutral 1.0.

References:
    - Halson (2014). Sleep in elite athletes and nutritional interventions
      to enhance sleep. Sports Med 44(Suppl 1):S13-S23.
    - Dattilo et al. (2011). Sleep and muscle recovery: endocrinological and
      molecular basis for a new and promising hypothesis. Med Hypotheses
      77(2):220-222.
    - Kreher & Schwartz (2012). Overtraining syndrome: a practical guide.
      Sports Health 4(2):128-138.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Sequence

import numpy as np

from recovery_engine.models.enums import (
    CONTEXT_LOOKBACK_DAYS,
    CONTEXT_MODIFIER_BOUNDS,
    SLEEP_GOOD_HOURS,
    SLEEP_OPTIMAL_HOURS,
    SLEEP_POOR_HOURS,
    SLEEP_SUBOPTIMAL_HOURS,
)
from recovery_engine.models.events import ContextSample


def _mean(values: list[float]) -> float | None:
    return float(np.mean(values)) if values else None


def recent_samples(samples: Sequence[ContextSample], day: date) -> list[ContextSample]:
    """Samples from the trailing lookback window ending on *day*."""
    start = day - timedelta(days=CONTEXT_LOOKBACK_DAYS - 1)
    return [s for s in samples if start <= s.day <= day]


def sleep_modifier(samples: Sequence[ContextSample]) -> float:
    """Recovery multiplier from average sleep duration and quality (0.5-1.2)."""
    hours = _mean([s.sleep_hours for s in samples if s.sleep_hours is not None])
    quality = _mean([s.sleep_quality for s in samples if s.sleep_quality is not None])
    if hours is None and quality is None:
        return 1.0

    modifier = 1.0
    if hours is not None:
        low, high = SLEEP_OPTIMAL_HOURS
        if low <= hours <= high:
            modifier = 1.1
        elif hours >= SLEEP_GOOD_HOURS:
            modifier = 1.0
        elif hours >= SLEEP_SUBOPTIMAL_HOURS:
            modifier = 0.85
        elif hours >= SLEEP_POOR_HOURS:
            modifier = 0.7
        else:
            modifier = 0.55

    if quality is not None:
        # 1-10 scale centred on 5.5, worth roughly +/- 0.09
        modifier += (quality - 5.5) * 0.02
    return max(0.5, min(1.2, modifier))


def stress_modifier(samples: Sequence[ContextSample]) -> float:
    """Recovery multiplier from perceived stress (0.7-1.05)."""
    stress = _mean([s.stress for s in samples if s.stress is not None])
    if stress is None:
        return 1.0
    if stress <= 3:
        return 1.05
    if stress <= 5:
        return 1.0
    if stress <= 7:
        return 0.85
    return 0.7


def nutrition_modifier(samples: Sequence[ContextSample]) -> float:
    """Recovery multiplier from self-rated nutrition quality (0.8-1.05)."""
    quality = _mean([s.nutrition_quality for s in samples if s.nutrition_quality is not None])
    if quality is None:
        return 1.0
    if quality >= 8:
        return 1.05
    if quality >= 6:
        return 1.0
    if quality >= 4:
        return 0.9
    return 0.8


def recovery_modifier(samples: Sequence[ContextSample], day: date) -> float:
    """Combined recovery-speed multiplier for *day*, bounded to 0.55-1.2."""
    window = recent_samples(samples, day)
    if not window:
        return 1.0
    combined = sleep_modifier(window) * stress_modifier(window) * nutrition_modifier(window)
    low, high = CONTEXT_MODIFIER_BOUNDS
    return max(low, min(high, combined))


def daily_modifiers(
    samples: Sequence[ContextSample], start: date, end: date
) -> dict[date, float]:
    """Recovery-speed multiplier for every day from *start* to *end* inclusive.

    Each day uses only the samples of its own trailing window, so a poor
    night changes how fast fatigue decays from that day on and never
    rewrites the decay of earlier days.
    """
    modifiers: dict[date, float] = {}
    day = start
    while day <= end:
        modifiers[day] = recovery_modifier(samples, day)
        day += timedelta(days=1)
    return modifiers


def latest_sample(samples: Sequence[ContextSample], day: date) -> ContextSample | None:
    """The sample for *day*, else the previous day's; older samples are ignored."""
    by_day = {s.day: s for s in samples}
    return by_day.get(day) or by_day.get(day - timedelta(days=1))


def context_penalty(sample: ContextSample, cap: float) -> float:
    """Readiness points to subtract for a poor day, between 0 and *cap*.

    Short sleep, low sleep quality, high stress and whole-body soreness
    each add to the penalty. Missing fields contribute nothing.
    """
    badness = 0.0
    if sample.sleep_hours is not None:
        badness += 0.35 * max(0.0, min(1.0, (SLEEP_GOOD_HOURS - sample.sleep_hours) / 3.0))
    if sample.sleep_quality is not None:
        badness += 0.15 * max(0.0, min(1.0, (6.0 - sample.sleep_quality) / 5.0))
    if sample.stress is not None:
        badness += 0.25 * max(0.0, min(1.0, (sample.stress - 5.0) / 5.0))
    if sample.soreness is not None:
        badness += 0.25 * max(0.0, min(1.0, sample.soreness / 10.0))
    return cap * min(1.0, badness)
