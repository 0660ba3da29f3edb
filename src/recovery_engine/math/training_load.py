"""Workload aggregation: rolling and EWMA ACWR, monotony, strain.

References:
    - Hulin et al. (2016): rolling acute:chronic workload ratio
    - Williams et al. (2017): EWMA-based ACWR
    - Gabbett (2016): ACWR injury risk thresholds
    - Foster (1998): Monotony and strain
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from recovery_engine.models.enums import (
    ACUTE_WINDOW_DAYS,
    ACWR_CAUTION,
    ACWR_HIGH_RISK,
    ACWR_UNDERTRAINING,
    CHRONIC_LOAD_EPSILON,
    CHRONIC_WEEKS,
    CHRONIC_WINDOW_DAYS,
    MIN_CHRONIC_HISTORY_DAYS,
    AcwrMethod,
    RiskZone,
)
from recovery_engine.models.events import TrainingEvent
from recovery_engine.models.workload import WorkloadWindow

_SECONDS_PER_DAY = 86400.0


def active_events(events: Iterable[TrainingEvent], as_of: datetime) -> list[TrainingEvent]:
    """Events that count toward load at *as_of*: not deleted, not in the future."""
    return [e for e in events if not e.is_deleted and e.timestamp <= as_of]


def history_days(
    events: Sequence[TrainingEvent],
    as_of: datetime,
    first_event_at: datetime | None = None,
) -> float:
    """Days between the user's first logged event and *as_of*.

    *first_event_at* lets callers that only hold a recent slice of history
    report the true start of it.
    """
    starts = [e.timestamp for e in events]
    if first_event_at is not None:
        starts.append(first_event_at)
    if not starts:
        return 0.0
    return max(0.0, (as_of - min(starts)).total_seconds() / _SECONDS_PER_DAY)


def window_volume(events: Iterable[TrainingEvent], as_of: datetime, days: int) -> float:
    """Sum of volume for events in ``[as_of - days, as_of]``."""
    start = as_of - timedelta(days=days)
    return float(sum(e.volume for e in events if start <= e.timestamp <= as_of))


def daily_loads(events: Iterable[TrainingEvent], as_of: datetime, days: int) -> np.ndarray:
    """Volume per day for the *days* days ending at *as_of* (oldest first).

    Day ``i`` from the end covers ``(as_of - (i + 1) days, as_of - i days]``.
    """
    loads = np.zeros(days, dtype=np.float64)
    for event in events:
        age = (as_of - event.timestamp).total_seconds() / _SECONDS_PER_DAY
        if age < 0:
            continue
        # An event exactly at as_of belongs to the most recent bin
        bucket = int(np.ceil(age)) - 1 if age > 0 else 0
        if bucket < days:
            loads[days - 1 - bucket] += event.volume
    return loads


def classify_acwr(ratio: float | None) -> RiskZone:
    """Classify an ACWR value into a risk zone (inclusive lower bounds).

    Reference:
        Gabbett (2016), Br J Sports Med 50(5):273-280.
        Sweet spot: 0.8 - 1.3. Danger zone: >= 1.5.
    """
    if ratio is None:
        return RiskZone.INSUFFICIENT_DATA
    if ratio >= ACWR_HIGH_RISK:
        return RiskZone.HIGH_RISK
    if ratio >= ACWR_CAUTION:
        return RiskZone.CAUTION
    if ratio >= ACWR_UNDERTRAINING:
        return RiskZone.OPTIMAL
    return RiskZone.UNDERTRAINING


def calculate_ewma(values: Sequence[float] | np.ndarray, span: int) -> float:
    """Calculate the most recent value of an exponentially weighted moving average.

    Reference:
        Williams et al. (2017). J Sci Med Sport 20(5):493-497.
    """
    if len(values) == 0:
        return 0.0
    series = pd.Series(values, dtype=np.float64)
    ewma = series.ewm(span=span, adjust=False).mean()
    return float(ewma.iloc[-1])


def calculate_monotony(loads: Sequence[float] | np.ndarray) -> float:
    """Training monotony over the most recent 7 daily loads.

    Monotony = mean(daily_load) / std(daily_load). Returns 0.0 when the
    loads do not vary.

    Reference:
        Foster (1998). Monitoring training in athletes with reference to
        overtraining syndrome. Med Sci Sports Exerc 30(7):1164-1168.
    """
    if len(loads) < ACUTE_WINDOW_DAYS:
        return 0.0
    recent = np.asarray(loads[-ACUTE_WINDOW_DAYS:], dtype=np.float64)
    std = float(np.std(recent, ddof=0))
    if std < 1e-6:
        return 0.0
    return float(np.mean(recent)) / std


def calculate_strain(loads: Sequence[float] | np.ndarray) -> float:
    """Weekly strain = weekly load x monotony (Foster 1998)."""
    if len(loads) < ACUTE_WINDOW_DAYS:
        return 0.0
    recent = np.asarray(loads[-ACUTE_WINDOW_DAYS:], dtype=np.float64)
    return float(recent.sum()) * calculate_monotony(recent)


def compute_acwr(
    events: Sequence[TrainingEvent],
    as_of: datetime,
    method: AcwrMethod = AcwrMethod.ROLLING,
    first_event_at: datetime | None = None,
) -> WorkloadWindow:
    """Compute the workload window at *as_of*.

    Rolling method (default):
        acute   = sum of volume in [as_of - 7d, as_of]
        chronic = sum of volume in [as_of - 28d, as_of] / 4

    EWMA method: daily loads smoothed with spans 7 and 28, reported as
    weekly equivalents so both methods share units.

    The ratio is None when chronic load is zero or when fewer than 14 days
    of history back the chronic window.
    """
    counted = active_events(events, as_of)
    span_days = history_days(counted, as_of, first_event_at)

    if method == AcwrMethod.EWMA:
        total_days = max(CHRONIC_WINDOW_DAYS, int(np.ceil(span_days)))
        series = daily_loads(counted, as_of, total_days)
        acute = calculate_ewma(series, ACUTE_WINDOW_DAYS) * ACUTE_WINDOW_DAYS
        chronic = calculate_ewma(series, CHRONIC_WINDOW_DAYS) * ACUTE_WINDOW_DAYS
    else:
        acute = window_volume(counted, as_of, ACUTE_WINDOW_DAYS)
        chronic = window_volume(counted, as_of, CHRONIC_WINDOW_DAYS) / CHRONIC_WEEKS

    ratio: float | None = None
    if chronic > CHRONIC_LOAD_EPSILON and span_days >= MIN_CHRONIC_HISTORY_DAYS:
        ratio = acute / chronic

    monotony: float | None = None
    strain: float | None = None
    if span_days >= ACUTE_WINDOW_DAYS:
        week = daily_loads(counted, as_of, ACUTE_WINDOW_DAYS)
        monotony = calculate_monotony(week)
        strain = calculate_strain(week)

    return WorkloadWindow(
        acute=acute,
        chronic=chronic,
        ratio=ratio,
        zone=classify_acwr(ratio),
        method=method,
        history_days=span_days,
        monotony=monotony,
        strain=strain,
    )
