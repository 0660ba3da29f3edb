"""Fitness-fatigue (Banister) model state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class FatigueState:
    """Fitness and fatigue accumulators at a single instant.

    Both accumulators are clamped at zero. ``first_event_at`` records the
    start of the user's history so an incremental update can still tell
    how much history backs the chronic workload window.
    """

    as_of: datetime
    fitness: float = 0.0
    fatigue: float = 0.0
    baseline: float = 0.0
    first_event_at: datetime | None = None
    last_event_at: datetime | None = None

    @property
    def performance(self) -> float:
        return self.baseline + self.fitness - self.fatigue


@dataclass(frozen=True)
class FatigueSeries:
    """Fitness, fatigue and performance sampled on a regular grid."""

    timestamps: tuple[datetime, ...]
    fitness: tuple[float, ...]
    fatigue: tuple[float, ...]
    performance: tuple[float, ...]

    def __len__(self) -> int:
        return len(self.timestamps)
