"""Acute:chronic workload window derived from training events."""

from __future__ import annotations

from dataclasses import dataclass

from recovery_engine.models.enums import AcwrMethod, RiskZone


@dataclass(frozen=True)
class WorkloadWindow:
    """Acute and chronic loads with their ratio and risk zone.

    ``ratio`` is None (never NaN or zero) when chronic load is zero or
    the chronic window holds less than two weeks of history; the zone is
    then INSUFFICIENT_DATA.
    """

    acute: float
    chronic: float
    ratio: float | None
    zone: RiskZone
    method: AcwrMethod = AcwrMethod.ROLLING
    history_days: float = 0.0

    # Foster (1998) over the acute window; None below a full week of history
    monotony: float | None = None
    strain: float | None = None

    @property
    def has_ratio(self) -> bool:
        return self.ratio is not None
