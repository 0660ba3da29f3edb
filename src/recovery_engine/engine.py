"""ReadinessEngine: the single public entry point of the recovery engine."""

from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable

import numpy as np

from recovery_engine.cache import SnapshotCache, floor_to_hour
from recovery_engine.conflict_resolution.resolver import ConflictResolver
from recovery_engine.exceptions import InvalidInput, UpstreamUnavailable
from recovery_engine.math.context import daily_modifiers, latest_sample
from recovery_engine.math.fitness_fatigue import simulate, update_state
from recovery_engine.math.muscle_recovery import compute_muscle_states, muscle_state
from recovery_engine.math.sfr import analyze_session
from recovery_engine.math.training_load import compute_acwr
from recovery_engine.models.adjustment import ReadinessAdjustment
from recovery_engine.models.efficiency import ExerciseEfficiency
from recovery_engine.models.enums import (
    CALIBRATION_STALE_AFTER_DAYS,
    CHRONIC_WINDOW_DAYS,
    CONTEXT_LOOKBACK_DAYS,
    MUSCLE_HISTORY_HORIZON_DAYS,
    AcwrMethod,
    MuscleCategory,
    MuscleGroup,
    RiskZone,
    SnapshotSource,
)
from recovery_engine.models.events import ContextSample, TrainingEvent
from recovery_engine.models.fatigue import FatigueState
from recovery_engine.models.inputs import ReadinessInputs
from recovery_engine.models.muscle import MuscleRecoveryState
from recovery_engine.models.parameters import RecoveryParameters
from recovery_engine.models.snapshot import ReadinessSnapshot
from recovery_engine.models.weights import ImpulseWeights, ReadinessWeights
from recovery_engine.ports import EventSource
from recovery_engine.registry import RuleRegistry

logger = logging.getLogger(__name__)

# Start of the history window for a full fitness-fatigue replay
HISTORY_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _context_start(first_day: date) -> date:
    """First sample day that feeds the recovery modifier of *first_day*."""
    return first_day - timedelta(days=CONTEXT_LOOKBACK_DAYS - 1)


class ReadinessEngine:
    """Combines workload, fitness-fatigue and muscle recovery into readiness.

    Usage:
        engine = ReadinessEngine(store)
        snapshot = engine.get_readiness("user-1")
        chest = engine.get_muscle_recovery("user-1", MuscleGroup.CHEST)
        scores = engine.get_exercise_efficiency("session-42")

    Every evaluation happens at the requested time floored to the hour, so a
    cached snapshot and a freshly computed one are the same object. With a
    warm cache only the events since the newest earlier snapshot (and the
    28-day workload window) are fetched; the fitness-fatigue state is
    advanced incrementally from that snapshot.
    """

    def __init__(
        self,
        store: EventSource,
        registry: RuleRegistry | None = None,
        resolver: ConflictResolver | None = None,
        cache: SnapshotCache | None = None,
        impulse_weights: ImpulseWeights | None = None,
        readiness_weights: ReadinessWeights | None = None,
        acwr_method: AcwrMethod = AcwrMethod.ROLLING,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.registry = registry or RuleRegistry()
        self.resolver = resolver or ConflictResolver()
        self.cache = cache if cache is not None else SnapshotCache()
        self.impulse_weights = impulse_weights or ImpulseWeights()
        self.readiness_weights = readiness_weights or ReadinessWeights()
        self.acwr_method = acwr_method
        self._clock = clock

        # Auto-discover rules if using default registry
        if registry is None:
            self.registry.discover_rules()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_readiness(self, user_id: str, as_of: datetime | None = None) -> ReadinessSnapshot:
        """Readiness of *user_id* at *as_of* (default: now), floored to the hour.

        Never raises for missing data or upstream failures: an empty history
        yields ``score=None`` with INSUFFICIENT_DATA, and a failing store
        yields the last known snapshot (``source=FALLBACK``).
        """
        hour = floor_to_hour(self._resolve_as_of(as_of))
        cached = self.cache.get(user_id, hour)
        if cached is not None:
            return cached

        try:
            snapshot = self._compute(user_id, hour)
        except UpstreamUnavailable as exc:
            logger.warning("Store unavailable for %s at %s: %s", user_id, hour.isoformat(), exc)
            return self._fallback(user_id, hour)

        self.cache.put(snapshot)
        self._write_through(user_id, snapshot)
        return snapshot

    def get_muscle_recovery(
        self,
        user_id: str,
        muscle_group: MuscleGroup | str,
        as_of: datetime | None = None,
    ) -> MuscleRecoveryState:
        """Recovery state of one muscle. Untrained muscles come back fully recovered."""
        try:
            muscle = MuscleGroup(muscle_group)
        except ValueError as exc:
            raise InvalidInput(f"Unknown muscle group: {muscle_group!r}", field="muscle_group") from exc

        snapshot = self.get_readiness(user_id, as_of)
        state = snapshot.muscle_states.get(muscle)
        if state is not None:
            return state

        try:
            params = self.store.fetch_recovery_parameters(user_id)
        except UpstreamUnavailable:
            logger.warning("Using population recovery parameters for %s", user_id)
            params = RecoveryParameters.population_defaults(user_id)
        return muscle_state([], muscle, snapshot.as_of, params, self.impulse_weights)

    def get_exercise_efficiency(self, session_id: str) -> list[ExerciseEfficiency]:
        """SFR of every exercise in a session, in the order they were performed.

        Raises:
            UpstreamUnavailable: the store could not be read.
        """
        session = self.store.fetch_session_events(session_id)
        if not session:
            return []
        user_id = session[0].user_id
        last = max(e.timestamp for e in session)
        params = self.store.fetch_recovery_parameters(user_id)
        history = self.store.fetch_training_events(user_id, HISTORY_EPOCH, last)
        first = min(e.timestamp for e in session) - timedelta(days=MUSCLE_HISTORY_HORIZON_DAYS)
        contexts = self._fetch_contexts(user_id, _context_start(first.date()), last.date())
        modifiers = daily_modifiers(contexts, first.date(), last.date())
        return analyze_session(session, history, params, self.impulse_weights, modifiers)

    # ------------------------------------------------------------------
    # Write notifications
    # ------------------------------------------------------------------

    def on_training_event_written(self, event: TrainingEvent) -> None:
        """Forward-only invalidation: snapshots before the event stay valid."""
        self.cache.invalidate(event.user_id, event.timestamp)

    def on_context_sample_written(self, sample: ContextSample) -> None:
        start_of_day = datetime.combine(sample.day, time.min, tzinfo=timezone.utc)
        self.cache.invalidate(sample.user_id, start_of_day)

    def on_parameters_updated(self, params: RecoveryParameters) -> None:
        """New calibration changes every snapshot of the user."""
        self.cache.invalidate(params.user_id)

    # ------------------------------------------------------------------
    # Snapshot computation
    # ------------------------------------------------------------------

    def compute_snapshot(
        self,
        user_id: str,
        as_of: datetime,
        events: list[TrainingEvent],
        contexts: list[ContextSample],
        params: RecoveryParameters,
        fatigue_state: FatigueState | None = None,
    ) -> ReadinessSnapshot:
        """Pure evaluation over already-fetched inputs. No I/O, no caching.

        *fatigue_state* may be supplied when it was advanced incrementally;
        otherwise it is replayed from *events*.
        """
        if fatigue_state is None:
            fatigue_state = simulate(events, as_of, params, self.impulse_weights)
        if fatigue_state.first_event_at is None:
            return self._insufficient(user_id, as_of, SnapshotSource.NO_HISTORY)

        workload = compute_acwr(
            events, as_of, self.acwr_method, first_event_at=fatigue_state.first_event_at
        )
        day = as_of.date()
        modifiers = daily_modifiers(
            contexts, day - timedelta(days=MUSCLE_HISTORY_HORIZON_DAYS), day
        )
        muscles = compute_muscle_states(events, as_of, params, self.impulse_weights, modifiers)

        inputs = ReadinessInputs(
            user_id=user_id,
            as_of=as_of,
            params=params,
            weights=self.readiness_weights,
            workload=workload,
            fatigue_state=fatigue_state,
            muscle_states=muscles,
            context=latest_sample(contexts, day),
            context_modifier=modifiers[day],
        )
        resolved = self.resolver.resolve(self._evaluate_rules(inputs), self.readiness_weights)
        logger.debug("Readiness for %s at %s: %s", user_id, as_of.isoformat(), resolved.notes)

        return ReadinessSnapshot(
            user_id=user_id,
            as_of=as_of,
            score=resolved.score,
            risk_zone=resolved.risk_zone,
            load_delta=resolved.load_delta,
            category_multipliers=self._category_multipliers(muscles),
            workload=workload,
            fatigue_state=fatigue_state,
            muscle_states=muscles,
            components=resolved.components,
            calibration_stale=self._is_calibration_stale(params, fatigue_state, as_of),
            parameters_calibrated_at=params.last_calibrated_at,
            source=SnapshotSource.COMPUTED,
        )

    def _compute(self, user_id: str, hour: datetime) -> ReadinessSnapshot:
        params = self.store.fetch_recovery_parameters(user_id)
        previous = self._incremental_base(user_id, hour, params)

        if previous is not None:
            window_start = min(previous.as_of, hour - timedelta(days=CHRONIC_WINDOW_DAYS))
            events = self.store.fetch_training_events(user_id, window_start, hour)
            fatigue_state = update_state(previous, events, hour, params, self.impulse_weights)
        else:
            events = self.store.fetch_training_events(user_id, HISTORY_EPOCH, hour)
            fatigue_state = simulate(events, hour, params, self.impulse_weights)

        day = hour.date()
        start = _context_start(day - timedelta(days=MUSCLE_HISTORY_HORIZON_DAYS))
        contexts = self._fetch_contexts(user_id, start, day)
        return self.compute_snapshot(user_id, hour, events, contexts, params, fatigue_state)

    def _incremental_base(
        self, user_id: str, hour: datetime, params: RecoveryParameters
    ) -> FatigueState | None:
        """Fitness-fatigue state of the newest usable earlier snapshot, if any."""
        if self.acwr_method != AcwrMethod.ROLLING:
            return None  # EWMA needs the full daily series
        previous = self.cache.latest_before(user_id, hour)
        if previous is None or previous.fatigue_state is None:
            return None
        if previous.source != SnapshotSource.COMPUTED:
            return None
        if previous.parameters_calibrated_at != params.last_calibrated_at:
            return None
        return previous.fatigue_state

    def _fetch_contexts(self, user_id: str, start: date, end: date) -> list[ContextSample]:
        """Context is optional: a failed fetch degrades to training-only signals."""
        try:
            return self.store.fetch_context_samples(user_id, start, end)
        except UpstreamUnavailable as exc:
            logger.warning("Context unavailable for %s, using training only: %s", user_id, exc)
            return []

    def _evaluate_rules(self, inputs: ReadinessInputs) -> list[ReadinessAdjustment]:
        adjustments: list[ReadinessAdjustment] = []
        for rule in self.registry.get_all_rules():
            if not rule.has_required_data(inputs):
                continue
            adjustment = rule.evaluate(inputs)
            if adjustment is not None:
                adjustments.append(adjustment)
        return adjustments

    def _category_multipliers(
        self, muscles: dict[MuscleGroup, MuscleRecoveryState]
    ) -> dict[MuscleCategory, float]:
        """Load multiplier per body region from the mean residual fatigue."""
        weights = self.readiness_weights
        multipliers: dict[MuscleCategory, float] = {}
        for category in MuscleCategory:
            levels = [s.fatigue for m, s in muscles.items() if m.category == category]
            mean_fatigue = float(np.mean(levels)) if levels else 0.0
            raw = 1.0 - weights.category_slope * mean_fatigue / 100.0
            multipliers[category] = max(weights.category_floor, min(1.0, raw))
        return multipliers

    def _is_calibration_stale(
        self, params: RecoveryParameters, state: FatigueState, as_of: datetime
    ) -> bool:
        calibrated = params.last_calibrated_at
        if calibrated is None or state.last_event_at is None:
            return False
        stale = (
            as_of - calibrated > timedelta(days=CALIBRATION_STALE_AFTER_DAYS)
            and state.last_event_at > calibrated
        )
        if stale:
            logger.warning(
                "Calibration for %s is stale (last run %s)", params.user_id, calibrated.isoformat()
            )
        return stale

    # ------------------------------------------------------------------
    # Degraded paths
    # ------------------------------------------------------------------

    def _insufficient(
        self, user_id: str, hour: datetime, source: SnapshotSource
    ) -> ReadinessSnapshot:
        zone = RiskZone.INSUFFICIENT_DATA
        return ReadinessSnapshot(
            user_id=user_id,
            as_of=hour,
            score=None,
            risk_zone=zone,
            load_delta=self.readiness_weights.load_delta.get(zone, 0.0),
            category_multipliers={c: 1.0 for c in MuscleCategory},
            source=source,
        )

    def _fallback(self, user_id: str, hour: datetime) -> ReadinessSnapshot:
        """Last known snapshot: in-process cache, then the store, then nothing."""
        cached = self.cache.latest_before(user_id, hour)
        if cached is not None:
            logger.warning("Serving cached snapshot from %s for %s", cached.as_of.isoformat(), user_id)
            return dataclasses.replace(cached, source=SnapshotSource.FALLBACK)

        try:
            persisted = self.store.fetch_cached_snapshot(user_id, hour)
        except UpstreamUnavailable as exc:
            logger.warning("Persisted snapshot unavailable for %s: %s", user_id, exc)
            persisted = None
        if persisted is not None:
            logger.warning(
                "Serving persisted snapshot from %s for %s", persisted.as_of.isoformat(), user_id
            )
            return dataclasses.replace(persisted, source=SnapshotSource.FALLBACK)

        logger.warning("No snapshot to fall back on for %s; returning insufficient data", user_id)
        return self._insufficient(user_id, hour, SnapshotSource.FALLBACK)

    def _write_through(self, user_id: str, snapshot: ReadinessSnapshot) -> None:
        try:
            self.store.persist_readiness_snapshot(user_id, snapshot)
        except UpstreamUnavailable as exc:
            logger.warning("Could not persist snapshot for %s: %s", user_id, exc)

    def _resolve_as_of(self, as_of: datetime | None) -> datetime:
        if as_of is None:
            return self._clock()
        if as_of.tzinfo is None:
            # Naive timestamps are interpreted as UTC
            return as_of.replace(tzinfo=timezone.utc)
        return as_of.astimezone(timezone.utc)
