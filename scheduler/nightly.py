"""Calibration scheduler: drains queued calibrations and sweeps all users nightly.

Usage:
    python -m scheduler.nightly --once      # single sweep (for cron)
    python -m scheduler.nightly --daemon    # APScheduler loop
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from event_store import EventStoreClient, InMemoryBackend
from recovery_engine import CalibrationService, ReadinessEngine
from recovery_engine.exceptions import CalibrationStale

from scheduler.config import (
    CALIBRATION_INTERVAL_MINUTES,
    EVENT_STORE_PATH,
    NIGHTLY_HOUR,
    NIGHTLY_MINUTE,
    STORE_TIMEOUT_SECONDS,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything one scheduler process wires together."""

    backend: InMemoryBackend
    store: EventStoreClient
    engine: ReadinessEngine
    calibration: CalibrationService


def build_services() -> Services:
    """Load the store from disk and wire engine, calibration and listeners."""
    backend = InMemoryBackend.load(EVENT_STORE_PATH)
    store = EventStoreClient(backend, timeout_s=STORE_TIMEOUT_SECONDS)
    engine = ReadinessEngine(store)
    calibration = CalibrationService(store)
    calibration.add_listener(engine)
    store.add_listener(engine)
    store.add_listener(calibration)
    return Services(backend=backend, store=store, engine=engine, calibration=calibration)


def _save(services: Services) -> None:
    EVENT_STORE_PATH.parent.mkdir(parents=True, exist_ok=True)
    services.backend.save(EVENT_STORE_PATH)


def calibration_drain_job(services: Services) -> None:
    """Run calibration for every user queued since the last drain."""
    pending = services.calibration.pending
    if not pending:
        logger.debug("No calibrations pending")
        return
    logger.info("Draining %d pending calibration(s)", len(pending))
    results = services.calibration.run_pending()
    updated = sorted(uid for uid, params in results.items() if params is not None)
    logger.info("Calibrated %d user(s): %s", len(updated), updated)
    _save(services)


def nightly_sweep_job(services: Services) -> None:
    """Recalibrate every user, then persist a fresh readiness snapshot for each."""
    logger.info("Starting nightly sweep")
    try:
        results = services.calibration.calibrate_all()
    except CalibrationStale as exc:
        logger.error("Skipping nightly sweep: %s", exc)
        return

    now = datetime.now(timezone.utc)
    for user_id in sorted(results):
        snapshot = services.engine.get_readiness(user_id, now)
        if snapshot.has_score:
            logger.info(
                "%s: readiness %.1f (%s), load delta %+.0f%%",
                user_id,
                snapshot.score,
                snapshot.risk_zone.value,
                snapshot.load_delta * 100,
            )
        else:
            logger.info("%s: insufficient history (%s)", user_id, snapshot.source.value)

    _save(services)
    logger.info("Nightly sweep complete (%d users)", len(results))


def main() -> None:
    parser = argparse.ArgumentParser(description="Recovery engine calibration scheduler")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--once", action="store_true", help="Run one sweep and exit")
    group.add_argument("--daemon", action="store_true", help="Run as APScheduler daemon")
    args = parser.parse_args()

    services = build_services()

    if args.once:
        nightly_sweep_job(services)
        services.store.close()
        return

    from apscheduler.schedulers.blocking import BlockingScheduler

    scheduler = BlockingScheduler()
    scheduler.add_job(
        calibration_drain_job,
        "interval",
        minutes=CALIBRATION_INTERVAL_MINUTES,
        args=[services],
        id="calibration_drain",
        max_instances=1,
    )
    scheduler.add_job(
        nightly_sweep_job,
        "cron",
        hour=NIGHTLY_HOUR,
        minute=NIGHTLY_MINUTE,
        args=[services],
        id="nightly_sweep",
        max_instances=1,
    )
    logger.info(
        "Scheduler started, drain every %d min, sweep at %02d:%02d",
        CALIBRATION_INTERVAL_MINUTES,
        NIGHTLY_HOUR,
        NIGHTLY_MINUTE,
    )
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")
    finally:
        services.store.close()


if __name__ == "__main__":
    main()
