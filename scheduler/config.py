"""Environment-variable-based configuration for the calibration scheduler."""

from __future__ import annotations

import os
from pathlib import Path

EVENT_STORE_PATH: Path = Path(
    os.environ.get("EVENT_STORE_PATH", "~/.recovery_engine/store.json")
).expanduser()
CALIBRATION_INTERVAL_MINUTES: int = int(os.environ.get("CALIBRATION_INTERVAL_MINUTES", "15"))
NIGHTLY_HOUR: int = int(os.environ.get("SCHEDULER_HOUR", "3"))
NIGHTLY_MINUTE: int = int(os.environ.get("SCHEDULER_MINUTE", "0"))
STORE_TIMEOUT_SECONDS: float = float(os.environ.get("STORE_TIMEOUT_SECONDS", "5"))
