"""Custom exception hierarchy for the event store adapter."""

from __future__ import annotations

from recovery_engine.exceptions import UpstreamUnavailable


class EventStoreUnavailable(UpstreamUnavailable):
    """A backend call failed after retries."""


class EventStoreTimeout(EventStoreUnavailable):
    """A backend call exceeded the per-call timeout."""

    def __init__(self, message: str, operation: str | None = None, timeout_s: float | None = None) -> None:
        super().__init__(message, operation=operation)
        self.timeout_s = timeout_s
