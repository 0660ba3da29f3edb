"""Event store adapter: all persistence I/O for the recovery engine lives here."""

from event_store.client import EventStoreClient
from event_store.exceptions import EventStoreTimeout, EventStoreUnavailable
from event_store.mapper import (
    event_to_row,
    map_context_row,
    map_training_row,
)
from event_store.memory import InMemoryBackend

__all__ = [
    "EventStoreClient",
    "EventStoreTimeout",
    "EventStoreUnavailable",
    "InMemoryBackend",
    "event_to_row",
    "map_context_row",
    "map_training_row",
]
