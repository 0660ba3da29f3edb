"""Fixtures with persisted training and context rows of each schema version."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from event_store import EventStoreClient


@pytest.fixture
def v1_row() -> dict:
    """Legacy row: per-set blob, comma-separated muscles."""
    return {
        "user_id": "user-1",
        "performed_at": "2024-01-01T10:00:00Z",
        "exercise_id": "bench_press",
        "muscle_groups": "pecs, triceps",
        "set_metadata": json.dumps(
            [
                {"reps": 8, "weight": 225, "rpe": 7.5},
                {"reps": 8, "weight": 225, "rpe": 8},
                {"reps": 7, "weight": 225, "rpe": 8.5},
                {"reps": 6, "weight": 225, "rpe": 9},
            ]
        ),
        "session_id": "legacy-1",
        "deleted_at": None,
    }


@pytest.fixture
def v2_row() -> dict:
    return {
        "schema_version": 2,
        "user_id": "user-1",
        "timestamp": "2024-01-02T17:30:00+00:00",
        "exercise_id": "romanian_deadlift",
        "primary_muscles": ["hamstrings", "glutes", "lower_back"],
        "sets": 3,
        "reps": 10,
        "load": 185,
        "rpe": 8,
        "is_eccentric": True,
        "is_ballistic": False,
        "set_duration_s": 40,
        "rest_interval_s": 120,
        "session_id": "s-2",
        "is_deleted": False,
    }


@pytest.fixture
def context_row() -> dict:
    return {
        "user_id": "user-1",
        "date": "2024-01-02",
        "sleep_hours": 6.5,
        "sleep_quality": "fair",
        "stress_level": 6,
        "nutrition_quality": 7,
        "soreness": 3,
    }


@pytest.fixture
def mock_backend() -> MagicMock:
    return MagicMock()


@pytest.fixture
def mock_store(mock_backend):
    """Client over a mocked backend with fast retries."""
    client = EventStoreClient(mock_backend, timeout_s=1.0, max_retries=2, base_backoff_s=0.0)
    yield client
    client.close()
