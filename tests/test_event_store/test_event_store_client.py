"""Tests for EventStoreClient: reads, ingestion, listeners and retries."""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from event_store import EventStoreClient, EventStoreTimeout, EventStoreUnavailable
from recovery_engine.exceptions import InvalidInput, UpstreamUnavailable
from recovery_engine.models.parameters import RecoveryParameters

UTC = timezone.utc
START = datetime(2024, 1, 1, tzinfo=UTC)
END = datetime(2024, 2, 1, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


class TestFetchTrainingEvents:
    def test_mixed_schema_versions_sorted(self, store, backend, v1_row, v2_row) -> None:
        backend.insert_training_row(v2_row)
        backend.insert_training_row(v1_row)
        events = store.fetch_training_events("user-1", START, END)
        assert [e.exercise_id for e in events] == ["bench_press", "romanian_deadlift"]

    def test_range_is_inclusive(self, store, make_event) -> None:
        at = datetime(2024, 1, 5, 10, tzinfo=UTC)
        store.record_training_event(make_event(timestamp=at))
        assert len(store.fetch_training_events("user-1", at, at)) == 1
        assert store.fetch_training_events("user-1", at + timedelta(seconds=1), END) == []

    def test_deleted_rows_excluded(self, store, backend, v1_row, v2_row) -> None:
        v1_row["deleted_at"] = "2024-01-03T00:00:00Z"
        v2_row["is_deleted"] = True
        backend.insert_training_row(v1_row)
        backend.insert_training_row(v2_row)
        assert store.fetch_training_events("user-1", START, END) == []

    def test_malformed_rows_skipped(self, store, backend, v2_row, caplog) -> None:
        bad = dict(v2_row, rpe=42)
        backend.insert_training_row(bad)
        backend.insert_training_row(v2_row)
        with caplog.at_level(logging.WARNING, logger="event_store.client"):
            events = store.fetch_training_events("user-1", START, END)
        assert len(events) == 1
        assert "Skipping malformed training row" in caplog.text

    def test_other_users_excluded(self, store, make_event) -> None:
        store.record_training_event(make_event(user_id="user-2"))
        assert store.fetch_training_events("user-1", START, END) == []

    def test_range_handed_to_backend(self, mock_store, mock_backend, v2_row) -> None:
        mock_backend.select_training_rows.return_value = [v2_row]
        events = mock_store.fetch_training_events("user-1", START, END)
        assert len(events) == 1
        mock_backend.select_training_rows.assert_called_once_with("user-1", START, END)

    def test_naive_bounds_read_as_utc(self, mock_store, mock_backend) -> None:
        mock_backend.select_training_rows.return_value = []
        mock_store.fetch_training_events("user-1", datetime(2024, 1, 1), datetime(2024, 2, 1))
        mock_backend.select_training_rows.assert_called_once_with("user-1", START, END)


class TestFetchOther:
    def test_context_window(self, store, context_row) -> None:
        store.record_context_sample(context_row)
        store.record_context_sample(dict(context_row, date="2023-12-20"))
        samples = store.fetch_context_samples("user-1", date(2024, 1, 1), date(2024, 1, 3))
        assert [s.day for s in samples] == [date(2024, 1, 2)]

    def test_parameters_default_when_missing(self, store) -> None:
        params = store.fetch_recovery_parameters("user-1")
        assert params == RecoveryParameters.population_defaults("user-1")

    def test_parameters_round_trip(self, store) -> None:
        params = RecoveryParameters(
            user_id="user-1", fatigue_resistance=62.0, last_calibrated_at=START, confidence=0.4
        )
        store.persist_recovery_parameters("user-1", params)
        assert store.fetch_recovery_parameters("user-1") == params

    def test_unreadable_parameters_fall_back(self, store, backend) -> None:
        backend.upsert_parameters("user-1", {"fatigue_resistance": "lots"})
        assert not store.fetch_recovery_parameters("user-1").is_calibrated

    def test_no_cached_snapshot(self, store) -> None:
        assert store.fetch_cached_snapshot("user-1", END) is None


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class TestIngestion:
    def test_invalid_row_rejected_before_write(self, store, backend, v2_row) -> None:
        listener = MagicMock()
        store.add_listener(listener)
        with pytest.raises(InvalidInput):
            store.record_training_event(dict(v2_row, reps=-3))
        assert backend.select_training_rows("user-1") == []
        listener.on_training_event_written.assert_not_called()

    @pytest.mark.parametrize(
        "changes",
        [{"reps": -8}, {"load": -1.0}, {"rpe": 11.0}, {"muscles": ()}],
    )
    def test_invalid_typed_event_rejected_before_write(
        self, store, backend, make_event, changes
    ) -> None:
        listener = MagicMock()
        store.add_listener(listener)
        with pytest.raises(InvalidInput):
            store.record_training_event(make_event(**changes))
        assert backend.select_training_rows("user-1") == []
        listener.on_training_event_written.assert_not_called()

    def test_invalid_typed_sample_rejected_before_write(self, store, backend, make_sample) -> None:
        listener = MagicMock()
        store.add_listener(listener)
        with pytest.raises(InvalidInput):
            store.record_context_sample(make_sample(date(2024, 1, 2), stress=50.0))
        assert backend.select_context_rows("user-1") == []
        listener.on_context_sample_written.assert_not_called()

    def test_valid_typed_event_recorded(self, store, bench_press) -> None:
        assert store.record_training_event(bench_press) == bench_press
        assert store.fetch_training_events("user-1", START, END) == [bench_press]

    def test_listeners_notified(self, store, v2_row, context_row) -> None:
        listener = MagicMock()
        store.add_listener(listener)
        event = store.record_training_event(v2_row)
        sample = store.record_context_sample(context_row)
        listener.on_training_event_written.assert_called_once_with(event)
        listener.on_context_sample_written.assert_called_once_with(sample)

    def test_legacy_row_stored_as_current_schema(self, store, backend, v1_row) -> None:
        store.record_training_event(v1_row)
        (row,) = backend.select_training_rows("user-1")
        assert row["schema_version"] == 2
        assert "set_metadata" not in row

    def test_context_replaced_per_day(self, store, context_row) -> None:
        store.record_context_sample(context_row)
        store.record_context_sample(dict(context_row, sleep_hours=8.0))
        (sample,) = store.fetch_context_samples("user-1", date(2024, 1, 2), date(2024, 1, 2))
        assert sample.sleep_hours == 8.0


class TestDeleteSession:
    def test_tombstones_announced(self, store, make_event) -> None:
        t = datetime(2024, 1, 1, 10, tzinfo=UTC)
        store.record_training_event(make_event(timestamp=t, session_id="s-1"))
        store.record_training_event(make_event(timestamp=t + timedelta(minutes=15), session_id="s-1"))
        store.record_training_event(make_event(timestamp=t + timedelta(days=1), session_id="s-2"))
        listener = MagicMock()
        store.add_listener(listener)

        tombstones = store.delete_session("s-1")

        assert len(tombstones) == 2
        assert all(e.is_deleted for e in tombstones)
        assert listener.on_training_event_written.call_count == 2
        assert store.fetch_session_events("s-1") == []
        assert len(store.fetch_training_events("user-1", START, END)) == 1

    def test_legacy_session(self, store, backend, v1_row) -> None:
        backend.insert_training_row(v1_row)
        assert len(store.delete_session("legacy-1")) == 1
        (row,) = backend.select_training_rows("user-1")
        assert row["deleted_at"] is not None

    def test_unknown_session(self, store) -> None:
        assert store.delete_session("missing") == []


# ---------------------------------------------------------------------------
# Timeouts and retries
# ---------------------------------------------------------------------------


class TestSafeCall:
    def test_transient_error_retried(self, mock_store, mock_backend, v2_row) -> None:
        mock_backend.select_training_rows.side_effect = [ConnectionError("reset"), [v2_row]]
        events = mock_store.fetch_training_events("user-1", START, END)
        assert len(events) == 1
        assert mock_backend.select_training_rows.call_count == 2

    def test_gives_up_after_retries(self, mock_store, mock_backend) -> None:
        mock_backend.select_training_rows.side_effect = ConnectionError("reset")
        with pytest.raises(EventStoreUnavailable) as info:
            mock_store.fetch_training_events("user-1", START, END)
        assert info.value.operation == "select_training_rows"
        assert mock_backend.select_training_rows.call_count == mock_store.max_retries + 1

    def test_unexpected_error_not_retried(self, mock_store, mock_backend) -> None:
        mock_backend.list_user_ids.side_effect = ValueError("corrupt index")
        with pytest.raises(UpstreamUnavailable, match="corrupt index"):
            mock_store.list_user_ids()
        assert mock_backend.list_user_ids.call_count == 1

    def test_slow_backend_times_out(self, mock_backend) -> None:
        release = threading.Event()
        mock_backend.select_parameters.side_effect = lambda user_id: release.wait(2.0)
        client = EventStoreClient(mock_backend, timeout_s=0.05, max_retries=0)
        try:
            with pytest.raises(EventStoreTimeout) as info:
                client.fetch_recovery_parameters("user-1")
            assert info.value.timeout_s == 0.05
            assert isinstance(info.value, UpstreamUnavailable)
        finally:
            release.set()
            client.close()

    def test_write_failure_surfaces(self, mock_store, mock_backend, bench_press) -> None:
        mock_backend.insert_training_row.side_effect = OSError("disk full")
        listener = MagicMock()
        mock_store.add_listener(listener)
        with pytest.raises(EventStoreUnavailable):
            mock_store.record_training_event(bench_press)
        listener.on_training_event_written.assert_not_called()
