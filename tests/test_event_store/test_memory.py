"""Tests for the in-memory row backend and its JSON persistence."""

from __future__ import annotations

from datetime import date, datetime, timezone

from event_store import InMemoryBackend

UTC = timezone.utc


class TestInMemoryBackend:
    def test_list_user_ids(self, v1_row, v2_row, context_row) -> None:
        backend = InMemoryBackend()
        backend.insert_training_row(v1_row)
        backend.insert_training_row(dict(v2_row, user_id="user-2"))
        backend.insert_context_row(dict(context_row, user_id="user-3"))
        backend.upsert_parameters("user-4", {"user_id": "user-4"})
        assert backend.list_user_ids() == ["user-1", "user-2", "user-3", "user-4"]

    def test_rows_returned_as_copies(self, v2_row) -> None:
        backend = InMemoryBackend()
        backend.insert_training_row(v2_row)
        backend.select_training_rows("user-1")[0]["sets"] = 99
        assert backend.select_training_rows("user-1")[0]["sets"] == 3

    def test_soft_delete_counts_rows(self, v1_row, v2_row) -> None:
        backend = InMemoryBackend()
        backend.insert_training_row(v1_row)
        backend.insert_training_row(v2_row)
        assert backend.soft_delete_session("s-2", "2024-01-03T00:00:00+00:00") == 1
        assert backend.select_session_rows("s-2")[0]["is_deleted"] is True

    def test_save_and_load(self, tmp_path, v1_row, v2_row, context_row) -> None:
        backend = InMemoryBackend()
        backend.insert_training_row(v1_row)
        backend.insert_training_row(v2_row)
        backend.insert_context_row(context_row)
        backend.upsert_parameters("user-1", {"user_id": "user-1", "fatigue_resistance": 55.0})
        backend.upsert_snapshot("user-1", "2024-01-02T10:00:00+00:00", {"score": 61.0})

        path = tmp_path / "store.json"
        backend.save(path)
        loaded = InMemoryBackend.load(path)

        assert loaded.select_training_rows("user-1") == backend.select_training_rows("user-1")
        assert loaded.select_context_rows("user-1") == [context_row]
        assert loaded.select_parameters("user-1")["fatigue_resistance"] == 55.0
        assert loaded.select_snapshots("user-1") == [{"score": 61.0}]

    def test_missing_file_loads_empty(self, tmp_path) -> None:
        loaded = InMemoryBackend.load(tmp_path / "absent.json")
        assert loaded.list_user_ids() == []


class TestTimeRangeReads:
    def _days(self, v2_row, days) -> InMemoryBackend:
        backend = InMemoryBackend()
        # Inserted out of order on purpose
        for day in days:
            backend.insert_training_row(
                dict(v2_row, timestamp=f"2024-01-{day:02d}T10:00:00Z", session_id=f"d{day}")
            )
        return backend

    def test_range_is_inclusive(self, v2_row) -> None:
        backend = self._days(v2_row, [9, 3, 5, 7, 1])
        rows = backend.select_training_rows(
            "user-1", datetime(2024, 1, 3, 10, tzinfo=UTC), datetime(2024, 1, 7, 10, tzinfo=UTC)
        )
        assert [r["session_id"] for r in rows] == ["d3", "d5", "d7"]

    def test_open_bounds(self, v2_row) -> None:
        backend = self._days(v2_row, [2, 1, 3])
        assert len(backend.select_training_rows("user-1")) == 3
        since = backend.select_training_rows("user-1", start=datetime(2024, 1, 2, tzinfo=UTC))
        assert [r["session_id"] for r in since] == ["d2", "d3"]
        until = backend.select_training_rows("user-1", end=datetime(2024, 1, 2, tzinfo=UTC))
        assert [r["session_id"] for r in until] == ["d1"]

    def test_legacy_rows_indexed_by_performed_at(self, v1_row) -> None:
        backend = InMemoryBackend()
        backend.insert_training_row(v1_row)
        assert backend.select_training_rows("user-1", end=datetime(2023, 12, 31, tzinfo=UTC)) == []
        assert len(backend.select_training_rows("user-1", start=datetime(2024, 1, 1, tzinfo=UTC))) == 1

    def test_unparseable_timestamp_always_returned(self, v2_row) -> None:
        backend = InMemoryBackend()
        backend.insert_training_row(dict(v2_row, timestamp="yesterday"))
        rows = backend.select_training_rows("user-1", start=datetime(2030, 1, 1, tzinfo=UTC))
        assert [r["timestamp"] for r in rows] == ["yesterday"]

    def test_soft_delete_visible_in_range_reads(self, v2_row) -> None:
        backend = self._days(v2_row, [1, 2])
        backend.soft_delete_session("d1", "2024-01-03T00:00:00+00:00")
        rows = backend.select_training_rows("user-1", end=datetime(2024, 1, 1, 12, tzinfo=UTC))
        assert rows[0]["is_deleted"] is True

    def test_index_rebuilt_on_load(self, tmp_path, v2_row) -> None:
        backend = self._days(v2_row, [4, 1, 2])
        path = tmp_path / "store.json"
        backend.save(path)
        loaded = InMemoryBackend.load(path)
        rows = loaded.select_training_rows("user-1", start=datetime(2024, 1, 2, tzinfo=UTC))
        assert [r["session_id"] for r in rows] == ["d2", "d4"]

    def test_context_date_range(self, context_row) -> None:
        backend = InMemoryBackend()
        for day in ("2024-01-01", "2024-01-02", "2024-01-05"):
            backend.insert_context_row(dict(context_row, date=day))
        rows = backend.select_context_rows("user-1", date(2024, 1, 2), date(2024, 1, 4))
        assert [r["date"] for r in rows] == ["2024-01-02"]
