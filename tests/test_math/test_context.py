"""Tests for recovery context modifiers and the daily context penalty."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from recovery_engine.math.context import (
    context_penalty,
    daily_modifiers,
    latest_sample,
    nutrition_modifier,
    recent_samples,
    recovery_modifier,
    sleep_modifier,
    stress_modifier,
)

TODAY = date(2024, 3, 10)


class TestModifiers:
    def test_missing_data_is_neutral(self, make_sample) -> None:
        empty = [make_sample(TODAY)]
        assert sleep_modifier(empty) == 1.0
        assert stress_modifier(empty) == 1.0
        assert nutrition_modifier(empty) == 1.0
        assert recovery_modifier([], TODAY) == 1.0

    def test_optimal_sleep(self, make_sample) -> None:
        assert sleep_modifier([make_sample(TODAY, sleep_hours=8.5)]) == pytest.approx(1.1)

    def test_sleep_quality_adjusts(self, make_sample) -> None:
        good = sleep_modifier([make_sample(TODAY, sleep_hours=7.5, sleep_quality=10.0)])
        poor = sleep_modifier([make_sample(TODAY, sleep_hours=7.5, sleep_quality=1.0)])
        assert good == pytest.approx(1.0 + 4.5 * 0.02)
        assert poor == pytest.approx(1.0 - 4.5 * 0.02)

    def test_sleep_bands(self, make_sample) -> None:
        assert sleep_modifier([make_sample(TODAY, sleep_hours=6.5)]) == pytest.approx(0.85)
        assert sleep_modifier([make_sample(TODAY, sleep_hours=5.5)]) == pytest.approx(0.7)
        assert sleep_modifier([make_sample(TODAY, sleep_hours=4.0)]) == pytest.approx(0.55)

    def test_stress_bands(self, make_sample) -> None:
        assert stress_modifier([make_sample(TODAY, stress=2.0)]) == 1.05
        assert stress_modifier([make_sample(TODAY, stress=5.0)]) == 1.0
        assert stress_modifier([make_sample(TODAY, stress=7.0)]) == 0.85
        assert stress_modifier([make_sample(TODAY, stress=9.0)]) == 0.7

    def test_nutrition_bands(self, make_sample) -> None:
        assert nutrition_modifier([make_sample(TODAY, nutrition_quality=9.0)]) == 1.05
        assert nutrition_modifier([make_sample(TODAY, nutrition_quality=3.0)]) == 0.8

    def test_combined_modifier_is_bounded(self, make_sample) -> None:
        awful = [make_sample(TODAY, sleep_hours=4.0, stress=9.0, nutrition_quality=2.0)]
        great = [make_sample(TODAY, sleep_hours=8.5, sleep_quality=10.0, stress=1.0, nutrition_quality=9.0)]
        assert recovery_modifier(awful, TODAY) == pytest.approx(0.55)
        assert recovery_modifier(great, TODAY) == pytest.approx(1.2)

    def test_lookback_window(self, make_sample) -> None:
        samples = [make_sample(TODAY - timedelta(days=d), sleep_hours=4.0) for d in range(3, 6)]
        assert recent_samples(samples, TODAY) == []
        assert recovery_modifier(samples, TODAY) == 1.0

    def test_window_averages_days(self, make_sample) -> None:
        samples = [
            make_sample(TODAY, sleep_hours=9.0),
            make_sample(TODAY - timedelta(days=1), sleep_hours=7.0),
        ]
        # Mean 8.0 h falls in the optimal band
        assert sleep_modifier(recent_samples(samples, TODAY)) == pytest.approx(1.1)


class TestLatestSample:
    def test_prefers_today(self, make_sample) -> None:
        today = make_sample(TODAY, sleep_hours=8.0)
        yesterday = make_sample(TODAY - timedelta(days=1), sleep_hours=5.0)
        assert latest_sample([yesterday, today], TODAY) is today

    def test_falls_back_to_yesterday(self, make_sample) -> None:
        yesterday = make_sample(TODAY - timedelta(days=1), sleep_hours=5.0)
        assert latest_sample([yesterday], TODAY) is yesterday

    def test_older_samples_ignored(self, make_sample) -> None:
        assert latest_sample([make_sample(TODAY - timedelta(days=2))], TODAY) is None


class TestContextPenalty:
    def test_good_day_has_no_penalty(self, make_sample) -> None:
        sample = make_sample(TODAY, sleep_hours=8.0, sleep_quality=8.0, stress=3.0, soreness=0.0)
        assert context_penalty(sample, 10.0) == 0.0

    def test_short_sleep(self, make_sample) -> None:
        assert context_penalty(make_sample(TODAY, sleep_hours=4.0), 10.0) == pytest.approx(3.5)

    def test_soreness(self, make_sample) -> None:
        assert context_penalty(make_sample(TODAY, soreness=10.0), 10.0) == pytest.approx(2.5)

    def test_capped(self, make_sample) -> None:
        sample = make_sample(TODAY, sleep_hours=3.0, sleep_quality=1.0, stress=10.0, soreness=10.0)
        assert context_penalty(sample, 10.0) == pytest.approx(10.0)

    def test_missing_fields_add_nothing(self, make_sample) -> None:
        assert context_penalty(make_sample(TODAY), 10.0) == 0.0


class TestDailyModifiers:
    def test_one_value_per_day(self, make_sample) -> None:
        start = TODAY - timedelta(days=4)
        modifiers = daily_modifiers([], start, TODAY)
        assert list(modifiers) == [start + timedelta(days=i) for i in range(5)]
        assert set(modifiers.values()) == {1.0}

    def test_sample_only_moves_days_from_its_own(self, make_sample) -> None:
        awful = [make_sample(TODAY, sleep_hours=4.0, stress=9.0, nutrition_quality=2.0)]
        modifiers = daily_modifiers(awful, TODAY - timedelta(days=2), TODAY + timedelta(days=3))
        assert modifiers[TODAY - timedelta(days=1)] == 1.0
        assert modifiers[TODAY] == pytest.approx(0.55)
        assert modifiers[TODAY + timedelta(days=2)] == pytest.approx(0.55)
        # Falls out of the three-day window
        assert modifiers[TODAY + timedelta(days=3)] == 1.0
