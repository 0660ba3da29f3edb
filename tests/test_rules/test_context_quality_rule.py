"""Tests for ContextQualityRule: CONTEXT tier daily check-in."""

from __future__ import annotations

from datetime import date

import pytest

from recovery_engine.models.enums import Priority
from recovery_engine.rules.context.context_quality import ContextQualityRule


class TestContextQualityRule:
    def setup_method(self) -> None:
        self.rule = ContextQualityRule()

    def test_is_context_priority(self) -> None:
        assert self.rule.priority == Priority.CONTEXT

    def test_good_day_returns_none(self, make_inputs, make_sample) -> None:
        sample = make_sample(date(2024, 3, 30), sleep_hours=8.0, stress=2.0, soreness=0.0)
        assert self.rule.evaluate(make_inputs(context=sample)) is None

    def test_poor_night_lowers_score(self, make_inputs, make_sample) -> None:
        sample = make_sample(date(2024, 3, 30), sleep_hours=4.0, soreness=6.0)
        adj = self.rule.evaluate(make_inputs(context=sample, context_modifier=0.6))
        assert adj is not None
        assert adj.score_delta == pytest.approx(-(3.5 + 1.5))
        assert adj.risk_zone is None
        assert "0.60" in adj.explanation

    def test_penalty_never_exceeds_cap(self, make_inputs, make_sample) -> None:
        sample = make_sample(date(2024, 3, 30), sleep_hours=2.0, sleep_quality=1.0, stress=10.0, soreness=10.0)
        adj = self.rule.evaluate(make_inputs(context=sample))
        assert adj.score_delta == pytest.approx(-10.0)

    def test_requires_context(self, make_inputs) -> None:
        assert not self.rule.has_required_data(make_inputs())
