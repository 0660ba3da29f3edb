"""Tests for AcwrRiskRule: SAFETY tier workload classification."""

from __future__ import annotations

import pytest

from recovery_engine.models.enums import Priority, RiskZone
from recovery_engine.rules.safety.acwr_risk import AcwrRiskRule


class TestAcwrRiskRule:
    def setup_method(self) -> None:
        self.rule = AcwrRiskRule()

    def test_is_safety_priority(self) -> None:
        assert self.rule.priority == Priority.SAFETY

    def test_high_risk_penalty(self, make_inputs, make_workload) -> None:
        adj = self.rule.evaluate(make_inputs(workload=make_workload(1.8)))
        assert adj is not None
        assert adj.risk_zone == RiskZone.HIGH_RISK
        assert adj.score_delta == pytest.approx(-25.0)
        assert adj.component == "acwr"
        assert "Gabbett" in adj.explanation

    def test_caution_penalty(self, make_inputs, make_workload) -> None:
        adj = self.rule.evaluate(make_inputs(workload=make_workload(1.4)))
        assert adj.risk_zone == RiskZone.CAUTION
        assert adj.score_delta == pytest.approx(-10.0)

    def test_optimal_has_no_penalty(self, make_inputs, make_workload) -> None:
        adj = self.rule.evaluate(make_inputs(workload=make_workload(1.0)))
        assert adj.risk_zone == RiskZone.OPTIMAL
        assert adj.score_delta == 0.0

    def test_undertraining_small_penalty(self, make_inputs, make_workload) -> None:
        adj = self.rule.evaluate(make_inputs(workload=make_workload(0.5)))
        assert adj.risk_zone == RiskZone.UNDERTRAINING
        assert adj.score_delta == pytest.approx(-5.0)

    def test_insufficient_data(self, make_inputs, make_workload) -> None:
        adj = self.rule.evaluate(make_inputs(workload=make_workload(None)))
        assert adj.risk_zone == RiskZone.INSUFFICIENT_DATA
        assert adj.score_delta == 0.0
        assert "two weeks" in adj.explanation

    def test_no_workload_means_no_data(self, make_inputs) -> None:
        assert not self.rule.has_required_data(make_inputs())
