# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Tests for DCF projection and investment metrics."""

import pytest
from conftest import make_valuation_input
from pydantic import ValidationError

from seniorval.core.primitives import ValuationMethodKind
from seniorval.valuation import DCFCalculator, DCFSettings, InvestmentMetrics

FLAT = DCFSettings(
    hold_period=5,
    discount_rate=0.10,
    exit_cap_rate=0.10,
    revenue_growth_rate=0.0,
    expense_growth_rate=0.0,
    annual_capex_percent=0.0,
    exit_cost_percent=0.0,
)


class TestInvestmentMetrics:
    def test_irr_single_period(self):
        assert InvestmentMetrics.irr([-1000, 1100]) == pytest.approx(0.10, abs=1e-6)

    def test_irr_multi_period(self):
        flows = [-1000, 100, 100, 1100]
        assert InvestmentMetrics.irr(flows) == pytest.approx(0.10, abs=1e-6)

    def test_npv_period_zero_undiscounted(self):
        assert InvestmentMetrics.npv(0.10, [-1000, 1100]) == pytest.approx(0.0)

    def test_equity_multiple(self):
        assert InvestmentMetrics.equity_multiple(1000, [500, 1500]) == pytest.approx(2.0)
        assert InvestmentMetrics.equity_multiple(0, [500]) == 0.0


class TestDCFCalculator:
    def test_flat_perpetuity(self):
        # No growth, no capex, exit cap equal to discount rate: value is NOI / rate
        result = DCFCalculator().project(1_000_000, 800_000, FLAT)

        assert result.total_value == pytest.approx(2_000_000)
        assert result.irr == pytest.approx(0.10, abs=1e-6)
        assert len(result.projections) == 5
        assert all(p.noi == pytest.approx(200_000) for p in result.projections)

    def test_projection_growth(self):
        settings = FLAT.model_copy(update={"revenue_growth_rate": 0.05})
        result = DCFCalculator().project(1_000_000, 800_000, settings)
        assert result.projections[1].revenue == pytest.approx(1_000_000 * 1.05**2)

    def test_noi_growth_override(self):
        settings = FLAT.model_copy(update={"noi_growth_rate": 0.10})
        result = DCFCalculator().project(1_000_000, 800_000, settings)
        assert result.projections[0].noi == pytest.approx(220_000)

    def test_initial_capex_in_first_year(self):
        settings = FLAT.model_copy(update={"initial_capex": 50_000})
        result = DCFCalculator().project(1_000_000, 800_000, settings)
        assert result.projections[0].capex == 50_000
        assert result.projections[1].capex == 0

    def test_occupancy_ramp(self):
        settings = FLAT.model_copy(
            update={"current_occupancy": 0.80, "stabilized_occupancy": 0.90, "years_to_stabilize": 2}
        )
        result = DCFCalculator().project(1_000_000, 800_000, settings)
        assert result.projections[0].revenue == pytest.approx(1_000_000 * 0.85 / 0.80)
        assert result.projections[4].revenue == pytest.approx(1_000_000 * 0.90 / 0.80)

    def test_higher_exit_cap_lowers_value(self, valuation_input):
        frame = DCFCalculator().sensitivity(
            valuation_input, "exit_cap_rate", [0.08, 0.09, 0.10, 0.11, 0.12]
        )
        assert list(frame.columns) == ["exit_cap_rate", "value"]
        assert frame["value"].is_monotonic_decreasing

    def test_calculate_method(self, valuation_input):
        method = DCFCalculator().calculate(valuation_input)
        assert method.name == ValuationMethodKind.DCF
        assert method.value > 0
        assert method.inputs["hold_period"] == 10
        assert len(method.adjustments) == 3

    def test_base_amounts_from_noi_only(self):
        input = make_valuation_input(financials=None)
        assert DCFCalculator.base_amounts(input) == (0.0, 0.0)

    def test_to_dataframe(self):
        frame = DCFCalculator().project(1_000_000, 800_000, FLAT).to_dataframe()
        assert frame.index.name == "year"
        assert list(frame.index) == [1, 2, 3, 4, 5]

    def test_zero_current_occupancy_rejected(self):
        with pytest.raises(ValidationError, match="current_occupancy"):
            DCFSettings(current_occupancy=0)
