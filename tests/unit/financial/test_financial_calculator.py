# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Tests for FinancialCalculator ratios, coverage and projections."""

from datetime import date

import pytest
from conftest import make_operations, make_statement

from seniorval.core.primitives import ExpenseCategoryEnum, OccupancyTrendEnum
from seniorval.financial import FinancialCalculator, StatementPeriod


class TestRatios:
    def test_calculate_metrics(self):
        ratios = FinancialCalculator.calculate_metrics(make_statement())

        assert ratios.noi_margin == pytest.approx(2.6 / 12)
        assert ratios.noi_per_bed == pytest.approx(2_600_000 / 120)
        assert ratios.agency_ratio == pytest.approx(300_000 / 7_300_000)
        assert ratios.rent_coverage is None

    def test_rent_coverage_with_rent(self):
        statement = make_statement().add_expense(ExpenseCategoryEnum.RENT, 1_300_000)
        ratios = FinancialCalculator.calculate_metrics(statement)
        assert ratios.rent_coverage == pytest.approx(2.0)


class TestCoverage:
    def test_dscr(self):
        assert FinancialCalculator.dscr(1_250_000, 1_000_000) == pytest.approx(1.25)

    def test_coverage_not_applicable_without_denominator(self):
        assert FinancialCalculator.dscr(1_000_000, 0) is None
        assert FinancialCalculator.fccr(1_000_000, 0, 0) is None
        assert FinancialCalculator.rent_coverage(1_000_000, 0) is None

    def test_fccr(self):
        assert FinancialCalculator.fccr(3_000_000, 1_000_000, 500_000) == pytest.approx(2.0)


class TestPayerMix:
    def test_acuity_from_skilled_mix(self):
        analysis = FinancialCalculator.analyze_payer_mix(make_statement())
        assert analysis.skill_mix_ratio == pytest.approx(0.25)
        assert analysis.acuity_indicator == "medium"
        assert [r.payer for r in analysis.revenue_by_payer] == [
            "Medicare Part A",
            "Medicaid",
            "Private Pay",
        ]

    def test_estimates_days_from_census_mix(self):
        statement = make_statement()
        items = [i.model_copy(update={"patient_days": None}) for i in statement.revenue.items]
        statement = statement.with_revenue_items(items)

        analysis = FinancialCalculator.analyze_payer_mix(statement, make_operations())
        medicaid = next(r for r in analysis.revenue_by_payer if r.payer == "Medicaid")
        assert medicaid.patient_days == pytest.approx(38_544 * 0.60)


class TestTrendsAndProjections:
    def test_analyze_trends(self):
        first = make_statement()
        second = make_statement().scaled(1.1).model_copy(
            update={"period": StatementPeriod(end_date=date(2025, 3, 31))}
        )
        trends = FinancialCalculator.analyze_trends([second, first])

        assert trends.periods == ["2024-03-31", "2025-03-31"]
        revenue = next(m for m in trends.metrics if m.name == "Revenue")
        assert revenue.trend == OccupancyTrendEnum.IMPROVING
        assert revenue.cagr == pytest.approx(0.10)

        frame = trends.to_dataframe()
        assert frame.loc["NOI", "2025-03-31"] == pytest.approx(2_860_000)

    def test_empty_trends(self):
        assert FinancialCalculator.analyze_trends([]).metrics == []

    def test_break_even_occupancy(self):
        occupancy = FinancialCalculator.break_even_occupancy(
            fixed_costs=3_650_000, variable_cost_per_patient_day=150,
            revenue_per_patient_day=250, beds=100,
        )
        assert occupancy == pytest.approx(1.0)

    def test_break_even_impossible(self):
        assert FinancialCalculator.break_even_occupancy(1_000_000, 300, 250, 100) is None

    def test_project_at_occupancy(self):
        statement = make_statement()
        projected = FinancialCalculator.project_at_occupancy(
            statement, target_occupancy=96.8, current_occupancy=88.0, variable_cost_ratio=0.3
        )
        assert projected.net_revenue == pytest.approx(13_200_000)
        # 30% of opex varies with the 10% census increase
        assert projected.operating_expense == pytest.approx(9_400_000 * 1.03)
        assert statement.net_revenue == pytest.approx(12_000_000)

    def test_project_requires_positive_current_occupancy(self):
        with pytest.raises(ValueError, match="current_occupancy"):
            FinancialCalculator.project_at_occupancy(make_statement(), 90, 0)
