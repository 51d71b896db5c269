# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Tests for FinancialNormalizer underwriting adjustments."""

import pytest
from conftest import make_statement

from seniorval.core.primitives import ExpenseCategoryEnum, NormalizationSettings
from seniorval.financial import BenchmarkMetric, FinancialNormalizer


def only(**enabled) -> NormalizationSettings:
    """Settings with every step off except those named."""
    flags = {
        "annualize": False,
        "normalize_management_fee": False,
        "normalize_agency": False,
        "add_reserves": False,
    }
    flags.update(enabled)
    return NormalizationSettings(**flags)


class TestFinancialNormalizer:
    def test_default_pipeline(self):
        result = FinancialNormalizer().normalize(make_statement())

        categories = [a.category for a in result.adjustments]
        assert categories == ["agency_nursing", "capital_reserves"]
        # agency savings 42,300 less a 3% reserve on $12M
        assert result.noi == pytest.approx(2_600_000 + 42_300 - 360_000)
        assert result.original.noi == pytest.approx(2_600_000)

    def test_annualizes_partial_period(self):
        statement = make_statement(months=6)
        result = FinancialNormalizer(only(annualize=True)).normalize(statement)

        assert result.normalized.period.months == 12
        assert result.normalized.net_revenue == pytest.approx(24_000_000)
        assert result.adjustments[0].category == "annualization"
        assert result.adjustments[0].adjustment_amount == pytest.approx(12_000_000)
        assert result.adjustments[0].description == (
            "Annualized 6-month financials (Oct 2023 - Mar 2024) to 12 months"
        )

    def test_adds_missing_management_fee(self):
        statement = make_statement()
        statement = statement.with_expense_items(
            i for i in statement.expenses.items if i.category != ExpenseCategoryEnum.MANAGEMENT_FEE
        )
        result = FinancialNormalizer(only(normalize_management_fee=True)).normalize(statement)

        fee = result.normalized.expenses.amount(ExpenseCategoryEnum.MANAGEMENT_FEE)
        assert fee == pytest.approx(600_000)
        assert result.adjustments[0].original_amount == 0

    def test_management_fee_within_tolerance_untouched(self):
        result = FinancialNormalizer(only(normalize_management_fee=True)).normalize(make_statement())
        assert result.adjustments == []
        assert result.noi == pytest.approx(2_600_000)

    def test_agency_normalization_rehires_share(self):
        result = FinancialNormalizer(only(normalize_agency=True)).normalize(make_statement())
        expenses = result.normalized.expenses

        assert expenses.amount(ExpenseCategoryEnum.AGENCY_NURSING) == pytest.approx(159_000)
        assert expenses.amount(ExpenseCategoryEnum.NURSING_WAGES) == pytest.approx(5_098_700)
        assert result.adjustments[0].adjustment_amount == pytest.approx(-42_300)

    def test_original_statement_is_unchanged(self):
        statement = make_statement()
        FinancialNormalizer().normalize(statement)
        assert statement.noi == pytest.approx(2_600_000)

    def test_benchmark_comparison(self):
        result = FinancialNormalizer(only()).normalize(make_statement())
        comparison = result.benchmark_comparison

        assert comparison.occupancy.value == pytest.approx(38_544 / (120 * 365))
        assert comparison.labor_cost_percent.higher_is_better is False


class TestBenchmarkMetric:
    @pytest.mark.parametrize(
        "value,expected",
        [(115, "Excellent"), (100, "Good"), (95, "Fair"), (80, "Poor")],
    )
    def test_rating_bands(self, value, expected):
        assert BenchmarkMetric(value=value, benchmark=100).rating == expected

    def test_lower_is_better_inverts(self):
        assert BenchmarkMetric(value=80, benchmark=100, higher_is_better=False).rating == "Excellent"

    def test_zero_benchmark(self):
        assert BenchmarkMetric(value=5, benchmark=0).rating == "Fair"
