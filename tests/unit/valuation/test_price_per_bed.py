# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Tests for price-per-bed and replacement cost valuation."""

import math

import pytest
from conftest import VALUATION_DATE, make_cms, make_facility, make_valuation_input

from seniorval.core.primitives import AssetTypeEnum, ConfidenceLevel, RegionEnum
from seniorval.valuation import (
    Bracket,
    PricePerBedCalculator,
    ReplacementCostCalculator,
    ValuationInput,
    lookup_bracket,
)


class TestPricePerBedCalculator:
    def test_multipliers_compose(self, valuation_input):
        method = PricePerBedCalculator().calculate(valuation_input)

        # 120 beds x1.05, 25 years x0.90, midwest x0.90
        expected_ppb = 95_000 * 1.05 * 0.90 * 0.90
        assert method.inputs["adjusted_price_per_bed"] == pytest.approx(expected_ppb)
        assert method.value == pytest.approx(expected_ppb * 120)
        assert method.confidence == ConfidenceLevel.HIGH

    def test_neutral_factors_leave_no_trail(self, valuation_input):
        method = PricePerBedCalculator().calculate(valuation_input)
        assert len(method.adjustments) == 3
        assert method.adjustments[0].impact == pytest.approx(0.05 * 95_000)

    def test_quality_multiplier(self):
        input = make_valuation_input(
            cms_data=make_cms(overall_rating=5),
            facility=make_facility(region=RegionEnum.WEST),
        )
        method = PricePerBedCalculator().calculate(input)
        assert method.inputs["adjusted_price_per_bed"] == pytest.approx(
            95_000 * 1.25 * 1.05 * 0.90 * 1.15
        )

    def test_facility_only_confidence(self):
        input = ValuationInput(facility=make_facility(), valuation_date=VALUATION_DATE)
        assert PricePerBedCalculator().calculate(input).confidence == ConfidenceLevel.MEDIUM

    def test_market_range(self):
        snf = PricePerBedCalculator.market_range(AssetTypeEnum.SNF)
        assert (snf.low, snf.mid, snf.high) == (60_000, 95_000, 150_000)


class TestBracketLookup:
    def test_half_open(self):
        table = [Bracket(min_value=0, max_value=50, value=1), Bracket(min_value=50, value=2)]
        assert lookup_bracket(table, 49.9) == 1
        assert lookup_bracket(table, 50) == 2
        assert lookup_bracket(table, 10_000) == 2

    def test_default_when_unmatched(self):
        table = [Bracket(min_value=10, max_value=20, value=1)]
        assert lookup_bracket(table, 5, default=0.5) == 0.5

    def test_infinite_bound_survives_json_dump(self):
        dumped = Bracket(min_value=0, value=1).model_dump(mode="json")
        assert math.isinf(Bracket.model_validate(dumped).max_value)


class TestReplacementCostCalculator:
    def test_estimated_land_and_building(self):
        input = ValuationInput(facility=make_facility(), valuation_date=VALUATION_DATE)
        breakdown = ReplacementCostCalculator().breakdown(input)

        # 3.6 acres at suburban $250k
        assert breakdown.land_value == pytest.approx(900_000)
        assert breakdown.square_footage == 120 * 450
        assert breakdown.building_cost == pytest.approx(54_000 * 350 * 0.95)
        assert breakdown.effective_age == 25
        assert breakdown.final_value < breakdown.gross_replacement_cost

    def test_land_value_from_input(self):
        input = ValuationInput(
            facility=make_facility(), land_value=500_000, valuation_date=VALUATION_DATE
        )
        assert ReplacementCostCalculator().breakdown(input).land_value == 500_000

    def test_land_is_not_depreciated(self):
        input = ValuationInput(
            facility=make_facility(year_built=1900), valuation_date=VALUATION_DATE
        )
        b = ReplacementCostCalculator().breakdown(input)
        # capped at useful life: 80% of improvements depreciate
        assert b.physical_depreciation == pytest.approx(
            (b.gross_replacement_cost - b.land_value) * 0.80
        )

    def test_method_value_matches_breakdown(self, valuation_input):
        calculator = ReplacementCostCalculator()
        method = calculator.calculate(valuation_input)
        assert method.value == pytest.approx(calculator.breakdown(valuation_input).final_value)
