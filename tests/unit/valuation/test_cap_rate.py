# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Tests for direct capitalization and NOI multiple valuation."""

import pytest
from conftest import (
    VALUATION_DATE,
    make_cms,
    make_facility,
    make_financials_from_noi,
    make_market,
    make_operations,
    make_valuation_input,
)

from seniorval.core.primitives import (
    AssetTypeEnum,
    ConfidenceLevel,
    LocationTypeEnum,
    MarketStrengthEnum,
    ValuationMethodKind,
)
from seniorval.valuation import (
    CapRateCalculator,
    NOIMultipleCalculator,
    ValuationInput,
    assess_market_strength,
)
from seniorval.valuation.noi_multiple import MULTIPLE_FLOOR


class TestCapRateCalculator:
    def test_base_rate_with_minimal_data(self):
        input = ValuationInput(
            facility=make_facility(),
            financials=make_financials_from_noi(2_500_000),
            valuation_date=VALUATION_DATE,
        )
        method = CapRateCalculator().calculate(input)

        assert method.name == ValuationMethodKind.CAP_RATE
        assert method.value == pytest.approx(25_000_000)
        assert method.inputs["adjusted_cap_rate"] == pytest.approx(0.10)
        assert method.confidence == ConfidenceLevel.LOW
        assert method.adjustments == []

    def test_full_data_is_high_confidence(self, valuation_input):
        method = CapRateCalculator().calculate(valuation_input)
        assert method.confidence == ConfidenceLevel.HIGH
        assert method.value == pytest.approx(2_600_000 / 0.10)

    def test_adjustments_are_additive(self):
        input = make_valuation_input(
            cms_data=make_cms(overall_rating=5),
            facility=make_facility(location_type=LocationTypeEnum.RURAL),
        )
        method = CapRateCalculator().calculate(input)

        # 5-star -150 bps, rural +100 bps
        assert method.inputs["adjusted_cap_rate"] == pytest.approx(0.10 - 0.015 + 0.01)
        assert [a.impact for a in method.adjustments] == pytest.approx([-0.015, 0.01])

    def test_low_occupancy_raises_rate(self):
        input = make_valuation_input(operating_metrics=make_operations(occupancy_rate=72))
        method = CapRateCalculator().calculate(input)
        assert method.inputs["adjusted_cap_rate"] == pytest.approx(0.12)

    def test_asset_type_base_rates(self):
        for asset_type, base in [(AssetTypeEnum.ALF, 0.07), (AssetTypeEnum.ILF, 0.06)]:
            input = ValuationInput(
                facility=make_facility(asset_type=asset_type, beds=100, year_built=2009),
                financials=make_financials_from_noi(1_000_000, beds=100),
                valuation_date=VALUATION_DATE,
            )
            method = CapRateCalculator().calculate(input)
            assert method.inputs["base_cap_rate"] == base

    def test_disabled_table_is_skipped(self):
        calculator = CapRateCalculator()
        table = calculator.tables[AssetTypeEnum.SNF].model_copy(update={"location": None})
        tables = {**calculator.tables, AssetTypeEnum.SNF: table}
        input = make_valuation_input(facility=make_facility(location_type=LocationTypeEnum.RURAL))

        method = CapRateCalculator(tables=tables).calculate(input)
        assert method.inputs["adjusted_cap_rate"] == pytest.approx(0.10)


class TestMarketStrength:
    def test_average_market(self):
        assert assess_market_strength(make_market()) == MarketStrengthEnum.AVERAGE

    def test_strong_market(self):
        market = make_market(market_occupancy=0.92, demand_growth_rate=0.04)
        assert assess_market_strength(market) == MarketStrengthEnum.STRONG

    def test_weak_market(self):
        market = make_market(market_occupancy=0.70, demand_growth_rate=0.0, supply_growth_rate=0.05)
        assert assess_market_strength(market) == MarketStrengthEnum.WEAK


class TestNOIMultipleCalculator:
    def test_stable_noi_bonus(self, valuation_input):
        method = NOIMultipleCalculator().calculate(valuation_input)
        assert method.inputs["adjusted_multiple"] == pytest.approx(10.5)
        assert method.value == pytest.approx(2_600_000 * 10.5)

    def test_multiple_floor(self):
        input = make_valuation_input(
            facility=make_facility(beds=40),
            cms_data=make_cms(overall_rating=1),
            operating_metrics=make_operations(occupancy_rate=70),
            market_data=make_market(
                market_occupancy=0.70, demand_growth_rate=0.0, supply_growth_rate=0.05
            ),
        )
        method = NOIMultipleCalculator().calculate(input)
        assert method.inputs["adjusted_multiple"] == MULTIPLE_FLOOR
        assert method.value == pytest.approx(2_600_000 * MULTIPLE_FLOOR)

    def test_cap_rate_conversion(self):
        assert NOIMultipleCalculator.cap_rate_to_multiple(0.10) == pytest.approx(10)
        assert NOIMultipleCalculator.multiple_to_cap_rate(8) == pytest.approx(0.125)
