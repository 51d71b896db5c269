# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Replacement Cost Valuation

Cost approach: land + building + soft costs + FF&E, grossed up for
entrepreneurial incentive, less physical depreciation on the improvements
(renovation-credited effective age) and any functional or external
obsolescence.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import Field

from ..core.primitives import (
    AssetTypeEnum,
    ConfidenceLevel,
    FloatBetween0And1,
    LocationTypeEnum,
    Model,
    PositiveFloat,
    RegionEnum,
    ValuationMethodKind,
)
from .base import BaseMethodCalculator, ValuationAdjustment, ValuationInput, ValuationMethod
from .helpers import label_confidence

# Land value per acre used when the location type has no entry
_FALLBACK_LAND_PER_ACRE = 200_000

SQUARE_FEET_PER_BED = {
    AssetTypeEnum.SNF: 450,
    AssetTypeEnum.ALF: 550,
    AssetTypeEnum.ILF: 700,
}


class ReplacementCostTable(Model):
    """Construction cost, depreciation and land constants for one asset type."""

    construction_cost_per_sf: PositiveFloat
    regional_multipliers: Dict[RegionEnum, float] = Field(default_factory=dict)
    useful_life: PositiveFloat = 40
    residual_value_percent: FloatBetween0And1 = 0.20
    soft_cost_percent: FloatBetween0And1 = 0.15
    ffe_cost_per_bed: PositiveFloat = 15_000
    entrepreneurial_incentive: FloatBetween0And1 = 0.10
    land_value_per_acre: Dict[LocationTypeEnum, float] = Field(default_factory=dict)
    default_acres_per_bed: PositiveFloat = 0.03
    functional_obsolescence_percent: Optional[FloatBetween0And1] = None
    external_obsolescence_percent: Optional[FloatBetween0And1] = None


def default_replacement_cost_tables() -> Dict[AssetTypeEnum, ReplacementCostTable]:
    standard_regions = {
        RegionEnum.WEST: 1.20,
        RegionEnum.NORTHEAST: 1.15,
        RegionEnum.SOUTHEAST: 0.90,
        RegionEnum.MIDWEST: 0.95,
        RegionEnum.SOUTHWEST: 0.95,
    }
    return {
        AssetTypeEnum.SNF: ReplacementCostTable(
            construction_cost_per_sf=350,
            regional_multipliers=dict(standard_regions),
            land_value_per_acre={
                LocationTypeEnum.URBAN: 500_000,
                LocationTypeEnum.SUBURBAN: 250_000,
                LocationTypeEnum.RURAL: 75_000,
                LocationTypeEnum.FRONTIER: 25_000,
            },
        ),
        AssetTypeEnum.ALF: ReplacementCostTable(
            construction_cost_per_sf=300,
            regional_multipliers=dict(standard_regions),
            soft_cost_percent=0.12,
            ffe_cost_per_bed=12_000,
            entrepreneurial_incentive=0.12,
            land_value_per_acre={
                LocationTypeEnum.URBAN: 600_000,
                LocationTypeEnum.SUBURBAN: 300_000,
                LocationTypeEnum.RURAL: 100_000,
                LocationTypeEnum.FRONTIER: 35_000,
            },
            default_acres_per_bed=0.025,
        ),
        AssetTypeEnum.ILF: ReplacementCostTable(
            construction_cost_per_sf=250,
            regional_multipliers={
                RegionEnum.WEST: 1.25,
                RegionEnum.NORTHEAST: 1.15,
                RegionEnum.SOUTHEAST: 0.88,
                RegionEnum.MIDWEST: 0.92,
                RegionEnum.SOUTHWEST: 0.90,
            },
            useful_life=45,
            residual_value_percent=0.25,
            soft_cost_percent=0.10,
            ffe_cost_per_bed=8_000,
            entrepreneurial_incentive=0.15,
            land_value_per_acre={
                LocationTypeEnum.URBAN: 750_000,
                LocationTypeEnum.SUBURBAN: 400_000,
                LocationTypeEnum.RURAL: 125_000,
                LocationTypeEnum.FRONTIER: 50_000,
            },
            default_acres_per_bed=0.02,
        ),
    }


class ReplacementCostBreakdown(Model):
    land_value: float
    square_footage: float
    building_cost: float
    soft_costs: float
    ffe_cost: float
    entrepreneurial_incentive: float
    gross_replacement_cost: float
    effective_age: float
    physical_depreciation: float
    functional_obsolescence: float
    external_obsolescence: float

    @property
    def total_depreciation(self) -> float:
        return self.physical_depreciation + self.functional_obsolescence + self.external_obsolescence

    @property
    def final_value(self) -> float:
        return self.gross_replacement_cost - self.total_depreciation


class ReplacementCostCalculator(BaseMethodCalculator):
    """
    Depreciated replacement cost.

    Example:
        ```python
        breakdown = ReplacementCostCalculator().breakdown(ValuationInput(facility=facility))
        breakdown.final_value
        ```
    """

    tables: Dict[AssetTypeEnum, ReplacementCostTable] = Field(
        default_factory=default_replacement_cost_tables
    )
    weight: float = 0.10

    @property
    def kind(self) -> ValuationMethodKind:
        return ValuationMethodKind.REPLACEMENT_COST

    def calculate(self, input: ValuationInput) -> ValuationMethod:
        table = self.tables[input.facility.asset_type]
        b = self.breakdown(input, table)
        sf_label = (
            f"{input.facility.square_footage:,.0f}" if input.facility.square_footage else "est"
        )

        return ValuationMethod(
            name=self.kind,
            value=b.final_value,
            confidence=self._confidence(input, b),
            weight=self.weight,
            inputs={
                "land_value": b.land_value,
                "building_cost": b.building_cost,
                "soft_costs": b.soft_costs,
                "ffe_cost": b.ffe_cost,
                "gross_replacement_cost": b.gross_replacement_cost,
                "total_depreciation": b.total_depreciation,
                "beds": input.beds,
                "square_footage": b.square_footage,
            },
            adjustments=[
                ValuationAdjustment(description="Land value", impact=b.land_value),
                ValuationAdjustment(
                    description=(
                        f"Building cost ({table.construction_cost_per_sf:.0f}/SF x {sf_label} SF)"
                    ),
                    impact=b.building_cost,
                ),
                ValuationAdjustment(
                    description=f"Soft costs ({table.soft_cost_percent * 100:.0f}%)",
                    impact=b.soft_costs,
                ),
                ValuationAdjustment(
                    description=f"FF&E (${table.ffe_cost_per_bed:,.0f}/bed)", impact=b.ffe_cost
                ),
                ValuationAdjustment(
                    description=(
                        f"Entrepreneurial incentive "
                        f"({table.entrepreneurial_incentive * 100:.0f}%)"
                    ),
                    impact=b.entrepreneurial_incentive,
                ),
                ValuationAdjustment(
                    description=f"Physical depreciation ({b.effective_age:.0f} years)",
                    impact=-b.physical_depreciation,
                ),
            ],
        )

    def breakdown(
        self, input: ValuationInput, table: Optional[ReplacementCostTable] = None
    ) -> ReplacementCostBreakdown:
        """Full cost build-up and depreciation for the subject facility."""
        facility = input.facility
        table = table or self.tables[facility.asset_type]
        beds = input.beds

        land_value = input.land_value or 0.0
        if not land_value and table.land_value_per_acre:
            acres = facility.acres or beds * table.default_acres_per_bed
            per_acre = table.land_value_per_acre.get(facility.location_type, _FALLBACK_LAND_PER_ACRE)
            land_value = acres * per_acre

        square_footage = facility.square_footage or self.estimate_square_footage(
            beds, facility.asset_type
        )
        cost_per_sf = table.construction_cost_per_sf * table.regional_multipliers.get(
            facility.region, 1.0
        )
        building_cost = square_footage * cost_per_sf
        soft_costs = building_cost * table.soft_cost_percent
        ffe_cost = beds * table.ffe_cost_per_bed

        subtotal = land_value + building_cost + soft_costs + ffe_cost
        incentive = subtotal * table.entrepreneurial_incentive
        gross = subtotal + incentive

        depreciable = gross - land_value
        effective_age = facility.effective_age(input.valuation_date.year)
        depreciation_rate = (1 - table.residual_value_percent) * (
            min(effective_age, table.useful_life) / table.useful_life
        )

        return ReplacementCostBreakdown(
            land_value=land_value,
            square_footage=square_footage,
            building_cost=building_cost,
            soft_costs=soft_costs,
            ffe_cost=ffe_cost,
            entrepreneurial_incentive=incentive,
            gross_replacement_cost=gross,
            effective_age=effective_age,
            physical_depreciation=depreciable * depreciation_rate,
            functional_obsolescence=depreciable * (table.functional_obsolescence_percent or 0.0),
            external_obsolescence=depreciable * (table.external_obsolescence_percent or 0.0),
        )

    @staticmethod
    def estimate_square_footage(beds: int, asset_type: AssetTypeEnum) -> float:
        return float(beds * SQUARE_FEET_PER_BED[asset_type])

    def construction_cost(self, asset_type: AssetTypeEnum, region: RegionEnum) -> float:
        """Regionally adjusted construction cost per square foot."""
        table = self.tables[asset_type]
        return table.construction_cost_per_sf * table.regional_multipliers.get(region, 1.0)

    def _confidence(
        self, input: ValuationInput, breakdown: ReplacementCostBreakdown
    ) -> ConfidenceLevel:
        score = 0
        if input.facility.square_footage:
            score += 2
        if input.facility.acres:
            score += 1
        if input.land_value:
            score += 2
        if input.facility.year_built > 0:
            score += 1
        if input.beds > 0 and 50_000 < breakdown.final_value / input.beds < 300_000:
            score += 1
        return label_confidence(score, high=5, medium=3)
