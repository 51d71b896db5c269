# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Price Per Bed Valuation

Value = operational beds x adjusted price per bed. Unlike the cap rate and
NOI multiple methods, adjustments here compose multiplicatively: each factor
is a market-comparable multiplier on the base price per bed.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Tuple

from pydantic import Field

from ..core.primitives import (
    AssetTypeEnum,
    ConfidenceLevel,
    LocationTypeEnum,
    Model,
    PositiveFloat,
    RegionEnum,
    ValuationMethodKind,
)
from .base import BaseMethodCalculator, ValuationAdjustment, ValuationInput, ValuationMethod
from .helpers import Bracket, brackets, label_confidence, lookup_bracket, lookup_quality

logger = logging.getLogger(__name__)


class PricePerBedTable(Model):
    """Base price per bed and multiplier tables for one asset type."""

    base_price_per_bed: PositiveFloat
    quality: Optional[Dict[int, float]] = None
    size: Optional[List[Bracket]] = None
    age: Optional[List[Bracket]] = None
    occupancy: Optional[List[Bracket]] = None
    location: Optional[Dict[LocationTypeEnum, float]] = None
    region: Optional[Dict[RegionEnum, float]] = None


class MarketPriceRange(Model):
    low: float
    mid: float
    high: float


_MARKET_RANGES = {
    AssetTypeEnum.SNF: MarketPriceRange(low=60_000, mid=95_000, high=150_000),
    AssetTypeEnum.ALF: MarketPriceRange(low=100_000, mid=150_000, high=250_000),
    AssetTypeEnum.ILF: MarketPriceRange(low=150_000, mid=200_000, high=350_000),
}


def default_price_per_bed_tables() -> Dict[AssetTypeEnum, PricePerBedTable]:
    return {
        AssetTypeEnum.SNF: PricePerBedTable(
            base_price_per_bed=95_000,
            quality={5: 1.25, 4: 1.10, 3: 1.00, 2: 0.90, 1: 0.75},
            size=brackets((50, 0.90), (80, 0.95), (120, 1.00), (180, 1.05), (math.inf, 1.10)),
            age=brackets((5, 1.20), (15, 1.10), (25, 1.00), (35, 0.90), (math.inf, 0.80)),
            occupancy=brackets(
                (0.70, 0.70), (0.80, 0.85), (0.85, 0.95), (0.90, 1.00), (0.95, 1.05), (math.inf, 1.10)
            ),
            location={
                LocationTypeEnum.URBAN: 1.15,
                LocationTypeEnum.SUBURBAN: 1.00,
                LocationTypeEnum.RURAL: 0.85,
            },
            region={
                RegionEnum.WEST: 1.15,
                RegionEnum.NORTHEAST: 1.10,
                RegionEnum.SOUTHEAST: 0.95,
                RegionEnum.MIDWEST: 0.90,
                RegionEnum.SOUTHWEST: 0.95,
            },
        ),
        AssetTypeEnum.ALF: PricePerBedTable(
            base_price_per_bed=150_000,
            size=brackets((30, 0.85), (60, 0.95), (100, 1.00), (math.inf, 1.08)),
            age=brackets((10, 1.15), (20, 1.00), (30, 0.90), (math.inf, 0.75)),
            occupancy=brackets(
                (0.75, 0.75), (0.82, 0.90), (0.88, 1.00), (0.93, 1.05), (math.inf, 1.10)
            ),
            location={
                LocationTypeEnum.URBAN: 1.20,
                LocationTypeEnum.SUBURBAN: 1.05,
                LocationTypeEnum.RURAL: 0.80,
            },
            region={
                RegionEnum.WEST: 1.20,
                RegionEnum.NORTHEAST: 1.15,
                RegionEnum.SOUTHEAST: 0.90,
                RegionEnum.MIDWEST: 0.85,
                RegionEnum.SOUTHWEST: 0.90,
            },
        ),
        AssetTypeEnum.ILF: PricePerBedTable(
            base_price_per_bed=200_000,
            size=brackets((50, 0.90), (100, 0.95), (200, 1.00), (math.inf, 1.05)),
            age=brackets((10, 1.15), (20, 1.00), (math.inf, 0.85)),
            occupancy=brackets((0.85, 0.92), (0.90, 1.00), (0.95, 1.03), (math.inf, 1.08)),
            location={
                LocationTypeEnum.URBAN: 1.25,
                LocationTypeEnum.SUBURBAN: 1.05,
                LocationTypeEnum.RURAL: 0.75,
            },
            region={
                RegionEnum.WEST: 1.25,
                RegionEnum.NORTHEAST: 1.15,
                RegionEnum.SOUTHEAST: 0.85,
                RegionEnum.MIDWEST: 0.80,
                RegionEnum.SOUTHWEST: 0.85,
            },
        ),
    }


class PricePerBedCalculator(BaseMethodCalculator):
    """Market price per bed, scaled by facility-specific multipliers."""

    tables: Dict[AssetTypeEnum, PricePerBedTable] = Field(
        default_factory=default_price_per_bed_tables
    )
    weight: float = 0.20

    @property
    def kind(self) -> ValuationMethodKind:
        return ValuationMethodKind.PRICE_PER_BED

    @staticmethod
    def market_range(asset_type: AssetTypeEnum) -> MarketPriceRange:
        """Observed low / mid / high market price per bed for an asset type."""
        return _MARKET_RANGES[asset_type]

    def calculate(self, input: ValuationInput) -> ValuationMethod:
        table = self.tables[input.facility.asset_type]
        price_per_bed, adjustments = self.adjusted_price_per_bed(table, input)
        value = input.beds * price_per_bed

        logger.debug(
            f"Price per bed {input.facility.id}: ${price_per_bed:,.0f}/bed x {input.beds} beds"
        )

        return ValuationMethod(
            name=self.kind,
            value=value,
            confidence=self._confidence(input),
            weight=self.weight,
            inputs={
                "beds": input.beds,
                "base_price_per_bed": table.base_price_per_bed,
                "adjusted_price_per_bed": price_per_bed,
            },
            adjustments=adjustments,
        )

    def adjusted_price_per_bed(
        self, table: PricePerBedTable, input: ValuationInput
    ) -> Tuple[float, List[ValuationAdjustment]]:
        facility = input.facility
        factors: List[Tuple[str, float]] = []

        if table.quality is not None and input.cms_data is not None:
            stars = input.cms_data.overall_rating
            factors.append((f"CMS {stars}-star quality", lookup_quality(table.quality, stars, 1.0)))

        if table.size is not None:
            factors.append(
                (f"{input.beds} beds (size factor)", lookup_bracket(table.size, input.beds, 1.0))
            )

        if table.age is not None:
            age = input.facility_age
            factors.append((f"{age} years old", lookup_bracket(table.age, age, 1.0)))

        if table.occupancy is not None and input.operating_metrics is not None:
            occupancy = input.operating_metrics.occupancy_rate / 100
            factors.append(
                (
                    f"{occupancy * 100:.1f}% occupancy",
                    lookup_bracket(table.occupancy, occupancy, 1.0),
                )
            )

        if table.location is not None:
            factors.append(
                (
                    f"{facility.location_type.value} location",
                    table.location.get(facility.location_type, 1.0),
                )
            )

        if table.region is not None:
            factors.append(
                (f"{facility.region.value} region", table.region.get(facility.region, 1.0))
            )

        base = table.base_price_per_bed
        multiplier = 1.0
        adjustments = []
        for description, factor in factors:
            if factor != 1.0:
                multiplier *= factor
                adjustments.append(
                    ValuationAdjustment(description=description, impact=(factor - 1) * base)
                )
        return base * multiplier, adjustments

    def _confidence(self, input: ValuationInput) -> ConfidenceLevel:
        score = 0
        if input.beds > 0:
            score += 2
        if input.facility.year_built > 0:
            score += 1
        if input.cms_data is not None:
            score += 2
        if input.operating_metrics is not None:
            score += 1
        if input.market_data is not None:
            score += 1
        return label_confidence(score, high=5, medium=3)
