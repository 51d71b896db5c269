# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Direct Capitalization Valuation

Value = NOI / adjusted cap rate. The adjusted cap rate is the asset type's
base rate plus additive basis-point deltas for quality, size, age,
occupancy, location and market strength.
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
    MarketStrengthEnum,
    Model,
    PositiveFloat,
    ValuationMethodKind,
)
from .base import BaseMethodCalculator, ValuationAdjustment, ValuationInput, ValuationMethod
from .helpers import (
    Bracket,
    assess_market_strength,
    brackets,
    label_confidence,
    lookup_bracket,
    lookup_quality,
)

logger = logging.getLogger(__name__)


class CapRateTable(Model):
    """
    Base cap rate and adjustment tables for one asset type.

    Any adjustment table set to None is disabled.
    """

    base_cap_rate: PositiveFloat = Field(..., description="Unadjusted cap rate")
    quality: Optional[Dict[int, float]] = Field(
        default=None, description="Star rating -> rate delta"
    )
    size: Optional[List[Bracket]] = None
    age: Optional[List[Bracket]] = None
    occupancy: Optional[List[Bracket]] = None
    location: Optional[Dict[LocationTypeEnum, float]] = None
    market: Optional[Dict[MarketStrengthEnum, float]] = None


_DEFAULT_MARKET = {
    MarketStrengthEnum.STRONG: -0.005,
    MarketStrengthEnum.AVERAGE: 0.0,
    MarketStrengthEnum.WEAK: 0.01,
}


def default_cap_rate_tables() -> Dict[AssetTypeEnum, CapRateTable]:
    """Market default cap rate tables keyed by asset type."""
    return {
        AssetTypeEnum.SNF: CapRateTable(
            base_cap_rate=0.10,
            quality={5: -0.015, 4: -0.0075, 3: 0.0, 2: 0.01, 1: 0.02},
            size=brackets((50, 0.01), (100, 0.005), (150, 0.0), (200, -0.005), (math.inf, -0.01)),
            age=brackets((10, -0.01), (20, -0.005), (30, 0.0), (40, 0.005), (math.inf, 0.01)),
            occupancy=brackets(
                (0.75, 0.02), (0.80, 0.01), (0.85, 0.005), (0.90, 0.0), (0.95, -0.005), (math.inf, -0.01)
            ),
            location={
                LocationTypeEnum.URBAN: -0.005,
                LocationTypeEnum.SUBURBAN: 0.0,
                LocationTypeEnum.RURAL: 0.01,
            },
            market=dict(_DEFAULT_MARKET),
        ),
        AssetTypeEnum.ALF: CapRateTable(
            base_cap_rate=0.07,
            size=brackets((40, 0.01), (80, 0.005), (120, 0.0), (math.inf, -0.005)),
            age=brackets((10, -0.0075), (20, 0.0), (30, 0.0075), (math.inf, 0.015)),
            occupancy=brackets(
                (0.80, 0.01), (0.85, 0.005), (0.90, 0.0), (0.95, -0.005), (math.inf, -0.0075)
            ),
            location={
                LocationTypeEnum.URBAN: -0.0075,
                LocationTypeEnum.SUBURBAN: 0.0,
                LocationTypeEnum.RURAL: 0.0075,
            },
            market=dict(_DEFAULT_MARKET),
        ),
        AssetTypeEnum.ILF: CapRateTable(
            base_cap_rate=0.06,
            age=brackets((10, -0.005), (20, 0.0), (math.inf, 0.0075)),
            occupancy=brackets((0.90, 0.0075), (0.95, 0.0), (math.inf, -0.005)),
            location={
                LocationTypeEnum.URBAN: -0.005,
                LocationTypeEnum.SUBURBAN: 0.0,
                LocationTypeEnum.RURAL: 0.005,
            },
            market=dict(_DEFAULT_MARKET),
        ),
    }


class CapRateCalculator(BaseMethodCalculator):
    """
    Direct capitalization of normalized NOI.

    Example:
        ```python
        calculator = CapRateCalculator()
        method = calculator.calculate(ValuationInput(facility=facility, financials=financials))
        method.inputs["adjusted_cap_rate"]
        ```
    """

    tables: Dict[AssetTypeEnum, CapRateTable] = Field(default_factory=default_cap_rate_tables)
    weight: float = 0.30

    @property
    def kind(self) -> ValuationMethodKind:
        return ValuationMethodKind.CAP_RATE

    def calculate(self, input: ValuationInput) -> ValuationMethod:
        table = self.tables[input.facility.asset_type]
        noi = input.noi

        cap_rate, adjustments = self.adjusted_cap_rate(table, input)
        value = noi / cap_rate if cap_rate > 0 else 0.0

        logger.debug(
            f"Cap rate {input.facility.id}: base {table.base_cap_rate:.4f} -> "
            f"{cap_rate:.4f}, value ${value:,.0f}"
        )

        return ValuationMethod(
            name=self.kind,
            value=value,
            confidence=self._confidence(input),
            weight=self.weight,
            inputs={
                "noi": noi,
                "base_cap_rate": table.base_cap_rate,
                "adjusted_cap_rate": cap_rate,
                "beds": input.beds,
            },
            adjustments=adjustments,
        )

    def adjusted_cap_rate(
        self, table: CapRateTable, input: ValuationInput
    ) -> Tuple[float, List[ValuationAdjustment]]:
        """Apply every enabled additive adjustment to the base rate."""
        deltas: List[Tuple[str, float]] = []
        facility = input.facility

        if table.quality is not None and input.cms_data is not None:
            stars = input.cms_data.overall_rating
            deltas.append((f"CMS {stars}-star rating", lookup_quality(table.quality, stars)))

        if table.size is not None:
            beds = input.beds
            deltas.append((f"{beds} beds size adjustment", lookup_bracket(table.size, beds)))

        if table.age is not None:
            age = input.facility_age
            deltas.append((f"{age} year old building", lookup_bracket(table.age, age)))

        if table.occupancy is not None and input.operating_metrics is not None:
            occupancy = input.operating_metrics.occupancy_rate / 100
            deltas.append(
                (f"{occupancy * 100:.1f}% occupancy", lookup_bracket(table.occupancy, occupancy))
            )

        if table.location is not None:
            deltas.append(
                (
                    f"{facility.location_type.value} location",
                    table.location.get(facility.location_type, 0.0),
                )
            )

        if table.market is not None and input.market_data is not None:
            strength = assess_market_strength(input.market_data)
            deltas.append((f"{strength.value} market conditions", table.market.get(strength, 0.0)))

        cap_rate = table.base_cap_rate
        adjustments = []
        for description, delta in deltas:
            if delta != 0:
                cap_rate += delta
                adjustments.append(ValuationAdjustment(description=description, impact=delta))
        return cap_rate, adjustments

    def _confidence(self, input: ValuationInput) -> ConfidenceLevel:
        score = 0
        if input.noi > 0:
            score += 2
        if input.beds > 0:
            score += 1
        if input.cms_data is not None:
            score += 2
        if input.operating_metrics is not None:
            score += 1
        if input.market_data is not None:
            score += 1

        if input.noi < 0:
            score -= 2
        if input.operating_metrics is not None and input.operating_metrics.occupancy_rate < 70:
            score -= 1

        return label_confidence(score, high=6, medium=4)
