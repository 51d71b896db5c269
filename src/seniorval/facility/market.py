# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Market context and closed comparable transactions.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import Field

from ..core.primitives import (
    AssetTypeEnum,
    FloatBetween0And1,
    Model,
    PositiveFloat,
    PositiveInt,
    RegionEnum,
    StarRating,
)


class MarketData(Model):
    """
    Regional demand, supply, demographic and reimbursement indicators.

    Rates and occupancy are fractions (0.03 == 3%); growth rates may be
    negative.
    """

    region: RegionEnum
    state: str
    msa: Optional[str] = None

    # === DEMOGRAPHICS ===
    population_65_plus: PositiveInt = 0
    population_65_plus_growth: float = 0.0
    population_85_plus: PositiveInt = 0
    population_85_plus_growth: float = 0.0

    # === SUPPLY & DEMAND ===
    market_occupancy: FloatBetween0And1 = Field(..., description="Market occupancy fraction")
    supply_growth_rate: float = Field(default=0.0, description="Annual bed supply growth")
    demand_growth_rate: float = Field(default=0.0, description="Annual demand growth")
    absorption_rate: float = 0.0
    competitor_count: PositiveInt = 0
    competitor_beds: PositiveInt = 0
    market_concentration: FloatBetween0And1 = Field(
        default=0.0, description="Herfindahl-Hirschman index as a fraction"
    )

    # === REIMBURSEMENT & ECONOMY ===
    medicaid_rate: PositiveFloat = 0.0
    medicaid_rate_trend: float = 0.0
    median_household_income: PositiveFloat = 0.0
    unemployment_rate: FloatBetween0And1 = 0.0
    poverty_rate: FloatBetween0And1 = 0.0


class ComparableAddress(Model):
    city: str
    state: str


class ComparableSale(Model):
    """
    A closed senior housing transaction.

    Price per bed is carried as reported; sales with a non-positive price per
    bed are excluded by the comparable sales filter rather than rejected here.
    """

    id: str
    property_name: str
    address: ComparableAddress
    asset_type: AssetTypeEnum
    sale_date: date
    sale_price: PositiveFloat
    price_per_bed: float
    cap_rate: Optional[PositiveFloat] = None
    beds: PositiveInt
    year_built: PositiveInt
    cms_rating: Optional[StarRating] = None
    occupancy_at_sale: Optional[FloatBetween0And1] = None
    noi_at_sale: Optional[float] = None
    distance_miles: Optional[PositiveFloat] = None
    similarity_score: Optional[FloatBetween0And1] = None
