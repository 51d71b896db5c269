# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Market risk factors. Market data carries fractions; details print percents.
"""

from __future__ import annotations

from ...core.primitives import RiskCategoryEnum
from .base import RiskEvaluationData, RiskFactorResult, grade_above, grade_below
from .registry import register_risk_factor

_MARKET_MISSING = "Market data not available"


@register_risk_factor(
    id="market_occupancy",
    category=RiskCategoryEnum.MARKET,
    name="Market Occupancy",
    weight=0.30,
    description="Overall market occupancy rate",
    data_source="Market data",
)
def market_occupancy(data: RiskEvaluationData) -> RiskFactorResult:
    if data.market is None:
        return RiskFactorResult.of(50, _MARKET_MISSING)

    occ = data.market.market_occupancy * 100
    score, label = grade_below(
        occ,
        [
            (75, 75, "indicates oversupply"),
            (80, 50, "is soft"),
            (85, 30, "is average"),
            (90, 15, "is healthy"),
        ],
        otherwise=(5, "is tight"),
    )
    return RiskFactorResult.of(score, f"{occ:.0f}% market occupancy {label}")


@register_risk_factor(
    id="supply_growth",
    category=RiskCategoryEnum.MARKET,
    name="Supply Growth",
    weight=0.25,
    description="New supply pipeline in market",
    data_source="Market data",
)
def supply_growth(data: RiskEvaluationData) -> RiskFactorResult:
    if data.market is None:
        return RiskFactorResult.of(50, _MARKET_MISSING)

    growth = data.market.supply_growth_rate * 100
    score, label = grade_above(
        growth,
        [(5, 75, "excessive"), (3, 50, "elevated"), (1.5, 25, "moderate")],
        otherwise=(10, "minimal"),
    )
    return RiskFactorResult.of(score, f"{growth:.1f}% supply growth is {label}")


@register_risk_factor(
    id="demand_growth",
    category=RiskCategoryEnum.MARKET,
    name="Demand Growth",
    weight=0.25,
    description="Senior population growth rate",
    data_source="Market data",
)
def demand_growth(data: RiskEvaluationData) -> RiskFactorResult:
    if data.market is None:
        return RiskFactorResult.of(50, _MARKET_MISSING)

    growth = data.market.demand_growth_rate * 100
    score, label = grade_below(
        growth,
        [
            (0, 80, "demand decline is concerning"),
            (1, 55, "demand growth is below national average"),
            (2, 30, "demand growth is typical"),
            (3.5, 15, "demand growth is favorable"),
        ],
        otherwise=(5, "demand growth is excellent"),
    )
    return RiskFactorResult.of(score, f"{growth:.1f}% {label}")


@register_risk_factor(
    id="market_concentration",
    category=RiskCategoryEnum.MARKET,
    name="Competitive Concentration",
    weight=0.20,
    description="Market concentration and competition",
    data_source="Market data",
)
def market_concentration(data: RiskEvaluationData) -> RiskFactorResult:
    if data.market is None:
        return RiskFactorResult.of(50, _MARKET_MISSING)

    score, details = grade_above(
        data.market.market_concentration,
        [
            (0.25, 60, "Market is highly concentrated"),
            (0.15, 40, "Market is moderately concentrated"),
        ],
        otherwise=(20, "Market is competitive"),
    )
    return RiskFactorResult.of(score, details)
