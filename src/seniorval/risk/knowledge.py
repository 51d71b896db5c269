# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Underwriting Knowledge Tables

Static institutional knowledge consulted by the knowledge-augmented risk
factors and deal-breaker rules:

- Certificate of Need (CON) regime by state: investment attractiveness,
  approval timelines, application cost, approval rate and reform risk.
- Revenue upside from CMS quality bonus programs by current star rating.

Lookups are case-insensitive on the two-letter state code. Tables can be
replaced per evaluation (see `RiskEvaluationData.con_table`), so nothing here
is consulted through global mutable state.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

from pydantic import Field

from ..core.primitives import (
    FloatBetween0And1,
    Model,
    PositiveFloat,
    PositiveInt,
    ReformRiskEnum,
)


class ValueRange(Model):
    low: float
    high: float


class CONTimeline(Model):
    """Months from application to approval."""

    fast: PositiveInt
    standard: PositiveInt
    extended: PositiveInt


class CONStateData(Model):
    """Certificate of Need regime summary for one state."""

    has_con: bool = True
    investment_score: float = Field(
        ..., ge=0, le=10, description="1-10, higher is more attractive despite CON"
    )
    timeline_months: CONTimeline
    application_cost: ValueRange
    approval_rate: FloatBetween0And1
    reform_risk: ReformRiskEnum
    notes: str = ""


class QualityRevenueImpact(Model):
    """Achievable quality bonus revenue and required investment for a star rating."""

    star_rating: int
    revenue_per_bed: ValueRange
    investment_required: ValueRange
    roi_percent: ValueRange
    payback_months: ValueRange


def _con(
    investment_score: float,
    timeline: Tuple[int, int, int],
    cost: Tuple[PositiveFloat, PositiveFloat],
    approval_rate: float,
    reform_risk: ReformRiskEnum,
    notes: str,
) -> CONStateData:
    fast, standard, extended = timeline
    return CONStateData(
        investment_score=investment_score,
        timeline_months=CONTimeline(fast=fast, standard=standard, extended=extended),
        application_cost=ValueRange(low=cost[0], high=cost[1]),
        approval_rate=approval_rate,
        reform_risk=reform_risk,
        notes=notes,
    )


# fmt: off
CON_STATE_DATA: Dict[str, CONStateData] = {
    "FL": _con(8.7, (3, 6, 12), (50_000, 100_000), 0.82, ReformRiskEnum.LOW, "Strong growth demographics, business-friendly"),
    "SC": _con(8.4, (3, 8, 14), (45_000, 90_000), 0.78, ReformRiskEnum.LOW, "Growing retirement destination"),
    "VA": _con(8.1, (4, 9, 15), (60_000, 120_000), 0.75, ReformRiskEnum.MODERATE, "Mature market, moderate regulatory"),
    "NY": _con(6.5, (6, 12, 18), (100_000, 150_000), 0.65, ReformRiskEnum.MODERATE, "Complex regulatory, high returns if approved"),
    "CT": _con(6.8, (4, 8, 14), (60_000, 110_000), 0.72, ReformRiskEnum.MODERATE, "Northeast premium, regulatory complexity"),
    "GA": _con(7.9, (3, 7, 12), (50_000, 95_000), 0.80, ReformRiskEnum.LOW, "High growth, aging population tailwinds"),
    "NC": _con(7.5, (4, 8, 14), (55_000, 100_000), 0.76, ReformRiskEnum.LOW, "Growing metros, moderate regulation"),
    "TN": _con(7.2, (3, 7, 12), (50_000, 90_000), 0.78, ReformRiskEnum.MODERATE, "Central location, growing healthcare hub"),
    "AL": _con(6.8, (3, 8, 14), (45_000, 85_000), 0.74, ReformRiskEnum.LOW, "Limited supply, aging demographics"),
    "MS": _con(6.2, (4, 9, 15), (45_000, 80_000), 0.70, ReformRiskEnum.LOW, "Medicaid-heavy, limited competition"),
    "WV": _con(5.8, (4, 10, 16), (50_000, 90_000), 0.68, ReformRiskEnum.MODERATE, "Declining population, regulatory complexity"),
    "ME": _con(6.0, (4, 9, 15), (55_000, 95_000), 0.70, ReformRiskEnum.MODERATE, "Aging population, limited supply"),
    "VT": _con(5.5, (5, 10, 16), (60_000, 100_000), 0.65, ReformRiskEnum.MODERATE, "Small market, strict regulation"),
    "RI": _con(6.2, (4, 9, 14), (55_000, 95_000), 0.72, ReformRiskEnum.MODERATE, "Small market, established networks"),
    "HI": _con(6.0, (5, 10, 18), (70_000, 130_000), 0.60, ReformRiskEnum.LOW, "Isolated market, premium pricing"),
    "MD": _con(7.0, (4, 8, 14), (65_000, 110_000), 0.73, ReformRiskEnum.MODERATE, "Unique all-payer rate system"),
    "NJ": _con(6.8, (5, 10, 16), (75_000, 130_000), 0.70, ReformRiskEnum.MODERATE, "High-cost market, dense competition"),
    "DC": _con(6.5, (4, 8, 12), (60_000, 100_000), 0.72, ReformRiskEnum.LOW, "Limited supply, high demand"),
    "KY": _con(6.5, (3, 8, 14), (45_000, 85_000), 0.75, ReformRiskEnum.LOW, "Growing elderly population"),
    "LA": _con(6.3, (4, 9, 15), (50_000, 90_000), 0.72, ReformRiskEnum.LOW, "Medicaid expansion impacts"),
    "MO": _con(6.8, (3, 7, 12), (45_000, 80_000), 0.78, ReformRiskEnum.MODERATE, "Value market, moderate regulation"),
    "MT": _con(5.5, (4, 9, 15), (45_000, 80_000), 0.70, ReformRiskEnum.LOW, "Rural, limited infrastructure"),
    "NE": _con(6.0, (3, 8, 13), (45_000, 80_000), 0.75, ReformRiskEnum.LOW, "Stable market, aging rural population"),
    "OR": _con(7.0, (4, 9, 15), (55_000, 100_000), 0.72, ReformRiskEnum.MODERATE, "West Coast premium, progressive regulation"),
    "WA": _con(7.2, (4, 8, 14), (60_000, 110_000), 0.74, ReformRiskEnum.MODERATE, "Growing metros, tech-forward"),
    "MI": _con(6.5, (4, 9, 15), (55_000, 95_000), 0.72, ReformRiskEnum.MODERATE, "Established market, urban/rural divide"),
    "IL": _con(6.8, (4, 9, 15), (65_000, 120_000), 0.70, ReformRiskEnum.MODERATE, "Major metro, complex regulation"),
    "MN": _con(6.5, (4, 9, 14), (55_000, 95_000), 0.73, ReformRiskEnum.MODERATE, "Strong healthcare sector, aging population"),
    "MA": _con(6.3, (5, 10, 16), (80_000, 140_000), 0.65, ReformRiskEnum.MODERATE, "Premium market, heavy regulation"),
    "OH": _con(6.8, (3, 8, 13), (50_000, 90_000), 0.76, ReformRiskEnum.MODERATE, "Large market, value opportunities"),
    "AK": _con(5.0, (5, 10, 18), (60_000, 110_000), 0.60, ReformRiskEnum.LOW, "Isolated market, high costs"),
    "DE": _con(6.5, (4, 8, 13), (55_000, 95_000), 0.74, ReformRiskEnum.MODERATE, "Small market, business-friendly"),
    "NH": _con(6.0, (4, 9, 15), (55_000, 95_000), 0.70, ReformRiskEnum.MODERATE, "Aging demographics, limited supply"),
}
# fmt: on


def _quality(star, revenue, investment, roi, payback) -> QualityRevenueImpact:
    return QualityRevenueImpact(
        star_rating=star,
        revenue_per_bed=ValueRange(low=revenue[0], high=revenue[1]),
        investment_required=ValueRange(low=investment[0], high=investment[1]),
        roi_percent=ValueRange(low=roi[0], high=roi[1]),
        payback_months=ValueRange(low=payback[0], high=payback[1]),
    )


QUALITY_REVENUE_IMPACT: Dict[int, QualityRevenueImpact] = {
    5: _quality(5, (2_000, 4_000), (0, 50_000), (200, 400), (3, 6)),
    4: _quality(4, (1_500, 3_000), (50_000, 150_000), (150, 300), (6, 12)),
    3: _quality(3, (800, 1_500), (100_000, 250_000), (100, 200), (9, 15)),
    2: _quality(2, (4_500, 10_400), (200_000, 400_000), (125, 200), (12, 18)),
    1: _quality(1, (6_500, 13_500), (300_000, 500_000), (170, 270), (12, 24)),
}


def get_con_data(
    state: Optional[str], table: Optional[Mapping[str, CONStateData]] = None
) -> Optional[CONStateData]:
    """
    CON record for a state code, case-insensitive.

    Args:
        state: Two-letter state code (any case)
        table: Alternative CON table; defaults to `CON_STATE_DATA`

    Returns:
        The state's record, or None when the state has no CON regime or the
        code is empty
    """
    if not state:
        return None
    table = CON_STATE_DATA if table is None else table
    return table.get(state.strip().upper())


def is_con_state(state: Optional[str], table: Optional[Mapping[str, CONStateData]] = None) -> bool:
    record = get_con_data(state, table)
    return record is not None and record.has_con


def get_quality_revenue_impact(star_rating: int) -> Optional[QualityRevenueImpact]:
    return QUALITY_REVENUE_IMPACT.get(star_rating)
