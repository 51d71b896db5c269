# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Operational risk factors: census and nursing workforce.
"""

from __future__ import annotations

from ...core.primitives import RiskCategoryEnum
from .base import RiskEvaluationData, RiskFactorResult, grade_above, grade_below
from .registry import register_risk_factor


@register_risk_factor(
    id="occupancy_rate",
    category=RiskCategoryEnum.OPERATIONAL,
    name="Occupancy Rate",
    weight=0.30,
    description="Current facility occupancy",
    data_source="Operating data",
)
def occupancy_rate(data: RiskEvaluationData) -> RiskFactorResult:
    if data.operations is None:
        return RiskFactorResult.of(50, "Operating data not available")

    occ = data.operations.occupancy_rate
    score, label = grade_below(
        occ,
        [
            (70, 85, "critically low"),
            (75, 70, "significantly below market"),
            (80, 50, "below average"),
            (85, 30, "near average"),
            (90, 15, "above average"),
        ],
        otherwise=(5, "excellent"),
    )
    return RiskFactorResult.of(
        score,
        f"{occ:.1f}% occupancy is {label}",
        recommendation="Develop census building strategy" if occ < 80 else None,
    )


@register_risk_factor(
    id="agency_utilization",
    category=RiskCategoryEnum.OPERATIONAL,
    name="Agency Staff Utilization",
    weight=0.25,
    description="Percentage of staffing from agency/contract labor",
    data_source="Operating data",
)
def agency_utilization(data: RiskEvaluationData) -> RiskFactorResult:
    agency = data.operations.staffing.agency_usage_percent if data.operations else None
    if agency is None:
        return RiskFactorResult.of(40, "Staffing data not available")

    score, label = grade_above(
        agency,
        [
            (25, 80, "indicates staffing crisis"),
            (15, 60, "is elevated"),
            (8, 40, "is above typical"),
            (3, 20, "is acceptable"),
        ],
        otherwise=(5, "is minimal"),
    )
    return RiskFactorResult.of(
        score,
        f"{agency:.1f}% agency usage {label}",
        recommendation="Implement recruitment and retention programs" if agency > 15 else None,
    )


@register_risk_factor(
    id="staffing_hppd",
    category=RiskCategoryEnum.OPERATIONAL,
    name="Total Nursing HPPD",
    weight=0.25,
    description="Total nursing hours per patient day",
    data_source="CMS PBJ data",
)
def staffing_hppd(data: RiskEvaluationData) -> RiskFactorResult:
    # CMS payroll-based journal hours take precedence over reported staffing
    hppd = 0.0
    if data.cms_data is not None:
        hppd = data.cms_data.total_nurse_hours_per_resident_day
    if not hppd and data.operations is not None:
        hppd = data.operations.staffing.total_hppd
    if not hppd:
        return RiskFactorResult.of(50, "HPPD data not available")

    score, label = grade_below(
        hppd,
        [
            (3.0, 85, "critically low"),
            (3.5, 60, "below minimum standards"),
            (4.0, 40, "below average"),
            (4.5, 20, "adequate"),
        ],
        otherwise=(10, "above average"),
    )
    return RiskFactorResult.of(
        score,
        f"{hppd:.2f} HPPD is {label}",
        recommendation="Evaluate staffing levels against acuity" if hppd < 3.5 else None,
    )


@register_risk_factor(
    id="turnover_rate",
    category=RiskCategoryEnum.OPERATIONAL,
    name="Staff Turnover Rate",
    weight=0.20,
    description="Annual staff turnover percentage",
    data_source="Operating data",
)
def turnover_rate(data: RiskEvaluationData) -> RiskFactorResult:
    turnover = data.operations.staffing.turnover_rate if data.operations else None
    if turnover is None:
        return RiskFactorResult.of(50, "Turnover data not available")

    score, label = grade_above(
        turnover,
        [
            (80, 85, "critically high"),
            (60, 65, "very high"),
            (50, 45, "above industry average"),
            (35, 25, "typical for industry"),
        ],
        otherwise=(10, "below average"),
    )
    return RiskFactorResult.of(
        score,
        f"{turnover:.0f}% turnover is {label}",
        recommendation="Review compensation and workplace culture" if turnover > 50 else None,
    )
