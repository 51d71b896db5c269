# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Regulatory risk factors sourced from CMS Care Compare.
"""

from __future__ import annotations

from ...core.primitives import RiskCategoryEnum
from .base import RiskEvaluationData, RiskFactorResult
from .registry import register_risk_factor

_CMS_MISSING = "CMS data not available"

_OVERALL_RATING = {
    1: (85, "1-star rating indicates significant quality concerns"),
    2: (65, "2-star rating indicates below average performance"),
    3: (40, "3-star rating indicates average performance"),
    4: (20, "4-star rating indicates above average performance"),
    5: (5, "5-star rating indicates excellent performance"),
}


@register_risk_factor(
    id="cms_overall_rating",
    category=RiskCategoryEnum.REGULATORY,
    name="CMS Overall Rating",
    weight=0.25,
    description="CMS Five-Star Quality Rating",
    data_source="CMS Care Compare",
)
def cms_overall_rating(data: RiskEvaluationData) -> RiskFactorResult:
    if data.cms_data is None:
        return RiskFactorResult.of(50, _CMS_MISSING)

    rating = data.cms_data.overall_rating
    score, details = _OVERALL_RATING[rating]
    return RiskFactorResult.of(
        score,
        details,
        recommendation="Develop quality improvement plan" if rating <= 2 else None,
    )


@register_risk_factor(
    id="health_inspection_rating",
    category=RiskCategoryEnum.REGULATORY,
    name="Health Inspection Rating",
    weight=0.20,
    description="CMS Health Inspection Star Rating",
    data_source="CMS Care Compare",
)
def health_inspection_rating(data: RiskEvaluationData) -> RiskFactorResult:
    if data.cms_data is None:
        return RiskFactorResult.of(50, _CMS_MISSING)

    rating = data.cms_data.health_inspection_rating
    deficiencies = data.cms_data.total_deficiencies

    score = (5 - rating) * 20
    if deficiencies > 15:
        score += 15
    elif deficiencies > 10:
        score += 10
    elif deficiencies > 5:
        score += 5
    score = min(score, 100)

    return RiskFactorResult.of(
        score,
        f"{rating}-star health inspection with {deficiencies} deficiencies",
        recommendation=(
            "Review survey history and implement corrective actions" if rating <= 2 else None
        ),
    )


@register_risk_factor(
    id="sff_status",
    category=RiskCategoryEnum.REGULATORY,
    name="Special Focus Facility Status",
    weight=0.30,
    description="CMS Special Focus Facility designation",
    data_source="CMS Care Compare",
)
def sff_status(data: RiskEvaluationData) -> RiskFactorResult:
    if data.cms_data is None:
        return RiskFactorResult.of(50, _CMS_MISSING)

    if data.cms_data.is_sff:
        return RiskFactorResult.of(
            95,
            "Facility is on Special Focus Facility list",
            recommendation=(
                "Critical - require immediate quality improvement plan and enhanced monitoring"
            ),
        )
    if data.cms_data.is_sff_candidate:
        return RiskFactorResult.of(
            75,
            "Facility is an SFF candidate",
            recommendation="High risk - implement proactive quality measures",
        )
    return RiskFactorResult.of(5, "Not on SFF or candidate list")


@register_risk_factor(
    id="abuse_icon",
    category=RiskCategoryEnum.REGULATORY,
    name="Abuse Icon",
    weight=0.25,
    description="CMS Abuse Icon indicator",
    data_source="CMS Care Compare",
)
def abuse_icon(data: RiskEvaluationData) -> RiskFactorResult:
    if data.cms_data is None:
        return RiskFactorResult.of(50, _CMS_MISSING)

    if data.cms_data.has_abuse_icon:
        return RiskFactorResult.of(
            90,
            "Facility has abuse icon - substantiated abuse/neglect citation",
            recommendation=(
                "Critical due diligence required - review all abuse-related documentation"
            ),
        )
    return RiskFactorResult.of(0, "No abuse icon")
