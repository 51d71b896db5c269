# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import List

from ...core.primitives import RiskCategoryEnum
from .base import RiskEvaluationData, RiskFactorResult, grade_above
from .registry import register_risk_factor


@register_risk_factor(
    id="complaint_count",
    category=RiskCategoryEnum.REPUTATIONAL,
    name="Complaint History",
    weight=0.50,
    description="Number of substantiated complaints",
    data_source="CMS/State data",
)
def complaint_count(data: RiskEvaluationData) -> RiskFactorResult:
    # Health deficiencies stand in for substantiated complaints
    if data.cms_data is None:
        return RiskFactorResult.of(50, "Complaint data not available")

    deficiencies = data.cms_data.health_deficiencies
    score, label = grade_above(
        deficiencies,
        [
            (15, 75, "indicate significant concerns"),
            (10, 55, "is above average"),
            (5, 30, "is typical"),
        ],
        otherwise=(10, "is below average"),
    )
    return RiskFactorResult.of(score, f"{deficiencies} health deficiencies {label}")


@register_risk_factor(
    id="penalties",
    category=RiskCategoryEnum.REPUTATIONAL,
    name="CMS Penalties",
    weight=0.50,
    description="Federal fines and payment denials",
    data_source="CMS data",
)
def penalties(data: RiskEvaluationData) -> RiskFactorResult:
    if data.cms_data is None:
        return RiskFactorResult.of(50, "Penalty data not available")

    fines = data.cms_data.total_fines
    denial_days = data.cms_data.payment_denial_days
    score = 0
    details: List[str] = []

    if fines > 100_000:
        score += 60
    elif fines > 50_000:
        score += 40
    elif fines > 10_000:
        score += 20
    if fines > 10_000:
        details.append(f"${fines / 1000:.0f}K in federal fines")

    if denial_days > 30:
        score += 30
    elif denial_days > 0:
        score += 15
    if denial_days > 0:
        details.append(f"{denial_days} payment denial days")

    score = min(score, 95)
    return RiskFactorResult.of(
        score, "; ".join(details) if details else "No significant penalties"
    )
