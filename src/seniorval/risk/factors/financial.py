# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Financial risk factors read from normalized statement metrics and payer mix.
"""

from __future__ import annotations

from typing import List

from ...core.primitives import RiskCategoryEnum
from .base import RiskEvaluationData, RiskFactorResult, grade_above, grade_below
from .registry import register_risk_factor

_FINANCIALS_MISSING = "Financial data not available"


@register_risk_factor(
    id="ebitdar_margin",
    category=RiskCategoryEnum.FINANCIAL,
    name="EBITDAR Margin",
    weight=0.30,
    description="Earnings before interest, taxes, depreciation, amortization, and rent",
    data_source="Financial statements",
)
def ebitdar_margin(data: RiskEvaluationData) -> RiskFactorResult:
    if data.financials is None:
        return RiskFactorResult.of(50, _FINANCIALS_MISSING)

    margin = data.financials.metrics.ebitdar_margin * 100
    score, label = grade_below(
        margin,
        [
            (0, 95, "negative"),
            (5, 80, "critically low"),
            (8, 60, "below breakeven threshold"),
            (12, 35, "below average"),
            (16, 15, "healthy"),
        ],
        otherwise=(5, "excellent"),
    )
    return RiskFactorResult.of(
        score,
        f"{margin:.1f}% EBITDAR margin is {label}",
        recommendation=(
            "Evaluate revenue enhancement and cost reduction opportunities" if margin < 8 else None
        ),
    )


@register_risk_factor(
    id="labor_cost_ratio",
    category=RiskCategoryEnum.FINANCIAL,
    name="Labor Cost Ratio",
    weight=0.25,
    description="Labor costs as percentage of revenue",
    data_source="Financial statements",
)
def labor_cost_ratio(data: RiskEvaluationData) -> RiskFactorResult:
    if data.financials is None:
        return RiskFactorResult.of(50, _FINANCIALS_MISSING)

    ratio = data.financials.metrics.labor_cost_percent * 100
    score, label = grade_above(
        ratio,
        [
            (70, 85, "unsustainably high"),
            (62, 60, "elevated"),
            (56, 35, "above average"),
            (50, 15, "typical"),
        ],
        otherwise=(5, "excellent"),
    )
    return RiskFactorResult.of(
        score,
        f"{ratio:.1f}% labor cost ratio is {label}",
        recommendation=(
            "Review staffing efficiency and wage competitiveness" if ratio > 62 else None
        ),
    )


@register_risk_factor(
    id="payer_mix",
    category=RiskCategoryEnum.FINANCIAL,
    name="Payer Mix Risk",
    weight=0.25,
    description="Revenue concentration by payer source",
    data_source="Operating data",
)
def payer_mix(data: RiskEvaluationData) -> RiskFactorResult:
    if data.operations is None:
        return RiskFactorResult.of(50, "Payer mix data not available")

    mix = data.operations.payer_mix
    score = 0
    details: List[str] = []

    if mix.medicaid > 75:
        score += 40
        details.append(f"High Medicaid concentration ({mix.medicaid:.0f}%)")
    elif mix.medicaid > 60:
        score += 25
        details.append(f"Elevated Medicaid mix ({mix.medicaid:.0f}%)")

    if mix.private_pay < 10:
        score += 20
        details.append(f"Low private pay ({mix.private_pay:.0f}%)")

    if mix.medicare_advantage > 15:
        score += 15
        details.append("High Medicare Advantage exposure")

    score = min(score, 90)
    return RiskFactorResult.of(
        score,
        "; ".join(details) if details else "Balanced payer mix",
        recommendation=(
            "Develop private pay marketing and Medicare strategy" if score > 50 else None
        ),
    )


@register_risk_factor(
    id="revenue_per_day",
    category=RiskCategoryEnum.FINANCIAL,
    name="Revenue Per Patient Day",
    weight=0.20,
    description="Average revenue generated per patient day",
    data_source="Financial statements",
)
def revenue_per_day(data: RiskEvaluationData) -> RiskFactorResult:
    if data.financials is None:
        return RiskFactorResult.of(50, _FINANCIALS_MISSING)

    rppd = data.financials.metrics.revenue_per_patient_day
    score, label = grade_below(
        rppd,
        [
            (250, 80, "critically low"),
            (300, 55, "below average"),
            (350, 30, "near average"),
            (425, 15, "above average"),
        ],
        otherwise=(5, "excellent"),
    )
    return RiskFactorResult.of(
        score,
        f"${rppd:.0f}/day revenue is {label}",
        recommendation=(
            "Evaluate rate structures and payer negotiations" if rppd < 300 else None
        ),
    )
