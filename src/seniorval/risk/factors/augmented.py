# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Knowledge-Augmented Risk Factors

Factors that combine deal data with institutional knowledge tables: state
Certificate of Need regimes, reimbursement concentration, quality bonus
upside and seller succession dynamics. They register into the regulatory,
financial and market categories alongside the data-driven factors.
"""

from __future__ import annotations

from typing import List

from ...core.primitives import ReformRiskEnum, RiskCategoryEnum
from ..knowledge import get_quality_revenue_impact
from .base import RiskEvaluationData, RiskFactorResult
from .registry import register_risk_factor

_REFORM_PENALTY = {
    ReformRiskEnum.HIGH: 15,
    ReformRiskEnum.MODERATE: 8,
    ReformRiskEnum.LOW: 0,
}


@register_risk_factor(
    id="con_regulatory_risk",
    category=RiskCategoryEnum.REGULATORY,
    name="CON Regulatory Complexity",
    weight=0.15,
    description="Certificate of Need state regulatory burden and timeline risk",
    data_source="Institutional knowledge / CON database",
)
def con_regulatory_risk(data: RiskEvaluationData) -> RiskFactorResult:
    state = data.state
    if not state:
        return RiskFactorResult.of(30, "State unknown - cannot assess CON status")

    con = data.con_data
    if con is None:
        return RiskFactorResult.of(
            5, f"{state} is not a CON state - no certificate of need requirements"
        )

    # Investment score 10 is most attractive
    score = max(0.0, (10 - con.investment_score) * 10)
    score += _REFORM_PENALTY[con.reform_risk]
    standard_months = con.timeline_months.standard
    if standard_months > 10:
        score += 10
    elif standard_months > 7:
        score += 5
    score = min(85.0, score)

    cost = con.application_cost
    return RiskFactorResult.of(
        score,
        (
            f"{state} CON state - investment score {con.investment_score}/10, "
            f"{standard_months}mo typical timeline, "
            f"${cost.low / 1000:.0f}-{cost.high / 1000:.0f}K application cost"
        ),
        recommendation=(
            f"Budget ${cost.high / 1000:.0f}K and {con.timeline_months.extended}mo "
            f"for CON process"
            if score >= 40
            else None
        ),
    )


@register_risk_factor(
    id="reimbursement_concentration",
    category=RiskCategoryEnum.FINANCIAL,
    name="Reimbursement Concentration Risk",
    weight=0.15,
    description="Risk from dependence on single reimbursement source and optimization gap",
    data_source="Institutional knowledge / payer data",
)
def reimbursement_concentration(data: RiskEvaluationData) -> RiskFactorResult:
    if data.operations is None:
        return RiskFactorResult.of(
            40, "Payer mix data unavailable - cannot assess reimbursement concentration"
        )

    mix = data.operations.payer_mix
    score = 0
    details: List[str] = []

    if mix.medicaid > 70:
        score += 35
        details.append(f"{mix.medicaid:.0f}% Medicaid - high reimbursement cliff risk")
    elif mix.medicaid > 55:
        score += 20
        details.append(f"{mix.medicaid:.0f}% Medicaid - moderate concentration")

    if mix.medicare_advantage > 20:
        score += 25
        details.append(
            f"{mix.medicare_advantage:.0f}% Medicare Advantage - rate compression exposure "
            f"(MA rates 15-30% below traditional)"
        )
    elif mix.medicare_advantage > 10:
        score += 10
        details.append(f"{mix.medicare_advantage:.0f}% Medicare Advantage exposure")

    if mix.medicare_a < 15:
        score += 15
        details.append(f"{mix.medicare_a:.0f}% Medicare A - limited PDPM optimization upside")

    score = min(score, 90)
    return RiskFactorResult.of(
        score,
        "; ".join(details) if details else "Balanced reimbursement sources",
        recommendation=(
            "Develop payer diversification strategy and PDPM optimization plan"
            if score >= 40
            else None
        ),
    )


@register_risk_factor(
    id="quality_bonus_opportunity",
    category=RiskCategoryEnum.FINANCIAL,
    name="Quality Revenue Opportunity",
    weight=0.10,
    description="Revenue upside from quality improvement (lower rating means more upside)",
    data_source="Institutional knowledge / CMS data",
)
def quality_bonus_opportunity(data: RiskEvaluationData) -> RiskFactorResult:
    if data.cms_data is None:
        return RiskFactorResult.of(
            30, "CMS data unavailable - cannot assess quality revenue opportunity"
        )

    rating = data.cms_data.overall_rating
    impact = get_quality_revenue_impact(rating)
    if impact is None:
        return RiskFactorResult.of(30, "Cannot map rating to revenue impact")

    revenue = f"${impact.revenue_per_bed.low:,.0f}-{impact.revenue_per_bed.high:,.0f}/bed"
    roi = f"{impact.roi_percent.low:.0f}-{impact.roi_percent.high:.0f}% ROI"

    if rating >= 4:
        return RiskFactorResult.of(
            10,
            f"{rating}-star facility - limited quality bonus upside ({revenue}), "
            f"already high performer",
        )
    if rating == 3:
        return RiskFactorResult.of(
            20,
            f"3-star facility - moderate quality improvement opportunity ({revenue} achievable)",
            recommendation="Target 4-star within 12 months through QAPI and staffing investment",
        )

    investment = impact.investment_required
    return RiskFactorResult.of(
        35,
        f"{rating}-star facility - significant quality bonus opportunity ({revenue}), "
        f"requires ${investment.low / 1000:.0f}-{investment.high / 1000:.0f}K investment, {roi}",
        recommendation=(
            f"Invest in quality improvement - {impact.payback_months.low:.0f}-"
            f"{impact.payback_months.high:.0f} month payback with {roi}"
        ),
    )


@register_risk_factor(
    id="succession_motivation",
    category=RiskCategoryEnum.MARKET,
    name="Seller Succession / Motivation",
    weight=0.15,
    description="Seller motivation from succession pressure (55% of operators are family-owned)",
    data_source="Institutional knowledge / deal intelligence",
)
def succession_motivation(data: RiskEvaluationData) -> RiskFactorResult:
    if data.market is None:
        return RiskFactorResult.of(
            30,
            "55% of SNF operators are family-owned and facing succession - motivated sellers "
            "offer 10-20% discount potential alongside deferred maintenance and outdated systems",
        )

    score = 25
    details = ["55% of operators face succession - deal flow opportunity"]

    # Soft markets give buyers leverage
    if data.market.market_occupancy < 0.80:
        score -= 5
        details.append("Soft market increases seller motivation")
    if data.market.supply_growth_rate < 0.01:
        score -= 5
        details.append("Low supply growth protects existing operators")

    return RiskFactorResult.of(max(5, score), "; ".join(details))
