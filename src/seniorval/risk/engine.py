# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Risk Engine - Category Aggregation and Recommendation

Evaluates every risk factor definition, aggregates factor scores into eight
categories and an overall score, surfaces key risks with mitigants and
recommendations, and runs the deal-breaker rule set alongside (never folded
into) the numeric score.

Scoring:
- Category score: weighted average of its factors' scores using the factors'
  own weights; weighted score = category score x category weight.
- Overall score: sum of category weighted scores divided by the sum of
  weights of categories that had at least one factor (50 when none had).

Summary recommendation: `pass` when any deal breaker triggered or the overall
score reaches the pass threshold (default 60), `conditional` from the
conditional threshold (default 35), otherwise `pursue`. Higher scores mean
higher risk.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Literal, Optional, Tuple

import pandas as pd
from pydantic import Field

from ..core.primitives import (
    FloatBetween0And1,
    Model,
    RecommendationEnum,
    RiskCategoryEnum,
    RiskRatingEnum,
    RiskScore,
    RiskSettings,
)
from .deal_breakers import DealBreakerAssessment, RuleSet
from .factors import RiskEvaluationData, RiskFactor, RiskFactorDefinition, default_risk_factors

logger = logging.getLogger(__name__)

Effectiveness = Literal["high", "medium", "low"]

MAX_RECOMMENDATIONS = 10
MAX_FOCUS_AREAS = 8
STRENGTH_MAX_SCORE = 20
FOCUS_CATEGORY_MIN_SCORE = 30

# Canned mitigants keyed by factor id
MITIGANTS: Dict[str, Tuple[str, Effectiveness]] = {
    "cms_overall_rating": ("Implement quality improvement program with QAPI framework", "medium"),
    "health_inspection_rating": (
        "Conduct mock surveys and establish compliance monitoring",
        "medium",
    ),
    "sff_status": ("Engage CMS consultant and develop intensive remediation plan", "low"),
    "occupancy_rate": ("Implement census building program with hospital liaison", "medium"),
    "agency_utilization": (
        "Launch recruitment campaign with competitive wages and retention bonuses",
        "medium",
    ),
    "staffing_hppd": ("Increase staffing ratios and evaluate wage competitiveness", "medium"),
    "ebitdar_margin": (
        "Implement revenue cycle optimization and cost reduction initiatives",
        "medium",
    ),
    "labor_cost_ratio": ("Review scheduling efficiency and agency replacement program", "medium"),
    "payer_mix": ("Develop private pay marketing and Medicare admissions strategy", "high"),
}

CATEGORY_RECOMMENDATIONS: Dict[RiskCategoryEnum, str] = {
    RiskCategoryEnum.REGULATORY: (
        "Conduct thorough regulatory due diligence including survey history review"
    ),
    RiskCategoryEnum.OPERATIONAL: (
        "Evaluate staffing stability and develop operational improvement plan"
    ),
    RiskCategoryEnum.FINANCIAL: "Perform detailed financial analysis and stress testing",
    RiskCategoryEnum.MARKET: "Complete market study including competitive analysis",
    RiskCategoryEnum.REPUTATIONAL: "Review public reputation and develop communication strategy",
    RiskCategoryEnum.LEGAL: "Conduct legal due diligence for pending litigation or claims",
    RiskCategoryEnum.ENVIRONMENTAL: "Order Phase I Environmental Site Assessment",
    RiskCategoryEnum.TECHNOLOGY: "Assess IT infrastructure and EMR system requirements",
}

CATEGORY_FOCUS_AREAS: Dict[RiskCategoryEnum, str] = {
    RiskCategoryEnum.REGULATORY: "Review last 3 years of survey reports and plans of correction",
    RiskCategoryEnum.OPERATIONAL: "Analyze staffing trends, turnover, and scheduling practices",
    RiskCategoryEnum.FINANCIAL: "Verify financial statements and analyze revenue cycle",
    RiskCategoryEnum.MARKET: "Conduct competitive analysis and demographic study",
    RiskCategoryEnum.REPUTATIONAL: "Search news, reviews, and litigation history",
    RiskCategoryEnum.LEGAL: "Review pending claims and insurance coverage",
    RiskCategoryEnum.ENVIRONMENTAL: "Obtain environmental reports and assess compliance",
    RiskCategoryEnum.TECHNOLOGY: "Evaluate EMR, infrastructure, and IT security",
}

_CMS_FOCUS = "Obtain detailed CMS data and state survey history"
_STAFF_FOCUS = "Interview key staff and review HR records"
FACTOR_FOCUS_AREAS: Dict[str, str] = {
    "cms_overall_rating": _CMS_FOCUS,
    "health_inspection_rating": _CMS_FOCUS,
    "penalties": _CMS_FOCUS,
    "occupancy_rate": "Analyze census trends and referral source relationships",
    "market_occupancy": "Analyze census trends and referral source relationships",
    "agency_utilization": _STAFF_FOCUS,
    "turnover_rate": _STAFF_FOCUS,
    "ebitdar_margin": "Perform detailed P&L analysis with management",
    "payer_mix": "Review payer contracts and reimbursement rates",
}


class CategoryScore(Model):
    category: RiskCategoryEnum
    score: RiskScore
    weight: FloatBetween0And1
    factors: List[RiskFactor] = Field(default_factory=list)

    @property
    def weighted_score(self) -> float:
        return self.score * self.weight

    @property
    def has_factors(self) -> bool:
        return bool(self.factors)


class Mitigant(Model):
    factor_id: str
    risk: str
    mitigant: str
    effectiveness: Effectiveness


class RiskAssessment(Model):
    """Complete risk assessment for one facility."""

    facility_id: str
    assessment_date: date
    overall_score: RiskScore
    overall_rating: RiskRatingEnum
    category_scores: Dict[RiskCategoryEnum, CategoryScore]
    deal_breakers: DealBreakerAssessment
    key_risks: List[RiskFactor] = Field(default_factory=list)
    mitigants: List[Mitigant] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    due_diligence_focus: List[str] = Field(default_factory=list)

    @property
    def factors(self) -> List[RiskFactor]:
        return [f for scores in self.category_scores.values() for f in scores.factors]

    def to_dataframe(self) -> pd.DataFrame:
        """Evaluated factors, one row each, indexed by factor id."""
        rows = [
            {
                "factor_id": f.factor_id,
                "category": f.category.value,
                "name": f.name,
                "score": f.score,
                "weight": f.weight,
                "weighted_score": f.weighted_score,
                "severity": f.severity.value,
                "details": f.details,
            }
            for f in self.factors
        ]
        return pd.DataFrame(rows).set_index("factor_id") if rows else pd.DataFrame()


class RiskSummary(Model):
    overall_score: RiskScore
    overall_rating: RiskRatingEnum
    top_risks: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    recommendation: RecommendationEnum


class RiskEngineOutput(Model):
    assessment: RiskAssessment
    deal_breakers: DealBreakerAssessment
    summary: RiskSummary


class RiskEngine:
    """
    Scores risk factors and evaluates deal breakers.

    Factor definitions and the deal-breaker rule set are injectable; by
    default every registered factor and the default rule set are used.

    Example:
        ```python
        engine = create_risk_engine()
        output = engine.assess(RiskEvaluationData(facility=facility, cms_data=cms))
        output.summary.recommendation
        ```
    """

    def __init__(
        self,
        settings: Optional[RiskSettings] = None,
        factors: Optional[List[RiskFactorDefinition]] = None,
        rule_set: Optional[RuleSet] = None,
    ):
        self.settings = settings or RiskSettings()
        self.factors = list(factors) if factors is not None else default_risk_factors()
        self.rule_set = rule_set if rule_set is not None else RuleSet()

    def assess(
        self, data: RiskEvaluationData, assessment_date: Optional[date] = None
    ) -> RiskEngineOutput:
        settings = self.settings

        if settings.include_deal_breakers:
            deal_breakers = self.rule_set.evaluate(data)
        else:
            deal_breakers = DealBreakerAssessment()

        category_scores = self.score_categories(data)
        overall_score = self.overall_score(category_scores)
        overall_rating = self.score_to_rating(overall_score)
        key_risks = self.identify_key_risks(category_scores)

        assessment = RiskAssessment(
            facility_id=data.facility.id if data.facility is not None else "",
            assessment_date=assessment_date or date.today(),
            overall_score=overall_score,
            overall_rating=overall_rating,
            category_scores=category_scores,
            deal_breakers=deal_breakers,
            key_risks=key_risks,
            mitigants=[self.mitigant_for(risk) for risk in key_risks],
            recommendations=(
                self._recommendations(category_scores, key_risks, deal_breakers)
                if settings.include_recommendations
                else []
            ),
            due_diligence_focus=self._due_diligence_focus(category_scores, key_risks),
        )
        summary = self._summary(assessment, deal_breakers)

        logger.info(
            f"Risk assessment {assessment.facility_id or '<unknown>'}: "
            f"score {overall_score:.1f} ({overall_rating.value}), "
            f"{deal_breakers.triggered_count} deal breakers, "
            f"recommendation {summary.recommendation.value}"
        )
        return RiskEngineOutput(assessment=assessment, deal_breakers=deal_breakers, summary=summary)

    # === SCORING ===

    def score_categories(
        self, data: RiskEvaluationData
    ) -> Dict[RiskCategoryEnum, CategoryScore]:
        """Evaluate every factor and aggregate per category (all eight categories)."""
        evaluated: Dict[RiskCategoryEnum, List[RiskFactor]] = {c: [] for c in RiskCategoryEnum}
        for definition in self.factors:
            factor = definition.evaluate_factor(data)
            logger.debug(f"Risk factor {factor.factor_id}: {factor.score:.0f} ({factor.details})")
            evaluated[factor.category].append(factor)

        scores = {}
        for category, factors in evaluated.items():
            total_weight = sum(f.weight for f in factors)
            score = (
                sum(f.weighted_score for f in factors) / total_weight if total_weight > 0 else 0.0
            )
            scores[category] = CategoryScore(
                category=category,
                score=score,
                weight=self.settings.category_weights.for_category(category),
                factors=factors,
            )
        return scores

    @staticmethod
    def overall_score(category_scores: Dict[RiskCategoryEnum, CategoryScore]) -> float:
        """Weighted score over categories with at least one factor; 50 when none."""
        active = [c for c in category_scores.values() if c.has_factors]
        total_weight = sum(c.weight for c in active)
        if total_weight <= 0:
            return 50.0
        return sum(c.weighted_score for c in active) / total_weight

    def score_to_rating(self, score: float) -> RiskRatingEnum:
        thresholds = self.settings.thresholds
        if score >= thresholds.critical:
            return RiskRatingEnum.CRITICAL
        if score >= thresholds.high:
            return RiskRatingEnum.HIGH
        if score >= thresholds.elevated:
            return RiskRatingEnum.ELEVATED
        if score >= thresholds.moderate:
            return RiskRatingEnum.MODERATE
        if score >= thresholds.low:
            return RiskRatingEnum.LOW
        return RiskRatingEnum.VERY_LOW

    def identify_key_risks(
        self, category_scores: Dict[RiskCategoryEnum, CategoryScore]
    ) -> List[RiskFactor]:
        """Highest-scoring factors at or above the key-risk floor, best first."""
        candidates = [
            f
            for scores in category_scores.values()
            for f in scores.factors
            if f.score >= self.settings.key_risk_min_score
        ]
        candidates.sort(key=lambda f: f.score, reverse=True)
        return candidates[: self.settings.max_key_risks]

    # === NARRATIVE ===

    @staticmethod
    def mitigant_for(risk: RiskFactor) -> Mitigant:
        """Canned mitigant for a factor, or a generic one for its category."""
        if risk.factor_id in MITIGANTS:
            text, effectiveness = MITIGANTS[risk.factor_id]
        else:
            text = f"Address {risk.category.value} risk through targeted improvement initiatives"
            effectiveness = "medium"
        return Mitigant(
            factor_id=risk.factor_id, risk=risk.name, mitigant=text, effectiveness=effectiveness
        )

    def _recommendations(
        self,
        category_scores: Dict[RiskCategoryEnum, CategoryScore],
        key_risks: List[RiskFactor],
        deal_breakers: DealBreakerAssessment,
    ) -> List[str]:
        recommendations: List[str] = []

        if deal_breakers.any_triggered:
            recommendations.append(
                "CRITICAL: Address deal-breaking issues before proceeding with acquisition"
            )
            for outcome in deal_breakers.triggered:
                if outcome.result.reason:
                    recommendations.append(f"- {outcome.name}: {outcome.result.reason}")

        thresholds = self.settings.thresholds
        for category, scores in category_scores.items():
            if scores.score >= thresholds.high:
                recommendations.append(f"HIGH PRIORITY: {CATEGORY_RECOMMENDATIONS[category]}")
            elif scores.score >= thresholds.elevated:
                recommendations.append(f"Monitor: {CATEGORY_RECOMMENDATIONS[category]}")

        for risk in key_risks[:3]:
            if risk.recommendation:
                recommendations.append(f"- {risk.name}: {risk.recommendation}")

        return recommendations[:MAX_RECOMMENDATIONS]

    @staticmethod
    def _due_diligence_focus(
        category_scores: Dict[RiskCategoryEnum, CategoryScore], key_risks: List[RiskFactor]
    ) -> List[str]:
        focus: List[str] = []

        ranked = sorted(category_scores.values(), key=lambda c: c.score, reverse=True)
        for scores in ranked[:3]:
            if scores.score >= FOCUS_CATEGORY_MIN_SCORE:
                focus.append(CATEGORY_FOCUS_AREAS[scores.category])

        for risk in key_risks:
            area = FACTOR_FOCUS_AREAS.get(risk.factor_id)
            if area and area not in focus:
                focus.append(area)

        return focus[:MAX_FOCUS_AREAS]

    def _summary(
        self, assessment: RiskAssessment, deal_breakers: DealBreakerAssessment
    ) -> RiskSummary:
        strengths = sorted(
            (f for f in assessment.factors if f.score <= STRENGTH_MAX_SCORE),
            key=lambda f: f.score,
        )

        # High score means high risk, so "pass" sits at the top
        score = assessment.overall_score
        if deal_breakers.any_triggered or score >= self.settings.pass_threshold:
            recommendation = RecommendationEnum.PASS
        elif score >= self.settings.conditional_threshold:
            recommendation = RecommendationEnum.CONDITIONAL
        else:
            recommendation = RecommendationEnum.PURSUE

        return RiskSummary(
            overall_score=score,
            overall_rating=assessment.overall_rating,
            top_risks=[r.name for r in assessment.key_risks[:3]],
            strengths=[f.name for f in strengths[:3]],
            recommendation=recommendation,
        )


def create_risk_engine(
    settings: Optional[RiskSettings] = None, rule_set: Optional[RuleSet] = None
) -> RiskEngine:
    """Construct a risk engine over all registered factors."""
    return RiskEngine(settings, rule_set=rule_set)
