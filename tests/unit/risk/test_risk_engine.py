# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Tests for risk aggregation, ratings and summary recommendations."""

from datetime import date

import pytest
from conftest import make_cms, make_facility, make_financials, make_market, make_operations

from seniorval.core.primitives import (
    RecommendationEnum,
    RiskCategoryEnum,
    RiskRatingEnum,
    RiskSettings,
)
from seniorval.risk import (
    RiskEngine,
    RiskEvaluationData,
    RiskFactorDefinition,
    RiskFactorResult,
    RuleSet,
    create_risk_engine,
)


def fixed_factor(id: str, category: RiskCategoryEnum, score: float, weight: float = 0.5):
    return RiskFactorDefinition(
        id=id,
        category=category,
        name=id.replace("_", " ").title(),
        weight=weight,
        data_source="test",
        evaluate=lambda data: RiskFactorResult.of(score, f"{id} scored {score}", f"Fix {id}"),
    )


class TestRiskEngine:
    def test_sff_alone_forces_pass(self):
        data = RiskEvaluationData(facility=make_facility(), cms_data=make_cms(is_sff=True))
        output = create_risk_engine().assess(data)

        assert output.deal_breakers.any_triggered
        assert output.summary.recommendation == RecommendationEnum.PASS
        assert output.assessment.recommendations[0].startswith("CRITICAL")

    def test_deal_breaker_overrides_low_score(self):
        engine = RiskEngine(
            factors=[fixed_factor("calm", RiskCategoryEnum.OPERATIONAL, 5)],
        )
        data = RiskEvaluationData(cms_data=make_cms(is_sff=True))
        output = engine.assess(data)

        assert output.assessment.overall_score == pytest.approx(5)
        assert output.summary.recommendation == RecommendationEnum.PASS

    def test_no_factors_scores_fifty(self):
        output = RiskEngine(factors=[], rule_set=RuleSet.of([])).assess(RiskEvaluationData())
        assert output.assessment.overall_score == 50
        assert output.summary.recommendation == RecommendationEnum.CONDITIONAL

    def test_category_weighted_average(self):
        engine = RiskEngine(
            factors=[
                fixed_factor("a", RiskCategoryEnum.REGULATORY, 80, weight=0.75),
                fixed_factor("b", RiskCategoryEnum.REGULATORY, 40, weight=0.25),
                fixed_factor("c", RiskCategoryEnum.FINANCIAL, 20),
            ],
            rule_set=RuleSet.of([]),
        )
        output = engine.assess(RiskEvaluationData())
        scores = output.assessment.category_scores

        assert scores[RiskCategoryEnum.REGULATORY].score == pytest.approx(70)
        assert scores[RiskCategoryEnum.FINANCIAL].score == pytest.approx(20)
        assert not scores[RiskCategoryEnum.LEGAL].has_factors
        # only categories with factors count: (70 x 0.30 + 20 x 0.25) / 0.55
        assert output.assessment.overall_score == pytest.approx((21 + 5) / 0.55)

    def test_recommendation_thresholds(self):
        for score, expected in [
            (70, RecommendationEnum.PASS),
            (60, RecommendationEnum.PASS),
            (40, RecommendationEnum.CONDITIONAL),
            (20, RecommendationEnum.PURSUE),
        ]:
            engine = RiskEngine(
                factors=[fixed_factor("only", RiskCategoryEnum.MARKET, score)],
                rule_set=RuleSet.of([]),
            )
            assert engine.assess(RiskEvaluationData()).summary.recommendation == expected

    @pytest.mark.parametrize(
        "score,rating",
        [
            (85, RiskRatingEnum.CRITICAL),
            (65, RiskRatingEnum.HIGH),
            (45, RiskRatingEnum.ELEVATED),
            (25, RiskRatingEnum.MODERATE),
            (12, RiskRatingEnum.LOW),
            (5, RiskRatingEnum.VERY_LOW),
        ],
    )
    def test_score_to_rating(self, score, rating):
        assert RiskEngine().score_to_rating(score) == rating

    def test_key_risks_and_mitigants(self):
        engine = RiskEngine(
            factors=[
                fixed_factor("payer_mix", RiskCategoryEnum.FINANCIAL, 70),
                fixed_factor("odd_risk", RiskCategoryEnum.MARKET, 55),
                fixed_factor("minor", RiskCategoryEnum.MARKET, 10),
            ],
            rule_set=RuleSet.of([]),
        )
        assessment = engine.assess(RiskEvaluationData()).assessment

        assert [r.factor_id for r in assessment.key_risks] == ["payer_mix", "odd_risk"]
        assert assessment.mitigants[0].effectiveness == "high"
        assert assessment.mitigants[1].mitigant.startswith("Address market risk")
        assert "Review payer contracts and reimbursement rates" in assessment.due_diligence_focus

    def test_summary_strengths(self):
        engine = RiskEngine(
            factors=[
                fixed_factor("strong_point", RiskCategoryEnum.MARKET, 5),
                fixed_factor("weak_point", RiskCategoryEnum.MARKET, 70),
            ],
            rule_set=RuleSet.of([]),
        )
        summary = engine.assess(RiskEvaluationData()).summary
        assert summary.strengths == ["Strong Point"]
        assert summary.top_risks == ["Weak Point"]

    def test_deal_breakers_can_be_disabled(self):
        engine = RiskEngine(RiskSettings(include_deal_breakers=False))
        output = engine.assess(RiskEvaluationData(cms_data=make_cms(is_sff=True)))
        assert output.deal_breakers.results == []

    def test_full_assessment(self):
        data = RiskEvaluationData(
            facility=make_facility(),
            cms_data=make_cms(),
            operations=make_operations(),
            financials=make_financials(),
            market=make_market(),
        )
        output = create_risk_engine().assess(data, assessment_date=date(2024, 6, 30))
        assessment = output.assessment

        assert assessment.facility_id == "fac-1"
        assert assessment.assessment_date == date(2024, 6, 30)
        assert not output.deal_breakers.any_triggered
        assert len(assessment.factors) == 22
        assert len(assessment.key_risks) <= 5

        frame = assessment.to_dataframe()
        assert len(frame) == 22
        assert frame.loc["sff_status", "score"] == 5
