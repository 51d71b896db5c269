# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Tests for the risk factor registry, individual factors and knowledge tables."""

import pytest
from conftest import make_cms, make_facility, make_financials, make_operations

from seniorval.core.primitives import RiskCategoryEnum, SeverityEnum
from seniorval.risk import (
    RiskEvaluationData,
    RiskFactorDefinition,
    RiskFactorResult,
    default_risk_factors,
    factors_by_category,
    get_con_data,
    get_quality_revenue_impact,
    get_risk_factor,
    is_con_state,
    register_risk_factor,
    score_to_severity,
)
from seniorval.risk.factors.financial import ebitdar_margin
from seniorval.risk.factors.regulatory import cms_overall_rating, health_inspection_rating


class TestSeverity:
    @pytest.mark.parametrize(
        "score,severity",
        [
            (80, SeverityEnum.CRITICAL),
            (79.9, SeverityEnum.HIGH),
            (60, SeverityEnum.HIGH),
            (40, SeverityEnum.ELEVATED),
            (20, SeverityEnum.MODERATE),
            (19, SeverityEnum.LOW),
        ],
    )
    def test_thresholds(self, score, severity):
        assert score_to_severity(score) == severity

    def test_result_derives_severity(self):
        result = RiskFactorResult.of(85, "bad", "fix it")
        assert result.severity == SeverityEnum.CRITICAL
        assert result.recommendation == "fix it"


class TestRegistry:
    def test_default_factor_count(self):
        factors = default_risk_factors()
        assert len(factors) == 22
        assert len({f.id for f in factors}) == 22

    def test_category_membership(self):
        regulatory = [f.id for f in factors_by_category(RiskCategoryEnum.REGULATORY)]
        assert regulatory == [
            "cms_overall_rating",
            "health_inspection_rating",
            "sff_status",
            "abuse_icon",
            "con_regulatory_risk",
        ]
        assert factors_by_category(RiskCategoryEnum.LEGAL) == []

    def test_duplicate_registration_rejected(self):
        with pytest.raises(ValueError, match="already registered"):

            @register_risk_factor(
                id="sff_status",
                category=RiskCategoryEnum.REGULATORY,
                name="Duplicate",
                weight=0.1,
                data_source="test",
            )
            def duplicate(data):
                return RiskFactorResult.of(0, "")

    def test_unknown_factor(self):
        with pytest.raises(KeyError, match="no_such_factor"):
            get_risk_factor("no_such_factor")

    def test_definition_evaluates_to_factor(self):
        definition = RiskFactorDefinition(
            id="bed_count",
            category=RiskCategoryEnum.OPERATIONAL,
            name="Facility Size",
            weight=0.5,
            data_source="Facility profile",
            evaluate=lambda data: RiskFactorResult.of(30, "Small facility"),
        )
        factor = definition.evaluate_factor(RiskEvaluationData())
        assert factor.factor_id == "bed_count"
        assert factor.weighted_score == pytest.approx(15)
        assert factor.severity == SeverityEnum.MODERATE


class TestFactors:
    def test_missing_data_is_neutral(self):
        data = RiskEvaluationData()
        for definition in default_risk_factors():
            factor = definition.evaluate_factor(data)
            assert 0 <= factor.score <= 100

    def test_cms_overall_rating(self):
        assert cms_overall_rating(RiskEvaluationData(cms_data=make_cms(overall_rating=1))).score == 85
        assert cms_overall_rating(RiskEvaluationData()).score == 50

    def test_health_inspection_deficiency_penalty(self):
        data = RiskEvaluationData(cms_data=make_cms(health_inspection_rating=2, total_deficiencies=16))
        result = health_inspection_rating(data)
        assert result.score == 75
        assert result.recommendation is not None

    def test_ebitdar_margin_bands(self):
        # 2.6M / 12M = 21.7%
        result = ebitdar_margin(RiskEvaluationData(financials=make_financials()))
        assert result.score == 5
        assert "excellent" in result.details

    def test_con_factor_for_ohio(self):
        factor = get_risk_factor("con_regulatory_risk")
        result = factor.evaluate(RiskEvaluationData(facility=make_facility(state="oh")))
        # (10 - 6.8) x 10 + moderate reform 8 + 8-month timeline 5
        assert result.score == pytest.approx(45)

    def test_con_factor_non_con_state(self):
        factor = get_risk_factor("con_regulatory_risk")
        result = factor.evaluate(RiskEvaluationData(facility=make_facility(state="TX")))
        assert result.score == 5

    def test_occupancy_factor_reads_operations(self):
        factor = get_risk_factor("occupancy_rate").evaluate_factor(
            RiskEvaluationData(operations=make_operations(occupancy_rate=55))
        )
        assert factor.score > get_risk_factor("occupancy_rate").evaluate_factor(
            RiskEvaluationData(operations=make_operations(occupancy_rate=92))
        ).score


class TestKnowledge:
    def test_con_lookup_case_insensitive(self):
        assert get_con_data("fl") == get_con_data("FL")
        assert get_con_data(" ny ").approval_rate == 0.65

    def test_non_con_state(self):
        assert get_con_data("TX") is None
        assert not is_con_state("TX")
        assert not is_con_state(None)
        assert is_con_state("oh")

    def test_quality_revenue_impact(self):
        impact = get_quality_revenue_impact(2)
        assert impact.revenue_per_bed.low == 4_500
        assert get_quality_revenue_impact(6) is None
