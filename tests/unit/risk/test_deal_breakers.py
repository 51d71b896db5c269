# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Tests for deal-breaker rules and rule sets."""

import pytest
from conftest import (
    make_cms,
    make_facility,
    make_financials,
    make_financials_from_noi,
    make_market,
    make_operations,
)
from pydantic import ValidationError

from seniorval.core.primitives import ReformRiskEnum, RiskCategoryEnum
from seniorval.facility import StaffingMetrics
from seniorval.risk import (
    DEFAULT_RULE_SET,
    CONStateData,
    CONTimeline,
    DealBreakerResult,
    RiskEvaluationData,
    RuleSet,
    ValueRange,
    create_rule,
    evaluate_deal_breakers,
    has_any_deal_breaker,
    triggered_deal_breakers,
)

DEFAULT_IDS = [
    "sff_status",
    "one_star_rating",
    "abuse_icon",
    "immediate_jeopardy",
    "critical_occupancy",
    "excessive_agency",
    "minimum_staffing",
    "negative_noi",
    "critical_margin",
    "high_medicaid",
    "declining_market",
    "oversupplied_market",
    "con_moratorium",
]


def healthy_data(**overrides) -> RiskEvaluationData:
    fields = dict(
        facility=make_facility(),
        cms_data=make_cms(),
        operations=make_operations(),
        financials=make_financials(),
        market=make_market(),
    )
    fields.update(overrides)
    return RiskEvaluationData(**fields)


def always(triggered: bool, rule_id: str = "custom"):
    return create_rule(
        id=rule_id,
        name="Custom",
        description="Custom rule",
        category=RiskCategoryEnum.OPERATIONAL,
        evaluate=lambda data: DealBreakerResult(triggered=triggered, threshold="n/a", actual="n/a"),
    )


class TestDefaultRules:
    def test_default_rule_ids(self):
        assert DEFAULT_RULE_SET.ids == DEFAULT_IDS
        assert len(DEFAULT_RULE_SET) == 13

    def test_healthy_facility_triggers_nothing(self):
        assessment = evaluate_deal_breakers(healthy_data())
        assert not assessment.any_triggered
        assert len(assessment.results) == 13

    def test_missing_data_triggers_nothing(self):
        assessment = evaluate_deal_breakers(RiskEvaluationData())
        assert assessment.triggered_count == 0
        assert assessment.results[0].result.actual == "Unknown"

    @pytest.mark.parametrize(
        "overrides,rule_id",
        [
            ({"cms_data": make_cms(is_sff=True)}, "sff_status"),
            ({"cms_data": make_cms(overall_rating=1)}, "one_star_rating"),
            ({"cms_data": make_cms(has_abuse_icon=True)}, "abuse_icon"),
            ({"cms_data": make_cms(total_deficiencies=21)}, "immediate_jeopardy"),
            ({"operations": make_operations(occupancy_rate=55)}, "critical_occupancy"),
            ({"financials": make_financials_from_noi(-50_000)}, "negative_noi"),
            ({"market": make_market(demand_growth_rate=-0.03)}, "declining_market"),
            ({"market": make_market(market_occupancy=0.65)}, "oversupplied_market"),
        ],
    )
    def test_single_trigger(self, overrides, rule_id):
        triggered = triggered_deal_breakers(healthy_data(**overrides))
        assert rule_id in [t.rule_id for t in triggered]

    def test_staffing_rules(self):
        staffing = StaffingMetrics(total_hppd=2.8, agency_usage_percent=45)
        data = healthy_data(
            cms_data=None, operations=make_operations(staffing=staffing)
        )
        ids = [t.rule_id for t in triggered_deal_breakers(data)]
        assert "excessive_agency" in ids
        assert "minimum_staffing" in ids

    def test_high_medicaid(self):
        operations = make_operations()
        mix = operations.payer_mix.model_copy(update={"medicaid": 90, "private_pay": 0})
        data = healthy_data(operations=operations.model_copy(update={"payer_mix": mix}))
        assert "high_medicaid" in [t.rule_id for t in triggered_deal_breakers(data)]

    def test_con_moratorium_uses_injected_table(self):
        strict = CONStateData(
            investment_score=3,
            timeline_months=CONTimeline(fast=6, standard=12, extended=24),
            application_cost=ValueRange(low=100_000, high=200_000),
            approval_rate=0.40,
            reform_risk=ReformRiskEnum.HIGH,
        )
        data = healthy_data(con_table={"OH": strict})
        outcome = next(r for r in evaluate_deal_breakers(data).results if r.rule_id == "con_moratorium")

        assert outcome.triggered
        assert outcome.result.actual == "OH: 40% approval, 24mo max timeline"

    def test_evaluation_is_deterministic(self):
        data = healthy_data(cms_data=make_cms(is_sff=True, overall_rating=1))
        first = evaluate_deal_breakers(data)
        second = evaluate_deal_breakers(data)
        assert first == second
        assert [t.rule_id for t in first.triggered] == ["sff_status", "one_star_rating"]


class TestRuleSet:
    def test_with_rule_appends(self):
        rules = DEFAULT_RULE_SET.with_rule(always(True))
        assert rules.ids[-1] == "custom"
        assert len(DEFAULT_RULE_SET) == 13

    def test_duplicate_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate"):
            DEFAULT_RULE_SET.with_rule(always(False, rule_id="sff_status"))

    def test_duplicate_is_value_error(self):
        with pytest.raises(ValueError):
            RuleSet.of([always(False), always(True)])

    def test_without_rule(self):
        rules = DEFAULT_RULE_SET.without_rule("high_medicaid")
        assert "high_medicaid" not in rules.ids
        assert rules.get("high_medicaid") is None
        assert DEFAULT_RULE_SET.without_rule("missing").ids == DEFAULT_IDS

    def test_by_category(self):
        market = DEFAULT_RULE_SET.by_category(RiskCategoryEnum.MARKET)
        assert [r.id for r in market] == ["declining_market", "oversupplied_market"]

    def test_custom_rule_set(self):
        rules = RuleSet.of([always(True)])
        assert has_any_deal_breaker(RiskEvaluationData(), rules)
        assert not has_any_deal_breaker(RiskEvaluationData(), RuleSet.of([]))

    def test_empty_rule_set_evaluates_nothing(self):
        assessment = evaluate_deal_breakers(healthy_data(), RuleSet.of([]))
        assert assessment.results == []
