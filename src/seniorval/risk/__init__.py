# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Risk scoring: weighted risk factors, deal-breaker rules and the risk engine.
"""

from .deal_breakers import (
    DEFAULT_DEAL_BREAKER_RULES,
    DEFAULT_RULE_SET,
    DealBreakerAssessment,
    DealBreakerOutcome,
    DealBreakerResult,
    DealBreakerRule,
    RuleSet,
    create_rule,
    evaluate_deal_breakers,
    has_any_deal_breaker,
    triggered_deal_breakers,
)
from .engine import (
    CategoryScore,
    Mitigant,
    RiskAssessment,
    RiskEngine,
    RiskEngineOutput,
    RiskSummary,
    create_risk_engine,
)
from .factors import (
    RiskEvaluationData,
    RiskFactor,
    RiskFactorDefinition,
    RiskFactorResult,
    default_risk_factors,
    factors_by_category,
    get_risk_factor,
    register_risk_factor,
    score_to_severity,
)
from .knowledge import (
    CON_STATE_DATA,
    QUALITY_REVENUE_IMPACT,
    CONStateData,
    CONTimeline,
    QualityRevenueImpact,
    ValueRange,
    get_con_data,
    get_quality_revenue_impact,
    is_con_state,
)

__all__ = [
    # Knowledge
    "CON_STATE_DATA",
    "CONStateData",
    "CONTimeline",
    "QUALITY_REVENUE_IMPACT",
    "QualityRevenueImpact",
    "ValueRange",
    "get_con_data",
    "get_quality_revenue_impact",
    "is_con_state",
    # Factors
    "RiskEvaluationData",
    "RiskFactor",
    "RiskFactorDefinition",
    "RiskFactorResult",
    "default_risk_factors",
    "factors_by_category",
    "get_risk_factor",
    "register_risk_factor",
    "score_to_severity",
    # Deal breakers
    "DEFAULT_DEAL_BREAKER_RULES",
    "DEFAULT_RULE_SET",
    "DealBreakerAssessment",
    "DealBreakerOutcome",
    "DealBreakerResult",
    "DealBreakerRule",
    "RuleSet",
    "create_rule",
    "evaluate_deal_breakers",
    "has_any_deal_breaker",
    "triggered_deal_breakers",
    # Engine
    "CategoryScore",
    "Mitigant",
    "RiskAssessment",
    "RiskEngine",
    "RiskEngineOutput",
    "RiskSummary",
    "create_risk_engine",
]
