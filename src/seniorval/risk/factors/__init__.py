# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Risk Factors

Twenty-two default factors across the regulatory, operational, financial,
market and reputational categories, including the knowledge-augmented
factors. Importing this package registers them all; `default_risk_factors()`
returns them in registration order.
"""

# Category modules register their factors on import, in this order
# isort: off
from . import regulatory, operational, financial, market, reputational  # noqa: F401
from . import augmented  # noqa: F401
# isort: on
from .base import (
    RiskEvaluationData,
    RiskFactor,
    RiskFactorDefinition,
    RiskFactorResult,
    grade_above,
    grade_below,
    score_to_severity,
)
from .registry import (
    RISK_FACTOR_REGISTRY,
    default_risk_factors,
    factors_by_category,
    get_risk_factor,
    register_risk_factor,
)

__all__ = [
    "RISK_FACTOR_REGISTRY",
    "RiskEvaluationData",
    "RiskFactor",
    "RiskFactorDefinition",
    "RiskFactorResult",
    "default_risk_factors",
    "factors_by_category",
    "get_risk_factor",
    "grade_above",
    "grade_below",
    "register_risk_factor",
    "score_to_severity",
]
