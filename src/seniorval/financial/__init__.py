# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Financial Statements and Analytics

Operating statements with derived metrics, underwriting normalization, and
ratio / coverage / trend analytics.
"""

from .calculator import (
    FinancialCalculator,
    FinancialRatios,
    MetricTrend,
    PayerMixAnalysis,
    PayerRevenue,
    TrendAnalysis,
)
from .normalized import (
    BenchmarkComparison,
    BenchmarkMetric,
    NormalizationAdjustment,
    NormalizedFinancials,
)
from .normalizer import FinancialNormalizer
from .statement import (
    ExpenseLineItem,
    ExpenseSection,
    FinancialStatement,
    PatientDays,
    RevenueLineItem,
    RevenueSection,
    StatementFacility,
    StatementMetrics,
    StatementPeriod,
)

__all__ = [
    "BenchmarkComparison",
    "BenchmarkMetric",
    "ExpenseLineItem",
    "ExpenseSection",
    "FinancialCalculator",
    "FinancialNormalizer",
    "FinancialRatios",
    "FinancialStatement",
    "MetricTrend",
    "NormalizationAdjustment",
    "NormalizedFinancials",
    "PatientDays",
    "PayerMixAnalysis",
    "PayerRevenue",
    "RevenueLineItem",
    "RevenueSection",
    "StatementFacility",
    "StatementMetrics",
    "StatementPeriod",
    "TrendAnalysis",
]
