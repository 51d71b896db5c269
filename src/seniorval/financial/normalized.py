# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field

from ..core.primitives import Model
from .statement import FinancialStatement, StatementMetrics

BenchmarkRating = Literal["Excellent", "Good", "Fair", "Poor"]


class NormalizationAdjustment(Model):
    """One change made while normalizing a statement."""

    category: str
    description: str
    original_amount: float
    adjusted_amount: float
    adjustment_amount: float
    reason: str


class BenchmarkMetric(Model):
    """A statement metric compared against an industry benchmark."""

    value: float
    benchmark: float
    higher_is_better: bool = True

    @property
    def variance(self) -> float:
        return self.value - self.benchmark

    @property
    def rating(self) -> BenchmarkRating:
        """Four-tier rating using a +/-10% band around the benchmark."""
        if self.benchmark == 0:
            return "Fair"
        percent_diff = (self.value - self.benchmark) / self.benchmark
        if not self.higher_is_better:
            percent_diff = -percent_diff
        if percent_diff >= 0.1:
            return "Excellent"
        if percent_diff >= 0:
            return "Good"
        if percent_diff >= -0.1:
            return "Fair"
        return "Poor"


class BenchmarkComparison(Model):
    revenue_per_patient_day: BenchmarkMetric
    labor_cost_percent: BenchmarkMetric
    ebitdar_margin: BenchmarkMetric
    occupancy: BenchmarkMetric


class NormalizedFinancials(Model):
    """
    Reported statement, its normalized counterpart and the adjustment trail.

    Valuation and risk read only `normalized` (its metrics and line items);
    `original` is retained for audit and NOI-stability checks.
    """

    original: FinancialStatement
    normalized: FinancialStatement
    adjustments: List[NormalizationAdjustment] = Field(default_factory=list)
    benchmark_comparison: Optional[BenchmarkComparison] = None

    @property
    def metrics(self) -> StatementMetrics:
        return self.normalized.metrics

    @property
    def noi(self) -> float:
        return self.normalized.noi

    @classmethod
    def from_statement(cls, statement: FinancialStatement) -> "NormalizedFinancials":
        """Wrap a statement that needs no normalization."""
        return cls(original=statement, normalized=statement)
