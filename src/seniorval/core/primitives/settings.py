# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Engine-level settings shared across the valuation, risk, recalculation and
interactive layers.

Per-method valuation tables (cap rate brackets, price-per-bed multipliers,
replacement cost constants) live beside their calculators in
`seniorval.valuation`; this module holds the cross-cutting knobs.
"""

from __future__ import annotations

from typing import Dict

from pydantic import Field, model_validator

from .enums import ReconciliationMethodEnum, RiskCategoryEnum, ValuationMethodKind
from .model import Model
from .types import FloatBetween0And1, PositiveFloat, PositiveInt


class MethodWeights(Model):
    """Configured reconciliation weight for each valuation method."""

    cap_rate: FloatBetween0And1 = 0.30
    price_per_bed: FloatBetween0And1 = 0.20
    dcf: FloatBetween0And1 = 0.20
    noi_multiple: FloatBetween0And1 = 0.10
    comparable_sales: FloatBetween0And1 = 0.10
    replacement_cost: FloatBetween0And1 = 0.10

    def for_method(self, kind: ValuationMethodKind) -> float:
        return getattr(self, kind.value)


class EnabledMethods(Model):
    """Toggles for each valuation method."""

    cap_rate: bool = True
    price_per_bed: bool = True
    dcf: bool = True
    noi_multiple: bool = True
    comparable_sales: bool = True
    replacement_cost: bool = True

    def is_enabled(self, kind: ValuationMethodKind) -> bool:
        return getattr(self, kind.value)


class ReconciliationSettings(Model):
    """How individual method values are combined."""

    method: ReconciliationMethodEnum = Field(
        default=ReconciliationMethodEnum.WEIGHTED_AVERAGE,
        description="Combination rule for method values",
    )
    trim_outliers: bool = Field(
        default=True, description="Drop values whose |z-score| exceeds the threshold"
    )
    outlier_threshold: PositiveFloat = Field(
        default=2.0, description="Z-score threshold for outlier trimming"
    )
    confidence_weighting: bool = Field(
        default=True, description="Scale weights by method confidence"
    )
    confidence_multipliers: Dict[str, PositiveFloat] = Field(
        default_factory=lambda: {"high": 1.2, "medium": 1.0, "low": 0.7},
        description="Weight multiplier per confidence label",
    )

    @model_validator(mode="after")
    def validate_reconciliation(self) -> "ReconciliationSettings":
        if self.method == ReconciliationMethodEnum.NONE:
            raise ValueError("'none' is a result marker, not a configurable method")
        return self


class RiskCategoryWeights(Model):
    """Category weights used to combine category scores into the overall score."""

    regulatory: FloatBetween0And1 = 0.30
    operational: FloatBetween0And1 = 0.20
    financial: FloatBetween0And1 = 0.25
    market: FloatBetween0And1 = 0.10
    reputational: FloatBetween0And1 = 0.10
    legal: FloatBetween0And1 = 0.02
    environmental: FloatBetween0And1 = 0.02
    technology: FloatBetween0And1 = 0.01

    def for_category(self, category: RiskCategoryEnum) -> float:
        return getattr(self, category.value)


class RiskRatingThresholds(Model):
    """Lower bounds (inclusive) for each overall rating tier."""

    critical: float = 80
    high: float = 60
    elevated: float = 40
    moderate: float = 20
    low: float = 10

    @model_validator(mode="after")
    def validate_ordering(self) -> "RiskRatingThresholds":
        ordered = [self.critical, self.high, self.elevated, self.moderate, self.low]
        if ordered != sorted(ordered, reverse=True):
            raise ValueError("Risk rating thresholds must be in descending order")
        return self


class RiskSettings(Model):
    """Risk engine configuration."""

    category_weights: RiskCategoryWeights = Field(default_factory=RiskCategoryWeights)
    thresholds: RiskRatingThresholds = Field(default_factory=RiskRatingThresholds)
    max_key_risks: PositiveInt = Field(
        default=5, description="Number of key risks surfaced"
    )
    key_risk_min_score: float = Field(
        default=40, description="Minimum factor score to qualify as a key risk"
    )
    include_deal_breakers: bool = True
    include_recommendations: bool = True
    pass_threshold: float = Field(
        default=60, description="Overall score at or above which the summary says pass"
    )
    conditional_threshold: float = Field(
        default=35, description="Overall score at or above which the summary says conditional"
    )


class RecalculationSettings(Model):
    """Caching and analysis defaults for the recalculation engine."""

    cache_enabled: bool = True
    cache_ttl_seconds: PositiveFloat = Field(
        default=30.0, description="Lifetime of a cached recalculation"
    )
    sensitivity_steps: PositiveInt = Field(
        default=10, description="Default number of sensitivity sweep steps"
    )
    monte_carlo_iterations: PositiveInt = Field(
        default=1000, description="Default Monte Carlo draw count"
    )
    monte_carlo_min_iterations: PositiveInt = Field(
        default=2, description="Minimum draws for a meaningful distribution"
    )
    histogram_buckets: PositiveInt = Field(
        default=20, description="Histogram bucket count for Monte Carlo output"
    )


class InteractiveSettings(Model):
    """Debounce timings for slider-driven recalculation."""

    debounce_ms: PositiveFloat = 150.0
    max_wait_ms: PositiveFloat = 500.0

    @model_validator(mode="after")
    def validate_timings(self) -> "InteractiveSettings":
        if self.max_wait_ms < self.debounce_ms:
            raise ValueError(
                f"max_wait_ms ({self.max_wait_ms}) must be >= debounce_ms ({self.debounce_ms})"
            )
        return self


class NormalizationSettings(Model):
    """Options for normalizing reported financial statements."""

    annualize: bool = True
    normalize_management_fee: bool = True
    target_management_fee_percent: FloatBetween0And1 = 0.05
    management_fee_tolerance: FloatBetween0And1 = 0.01
    normalize_agency: bool = True
    target_agency_percent: FloatBetween0And1 = 0.03
    agency_tolerance: FloatBetween0And1 = 0.02
    agency_wage_conversion: FloatBetween0And1 = Field(
        default=0.70,
        description="Share of removed agency cost re-hired as staff wages",
    )
    add_reserves: bool = True
    reserve_percent: FloatBetween0And1 = 0.03
    benchmark_revenue_per_patient_day: PositiveFloat = 350.0
    benchmark_labor_cost_percent: FloatBetween0And1 = 0.55
    benchmark_ebitdar_margin: FloatBetween0And1 = 0.12
    benchmark_occupancy: FloatBetween0And1 = 0.85