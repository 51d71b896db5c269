# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Comparable Sales Valuation - Similarity-Weighted Price Per Bed

Filters closed transactions to those relevant to the subject, ranks them by
weighted similarity (distance, recency, size, quality), adjusts each
comparable's price per bed for size and age differences, and applies the
similarity-weighted average to the subject's operational beds.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import pandas as pd
from pydantic import Field
from scipy import stats

from ..core.primitives import (
    ConfidenceLevel,
    FloatBetween0And1,
    Model,
    PositiveFloat,
    PositiveInt,
    ValuationMethodKind,
)
from ..facility import ComparableSale
from .base import BaseMethodCalculator, ValuationAdjustment, ValuationInput, ValuationMethod

logger = logging.getLogger(__name__)


class ComparableAdjustmentRates(Model):
    """Linear adjustment rates applied to a comparable's price per bed."""

    size_per_percent: float = Field(
        default=0.002, description="Price change per 1.0 of relative size difference"
    )
    age_per_year: float = Field(default=0.01, description="Price change per year of age difference")
    size_threshold: FloatBetween0And1 = 0.05
    age_threshold_years: PositiveFloat = 2


class ComparableSalesSettings(Model):
    """
    Filtering, similarity and adjustment settings.

    Similarity weights default to 25% each across distance, recency, size and
    quality.
    """

    # === FILTERING ===
    max_age_days: PositiveInt = 730
    max_distance_miles: PositiveFloat = 250
    min_comparables: PositiveInt = 3
    max_comparables: PositiveInt = 10

    # === SIMILARITY WEIGHTS ===
    distance_weight: FloatBetween0And1 = 0.25
    recency_weight: FloatBetween0And1 = 0.25
    size_weight: FloatBetween0And1 = 0.25
    quality_weight: FloatBetween0And1 = 0.25

    adjustments: ComparableAdjustmentRates = Field(default_factory=ComparableAdjustmentRates)


class ScoredComparable(Model):
    sale: ComparableSale
    similarity_score: float


class AdjustedComparable(Model):
    """A ranked comparable after size and age adjustment."""

    sale: ComparableSale
    adjustments: List[ValuationAdjustment] = Field(default_factory=list)
    adjusted_price_per_bed: float
    weight: float

    @property
    def contribution(self) -> float:
        return self.adjusted_price_per_bed * self.weight


class ComparableSalesCalculator(BaseMethodCalculator):
    """
    Sales comparison approach on a price-per-bed basis.

    Returns a zero value with low confidence when fewer than
    `min_comparables` sales survive filtering.
    """

    settings: ComparableSalesSettings = Field(default_factory=ComparableSalesSettings)
    weight: float = 0.20

    @property
    def kind(self) -> ValuationMethodKind:
        return ValuationMethodKind.COMPARABLE_SALES

    # === CALCULATION METHODS ===

    def calculate(self, input: ValuationInput) -> ValuationMethod:
        settings = self.settings
        eligible = self.filter_comparables(input)

        if len(eligible) < settings.min_comparables:
            logger.warning(
                f"Insufficient comparables for {input.facility.id}: "
                f"{len(eligible)}/{settings.min_comparables}"
            )
            return ValuationMethod(
                name=self.kind,
                value=0.0,
                confidence=ConfidenceLevel.LOW,
                weight=self.weight,
                inputs={
                    "comparables_found": len(eligible),
                    "min_required": settings.min_comparables,
                },
                adjustments=[
                    ValuationAdjustment(
                        description=(
                            f"Insufficient comparables "
                            f"({len(eligible)}/{settings.min_comparables})"
                        ),
                        impact=0,
                    )
                ],
            )

        ranked = self.score_comparables(eligible, input)[: settings.max_comparables]
        adjusted = [self.adjust_comparable(scored, input) for scored in ranked]

        total_weight = sum(c.weight for c in adjusted)
        if total_weight > 0:
            weighted_ppb = sum(c.contribution for c in adjusted) / total_weight
        else:
            weighted_ppb = sum(c.adjusted_price_per_bed for c in adjusted) / len(adjusted)
        value = weighted_ppb * input.beds

        prices = [c.adjusted_price_per_bed for c in adjusted]
        return ValuationMethod(
            name=self.kind,
            value=value,
            confidence=self.confidence(adjusted),
            weight=self.weight,
            inputs={
                "comparables_used": len(adjusted),
                "weighted_price_per_bed": weighted_ppb,
                "beds": input.beds,
                "min_price_per_bed": min(prices),
                "max_price_per_bed": max(prices),
            },
            adjustments=[
                ValuationAdjustment(
                    description=(
                        f"{c.sale.property_name} ({c.sale.address.city}, {c.sale.address.state})"
                        f" - ${c.adjusted_price_per_bed:,.0f}/bed @ {c.weight * 100:.1f}% weight"
                    ),
                    impact=c.contribution,
                )
                for c in adjusted
            ],
        )

    def filter_comparables(self, input: ValuationInput) -> List[ComparableSale]:
        """Keep sales of the same asset type, recent, nearby and priced."""
        settings = self.settings
        eligible = []
        for sale in input.comparable_sales:
            if sale.asset_type != input.facility.asset_type:
                continue
            if (input.valuation_date - sale.sale_date).days > settings.max_age_days:
                continue
            if sale.distance_miles is not None and sale.distance_miles > settings.max_distance_miles:
                continue
            if sale.price_per_bed <= 0:
                continue
            eligible.append(sale)
        return eligible

    def score_comparables(
        self, sales: List[ComparableSale], input: ValuationInput
    ) -> List[ScoredComparable]:
        """Rank sales by weighted similarity to the subject, best first."""
        settings = self.settings
        subject_beds = input.beds
        subject_stars = input.cms_data.overall_rating if input.cms_data is not None else None

        scored = []
        for sale in sales:
            if sale.distance_miles is not None:
                distance_score = 1 - sale.distance_miles / settings.max_distance_miles
            else:
                distance_score = 0.5

            days_since_sale = (input.valuation_date - sale.sale_date).days
            recency_score = 1 - days_since_sale / settings.max_age_days

            if subject_beds > 0:
                size_score = max(0.0, 1 - abs(sale.beds - subject_beds) / subject_beds)
            else:
                size_score = 0.0

            score = (
                distance_score * settings.distance_weight
                + recency_score * settings.recency_weight
                + size_score * settings.size_weight
                + self.quality_score(sale.cms_rating, subject_stars) * settings.quality_weight
            )
            scored.append(ScoredComparable(sale=sale, similarity_score=score))

        return sorted(scored, key=lambda s: s.similarity_score, reverse=True)

    @staticmethod
    def quality_score(comp_stars: Optional[int], subject_stars: Optional[int]) -> float:
        """
        Star-rating similarity.

        1 - |difference| / 4 when both ratings are known, 0.8 when only the
        comparable is rated, 0.5 when the comparable is unrated.
        """
        if comp_stars is None:
            return 0.5
        if subject_stars is None:
            return 0.8
        return 1 - abs(comp_stars - subject_stars) / 4

    def adjust_comparable(
        self, scored: ScoredComparable, input: ValuationInput
    ) -> AdjustedComparable:
        """Adjust one comparable's price per bed for size and age differences."""
        rates = self.settings.adjustments
        sale = scored.sale
        base_ppb = sale.price_per_bed
        adjusted_ppb = base_ppb
        adjustments: List[ValuationAdjustment] = []

        if sale.beds > 0:
            size_diff = (input.beds - sale.beds) / sale.beds
            if abs(size_diff) > rates.size_threshold:
                amount = size_diff * rates.size_per_percent * base_ppb
                adjusted_ppb += amount
                direction = "larger" if size_diff > 0 else "smaller"
                adjustments.append(
                    ValuationAdjustment(
                        description=f"Size adjustment ({abs(size_diff) * 100:.0f}% {direction})",
                        impact=amount,
                    )
                )

        year = input.valuation_date.year
        age_diff = input.facility.age(year) - max(0, year - sale.year_built)
        if abs(age_diff) > rates.age_threshold_years:
            amount = -age_diff * rates.age_per_year * base_ppb
            adjusted_ppb += amount
            direction = "older" if age_diff > 0 else "newer"
            adjustments.append(
                ValuationAdjustment(
                    description=f"Age adjustment ({abs(age_diff)} years {direction})",
                    impact=amount,
                )
            )

        return AdjustedComparable(
            sale=sale,
            adjustments=adjustments,
            adjusted_price_per_bed=adjusted_ppb,
            weight=scored.similarity_score,
        )

    def confidence(self, adjusted: List[AdjustedComparable]) -> ConfidenceLevel:
        """Confidence from comparable count and dispersion of adjusted prices."""
        count = len(adjusted)
        if count < self.settings.min_comparables:
            return ConfidenceLevel.LOW

        prices = [c.adjusted_price_per_bed for c in adjusted]
        cv = float(stats.variation(prices)) if sum(prices) != 0 else float("inf")

        if count >= 5 and cv < 0.15:
            return ConfidenceLevel.HIGH
        if count >= 3 and cv < 0.25:
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW

    def summary(self, input: ValuationInput) -> Dict[str, Optional[float]]:
        """
        Descriptive statistics of eligible comparables.

        Returns:
            Dictionary with count, mean / median / min / max price per bed
            and the average cap rate where reported
        """
        eligible = self.filter_comparables(input)
        if not eligible:
            return {
                "count": 0,
                "avg_price_per_bed": 0.0,
                "median_price_per_bed": 0.0,
                "min_price_per_bed": 0.0,
                "max_price_per_bed": 0.0,
                "avg_cap_rate": None,
            }

        prices = pd.Series([s.price_per_bed for s in eligible])
        cap_rates = pd.Series([s.cap_rate for s in eligible if s.cap_rate])
        return {
            "count": len(eligible),
            "avg_price_per_bed": float(prices.mean()),
            "median_price_per_bed": float(prices.median()),
            "min_price_per_bed": float(prices.min()),
            "max_price_per_bed": float(prices.max()),
            "avg_cap_rate": float(cap_rates.mean()) if not cap_rates.empty else None,
        }

    def to_dataframe(self, input: ValuationInput) -> pd.DataFrame:
        """Ranked and adjusted comparables as a report frame."""
        eligible = self.filter_comparables(input)
        ranked = self.score_comparables(eligible, input)[: self.settings.max_comparables]
        rows = []
        for scored in ranked:
            adjusted = self.adjust_comparable(scored, input)
            rows.append(
                {
                    "property_name": scored.sale.property_name,
                    "sale_date": scored.sale.sale_date,
                    "beds": scored.sale.beds,
                    "price_per_bed": scored.sale.price_per_bed,
                    "adjusted_price_per_bed": adjusted.adjusted_price_per_bed,
                    "similarity_score": scored.similarity_score,
                    "cap_rate": scored.sale.cap_rate,
                }
            )
        return pd.DataFrame(rows)

