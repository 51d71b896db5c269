# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Financial Normalizer - Underwriting Adjustments to Reported Statements

Restates a reported operating statement on an underwriting basis:
annualize partial periods, normalize the management fee and agency labor to
market levels, and reserve for ongoing capital expenditure. Each step yields a
new statement value and an entry in the adjustment trail.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..core.primitives import ExpenseCategoryEnum, NormalizationSettings
from .normalized import (
    BenchmarkComparison,
    BenchmarkMetric,
    NormalizationAdjustment,
    NormalizedFinancials,
)
from .statement import FinancialStatement

logger = logging.getLogger(__name__)

_Step = Tuple[FinancialStatement, Optional[NormalizationAdjustment]]


class FinancialNormalizer:
    """
    Produces `NormalizedFinancials` from a categorized statement.

    Mapping raw ledger labels onto revenue/expense categories happens
    upstream; this class only adjusts categorized line items.

    Example:
        ```python
        normalizer = FinancialNormalizer(NormalizationSettings(add_reserves=False))
        normalized = normalizer.normalize(statement)
        normalized.metrics.noi
        ```
    """

    def __init__(self, settings: Optional[NormalizationSettings] = None):
        self.settings = settings or NormalizationSettings()

    def normalize(self, statement: FinancialStatement) -> NormalizedFinancials:
        adjustments: List[NormalizationAdjustment] = []
        normalized = statement

        steps = []
        if self.settings.annualize:
            steps.append(self._annualize)
        if self.settings.normalize_management_fee:
            steps.append(self._normalize_management_fee)
        if self.settings.normalize_agency:
            steps.append(self._normalize_agency)
        if self.settings.add_reserves and self.settings.reserve_percent > 0:
            steps.append(self._add_capital_reserves)

        for step in steps:
            normalized, adjustment = step(normalized)
            if adjustment is not None:
                adjustments.append(adjustment)

        logger.debug(
            f"Normalized statement with {len(adjustments)} adjustments: "
            f"NOI ${statement.noi:,.0f} -> ${normalized.noi:,.0f}"
        )

        return NormalizedFinancials(
            original=statement,
            normalized=normalized,
            adjustments=adjustments,
            benchmark_comparison=self.benchmark(normalized),
        )

    # === NORMALIZATION STEPS ===

    def _annualize(self, statement: FinancialStatement) -> _Step:
        months = statement.period.months
        if months == 12:
            return statement, None

        factor = 12 / months
        annualized = statement.scaled(factor)
        annualized = annualized.model_copy(
            update={"period": statement.period.model_copy(update={"months": 12})}
        )
        before = statement.net_revenue
        after = annualized.net_revenue
        return annualized, NormalizationAdjustment(
            category="annualization",
            description=(
                f"Annualized {months}-month financials "
                f"({statement.period.effective_start:%b %Y} - {statement.period.end_date:%b %Y}) to 12 months"
            ),
            original_amount=before,
            adjusted_amount=after,
            adjustment_amount=after - before,
            reason=f"Multiplied all line items by {factor:.2f} to annualize",
        )

    def _normalize_management_fee(self, statement: FinancialStatement) -> _Step:
        target_percent = self.settings.target_management_fee_percent
        revenue = statement.net_revenue
        if revenue <= 0:
            return statement, None

        target_amount = revenue * target_percent
        has_fee = any(
            item.category == ExpenseCategoryEnum.MANAGEMENT_FEE
            for item in statement.expenses.items
        )

        if not has_fee:
            return statement.add_expense(
                ExpenseCategoryEnum.MANAGEMENT_FEE, target_amount
            ), NormalizationAdjustment(
                category="management_fee",
                description="Added management fee at market rate",
                original_amount=0.0,
                adjusted_amount=target_amount,
                adjustment_amount=target_amount,
                reason=f"No management fee found; added {target_percent * 100:.1f}% fee",
            )

        current_amount = statement.expenses.amount(ExpenseCategoryEnum.MANAGEMENT_FEE)
        current_percent = current_amount / revenue
        if abs(current_percent - target_percent) < self.settings.management_fee_tolerance:
            return statement, None

        return statement.replace_expense(
            ExpenseCategoryEnum.MANAGEMENT_FEE, target_amount
        ), NormalizationAdjustment(
            category="management_fee",
            description="Normalized management fee to market rate",
            original_amount=current_amount,
            adjusted_amount=target_amount,
            adjustment_amount=target_amount - current_amount,
            reason=(
                f"Adjusted from {current_percent * 100:.1f}% "
                f"to {target_percent * 100:.1f}%"
            ),
        )

    def _normalize_agency(self, statement: FinancialStatement) -> _Step:
        target_percent = self.settings.target_agency_percent
        agency = statement.expenses.amount(ExpenseCategoryEnum.AGENCY_NURSING)
        wages = statement.expenses.amount(ExpenseCategoryEnum.NURSING_WAGES)
        nursing_labor = agency + wages

        if nursing_labor <= 0 or agency <= 0:
            return statement, None

        current_percent = agency / nursing_labor
        if current_percent <= target_percent + self.settings.agency_tolerance:
            return statement, None

        target_amount = nursing_labor * target_percent
        removed = agency - target_amount
        rehired = removed * self.settings.agency_wage_conversion
        savings = removed - rehired

        adjusted = statement.replace_expense(
            ExpenseCategoryEnum.AGENCY_NURSING, target_amount
        ).replace_expense(ExpenseCategoryEnum.NURSING_WAGES, wages + rehired)

        return adjusted, NormalizationAdjustment(
            category="agency_nursing",
            description="Normalized agency costs to market rate",
            original_amount=agency,
            adjusted_amount=target_amount,
            adjustment_amount=-savings,
            reason=(
                f"Reduced agency from {current_percent * 100:.1f}% to "
                f"{target_percent * 100:.1f}% with ${savings:,.0f} savings"
            ),
        )

    def _add_capital_reserves(self, statement: FinancialStatement) -> _Step:
        reserve_percent = self.settings.reserve_percent
        reserve = statement.net_revenue * reserve_percent
        if reserve <= 0:
            return statement, None

        return statement.add_expense(
            ExpenseCategoryEnum.OTHER_EXPENSE, reserve
        ), NormalizationAdjustment(
            category="capital_reserves",
            description="Added capital reserve allocation",
            original_amount=0.0,
            adjusted_amount=reserve,
            adjustment_amount=reserve,
            reason=f"Added {reserve_percent * 100:.1f}% capital reserve for ongoing capex",
        )

    # === BENCHMARKING ===

    def benchmark(self, statement: FinancialStatement) -> BenchmarkComparison:
        """Compare headline metrics against industry benchmarks."""
        metrics = statement.metrics
        beds = statement.facility.beds
        patient_days = statement.patient_days.total
        occupancy = patient_days / (beds * 365) if beds > 0 and patient_days > 0 else 0.0

        return BenchmarkComparison(
            revenue_per_patient_day=BenchmarkMetric(
                value=metrics.revenue_per_patient_day,
                benchmark=self.settings.benchmark_revenue_per_patient_day,
            ),
            labor_cost_percent=BenchmarkMetric(
                value=metrics.labor_cost_percent,
                benchmark=self.settings.benchmark_labor_cost_percent,
                higher_is_better=False,
            ),
            ebitdar_margin=BenchmarkMetric(
                value=metrics.ebitdar_margin,
                benchmark=self.settings.benchmark_ebitdar_margin,
            ),
            occupancy=BenchmarkMetric(
                value=occupancy, benchmark=self.settings.benchmark_occupancy
            ),
        )
