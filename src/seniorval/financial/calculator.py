# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Financial Calculator - Ratios, Coverage, Trends and Projections

Standardized operating-statement analytics for senior housing facilities.
Coverage ratios return None when their denominator is not positive: a
facility with no rent or debt service has no coverage constraint, which is
"not applicable" rather than an infinitely large number.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

import pandas as pd
from pydantic import Field

from ..core.primitives import (
    ExpenseCategoryEnum,
    FloatBetween0And1,
    Model,
    OccupancyTrendEnum,
    RevenueCategoryEnum,
)
from ..facility import FacilityProfile, OperatingMetrics
from .statement import FinancialStatement

_PAYER_NAMES: Dict[RevenueCategoryEnum, str] = {
    RevenueCategoryEnum.MEDICARE_PART_A: "Medicare Part A",
    RevenueCategoryEnum.MEDICARE_PART_B: "Medicare Part B",
    RevenueCategoryEnum.MEDICARE_ADVANTAGE: "Medicare Advantage",
    RevenueCategoryEnum.MEDICAID: "Medicaid",
    RevenueCategoryEnum.PRIVATE_PAY: "Private Pay",
    RevenueCategoryEnum.MANAGED_CARE: "Managed Care",
    RevenueCategoryEnum.VA_CONTRACT: "VA Contract",
    RevenueCategoryEnum.HOSPICE: "Hospice",
    RevenueCategoryEnum.OTHER_REVENUE: "Other",
}

_PAYER_MIX_FIELDS: Dict[RevenueCategoryEnum, str] = {
    RevenueCategoryEnum.MEDICARE_PART_A: "medicare_a",
    RevenueCategoryEnum.MEDICARE_PART_B: "medicare_b",
    RevenueCategoryEnum.MEDICARE_ADVANTAGE: "medicare_advantage",
    RevenueCategoryEnum.MEDICAID: "medicaid",
    RevenueCategoryEnum.PRIVATE_PAY: "private_pay",
    RevenueCategoryEnum.MANAGED_CARE: "managed_care",
    RevenueCategoryEnum.VA_CONTRACT: "va_contract",
    RevenueCategoryEnum.HOSPICE: "hospice",
    RevenueCategoryEnum.OTHER_REVENUE: "other",
}


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


class FinancialRatios(Model):
    """Profitability, per-unit and efficiency ratios for one statement."""

    # Profitability
    gross_margin: float
    operating_margin: float
    ebitdar_margin: float
    ebitda_margin: float
    noi_margin: float
    net_margin: float

    # Per-unit
    revenue_per_bed: float
    expense_per_bed: float
    noi_per_bed: float
    revenue_per_patient_day: float
    expense_per_patient_day: float
    noi_per_patient_day: float

    # Efficiency
    labor_cost_ratio: float
    agency_ratio: float
    supply_ratio: float
    overhead_ratio: float

    # Coverage
    rent_coverage: Optional[float] = None


class PayerRevenue(Model):
    payer: str
    revenue: float
    percentage: float
    patient_days: float

    @property
    def rate_per_day(self) -> float:
        return _ratio(self.revenue, self.patient_days)


class PayerMixAnalysis(Model):
    revenue_by_payer: List[PayerRevenue] = Field(default_factory=list)
    acuity_indicator: Literal["high", "medium", "low"]
    skill_mix_ratio: FloatBetween0And1
    medicare_utilization: FloatBetween0And1


class MetricTrend(Model):
    name: str
    values: List[float]
    trend: OccupancyTrendEnum
    cagr: Optional[float] = None


class TrendAnalysis(Model):
    periods: List[str] = Field(default_factory=list)
    metrics: List[MetricTrend] = Field(default_factory=list)

    def to_dataframe(self) -> pd.DataFrame:
        """Metrics as rows, periods as columns."""
        return pd.DataFrame(
            {metric.name: metric.values for metric in self.metrics}, index=self.periods
        ).T


class FinancialCalculator:
    """
    Operating-statement analytics.

    Stateless; every method is a pure function of its arguments.
    """

    @staticmethod
    def calculate_metrics(
        statement: FinancialStatement, facility: Optional[FacilityProfile] = None
    ) -> FinancialRatios:
        """
        Calculate profitability, per-unit and efficiency ratios.

        Args:
            statement: Statement to analyze
            facility: Facility profile; its operational beds are used when the
                statement does not carry a bed count

        Returns:
            FinancialRatios for the statement
        """
        metrics = statement.metrics
        revenue = statement.net_revenue
        gross_revenue = statement.revenue.total_gross_revenue
        opex = statement.operating_expense
        labor = statement.expenses.total_labor_expense
        beds = statement.facility.beds or (facility.beds.operational if facility else 0)
        patient_days = statement.patient_days.total

        rent = statement.expenses.amount(ExpenseCategoryEnum.RENT)
        agency = statement.expenses.amount(ExpenseCategoryEnum.AGENCY_NURSING)
        supplies = statement.expenses.amount(
            ExpenseCategoryEnum.MEDICAL_SUPPLIES, ExpenseCategoryEnum.GENERAL_SUPPLIES
        )
        noi = metrics.noi

        return FinancialRatios(
            gross_margin=_ratio(gross_revenue - opex, gross_revenue),
            operating_margin=_ratio(revenue - opex, revenue),
            ebitdar_margin=metrics.ebitdar_margin,
            ebitda_margin=metrics.ebitda_margin,
            noi_margin=metrics.noi_margin,
            net_margin=metrics.net_income_margin,
            revenue_per_bed=_ratio(revenue, beds),
            expense_per_bed=_ratio(opex, beds),
            noi_per_bed=_ratio(noi, beds),
            revenue_per_patient_day=_ratio(revenue, patient_days),
            expense_per_patient_day=_ratio(opex, patient_days),
            noi_per_patient_day=_ratio(noi, patient_days),
            labor_cost_ratio=_ratio(labor, revenue),
            agency_ratio=_ratio(agency, labor),
            supply_ratio=_ratio(supplies, revenue),
            overhead_ratio=_ratio(opex - labor, revenue),
            rent_coverage=FinancialCalculator.rent_coverage(metrics.ebitdar, rent),
        )

    @staticmethod
    def analyze_payer_mix(
        statement: FinancialStatement,
        operating_metrics: Optional[OperatingMetrics] = None,
    ) -> PayerMixAnalysis:
        """
        Break revenue down by payer and classify acuity from the skilled mix.

        Patient days per payer come from the line item when reported, else
        they are estimated from the census payer mix.
        """
        total_revenue = statement.net_revenue
        total_days = statement.patient_days.total

        rows: List[PayerRevenue] = []
        for item in statement.revenue.items:
            days = item.patient_days or 0.0
            if not days and operating_metrics is not None:
                field = _PAYER_MIX_FIELDS.get(item.category)
                if field is not None:
                    days = total_days * getattr(operating_metrics.payer_mix, field) / 100
            rows.append(
                PayerRevenue(
                    payer=_PAYER_NAMES.get(item.category, item.category.value),
                    revenue=item.amount,
                    percentage=_ratio(item.amount, total_revenue),
                    patient_days=days,
                )
            )

        skilled = statement.revenue.amount(
            RevenueCategoryEnum.MEDICARE_PART_A, RevenueCategoryEnum.MEDICARE_ADVANTAGE
        )
        medicare = skilled + statement.revenue.amount(RevenueCategoryEnum.MEDICARE_PART_B)
        skill_mix = min(1.0, max(0.0, _ratio(skilled, total_revenue)))

        if skill_mix >= 0.35:
            acuity = "high"
        elif skill_mix <= 0.15:
            acuity = "low"
        else:
            acuity = "medium"

        return PayerMixAnalysis(
            revenue_by_payer=rows,
            acuity_indicator=acuity,
            skill_mix_ratio=skill_mix,
            medicare_utilization=min(1.0, max(0.0, _ratio(medicare, total_revenue))),
        )

    # === COVERAGE RATIOS ===

    @staticmethod
    def dscr(noi: float, annual_debt_service: float) -> Optional[float]:
        """Debt service coverage ratio; None when there is no debt service."""
        if annual_debt_service <= 0:
            return None
        return noi / annual_debt_service

    @staticmethod
    def fccr(ebitdar: float, rent: float, debt_service: float) -> Optional[float]:
        """Fixed charge coverage ratio; None when there are no fixed charges."""
        fixed_charges = rent + debt_service
        if fixed_charges <= 0:
            return None
        return ebitdar / fixed_charges

    @staticmethod
    def rent_coverage(ebitdar: float, rent: float) -> Optional[float]:
        """EBITDAR rent coverage; None when no rent is paid."""
        if rent <= 0:
            return None
        return ebitdar / rent

    # === TRENDS & PROJECTIONS ===

    @staticmethod
    def analyze_trends(statements: List[FinancialStatement]) -> TrendAnalysis:
        """
        Trend label and CAGR for headline metrics across periods.

        A metric is improving/declining when the last value differs from the
        first by more than 5%.
        """
        if not statements:
            return TrendAnalysis()

        ordered = sorted(statements, key=lambda s: s.period.end_date)
        periods = [s.period.end_date.isoformat() for s in ordered]
        all_metrics = [s.metrics for s in ordered]

        series = {
            "Revenue": [s.net_revenue for s in ordered],
            "NOI": [m.noi for m in all_metrics],
            "NOI Margin": [m.noi_margin for m in all_metrics],
            "Labor Cost %": [m.labor_cost_percent for m in all_metrics],
            "Revenue/Bed": [m.revenue_per_bed for m in all_metrics],
        }

        trends = []
        for name, values in series.items():
            cagr = None
            if len(values) >= 2:
                cagr = FinancialCalculator._cagr(values[0], values[-1], len(values) - 1)
            trends.append(
                MetricTrend(
                    name=name,
                    values=values,
                    trend=FinancialCalculator._trend(values),
                    cagr=cagr,
                )
            )

        return TrendAnalysis(periods=periods, metrics=trends)

    @staticmethod
    def break_even_occupancy(
        fixed_costs: float,
        variable_cost_per_patient_day: float,
        revenue_per_patient_day: float,
        beds: int,
    ) -> Optional[float]:
        """
        Occupancy (fraction) at which contribution margin covers fixed costs.

        Returns None when each patient day loses money, so no occupancy level
        breaks even, or when there are no beds.
        """
        if revenue_per_patient_day <= variable_cost_per_patient_day or beds <= 0:
            return None
        contribution = revenue_per_patient_day - variable_cost_per_patient_day
        return (fixed_costs / contribution) / (beds * 365)

    @staticmethod
    def project_at_occupancy(
        statement: FinancialStatement,
        target_occupancy: float,
        current_occupancy: float,
        variable_cost_ratio: float = 0.3,
    ) -> FinancialStatement:
        """
        Project a statement at a different occupancy.

        Revenue and patient days scale with occupancy; each expense item is
        split into a variable share that scales and a fixed share that does
        not.

        Args:
            statement: Statement at current occupancy
            target_occupancy: Target occupancy (same units as current)
            current_occupancy: Current occupancy
            variable_cost_ratio: Share of each expense that varies with census

        Returns:
            A new statement; the input is unchanged
        """
        if current_occupancy <= 0:
            raise ValueError("current_occupancy must be positive")
        change = target_occupancy / current_occupancy

        revenue = statement.revenue.model_copy(
            update={
                "items": [
                    item.model_copy(update={"amount": item.amount * change})
                    for item in statement.revenue.items
                ],
                "contractual_adjustments": statement.revenue.contractual_adjustments * change,
                "bad_debt": statement.revenue.bad_debt * change,
                "charity_care": statement.revenue.charity_care * change,
            }
        )
        expenses = [
            item.model_copy(
                update={
                    "amount": item.amount * (1 - variable_cost_ratio)
                    + item.amount * variable_cost_ratio * change
                }
            )
            for item in statement.expenses.items
        ]
        patient_days = statement.patient_days.model_copy(
            update={"total": statement.patient_days.total * change}
        )
        return statement.model_copy(
            update={"revenue": revenue, "patient_days": patient_days}
        ).with_expense_items(expenses)

    # === PRIVATE HELPERS ===

    @staticmethod
    def _trend(values: List[float]) -> OccupancyTrendEnum:
        if len(values) < 2 or values[0] == 0:
            return OccupancyTrendEnum.STABLE
        change = (values[-1] - values[0]) / abs(values[0])
        if change > 0.05:
            return OccupancyTrendEnum.IMPROVING
        if change < -0.05:
            return OccupancyTrendEnum.DECLINING
        return OccupancyTrendEnum.STABLE

    @staticmethod
    def _cagr(start: float, end: float, years: int) -> float:
        if start <= 0 or years <= 0 or end < 0:
            return 0.0
        return (end / start) ** (1 / years) - 1
