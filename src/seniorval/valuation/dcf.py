# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Discounted Cash Flow Valuation

Explicit year-by-year projection over a hold period: revenue grows at a
compounding rate with an optional occupancy stabilization ramp, expenses grow
separately (or NOI grows directly when an NOI growth rate is given), capex is
netted out, and the terminal sale at the exit cap rate is discounted back.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Literal, Optional, Tuple

import pandas as pd
from pydantic import Field, model_validator

from ..core.primitives import (
    ConfidenceLevel,
    FloatBetween0And1,
    Model,
    PositiveFloat,
    ValuationMethodKind,
)
from .base import BaseMethodCalculator, ValuationAdjustment, ValuationInput, ValuationMethod
from .helpers import label_confidence
from .metrics import InvestmentMetrics

logger = logging.getLogger(__name__)

DCFVariable = Literal["discount_rate", "exit_cap_rate", "noi_growth_rate"]

# NOI margin assumed when only NOI is known
_ASSUMED_NOI_MARGIN = 0.10


class DCFSettings(Model):
    """
    DCF assumptions.

    Attributes:
        hold_period: Projection length in years
        discount_rate: Annual discount rate
        exit_cap_rate: Cap rate applied to final-year NOI at sale
        revenue_growth_rate: Annual revenue growth
        expense_growth_rate: Annual expense growth
        noi_growth_rate: When set, NOI grows directly at this rate and the
            revenue/expense decomposition is bypassed for NOI
        current_occupancy: Starting occupancy for the stabilization ramp
        stabilized_occupancy: Target occupancy for the ramp
        years_to_stabilize: Ramp length in years
        annual_capex_percent: Recurring capex as a fraction of revenue
        initial_capex: One-time capex in year 1
        exit_cost_percent: Selling costs as a fraction of gross exit value
    """

    # === PROJECTION ===
    hold_period: int = Field(default=10, ge=1)
    discount_rate: PositiveFloat = 0.09
    exit_cap_rate: float = Field(default=0.095, gt=0)

    # === GROWTH ===
    revenue_growth_rate: float = 0.025
    expense_growth_rate: float = 0.03
    noi_growth_rate: Optional[float] = None

    # === OCCUPANCY RAMP ===
    current_occupancy: Optional[FloatBetween0And1] = None
    stabilized_occupancy: Optional[FloatBetween0And1] = None
    years_to_stabilize: Optional[int] = Field(default=None, ge=1)

    # === CAPITAL ===
    annual_capex_percent: FloatBetween0And1 = 0.02
    initial_capex: PositiveFloat = 0.0
    exit_cost_percent: FloatBetween0And1 = 0.03

    @model_validator(mode="after")
    def validate_ramp(self) -> "DCFSettings":
        if self.current_occupancy is not None and self.current_occupancy == 0:
            raise ValueError("current_occupancy must be positive when given")
        return self

    @property
    def has_ramp(self) -> bool:
        return bool(self.current_occupancy and self.stabilized_occupancy and self.years_to_stabilize)


class DCFProjectionYear(Model):
    year: int
    revenue: float
    expenses: float
    noi: float
    capex: float
    cash_flow: float
    discount_factor: float
    present_value: float


class DCFResult(Model):
    """Full DCF output: projection, terminal value and returns."""

    projections: List[DCFProjectionYear]
    exit_value: float
    exit_value_pv: float
    total_cash_flow_pv: float
    total_value: float
    irr: float
    equity_multiple: float

    def to_dataframe(self) -> pd.DataFrame:
        """Projection as a frame indexed by year."""
        return pd.DataFrame([p.model_dump() for p in self.projections]).set_index("year")


class DCFCalculator(BaseMethodCalculator):
    """
    Hold-period discounted cash flow.

    Example:
        ```python
        calculator = DCFCalculator(settings=DCFSettings(discount_rate=0.10))
        result = calculator.project(base_revenue=10_000_000, base_expense=8_500_000)
        result.to_dataframe()
        ```
    """

    settings: DCFSettings = Field(default_factory=DCFSettings)
    weight: float = 0.25

    @property
    def kind(self) -> ValuationMethodKind:
        return ValuationMethodKind.DCF

    def calculate(self, input: ValuationInput) -> ValuationMethod:
        settings = self.settings
        base_revenue, base_expense = self.base_amounts(input)
        result = self.project(base_revenue, base_expense, settings)

        logger.debug(
            f"DCF {input.facility.id}: value ${result.total_value:,.0f}, "
            f"IRR {result.irr:.2%}, multiple {result.equity_multiple:.2f}x"
        )

        return ValuationMethod(
            name=self.kind,
            value=result.total_value,
            confidence=self._confidence(input, settings),
            weight=self.weight,
            inputs={
                "current_noi": input.noi,
                "hold_period": settings.hold_period,
                "discount_rate": settings.discount_rate,
                "exit_cap_rate": settings.exit_cap_rate,
                "revenue_growth_rate": settings.revenue_growth_rate,
                "expense_growth_rate": settings.expense_growth_rate,
                "irr": result.irr,
                "equity_multiple": result.equity_multiple,
            },
            adjustments=[
                ValuationAdjustment(description=f"{settings.hold_period}-year hold period", impact=0),
                ValuationAdjustment(
                    description=f"{settings.discount_rate * 100:.1f}% discount rate", impact=0
                ),
                ValuationAdjustment(
                    description=f"{settings.exit_cap_rate * 100:.2f}% exit cap rate", impact=0
                ),
            ],
        )

    @staticmethod
    def base_amounts(input: ValuationInput) -> Tuple[float, float]:
        """Year-0 revenue and operating expense, estimated from NOI if needed."""
        if input.financials is not None:
            normalized = input.financials.normalized
            return normalized.revenue.total_net_revenue, normalized.expenses.total_operating_expense
        revenue = input.noi / _ASSUMED_NOI_MARGIN
        return revenue, revenue - input.noi

    def project(
        self,
        base_revenue: float,
        base_expense: float,
        settings: Optional[DCFSettings] = None,
    ) -> DCFResult:
        """Run the year-by-year projection and terminal sale."""
        s = settings or self.settings
        projections: List[DCFProjectionYear] = []
        base_noi = base_revenue - base_expense

        for year in range(1, s.hold_period + 1):
            occupancy_factor = 1.0
            if s.has_ramp:
                if year <= s.years_to_stabilize:
                    progress = year / s.years_to_stabilize
                    year_occupancy = (
                        s.current_occupancy
                        + (s.stabilized_occupancy - s.current_occupancy) * progress
                    )
                    occupancy_factor = year_occupancy / s.current_occupancy
                else:
                    occupancy_factor = s.stabilized_occupancy / s.current_occupancy

            revenue = base_revenue * (1 + s.revenue_growth_rate) ** year * occupancy_factor
            expenses = base_expense * (1 + s.expense_growth_rate) ** year
            if s.noi_growth_rate is not None:
                noi = base_noi * (1 + s.noi_growth_rate) ** year
            else:
                noi = revenue - expenses

            capex = revenue * s.annual_capex_percent
            if year == 1:
                capex += s.initial_capex

            cash_flow = noi - capex
            discount_factor = (1 + s.discount_rate) ** year
            projections.append(
                DCFProjectionYear(
                    year=year,
                    revenue=revenue,
                    expenses=expenses,
                    noi=noi,
                    capex=capex,
                    cash_flow=cash_flow,
                    discount_factor=discount_factor,
                    present_value=cash_flow / discount_factor,
                )
            )

        total_cash_flow_pv = sum(p.present_value for p in projections)

        gross_exit_value = projections[-1].noi / s.exit_cap_rate
        exit_value = gross_exit_value * (1 - s.exit_cost_percent)
        exit_value_pv = exit_value / (1 + s.discount_rate) ** s.hold_period
        total_value = total_cash_flow_pv + exit_value_pv

        # Terminal proceeds land in the final period
        returned = [p.cash_flow for p in projections]
        returned[-1] += exit_value

        return DCFResult(
            projections=projections,
            exit_value=exit_value,
            exit_value_pv=exit_value_pv,
            total_cash_flow_pv=total_cash_flow_pv,
            total_value=total_value,
            irr=InvestmentMetrics.irr([-total_value, *returned]),
            equity_multiple=InvestmentMetrics.equity_multiple(total_value, returned),
        )

    def sensitivity(
        self, input: ValuationInput, variable: DCFVariable, values: Iterable[float]
    ) -> pd.DataFrame:
        """
        Re-run the projection across a range of one assumption.

        Returns:
            DataFrame with the tested assumption value and the resulting total value
        """
        base_revenue, base_expense = self.base_amounts(input)
        rows = []
        for test_value in values:
            settings = self.settings.model_copy(update={variable: test_value})
            result = self.project(base_revenue, base_expense, settings)
            rows.append({variable: test_value, "value": result.total_value})
        return pd.DataFrame(rows, columns=[variable, "value"])

    def _confidence(self, input: ValuationInput, settings: DCFSettings) -> ConfidenceLevel:
        score = 0
        if input.noi > 0:
            score += 2
        if input.financials is not None:
            score += 2
        if 0.07 <= settings.discount_rate <= 0.15:
            score += 1
        if 0.06 <= settings.exit_cap_rate <= 0.14:
            score += 1
        if 5 <= settings.hold_period <= 15:
            score += 1

        if input.noi < 0:
            score -= 2
        if settings.revenue_growth_rate > 0.05:
            score -= 1
        return label_confidence(score, high=5, medium=3)
