# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Financial Statement - Line Items with Derived Metrics

A statement stores only line items and revenue deductions. Every total,
margin and per-unit figure is computed on access, so editing line items
(through the builder methods, which return new statements) can never leave a
stale metric behind.

Metric definitions:
    Operating expense = all expense items except depreciation, amortization
                        and interest (rent and management fees included)
    NOI      = net revenue - operating expense
    EBITDAR  = NOI + rent
    EBITDA   = EBITDAR - rent
    Net income = EBITDA - depreciation - amortization - interest
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from dateutil.relativedelta import relativedelta
from pydantic import Field, model_validator

from ..core.primitives import (
    ExpenseCategoryEnum,
    Model,
    PeriodTypeEnum,
    PositiveFloat,
    PositiveInt,
    RevenueCategoryEnum,
)


def _safe_divide(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


class StatementPeriod(Model):
    """Reporting period of a statement."""

    start_date: Optional[date] = None
    end_date: date
    period_type: PeriodTypeEnum = PeriodTypeEnum.TRAILING_12
    months: PositiveInt = Field(default=12, description="Months covered by the statement")
    is_audited: bool = False
    is_projected: bool = False

    @model_validator(mode="after")
    def validate_period(self) -> "StatementPeriod":
        if self.start_date is not None and self.start_date > self.end_date:
            raise ValueError(
                f"Period start ({self.start_date}) is after period end ({self.end_date})"
            )
        if self.months == 0:
            raise ValueError("A statement period must cover at least one month")
        return self

    @property
    def effective_start(self) -> date:
        """First day covered; inferred from `months` when no start date was reported."""
        if self.start_date is not None:
            return self.start_date
        return self.end_date + timedelta(days=1) - relativedelta(months=self.months)


class StatementFacility(Model):
    id: str = ""
    name: str = ""
    beds: PositiveInt = 0


class RevenueLineItem(Model):
    category: RevenueCategoryEnum
    amount: float
    patient_days: Optional[PositiveFloat] = None

    @property
    def rate_per_day(self) -> float:
        return _safe_divide(self.amount, self.patient_days or 0.0)


class ExpenseLineItem(Model):
    category: ExpenseCategoryEnum
    amount: float


class PatientDays(Model):
    total: PositiveFloat = 0.0
    by_payer: Dict[str, PositiveFloat] = Field(default_factory=dict)


class RevenueSection(Model):
    """Gross revenue line items and the deductions that produce net revenue."""

    items: List[RevenueLineItem] = Field(default_factory=list)
    contractual_adjustments: PositiveFloat = 0.0
    bad_debt: PositiveFloat = 0.0
    charity_care: PositiveFloat = 0.0

    @property
    def total_gross_revenue(self) -> float:
        return sum(item.amount for item in self.items)

    @property
    def total_net_revenue(self) -> float:
        return (
            self.total_gross_revenue
            - self.contractual_adjustments
            - self.bad_debt
            - self.charity_care
        )

    def amount(self, *categories: RevenueCategoryEnum) -> float:
        """Sum of all items in the given categories."""
        wanted = set(categories)
        return sum(item.amount for item in self.items if item.category in wanted)


class ExpenseSection(Model):
    """Expense line items with labor / non-labor roll-ups."""

    items: List[ExpenseLineItem] = Field(default_factory=list)

    @property
    def total_labor_expense(self) -> float:
        labor = ExpenseCategoryEnum.labor_categories()
        return sum(item.amount for item in self.items if item.category in labor)

    @property
    def total_non_labor_expense(self) -> float:
        excluded = (
            ExpenseCategoryEnum.labor_categories()
            | ExpenseCategoryEnum.non_operating_categories()
        )
        return sum(item.amount for item in self.items if item.category not in excluded)

    @property
    def total_operating_expense(self) -> float:
        return self.total_labor_expense + self.total_non_labor_expense

    def amount(self, *categories: ExpenseCategoryEnum) -> float:
        """Sum of all items in the given categories."""
        wanted = set(categories)
        return sum(item.amount for item in self.items if item.category in wanted)


class StatementMetrics(Model):
    """Snapshot of derived statement metrics. Margins are fractions."""

    ebitdar: float
    ebitdar_margin: float
    ebitda: float
    ebitda_margin: float
    noi: float
    noi_margin: float
    net_income: float
    net_income_margin: float
    revenue_per_bed: float
    expense_per_bed: float
    revenue_per_patient_day: float
    expense_per_patient_day: float
    labor_cost_percent: float


class FinancialStatement(Model):
    """
    An operating statement for one facility and period.

    Example:
        ```python
        statement = FinancialStatement(
            period=StatementPeriod(end_date=date(2024, 12, 31)),
            facility=StatementFacility(beds=120),
            revenue=RevenueSection(items=[
                RevenueLineItem(category=RevenueCategoryEnum.MEDICAID, amount=9_000_000),
            ]),
            expenses=ExpenseSection(items=[
                ExpenseLineItem(category=ExpenseCategoryEnum.NURSING_WAGES, amount=5_000_000),
            ]),
            patient_days=PatientDays(total=37_000),
        )
        statement.metrics.noi  # 4_000_000
        ```
    """

    period: StatementPeriod
    facility: StatementFacility = Field(default_factory=StatementFacility)
    revenue: RevenueSection = Field(default_factory=RevenueSection)
    expenses: ExpenseSection = Field(default_factory=ExpenseSection)
    patient_days: PatientDays = Field(default_factory=PatientDays)

    # === COMPUTED PROPERTIES ===

    @property
    def net_revenue(self) -> float:
        return self.revenue.total_net_revenue

    @property
    def operating_expense(self) -> float:
        return self.expenses.total_operating_expense

    @property
    def noi(self) -> float:
        return self.net_revenue - self.operating_expense

    @property
    def metrics(self) -> StatementMetrics:
        """Derived metrics, recomputed from line items on every access."""
        revenue = self.net_revenue
        opex = self.operating_expense
        beds = self.facility.beds
        patient_days = self.patient_days.total

        rent = self.expenses.amount(ExpenseCategoryEnum.RENT)
        depreciation = self.expenses.amount(ExpenseCategoryEnum.DEPRECIATION)
        amortization = self.expenses.amount(ExpenseCategoryEnum.AMORTIZATION)
        interest = self.expenses.amount(ExpenseCategoryEnum.INTEREST)

        noi = revenue - opex
        ebitdar = noi + rent
        ebitda = ebitdar - rent
        net_income = ebitda - depreciation - amortization - interest

        return StatementMetrics(
            ebitdar=ebitdar,
            ebitdar_margin=_safe_divide(ebitdar, revenue),
            ebitda=ebitda,
            ebitda_margin=_safe_divide(ebitda, revenue),
            noi=noi,
            noi_margin=_safe_divide(noi, revenue),
            net_income=net_income,
            net_income_margin=_safe_divide(net_income, revenue),
            revenue_per_bed=_safe_divide(revenue, beds),
            expense_per_bed=_safe_divide(opex, beds),
            revenue_per_patient_day=_safe_divide(revenue, patient_days),
            expense_per_patient_day=_safe_divide(opex, patient_days),
            labor_cost_percent=_safe_divide(self.expenses.total_labor_expense, revenue),
        )

    # === BUILDER METHODS ===

    def with_revenue_items(self, items: Iterable[RevenueLineItem]) -> "FinancialStatement":
        return self.model_copy(
            update={"revenue": self.revenue.model_copy(update={"items": list(items)})}
        )

    def with_expense_items(self, items: Iterable[ExpenseLineItem]) -> "FinancialStatement":
        return self.model_copy(
            update={"expenses": self.expenses.model_copy(update={"items": list(items)})}
        )

    def replace_expense(
        self, category: ExpenseCategoryEnum, amount: float
    ) -> "FinancialStatement":
        """Return a statement whose items in `category` collapse into one item of `amount`."""
        kept = [item for item in self.expenses.items if item.category != category]
        return self.with_expense_items(kept + [ExpenseLineItem(category=category, amount=amount)])

    def add_expense(self, category: ExpenseCategoryEnum, amount: float) -> "FinancialStatement":
        """Return a statement with an additional expense item."""
        return self.with_expense_items(
            list(self.expenses.items) + [ExpenseLineItem(category=category, amount=amount)]
        )

    def scaled(self, factor: float) -> "FinancialStatement":
        """Return a statement with every amount and patient day count scaled by `factor`."""
        revenue = self.revenue.model_copy(
            update={
                "items": [
                    item.model_copy(
                        update={
                            "amount": item.amount * factor,
                            "patient_days": (
                                item.patient_days * factor
                                if item.patient_days is not None
                                else None
                            ),
                        }
                    )
                    for item in self.revenue.items
                ],
                "contractual_adjustments": self.revenue.contractual_adjustments * factor,
                "bad_debt": self.revenue.bad_debt * factor,
                "charity_care": self.revenue.charity_care * factor,
            }
        )
        expenses = self.expenses.model_copy(
            update={
                "items": [
                    item.model_copy(update={"amount": item.amount * factor})
                    for item in self.expenses.items
                ]
            }
        )
        patient_days = self.patient_days.model_copy(
            update={
                "total": self.patient_days.total * factor,
                "by_payer": {k: v * factor for k, v in self.patient_days.by_payer.items()},
            }
        )
        return self.model_copy(
            update={"revenue": revenue, "expenses": expenses, "patient_days": patient_days}
        )

    # === FACTORY METHODS ===

    @classmethod
    def from_noi(
        cls,
        noi: float,
        beds: int = 0,
        noi_margin: float = 0.10,
        end_date: Optional[date] = None,
    ) -> "FinancialStatement":
        """
        Minimal statement that reproduces a known NOI.

        Revenue is grossed up from NOI at the given margin; the balance is
        booked as a single operating expense.
        """
        if noi_margin <= 0:
            raise ValueError("noi_margin must be positive")
        revenue = abs(noi) / noi_margin if noi else 0.0
        return cls(
            period=StatementPeriod(end_date=end_date or date.today()),
            facility=StatementFacility(beds=beds),
            revenue=RevenueSection(
                items=[RevenueLineItem(category=RevenueCategoryEnum.OTHER_REVENUE, amount=revenue)]
            ),
            expenses=ExpenseSection(
                items=[
                    ExpenseLineItem(
                        category=ExpenseCategoryEnum.OTHER_EXPENSE, amount=revenue - noi
                    )
                ]
            ),
        )
