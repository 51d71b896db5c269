# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Base Valuation Classes - Shared Method Shape

Every valuation approach consumes the same `ValuationInput` and produces a
`ValuationMethod`: a value, a confidence label, a reconciliation weight and
an ordered adjustment trail explaining how the value was reached.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import Field

from ...core.primitives import ConfidenceLevel, FloatBetween0And1, Model, ValuationMethodKind
from ...facility import (
    CMSData,
    ComparableSale,
    FacilityProfile,
    MarketData,
    OperatingMetrics,
)
from ...financial import NormalizedFinancials


class ValuationAdjustment(Model):
    """
    One step of a method's adjustment trail.

    `impact` is in the method's own units: a rate delta for cap rate, a
    dollar amount per bed for price per bed, a multiple delta for NOI
    multiple, dollars for replacement cost.
    """

    description: str
    impact: float


class ValuationMethod(Model):
    """
    Output of a single valuation approach.

    Created once per calculation and never mutated; `weighted_value` is
    always `value * weight`.
    """

    name: ValuationMethodKind
    value: float = Field(..., description="Indicated value in dollars")
    confidence: ConfidenceLevel
    weight: FloatBetween0And1 = Field(..., description="Reconciliation weight")
    inputs: Dict[str, Any] = Field(
        default_factory=dict, description="Raw inputs used by the method"
    )
    adjustments: List[ValuationAdjustment] = Field(default_factory=list)

    @property
    def weighted_value(self) -> float:
        return self.value * self.weight

    def with_weight(self, weight: float) -> "ValuationMethod":
        return self.model_copy(update={"weight": weight})


class ValuationInput(Model):
    """
    Everything a valuation method may read.

    Only the facility profile is required. Missing collaborators (CMS,
    operating metrics, financials, market data, comparables) are treated as
    absent, never as zero, and reduce method confidence.
    """

    facility: FacilityProfile
    cms_data: Optional[CMSData] = None
    operating_metrics: Optional[OperatingMetrics] = None
    financials: Optional[NormalizedFinancials] = None
    market_data: Optional[MarketData] = None
    comparable_sales: List[ComparableSale] = Field(default_factory=list)
    land_value: Optional[float] = Field(
        default=None, description="Appraised land value, when known"
    )
    valuation_date: date = Field(default_factory=date.today)

    @property
    def noi(self) -> float:
        """Normalized NOI, or 0 when no financials were supplied."""
        if self.financials is None:
            return 0.0
        return self.financials.normalized.metrics.noi

    @property
    def beds(self) -> int:
        return self.facility.beds.operational

    @property
    def facility_age(self) -> int:
        return self.facility.age(self.valuation_date.year)


class BaseMethodCalculator(Model, ABC):
    """
    Abstract base for the six valuation approaches.

    Calculators are immutable and stateless: the only state they hold is
    their settings tables, injected at construction.
    """

    @property
    @abstractmethod
    def kind(self) -> ValuationMethodKind:
        """Method identifier."""

    @abstractmethod
    def calculate(self, input: ValuationInput) -> ValuationMethod:
        """
        Produce this method's indicated value.

        Args:
            input: Facility and contextual data

        Returns:
            ValuationMethod with value, confidence, weight and adjustment trail
        """
