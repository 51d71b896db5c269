# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Valuation Engine - Multi-Method Reconciliation

Runs every enabled valuation method whose preconditions hold and reconciles
the results into a single value:

1. Collect (value, weight) for methods with a positive value; the weight is
   the configured method weight, optionally scaled by a confidence multiplier.
2. Normalize weights to sum to 1.
3. Optionally trim outliers by population z-score, never below two
   survivors, and renormalize.
4. Combine by weighted average, median or mode-adjusted weighted average.

The result carries a +/- one standard deviation range, value per bed,
implied cap rate, an overall confidence label and illustrative sensitivity
curves.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Literal, Optional, Tuple

import numpy as np
import pandas as pd
from pydantic import Field
from scipy import stats

from ..core.primitives import (
    AssetTypeEnum,
    ConfidenceLevel,
    Model,
    ReconciliationMethodEnum,
    ValuationMethodKind,
)
from .base import BaseMethodCalculator, ValuationInput, ValuationMethod
from .cap_rate import CapRateCalculator
from .comparable_sales import ComparableSalesCalculator
from .dcf import DCFCalculator
from .noi_multiple import NOIMultipleCalculator
from .price_per_bed import PricePerBedCalculator
from .replacement_cost import ReplacementCostCalculator
from .settings import ValuationSettings

logger = logging.getLogger(__name__)

# Simplified capitalization rate behind the illustrative sensitivity curves
SENSITIVITY_BASE_CAP_RATE = 0.125
SENSITIVITY_CAP_RATES = [0.10, 0.105, 0.11, 0.115, 0.12, 0.125, 0.13, 0.135, 0.14]
SENSITIVITY_OCCUPANCIES = [70, 75, 80, 85, 90, 95]
SENSITIVITY_NOI_CHANGES = [-20, -15, -10, -5, 0, 5, 10, 15, 20]
DEFAULT_OCCUPANCY = 85.0

NOI_METHODS = (
    ValuationMethodKind.CAP_RATE,
    ValuationMethodKind.DCF,
    ValuationMethodKind.NOI_MULTIPLE,
)


# === RESULT MODELS ===


class ReconciliationResult(Model):
    """
    How method values were combined.

    `input_values` / `input_weights` are every contributing method before
    trimming (weights after confidence scaling, before normalization);
    `values` / `adjusted_weights` are the survivors actually combined, with
    weights summing to 1.
    """

    method: ReconciliationMethodEnum
    methods_used: List[ValuationMethodKind] = Field(default_factory=list)
    input_values: List[float] = Field(default_factory=list)
    input_weights: List[float] = Field(default_factory=list)
    values: List[float] = Field(default_factory=list)
    adjusted_weights: List[float] = Field(default_factory=list)
    trimmed_methods: List[ValuationMethodKind] = Field(default_factory=list)
    reconciled_value: float = 0.0


class CapRatePoint(Model):
    cap_rate: float
    value: float


class OccupancyPoint(Model):
    occupancy: float
    value: float


class NOIChangePoint(Model):
    noi_change: float
    value: float


class SensitivityCurves(Model):
    """Illustrative value curves from a simplified NOI / 12.5% base."""

    cap_rate: List[CapRatePoint] = Field(default_factory=list)
    occupancy: List[OccupancyPoint] = Field(default_factory=list)
    noi: List[NOIChangePoint] = Field(default_factory=list)

    def to_dataframe(self, curve: Literal["cap_rate", "occupancy", "noi"]) -> pd.DataFrame:
        return pd.DataFrame([point.model_dump() for point in getattr(self, curve)])


class ValuationResult(Model):
    """Reconciled valuation of one facility."""

    facility_id: str
    valuation_date: date
    asset_type: AssetTypeEnum
    methods: Dict[ValuationMethodKind, ValuationMethod] = Field(default_factory=dict)

    reconciled_value: float
    value_per_bed: float
    implied_cap_rate: float

    value_low: float
    value_mid: float
    value_high: float

    overall_confidence: ConfidenceLevel
    confidence_factors: List[str] = Field(default_factory=list)


class ValuationEngineOutput(Model):
    result: ValuationResult
    methods: Dict[ValuationMethodKind, ValuationMethod]
    sensitivity: SensitivityCurves
    reconciliation: ReconciliationResult

    def methods_dataframe(self) -> pd.DataFrame:
        """One row per method: value, confidence, weight and weighted value."""
        rows = [
            {
                "method": kind.value,
                "value": method.value,
                "confidence": method.confidence.value,
                "weight": method.weight,
                "weighted_value": method.weighted_value,
            }
            for kind, method in self.methods.items()
        ]
        return pd.DataFrame(rows, columns=["method", "value", "confidence", "weight", "weighted_value"])


# === ENGINE ===


def build_calculators(settings: ValuationSettings) -> Dict[ValuationMethodKind, BaseMethodCalculator]:
    """Instantiate the six calculators from a settings tree."""
    weights = settings.weights
    return {
        ValuationMethodKind.CAP_RATE: CapRateCalculator(
            tables=settings.cap_rate, weight=weights.cap_rate
        ),
        ValuationMethodKind.PRICE_PER_BED: PricePerBedCalculator(
            tables=settings.price_per_bed, weight=weights.price_per_bed
        ),
        ValuationMethodKind.DCF: DCFCalculator(settings=settings.dcf, weight=weights.dcf),
        ValuationMethodKind.NOI_MULTIPLE: NOIMultipleCalculator(
            tables=settings.noi_multiple, weight=weights.noi_multiple
        ),
        ValuationMethodKind.COMPARABLE_SALES: ComparableSalesCalculator(
            settings=settings.comparable_sales, weight=weights.comparable_sales
        ),
        ValuationMethodKind.REPLACEMENT_COST: ReplacementCostCalculator(
            tables=settings.replacement_cost, weight=weights.replacement_cost
        ),
    }


class ValuationEngine:
    """
    Runs the enabled valuation methods and reconciles them.

    The engine holds no mutable state: a different configuration means a new
    engine.

    Example:
        ```python
        engine = create_valuation_engine()
        output = engine.valuate(ValuationInput(facility=facility, financials=financials))
        output.result.reconciled_value
        ```
    """

    def __init__(
        self,
        settings: Optional[ValuationSettings] = None,
        calculators: Optional[Dict[ValuationMethodKind, BaseMethodCalculator]] = None,
    ):
        self.settings = settings or ValuationSettings()
        self.calculators = build_calculators(self.settings)
        if calculators:
            self.calculators.update(calculators)

    def valuate(self, input: ValuationInput) -> ValuationEngineOutput:
        methods = self._run_methods(input)
        reconciliation = self.reconcile(methods)
        result = self._build_result(input, methods, reconciliation)

        logger.info(
            f"Valuation {input.facility.id}: ${result.reconciled_value:,.0f} "
            f"from {len(reconciliation.values)} methods ({result.overall_confidence.value})"
        )

        return ValuationEngineOutput(
            result=result,
            methods=methods,
            sensitivity=self.sensitivity(input),
            reconciliation=reconciliation,
        )

    def _run_methods(self, input: ValuationInput) -> Dict[ValuationMethodKind, ValuationMethod]:
        noi = input.noi
        methods: Dict[ValuationMethodKind, ValuationMethod] = {}

        for kind, calculator in self.calculators.items():
            if not self.settings.enabled.is_enabled(kind):
                continue
            if kind in NOI_METHODS and noi <= 0:
                logger.debug(f"Skipping {kind.value}: NOI {noi:,.0f} is not positive")
                continue
            if kind == ValuationMethodKind.PRICE_PER_BED and input.beds <= 0:
                continue
            if kind == ValuationMethodKind.COMPARABLE_SALES and not input.comparable_sales:
                continue
            methods[kind] = calculator.calculate(input)
        return methods

    # === RECONCILIATION ===

    def reconcile(self, methods: Dict[ValuationMethodKind, ValuationMethod]) -> ReconciliationResult:
        """Combine method values into one reconciled value."""
        rules = self.settings.reconciliation
        kinds: List[ValuationMethodKind] = []
        values: List[float] = []
        weights: List[float] = []

        for kind, method in methods.items():
            if method.value <= 0:
                continue
            weight = self.settings.weights.for_method(kind)
            if rules.confidence_weighting:
                weight *= rules.confidence_multipliers.get(method.confidence.value, 1.0)
            kinds.append(kind)
            values.append(method.value)
            weights.append(weight)

        if not values:
            return ReconciliationResult(method=ReconciliationMethodEnum.NONE)

        total = sum(weights)
        if total > 0:
            adjusted = [w / total for w in weights]
        else:
            adjusted = [1 / len(weights)] * len(weights)

        survivors = list(range(len(values)))
        if rules.trim_outliers and len(values) >= 3:
            survivors = self.trim_outliers(values, rules.outlier_threshold)
            kept = [adjusted[i] for i in survivors]
            kept_total = sum(kept)
            adjusted = [w / kept_total for w in kept]

        kept_values = [values[i] for i in survivors]
        trimmed = [kinds[i] for i in range(len(kinds)) if i not in survivors]
        if trimmed:
            logger.debug(f"Trimmed outlier methods: {[k.value for k in trimmed]}")

        return ReconciliationResult(
            method=rules.method,
            methods_used=[kinds[i] for i in survivors],
            input_values=values,
            input_weights=weights,
            values=kept_values,
            adjusted_weights=adjusted,
            trimmed_methods=trimmed,
            reconciled_value=self.combine(rules.method, kept_values, adjusted),
        )

    @staticmethod
    def trim_outliers(values: List[float], threshold: float) -> List[int]:
        """
        Indices of values within `threshold` population z-scores of the mean.

        All indices are returned when the values have no spread or when
        trimming would leave fewer than two.
        """
        everything = list(range(len(values)))
        if len(values) < 3 or float(np.std(values)) == 0:
            return everything
        z_scores = np.abs(stats.zscore(values, ddof=0))
        survivors = [i for i, z in enumerate(z_scores) if z <= threshold]
        if len(survivors) < 2:
            return everything
        return survivors

    @staticmethod
    def combine(
        method: ReconciliationMethodEnum, values: List[float], weights: List[float]
    ) -> float:
        if method == ReconciliationMethodEnum.MEDIAN:
            return float(np.median(values))
        if method == ReconciliationMethodEnum.MODE_ADJUSTED:
            median = float(np.median(values))
            boosted = [
                w / (1 + abs(v - median) / median) if median else w
                for v, w in zip(values, weights)
            ]
            total = sum(boosted)
            return sum(v * w / total for v, w in zip(values, boosted))
        return sum(v * w for v, w in zip(values, weights))

    # === RESULT PACKAGING ===

    def _build_result(
        self,
        input: ValuationInput,
        methods: Dict[ValuationMethodKind, ValuationMethod],
        reconciliation: ReconciliationResult,
    ) -> ValuationResult:
        reconciled = reconciliation.reconciled_value
        values = reconciliation.values
        spread = float(np.std(values)) if len(values) >= 2 else 0.0
        noi = input.noi
        beds = input.beds

        confidence, factors = self._overall_confidence(methods, values)
        return ValuationResult(
            facility_id=input.facility.id,
            valuation_date=input.valuation_date,
            asset_type=input.facility.asset_type,
            methods=methods,
            reconciled_value=reconciled,
            value_per_bed=reconciled / beds if beds > 0 else 0.0,
            implied_cap_rate=noi / reconciled if noi > 0 and reconciled > 0 else 0.0,
            value_low=max(0.0, reconciled - spread),
            value_mid=reconciled,
            value_high=reconciled + spread,
            overall_confidence=confidence,
            confidence_factors=factors,
        )

    @staticmethod
    def _overall_confidence(
        methods: Dict[ValuationMethodKind, ValuationMethod], values: List[float]
    ) -> Tuple[ConfidenceLevel, List[str]]:
        labels = [m.confidence for m in methods.values()]
        if labels.count(ConfidenceLevel.HIGH) >= 2:
            overall = ConfidenceLevel.HIGH
        elif labels.count(ConfidenceLevel.LOW) >= 2:
            overall = ConfidenceLevel.LOW
        else:
            overall = ConfidenceLevel.MEDIUM

        factors = []
        if len(values) >= 4:
            factors.append(f"{len(values)} valuation methods applied")
        if len(values) >= 2 and float(np.mean(values)) > 0:
            if float(stats.variation(values)) < 0.15:
                factors.append("Low variance across methods")
        comps = methods.get(ValuationMethodKind.COMPARABLE_SALES)
        if comps is not None and comps.confidence == ConfidenceLevel.HIGH:
            factors.append("Strong comparable sales data")
        return overall, factors

    @staticmethod
    def sensitivity(input: ValuationInput) -> SensitivityCurves:
        """Illustrative cap rate, occupancy and NOI curves."""
        noi = input.noi
        base = noi / SENSITIVITY_BASE_CAP_RATE if noi > 0 else 0.0
        current = DEFAULT_OCCUPANCY
        if input.operating_metrics is not None and input.operating_metrics.occupancy_rate > 0:
            current = input.operating_metrics.occupancy_rate

        return SensitivityCurves(
            cap_rate=[
                CapRatePoint(cap_rate=rate, value=noi / rate if noi > 0 else 0.0)
                for rate in SENSITIVITY_CAP_RATES
            ],
            occupancy=[
                OccupancyPoint(occupancy=occ, value=base * occ / current)
                for occ in SENSITIVITY_OCCUPANCIES
            ],
            noi=[
                NOIChangePoint(noi_change=change, value=base * (1 + change / 100))
                for change in SENSITIVITY_NOI_CHANGES
            ],
        )


def create_valuation_engine(settings: Optional[ValuationSettings] = None) -> ValuationEngine:
    """Construct a valuation engine; the default configuration when settings is None."""
    return ValuationEngine(settings)
