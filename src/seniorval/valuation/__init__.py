# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Valuation Package

Six independent valuation methods and the engine that reconciles them:

- **CapRateCalculator**: NOI / adjusted cap rate (additive adjustments)
- **PricePerBedCalculator**: beds x adjusted price per bed (multiplicative)
- **DCFCalculator**: hold-period projection with terminal sale, IRR
- **NOIMultipleCalculator**: NOI x adjusted multiple, floored at 5.0x
- **ComparableSalesCalculator**: similarity-weighted comparable sales
- **ReplacementCostCalculator**: depreciated cost approach
- **ValuationEngine**: weighted reconciliation with outlier trimming
"""

from .base import (
    BaseMethodCalculator,
    ValuationAdjustment,
    ValuationInput,
    ValuationMethod,
)
from .cap_rate import CapRateCalculator, CapRateTable, default_cap_rate_tables
from .comparable_sales import (
    AdjustedComparable,
    ComparableAdjustmentRates,
    ComparableSalesCalculator,
    ComparableSalesSettings,
    ScoredComparable,
)
from .dcf import DCFCalculator, DCFProjectionYear, DCFResult, DCFSettings
from .engine import (
    CapRatePoint,
    NOIChangePoint,
    OccupancyPoint,
    ReconciliationResult,
    SensitivityCurves,
    ValuationEngine,
    ValuationEngineOutput,
    ValuationResult,
    build_calculators,
    create_valuation_engine,
)
from .helpers import Bracket, assess_market_strength, lookup_bracket
from .metrics import InvestmentMetrics
from .noi_multiple import (
    NOIMultipleCalculator,
    NOIMultipleTable,
    NOIStabilityAdjustment,
    default_noi_multiple_tables,
)
from .price_per_bed import (
    MarketPriceRange,
    PricePerBedCalculator,
    PricePerBedTable,
    default_price_per_bed_tables,
)
from .replacement_cost import (
    ReplacementCostBreakdown,
    ReplacementCostCalculator,
    ReplacementCostTable,
    default_replacement_cost_tables,
)
from .settings import ValuationSettings

__all__ = [
    # Base
    "BaseMethodCalculator",
    "ValuationAdjustment",
    "ValuationInput",
    "ValuationMethod",
    # Helpers
    "Bracket",
    "assess_market_strength",
    "lookup_bracket",
    "InvestmentMetrics",
    # Calculators
    "CapRateCalculator",
    "CapRateTable",
    "default_cap_rate_tables",
    "PricePerBedCalculator",
    "PricePerBedTable",
    "MarketPriceRange",
    "default_price_per_bed_tables",
    "DCFCalculator",
    "DCFSettings",
    "DCFResult",
    "DCFProjectionYear",
    "NOIMultipleCalculator",
    "NOIMultipleTable",
    "NOIStabilityAdjustment",
    "default_noi_multiple_tables",
    "ComparableSalesCalculator",
    "ComparableSalesSettings",
    "ComparableAdjustmentRates",
    "ScoredComparable",
    "AdjustedComparable",
    "ReplacementCostCalculator",
    "ReplacementCostTable",
    "ReplacementCostBreakdown",
    "default_replacement_cost_tables",
    # Engine
    "ValuationSettings",
    "ValuationEngine",
    "ValuationEngineOutput",
    "ValuationResult",
    "ReconciliationResult",
    "SensitivityCurves",
    "CapRatePoint",
    "OccupancyPoint",
    "NOIChangePoint",
    "build_calculators",
    "create_valuation_engine",
]
