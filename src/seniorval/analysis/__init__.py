# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Seniorval Analysis Layer

Deal-level orchestration plus the interactive recalculation stack:
parameter paths, override storage and resolution, cached recalculation with
sensitivity / tornado / scenario / Monte Carlo tooling, and debounced
slider-driven calculators.
"""

from .api import analyze, quick_risk_assessment, quick_valuation
from .interactive import (
    CalculatorCallbacks,
    CalculatorState,
    DebouncedCalculator,
    SliderCalculator,
    SliderConfig,
    SliderState,
)
from .orchestrator import (
    AnalysisInput,
    AnalysisOrchestrator,
    AnalysisProgress,
    DealAnalysis,
    DocumentExtractor,
    ExtractedData,
    ExtractedDocument,
    KeyMetrics,
    create_orchestrator,
)
from .parameters import ParameterOverrideInput, ParameterPath
from .recalculation import (
    CancellationToken,
    DistributionSpec,
    HistogramBucket,
    MonteCarloResult,
    RecalculationCache,
    RecalculationEngine,
    RecalculationResult,
    Scenario,
    ScenarioComparison,
    ScenarioResult,
    SensitivityAnalysis,
    SensitivityPoint,
    TornadoBar,
    TornadoRange,
    create_recalculation_engine,
)
from .resolver import ParameterResolver, ParameterSource, ResolvedParameters, deep_merge
from .settings import UnderwritingSettings
from .store import AlgorithmPreset, InMemoryOverrideStore, OverrideStore, StoredOverride

__all__ = [
    # Main API functions
    "analyze",
    "quick_risk_assessment",
    "quick_valuation",
    # Orchestration
    "AnalysisInput",
    "AnalysisOrchestrator",
    "AnalysisProgress",
    "DealAnalysis",
    "DocumentExtractor",
    "ExtractedData",
    "ExtractedDocument",
    "KeyMetrics",
    "UnderwritingSettings",
    "create_orchestrator",
    # Parameters and overrides
    "AlgorithmPreset",
    "InMemoryOverrideStore",
    "OverrideStore",
    "ParameterOverrideInput",
    "ParameterPath",
    "ParameterResolver",
    "ParameterSource",
    "ResolvedParameters",
    "StoredOverride",
    "deep_merge",
    # Recalculation
    "CancellationToken",
    "DistributionSpec",
    "HistogramBucket",
    "MonteCarloResult",
    "RecalculationCache",
    "RecalculationEngine",
    "RecalculationResult",
    "Scenario",
    "ScenarioComparison",
    "ScenarioResult",
    "SensitivityAnalysis",
    "SensitivityPoint",
    "TornadoBar",
    "TornadoRange",
    "create_recalculation_engine",
    # Interactive
    "CalculatorCallbacks",
    "CalculatorState",
    "DebouncedCalculator",
    "SliderCalculator",
    "SliderConfig",
    "SliderState",
]
