# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Seniorval Core Primitives

Essential building blocks shared by every engine: the immutable base model,
constrained numeric types, closed vocabularies and engine settings.
"""

from .enums import (
    AcuityLevelEnum,
    AnalysisStageEnum,
    AssetTypeEnum,
    ConfidenceLevel,
    DistributionKindEnum,
    ExpenseCategoryEnum,
    LocationTypeEnum,
    MarketStrengthEnum,
    OccupancyTrendEnum,
    OwnershipTypeEnum,
    ParameterSourceEnum,
    PeriodTypeEnum,
    ReconciliationMethodEnum,
    RecommendationEnum,
    ReformRiskEnum,
    RegionEnum,
    RevenueCategoryEnum,
    RiskCategoryEnum,
    RiskRatingEnum,
    SeverityEnum,
    ValuationMethodKind,
)
from .model import Model
from .settings import (
    EnabledMethods,
    InteractiveSettings,
    MethodWeights,
    NormalizationSettings,
    RecalculationSettings,
    ReconciliationSettings,
    RiskCategoryWeights,
    RiskRatingThresholds,
    RiskSettings,
)
from .types import (
    FloatBetween0And1,
    Percent,
    PositiveFloat,
    PositiveInt,
    RiskScore,
    StarRating,
)

__all__ = [
    # Base model
    "Model",
    # Types
    "FloatBetween0And1",
    "Percent",
    "PositiveFloat",
    "PositiveInt",
    "RiskScore",
    "StarRating",
    # Enums
    "AcuityLevelEnum",
    "AnalysisStageEnum",
    "AssetTypeEnum",
    "ConfidenceLevel",
    "DistributionKindEnum",
    "ExpenseCategoryEnum",
    "LocationTypeEnum",
    "MarketStrengthEnum",
    "OccupancyTrendEnum",
    "OwnershipTypeEnum",
    "ParameterSourceEnum",
    "PeriodTypeEnum",
    "ReconciliationMethodEnum",
    "RecommendationEnum",
    "ReformRiskEnum",
    "RegionEnum",
    "RevenueCategoryEnum",
    "RiskCategoryEnum",
    "RiskRatingEnum",
    "SeverityEnum",
    "ValuationMethodKind",
    # Settings
    "EnabledMethods",
    "InteractiveSettings",
    "MethodWeights",
    "NormalizationSettings",
    "RecalculationSettings",
    "ReconciliationSettings",
    "RiskCategoryWeights",
    "RiskRatingThresholds",
    "RiskSettings",
]
