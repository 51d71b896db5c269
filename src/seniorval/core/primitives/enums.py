# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from enum import Enum
from typing import FrozenSet


class AssetTypeEnum(str, Enum):
    """Senior housing asset classes. Each carries its own valuation tables."""

    SNF = "SNF"  # Skilled nursing facility
    ALF = "ALF"  # Assisted living facility
    ILF = "ILF"  # Independent living facility


class LocationTypeEnum(str, Enum):
    """Location classification used by cap rate, price per bed and land value tables."""

    URBAN = "urban"
    SUBURBAN = "suburban"
    RURAL = "rural"
    FRONTIER = "frontier"


class RegionEnum(str, Enum):
    """Five-way US region classification."""

    WEST = "west"
    MIDWEST = "midwest"
    NORTHEAST = "northeast"
    SOUTHEAST = "southeast"
    SOUTHWEST = "southwest"


class OwnershipTypeEnum(str, Enum):
    FOR_PROFIT = "for_profit"
    NONPROFIT = "nonprofit"
    GOVERNMENT = "government"


class OccupancyTrendEnum(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class AcuityLevelEnum(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class PeriodTypeEnum(str, Enum):
    """Reporting period covered by a financial statement."""

    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    TRAILING_12 = "trailing_12"


class RevenueCategoryEnum(str, Enum):
    """Standard revenue chart-of-accounts categories."""

    MEDICARE_PART_A = "medicare_part_a"
    MEDICARE_PART_B = "medicare_part_b"
    MEDICARE_ADVANTAGE = "medicare_advantage"
    MEDICAID = "medicaid"
    MEDICAID_QUALITY_ADDON = "medicaid_quality_addon"
    PRIVATE_PAY = "private_pay"
    MANAGED_CARE = "managed_care"
    VA_CONTRACT = "va_contract"
    HOSPICE = "hospice"
    RESPITE = "respite"
    THERAPY_ANCILLARY = "therapy_ancillary"
    PHARMACY_ANCILLARY = "pharmacy_ancillary"
    OTHER_ANCILLARY = "other_ancillary"
    OTHER_REVENUE = "other_revenue"


class ExpenseCategoryEnum(str, Enum):
    """Standard expense chart-of-accounts categories."""

    NURSING_SALARIES = "nursing_salaries"
    NURSING_WAGES = "nursing_wages"
    AGENCY_NURSING = "agency_nursing"
    OTHER_SALARIES = "other_salaries"
    EMPLOYEE_BENEFITS = "employee_benefits"
    PAYROLL_TAXES = "payroll_taxes"
    DIETARY = "dietary"
    HOUSEKEEPING = "housekeeping"
    LAUNDRY = "laundry"
    ACTIVITIES = "activities"
    SOCIAL_SERVICES = "social_services"
    MEDICAL_SUPPLIES = "medical_supplies"
    GENERAL_SUPPLIES = "general_supplies"
    UTILITIES = "utilities"
    TELEPHONE = "telephone"
    INSURANCE_LIABILITY = "insurance_liability"
    INSURANCE_PROPERTY = "insurance_property"
    INSURANCE_WORKERS_COMP = "insurance_workers_comp"
    PROPERTY_TAX = "property_tax"
    MANAGEMENT_FEE = "management_fee"
    MARKETING = "marketing"
    MAINTENANCE_REPAIRS = "maintenance_repairs"
    ADMINISTRATION = "administration"
    PROFESSIONAL_FEES = "professional_fees"
    TECHNOLOGY = "technology"
    BAD_DEBT = "bad_debt"
    RENT = "rent"
    DEPRECIATION = "depreciation"
    AMORTIZATION = "amortization"
    INTEREST = "interest"
    OTHER_EXPENSE = "other_expense"

    @classmethod
    def labor_categories(cls) -> FrozenSet["ExpenseCategoryEnum"]:
        """Categories that roll up into total labor expense."""
        return frozenset(
            {
                cls.NURSING_SALARIES,
                cls.NURSING_WAGES,
                cls.AGENCY_NURSING,
                cls.OTHER_SALARIES,
                cls.EMPLOYEE_BENEFITS,
                cls.PAYROLL_TAXES,
            }
        )

    @classmethod
    def non_operating_categories(cls) -> FrozenSet["ExpenseCategoryEnum"]:
        """Below-the-line categories excluded from operating expense (and NOI)."""
        return frozenset({cls.DEPRECIATION, cls.AMORTIZATION, cls.INTEREST})


class ConfidenceLevel(str, Enum):
    """Confidence label attached to a valuation method or result."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MarketStrengthEnum(str, Enum):
    STRONG = "strong"
    AVERAGE = "average"
    WEAK = "weak"


class ValuationMethodKind(str, Enum):
    """The six independent valuation approaches."""

    CAP_RATE = "cap_rate"
    PRICE_PER_BED = "price_per_bed"
    DCF = "dcf"
    NOI_MULTIPLE = "noi_multiple"
    COMPARABLE_SALES = "comparable_sales"
    REPLACEMENT_COST = "replacement_cost"


class ReconciliationMethodEnum(str, Enum):
    """How method values are combined into one reconciled value."""

    WEIGHTED_AVERAGE = "weighted_average"
    MEDIAN = "median"
    MODE_ADJUSTED = "mode_adjusted"
    NONE = "none"  # Only reported when no method produced a value


class RiskCategoryEnum(str, Enum):
    REGULATORY = "regulatory"
    OPERATIONAL = "operational"
    FINANCIAL = "financial"
    MARKET = "market"
    REPUTATIONAL = "reputational"
    LEGAL = "legal"
    ENVIRONMENTAL = "environmental"
    TECHNOLOGY = "technology"


class SeverityEnum(str, Enum):
    """Severity tier of a single risk factor."""

    CRITICAL = "critical"
    HIGH = "high"
    ELEVATED = "elevated"
    MODERATE = "moderate"
    LOW = "low"


class RiskRatingEnum(str, Enum):
    """Overall risk rating; one tier finer than factor severity."""

    CRITICAL = "critical"
    HIGH = "high"
    ELEVATED = "elevated"
    MODERATE = "moderate"
    LOW = "low"
    VERY_LOW = "very_low"


class RecommendationEnum(str, Enum):
    PURSUE = "pursue"
    CONDITIONAL = "conditional"
    PASS = "pass"


class ReformRiskEnum(str, Enum):
    """Likelihood that a state's Certificate of Need regime is reformed."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class ParameterSourceEnum(str, Enum):
    """Provenance of an effective parameter value."""

    GLOBAL = "global"
    PRESET = "preset"
    DEAL_OVERRIDE = "deal_override"
    USER_INPUT = "user_input"


class DistributionKindEnum(str, Enum):
    """Sampling distributions supported by Monte Carlo simulation."""

    UNIFORM = "uniform"
    NORMAL = "normal"
    TRIANGULAR = "triangular"


class AnalysisStageEnum(str, Enum):
    """Progress stages reported by the analysis orchestrator."""

    INITIALIZING = "initializing"
    EXTRACTING = "extracting"
    NORMALIZING = "normalizing"
    ANALYZING = "analyzing"
    VALUATING = "valuating"
    SYNTHESIZING = "synthesizing"
    COMPLETE = "complete"
    ERROR = "error"
