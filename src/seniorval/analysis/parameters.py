# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Settable Parameter Paths

`ParameterPath` is the closed set of valuation settings leaves that a deal
override, preset or interactive control may change. Each member maps to a
typed getter and setter over `ValuationSettings`:

- Global leaves (`weights.*`, `enabled.*`, `reconciliation.*`, `dcf.*`,
  `comparable_sales.*`) live directly on the settings tree.
- Asset-typed leaves (`cap_rate.*`, `price_per_bed.*`, `noi_multiple.*`,
  `replacement_cost.*`) live in the per-asset-type table selected by the
  facility being valued.

Setters never mutate; they validate the new value through the owning model
and return a new `ValuationSettings`.

Example:
    ```python
    path = ParameterPath.parse("dcf.discount_rate")
    settings = path.set(ValuationSettings(), AssetTypeEnum.SNF, 0.11)
    path.get(settings, AssetTypeEnum.SNF)  # 0.11
    ```
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from ..core.exceptions import UnknownParameterError
from ..core.primitives import AssetTypeEnum, Model
from ..valuation import ValuationSettings

# Sections whose tables are keyed by asset type
ASSET_TYPED_SECTIONS = frozenset({"cap_rate", "price_per_bed", "noi_multiple", "replacement_cost"})


class ParameterPath(str, Enum):
    """Every valuation settings leaf that can be overridden."""

    # === METHOD WEIGHTS ===
    WEIGHT_CAP_RATE = "weights.cap_rate"
    WEIGHT_PRICE_PER_BED = "weights.price_per_bed"
    WEIGHT_DCF = "weights.dcf"
    WEIGHT_NOI_MULTIPLE = "weights.noi_multiple"
    WEIGHT_COMPARABLE_SALES = "weights.comparable_sales"
    WEIGHT_REPLACEMENT_COST = "weights.replacement_cost"

    # === METHOD TOGGLES ===
    ENABLED_CAP_RATE = "enabled.cap_rate"
    ENABLED_PRICE_PER_BED = "enabled.price_per_bed"
    ENABLED_DCF = "enabled.dcf"
    ENABLED_NOI_MULTIPLE = "enabled.noi_multiple"
    ENABLED_COMPARABLE_SALES = "enabled.comparable_sales"
    ENABLED_REPLACEMENT_COST = "enabled.replacement_cost"

    # === RECONCILIATION ===
    RECONCILIATION_METHOD = "reconciliation.method"
    RECONCILIATION_TRIM_OUTLIERS = "reconciliation.trim_outliers"
    RECONCILIATION_OUTLIER_THRESHOLD = "reconciliation.outlier_threshold"
    RECONCILIATION_CONFIDENCE_WEIGHTING = "reconciliation.confidence_weighting"

    # === DCF ===
    DCF_HOLD_PERIOD = "dcf.hold_period"
    DCF_DISCOUNT_RATE = "dcf.discount_rate"
    DCF_EXIT_CAP_RATE = "dcf.exit_cap_rate"
    DCF_REVENUE_GROWTH_RATE = "dcf.revenue_growth_rate"
    DCF_EXPENSE_GROWTH_RATE = "dcf.expense_growth_rate"
    DCF_NOI_GROWTH_RATE = "dcf.noi_growth_rate"
    DCF_CURRENT_OCCUPANCY = "dcf.current_occupancy"
    DCF_STABILIZED_OCCUPANCY = "dcf.stabilized_occupancy"
    DCF_YEARS_TO_STABILIZE = "dcf.years_to_stabilize"
    DCF_ANNUAL_CAPEX_PERCENT = "dcf.annual_capex_percent"
    DCF_INITIAL_CAPEX = "dcf.initial_capex"
    DCF_EXIT_COST_PERCENT = "dcf.exit_cost_percent"

    # === COMPARABLE SALES ===
    COMPS_MAX_AGE_DAYS = "comparable_sales.max_age_days"
    COMPS_MAX_DISTANCE_MILES = "comparable_sales.max_distance_miles"
    COMPS_MIN_COMPARABLES = "comparable_sales.min_comparables"
    COMPS_MAX_COMPARABLES = "comparable_sales.max_comparables"
    COMPS_DISTANCE_WEIGHT = "comparable_sales.distance_weight"
    COMPS_RECENCY_WEIGHT = "comparable_sales.recency_weight"
    COMPS_SIZE_WEIGHT = "comparable_sales.size_weight"
    COMPS_QUALITY_WEIGHT = "comparable_sales.quality_weight"

    # === ASSET-TYPED TABLES ===
    CAP_RATE_BASE = "cap_rate.base_cap_rate"
    PRICE_PER_BED_BASE = "price_per_bed.base_price_per_bed"
    NOI_MULTIPLE_BASE = "noi_multiple.base_multiple"
    REPLACEMENT_COST_PER_SF = "replacement_cost.construction_cost_per_sf"
    REPLACEMENT_USEFUL_LIFE = "replacement_cost.useful_life"
    REPLACEMENT_RESIDUAL_VALUE_PERCENT = "replacement_cost.residual_value_percent"
    REPLACEMENT_SOFT_COST_PERCENT = "replacement_cost.soft_cost_percent"
    REPLACEMENT_FFE_COST_PER_BED = "replacement_cost.ffe_cost_per_bed"
    REPLACEMENT_ENTREPRENEURIAL_INCENTIVE = "replacement_cost.entrepreneurial_incentive"
    REPLACEMENT_ACRES_PER_BED = "replacement_cost.default_acres_per_bed"

    # === PARSING ===

    @classmethod
    def parse(cls, value: "str | ParameterPath", strict: bool = False) -> Optional["ParameterPath"]:
        """
        Convert a dotted string to a path.

        Returns None for an unknown path, or raises `UnknownParameterError`
        when `strict` is set.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            if strict:
                raise UnknownParameterError(str(value)) from None
            return None

    # === STRUCTURE ===

    @property
    def section(self) -> str:
        """Top-level settings field, also the override store category."""
        return self.value.split(".", 1)[0]

    @property
    def leaf(self) -> str:
        """Field name within the section, also the override store key."""
        return self.value.split(".", 1)[1]

    @property
    def is_asset_typed(self) -> bool:
        return self.section in ASSET_TYPED_SECTIONS

    # === ACCESS ===

    def get(self, settings: ValuationSettings, asset_type: AssetTypeEnum) -> Any:
        """Current value of this leaf for the given asset type."""
        return getattr(self._owner(settings, asset_type), self.leaf)

    def set(
        self, settings: ValuationSettings, asset_type: AssetTypeEnum, value: Any
    ) -> ValuationSettings:
        """
        Return settings with this leaf replaced.

        The owning model is re-validated, so an out-of-range or wrongly
        typed value raises `pydantic.ValidationError`.
        """
        owner = self._owner(settings, asset_type)
        updated = owner.validated_copy(**{self.leaf: value})

        if not self.is_asset_typed:
            return settings.model_copy(update={self.section: updated})
        tables = dict(getattr(settings, self.section))
        tables[asset_type] = updated
        return settings.model_copy(update={self.section: tables})

    def _owner(self, settings: ValuationSettings, asset_type: AssetTypeEnum) -> Model:
        section = getattr(settings, self.section)
        if not self.is_asset_typed:
            return section
        if asset_type not in section:
            raise KeyError(f"No {self.section} table for asset type {asset_type.value}")
        return section[asset_type]


class ParameterOverrideInput(Model):
    """A requested change to one parameter, persisted or session-only."""

    parameter: str = Field(..., description="Dotted parameter path, e.g. 'dcf.discount_rate'")
    value: Any = Field(..., description="New value for the leaf")
    reason: Optional[str] = Field(default=None, description="Why the override was made")

    @field_validator("parameter", mode="before")
    @classmethod
    def path_to_string(cls, value: Any) -> Any:
        return value.value if isinstance(value, ParameterPath) else value

    @property
    def path(self) -> Optional[ParameterPath]:
        return ParameterPath.parse(self.parameter)
