# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Valuation settings: method weights, toggles, reconciliation rules and the
per-asset-type tables consumed by each calculator.
"""

from __future__ import annotations

from typing import Dict

from pydantic import Field

from ..core.primitives import (
    AssetTypeEnum,
    EnabledMethods,
    MethodWeights,
    Model,
    ReconciliationSettings,
)
from .cap_rate import CapRateTable, default_cap_rate_tables
from .comparable_sales import ComparableSalesSettings
from .dcf import DCFSettings
from .noi_multiple import NOIMultipleTable, default_noi_multiple_tables
from .price_per_bed import PricePerBedTable, default_price_per_bed_tables
from .replacement_cost import ReplacementCostTable, default_replacement_cost_tables


class ValuationSettings(Model):
    """
    Complete configuration of the valuation engine.

    Every field has a market default, so `ValuationSettings()` is a usable
    configuration. Changes are made with `model_copy(update=...)` or through
    `seniorval.analysis.ParameterPath` setters.

    Example:
        ```python
        settings = ValuationSettings()
        conservative = settings.model_copy(
            update={"dcf": settings.dcf.model_copy(update={"discount_rate": 0.11})}
        )
        ```
    """

    # === RECONCILIATION ===
    weights: MethodWeights = Field(default_factory=MethodWeights)
    enabled: EnabledMethods = Field(default_factory=EnabledMethods)
    reconciliation: ReconciliationSettings = Field(default_factory=ReconciliationSettings)

    # === METHOD TABLES ===
    cap_rate: Dict[AssetTypeEnum, CapRateTable] = Field(default_factory=default_cap_rate_tables)
    price_per_bed: Dict[AssetTypeEnum, PricePerBedTable] = Field(
        default_factory=default_price_per_bed_tables
    )
    dcf: DCFSettings = Field(default_factory=DCFSettings)
    noi_multiple: Dict[AssetTypeEnum, NOIMultipleTable] = Field(
        default_factory=default_noi_multiple_tables
    )
    comparable_sales: ComparableSalesSettings = Field(default_factory=ComparableSalesSettings)
    replacement_cost: Dict[AssetTypeEnum, ReplacementCostTable] = Field(
        default_factory=default_replacement_cost_tables
    )
