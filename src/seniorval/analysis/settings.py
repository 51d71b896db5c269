# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pydantic import Field

from ..core.primitives import (
    InteractiveSettings,
    Model,
    NormalizationSettings,
    RecalculationSettings,
    RiskSettings,
)
from ..valuation import ValuationSettings


class UnderwritingSettings(Model):
    """
    Top-level configuration for a complete underwriting setup.

    Every branch has defaults, so `UnderwritingSettings()` configures the
    standard engines. Nothing is read from the environment.

    Example:
        ```python
        settings = UnderwritingSettings(
            risk=RiskSettings(max_key_risks=3),
            interactive=InteractiveSettings(debounce_ms=100, max_wait_ms=400),
        )
        orchestrator = create_orchestrator(settings)
        ```
    """

    valuation: ValuationSettings = Field(default_factory=ValuationSettings)
    risk: RiskSettings = Field(default_factory=RiskSettings)
    recalculation: RecalculationSettings = Field(default_factory=RecalculationSettings)
    interactive: InteractiveSettings = Field(default_factory=InteractiveSettings)
    normalization: NormalizationSettings = Field(default_factory=NormalizationSettings)
