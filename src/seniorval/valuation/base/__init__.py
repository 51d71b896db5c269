# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from .method import (
    BaseMethodCalculator,
    ValuationAdjustment,
    ValuationInput,
    ValuationMethod,
)

__all__ = [
    "BaseMethodCalculator",
    "ValuationAdjustment",
    "ValuationInput",
    "ValuationMethod",
]
