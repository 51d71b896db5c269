# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Core building blocks for seniorval.
"""

from .exceptions import (
    CalculationCancelledError,
    PresetNotFoundError,
    UnderwritingError,
    UnknownParameterError,
)

__all__ = [
    "CalculationCancelledError",
    "PresetNotFoundError",
    "UnderwritingError",
    "UnknownParameterError",
]
