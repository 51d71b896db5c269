# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Domain exceptions.

Missing or partial input data is never an error in this library; these
exceptions cover configuration mistakes and caller-requested interruption.
"""

from __future__ import annotations


class UnderwritingError(Exception):
    """Base class for all seniorval errors."""


class UnknownParameterError(UnderwritingError, ValueError):
    """Raised in strict mode when a parameter path is not a settable leaf."""

    def __init__(self, parameter: str):
        self.parameter = parameter
        super().__init__(f"Unknown parameter path: '{parameter}'")


class PresetNotFoundError(UnderwritingError, KeyError):
    """Raised when a preset id does not exist in the override store."""


class CalculationCancelledError(UnderwritingError, RuntimeError):
    """Raised when a long-running analysis observes a cancelled token."""

    def __init__(self, completed: int, requested: int):
        self.completed = completed
        self.requested = requested
        super().__init__(
            f"Calculation cancelled after {completed} of {requested} evaluations"
        )
