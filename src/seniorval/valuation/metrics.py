# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Investment Metrics - Discounting and Return Calculations

Periodic (annual) NPV, Newton-Raphson IRR and equity multiple used by the
DCF method and anything else that needs a return on a cash-flow vector.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from pyxirr import npv


class InvestmentMetrics:
    """
    Annual-period investment metrics.

    Cash flow vectors are ordered from period 0; the first entry is not
    discounted.
    """

    IRR_GUESS = 0.1
    IRR_MAX_ITERATIONS = 100
    NPV_TOLERANCE = 1e-4
    DERIVATIVE_TOLERANCE = 1e-10
    STEP_TOLERANCE = 1e-7

    @staticmethod
    def npv(rate: float, cash_flows: Sequence[float]) -> float:
        """Net present value at a periodic rate, period 0 undiscounted."""
        return float(npv(rate, list(cash_flows)))

    @staticmethod
    def npv_derivative(rate: float, cash_flows: Sequence[float]) -> float:
        """d(NPV)/d(rate) for an annual cash flow vector."""
        flows = np.asarray(cash_flows, dtype=float)
        periods = np.arange(len(flows))
        return float(np.sum(-periods * flows / np.power(1 + rate, periods + 1)))

    @classmethod
    def irr(cls, cash_flows: Sequence[float], guess: float = IRR_GUESS) -> float:
        """
        Internal rate of return by Newton-Raphson.

        Iterates from `guess` for at most 100 steps, stopping once |NPV| is
        below 1e-4, the derivative vanishes, or the step falls below 1e-7.
        Returns the last iterate when the solver does not converge.

        Example:
            ```python
            InvestmentMetrics.irr([-1000, 1100])  # ~0.10
            ```
        """
        rate = guess
        for _ in range(cls.IRR_MAX_ITERATIONS):
            value = cls.npv(rate, cash_flows)
            if abs(value) < cls.NPV_TOLERANCE:
                return rate

            derivative = cls.npv_derivative(rate, cash_flows)
            if abs(derivative) < cls.DERIVATIVE_TOLERANCE:
                break

            next_rate = rate - value / derivative
            if next_rate <= -1:
                break
            if abs(next_rate - rate) < cls.STEP_TOLERANCE:
                return next_rate
            rate = next_rate
        return rate

    @staticmethod
    def equity_multiple(invested: float, cash_returned: Sequence[float]) -> float:
        """Total nominal cash returned divided by the initial investment."""
        if invested <= 0:
            return 0.0
        return float(sum(cash_returned)) / invested
