# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Shared lookup and scoring helpers for the valuation calculators.
"""

from __future__ import annotations

import math
from typing import Dict, Sequence

from pydantic import ConfigDict

from ..core.primitives import ConfidenceLevel, MarketStrengthEnum, Model
from ..facility import MarketData


class Bracket(Model):
    """
    A half-open range [min_value, max_value) mapped to an adjustment.

    Example:
        ```python
        Bracket(min_value=0, max_value=50, value=0.01)  # under 50 beds: +100 bps
        ```
    """

    model_config = ConfigDict(ser_json_inf_nan="constants")  # keep math.inf in mode="json" dumps

    min_value: float
    max_value: float = math.inf
    value: float


def lookup_bracket(brackets: Sequence[Bracket], value: float, default: float = 0.0) -> float:
    """
    Return the adjustment of the first bracket containing `value`.

    Args:
        brackets: Candidate brackets, checked in order
        value: Value to classify
        default: Returned when no bracket matches

    Returns:
        The matching bracket's value, or `default`
    """
    for bracket in brackets:
        if bracket.min_value <= value < bracket.max_value:
            return bracket.value
    return default


def lookup_quality(table: Dict[int, float], stars: float, default: float = 0.0) -> float:
    """Adjustment for a CMS star rating, rounding fractional ratings."""
    return table.get(int(round(stars)), default)


def assess_market_strength(market: MarketData) -> MarketStrengthEnum:
    """
    Three-tier market strength from occupancy, demand and supply.

    Points: occupancy > 88% +2 (> 82% +1); demand growth > 3% +2 (> 1% +1);
    supply growth < 1% +1 (> 3% -1). Four or more points is strong, two or
    more average, else weak.
    """
    score = 0
    if market.market_occupancy > 0.88:
        score += 2
    elif market.market_occupancy > 0.82:
        score += 1

    if market.demand_growth_rate > 0.03:
        score += 2
    elif market.demand_growth_rate > 0.01:
        score += 1

    if market.supply_growth_rate < 0.01:
        score += 1
    elif market.supply_growth_rate > 0.03:
        score -= 1

    if score >= 4:
        return MarketStrengthEnum.STRONG
    if score >= 2:
        return MarketStrengthEnum.AVERAGE
    return MarketStrengthEnum.WEAK


def label_confidence(score: float, high: float, medium: float) -> ConfidenceLevel:
    """Threshold a confidence point score into high / medium / low."""
    if score >= high:
        return ConfidenceLevel.HIGH
    if score >= medium:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def brackets(*rows: tuple) -> list:
    """
    Build contiguous brackets from (upper_bound, value) rows.

    The first bracket starts at 0; each following bracket starts where the
    previous one ends. Use `math.inf` as the last upper bound.
    """
    result = []
    lower = 0.0
    for upper, value in rows:
        result.append(Bracket(min_value=lower, max_value=upper, value=value))
        lower = upper
    return result
