# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
NOI Multiple Valuation

Value = NOI x adjusted multiple, with additive multiple adjustments and a
5.0x floor.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Tuple

from pydantic import Field

from ..core.primitives import (
    AssetTypeEnum,
    ConfidenceLevel,
    MarketStrengthEnum,
    Model,
    PositiveFloat,
    ValuationMethodKind,
)
from .base import BaseMethodCalculator, ValuationAdjustment, ValuationInput, ValuationMethod
from .helpers import (
    Bracket,
    assess_market_strength,
    brackets,
    label_confidence,
    lookup_bracket,
    lookup_quality,
)

logger = logging.getLogger(__name__)

MULTIPLE_FLOOR = 5.0


class NOIStabilityAdjustment(Model):
    """Bonus when normalization barely moved NOI, penalty otherwise."""

    stable_threshold: PositiveFloat = 0.05
    bonus: float = 0.5
    penalty: float = -1.0


class NOIMultipleTable(Model):
    base_multiple: PositiveFloat
    quality: Optional[Dict[int, float]] = None
    size: Optional[List[Bracket]] = None
    occupancy: Optional[List[Bracket]] = None
    noi_stability: Optional[NOIStabilityAdjustment] = None
    market: Optional[Dict[MarketStrengthEnum, float]] = None


def default_noi_multiple_tables() -> Dict[AssetTypeEnum, NOIMultipleTable]:
    return {
        AssetTypeEnum.SNF: NOIMultipleTable(
            base_multiple=10.0,
            quality={5: 2.0, 4: 1.0, 3: 0.0, 2: -1.0, 1: -2.0},
            size=brackets((60, -1.0), (100, -0.5), (150, 0.0), (200, 0.5), (math.inf, 1.0)),
            occupancy=brackets(
                (0.75, -2.0), (0.80, -1.0), (0.85, -0.5), (0.90, 0.0), (0.95, 0.5), (math.inf, 1.0)
            ),
            noi_stability=NOIStabilityAdjustment(),
            market={
                MarketStrengthEnum.STRONG: 1.0,
                MarketStrengthEnum.AVERAGE: 0.0,
                MarketStrengthEnum.WEAK: -1.0,
            },
        ),
        AssetTypeEnum.ALF: NOIMultipleTable(
            base_multiple=14.0,
            size=brackets((40, -1.5), (80, -0.5), (120, 0.0), (math.inf, 0.5)),
            occupancy=brackets((0.85, -1.0), (0.90, 0.0), (0.95, 0.5), (math.inf, 1.0)),
            market={
                MarketStrengthEnum.STRONG: 1.5,
                MarketStrengthEnum.AVERAGE: 0.0,
                MarketStrengthEnum.WEAK: -1.5,
            },
        ),
        AssetTypeEnum.ILF: NOIMultipleTable(
            base_multiple=16.0,
            size=brackets((75, -1.0), (150, 0.0), (math.inf, 0.5)),
            occupancy=brackets((0.90, -0.5), (0.95, 0.0), (math.inf, 0.5)),
            market={
                MarketStrengthEnum.STRONG: 1.0,
                MarketStrengthEnum.AVERAGE: 0.0,
                MarketStrengthEnum.WEAK: -1.0,
            },
        ),
    }


class NOIMultipleCalculator(BaseMethodCalculator):
    tables: Dict[AssetTypeEnum, NOIMultipleTable] = Field(
        default_factory=default_noi_multiple_tables
    )
    weight: float = 0.15

    @property
    def kind(self) -> ValuationMethodKind:
        return ValuationMethodKind.NOI_MULTIPLE

    def calculate(self, input: ValuationInput) -> ValuationMethod:
        table = self.tables[input.facility.asset_type]
        noi = input.noi
        multiple, adjustments = self.adjusted_multiple(table, input)
        value = noi * multiple

        return ValuationMethod(
            name=self.kind,
            value=value,
            confidence=self._confidence(input),
            weight=self.weight,
            inputs={
                "noi": noi,
                "base_multiple": table.base_multiple,
                "adjusted_multiple": multiple,
                "implied_cap_rate": noi / value if noi > 0 else 0.0,
            },
            adjustments=adjustments,
        )

    def adjusted_multiple(
        self, table: NOIMultipleTable, input: ValuationInput
    ) -> Tuple[float, List[ValuationAdjustment]]:
        deltas: List[Tuple[str, float]] = []

        if table.quality is not None and input.cms_data is not None:
            stars = input.cms_data.overall_rating
            deltas.append((f"CMS {stars}-star rating", lookup_quality(table.quality, stars)))

        if table.size is not None:
            deltas.append(
                (f"{input.beds} beds (size factor)", lookup_bracket(table.size, input.beds))
            )

        if table.occupancy is not None and input.operating_metrics is not None:
            occupancy = input.operating_metrics.occupancy_rate / 100
            deltas.append(
                (f"{occupancy * 100:.1f}% occupancy", lookup_bracket(table.occupancy, occupancy))
            )

        if table.noi_stability is not None:
            stability = self._noi_stability(table.noi_stability, input)
            if stability is not None:
                deltas.append(stability)

        if table.market is not None and input.market_data is not None:
            strength = assess_market_strength(input.market_data)
            deltas.append((f"{strength.value} market conditions", table.market.get(strength, 0.0)))

        multiple = table.base_multiple
        adjustments = []
        for description, delta in deltas:
            if delta != 0:
                multiple += delta
                adjustments.append(ValuationAdjustment(description=description, impact=delta))

        if multiple < MULTIPLE_FLOOR:
            logger.debug(f"NOI multiple {multiple:.2f}x floored at {MULTIPLE_FLOOR:.1f}x")
            multiple = MULTIPLE_FLOOR
        return multiple, adjustments

    @staticmethod
    def _noi_stability(
        rule: NOIStabilityAdjustment, input: ValuationInput
    ) -> Optional[Tuple[str, float]]:
        if input.financials is None:
            return None
        original = input.financials.original.noi
        if original == 0:
            return None
        variance = abs(input.financials.normalized.noi - original) / abs(original)
        if variance <= rule.stable_threshold:
            return f"Stable NOI ({variance * 100:.1f}% normalization change)", rule.bonus
        return f"Unstable NOI ({variance * 100:.1f}% normalization change)", rule.penalty

    def _confidence(self, input: ValuationInput) -> ConfidenceLevel:
        score = 0
        if input.noi > 0:
            score += 2
        if input.cms_data is not None:
            score += 2
        if input.operating_metrics is not None:
            score += 1
        if input.market_data is not None:
            score += 1
        if input.noi < 0:
            score -= 2
        return label_confidence(score, high=4, medium=2)

    @staticmethod
    def cap_rate_to_multiple(cap_rate: float) -> float:
        return 1 / cap_rate

    @staticmethod
    def multiple_to_cap_rate(multiple: float) -> float:
        return 1 / multiple
