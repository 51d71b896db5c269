# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Risk Factor Base Types

A risk factor is a pure function from `RiskEvaluationData` to a
`RiskFactorResult` (score 0-100 where 0 means no risk). Definitions carry the
factor's identity, category and intra-category weight; evaluating a
definition yields a `RiskFactor` whose weighted score is always derived.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Sequence, Tuple

from pydantic import Field

from ...core.primitives import (
    FloatBetween0And1,
    Model,
    RiskCategoryEnum,
    RiskScore,
    SeverityEnum,
)
from ...facility import CMSData, FacilityProfile, MarketData, OperatingMetrics
from ...financial import NormalizedFinancials
from ..knowledge import CON_STATE_DATA, CONStateData, get_con_data


def score_to_severity(score: float) -> SeverityEnum:
    """Map a 0-100 factor score to its severity tier."""
    if score >= 80:
        return SeverityEnum.CRITICAL
    if score >= 60:
        return SeverityEnum.HIGH
    if score >= 40:
        return SeverityEnum.ELEVATED
    if score >= 20:
        return SeverityEnum.MODERATE
    return SeverityEnum.LOW


class RiskEvaluationData(Model):
    """
    Inputs available to risk factors and deal-breaker rules.

    Every collaborator is optional; factors facing absent data return a
    neutral score rather than failing. The CON table defaults to the built-in
    knowledge table and can be replaced per evaluation.
    """

    facility: Optional[FacilityProfile] = None
    cms_data: Optional[CMSData] = None
    operations: Optional[OperatingMetrics] = None
    financials: Optional[NormalizedFinancials] = None
    market: Optional[MarketData] = None
    con_table: Dict[str, CONStateData] = Field(default_factory=lambda: dict(CON_STATE_DATA))

    @property
    def state(self) -> Optional[str]:
        return self.facility.state if self.facility is not None else None

    @property
    def con_data(self) -> Optional[CONStateData]:
        """CON record for the facility's state, if it has a CON regime."""
        record = get_con_data(self.state, self.con_table)
        return record if record is not None and record.has_con else None


class RiskFactorResult(Model):
    score: RiskScore
    severity: SeverityEnum
    details: str
    recommendation: Optional[str] = None

    @classmethod
    def of(
        cls, score: float, details: str, recommendation: Optional[str] = None
    ) -> "RiskFactorResult":
        """Result with severity derived from the score."""
        return cls(
            score=score,
            severity=score_to_severity(score),
            details=details,
            recommendation=recommendation,
        )


class RiskFactor(Model):
    """An evaluated risk factor."""

    factor_id: str
    category: RiskCategoryEnum
    name: str
    score: RiskScore
    weight: FloatBetween0And1
    severity: SeverityEnum
    details: str
    data_source: str
    recommendation: Optional[str] = None

    @property
    def weighted_score(self) -> float:
        return self.score * self.weight


class RiskFactorDefinition(Model):
    """
    Identity and evaluation function of one risk factor.

    Example:
        ```python
        definition = RiskFactorDefinition(
            id="bed_count",
            category=RiskCategoryEnum.OPERATIONAL,
            name="Facility Size",
            weight=0.10,
            description="Small facilities have little operating leverage",
            data_source="Facility profile",
            evaluate=lambda data: RiskFactorResult.of(30, "Small facility"),
        )
        factor = definition.evaluate_factor(RiskEvaluationData())
        ```
    """

    id: str
    category: RiskCategoryEnum
    name: str
    weight: FloatBetween0And1
    description: str = ""
    data_source: str
    evaluate: Callable[[RiskEvaluationData], RiskFactorResult]

    def evaluate_factor(self, data: RiskEvaluationData) -> RiskFactor:
        result = self.evaluate(data)
        return RiskFactor(
            factor_id=self.id,
            category=self.category,
            name=self.name,
            score=result.score,
            weight=self.weight,
            severity=result.severity,
            details=result.details,
            data_source=self.data_source,
            recommendation=result.recommendation,
        )


Band = Tuple[float, float, str]


def grade_below(
    value: float, bands: Sequence[Band], otherwise: Tuple[float, str]
) -> Tuple[float, str]:
    """
    First band whose limit `value` is strictly below, as `(score, label)`.

    Bands are `(limit, score, label)` in ascending limit order.
    """
    for limit, score, label in bands:
        if value < limit:
            return score, label
    return otherwise


def grade_above(
    value: float, bands: Sequence[Band], otherwise: Tuple[float, str]
) -> Tuple[float, str]:
    """First band whose limit `value` strictly exceeds; bands in descending order."""
    for limit, score, label in bands:
        if value > limit:
            return score, label
    return otherwise
