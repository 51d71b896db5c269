# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Deal-Breaker Rules - Automatic Disqualification

Binary rules evaluated independently of the scored risk factors. A triggered
rule forces a `pass` recommendation regardless of the numeric risk score.

Rules are grouped into an immutable `RuleSet`. Custom underwriting policies
are expressed by deriving a new rule set:

    ```python
    policy = DEFAULT_RULE_SET.without_rule("high_medicaid").with_rule(
        create_rule(
            id="small_facility",
            name="Small Facility",
            description="Fewer than 40 operational beds",
            category=RiskCategoryEnum.OPERATIONAL,
            evaluate=lambda data: DealBreakerResult(
                triggered=data.facility is not None and data.facility.operational_beds < 40,
                threshold=">=40 beds",
                actual=data.facility.operational_beds if data.facility else "Unknown",
            ),
        )
    )
    assessment = policy.evaluate(RiskEvaluationData(facility=facility))
    ```

The `exception` text on a result documents when an underwriter might accept
the deal anyway; it is informational and never consulted by the engine.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Tuple, Union

from pydantic import Field, model_validator

from ..core.primitives import Model, RiskCategoryEnum
from .factors import RiskEvaluationData

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


class DealBreakerResult(Model):
    triggered: bool
    threshold: Union[float, str]
    actual: Union[float, str]
    reason: Optional[str] = None
    exception: Optional[str] = None


class DealBreakerRule(Model):
    id: str
    name: str
    description: str
    category: RiskCategoryEnum
    evaluate: Callable[[RiskEvaluationData], DealBreakerResult]


class DealBreakerOutcome(Model):
    """A rule paired with its result for one evaluation."""

    rule_id: str
    name: str
    category: RiskCategoryEnum
    result: DealBreakerResult

    @property
    def triggered(self) -> bool:
        return self.result.triggered


class DealBreakerAssessment(Model):
    results: List[DealBreakerOutcome] = Field(default_factory=list)

    @property
    def triggered(self) -> List[DealBreakerOutcome]:
        return [r for r in self.results if r.triggered]

    @property
    def any_triggered(self) -> bool:
        return any(r.triggered for r in self.results)

    @property
    def triggered_count(self) -> int:
        return len(self.triggered)


def create_rule(
    id: str,
    name: str,
    description: str,
    category: RiskCategoryEnum,
    evaluate: Callable[[RiskEvaluationData], DealBreakerResult],
) -> DealBreakerRule:
    return DealBreakerRule(
        id=id, name=name, description=description, category=category, evaluate=evaluate
    )


# === REGULATORY ===


def _sff_status(data: RiskEvaluationData) -> DealBreakerResult:
    if data.cms_data is None:
        return DealBreakerResult(triggered=False, threshold="Not SFF", actual=UNKNOWN)
    is_sff = data.cms_data.is_sff
    return DealBreakerResult(
        triggered=is_sff,
        threshold="Not SFF",
        actual="On SFF List" if is_sff else "Not SFF",
        reason="Facility is under enhanced regulatory scrutiny" if is_sff else None,
        exception="May consider with significant price discount and turnaround plan",
    )


def _one_star_rating(data: RiskEvaluationData) -> DealBreakerResult:
    if data.cms_data is None:
        return DealBreakerResult(triggered=False, threshold=">1 star", actual=UNKNOWN)
    rating = data.cms_data.overall_rating
    return DealBreakerResult(
        triggered=rating == 1,
        threshold=">1 star",
        actual=f"{rating} stars",
        reason="Lowest possible quality rating" if rating == 1 else None,
        exception="May consider if trend improving and with turnaround capital budget",
    )


def _abuse_icon(data: RiskEvaluationData) -> DealBreakerResult:
    if data.cms_data is None:
        return DealBreakerResult(triggered=False, threshold="No abuse icon", actual=UNKNOWN)
    present = data.cms_data.has_abuse_icon
    return DealBreakerResult(
        triggered=present,
        threshold="No abuse icon",
        actual="Abuse icon present" if present else "No abuse icon",
        reason="Substantiated abuse or neglect citation" if present else None,
        exception="Must review full citation history and current corrective actions",
    )


def _immediate_jeopardy(data: RiskEvaluationData) -> DealBreakerResult:
    if data.cms_data is None:
        return DealBreakerResult(triggered=False, threshold="No IJ", actual=UNKNOWN)
    # Survey scope and severity is not in the CMS snapshot; deficiency count is the proxy
    severe = data.cms_data.total_deficiencies > 20
    return DealBreakerResult(
        triggered=severe,
        threshold="No IJ",
        actual="Likely IJ history" if severe else "No recent IJ",
        reason="High deficiency count suggests serious citations" if severe else None,
    )


def _con_moratorium(data: RiskEvaluationData) -> DealBreakerResult:
    threshold = "Approval rate >55% and timeline <16mo"
    state = data.state
    con = data.con_data
    if con is None:
        return DealBreakerResult(
            triggered=False,
            threshold="No CON moratorium",
            actual=f"{state} - no CON" if state else UNKNOWN,
        )

    approval = con.approval_rate * 100
    extended = con.timeline_months.extended
    high_risk = con.approval_rate < 0.55 and extended > 16
    return DealBreakerResult(
        triggered=high_risk,
        threshold=threshold,
        actual=f"{state}: {approval:.0f}% approval, {extended}mo max timeline",
        reason=(
            f"CON state with very low approval rate ({approval:.0f}%) and extended timeline "
            f"({extended}mo) - deal economics may not survive regulatory delay"
            if high_risk
            else None
        ),
        exception=(
            "May proceed if deal does not require CON approval "
            "(existing bed count, no conversion)"
        ),
    )


# === OPERATIONAL ===


def _critical_occupancy(data: RiskEvaluationData) -> DealBreakerResult:
    if data.operations is None:
        return DealBreakerResult(triggered=False, threshold=">60%", actual=UNKNOWN)
    occ = data.operations.occupancy_rate
    return DealBreakerResult(
        triggered=occ < 60,
        threshold=">60%",
        actual=f"{occ:.1f}%",
        reason="Occupancy indicates operational distress" if occ < 60 else None,
        exception="May consider for turnaround if market fundamentals support recovery",
    )


def _excessive_agency(data: RiskEvaluationData) -> DealBreakerResult:
    agency = data.operations.staffing.agency_usage_percent if data.operations else None
    if agency is None:
        return DealBreakerResult(triggered=False, threshold="<40%", actual=UNKNOWN)
    return DealBreakerResult(
        triggered=agency > 40,
        threshold="<40%",
        actual=f"{agency:.1f}%",
        reason="Indicates staffing crisis" if agency > 40 else None,
        exception="May consider with retention strategy and labor market analysis",
    )


def _minimum_staffing(data: RiskEvaluationData) -> DealBreakerResult:
    hppd = data.cms_data.total_nurse_hours_per_resident_day if data.cms_data else 0.0
    if not hppd and data.operations is not None:
        hppd = data.operations.staffing.total_hppd
    if not hppd:
        return DealBreakerResult(triggered=False, threshold=">3.0", actual=UNKNOWN)
    return DealBreakerResult(
        triggered=hppd < 3.0,
        threshold=">3.0 HPPD",
        actual=f"{hppd:.2f} HPPD",
        reason="Below minimum safe staffing levels" if hppd < 3.0 else None,
        exception="Must have immediate staffing improvement plan",
    )


# === FINANCIAL ===


def _negative_noi(data: RiskEvaluationData) -> DealBreakerResult:
    if data.financials is None:
        return DealBreakerResult(triggered=False, threshold=">0", actual=UNKNOWN)
    noi = data.financials.metrics.noi
    return DealBreakerResult(
        triggered=noi < 0,
        threshold=">0",
        actual=f"${noi:,.0f}",
        reason="Facility is operating at a loss" if noi < 0 else None,
        exception="May consider if clear path to profitability within 12-18 months",
    )


def _critical_margin(data: RiskEvaluationData) -> DealBreakerResult:
    if data.financials is None:
        return DealBreakerResult(triggered=False, threshold=">2%", actual=UNKNOWN)
    margin = data.financials.metrics.ebitdar_margin * 100
    return DealBreakerResult(
        triggered=margin < 2,
        threshold=">2%",
        actual=f"{margin:.1f}%",
        reason=(
            "Insufficient margin to service debt and maintain operations" if margin < 2 else None
        ),
        exception="May consider with operational improvement plan showing path to 8%+ margin",
    )


def _high_medicaid(data: RiskEvaluationData) -> DealBreakerResult:
    if data.operations is None:
        return DealBreakerResult(triggered=False, threshold="<85%", actual=UNKNOWN)
    medicaid = data.operations.payer_mix.medicaid
    return DealBreakerResult(
        triggered=medicaid > 85,
        threshold="<85%",
        actual=f"{medicaid:.1f}%",
        reason="Excessive dependence on Medicaid reimbursement" if medicaid > 85 else None,
        exception="May consider in markets with favorable Medicaid rates and limited competition",
    )


# === MARKET ===


def _declining_market(data: RiskEvaluationData) -> DealBreakerResult:
    if data.market is None:
        return DealBreakerResult(triggered=False, threshold=">-2%", actual=UNKNOWN)
    growth = data.market.demand_growth_rate * 100
    return DealBreakerResult(
        triggered=growth < -2,
        threshold=">-2%",
        actual=f"{growth:.1f}%",
        reason="Significant demographic decline in market" if growth < -2 else None,
        exception="May consider if facility has dominant market position",
    )


def _oversupplied_market(data: RiskEvaluationData) -> DealBreakerResult:
    if data.market is None:
        return DealBreakerResult(triggered=False, threshold=">70%", actual=UNKNOWN)
    occ = data.market.market_occupancy * 100
    return DealBreakerResult(
        triggered=occ < 70,
        threshold=">70%",
        actual=f"{occ:.1f}%",
        reason="Severe oversupply in market" if occ < 70 else None,
        exception="May consider if acquisition eliminates competitor capacity",
    )


DEFAULT_DEAL_BREAKER_RULES: Tuple[DealBreakerRule, ...] = (
    create_rule(
        "sff_status",
        "Special Focus Facility",
        "Facility is on CMS Special Focus Facility list",
        RiskCategoryEnum.REGULATORY,
        _sff_status,
    ),
    create_rule(
        "one_star_rating",
        "One-Star Overall Rating",
        "CMS overall rating of 1 star",
        RiskCategoryEnum.REGULATORY,
        _one_star_rating,
    ),
    create_rule(
        "abuse_icon",
        "Abuse Icon Present",
        "Facility has substantiated abuse citation",
        RiskCategoryEnum.REGULATORY,
        _abuse_icon,
    ),
    create_rule(
        "immediate_jeopardy",
        "Immediate Jeopardy Citation",
        "Recent immediate jeopardy (J, K, or L) deficiency",
        RiskCategoryEnum.REGULATORY,
        _immediate_jeopardy,
    ),
    create_rule(
        "critical_occupancy",
        "Critical Occupancy",
        "Occupancy below 60%",
        RiskCategoryEnum.OPERATIONAL,
        _critical_occupancy,
    ),
    create_rule(
        "excessive_agency",
        "Excessive Agency Staffing",
        "Agency staffing above 40%",
        RiskCategoryEnum.OPERATIONAL,
        _excessive_agency,
    ),
    create_rule(
        "minimum_staffing",
        "Below Minimum Staffing",
        "Total nursing HPPD below 3.0",
        RiskCategoryEnum.OPERATIONAL,
        _minimum_staffing,
    ),
    create_rule(
        "negative_noi",
        "Negative NOI",
        "Net operating income is negative",
        RiskCategoryEnum.FINANCIAL,
        _negative_noi,
    ),
    create_rule(
        "critical_margin",
        "Critical EBITDAR Margin",
        "EBITDAR margin below 2%",
        RiskCategoryEnum.FINANCIAL,
        _critical_margin,
    ),
    create_rule(
        "high_medicaid",
        "Excessive Medicaid Concentration",
        "Medicaid payer mix above 85%",
        RiskCategoryEnum.FINANCIAL,
        _high_medicaid,
    ),
    create_rule(
        "declining_market",
        "Declining Market",
        "Negative senior population growth",
        RiskCategoryEnum.MARKET,
        _declining_market,
    ),
    create_rule(
        "oversupplied_market",
        "Severely Oversupplied Market",
        "Market occupancy below 70%",
        RiskCategoryEnum.MARKET,
        _oversupplied_market,
    ),
    create_rule(
        "con_moratorium",
        "CON State Moratorium Risk",
        "State has CON requirements with very low approval rates or extended timelines",
        RiskCategoryEnum.REGULATORY,
        _con_moratorium,
    ),
)


class RuleSet(Model):
    """
    Immutable, ordered collection of deal-breaker rules with unique ids.

    Every modifier returns a new rule set; evaluation order follows rule
    order.
    """

    rules: Tuple[DealBreakerRule, ...] = DEFAULT_DEAL_BREAKER_RULES

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "RuleSet":
        ids = [rule.id for rule in self.rules]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate deal-breaker rule ids: {duplicates}")
        return self

    @classmethod
    def of(cls, rules: Iterable[DealBreakerRule]) -> "RuleSet":
        return cls(rules=tuple(rules))

    @property
    def ids(self) -> List[str]:
        return [rule.id for rule in self.rules]

    def __len__(self) -> int:
        return len(self.rules)

    def get(self, rule_id: str) -> Optional[DealBreakerRule]:
        return next((rule for rule in self.rules if rule.id == rule_id), None)

    def with_rule(self, rule: DealBreakerRule) -> "RuleSet":
        """New rule set with `rule` appended; raises ValueError on a duplicate id."""
        return RuleSet(rules=self.rules + (rule,))

    def without_rule(self, rule_id: str) -> "RuleSet":
        """New rule set without `rule_id`; unchanged if the id is absent."""
        if rule_id not in self.ids:
            logger.debug(f"Deal-breaker rule '{rule_id}' not in rule set; nothing removed")
        return RuleSet(rules=tuple(rule for rule in self.rules if rule.id != rule_id))

    def by_category(self, category: RiskCategoryEnum) -> List[DealBreakerRule]:
        return [rule for rule in self.rules if rule.category == category]

    def evaluate(self, data: RiskEvaluationData) -> DealBreakerAssessment:
        results = [
            DealBreakerOutcome(
                rule_id=rule.id,
                name=rule.name,
                category=rule.category,
                result=rule.evaluate(data),
            )
            for rule in self.rules
        ]
        assessment = DealBreakerAssessment(results=results)
        if assessment.any_triggered:
            logger.debug(
                f"Deal breakers triggered: {[r.rule_id for r in assessment.triggered]}"
            )
        return assessment

    def has_any(self, data: RiskEvaluationData) -> bool:
        """Short-circuiting check for any triggered rule."""
        return any(rule.evaluate(data).triggered for rule in self.rules)


DEFAULT_RULE_SET = RuleSet()


def _rules(rule_set: Optional[RuleSet]) -> RuleSet:
    return DEFAULT_RULE_SET if rule_set is None else rule_set


def evaluate_deal_breakers(
    data: RiskEvaluationData, rule_set: Optional[RuleSet] = None
) -> DealBreakerAssessment:
    return _rules(rule_set).evaluate(data)


def has_any_deal_breaker(data: RiskEvaluationData, rule_set: Optional[RuleSet] = None) -> bool:
    return _rules(rule_set).has_any(data)


def triggered_deal_breakers(
    data: RiskEvaluationData, rule_set: Optional[RuleSet] = None
) -> List[DealBreakerOutcome]:
    return evaluate_deal_breakers(data, rule_set).triggered
