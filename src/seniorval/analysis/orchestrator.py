# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Deal Analysis Orchestrator

Sequences a complete deal analysis:

1. Extraction (only when documents are supplied) through an injected
   `DocumentExtractor`
2. Financial normalization
3. Risk assessment
4. Valuation
5. Synthesis of a final recommendation, rationale and key metrics

Progress is reported through an optional callback. Any failure is reported
as an `error` stage event carrying the message and then re-raised.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from pydantic import Field

from ..core.primitives import (
    AnalysisStageEnum,
    ConfidenceLevel,
    Model,
    PositiveFloat,
    RecommendationEnum,
)
from ..facility import CMSData, ComparableSale, FacilityProfile, MarketData, OperatingMetrics
from ..financial import FinancialNormalizer, FinancialStatement, NormalizedFinancials
from ..risk import RiskAssessment, RiskEngine, RiskEvaluationData, create_risk_engine
from ..valuation import ValuationEngine, ValuationInput, ValuationResult, create_valuation_engine
from .settings import UnderwritingSettings

logger = logging.getLogger(__name__)

# Asking price / value ratios
OVERPRICED_RATIO = 1.15
PREMIUM_RATIO = 1.05
DISCOUNT_RATIO = 0.95


# === EXTRACTION CONTRACT ===


class ExtractedDocument(Model):
    """A document whose text has already been pulled out upstream."""

    filename: str
    document_type: Optional[str] = None
    raw_text: Optional[str] = None
    status: str = "completed"

    @property
    def is_ready(self) -> bool:
        return self.status == "completed" and bool(self.raw_text)


class ExtractedData(Model):
    """Partial facility data recovered from documents; absent fields stay absent."""

    facility_profile: Dict[str, Any] = Field(
        default_factory=dict, description="Facility profile fields to overlay"
    )
    operating_metrics: Optional[OperatingMetrics] = None
    financial_statement: Optional[FinancialStatement] = None


class DocumentExtractor(Protocol):
    def extract(self, documents: Sequence[ExtractedDocument]) -> ExtractedData:
        ...


# === INPUT / OUTPUT ===


class AnalysisInput(Model):
    deal_id: str
    facility_id: str
    facility: FacilityProfile
    documents: List[ExtractedDocument] = Field(default_factory=list)
    cms_data: Optional[CMSData] = None
    operating_metrics: Optional[OperatingMetrics] = None
    financial_statement: Optional[FinancialStatement] = Field(
        default=None, description="Reported statement, normalized before use"
    )
    market_data: Optional[MarketData] = None
    comparable_sales: List[ComparableSale] = Field(default_factory=list)
    land_value: Optional[float] = None
    asking_price: Optional[PositiveFloat] = None
    valuation_date: date = Field(default_factory=date.today)


class AnalysisProgress(Model):
    stage: AnalysisStageEnum
    progress: float = Field(..., ge=0, le=100)
    message: str
    errors: List[str] = Field(default_factory=list)


ProgressCallback = Callable[[AnalysisProgress], None]


class KeyMetrics(Model):
    asking_price: Optional[float] = None
    valued_price: float
    price_per_bed: float
    implied_cap_rate: float
    going_in_yield: float
    occupancy: float
    cms_rating: Optional[int] = None
    risk_score: float
    ebitdar_margin: Optional[float] = None


class DealAnalysis(Model):
    """Complete result of one deal analysis."""

    deal_id: str
    facility_id: str
    analysis_date: datetime
    version: int = 1
    status: str = "complete"

    facility: FacilityProfile
    cms_data: Optional[CMSData] = None
    operating_metrics: OperatingMetrics
    financials: Optional[NormalizedFinancials] = None
    valuation: ValuationResult
    risk_assessment: RiskAssessment

    recommendation: RecommendationEnum
    recommendation_rationale: List[str] = Field(default_factory=list)
    key_metrics: KeyMetrics

    created_by: str = "system"


# === ORCHESTRATOR ===


class AnalysisOrchestrator:
    """
    Runs extraction, normalization, risk and valuation for one deal.

    Example:
        ```python
        orchestrator = create_orchestrator()
        analysis = orchestrator.analyze(
            AnalysisInput(deal_id="d-1", facility_id=facility.id, facility=facility,
                          financial_statement=statement, asking_price=24_000_000),
            on_progress=lambda p: print(p.stage.value, p.progress),
        )
        analysis.recommendation
        ```
    """

    def __init__(
        self,
        valuation_engine: Optional[ValuationEngine] = None,
        risk_engine: Optional[RiskEngine] = None,
        normalizer: Optional[FinancialNormalizer] = None,
        extractor: Optional[DocumentExtractor] = None,
    ):
        self.valuation_engine = valuation_engine or create_valuation_engine()
        self.risk_engine = risk_engine or create_risk_engine()
        self.normalizer = normalizer or FinancialNormalizer()
        self.extractor = extractor

    def analyze(
        self, input: AnalysisInput, on_progress: Optional[ProgressCallback] = None
    ) -> DealAnalysis:
        def report(stage: AnalysisStageEnum, progress: float, message: str) -> None:
            if on_progress is not None:
                on_progress(AnalysisProgress(stage=stage, progress=progress, message=message))

        report(AnalysisStageEnum.INITIALIZING, 0, "Starting analysis...")
        try:
            facility = input.facility
            operating_metrics = input.operating_metrics
            statement = input.financial_statement

            ready = [doc for doc in input.documents if doc.is_ready]
            if ready and self.extractor is not None:
                report(AnalysisStageEnum.EXTRACTING, 10, "Extracting data from documents...")
                extracted = self.extractor.extract(ready)
                if extracted.facility_profile:
                    facility = facility.validated_copy(**extracted.facility_profile)
                operating_metrics = operating_metrics or extracted.operating_metrics
                statement = statement or extracted.financial_statement

            report(AnalysisStageEnum.NORMALIZING, 30, "Normalizing financial data...")
            financials = self.normalizer.normalize(statement) if statement is not None else None

            report(AnalysisStageEnum.ANALYZING, 50, "Assessing risks...")
            risk_output = self.risk_engine.assess(
                RiskEvaluationData(
                    facility=facility,
                    cms_data=input.cms_data,
                    operations=operating_metrics,
                    financials=financials,
                    market=input.market_data,
                ),
                assessment_date=input.valuation_date,
            )

            report(AnalysisStageEnum.VALUATING, 70, "Calculating valuations...")
            valuation_output = self.valuation_engine.valuate(
                ValuationInput(
                    facility=facility,
                    cms_data=input.cms_data,
                    operating_metrics=operating_metrics,
                    financials=financials,
                    market_data=input.market_data,
                    comparable_sales=input.comparable_sales,
                    land_value=input.land_value,
                    valuation_date=input.valuation_date,
                )
            )

            report(AnalysisStageEnum.SYNTHESIZING, 90, "Synthesizing analysis...")
            analysis = self.synthesize(
                input,
                facility,
                operating_metrics,
                financials,
                valuation_output.result,
                risk_output.assessment,
                risk_output.summary.recommendation,
            )
        except Exception as e:
            logger.error(f"Analysis of deal {input.deal_id} failed: {e}")
            if on_progress is not None:
                on_progress(
                    AnalysisProgress(
                        stage=AnalysisStageEnum.ERROR,
                        progress=0,
                        message="Analysis failed",
                        errors=[str(e) or type(e).__name__],
                    )
                )
            raise

        report(AnalysisStageEnum.COMPLETE, 100, "Analysis complete")
        logger.info(
            f"Deal {input.deal_id}: {analysis.recommendation.value} at "
            f"${analysis.valuation.reconciled_value:,.0f}"
        )
        return analysis

    # === SYNTHESIS ===

    def synthesize(
        self,
        input: AnalysisInput,
        facility: FacilityProfile,
        operating_metrics: Optional[OperatingMetrics],
        financials: Optional[NormalizedFinancials],
        valuation: ValuationResult,
        risk: RiskAssessment,
        risk_recommendation: RecommendationEnum,
    ) -> DealAnalysis:
        recommendation = self.determine_recommendation(
            valuation, risk_recommendation, input.asking_price
        )
        metrics = financials.metrics if financials is not None else None
        noi = metrics.noi if metrics is not None else 0.0

        if input.asking_price and noi > 0:
            going_in_yield = noi / input.asking_price
        else:
            going_in_yield = valuation.implied_cap_rate

        key_metrics = KeyMetrics(
            asking_price=input.asking_price,
            valued_price=valuation.reconciled_value,
            price_per_bed=valuation.value_per_bed,
            implied_cap_rate=valuation.implied_cap_rate,
            going_in_yield=going_in_yield,
            occupancy=operating_metrics.occupancy_rate if operating_metrics is not None else 85.0,
            cms_rating=input.cms_data.overall_rating if input.cms_data is not None else None,
            risk_score=risk.overall_score,
            ebitdar_margin=metrics.ebitdar_margin if metrics is not None else None,
        )

        return DealAnalysis(
            deal_id=input.deal_id,
            facility_id=input.facility_id,
            analysis_date=datetime.now(timezone.utc),
            facility=facility,
            cms_data=input.cms_data,
            operating_metrics=operating_metrics or OperatingMetrics.default_for(facility),
            financials=financials,
            valuation=valuation,
            risk_assessment=risk,
            recommendation=recommendation,
            recommendation_rationale=self.build_rationale(
                recommendation, valuation, risk, input.asking_price
            ),
            key_metrics=key_metrics,
        )

    @staticmethod
    def determine_recommendation(
        valuation: ValuationResult,
        risk_recommendation: RecommendationEnum,
        asking_price: Optional[float] = None,
    ) -> RecommendationEnum:
        """
        Combine the risk recommendation with pricing and valuation confidence.

        - A risk `pass` always stands.
        - Asking more than 115% of value: pursue becomes conditional, anything
          else becomes pass.
        - Asking more than 105% of value: conditional.
        - Low valuation confidence turns pursue into conditional.
        """
        if risk_recommendation == RecommendationEnum.PASS:
            return RecommendationEnum.PASS

        if asking_price and valuation.reconciled_value > 0:
            price_to_value = asking_price / valuation.reconciled_value
            if price_to_value > OVERPRICED_RATIO:
                if risk_recommendation == RecommendationEnum.PURSUE:
                    return RecommendationEnum.CONDITIONAL
                return RecommendationEnum.PASS
            if price_to_value > PREMIUM_RATIO:
                return RecommendationEnum.CONDITIONAL

        if (
            valuation.overall_confidence == ConfidenceLevel.LOW
            and risk_recommendation == RecommendationEnum.PURSUE
        ):
            return RecommendationEnum.CONDITIONAL
        return risk_recommendation

    @staticmethod
    def build_rationale(
        recommendation: RecommendationEnum,
        valuation: ValuationResult,
        risk: RiskAssessment,
        asking_price: Optional[float] = None,
    ) -> List[str]:
        rationale = []

        if asking_price and valuation.reconciled_value > 0:
            price_to_value = asking_price / valuation.reconciled_value
            if price_to_value < DISCOUNT_RATIO:
                rationale.append(
                    f"Asking price is {(1 - price_to_value) * 100:.0f}% below estimated value"
                )
            elif price_to_value > PREMIUM_RATIO:
                rationale.append(
                    f"Asking price is {(price_to_value - 1) * 100:.0f}% above estimated value"
                )
            else:
                rationale.append("Asking price is in line with estimated value")

        rationale.append(f"Valuation confidence: {valuation.overall_confidence.value}")
        rationale.append(
            f"Overall risk score: {risk.overall_score:.0f}/100 ({risk.overall_rating.value})"
        )

        if risk.deal_breakers.any_triggered:
            names = ", ".join(outcome.name for outcome in risk.deal_breakers.triggered)
            rationale.append(f"DEAL BREAKER: {names}")

        if risk.key_risks:
            rationale.append(f"Key risks: {', '.join(r.name for r in risk.key_risks[:3])}")

        if recommendation == RecommendationEnum.PURSUE:
            rationale.append("Deal meets investment criteria with acceptable risk profile")
        elif recommendation == RecommendationEnum.CONDITIONAL:
            rationale.append("Proceed with caution - address identified concerns in due diligence")
        else:
            rationale.append("Deal does not meet investment criteria - significant concerns identified")
        return rationale


def create_orchestrator(
    settings: Optional[UnderwritingSettings] = None,
    extractor: Optional[DocumentExtractor] = None,
) -> AnalysisOrchestrator:
    """Orchestrator with engines built from one settings tree."""
    settings = settings or UnderwritingSettings()
    return AnalysisOrchestrator(
        valuation_engine=create_valuation_engine(settings.valuation),
        risk_engine=create_risk_engine(settings.risk),
        normalizer=FinancialNormalizer(settings.normalization),
        extractor=extractor,
    )
