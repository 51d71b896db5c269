# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Analysis API

Convenience entry points for one-off use. Each call builds its own engines
from the given settings; long-lived callers should construct engines once
and reuse them.
"""

from __future__ import annotations

from typing import Optional

from ..facility import CMSData, FacilityProfile, OperatingMetrics
from ..financial import FinancialStatement, NormalizedFinancials
from ..risk import RiskAssessment, RiskEvaluationData, create_risk_engine
from ..valuation import ValuationInput, ValuationResult, create_valuation_engine
from .orchestrator import (
    AnalysisInput,
    DealAnalysis,
    DocumentExtractor,
    ProgressCallback,
    create_orchestrator,
)
from .settings import UnderwritingSettings


def quick_valuation(
    facility: FacilityProfile,
    noi: float,
    cms_data: Optional[CMSData] = None,
    operations: Optional[OperatingMetrics] = None,
    settings: Optional[UnderwritingSettings] = None,
) -> ValuationResult:
    """
    Value a facility from a known NOI.

    A minimal statement reproducing the NOI at a 10% margin stands in for
    full financials.

    Args:
        facility: Subject facility
        noi: Annual net operating income
        cms_data: Optional CMS snapshot
        operations: Optional operating metrics
        settings: Optional settings; defaults when omitted

    Returns:
        Reconciled ValuationResult
    """
    settings = settings or UnderwritingSettings()
    statement = FinancialStatement.from_noi(noi, beds=facility.operational_beds)
    output = create_valuation_engine(settings.valuation).valuate(
        ValuationInput(
            facility=facility,
            cms_data=cms_data,
            operating_metrics=operations,
            financials=NormalizedFinancials.from_statement(statement),
        )
    )
    return output.result


def quick_risk_assessment(
    facility: FacilityProfile,
    cms_data: Optional[CMSData] = None,
    operations: Optional[OperatingMetrics] = None,
    settings: Optional[UnderwritingSettings] = None,
) -> RiskAssessment:
    """Risk assessment from the facility, CMS and operating data alone."""
    settings = settings or UnderwritingSettings()
    output = create_risk_engine(settings.risk).assess(
        RiskEvaluationData(facility=facility, cms_data=cms_data, operations=operations)
    )
    return output.assessment


def analyze(
    input: AnalysisInput,
    settings: Optional[UnderwritingSettings] = None,
    extractor: Optional[DocumentExtractor] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> DealAnalysis:
    """Run a complete deal analysis with engines built from `settings`."""
    return create_orchestrator(settings, extractor=extractor).analyze(input, on_progress)
