# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Seniorval - Senior Housing Underwriting Engine

Valuation, risk scoring and interactive recalculation for skilled nursing,
assisted living and independent living acquisitions.

Key Entry Points:
- seniorval.analysis.analyze() - Complete deal analysis
- seniorval.analysis.quick_valuation() / quick_risk_assessment()
- seniorval.valuation.ValuationEngine - Six-method valuation and reconciliation
- seniorval.risk.RiskEngine - Weighted risk factors and deal breakers
- seniorval.analysis.RecalculationEngine - Overrides, sensitivity, Monte Carlo

Example Usage:
    ```python
    from seniorval.analysis import quick_valuation
    from seniorval.facility import Address, BedCounts, FacilityProfile

    facility = FacilityProfile(
        id="f-1",
        name="Maple Grove Care Center",
        address=Address(city="Dayton", state="OH"),
        asset_type="SNF",
        beds=BedCounts(licensed=120, operational=120),
        year_built=1995,
        region="midwest",
    )
    result = quick_valuation(facility, noi=2_500_000)
    print(f"Value: ${result.reconciled_value:,.0f} ({result.overall_confidence.value})")
    ```
"""

import importlib
import logging

# Library logging: applications configure handlers
logging.getLogger(__name__).addHandler(logging.NullHandler())


# Public API surface (lazy-loaded on first attribute access)
__all__ = [  # noqa: F822 - lazy loading
    "analysis",
    "core",
    "facility",
    "financial",
    "risk",
    "valuation",
]


_LAZY_MODULES = {
    "analysis": "seniorval.analysis",
    "core": "seniorval.core",
    "facility": "seniorval.facility",
    "financial": "seniorval.financial",
    "risk": "seniorval.risk",
    "valuation": "seniorval.valuation",
}


def __getattr__(name: str):
    module_path = _LAZY_MODULES.get(name)
    if module_path is None:
        raise AttributeError(f"module 'seniorval' has no attribute '{name}'")
    module = importlib.import_module(module_path)
    globals()[name] = module
    return module
