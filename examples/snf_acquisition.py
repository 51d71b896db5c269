#!/usr/bin/env python3
# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Skilled Nursing Acquisition Example

Underwrites a 120-bed suburban Ohio skilled nursing facility from a reported
trailing-twelve statement, then explores the valuation interactively.

## Deal Overview

- **Facility**: 120 licensed beds, built 1999, 3-star CMS rating, 88% occupied
- **Financials**: $12.0M revenue, $2.6M reported NOI, $300K agency nursing
- **Asking Price**: $24M ($200K per bed)

### Workflow

1. **Deal Analysis**: normalization, risk assessment, six-method valuation and
   a final pursue / conditional / pass recommendation
2. **Deal Overrides**: an analyst saves a tighter exit cap rate on the deal
3. **Sensitivity**: discount rate sweep and a tornado across key assumptions
4. **Monte Carlo**: value distribution under uncertain price per bed and
   cap rate
"""

from datetime import date

from seniorval.analysis import (
    AnalysisInput,
    InMemoryOverrideStore,
    ParameterResolver,
    analyze,
    create_recalculation_engine,
)
from seniorval.core.primitives import (
    AssetTypeEnum,
    ExpenseCategoryEnum,
    LocationTypeEnum,
    RegionEnum,
    RevenueCategoryEnum,
)
from seniorval.facility import (
    Address,
    BedCounts,
    CMSData,
    FacilityProfile,
    OperatingMetrics,
    PayerMix,
    StaffingMetrics,
)
from seniorval.financial import (
    ExpenseLineItem,
    ExpenseSection,
    FinancialStatement,
    NormalizedFinancials,
    PatientDays,
    RevenueLineItem,
    RevenueSection,
    StatementFacility,
    StatementPeriod,
)
from seniorval.valuation import ValuationInput

DEAL_ID = "maple-grove-2024"
VALUATION_DATE = date(2024, 6, 30)


def create_facility() -> FacilityProfile:
    return FacilityProfile(
        id="fac-365001",
        name="Maple Grove Care Center",
        address=Address(street="100 Main St", city="Dayton", state="OH", zip="45402"),
        asset_type=AssetTypeEnum.SNF,
        beds=BedCounts(licensed=120, certified=120, operational=120),
        year_built=1999,
        location_type=LocationTypeEnum.SUBURBAN,
        region=RegionEnum.MIDWEST,
    )


def create_cms_data() -> CMSData:
    return CMSData(
        ccn="365001",
        provider_name="Maple Grove Care Center",
        overall_rating=3,
        health_inspection_rating=3,
        staffing_rating=3,
        quality_measure_rating=4,
        total_nurse_hours_per_resident_day=3.9,
        total_deficiencies=8,
        total_fines=15_000,
    )


def create_operations() -> OperatingMetrics:
    return OperatingMetrics(
        current_census=106,
        occupancy_rate=88.0,
        payer_mix=PayerMix(medicare_a=18, medicare_advantage=7, medicaid=60, private_pay=15),
        staffing=StaffingMetrics(total_hppd=3.9, agency_usage_percent=5, turnover_rate=40),
    )


def create_statement() -> FinancialStatement:
    revenue = [
        (RevenueCategoryEnum.MEDICARE_PART_A, 3_000_000, 4_600),
        (RevenueCategoryEnum.MEDICAID, 7_000_000, 28_000),
        (RevenueCategoryEnum.PRIVATE_PAY, 2_000_000, 5_944),
    ]
    expenses = [
        (ExpenseCategoryEnum.NURSING_WAGES, 5_000_000),
        (ExpenseCategoryEnum.AGENCY_NURSING, 300_000),
        (ExpenseCategoryEnum.OTHER_SALARIES, 1_200_000),
        (ExpenseCategoryEnum.EMPLOYEE_BENEFITS, 800_000),
        (ExpenseCategoryEnum.DIETARY, 600_000),
        (ExpenseCategoryEnum.UTILITIES, 400_000),
        (ExpenseCategoryEnum.MANAGEMENT_FEE, 600_000),
        (ExpenseCategoryEnum.PROPERTY_TAX, 200_000),
        (ExpenseCategoryEnum.INSURANCE_LIABILITY, 300_000),
    ]
    return FinancialStatement(
        period=StatementPeriod(end_date=date(2024, 3, 31)),
        facility=StatementFacility(id="fac-365001", name="Maple Grove Care Center", beds=120),
        revenue=RevenueSection(
            items=[
                RevenueLineItem(category=category, amount=amount, patient_days=days)
                for category, amount, days in revenue
            ]
        ),
        expenses=ExpenseSection(
            items=[ExpenseLineItem(category=category, amount=amount) for category, amount in expenses]
        ),
        patient_days=PatientDays(total=38_544),
    )


def run_deal_analysis():
    facility = create_facility()
    analysis = analyze(
        AnalysisInput(
            deal_id=DEAL_ID,
            facility_id=facility.id,
            facility=facility,
            cms_data=create_cms_data(),
            operating_metrics=create_operations(),
            financial_statement=create_statement(),
            asking_price=24_000_000,
            valuation_date=VALUATION_DATE,
        ),
        on_progress=lambda p: print(f"  [{p.progress:>3.0f}%] {p.message}"),
    )

    print()
    print("DEAL ANALYSIS:")
    print("-" * 40)
    metrics = analysis.key_metrics
    print(f"Reconciled Value: ${metrics.valued_price:,.0f} (${metrics.price_per_bed:,.0f}/bed)")
    print(f"Implied Cap Rate: {metrics.implied_cap_rate:.2%}")
    print(f"Going-in Yield:   {metrics.going_in_yield:.2%}")
    print(f"Risk Score:       {metrics.risk_score:.0f}/100")
    print(f"Recommendation:   {analysis.recommendation.value.upper()}")
    for line in analysis.recommendation_rationale:
        print(f"  - {line}")
    print()

    print("NORMALIZATION ADJUSTMENTS:")
    print("-" * 40)
    for adjustment in analysis.financials.adjustments:
        print(f"  {adjustment.description}: ${adjustment.adjustment_amount:+,.0f}")
    print()
    return analysis


def run_interactive_analysis(analysis):
    input = ValuationInput(
        facility=analysis.facility,
        cms_data=analysis.cms_data,
        operating_metrics=analysis.operating_metrics,
        financials=analysis.financials or NormalizedFinancials.from_statement(create_statement()),
        valuation_date=VALUATION_DATE,
    )
    engine = create_recalculation_engine(ParameterResolver(InMemoryOverrideStore()))

    baseline = engine.recalculate(DEAL_ID, input)
    engine.save_overrides(
        DEAL_ID, [{"parameter": "dcf.exit_cap_rate", "value": 0.10, "reason": "Buyer pool view"}],
        user_id="analyst",
    )
    adjusted = engine.recalculate(DEAL_ID, input)
    print("DEAL OVERRIDES:")
    print("-" * 40)
    print(f"Baseline value:            ${baseline.value:,.0f}")
    print(f"With 10.0% exit cap rate:  ${adjusted.value:,.0f}")
    print()

    sensitivity = engine.analyze_sensitivity(DEAL_ID, input, "dcf.discount_rate", 0.07, 0.11, steps=4)
    print("DISCOUNT RATE SENSITIVITY:")
    print("-" * 40)
    print(sensitivity.to_dataframe().to_string(index=False))
    print(f"Elasticity: {sensitivity.elasticity:.2f}")
    print()

    bars = engine.tornado_analysis(
        DEAL_ID,
        input,
        [
            {"parameter": "cap_rate.base_cap_rate", "low": 0.09, "high": 0.115},
            {"parameter": "price_per_bed.base_price_per_bed", "low": 80_000, "high": 110_000},
            {"parameter": "dcf.discount_rate", "low": 0.08, "high": 0.11},
        ],
    )
    print("TORNADO:")
    print("-" * 40)
    print(engine.tornado_dataframe(bars).to_string(index=False))
    print()

    simulation = engine.run_monte_carlo(
        DEAL_ID,
        input,
        [
            {"parameter": "price_per_bed.base_price_per_bed", "min": 80_000, "max": 110_000},
            {"parameter": "cap_rate.base_cap_rate", "distribution": "triangular",
             "min": 0.09, "max": 0.12, "mode": 0.10},
        ],
        iterations=500,
        seed=42,
    )
    print("MONTE CARLO (500 draws):")
    print("-" * 40)
    print(f"Mean:  ${simulation.mean:,.0f}")
    print(f"P5:    ${simulation.percentiles['p5']:,.0f}")
    print(f"P95:   ${simulation.percentiles['p95']:,.0f}")
    print()


def main():
    print("=" * 60)
    print("SKILLED NURSING ACQUISITION - UNDERWRITING DEMONSTRATION")
    print("=" * 60)
    print()
    analysis = run_deal_analysis()
    run_interactive_analysis(analysis)
    print("Analysis completed successfully!")
    return analysis


if __name__ == "__main__":
    main()
