# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Test utilities and fixtures for seniorval testing.

Builders return fully valid models with realistic skilled nursing defaults;
keyword arguments override individual fields so each test states only what
it cares about.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import List, Optional

import pytest

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
    ComparableAddress,
    ComparableSale,
    FacilityProfile,
    MarketData,
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

VALUATION_DATE = date(2024, 6, 30)


# Facility Utilities
def make_facility(
    asset_type: AssetTypeEnum = AssetTypeEnum.SNF,
    beds: int = 120,
    year_built: int = 1999,
    state: str = "OH",
    region: RegionEnum = RegionEnum.MIDWEST,
    location_type: LocationTypeEnum = LocationTypeEnum.SUBURBAN,
    **overrides,
) -> FacilityProfile:
    """
    Create a facility profile for testing.

    The defaults give a 120-bed suburban Ohio SNF that is 25 years old at
    `VALUATION_DATE`, which sits in the neutral bracket of every cap rate
    adjustment table.
    """
    fields = dict(
        id="fac-1",
        name="Maple Grove Care Center",
        address=Address(street="100 Main St", city="Dayton", state=state, zip="45402"),
        asset_type=asset_type,
        beds=BedCounts(licensed=beds, certified=beds, operational=beds),
        year_built=year_built,
        location_type=location_type,
        region=region,
    )
    fields.update(overrides)
    return FacilityProfile(**fields)


def make_cms(overall_rating: int = 3, **overrides) -> CMSData:
    fields = dict(
        ccn="365001",
        provider_name="Maple Grove Care Center",
        overall_rating=overall_rating,
        health_inspection_rating=3,
        staffing_rating=3,
        quality_measure_rating=3,
        rn_hours_per_resident_day=0.7,
        lpn_hours_per_resident_day=0.9,
        nurse_aide_hours_per_resident_day=2.3,
        total_nurse_hours_per_resident_day=3.9,
        total_deficiencies=8,
        health_deficiencies=6,
        fire_deficiencies=2,
        total_fines=15_000,
    )
    fields.update(overrides)
    return CMSData(**fields)


def make_operations(occupancy_rate: float = 88.0, **overrides) -> OperatingMetrics:
    fields = dict(
        current_census=106,
        occupancy_rate=occupancy_rate,
        payer_mix=PayerMix(medicare_a=18, medicare_advantage=7, medicaid=60, private_pay=15),
        staffing=StaffingMetrics(
            rn_hppd=0.7,
            lpn_hppd=0.9,
            cna_hppd=2.3,
            total_hppd=3.9,
            agency_usage_percent=5,
            turnover_rate=40,
        ),
    )
    fields.update(overrides)
    return OperatingMetrics(**fields)


def make_market(**overrides) -> MarketData:
    fields = dict(
        region=RegionEnum.MIDWEST,
        state="OH",
        population_65_plus=120_000,
        population_65_plus_growth=0.025,
        population_85_plus=18_000,
        population_85_plus_growth=0.03,
        market_occupancy=0.85,
        supply_growth_rate=0.005,
        demand_growth_rate=0.02,
        competitor_count=12,
        competitor_beds=1_400,
        market_concentration=0.12,
        medicaid_rate=240,
    )
    fields.update(overrides)
    return MarketData(**fields)


# Financial Utilities
def make_statement(beds: int = 120, months: int = 12, **overrides) -> FinancialStatement:
    """
    Create a trailing-twelve statement with $12.0M revenue and $2.6M NOI.

    Depreciation and interest are booked below NOI; there is no rent.
    """
    fields = dict(
        period=StatementPeriod(end_date=date(2024, 3, 31), months=months),
        facility=StatementFacility(id="fac-1", name="Maple Grove Care Center", beds=beds),
        revenue=RevenueSection(
            items=[
                RevenueLineItem(
                    category=RevenueCategoryEnum.MEDICARE_PART_A, amount=3_000_000, patient_days=4_600
                ),
                RevenueLineItem(
                    category=RevenueCategoryEnum.MEDICAID, amount=7_000_000, patient_days=28_000
                ),
                RevenueLineItem(
                    category=RevenueCategoryEnum.PRIVATE_PAY, amount=2_000_000, patient_days=5_944
                ),
            ]
        ),
        expenses=ExpenseSection(
            items=[
                ExpenseLineItem(category=ExpenseCategoryEnum.NURSING_WAGES, amount=5_000_000),
                ExpenseLineItem(category=ExpenseCategoryEnum.AGENCY_NURSING, amount=300_000),
                ExpenseLineItem(category=ExpenseCategoryEnum.OTHER_SALARIES, amount=1_200_000),
                ExpenseLineItem(category=ExpenseCategoryEnum.EMPLOYEE_BENEFITS, amount=800_000),
                ExpenseLineItem(category=ExpenseCategoryEnum.DIETARY, amount=600_000),
                ExpenseLineItem(category=ExpenseCategoryEnum.UTILITIES, amount=400_000),
                ExpenseLineItem(category=ExpenseCategoryEnum.MANAGEMENT_FEE, amount=600_000),
                ExpenseLineItem(category=ExpenseCategoryEnum.PROPERTY_TAX, amount=200_000),
                ExpenseLineItem(category=ExpenseCategoryEnum.INSURANCE_LIABILITY, amount=300_000),
                ExpenseLineItem(category=ExpenseCategoryEnum.DEPRECIATION, amount=400_000),
                ExpenseLineItem(category=ExpenseCategoryEnum.INTEREST, amount=300_000),
            ]
        ),
        patient_days=PatientDays(total=38_544),
    )
    fields.update(overrides)
    return FinancialStatement(**fields)


def make_financials(statement: Optional[FinancialStatement] = None) -> NormalizedFinancials:
    """Wrap a statement as already-normalized financials."""
    return NormalizedFinancials.from_statement(statement or make_statement())


def make_financials_from_noi(noi: float, beds: int = 120) -> NormalizedFinancials:
    return NormalizedFinancials.from_statement(FinancialStatement.from_noi(noi, beds=beds))


# Comparable Utilities
def make_comparable(
    index: int = 1,
    price_per_bed: float = 90_000,
    beds: int = 110,
    asset_type: AssetTypeEnum = AssetTypeEnum.SNF,
    days_ago: int = 200,
    distance_miles: Optional[float] = 40,
    **overrides,
) -> ComparableSale:
    fields = dict(
        id=f"comp-{index}",
        property_name=f"Comparable {index}",
        address=ComparableAddress(city="Columbus", state="OH"),
        asset_type=asset_type,
        sale_date=VALUATION_DATE - timedelta(days=days_ago),
        sale_price=price_per_bed * beds,
        price_per_bed=price_per_bed,
        beds=beds,
        year_built=2000,
        cms_rating=3,
        distance_miles=distance_miles,
    )
    fields.update(overrides)
    return ComparableSale(**fields)


def make_comparables(prices: List[float]) -> List[ComparableSale]:
    return [make_comparable(i + 1, price_per_bed=price) for i, price in enumerate(prices)]


def make_valuation_input(**overrides) -> ValuationInput:
    """Valuation input with every collaborator present."""
    fields = dict(
        facility=make_facility(),
        cms_data=make_cms(),
        operating_metrics=make_operations(),
        financials=make_financials(),
        market_data=make_market(),
        comparable_sales=make_comparables([88_000, 92_000, 95_000, 90_000, 93_000]),
        valuation_date=VALUATION_DATE,
    )
    fields.update(overrides)
    return ValuationInput(**fields)


# Fixtures
@pytest.fixture
def facility() -> FacilityProfile:
    return make_facility()


@pytest.fixture
def cms_data() -> CMSData:
    return make_cms()


@pytest.fixture
def operations() -> OperatingMetrics:
    return make_operations()


@pytest.fixture
def market() -> MarketData:
    return make_market()


@pytest.fixture
def statement() -> FinancialStatement:
    return make_statement()


@pytest.fixture
def financials(statement: FinancialStatement) -> NormalizedFinancials:
    return make_financials(statement)


@pytest.fixture
def valuation_input() -> ValuationInput:
    return make_valuation_input()
