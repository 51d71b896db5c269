# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
CMS Care Compare snapshot.

Read-only regulatory and quality dataset for a certified facility. Every
consumer must tolerate its absence.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import Field

from ..core.primitives import Model, OwnershipTypeEnum, PositiveFloat, PositiveInt, StarRating


class QualityMeasures(Model):
    """Selected long-stay and short-stay quality measure rates (percent)."""

    long_stay_falls_with_injury: Optional[PositiveFloat] = None
    long_stay_pressure_ulcers: Optional[PositiveFloat] = None
    long_stay_antipsychotic_use: Optional[PositiveFloat] = None
    long_stay_uti: Optional[PositiveFloat] = None
    short_stay_rehospitalization: Optional[PositiveFloat] = None
    short_stay_ed_visits: Optional[PositiveFloat] = None
    short_stay_improved_function: Optional[PositiveFloat] = None


class CMSData(Model):
    """
    CMS star ratings, staffing, inspection and enforcement data.

    Staffing figures are hours per resident day; fines are dollars.
    """

    # === IDENTITY ===
    ccn: str = Field(..., description="CMS certification number")
    provider_name: str = ""

    # === STAR RATINGS ===
    overall_rating: StarRating
    health_inspection_rating: StarRating
    staffing_rating: StarRating
    quality_measure_rating: StarRating

    # === STAFFING (HOURS PER RESIDENT DAY) ===
    nurse_aide_hours_per_resident_day: PositiveFloat = 0.0
    lpn_hours_per_resident_day: PositiveFloat = 0.0
    rn_hours_per_resident_day: PositiveFloat = 0.0
    total_nurse_hours_per_resident_day: PositiveFloat = 0.0
    pt_hours_per_resident_day: PositiveFloat = 0.0

    # === INSPECTIONS & ENFORCEMENT ===
    total_deficiencies: PositiveInt = 0
    health_deficiencies: PositiveInt = 0
    fire_deficiencies: PositiveInt = 0
    is_sff: bool = Field(default=False, description="Special Focus Facility")
    is_sff_candidate: bool = False
    total_fines: PositiveFloat = 0.0
    payment_denial_days: PositiveInt = 0
    has_abuse_icon: bool = False

    # === OTHER ===
    average_residents_per_day: PositiveFloat = 0.0
    ownership_type: Optional[OwnershipTypeEnum] = None
    last_health_survey_date: Optional[date] = None
    quality_measures: QualityMeasures = Field(default_factory=QualityMeasures)
    data_date: Optional[date] = None
