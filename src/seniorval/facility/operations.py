# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Optional

from pydantic import Field

from ..core.primitives import (
    AcuityLevelEnum,
    Model,
    OccupancyTrendEnum,
    Percent,
    PositiveFloat,
    PositiveInt,
)
from .profile import FacilityProfile


class PayerMix(Model):
    """
    Census share by payer, in percent (0-100).

    Shares are expected to sum to roughly 100 but this is not enforced:
    extracted data is frequently incomplete.
    """

    medicare_a: Percent = 0.0
    medicare_b: Percent = 0.0
    medicare_advantage: Percent = 0.0
    medicaid: Percent = 0.0
    private_pay: Percent = 0.0
    managed_care: Percent = 0.0
    va_contract: Percent = 0.0
    hospice: Percent = 0.0
    other: Percent = 0.0

    @property
    def total(self) -> float:
        return (
            self.medicare_a
            + self.medicare_b
            + self.medicare_advantage
            + self.medicaid
            + self.private_pay
            + self.managed_care
            + self.va_contract
            + self.hospice
            + self.other
        )


class StaffingMetrics(Model):
    """Nursing hours per patient day by role, plus workforce stability."""

    rn_hppd: PositiveFloat = 0.0
    lpn_hppd: PositiveFloat = 0.0
    cna_hppd: PositiveFloat = 0.0
    total_hppd: PositiveFloat = 0.0
    agency_usage_percent: Optional[Percent] = Field(
        default=None, description="Agency hours as percent of nursing hours"
    )
    turnover_rate: Optional[PositiveFloat] = Field(
        default=None, description="Annual staff turnover, percent"
    )


class LengthOfStay(Model):
    """Average length of stay in days by payer."""

    medicare: PositiveFloat = 0.0
    medicaid: PositiveFloat = 0.0
    private_pay: PositiveFloat = 0.0
    overall: PositiveFloat = 0.0


class OperatingMetrics(Model):
    """Census, payer mix and staffing profile of the facility."""

    current_census: PositiveInt = 0
    occupancy_rate: Percent = Field(..., description="Occupancy, percent (0-100)")
    occupancy_trend: OccupancyTrendEnum = OccupancyTrendEnum.STABLE
    payer_mix: PayerMix = Field(default_factory=PayerMix)
    case_mix_index: Optional[PositiveFloat] = None
    acuity_level: AcuityLevelEnum = AcuityLevelEnum.MODERATE
    staffing: StaffingMetrics = Field(default_factory=StaffingMetrics)
    average_los: LengthOfStay = Field(default_factory=LengthOfStay)

    # === FACTORY METHODS ===

    @classmethod
    def default_for(cls, facility: FacilityProfile) -> "OperatingMetrics":
        """
        Typical skilled nursing operating profile at 85% occupancy.

        Used when no operating data was supplied so downstream reporting has
        a complete record; engines still treat supplied-vs-defaulted data the
        same way.
        """
        return cls(
            current_census=round(facility.beds.operational * 0.85),
            occupancy_rate=85.0,
            occupancy_trend=OccupancyTrendEnum.STABLE,
            payer_mix=PayerMix(
                medicare_a=15,
                medicare_b=5,
                medicare_advantage=10,
                medicaid=55,
                private_pay=10,
                managed_care=3,
                va_contract=1,
                hospice=1,
                other=0,
            ),
            acuity_level=AcuityLevelEnum.MODERATE,
            staffing=StaffingMetrics(
                rn_hppd=0.5,
                lpn_hppd=0.8,
                cna_hppd=2.5,
                total_hppd=3.8,
                agency_usage_percent=8,
                turnover_rate=45,
            ),
            average_los=LengthOfStay(
                medicare=22, medicaid=180, private_pay=45, overall=90
            ),
        )
