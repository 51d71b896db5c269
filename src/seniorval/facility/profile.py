# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Facility Profile - Physical and Licensing Snapshot

Immutable description of the subject facility for one analysis: identity,
licensing identifiers, bed counts, physical plant and location classification.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator

from ..core.primitives import (
    AssetTypeEnum,
    LocationTypeEnum,
    Model,
    OwnershipTypeEnum,
    PositiveFloat,
    PositiveInt,
    RegionEnum,
)


class Address(Model):
    """Postal address of a facility."""

    street: str = ""
    city: str
    state: str = Field(..., description="Two-letter state code")
    zip: str = ""
    county: Optional[str] = None


class BedCounts(Model):
    """Licensed, certified and operational bed counts."""

    licensed: PositiveInt
    certified: PositiveInt = 0
    operational: PositiveInt

    @model_validator(mode="after")
    def validate_beds(self) -> "BedCounts":
        if self.operational > self.licensed:
            raise ValueError(
                f"Operational beds ({self.operational}) cannot exceed licensed beds ({self.licensed})"
            )
        return self


class RoomConfiguration(Model):
    private: PositiveInt = 0
    semi_private: PositiveInt = 0
    ward: Optional[PositiveInt] = None


class FacilityProfile(Model):
    """
    Physical, licensing and location snapshot of a senior housing facility.

    Attributes:
        id: Facility identifier owned by the deal record
        name: Facility name
        address: Postal address
        ccn: CMS certification number (SNF only)
        npi: National provider identifier
        asset_type: SNF, ALF or ILF
        beds: Licensed / certified / operational bed counts
        square_footage: Gross building area, if known
        acres: Site area, if known
        year_built: Original construction year
        year_renovated: Year of the last major renovation, if any
        location_type: Urban / suburban / rural / frontier
        region: Five-way US region

    Example:
        ```python
        facility = FacilityProfile(
            id="fac-1",
            name="Maple Grove Care Center",
            address=Address(city="Dayton", state="OH"),
            asset_type=AssetTypeEnum.SNF,
            beds=BedCounts(licensed=120, operational=120),
            year_built=1998,
            location_type=LocationTypeEnum.SUBURBAN,
            region=RegionEnum.MIDWEST,
        )
        ```
    """

    # === CORE IDENTITY ===
    id: str = Field(..., description="Facility identifier")
    name: str = Field(..., description="Facility name")
    address: Address
    ccn: Optional[str] = Field(default=None, description="CMS certification number")
    npi: Optional[str] = Field(default=None, description="National provider identifier")
    asset_type: AssetTypeEnum

    # === PHYSICAL PLANT ===
    beds: BedCounts
    square_footage: Optional[PositiveFloat] = None
    acres: Optional[PositiveFloat] = None
    year_built: PositiveInt = Field(..., description="Original construction year")
    year_renovated: Optional[PositiveInt] = None
    stories: PositiveInt = 1
    building_count: PositiveInt = 1
    room_configuration: RoomConfiguration = Field(default_factory=RoomConfiguration)

    # === OWNERSHIP & LOCATION ===
    ownership_type: OwnershipTypeEnum = OwnershipTypeEnum.FOR_PROFIT
    chain_affiliation: Optional[str] = None
    location_type: LocationTypeEnum = LocationTypeEnum.SUBURBAN
    region: RegionEnum

    # === VALIDATION ===
    @model_validator(mode="after")
    def validate_years(self) -> "FacilityProfile":
        """Renovation cannot predate construction."""
        if self.year_renovated is not None and self.year_renovated < self.year_built:
            raise ValueError(
                f"Renovation year ({self.year_renovated}) precedes year built ({self.year_built})"
            )
        return self

    # === COMPUTED PROPERTIES ===

    @property
    def operational_beds(self) -> int:
        return self.beds.operational

    @property
    def state(self) -> str:
        return self.address.state

    def age(self, as_of_year: int) -> int:
        """Building age in whole years, as of the given year."""
        return max(0, as_of_year - self.year_built)

    def effective_age(self, as_of_year: int) -> float:
        """
        Building age after renovation credit.

        A renovation reduces age by the years since construction that preceded
        it, capped at half of the building's actual age.

        Args:
            as_of_year: Year the age is measured in

        Returns:
            Effective age in years (never negative)
        """
        base_age = self.age(as_of_year)
        if self.year_renovated is None:
            return float(base_age)
        years_since_renovation = max(0, as_of_year - self.year_renovated)
        reduction = min(0.5 * base_age, base_age - years_since_renovation)
        return max(0.0, base_age - reduction)
