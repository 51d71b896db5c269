# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Facility Data Models

Inputs describing the subject facility and its context: physical profile,
CMS regulatory snapshot, operating metrics, market indicators and closed
comparable sales.
"""

from .cms import CMSData, QualityMeasures
from .market import ComparableAddress, ComparableSale, MarketData
from .operations import LengthOfStay, OperatingMetrics, PayerMix, StaffingMetrics
from .profile import Address, BedCounts, FacilityProfile, RoomConfiguration

__all__ = [
    "Address",
    "BedCounts",
    "CMSData",
    "ComparableAddress",
    "ComparableSale",
    "FacilityProfile",
    "LengthOfStay",
    "MarketData",
    "OperatingMetrics",
    "PayerMix",
    "QualityMeasures",
    "RoomConfiguration",
    "StaffingMetrics",
]
