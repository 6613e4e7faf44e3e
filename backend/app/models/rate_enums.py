"""
Rate table enumerations.
"""

import enum


class RateModel(str, enum.Enum):
    """
    Rate model selected explicitly by the caller.

    SIMPLIFIED: RateBase + RateAddons keyed by center name and tonnage.
    CENTER_FARE: legacy CenterFare rows keyed by loading point and vehicle type.
    """
    SIMPLIFIED = "SIMPLIFIED"
    CENTER_FARE = "CENTER_FARE"


class FareType(str, enum.Enum):
    """CenterFare row type."""
    BASIC = "BASIC"  # Per-region base fare
    STOP_FEE = "STOP_FEE"  # Per-unit stop/region surcharges, no region


class MissingRate(str, enum.Enum):
    """Symbolic tags for rate components that could not be resolved."""
    BASE = "BASE"
    CALL = "CALL"
    WAYPOINT = "WAYPOINT"


class InsertStatus(str, enum.Enum):
    """Outcome of a rate row insert."""
    CREATED = "CREATED"
    SKIPPED = "SKIPPED"  # Same key already present; not an error
