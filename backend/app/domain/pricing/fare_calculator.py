"""
Fare Calculator (Domain Logic).

Pure fare arithmetic for both rate models. Nothing here touches the
database; rates arrive already resolved (see rate_resolver.py).

All amounts are integers in won, so every total is an exact sum.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from backend.app.core.exceptions import FareValidationError
from backend.app.models.rate_enums import MissingRate


@dataclass
class SimplifiedRates:
    """Resolved RateBase/RateAddons values; missing components are 0 and tagged."""
    base_fare: int = 0
    per_stop: int = 0
    per_waypoint: int = 0
    missing: List[MissingRate] = field(default_factory=list)


@dataclass
class StopFeeRates:
    """Per-unit surcharges from a CenterFare STOP_FEE row."""
    extra_stop_fee: int = 0
    extra_region_fee: int = 0


@dataclass
class QuoteExtras:
    """Caller-supplied surcharges for a center-fare quote."""
    region_move: int = 0  # Applied when 2+ distinct regions
    stop_extra: int = 0  # Applied when 2+ stops
    misc: int = 0


@dataclass
class FareBreakdown:
    """
    Fare breakdown shared by both rate models.

    Simplified model: total == base_fare + call_fee + waypoint_fee.
    Center-fare model: total == base_fare + region_fare + stop_fare + extra_fare.
    The fields of the other model stay 0.
    """
    base_fare: int = 0
    call_fee: int = 0
    waypoint_fee: int = 0
    region_fare: int = 0
    stop_fare: int = 0
    extra_fare: int = 0
    total: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_fare": self.base_fare,
            "call_fee": self.call_fee,
            "waypoint_fee": self.waypoint_fee,
            "region_fare": self.region_fare,
            "stop_fare": self.stop_fare,
            "extra_fare": self.extra_fare,
            "total": self.total,
            "metadata": self.metadata,
        }


@dataclass
class RequestFare:
    """Computed fare fields for a stored trip (legacy per-unit model)."""
    base_fare: int
    extra_stop_fee: int
    extra_region_fee: int
    subtotal: int
    extra_adjustment: int
    total: int
    missing: List[MissingRate] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def normalize_regions(regions: Optional[List[str]]) -> List[str]:
    """
    Trim, drop blanks and de-duplicate, keeping first-seen order.

    The first entry of the result is the base region.
    """
    seen = set()
    normalized = []
    for region in regions or []:
        if region is None:
            continue
        name = str(region).strip()
        if not name or name in seen:
            continue
        seen.add(name)
        normalized.append(name)
    return normalized


def extra_stop_count(stops_total: int) -> int:
    """X = max(stops_total - 1, 0)."""
    return max(stops_total - 1, 0)


def extra_region_count(distinct_regions: int) -> int:
    """Y = max(distinct_regions - 1, 0)."""
    return max(distinct_regions - 1, 0)


def calculate_simplified(regions: List[str], stops_total: int, rates: SimplifiedRates) -> FareBreakdown:
    """
    Simplified model fare.

    total = base_fare + X * per_stop + Y * per_waypoint

    Args:
        regions: Ordered destination regions (normalized here)
        stops_total: Total number of stops on the trip
        rates: Rates resolved for regions[0] and the (center, tonnage) add-ons

    Returns:
        FareBreakdown with `missing` tags in metadata
    """
    if stops_total < 0:
        raise FareValidationError.for_field("stops_total", "stops_total must not be negative")

    unique_regions = normalize_regions(regions)
    x = extra_stop_count(stops_total)
    y = extra_region_count(len(unique_regions))

    call_fee = x * rates.per_stop
    waypoint_fee = y * rates.per_waypoint

    return FareBreakdown(
        base_fare=rates.base_fare,
        call_fee=call_fee,
        waypoint_fee=waypoint_fee,
        total=rates.base_fare + call_fee + waypoint_fee,
        metadata={
            "base_region": unique_regions[0] if unique_regions else None,
            "unique_regions": unique_regions,
            "extra_stops": x,
            "extra_regions": y,
            "per_stop": rates.per_stop,
            "per_waypoint": rates.per_waypoint,
            "missing": [tag.value for tag in rates.missing],
        },
    )


def validate_quote_input(
    center_id: Optional[str],
    vehicle_type: Optional[str],
    regions: Optional[List[str]],
    stop_count: int,
    is_negotiated: bool,
    negotiated_fare: Optional[int],
) -> None:
    """
    Reject a quote request before any rate lookup.

    Raises:
        FareValidationError: With one {field, message} entry per problem.
    """
    errors = []

    if not center_id:
        errors.append({"field": "center_id", "message": "center_id is required"})

    if not vehicle_type:
        errors.append({"field": "vehicle_type", "message": "vehicle_type is required"})

    if not regions:
        errors.append({"field": "regions", "message": "At least one region is required"})
    else:
        if stop_count != len(regions):
            errors.append({
                "field": "stop_count",
                "message": f"stop_count ({stop_count}) must equal the number of regions ({len(regions)})"
            })
        names = [region.strip() for region in regions]
        if not all(names):
            errors.append({"field": "regions", "message": "Region names must not be blank"})
        elif len(set(names)) != len(names):
            errors.append({"field": "regions", "message": "Duplicate regions are not allowed"})

    if is_negotiated and (negotiated_fare is None or negotiated_fare < 0):
        errors.append({
            "field": "negotiated_fare",
            "message": "A non-negative negotiated_fare is required when is_negotiated is set"
        })

    if errors:
        raise FareValidationError(errors)


def negotiated_quote(regions: List[str], negotiated_fare: int) -> FareBreakdown:
    """A negotiated fare replaces the whole calculation."""
    return FareBreakdown(
        total=negotiated_fare,
        metadata={
            "base_region": None,
            "unique_regions": list(regions),
            "max_fare_region": None,
            "missing_rates": [],
        },
    )


def calculate_quote(
    regions: List[str],
    stop_count: int,
    region_fares: Dict[str, int],
    extras: QuoteExtras,
) -> FareBreakdown:
    """
    Center-fare model quote for already validated input.

    Base fare is the highest BASIC fare among the distinct regions. Regions
    without a row are listed in metadata.missing_rates and contribute nothing.

    Args:
        regions: Validated destination regions
        stop_count: Number of stops (equal to len(regions))
        region_fares: BASIC fare per region, only for regions that have a row
        extras: Caller-supplied surcharges
    """
    unique_regions = sorted(set(regions))
    missing_rates = [region for region in unique_regions if region not in region_fares]

    base_fare = 0
    max_fare_region = None
    for region in unique_regions:
        fare = region_fares.get(region)
        if fare is not None and (max_fare_region is None or fare > base_fare):
            base_fare = fare
            max_fare_region = region

    region_fare = extras.region_move if len(unique_regions) >= 2 else 0
    stop_fare = extras.stop_extra if stop_count >= 2 else 0
    extra_fare = extras.misc

    return FareBreakdown(
        base_fare=base_fare,
        region_fare=region_fare,
        stop_fare=stop_fare,
        extra_fare=extra_fare,
        total=base_fare + region_fare + stop_fare + extra_fare,
        metadata={
            "base_region": max_fare_region,
            "unique_regions": unique_regions,
            "max_fare_region": max_fare_region,
            "missing_rates": missing_rates,
        },
    )


def calculate_request_fare(
    regions: List[str],
    stop_count: int,
    base_fare: Optional[int],
    stop_fee: Optional[StopFeeRates],
    extra_adjustment: int = 0,
) -> RequestFare:
    """
    Legacy per-unit request fare.

    extra_stop_fee   = max(stop_count - 1, 0) * per-stop fee
    extra_region_fee = max(distinct_regions - 1, 0) * per-region fee
    total            = base + extra_stop_fee + extra_region_fee + extra_adjustment

    A missing row counts as 0 and is reported, never replaced by a guess.
    """
    unique_regions = normalize_regions(regions)
    missing = []
    warnings = []

    if base_fare is None:
        missing.append(MissingRate.BASE)
        warnings.append(f"No BASIC fare registered for region '{unique_regions[0] if unique_regions else ''}'")
        base_fare = 0

    if stop_fee is None:
        missing.extend([MissingRate.CALL, MissingRate.WAYPOINT])
        warnings.append("No STOP_FEE row registered for this loading point and vehicle type")
        stop_fee = StopFeeRates()

    extra_stop_fee = extra_stop_count(stop_count) * stop_fee.extra_stop_fee
    extra_region_fee = extra_region_count(len(unique_regions)) * stop_fee.extra_region_fee
    subtotal = base_fare + extra_stop_fee + extra_region_fee

    return RequestFare(
        base_fare=base_fare,
        extra_stop_fee=extra_stop_fee,
        extra_region_fee=extra_region_fee,
        subtotal=subtotal,
        extra_adjustment=extra_adjustment,
        total=subtotal + extra_adjustment,
        missing=missing,
        warnings=warnings,
    )
