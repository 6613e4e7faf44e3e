"""
Pricing Service (Domain Logic).

Validate -> resolve -> calculate for the three fare flows:
- simplified rate calculation (RateBase/RateAddons)
- center-fare quote with negotiated override
- request fare for a stored trip (legacy per-unit CenterFare model)

Persistence of computed fares is left to the caller except for the
request-fare flow, which writes the trip when asked to.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import FareValidationError, ResourceNotFoundError
from backend.app.domain.pricing import fare_calculator
from backend.app.domain.pricing.fare_calculator import FareBreakdown, QuoteExtras, RequestFare
from backend.app.domain.pricing.rate_resolver import RateResolver
from backend.app.models.rate_enums import RateModel
from backend.app.models.trip import Trip

logger = logging.getLogger(__name__)


def validate_trip_route(regions: List[str], stop_count: int) -> None:
    """A trip has exactly one stop per listed region."""
    if stop_count != len(regions):
        raise FareValidationError.for_field(
            "stop_count",
            f"stop_count ({stop_count}) must equal the number of regions ({len(regions)})"
        )


def validate_adjustment(extra_adjustment: int, adjustment_reason: Optional[str]) -> None:
    if extra_adjustment and not (adjustment_reason or "").strip():
        raise FareValidationError.for_field(
            "adjustment_reason", "adjustment_reason is required when extra_adjustment is not zero"
        )


class PricingService:

    @staticmethod
    async def calculate_rates(
        db: AsyncSession,
        center_name: str,
        tonnage: str,
        regions: List[str],
        stops_total: int,
    ) -> FareBreakdown:
        """
        Simplified model breakdown.

        Missing components are reported in metadata["missing"]; the call
        still succeeds.
        """
        if not center_name or not center_name.strip():
            raise FareValidationError.for_field("center_name", "center_name is required")
        if not tonnage or not tonnage.strip():
            raise FareValidationError.for_field("tonnage", "tonnage is required")

        resolved = await RateResolver.resolve(
            db, center_name.strip(), tonnage.strip(), regions, RateModel.SIMPLIFIED
        )
        breakdown = fare_calculator.calculate_simplified(regions, stops_total, resolved.simplified)

        if resolved.missing:
            logger.info(
                "Simplified rate calculation for %s/%s missing %s",
                center_name, tonnage, [tag.value for tag in resolved.missing]
            )
        return breakdown

    @staticmethod
    async def quote(
        db: AsyncSession,
        center_id: str,
        vehicle_type: str,
        regions: List[str],
        stop_count: int,
        extras: Optional[QuoteExtras] = None,
        is_negotiated: bool = False,
        negotiated_fare: Optional[int] = None,
    ) -> FareBreakdown:
        """
        Center-fare quote.

        Input is validated before any lookup. A negotiated fare short-circuits
        the rate tables entirely.

        Raises:
            FareValidationError: On invalid input
        """
        fare_calculator.validate_quote_input(
            center_id, vehicle_type, regions, stop_count, is_negotiated, negotiated_fare
        )
        regions = [region.strip() for region in regions]

        if is_negotiated:
            return fare_calculator.negotiated_quote(regions, negotiated_fare)

        region_fares = await RateResolver.resolve_region_fares(
            db, center_id, vehicle_type, sorted(set(regions))
        )
        return fare_calculator.calculate_quote(regions, stop_count, region_fares, extras or QuoteExtras())

    @staticmethod
    async def calculate_trip_fare(
        db: AsyncSession,
        trip_id: int,
        regions: Optional[List[str]] = None,
        stop_count: Optional[int] = None,
        extra_adjustment: Optional[int] = None,
        adjustment_reason: Optional[str] = None,
        persist: bool = False,
    ) -> Tuple[Trip, RequestFare]:
        """
        Legacy request fare for a stored trip.

        Overrides replace the stored values for this calculation; with
        `persist` they are written back together with the computed fare
        fields. Caller commits.

        Raises:
            ResourceNotFoundError: If the trip does not exist
            FareValidationError: On an inconsistent route or adjustment
        """
        trip = await db.get(Trip, trip_id)
        if not trip:
            raise ResourceNotFoundError("Trip", trip_id)

        regions = regions if regions is not None else list(trip.regions or [])
        stop_count = stop_count if stop_count is not None else trip.stop_count
        extra_adjustment = extra_adjustment if extra_adjustment is not None else trip.extra_adjustment
        adjustment_reason = adjustment_reason if adjustment_reason is not None else trip.adjustment_reason

        if not trip.loading_point_id or not trip.vehicle_type:
            raise FareValidationError.for_field(
                "loading_point_id", "Trip needs a loading point and vehicle type for fare calculation"
            )
        if not fare_calculator.normalize_regions(regions):
            raise FareValidationError.for_field("regions", "At least one region is required")
        validate_trip_route(regions, stop_count)
        validate_adjustment(extra_adjustment, adjustment_reason)

        resolved = await RateResolver.resolve(
            db, trip.loading_point_id, trip.vehicle_type, regions, RateModel.CENTER_FARE
        )
        base_region = fare_calculator.normalize_regions(regions)[0]

        fare = fare_calculator.calculate_request_fare(
            regions,
            stop_count,
            resolved.region_fares.get(base_region),
            resolved.stop_fee,
            extra_adjustment=extra_adjustment,
        )

        if persist:
            trip.regions = list(regions)
            trip.stop_count = stop_count
            trip.extra_adjustment = extra_adjustment
            trip.adjustment_reason = adjustment_reason
            trip.base_fare = fare.base_fare
            trip.extra_stop_fee = fare.extra_stop_fee
            trip.extra_region_fee = fare.extra_region_fee
            await db.flush()
            logger.info("Persisted fare for trip %s: total=%d", trip.id, fare.total)

        return trip, fare
