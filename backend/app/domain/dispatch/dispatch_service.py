"""
Dispatch Service (Domain Logic).

Trip intake and driver assignment. A dispatch keeps a value copy of the
driver's identity taken at assignment time; later driver edits do not
reach past dispatches or the settlements built from them.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import BusinessRuleError, FareValidationError, ResourceNotFoundError
from backend.app.domain.pricing.pricing_service import validate_adjustment, validate_trip_route
from backend.app.models.dispatch import Dispatch
from backend.app.models.driver import Driver
from backend.app.models.trip import Trip

logger = logging.getLogger(__name__)


class DispatchService:

    @staticmethod
    async def create_trip(
        db: AsyncSession,
        center_name: str,
        vehicle_tonnage: str,
        trip_date: date,
        regions: List[str],
        stop_count: int,
        loading_point_id: Optional[str] = None,
        vehicle_type: Optional[str] = None,
        is_negotiated: bool = False,
        negotiated_fare: Optional[int] = None,
        extra_adjustment: int = 0,
        adjustment_reason: Optional[str] = None,
        center_billing_total: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Trip:
        """
        Register a transport request.

        Raises:
            FareValidationError: If the route or adjustment is inconsistent.
        """
        regions = [region.strip() for region in regions if region and region.strip()]
        if not regions:
            raise FareValidationError.for_field("regions", "At least one region is required")

        validate_trip_route(regions, stop_count)
        validate_adjustment(extra_adjustment, adjustment_reason)

        if is_negotiated and (negotiated_fare is None or negotiated_fare < 0):
            raise FareValidationError.for_field(
                "negotiated_fare", "A non-negative negotiated_fare is required when is_negotiated is set"
            )

        trip = Trip(
            center_name=center_name.strip(),
            loading_point_id=loading_point_id,
            vehicle_type=vehicle_type,
            vehicle_tonnage=vehicle_tonnage.strip(),
            trip_date=trip_date,
            regions=regions,
            stop_count=stop_count,
            is_negotiated=is_negotiated,
            negotiated_fare=negotiated_fare,
            extra_adjustment=extra_adjustment,
            adjustment_reason=adjustment_reason,
            center_billing_total=center_billing_total,
            notes=notes
        )
        db.add(trip)
        await db.flush()
        await db.refresh(trip)

        logger.info("Created trip %s for %s on %s", trip.id, trip.center_name, trip.trip_date)
        return trip

    @staticmethod
    async def assign_driver(
        db: AsyncSession,
        trip_id: int,
        driver_id: int,
        driver_fee: int,
        extra_fare: int = 0,
        deduction_amount: int = 0,
        notes: Optional[str] = None,
    ) -> Dispatch:
        """
        Create a dispatch with the driver's current name, phone and vehicle.

        Raises:
            ResourceNotFoundError: Unknown trip or driver
            BusinessRuleError: Inactive driver
        """
        trip = await db.get(Trip, trip_id)
        if not trip:
            raise ResourceNotFoundError("Trip", trip_id)

        driver = await db.get(Driver, driver_id)
        if not driver:
            raise ResourceNotFoundError("Driver", driver_id)

        if not driver.is_active:
            raise BusinessRuleError(
                f"Driver {driver.name} is inactive and cannot be dispatched",
                details={"driver_id": driver_id}
            )

        for name, value in (("driver_fee", driver_fee), ("extra_fare", extra_fare), ("deduction_amount", deduction_amount)):
            if value < 0:
                raise FareValidationError.for_field(name, f"{name} must not be negative")

        dispatch = Dispatch(
            trip=trip,
            driver_id=driver.id,
            driver_fee=driver_fee,
            extra_fare=extra_fare,
            deduction_amount=deduction_amount,
            driver_name=driver.name,
            driver_phone=driver.phone,
            driver_vehicle_number=driver.vehicle_number,
            notes=notes
        )
        db.add(dispatch)
        await db.flush()
        await db.refresh(dispatch)

        logger.info("Dispatched driver %s to trip %s (fee=%d)", driver.id, trip.id, driver_fee)
        return dispatch
