"""
Transport Request API Endpoints.

Trip intake, request fare calculation, driver dispatch and per-trip
profitability.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.db.session import get_db
from backend.app.domain.billing.profitability import ProfitabilityEvaluator
from backend.app.domain.dispatch.dispatch_service import DispatchService
from backend.app.domain.pricing.pricing_service import PricingService
from backend.app.models.trip import Trip
from backend.app.schemas.billing import ProfitabilityResponse
from backend.app.schemas.pricing import RequestFareCalculate, RequestFareResponse
from backend.app.schemas.trip import TripCreate, TripResponse, DispatchCreate, DispatchResponse

router = APIRouter(prefix="/requests", tags=["Requests"])


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    payload: TripCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register a transport request. stop_count must match the regions."""
    trip = await DispatchService.create_trip(db, **payload.model_dump())
    await db.commit()
    return trip


@router.get("/{trip_id}", response_model=TripResponse)
async def get_request(
    trip_id: int = Path(..., description="Trip ID"),
    db: AsyncSession = Depends(get_db)
):
    trip = await db.get(Trip, trip_id)
    if not trip:
        raise ResourceNotFoundError("Trip", trip_id)
    return trip


@router.post("/{trip_id}/calculate-fare", response_model=RequestFareResponse)
async def calculate_request_fare(
    payload: RequestFareCalculate,
    trip_id: int = Path(..., description="Trip ID"),
    db: AsyncSession = Depends(get_db)
):
    """
    Legacy per-unit fare for a stored trip.

    Body fields override the stored route for this calculation. With
    persist=true the computed fare fields are written to the trip.
    """
    trip, fare = await PricingService.calculate_trip_fare(
        db,
        trip_id,
        regions=payload.regions,
        stop_count=payload.stop_count,
        extra_adjustment=payload.extra_adjustment,
        adjustment_reason=payload.adjustment_reason,
        persist=payload.persist
    )
    if payload.persist:
        await db.commit()

    return RequestFareResponse(
        trip_id=trip.id,
        base_fare=fare.base_fare,
        extra_stop_fee=fare.extra_stop_fee,
        extra_region_fee=fare.extra_region_fee,
        subtotal=fare.subtotal,
        extra_adjustment=fare.extra_adjustment,
        total=fare.total,
        missing=[tag.value for tag in fare.missing],
        warnings=fare.warnings,
        persisted=payload.persist
    )


@router.post("/{trip_id}/dispatches", response_model=DispatchResponse, status_code=status.HTTP_201_CREATED)
async def create_dispatch(
    payload: DispatchCreate,
    trip_id: int = Path(..., description="Trip ID"),
    db: AsyncSession = Depends(get_db)
):
    """Assign a driver. Name, phone and vehicle number are copied onto the dispatch."""
    dispatch = await DispatchService.assign_driver(
        db,
        trip_id=trip_id,
        driver_id=payload.driver_id,
        driver_fee=payload.driver_fee,
        extra_fare=payload.extra_fare,
        deduction_amount=payload.deduction_amount,
        notes=payload.notes
    )
    await db.commit()
    return dispatch


@router.get("/{trip_id}/profitability", response_model=ProfitabilityResponse)
async def get_request_profitability(
    trip_id: int = Path(..., description="Trip ID"),
    db: AsyncSession = Depends(get_db)
):
    result = await ProfitabilityEvaluator.evaluate_trip(db, trip_id)
    return ProfitabilityResponse.model_validate(result)
