"""
Rate API Endpoints.

Simplified rate calculation and rate registration for both rate models.
Duplicate registrations are not errors: they answer 200 with skipped=true.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.domain.pricing.pricing_service import PricingService
from backend.app.domain.pricing.rate_resolver import InsertOutcome, RateResolver
from backend.app.schemas.pricing import (
    RateBaseCreate, RateBaseResponse, RateAddonsCreate, RateAddonsResponse,
    CenterFareCreate, CenterFareResponse, RateInsertResponse,
    RateBaseBulkCreate, RateBulkInsertResponse,
    RateCalculationResponse, RateCalculationMeta
)

router = APIRouter(prefix="/rates", tags=["Rates"])
center_fare_router = APIRouter(prefix="/center-fares", tags=["Rates"])


def _insert_response(outcome: InsertOutcome, schema, label: str, response: Response) -> RateInsertResponse:
    data = schema.model_validate(outcome.row).model_dump(mode="json")
    if outcome.created:
        response.status_code = status.HTTP_201_CREATED
        return RateInsertResponse(data=data)

    response.status_code = status.HTTP_200_OK
    return RateInsertResponse(
        skipped=True,
        message=f"Rate already registered ({label})",
        data=data
    )


@router.get("/calculate", response_model=RateCalculationResponse)
async def calculate_rates(
    center_name: str = Query(..., min_length=1),
    tonnage: str = Query(..., min_length=1),
    regions: str = Query("", description="Comma separated regions; the first is the base region"),
    stops_total: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db)
):
    """
    Simplified fare: base_fare + X * per_stop + Y * per_waypoint.

    Missing rate components are reported in meta.missing (BASE, CALL,
    WAYPOINT); the calculation itself still succeeds.
    """
    region_list = regions.split(",") if regions else []
    breakdown = await PricingService.calculate_rates(db, center_name, tonnage, region_list, stops_total)

    return RateCalculationResponse(
        base_fare=breakdown.base_fare,
        call_fee=breakdown.call_fee,
        waypoint_fee=breakdown.waypoint_fee,
        total=breakdown.total,
        meta=RateCalculationMeta(
            base_region=breakdown.metadata["base_region"],
            distinct_regions=len(breakdown.metadata["unique_regions"]),
            x=breakdown.metadata["extra_stops"],
            y=breakdown.metadata["extra_regions"],
            per_stop=breakdown.metadata["per_stop"],
            per_waypoint=breakdown.metadata["per_waypoint"],
            missing=breakdown.metadata["missing"]
        )
    )


@router.post("/base", response_model=RateInsertResponse, status_code=status.HTTP_201_CREATED)
async def create_rate_base(
    payload: RateBaseCreate,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Register a base fare for (center, tonnage, region)."""
    outcome = await RateResolver.add_rate_base(
        db, payload.center_name, payload.tonnage, payload.region, payload.base_fare
    )
    await db.commit()

    label = f"{payload.center_name} - {payload.tonnage} - {payload.region}"
    return _insert_response(outcome, RateBaseResponse, label, response)


@router.post("/base/bulk", response_model=RateBulkInsertResponse)
async def create_rate_bases_bulk(
    payload: RateBaseBulkCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register many base fares; rows already present are counted as skipped."""
    result = await RateResolver.add_rate_bases_bulk(db, [row.model_dump() for row in payload.rows])
    await db.commit()

    return RateBulkInsertResponse(
        created=result.created,
        skipped=result.skipped,
        total=len(payload.rows)
    )


@router.post("/addons", response_model=RateInsertResponse, status_code=status.HTTP_201_CREATED)
async def create_rate_addons(
    payload: RateAddonsCreate,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Register per-stop and per-waypoint add-ons for (center, tonnage)."""
    outcome = await RateResolver.add_rate_addons(
        db, payload.center_name, payload.tonnage, payload.per_stop, payload.per_waypoint
    )
    await db.commit()

    label = f"{payload.center_name} - {payload.tonnage}"
    return _insert_response(outcome, RateAddonsResponse, label, response)


@center_fare_router.post("", response_model=RateInsertResponse, status_code=status.HTTP_201_CREATED)
async def create_center_fare(
    payload: CenterFareCreate,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Register a legacy center fare (BASIC per region, or the STOP_FEE row)."""
    outcome = await RateResolver.add_center_fare(
        db,
        loading_point_id=payload.loading_point_id,
        vehicle_type=payload.vehicle_type,
        fare_type=payload.fare_type,
        region=payload.region,
        base_fare=payload.base_fare,
        extra_stop_fee=payload.extra_stop_fee,
        extra_region_fee=payload.extra_region_fee
    )
    await db.commit()

    label = f"{payload.loading_point_id} - {payload.vehicle_type} - {payload.region or payload.fare_type.value}"
    return _insert_response(outcome, CenterFareResponse, label, response)
