"""
Charter Quote API Endpoints.

Center-fare quotes with negotiated override.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import MissingRatesError
from backend.app.db.session import get_db
from backend.app.domain.pricing.fare_calculator import QuoteExtras
from backend.app.domain.pricing.pricing_service import PricingService
from backend.app.schemas.pricing import QuoteRequest, QuoteResponse

router = APIRouter(prefix="/charters", tags=["Charters"])


@router.post("/quote", response_model=QuoteResponse)
async def quote_charter(
    payload: QuoteRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Quote a charter against the center's BASIC fares.

    Answers 422 ERR_MISSING_RATES with the partial breakdown when a region
    has no fare registered, unless the fare is negotiated.
    """
    breakdown = await PricingService.quote(
        db,
        center_id=payload.center_id,
        vehicle_type=payload.vehicle_type,
        regions=payload.regions,
        stop_count=payload.stop_count,
        extras=QuoteExtras(**payload.extras.model_dump()),
        is_negotiated=payload.is_negotiated,
        negotiated_fare=payload.negotiated_fare
    )

    quote = QuoteResponse(
        base_fare=breakdown.base_fare,
        region_fare=breakdown.region_fare,
        stop_fare=breakdown.stop_fare,
        extra_fare=breakdown.extra_fare,
        total=breakdown.total,
        metadata=breakdown.metadata
    )

    if quote.metadata.missing_rates and not payload.is_negotiated:
        raise MissingRatesError(quote.metadata.missing_rates, quote.model_dump())

    return quote
