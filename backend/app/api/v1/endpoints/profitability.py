"""
Profitability API Endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.domain.billing.profitability import ProfitabilityEvaluator
from backend.app.schemas.billing import MonthlyProfitabilityResponse, YEAR_MONTH_REGEX

router = APIRouter(prefix="/profitability", tags=["Profitability"])


@router.get("/monthly", response_model=MonthlyProfitabilityResponse)
async def get_monthly_profitability(
    year_month: str = Query(..., pattern=YEAR_MONTH_REGEX, description="Month as YYYY-MM"),
    db: AsyncSession = Depends(get_db)
):
    """
    Profitability of every trip in the month.

    Returns per-trip results, totals, the overall margin rate and a count
    per status.
    """
    report = await ProfitabilityEvaluator.monthly_report(db, year_month)
    return MonthlyProfitabilityResponse.model_validate(report)
