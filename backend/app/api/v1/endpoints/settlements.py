"""
Settlement API Endpoints.

Monthly driver settlements: preview, finalize (idempotent), edits while
DRAFT, then confirm and payment. Wrong-state operations answer 409.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.domain.billing.settlement_engine import SettlementEngine
from backend.app.models.billing_enums import SettlementStatus
from backend.app.schemas.billing import (
    SettlementPreviewRequest, SettlementPreviewResponse, SettlementItemResponse,
    SettlementCreate, SettlementUpdate, SettlementConfirm,
    SettlementResponse, SettlementListResponse, YEAR_MONTH_REGEX
)

router = APIRouter(prefix="/settlements", tags=["Settlements"])


@router.post("/preview", response_model=SettlementPreviewResponse)
async def preview_settlement(
    payload: SettlementPreviewRequest,
    db: AsyncSession = Depends(get_db)
):
    """Projected settlement for a driver and month. Nothing is saved."""
    preview = await SettlementEngine.preview(db, payload.driver_id, payload.year_month)
    calc = preview.calculation

    return SettlementPreviewResponse(
        driver_id=preview.driver_id,
        driver_name=preview.driver_name,
        year_month=preview.year_month,
        total_trips=calc.total_trips,
        total_base_fare=calc.total_base_fare,
        total_additions=calc.total_additions,
        total_deductions=calc.total_deductions,
        final_amount=calc.final_amount,
        items=[SettlementItemResponse.model_validate(item) for item in calc.items],
        warnings=preview.warnings,
        can_confirm=preview.can_confirm,
        existing_settlement_id=preview.existing_settlement_id,
        existing_status=preview.existing_status
    )


@router.post("", response_model=SettlementResponse, status_code=status.HTTP_201_CREATED)
async def finalize_settlement(
    payload: SettlementCreate,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """
    Create the DRAFT settlement for (driver, month).

    Idempotent: when it already exists the existing row is returned with 200.
    """
    outcome = await SettlementEngine.finalize(db, payload.driver_id, payload.year_month, payload.created_by)
    await db.commit()

    if not outcome.created:
        response.status_code = status.HTTP_200_OK
    return outcome.settlement


@router.get("", response_model=SettlementListResponse)
async def list_settlements(
    driver_id: Optional[int] = Query(None),
    year_month: Optional[str] = Query(None, pattern=YEAR_MONTH_REGEX),
    settlement_status: Optional[SettlementStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    db: AsyncSession = Depends(get_db)
):
    settlements, total = await SettlementEngine.list(
        db,
        driver_id=driver_id,
        year_month=year_month,
        status=settlement_status,
        page=page,
        page_size=page_size
    )
    return SettlementListResponse(
        settlements=[SettlementResponse.model_validate(s) for s in settlements],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{settlement_id}", response_model=SettlementResponse)
async def get_settlement(
    settlement_id: int = Path(..., description="Settlement ID"),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementEngine.get(db, settlement_id)


@router.patch("/{settlement_id}", response_model=SettlementResponse)
async def update_settlement(
    payload: SettlementUpdate,
    settlement_id: int = Path(..., description="Settlement ID"),
    db: AsyncSession = Depends(get_db)
):
    """Edit the remarks of a DRAFT settlement."""
    settlement = await SettlementEngine.update(db, settlement_id, remarks=payload.remarks)
    await db.commit()
    return settlement


@router.post("/{settlement_id}/recalculate", response_model=SettlementResponse)
async def recalculate_settlement(
    settlement_id: int = Path(..., description="Settlement ID"),
    db: AsyncSession = Depends(get_db)
):
    """Rebuild a DRAFT settlement from the current dispatches."""
    settlement = await SettlementEngine.recalculate(db, settlement_id)
    await db.commit()
    return settlement


@router.post("/{settlement_id}/confirm", response_model=SettlementResponse)
async def confirm_settlement(
    payload: SettlementConfirm,
    settlement_id: int = Path(..., description="Settlement ID"),
    db: AsyncSession = Depends(get_db)
):
    """DRAFT -> CONFIRMED. Totals are refreshed and locked."""
    settlement = await SettlementEngine.confirm(db, settlement_id, payload.user_id)
    await db.commit()
    return settlement


@router.post("/{settlement_id}/paid", response_model=SettlementResponse)
async def mark_settlement_paid(
    settlement_id: int = Path(..., description="Settlement ID"),
    db: AsyncSession = Depends(get_db)
):
    """CONFIRMED -> PAID."""
    settlement = await SettlementEngine.mark_paid(db, settlement_id)
    await db.commit()
    return settlement


@router.delete("/{settlement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_settlement(
    settlement_id: int = Path(..., description="Settlement ID"),
    db: AsyncSession = Depends(get_db)
):
    """Delete a DRAFT settlement."""
    await SettlementEngine.delete(db, settlement_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
