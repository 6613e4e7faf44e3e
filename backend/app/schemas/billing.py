"""
Billing Schemas.

Settlements, settlement items and profitability.
"""

from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Optional, List, Dict
from backend.app.models.billing_enums import SettlementStatus, SettlementItemType, ProfitabilityStatus

YEAR_MONTH_REGEX = r"^\d{4}-(0[1-9]|1[0-2])$"


class SettlementPreviewRequest(BaseModel):
    driver_id: int
    year_month: str = Field(..., pattern=YEAR_MONTH_REGEX, examples=["2024-03"])


class SettlementCreate(BaseModel):
    """Finalize a DRAFT settlement for (driver, month)."""
    driver_id: int
    year_month: str = Field(..., pattern=YEAR_MONTH_REGEX, examples=["2024-03"])
    created_by: Optional[int] = None


class SettlementUpdate(BaseModel):
    """DRAFT-only edits; totals are always derived from dispatches."""
    remarks: Optional[str] = Field(None, max_length=2000)


class SettlementConfirm(BaseModel):
    user_id: int


class SettlementItemResponse(BaseModel):
    id: Optional[int] = None
    dispatch_id: Optional[int]
    type: SettlementItemType
    description: str
    amount: int
    item_date: date

    class Config:
        from_attributes = True


class SettlementResponse(BaseModel):
    """Schema for displaying settlements."""
    id: int
    driver_id: int
    year_month: str
    total_trips: int
    total_base_fare: int
    total_additions: int
    total_deductions: int
    final_amount: int
    status: SettlementStatus
    remarks: Optional[str]
    created_by: Optional[int]
    confirmed_by: Optional[int]
    confirmed_at: Optional[datetime]
    paid_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    items: List[SettlementItemResponse] = []

    class Config:
        from_attributes = True


class SettlementListResponse(BaseModel):
    settlements: List[SettlementResponse]
    total: int
    page: int
    page_size: int


class SettlementPreviewResponse(BaseModel):
    """Unsaved projection of a settlement."""
    driver_id: int
    driver_name: str
    year_month: str
    total_trips: int
    total_base_fare: int
    total_additions: int
    total_deductions: int
    final_amount: int
    items: List[SettlementItemResponse]
    warnings: List[str]
    can_confirm: bool
    existing_settlement_id: Optional[int] = None
    existing_status: Optional[SettlementStatus] = None


class ProfitabilityResponse(BaseModel):
    trip_id: Optional[int] = None
    center_billing: int
    driver_fee: int
    margin: int
    margin_rate: float
    status: ProfitabilityStatus
    recommendation: Optional[str] = None
    recommended_driver_fee: Optional[int] = None
    summary: str

    class Config:
        from_attributes = True


class MonthlyProfitabilityResponse(BaseModel):
    year_month: str
    total_center_billing: int
    total_driver_fee: int
    total_margin: int
    margin_rate: float
    status_counts: Dict[str, int]
    trips: List[ProfitabilityResponse]

    class Config:
        from_attributes = True
