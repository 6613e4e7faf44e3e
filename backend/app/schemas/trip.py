"""
Trip and Dispatch Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Optional, List


class TripCreate(BaseModel):
    """
    Schema for registering a transport request.

    stop_count must equal the number of regions; a non-zero
    extra_adjustment needs a reason. Both are checked on creation.
    """
    center_name: str = Field(..., min_length=1, max_length=100)
    loading_point_id: Optional[str] = Field(None, max_length=64)
    vehicle_type: Optional[str] = Field(None, max_length=20)
    vehicle_tonnage: str = Field(..., min_length=1, max_length=20)
    trip_date: date
    regions: List[str] = Field(..., min_length=1)
    stop_count: int = Field(..., ge=1)
    is_negotiated: bool = False
    negotiated_fare: Optional[int] = Field(None, ge=0)
    extra_adjustment: int = 0
    adjustment_reason: Optional[str] = Field(None, max_length=255)
    center_billing_total: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class TripResponse(BaseModel):
    id: int
    center_name: str
    loading_point_id: Optional[str]
    vehicle_type: Optional[str]
    vehicle_tonnage: str
    trip_date: date
    regions: List[str]
    stop_count: int
    is_negotiated: bool
    negotiated_fare: Optional[int]
    extra_adjustment: int
    adjustment_reason: Optional[str]
    base_fare: Optional[int]
    extra_stop_fee: Optional[int]
    extra_region_fee: Optional[int]
    center_billing_total: Optional[int]
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class DispatchCreate(BaseModel):
    driver_id: int
    driver_fee: int = Field(..., ge=0)
    extra_fare: int = Field(0, ge=0)
    deduction_amount: int = Field(0, ge=0)
    notes: Optional[str] = Field(None, max_length=255)


class DispatchResponse(BaseModel):
    """Dispatch with the driver identity captured at assignment time."""
    id: int
    trip_id: int
    driver_id: int
    driver_fee: int
    extra_fare: int
    deduction_amount: int
    driver_name: str
    driver_phone: str
    driver_vehicle_number: Optional[str]
    notes: Optional[str]
    assigned_at: datetime

    class Config:
        from_attributes = True
