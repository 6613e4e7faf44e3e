"""
Pricing Schemas.

Rate rows, rate inserts and fare breakdowns.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict, Any
from backend.app.models.rate_enums import FareType


# Rate rows

class RateBaseCreate(BaseModel):
    """Schema for registering a base fare (simplified model)."""
    center_name: str = Field(..., min_length=1, max_length=100)
    tonnage: str = Field(..., min_length=1, max_length=20)
    region: str = Field(..., min_length=1, max_length=50)
    base_fare: int = Field(..., ge=0)


class RateBaseResponse(BaseModel):
    id: int
    center_name: str
    tonnage: str
    region: str
    base_fare: int
    created_at: datetime

    class Config:
        from_attributes = True


class RateAddonsCreate(BaseModel):
    """Schema for registering per-stop/per-waypoint add-ons (simplified model)."""
    center_name: str = Field(..., min_length=1, max_length=100)
    tonnage: str = Field(..., min_length=1, max_length=20)
    per_stop: int = Field(..., ge=0)
    per_waypoint: int = Field(..., ge=0)


class RateAddonsResponse(BaseModel):
    id: int
    center_name: str
    tonnage: str
    per_stop: int
    per_waypoint: int
    created_at: datetime

    class Config:
        from_attributes = True


class CenterFareCreate(BaseModel):
    """
    Schema for registering a legacy center fare.

    Fare-type field rules are checked by the rate resolver.
    """
    loading_point_id: str = Field(..., min_length=1, max_length=64)
    vehicle_type: str = Field(..., min_length=1, max_length=20)
    fare_type: FareType = FareType.BASIC
    region: Optional[str] = Field(None, max_length=50)
    base_fare: Optional[int] = Field(None, ge=0)
    extra_stop_fee: Optional[int] = Field(None, ge=0)
    extra_region_fee: Optional[int] = Field(None, ge=0)


class CenterFareResponse(BaseModel):
    id: int
    loading_point_id: str
    vehicle_type: str
    fare_type: FareType
    region: Optional[str]
    base_fare: Optional[int]
    extra_stop_fee: Optional[int]
    extra_region_fee: Optional[int]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RateInsertResponse(BaseModel):
    """Insert outcome. `skipped` means the key was already registered."""
    ok: bool = True
    skipped: bool = False
    message: Optional[str] = None
    data: Dict[str, Any]


class RateBaseBulkCreate(BaseModel):
    rows: List[RateBaseCreate] = Field(..., min_length=1, max_length=1000)


class RateBulkInsertResponse(BaseModel):
    ok: bool = True
    created: int
    skipped: int
    total: int


# Fare calculation

class RateCalculationMeta(BaseModel):
    base_region: Optional[str]
    distinct_regions: int
    x: int = Field(..., description="Extra stops: max(stops_total - 1, 0)")
    y: int = Field(..., description="Extra regions: max(distinct_regions - 1, 0)")
    per_stop: int = Field(..., description="Per-stop rate applied to x")
    per_waypoint: int = Field(..., description="Per-waypoint rate applied to y")
    missing: List[str]


class RateCalculationResponse(BaseModel):
    """Simplified model breakdown. total == base_fare + call_fee + waypoint_fee."""
    base_fare: int
    call_fee: int
    waypoint_fee: int
    total: int
    meta: RateCalculationMeta


class QuoteExtrasIn(BaseModel):
    region_move: int = Field(0, ge=0)
    stop_extra: int = Field(0, ge=0)
    misc: int = Field(0, ge=0)


class QuoteRequest(BaseModel):
    """
    Center-fare quote input.

    Field consistency (stop count, duplicates, negotiated fare) is checked
    by the pricing domain so every problem is reported with its field.
    """
    center_id: str
    vehicle_type: str
    regions: List[str]
    stop_count: int
    extras: QuoteExtrasIn = Field(default_factory=QuoteExtrasIn)
    is_negotiated: bool = False
    negotiated_fare: Optional[int] = None


class QuoteMetadata(BaseModel):
    base_region: Optional[str]
    unique_regions: List[str]
    max_fare_region: Optional[str]
    missing_rates: List[str]


class QuoteResponse(BaseModel):
    """Center-fare breakdown. total == base_fare + region_fare + stop_fare + extra_fare."""
    base_fare: int
    region_fare: int
    stop_fare: int
    extra_fare: int
    total: int
    metadata: QuoteMetadata


class RequestFareCalculate(BaseModel):
    """Optional overrides for a stored trip's fare calculation."""
    regions: Optional[List[str]] = None
    stop_count: Optional[int] = Field(None, ge=0)
    extra_adjustment: Optional[int] = None
    adjustment_reason: Optional[str] = Field(None, max_length=255)
    persist: bool = False


class RequestFareResponse(BaseModel):
    trip_id: int
    base_fare: int
    extra_stop_fee: int
    extra_region_fee: int
    subtotal: int
    extra_adjustment: int
    total: int
    missing: List[str]
    warnings: List[str]
    persisted: bool

