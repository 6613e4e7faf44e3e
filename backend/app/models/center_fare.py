"""
Center Fare database model (legacy rate model, still live).

Rates keyed by loading point and vehicle type. BASIC rows carry a per-region
base fare; the single STOP_FEE row per loading point/vehicle type carries the
per-unit stop and region surcharges.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Enum, Index, UniqueConstraint, text
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.rate_enums import FareType


class CenterFare(Base):
    """
    Center Fare model.

    Field rules (checked on insert):
    - BASIC: region and base_fare required
    - STOP_FEE: extra_stop_fee and extra_region_fee required, region must be empty
    """
    __tablename__ = "center_fares"
    __table_args__ = (
        UniqueConstraint(
            "loading_point_id", "vehicle_type", "region", "fare_type",
            name="uq_center_fare_point_vehicle_region_type"
        ),
        # NULL regions never collide in a plain unique constraint
        Index(
            "uq_center_fare_stop_fee",
            "loading_point_id", "vehicle_type", "fare_type",
            unique=True,
            sqlite_where=text("region IS NULL"),
            postgresql_where=text("region IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Key
    loading_point_id = Column(String(64), nullable=False, index=True)
    vehicle_type = Column(String(20), nullable=False)
    region = Column(String(50), nullable=True)
    fare_type = Column(Enum(FareType), nullable=False, default=FareType.BASIC)

    # Fares in won
    base_fare = Column(Integer, nullable=True)
    extra_stop_fee = Column(Integer, nullable=True)
    extra_region_fee = Column(Integer, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<CenterFare(id={self.id}, point='{self.loading_point_id}', vehicle='{self.vehicle_type}', region={self.region!r}, type='{self.fare_type.value}')>"
