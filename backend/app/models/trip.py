"""
Trip database model.

One transport request from a center. Fare fields are filled in once the
request fare has been calculated.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, JSON, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.app.db.session import Base


class Trip(Base):
    """
    Trip model.

    `regions` is the ordered destination list; its first entry is the base
    region. `stop_count == len(regions)` is checked where trips are priced,
    not in the fare calculator.
    """
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who is billed and with which vehicle class
    center_name = Column(String(100), nullable=False, index=True)
    loading_point_id = Column(String(64), nullable=True, index=True)
    vehicle_type = Column(String(20), nullable=True)
    vehicle_tonnage = Column(String(20), nullable=False)

    trip_date = Column(Date, nullable=False, index=True)

    # Route
    regions = Column(JSON, nullable=False, default=list)
    stop_count = Column(Integer, nullable=False, default=1)

    # Negotiated charter
    is_negotiated = Column(Boolean, default=False, nullable=False)
    negotiated_fare = Column(Integer, nullable=True)

    # Manual adjustment (reason required when non-zero)
    extra_adjustment = Column(Integer, default=0, nullable=False)
    adjustment_reason = Column(String(255), nullable=True)

    # Computed fare fields (won)
    base_fare = Column(Integer, nullable=True)
    extra_stop_fee = Column(Integer, nullable=True)
    extra_region_fee = Column(Integer, nullable=True)

    # Explicit billed total; takes precedence over the fare parts
    center_billing_total = Column(Integer, nullable=True)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    dispatches = relationship("Dispatch", back_populates="trip", lazy="selectin")

    def __repr__(self):
        return f"<Trip(id={self.id}, center='{self.center_name}', date={self.trip_date}, regions={self.regions})>"
