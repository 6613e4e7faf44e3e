"""
Dispatch database model.

One driver assignment against a trip. A trip may have several dispatches
(split loads).
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.app.db.session import Base


class Dispatch(Base):
    """
    Dispatch model.

    Driver name/phone/vehicle are copied at assignment time and never
    refreshed, so past settlements keep showing who actually drove.
    """
    __tablename__ = "dispatches"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)

    # Driver pay (won)
    driver_fee = Column(Integer, nullable=False)
    extra_fare = Column(Integer, default=0, nullable=False)  # waiting/return/manual work
    deduction_amount = Column(Integer, default=0, nullable=False)

    # Driver identity snapshot
    driver_name = Column(String(100), nullable=False)
    driver_phone = Column(String(30), nullable=False)
    driver_vehicle_number = Column(String(30), nullable=True)

    notes = Column(String(255), nullable=True)

    assigned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    trip = relationship("Trip", back_populates="dispatches", lazy="joined")

    def __repr__(self):
        return f"<Dispatch(id={self.id}, trip_id={self.trip_id}, driver_id={self.driver_id}, fee={self.driver_fee})>"
