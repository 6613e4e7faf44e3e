"""
Rate Addons database model.

Per-stop and per-waypoint surcharges per (center, tonnage). They do not vary by region.
"""

from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from backend.app.db.session import Base


class RateAddons(Base):
    """Rate Addons model."""
    __tablename__ = "rate_addons"
    __table_args__ = (
        UniqueConstraint("center_name", "tonnage", name="uq_rate_addons_center_tonnage"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    center_name = Column(String(100), nullable=False, index=True)
    tonnage = Column(String(20), nullable=False)

    # Surcharges in won
    per_stop = Column(Integer, nullable=False)  # each stop beyond the first
    per_waypoint = Column(Integer, nullable=False)  # each distinct region beyond the first

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<RateAddons(id={self.id}, center='{self.center_name}', tonnage='{self.tonnage}', per_stop={self.per_stop}, per_waypoint={self.per_waypoint})>"
