"""
Rate Base database model.

Base fare per (center, tonnage, region) for the simplified rate model.
"""

from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from backend.app.db.session import Base


class RateBase(Base):
    """
    Rate Base model.

    One row per (center_name, tonnage, region). Rows are never soft-deleted;
    a duplicate insert is reported as skipped by the rate resolver.
    """
    __tablename__ = "rate_bases"
    __table_args__ = (
        UniqueConstraint("center_name", "tonnage", "region", name="uq_rate_base_center_tonnage_region"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Key
    center_name = Column(String(100), nullable=False, index=True)
    tonnage = Column(String(20), nullable=False)  # e.g. "5", "2.5t", "3.5광"
    region = Column(String(50), nullable=False)

    # Fare in won
    base_fare = Column(Integer, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<RateBase(id={self.id}, center='{self.center_name}', tonnage='{self.tonnage}', region='{self.region}', base_fare={self.base_fare})>"
