"""
Settlement database model.

Monthly aggregation of one driver's dispatch fees.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.billing_enums import SettlementStatus


class Settlement(Base):
    """
    Settlement model.

    Unique per (driver_id, year_month); that constraint is the only
    concurrency control for finalize. Follows DRAFT -> CONFIRMED -> PAID,
    and only the settlement engine writes `status`.
    """
    __tablename__ = "settlements"
    __table_args__ = (
        UniqueConstraint("driver_id", "year_month", name="uq_settlement_driver_year_month"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)
    year_month = Column(String(7), nullable=False, index=True)  # YYYY-MM

    # Financials (won)
    total_trips = Column(Integer, nullable=False, default=0)
    total_base_fare = Column(Integer, nullable=False, default=0)
    total_deductions = Column(Integer, nullable=False, default=0)
    total_additions = Column(Integer, nullable=False, default=0)
    final_amount = Column(Integer, nullable=False, default=0)

    # Status
    status = Column(Enum(SettlementStatus), default=SettlementStatus.DRAFT, nullable=False, index=True)
    remarks = Column(Text, nullable=True)

    created_by = Column(Integer, nullable=True)

    # Confirmation Flow
    confirmed_by = Column(Integer, nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    # Payment Flow
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    items = relationship(
        "SettlementItem",
        back_populates="settlement",
        lazy="selectin",
        order_by="SettlementItem.item_date",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Settlement(id={self.id}, driver_id={self.driver_id}, month='{self.year_month}', status='{self.status.value}', amount={self.final_amount})>"
