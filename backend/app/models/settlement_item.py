"""
Settlement Item database model.

Line items behind a settlement's totals.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, Date, Enum
from sqlalchemy.orm import relationship
from backend.app.db.session import Base
from backend.app.models.billing_enums import SettlementItemType


class SettlementItem(Base):
    """Settlement Item model. DEDUCTION amounts are stored negative."""
    __tablename__ = "settlement_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    settlement_id = Column(Integer, ForeignKey('settlements.id', ondelete="CASCADE"), nullable=False, index=True)
    dispatch_id = Column(Integer, ForeignKey('dispatches.id'), nullable=True, index=True)

    type = Column(Enum(SettlementItemType), nullable=False)
    description = Column(String(255), nullable=False)
    amount = Column(Integer, nullable=False)
    item_date = Column(Date, nullable=False)

    settlement = relationship("Settlement", back_populates="items")

    def __repr__(self):
        return f"<SettlementItem(id={self.id}, type='{self.type.value}', amount={self.amount})>"
