"""
Billing enumerations for settlements and profitability.
"""

import enum


class SettlementStatus(str, enum.Enum):
    """Settlement status enumeration."""
    DRAFT = "DRAFT"  # Created from a preview, totals still editable
    CONFIRMED = "CONFIRMED"  # Totals locked, waiting for payment
    PAID = "PAID"  # Payment processed


# Forward-only lifecycle. PAID is terminal.
SETTLEMENT_TRANSITIONS = {
    SettlementStatus.DRAFT: {SettlementStatus.CONFIRMED},
    SettlementStatus.CONFIRMED: {SettlementStatus.PAID},
    SettlementStatus.PAID: set(),
}


def can_transition(current: SettlementStatus, target: SettlementStatus) -> bool:
    """Check if a settlement may move from current to target status."""
    return target in SETTLEMENT_TRANSITIONS.get(current, set())


class SettlementItemType(str, enum.Enum):
    """Settlement line item type."""
    TRIP = "TRIP"  # Driver fee for one dispatch
    ADDITION = "ADDITION"  # Extra pay (waiting, return trip, manual work)
    DEDUCTION = "DEDUCTION"  # Stored as a negative amount


class ProfitabilityStatus(str, enum.Enum):
    """Margin classification for a trip."""
    PROFIT = "PROFIT"
    BREAK_EVEN = "BREAK_EVEN"
    LOSS = "LOSS"
