"""
Profitability Evaluator (Domain Logic).

Read-only margin classification of trips:

    margin      = center_billing - driver_fee
    margin_rate = margin / center_billing * 100   (0 when nothing is billed)
    status      = PROFIT if rate >= profit threshold
                  BREAK_EVEN if rate >= break-even threshold
                  LOSS otherwise
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.domain.billing.settlement_engine import month_range
from backend.app.models.billing_enums import ProfitabilityStatus
from backend.app.models.trip import Trip


@dataclass
class ProfitabilityThresholds:
    profit_threshold: float = 20.0
    break_even_threshold: float = 0.0

    @classmethod
    def from_settings(cls) -> "ProfitabilityThresholds":
        return cls(
            profit_threshold=settings.profit_threshold_percent,
            break_even_threshold=settings.break_even_threshold_percent
        )


@dataclass
class ProfitabilityResult:
    center_billing: int
    driver_fee: int
    margin: int
    margin_rate: float
    status: ProfitabilityStatus
    recommendation: Optional[str] = None
    recommended_driver_fee: Optional[int] = None
    trip_id: Optional[int] = None

    @property
    def summary(self) -> str:
        label = {
            ProfitabilityStatus.PROFIT: "profit",
            ProfitabilityStatus.BREAK_EVEN: "margin",
            ProfitabilityStatus.LOSS: "loss",
        }[self.status]
        return (
            f"Billing {self.center_billing:,} - driver fee {self.driver_fee:,} = "
            f"{label} {self.margin:,} ({self.margin_rate:.1f}%)"
        )


@dataclass
class MonthlyProfitabilityReport:
    year_month: str
    trips: List[ProfitabilityResult] = field(default_factory=list)
    total_center_billing: int = 0
    total_driver_fee: int = 0
    total_margin: int = 0
    margin_rate: float = 0.0
    status_counts: Dict[str, int] = field(default_factory=dict)


def center_billing_for(trip: Trip) -> int:
    """Stored billing total wins; otherwise the sum of the fare parts."""
    if trip.center_billing_total:
        return trip.center_billing_total
    return (
        (trip.base_fare or 0)
        + (trip.extra_stop_fee or 0)
        + (trip.extra_region_fee or 0)
        + (trip.extra_adjustment or 0)
    )


def driver_fee_for(trip: Trip) -> int:
    """A split trip pays every dispatched driver."""
    return sum(dispatch.driver_fee for dispatch in trip.dispatches or [])


def margin_rate(center_billing: int, driver_fee: int) -> float:
    if center_billing <= 0:
        return 0.0
    return (center_billing - driver_fee) / center_billing * 100


def classify(rate: float, thresholds: ProfitabilityThresholds) -> ProfitabilityStatus:
    if rate >= thresholds.profit_threshold:
        return ProfitabilityStatus.PROFIT
    if rate >= thresholds.break_even_threshold:
        return ProfitabilityStatus.BREAK_EVEN
    return ProfitabilityStatus.LOSS


def recommended_driver_fee(center_billing: int, target_margin_percent: float = 25.0) -> int:
    """Driver fee that leaves the target margin, rounded half-up to 1,000 won."""
    if center_billing <= 0:
        return 0
    fee = Decimal(center_billing) * (Decimal(100) - Decimal(str(target_margin_percent))) / Decimal(100)
    thousands = (fee / Decimal(1000)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(thousands) * 1000


def evaluate(
    center_billing: int,
    driver_fee: int,
    thresholds: Optional[ProfitabilityThresholds] = None,
    target_margin_percent: Optional[float] = None,
) -> ProfitabilityResult:
    thresholds = thresholds or ProfitabilityThresholds.from_settings()
    target = settings.target_margin_percent if target_margin_percent is None else target_margin_percent

    rate = margin_rate(center_billing, driver_fee)
    status = classify(rate, thresholds)

    recommendation = None
    if status == ProfitabilityStatus.BREAK_EVEN:
        recommendation = f"Margin rate is low at {rate:.1f}%. Consider adjusting the driver fee."
    elif status == ProfitabilityStatus.LOSS:
        recommendation = f"Loss! Current margin rate {rate:.1f}%. The driver fee needs adjusting now."

    return ProfitabilityResult(
        center_billing=center_billing,
        driver_fee=driver_fee,
        margin=center_billing - driver_fee,
        margin_rate=round(rate, 2),
        status=status,
        recommendation=recommendation,
        recommended_driver_fee=recommended_driver_fee(center_billing, target)
    )


class ProfitabilityEvaluator:

    @staticmethod
    async def evaluate_trip(db: AsyncSession, trip_id: int) -> ProfitabilityResult:
        result = await db.execute(
            select(Trip)
            .options(selectinload(Trip.dispatches))
            .where(Trip.id == trip_id)
            .execution_options(populate_existing=True)
        )
        trip = result.scalar_one_or_none()
        if not trip:
            raise ResourceNotFoundError("Trip", trip_id)

        profitability = evaluate(center_billing_for(trip), driver_fee_for(trip))
        profitability.trip_id = trip.id
        return profitability

    @staticmethod
    async def monthly_report(db: AsyncSession, year_month: str) -> MonthlyProfitabilityReport:
        """Per-trip results for the month plus totals and a status count."""
        start, end = month_range(year_month)
        result = await db.execute(
            select(Trip)
            .options(selectinload(Trip.dispatches))
            .where(Trip.trip_date >= start, Trip.trip_date <= end)
            .order_by(Trip.trip_date, Trip.id)
            .execution_options(populate_existing=True)
        )

        report = MonthlyProfitabilityReport(
            year_month=year_month,
            status_counts={status.value: 0 for status in ProfitabilityStatus}
        )
        for trip in result.scalars().all():
            trip_result = evaluate(center_billing_for(trip), driver_fee_for(trip))
            trip_result.trip_id = trip.id
            report.trips.append(trip_result)
            report.total_center_billing += trip_result.center_billing
            report.total_driver_fee += trip_result.driver_fee
            report.status_counts[trip_result.status.value] += 1

        report.total_margin = report.total_center_billing - report.total_driver_fee
        report.margin_rate = round(margin_rate(report.total_center_billing, report.total_driver_fee), 2)
        return report
