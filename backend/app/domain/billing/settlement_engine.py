"""
Settlement Engine (Domain Logic).

Turns a driver's dispatches for one calendar month into a Settlement and
drives it through DRAFT -> CONFIRMED -> PAID.

Rules:
- One settlement per (driver_id, year_month); the unique constraint is the
  only concurrency control for finalize.
- Finalize is idempotent: a repeated call returns the existing row.
- Every status change is a single conditional UPDATE checked by rowcount,
  never read-modify-write.
- Only DRAFT settlements can be edited, recalculated or deleted.

Methods flush; the caller commits.
"""

import calendar
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    BusinessRuleError,
    FareValidationError,
    InvalidSettlementTransitionError,
    ResourceNotFoundError,
)
from backend.app.models.billing_enums import SettlementItemType, SettlementStatus, can_transition
from backend.app.models.dispatch import Dispatch
from backend.app.models.driver import Driver
from backend.app.models.settlement import Settlement
from backend.app.models.settlement_item import SettlementItem
from backend.app.models.trip import Trip

logger = logging.getLogger(__name__)

YEAR_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


@dataclass
class SettlementItemDraft:
    type: SettlementItemType
    description: str
    amount: int
    item_date: date
    dispatch_id: Optional[int] = None


@dataclass
class SettlementCalculation:
    """Aggregated month for one driver. final_amount = base + additions - deductions."""
    total_trips: int = 0
    total_base_fare: int = 0
    total_additions: int = 0
    total_deductions: int = 0
    final_amount: int = 0
    items: List[SettlementItemDraft] = field(default_factory=list)


@dataclass
class SettlementPreview:
    driver_id: int
    driver_name: str
    year_month: str
    calculation: SettlementCalculation
    warnings: List[str] = field(default_factory=list)
    can_confirm: bool = False
    existing_settlement_id: Optional[int] = None
    existing_status: Optional[SettlementStatus] = None


@dataclass
class FinalizeOutcome:
    settlement: Settlement
    created: bool


def month_range(year_month: str) -> Tuple[date, date]:
    """
    First and last day of a YYYY-MM month.

    Raises:
        FareValidationError: If year_month is not YYYY-MM.
    """
    if not year_month or not YEAR_MONTH_PATTERN.match(year_month):
        raise FareValidationError.for_field("year_month", "year_month must be in YYYY-MM format")

    year, month = int(year_month[:4]), int(year_month[5:7])
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def business_today() -> date:
    return datetime.now(ZoneInfo(settings.business_timezone)).date()


def ensure_not_future_month(year_month: str, today: Optional[date] = None) -> None:
    start, _ = month_range(year_month)
    today = today or business_today()
    if start > today:
        raise BusinessRuleError(
            f"Cannot settle future month {year_month}",
            details={"year_month": year_month}
        )


def build_calculation(rows: List[Tuple[Dispatch, Trip]]) -> SettlementCalculation:
    """Aggregate (dispatch, trip) pairs, already ordered by trip date."""
    calc = SettlementCalculation()

    for dispatch, trip in rows:
        route = " -> ".join(trip.regions or [])
        calc.items.append(SettlementItemDraft(
            type=SettlementItemType.TRIP,
            description=f"Trip: {trip.center_name} / {trip.vehicle_tonnage} / {route}",
            amount=dispatch.driver_fee,
            item_date=trip.trip_date,
            dispatch_id=dispatch.id
        ))
        calc.total_base_fare += dispatch.driver_fee

        if trip.is_negotiated:
            # Informational only, the negotiated amount is already in driver_fee
            calc.items.append(SettlementItemDraft(
                type=SettlementItemType.ADDITION,
                description=f"Negotiated fare applied: {trip.notes or 'no reason given'}",
                amount=0,
                item_date=trip.trip_date,
                dispatch_id=dispatch.id
            ))

        if dispatch.extra_fare and dispatch.extra_fare > 0:
            calc.items.append(SettlementItemDraft(
                type=SettlementItemType.ADDITION,
                description=f"Extra fare: {dispatch.notes or 'waiting/return/manual work'}",
                amount=dispatch.extra_fare,
                item_date=trip.trip_date,
                dispatch_id=dispatch.id
            ))
            calc.total_additions += dispatch.extra_fare

        if dispatch.deduction_amount and dispatch.deduction_amount > 0:
            calc.items.append(SettlementItemDraft(
                type=SettlementItemType.DEDUCTION,
                description=f"Deduction: {dispatch.notes or 'trip deduction'}",
                amount=-dispatch.deduction_amount,
                item_date=trip.trip_date,
                dispatch_id=dispatch.id
            ))
            calc.total_deductions += dispatch.deduction_amount

    calc.total_trips = len(rows)
    calc.final_amount = calc.total_base_fare + calc.total_additions - calc.total_deductions
    return calc


class SettlementEngine:

    @staticmethod
    async def calculate(db: AsyncSession, driver_id: int, year_month: str) -> SettlementCalculation:
        """Aggregate the driver's dispatches whose trip date falls in the month."""
        start, end = month_range(year_month)

        result = await db.execute(
            select(Dispatch, Trip)
            .join(Trip, Dispatch.trip_id == Trip.id)
            .where(
                Dispatch.driver_id == driver_id,
                Trip.trip_date >= start,
                Trip.trip_date <= end
            )
            .order_by(Trip.trip_date, Dispatch.id)
        )
        return build_calculation([(dispatch, trip) for dispatch, trip in result.all()])

    @staticmethod
    async def preview(
        db: AsyncSession,
        driver_id: int,
        year_month: str,
        today: Optional[date] = None,
    ) -> SettlementPreview:
        """
        Unsaved projection of a settlement.

        Raises:
            FareValidationError: Malformed year_month
            BusinessRuleError: Future month
            ResourceNotFoundError: Unknown driver
        """
        ensure_not_future_month(year_month, today)
        driver = await SettlementEngine._get_driver(db, driver_id)

        calculation = await SettlementEngine.calculate(db, driver_id, year_month)
        existing = await SettlementEngine._find_existing(db, driver_id, year_month)

        warnings = []
        if not driver.is_active:
            warnings.append(f"Driver {driver.name} is inactive")
        if existing and existing.status != SettlementStatus.DRAFT:
            warnings.append(f"Settlement for {year_month} is already {existing.status.value}")

        return SettlementPreview(
            driver_id=driver.id,
            driver_name=driver.name,
            year_month=year_month,
            calculation=calculation,
            warnings=warnings,
            can_confirm=not warnings and len(calculation.items) > 0,
            existing_settlement_id=existing.id if existing else None,
            existing_status=existing.status if existing else None
        )

    @staticmethod
    async def finalize(
        db: AsyncSession,
        driver_id: int,
        year_month: str,
        created_by: Optional[int] = None,
        today: Optional[date] = None,
    ) -> FinalizeOutcome:
        """
        Create the DRAFT settlement for (driver, month), or return the existing one.

        A concurrent finalize that wins the insert race makes ours fail on the
        unique constraint; that is resolved to the winner's row.
        """
        ensure_not_future_month(year_month, today)
        await SettlementEngine._get_driver(db, driver_id)

        existing = await SettlementEngine._find_existing(db, driver_id, year_month)
        if existing:
            logger.info("Settlement for driver %s %s already exists (id=%s)", driver_id, year_month, existing.id)
            return FinalizeOutcome(settlement=existing, created=False)

        calculation = await SettlementEngine.calculate(db, driver_id, year_month)

        settlement = Settlement(
            driver_id=driver_id,
            year_month=year_month,
            total_trips=calculation.total_trips,
            total_base_fare=calculation.total_base_fare,
            total_additions=calculation.total_additions,
            total_deductions=calculation.total_deductions,
            final_amount=calculation.final_amount,
            status=SettlementStatus.DRAFT,
            created_by=created_by
        )

        try:
            async with db.begin_nested():
                db.add(settlement)
                await db.flush()
                SettlementEngine._add_items(db, settlement.id, calculation)
        except IntegrityError:
            logger.warning(
                "Concurrent finalize for driver %s %s, returning existing settlement",
                driver_id, year_month
            )
            existing = await SettlementEngine._find_existing(db, driver_id, year_month)
            if existing is None:
                raise
            return FinalizeOutcome(settlement=existing, created=False)

        logger.info(
            "Created DRAFT settlement %s for driver %s %s: %d trips, final=%d",
            settlement.id, driver_id, year_month, calculation.total_trips, calculation.final_amount
        )
        return FinalizeOutcome(settlement=await SettlementEngine.get(db, settlement.id), created=True)

    @staticmethod
    async def confirm(db: AsyncSession, settlement_id: int, user_id: int) -> Settlement:
        """
        DRAFT -> CONFIRMED.

        Totals are refreshed from current dispatches and locked in the same
        conditional UPDATE.
        """
        settlement = await SettlementEngine.get(db, settlement_id)
        calculation = await SettlementEngine.calculate(db, settlement.driver_id, settlement.year_month)

        await SettlementEngine._transition(
            db, settlement_id, SettlementStatus.DRAFT, SettlementStatus.CONFIRMED, "confirm",
            total_trips=calculation.total_trips,
            total_base_fare=calculation.total_base_fare,
            total_additions=calculation.total_additions,
            total_deductions=calculation.total_deductions,
            final_amount=calculation.final_amount,
            confirmed_by=user_id,
            confirmed_at=datetime.now(timezone.utc)
        )
        await SettlementEngine._replace_items(db, settlement_id, calculation)

        logger.info("Settlement %s confirmed by user %s (final=%d)", settlement_id, user_id, calculation.final_amount)
        return await SettlementEngine.get(db, settlement_id)

    @staticmethod
    async def mark_paid(db: AsyncSession, settlement_id: int) -> Settlement:
        """CONFIRMED -> PAID."""
        await SettlementEngine._transition(
            db, settlement_id, SettlementStatus.CONFIRMED, SettlementStatus.PAID, "mark paid",
            paid_at=datetime.now(timezone.utc)
        )
        logger.info("Settlement %s marked PAID", settlement_id)
        return await SettlementEngine.get(db, settlement_id)

    @staticmethod
    async def update(db: AsyncSession, settlement_id: int, remarks: Optional[str] = None) -> Settlement:
        """
        Edit the remarks of a DRAFT settlement.

        Totals always come from dispatches; use recalculate to refresh them.
        Any edit of a CONFIRMED or PAID settlement fails.
        """
        new_remarks = remarks if remarks is not None else Settlement.remarks
        await SettlementEngine._guarded_update(db, settlement_id, SettlementStatus.DRAFT, "update", remarks=new_remarks)
        return await SettlementEngine.get(db, settlement_id)

    @staticmethod
    async def recalculate(db: AsyncSession, settlement_id: int) -> Settlement:
        """Re-run the aggregation for a DRAFT settlement."""
        settlement = await SettlementEngine.get(db, settlement_id)
        calculation = await SettlementEngine.calculate(db, settlement.driver_id, settlement.year_month)

        await SettlementEngine._guarded_update(
            db, settlement_id, SettlementStatus.DRAFT, "recalculate",
            total_trips=calculation.total_trips,
            total_base_fare=calculation.total_base_fare,
            total_additions=calculation.total_additions,
            total_deductions=calculation.total_deductions,
            final_amount=calculation.final_amount
        )
        await SettlementEngine._replace_items(db, settlement_id, calculation)

        logger.info("Settlement %s recalculated (final=%d)", settlement_id, calculation.final_amount)
        return await SettlementEngine.get(db, settlement_id)

    @staticmethod
    async def delete(db: AsyncSession, settlement_id: int) -> None:
        """Delete a DRAFT settlement; items go with it."""
        result = await db.execute(
            delete(Settlement)
            .where(Settlement.id == settlement_id, Settlement.status == SettlementStatus.DRAFT)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            await SettlementEngine._raise_guard_failure(db, settlement_id, "delete")

        logger.info("Settlement %s deleted", settlement_id)

    @staticmethod
    async def get(db: AsyncSession, settlement_id: int) -> Settlement:
        result = await db.execute(
            select(Settlement)
            .where(Settlement.id == settlement_id)
            .execution_options(populate_existing=True)
        )
        settlement = result.scalar_one_or_none()
        if not settlement:
            raise ResourceNotFoundError("Settlement", settlement_id)
        return settlement

    @staticmethod
    async def list(
        db: AsyncSession,
        driver_id: Optional[int] = None,
        year_month: Optional[str] = None,
        status: Optional[SettlementStatus] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[Settlement], int]:
        """Filtered page of settlements, newest month first, plus the total count."""
        filters = []
        if driver_id is not None:
            filters.append(Settlement.driver_id == driver_id)
        if year_month:
            filters.append(Settlement.year_month == year_month)
        if status is not None:
            filters.append(Settlement.status == status)

        total = (await db.execute(select(func.count(Settlement.id)).where(*filters))).scalar()

        offset = (page - 1) * page_size
        result = await db.execute(
            select(Settlement)
            .where(*filters)
            .order_by(Settlement.year_month.desc(), Settlement.id.desc())
            .offset(offset)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    # Internals

    @staticmethod
    async def _get_driver(db: AsyncSession, driver_id: int) -> Driver:
        driver = await db.get(Driver, driver_id)
        if not driver:
            raise ResourceNotFoundError("Driver", driver_id)
        return driver

    @staticmethod
    async def _find_existing(db: AsyncSession, driver_id: int, year_month: str) -> Optional[Settlement]:
        result = await db.execute(
            select(Settlement).where(
                Settlement.driver_id == driver_id,
                Settlement.year_month == year_month
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _transition(
        db: AsyncSession,
        settlement_id: int,
        current: SettlementStatus,
        target: SettlementStatus,
        operation: str,
        **values,
    ) -> None:
        if not can_transition(current, target):
            raise ValueError(f"{current.value} -> {target.value} is not a settlement transition")
        await SettlementEngine._guarded_update(db, settlement_id, current, operation, status=target, **values)

    @staticmethod
    async def _guarded_update(
        db: AsyncSession,
        settlement_id: int,
        expected: SettlementStatus,
        operation: str,
        **values,
    ) -> None:
        result = await db.execute(
            update(Settlement)
            .where(Settlement.id == settlement_id, Settlement.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await SettlementEngine._raise_guard_failure(db, settlement_id, operation)

    @staticmethod
    async def _raise_guard_failure(db: AsyncSession, settlement_id: int, operation: str) -> None:
        """Tell "not found" apart from "wrong state" after a guard matched nothing."""
        result = await db.execute(select(Settlement.status).where(Settlement.id == settlement_id))
        current = result.scalar_one_or_none()
        if current is None:
            raise ResourceNotFoundError("Settlement", settlement_id)

        logger.warning("Rejected %s of settlement %s in status %s", operation, settlement_id, current.value)
        raise InvalidSettlementTransitionError(settlement_id, current.value, operation)

    @staticmethod
    def _add_items(db: AsyncSession, settlement_id: int, calculation: SettlementCalculation) -> None:
        db.add_all([
            SettlementItem(
                settlement_id=settlement_id,
                dispatch_id=item.dispatch_id,
                type=item.type,
                description=item.description,
                amount=item.amount,
                item_date=item.item_date
            )
            for item in calculation.items
        ])

    @staticmethod
    async def _replace_items(db: AsyncSession, settlement_id: int, calculation: SettlementCalculation) -> None:
        await db.execute(
            delete(SettlementItem)
            .where(SettlementItem.settlement_id == settlement_id)
            .execution_options(synchronize_session="fetch")
        )
        SettlementEngine._add_items(db, settlement_id, calculation)
        await db.flush()
