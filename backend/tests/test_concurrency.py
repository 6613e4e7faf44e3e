"""
Concurrency Tests.

Races are injected by stubbing the read that precedes a write, so the
write meets the state a concurrent request would have left behind.
"""

from datetime import date

import pytest
from sqlalchemy import func, select, update

from backend.app.core.exceptions import InvalidSettlementTransitionError
from backend.app.domain.billing.settlement_engine import SettlementEngine
from backend.app.domain.pricing.rate_resolver import RateResolver
from backend.app.models.billing_enums import SettlementStatus
from backend.app.models.rate_base import RateBase
from backend.app.models.rate_enums import InsertStatus
from backend.app.models.settlement import Settlement


@pytest.fixture
async def dispatched_driver(driver, make_trip, make_dispatch):
    trip = await make_trip(trip_date=date(2024, 3, 5))
    await make_dispatch(trip, driver, driver_fee=100000)
    return driver


@pytest.mark.asyncio
async def test_finalize_race_resolves_to_existing_row(db_session, dispatched_driver, mocker):
    """Losing the insert race on (driver_id, year_month) returns the winner's row."""
    winner = await SettlementEngine.finalize(db_session, dispatched_driver.id, "2024-03")
    await db_session.commit()

    real_find = SettlementEngine._find_existing
    calls = []

    async def stale_then_real(db, driver_id, year_month):
        calls.append(year_month)
        if len(calls) == 1:
            return None  # the check ran before the winner committed
        return await real_find(db, driver_id, year_month)

    mocker.patch.object(SettlementEngine, "_find_existing", side_effect=stale_then_real)

    loser = await SettlementEngine.finalize(db_session, dispatched_driver.id, "2024-03")
    await db_session.commit()

    assert loser.created is False
    assert loser.settlement.id == winner.settlement.id
    assert len(calls) == 2

    count = (await db_session.execute(select(func.count(Settlement.id)))).scalar()
    assert count == 1


@pytest.mark.asyncio
async def test_rate_insert_race_is_reported_as_skipped(db_session, mocker):
    await RateResolver.add_rate_base(db_session, "쿠팡", "5", "강남", 120000)
    await db_session.commit()

    real_execute = db_session.execute
    calls = []

    async def first_lookup_misses(statement, *args, **kwargs):
        calls.append(statement)
        if len(calls) == 1:
            stale = mocker.Mock()
            stale.scalar_one_or_none.return_value = None
            return stale
        return await real_execute(statement, *args, **kwargs)

    mocker.patch.object(db_session, "execute", side_effect=first_lookup_misses)

    outcome = await RateResolver.add_rate_base(db_session, "쿠팡", "5", "강남", 1)
    await db_session.commit()

    assert outcome.status == InsertStatus.SKIPPED
    assert outcome.row.base_fare == 120000

    mocker.stopall()
    count = (await db_session.execute(select(func.count(RateBase.id)))).scalar()
    assert count == 1


@pytest.mark.asyncio
async def test_confirm_guard_rejects_status_changed_underneath(db_session, dispatched_driver, mocker):
    """A confirm that read DRAFT must not overwrite a confirm that landed in between."""
    outcome = await SettlementEngine.finalize(db_session, dispatched_driver.id, "2024-03")
    settlement_id = outcome.settlement.id
    await db_session.commit()

    real_calculate = SettlementEngine.calculate

    async def concurrent_confirm(db, driver_id, year_month):
        await db.execute(
            update(Settlement)
            .where(Settlement.id == settlement_id)
            .values(status=SettlementStatus.CONFIRMED, confirmed_by=99)
            .execution_options(synchronize_session=False)
        )
        return await real_calculate(db, driver_id, year_month)

    mocker.patch.object(SettlementEngine, "calculate", side_effect=concurrent_confirm)

    with pytest.raises(InvalidSettlementTransitionError):
        await SettlementEngine.confirm(db_session, settlement_id, user_id=1)

    mocker.stopall()
    settlement = await SettlementEngine.get(db_session, settlement_id)
    assert settlement.status == SettlementStatus.CONFIRMED
    assert settlement.confirmed_by == 99


@pytest.mark.asyncio
async def test_double_confirm_only_first_succeeds(db_session, dispatched_driver):
    outcome = await SettlementEngine.finalize(db_session, dispatched_driver.id, "2024-03")

    await SettlementEngine.confirm(db_session, outcome.settlement.id, user_id=1)
    with pytest.raises(InvalidSettlementTransitionError):
        await SettlementEngine.confirm(db_session, outcome.settlement.id, user_id=2)

    settlement = await SettlementEngine.get(db_session, outcome.settlement.id)
    assert settlement.confirmed_by == 1
