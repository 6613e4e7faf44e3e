"""
Database seeding script for sample rate tables and drivers.

Registers simplified rates, a legacy center-fare table and two drivers
for development. Safe to run repeatedly: existing rate rows are skipped.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import AsyncSessionLocal, engine, Base
from backend.app.domain.pricing.rate_resolver import RateResolver
from backend.app.models.driver import Driver
from backend.app.models.rate_enums import FareType

RATE_BASES = [
    ("쿠팡", "5", "강남", 120000),
    ("쿠팡", "5", "수원", 150000),
    ("쿠팡", "5", "용인", 140000),
    ("쿠팡", "2.5", "강남", 90000),
]

RATE_ADDONS = [
    ("쿠팡", "5", 5000, 8000),
    ("쿠팡", "2.5", 4000, 6000),
]

CENTER_FARES = [
    {"fare_type": FareType.BASIC, "region": "강남", "base_fare": 100000},
    {"fare_type": FareType.BASIC, "region": "수원", "base_fare": 130000},
    {"fare_type": FareType.STOP_FEE, "extra_stop_fee": 5000, "extra_region_fee": 7000},
]

DRIVERS = [
    ("김기사", "010-1111-2222", "서울12가3456"),
    ("이기사", "010-3333-4444", "경기34나5678"),
]


async def seed_sample_data(db: AsyncSession) -> dict:
    """
    Seed rates and drivers.

    Returns:
        Count of created and skipped rate rows, and created drivers
    """
    created = skipped = 0

    outcomes = [
        await RateResolver.add_rate_base(db, center, tonnage, region, fare)
        for center, tonnage, region, fare in RATE_BASES
    ]
    outcomes += [
        await RateResolver.add_rate_addons(db, center, tonnage, per_stop, per_waypoint)
        for center, tonnage, per_stop, per_waypoint in RATE_ADDONS
    ]
    outcomes += [
        await RateResolver.add_center_fare(db, "LP-001", "5t", **fare)
        for fare in CENTER_FARES
    ]
    for outcome in outcomes:
        if outcome.created:
            created += 1
        else:
            skipped += 1

    drivers_created = 0
    for name, phone, vehicle_number in DRIVERS:
        result = await db.execute(select(Driver).where(Driver.phone == phone))
        if result.scalar_one_or_none():
            continue
        db.add(Driver(name=name, phone=phone, vehicle_number=vehicle_number, is_active=True))
        drivers_created += 1

    await db.commit()
    return {"rates_created": created, "rates_skipped": skipped, "drivers_created": drivers_created}


async def main():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting rate seeding...")
        summary = await seed_sample_data(db)

    print(f"✅ Rates: {summary['rates_created']} created, {summary['rates_skipped']} skipped")
    print(f"✅ Drivers: {summary['drivers_created']} created")
    print("\n🎉 Seeding completed successfully!")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
