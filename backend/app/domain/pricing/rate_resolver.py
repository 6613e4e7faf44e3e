"""
Rate Resolver.

Single reader and writer of rate rows for both rate models:
- SIMPLIFIED: RateBase (center, tonnage, region) + RateAddons (center, tonnage)
- CENTER_FARE: CenterFare BASIC rows per region + one STOP_FEE row

A missing rate is never an exception. The component resolves to 0 and a
MissingRate tag is recorded. A stored value of 0 counts as missing too.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import FareValidationError
from backend.app.domain.pricing.fare_calculator import SimplifiedRates, StopFeeRates, normalize_regions
from backend.app.models.center_fare import CenterFare
from backend.app.models.rate_addons import RateAddons
from backend.app.models.rate_base import RateBase
from backend.app.models.rate_enums import FareType, InsertStatus, MissingRate, RateModel

logger = logging.getLogger(__name__)


@dataclass
class InsertOutcome:
    """Result of a rate insert. SKIPPED carries the row that was already there."""
    status: InsertStatus
    row: Any

    @property
    def created(self) -> bool:
        return self.status == InsertStatus.CREATED


@dataclass
class BulkInsertResult:
    created: int = 0
    skipped: int = 0
    outcomes: List[InsertOutcome] = field(default_factory=list)


@dataclass
class ResolvedRates:
    """
    Rates resolved for one trip under one rate model.

    Only the fields of the selected model are filled in.
    """
    model: RateModel
    simplified: Optional[SimplifiedRates] = None
    region_fares: Dict[str, int] = field(default_factory=dict)
    stop_fee: Optional[StopFeeRates] = None
    missing: List[MissingRate] = field(default_factory=list)
    missing_regions: List[str] = field(default_factory=list)


class RateResolver:

    @staticmethod
    async def resolve(
        db: AsyncSession,
        center: str,
        tonnage_or_vehicle_type: str,
        regions: List[str],
        model: RateModel,
    ) -> ResolvedRates:
        """
        Resolve every rate component a trip needs.

        Args:
            db: Database session
            center: Center name (SIMPLIFIED) or loading point ID (CENTER_FARE)
            tonnage_or_vehicle_type: Tonnage (SIMPLIFIED) or vehicle type (CENTER_FARE)
            regions: Ordered destination regions
            model: Rate model to resolve against

        Returns:
            ResolvedRates with missing components tagged
        """
        if model == RateModel.SIMPLIFIED:
            simplified = await RateResolver.resolve_simplified(db, center, tonnage_or_vehicle_type, regions)
            return ResolvedRates(model=model, simplified=simplified, missing=list(simplified.missing))

        unique_regions = normalize_regions(regions)
        region_fares = await RateResolver.resolve_region_fares(db, center, tonnage_or_vehicle_type, unique_regions)
        stop_fee = await RateResolver.resolve_stop_fee(db, center, tonnage_or_vehicle_type)

        missing = []
        if unique_regions and not region_fares.get(unique_regions[0]):
            missing.append(MissingRate.BASE)
        if stop_fee is None or not stop_fee.extra_stop_fee:
            missing.append(MissingRate.CALL)
        if stop_fee is None or not stop_fee.extra_region_fee:
            missing.append(MissingRate.WAYPOINT)

        return ResolvedRates(
            model=model,
            region_fares=region_fares,
            stop_fee=stop_fee,
            missing=missing,
            missing_regions=[region for region in unique_regions if region not in region_fares],
        )

    @staticmethod
    async def resolve_simplified(
        db: AsyncSession,
        center_name: str,
        tonnage: str,
        regions: List[str],
    ) -> SimplifiedRates:
        """Base fare for regions[0] only, add-ons per (center, tonnage)."""
        unique_regions = normalize_regions(regions)
        base_region = unique_regions[0] if unique_regions else None

        rates = SimplifiedRates()

        if base_region:
            result = await db.execute(
                select(RateBase).where(
                    RateBase.center_name == center_name,
                    RateBase.tonnage == tonnage,
                    RateBase.region == base_region
                )
            )
            rate_base = result.scalar_one_or_none()
            rates.base_fare = rate_base.base_fare if rate_base else 0
            if not rates.base_fare:
                rates.missing.append(MissingRate.BASE)

        result = await db.execute(
            select(RateAddons).where(
                RateAddons.center_name == center_name,
                RateAddons.tonnage == tonnage
            )
        )
        addons = result.scalar_one_or_none()
        rates.per_stop = addons.per_stop if addons else 0
        rates.per_waypoint = addons.per_waypoint if addons else 0

        if not rates.per_stop:
            rates.missing.append(MissingRate.CALL)
        if not rates.per_waypoint:
            rates.missing.append(MissingRate.WAYPOINT)

        return rates

    @staticmethod
    async def find_center_fares(
        db: AsyncSession,
        loading_point_id: str,
        vehicle_type: str,
        fare_type: FareType,
        regions: Optional[List[str]] = None,
    ) -> List[CenterFare]:
        """Active CenterFare rows of one fare type, optionally limited to regions."""
        query = select(CenterFare).where(
            CenterFare.loading_point_id == loading_point_id,
            CenterFare.vehicle_type == vehicle_type,
            CenterFare.fare_type == fare_type,
            CenterFare.is_active == True
        )
        if regions is not None:
            query = query.where(CenterFare.region.in_(regions))

        result = await db.execute(query.order_by(CenterFare.region, CenterFare.id))
        return list(result.scalars().all())

    @staticmethod
    async def resolve_region_fares(
        db: AsyncSession,
        loading_point_id: str,
        vehicle_type: str,
        regions: List[str],
    ) -> Dict[str, int]:
        """BASIC fare per region; regions without a usable row are left out."""
        if not regions:
            return {}

        rows = await RateResolver.find_center_fares(
            db, loading_point_id, vehicle_type, FareType.BASIC, regions=regions
        )
        return {row.region: row.base_fare for row in rows if row.base_fare is not None}

    @staticmethod
    async def resolve_stop_fee(
        db: AsyncSession,
        loading_point_id: str,
        vehicle_type: str,
    ) -> Optional[StopFeeRates]:
        rows = await RateResolver.find_center_fares(db, loading_point_id, vehicle_type, FareType.STOP_FEE)
        if not rows:
            return None

        row = rows[0]
        return StopFeeRates(
            extra_stop_fee=row.extra_stop_fee or 0,
            extra_region_fee=row.extra_region_fee or 0
        )

    # Writers

    @staticmethod
    async def add_rate_base(
        db: AsyncSession,
        center_name: str,
        tonnage: str,
        region: str,
        base_fare: int,
    ) -> InsertOutcome:
        """
        Insert a RateBase row, or report the existing one as skipped.

        Existing rows are never overwritten. Caller commits.
        """
        center_name, tonnage, region = center_name.strip(), tonnage.strip(), region.strip()
        if base_fare < 0:
            raise FareValidationError.for_field("base_fare", "base_fare must not be negative")

        query = select(RateBase).where(
            RateBase.center_name == center_name,
            RateBase.tonnage == tonnage,
            RateBase.region == region
        )
        row = RateBase(center_name=center_name, tonnage=tonnage, region=region, base_fare=base_fare)
        return await RateResolver._insert_or_skip(db, row, query)

    @staticmethod
    async def add_rate_addons(
        db: AsyncSession,
        center_name: str,
        tonnage: str,
        per_stop: int,
        per_waypoint: int,
    ) -> InsertOutcome:
        center_name, tonnage = center_name.strip(), tonnage.strip()
        if per_stop < 0 or per_waypoint < 0:
            raise FareValidationError.for_field("per_stop", "Add-on fees must not be negative")

        query = select(RateAddons).where(
            RateAddons.center_name == center_name,
            RateAddons.tonnage == tonnage
        )
        row = RateAddons(center_name=center_name, tonnage=tonnage, per_stop=per_stop, per_waypoint=per_waypoint)
        return await RateResolver._insert_or_skip(db, row, query)

    @staticmethod
    async def add_center_fare(
        db: AsyncSession,
        loading_point_id: str,
        vehicle_type: str,
        fare_type: FareType,
        region: Optional[str] = None,
        base_fare: Optional[int] = None,
        extra_stop_fee: Optional[int] = None,
        extra_region_fee: Optional[int] = None,
    ) -> InsertOutcome:
        """
        Insert a CenterFare row after checking the fare-type field rules.

        Raises:
            FareValidationError: If the fields do not match the fare type.
        """
        region = region.strip() if region else None
        errors = []

        if fare_type == FareType.BASIC:
            if not region:
                errors.append({"field": "region", "message": "region is required for BASIC fares"})
            if base_fare is None:
                errors.append({"field": "base_fare", "message": "base_fare is required for BASIC fares"})
        else:
            if region:
                errors.append({"field": "region", "message": "STOP_FEE fares must not have a region"})
            if extra_stop_fee is None:
                errors.append({"field": "extra_stop_fee", "message": "extra_stop_fee is required for STOP_FEE fares"})
            if extra_region_fee is None:
                errors.append({"field": "extra_region_fee", "message": "extra_region_fee is required for STOP_FEE fares"})

        for name, value in (("base_fare", base_fare), ("extra_stop_fee", extra_stop_fee), ("extra_region_fee", extra_region_fee)):
            if value is not None and value < 0:
                errors.append({"field": name, "message": f"{name} must not be negative"})

        if errors:
            raise FareValidationError(errors)

        query = select(CenterFare).where(
            CenterFare.loading_point_id == loading_point_id,
            CenterFare.vehicle_type == vehicle_type,
            CenterFare.fare_type == fare_type,
            CenterFare.region == region if region else CenterFare.region.is_(None)
        )
        row = CenterFare(
            loading_point_id=loading_point_id,
            vehicle_type=vehicle_type,
            fare_type=fare_type,
            region=region,
            base_fare=base_fare,
            extra_stop_fee=extra_stop_fee,
            extra_region_fee=extra_region_fee,
            is_active=True
        )
        return await RateResolver._insert_or_skip(db, row, query)

    @staticmethod
    async def add_rate_bases_bulk(db: AsyncSession, rows: List[Dict[str, Any]]) -> BulkInsertResult:
        """
        Insert many RateBase rows; duplicates (in the table or in the batch) are skipped.

        Each row goes through its own savepoint, so one conflict does not
        undo the rest of the batch.
        """
        result = BulkInsertResult()
        for data in rows:
            outcome = await RateResolver.add_rate_base(
                db,
                center_name=data["center_name"],
                tonnage=data["tonnage"],
                region=data["region"],
                base_fare=data["base_fare"]
            )
            result.outcomes.append(outcome)
            if outcome.created:
                result.created += 1
            else:
                result.skipped += 1

        logger.info("Bulk rate insert: %d created, %d skipped", result.created, result.skipped)
        return result

    @staticmethod
    async def _insert_or_skip(db: AsyncSession, row: Any, existing_query) -> InsertOutcome:
        existing = (await db.execute(existing_query)).scalar_one_or_none()
        if existing is not None:
            logger.info("Skipped duplicate rate row: %r", existing)
            return InsertOutcome(status=InsertStatus.SKIPPED, row=existing)

        try:
            async with db.begin_nested():
                db.add(row)
        except IntegrityError:
            # Lost a race with a concurrent insert of the same key
            logger.warning("Rate insert conflict, resolving to existing row: %r", row)
            existing = (await db.execute(existing_query)).scalar_one()
            return InsertOutcome(status=InsertStatus.SKIPPED, row=existing)

        await db.refresh(row)
        return InsertOutcome(status=InsertStatus.CREATED, row=row)
