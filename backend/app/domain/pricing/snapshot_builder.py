"""
Pricing Snapshot Builder (Domain Logic).

Locks the price of a transport by writing an immutable PricingSnapshot.
Must be idempotent: a transport is priced once, and re-pricing only ever
appends a new revision through the explicit admin path.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from backend.app.core.exceptions import (
    PricingUnavailableError,
    ResourceNotFoundError,
    RuleNotConfiguredError,
    SnapshotAlreadyExistsError,
)
from backend.app.domain.pricing.calculator import (
    PriceBreakdown,
    RateValues,
    calculate_price,
    meters_to_miles,
    seconds_to_minutes,
)
from backend.app.domain.pricing.pricing_resolver import PricingResolver
from backend.app.models.complexity_fee import AnimalComplexityFee
from backend.app.models.enums import ComplexityType
from backend.app.models.pricing_rule import PricingRule
from backend.app.models.pricing_snapshot import PricingSnapshot
from backend.app.models.transport import Transport
from backend.app.services.directions_client import DirectionsClient, LatLng, RouteUnavailable
from backend.app.services.route_paths import get_route_path, store_route_path
from backend.app.services.snapshot_lock import snapshot_write_lock

logger = logging.getLogger(__name__)


async def get_current_snapshot(db: AsyncSession, transport_id: int) -> Optional[PricingSnapshot]:
    """Latest revision of a transport's pricing snapshot, if it has been priced."""
    result = await db.execute(
        select(PricingSnapshot)
        .where(PricingSnapshot.transport_id == transport_id)
        .order_by(PricingSnapshot.revision.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


@dataclass(frozen=True)
class SnapshotInputs:
    """
    Plain values a snapshot is computed from.

    Read off the transport, rule and fee before anything is committed, so a
    rollback after a lost insert race leaves nothing to lazy-load.
    """
    transport_id: int
    complexity_type: ComplexityType
    animal_count: int
    pick_up: LatLng
    drop_off: LatLng
    rule_id: int
    calculation_version: int
    rates: RateValues
    fee_amount: float
    multi_animal_flat_fee: float


class PricingSnapshotBuilder:
    """
    Builds pricing snapshots for transports.

    Flow (create_snapshot):
    1. Idempotency check (existing snapshot -> SnapshotAlreadyExistsError)
    2. Resolve pricing rule and complexity fee
    3. Resolve route distance/duration (stored route, else provider; no lock held)
    4. Calculate breakdown
    5. Under the per-transport lock: re-check, insert, commit
    """

    def __init__(self, db: AsyncSession, directions: DirectionsClient, redis):
        self.db = db
        self.directions = directions
        self.redis = redis

    async def _load_transport(self, transport_id: int) -> Transport:
        result = await self.db.execute(
            select(Transport)
            .options(selectinload(Transport.animal))
            .where(Transport.id == transport_id)
        )
        transport = result.scalar_one_or_none()

        if not transport:
            raise ResourceNotFoundError("Transport", transport_id)

        return transport

    async def _resolve_rates(self, complexity_type: ComplexityType) -> Tuple[PricingRule, AnimalComplexityFee]:
        rule = await PricingResolver.resolve_active_rule(self.db)
        if rule is None:
            raise RuleNotConfiguredError()

        fee = await PricingResolver.resolve_complexity_fee(self.db, complexity_type)
        return rule, fee

    async def _prepare(self, transport: Transport) -> SnapshotInputs:
        complexity_type = transport.animal.complexity_type
        rule, fee = await self._resolve_rates(complexity_type)

        return SnapshotInputs(
            transport_id=transport.id,
            complexity_type=complexity_type,
            animal_count=transport.animal_count,
            pick_up=(transport.pick_up_latitude, transport.pick_up_longitude),
            drop_off=(transport.drop_off_latitude, transport.drop_off_longitude),
            rule_id=rule.id,
            calculation_version=rule.calculation_version,
            rates=RateValues.from_rule(rule),
            fee_amount=fee.amount,
            multi_animal_flat_fee=fee.multi_animal_flat_fee,
        )

    async def _resolve_route(self, inputs: SnapshotInputs) -> Tuple[float, float]:
        """
        Distance (m) and duration (s) for a transport.

        Uses the stored route path when the route has already been computed,
        otherwise asks the provider and stores the result. Provider failure
        or an empty route is PricingUnavailableError; a zero-distance price
        is never fabricated.
        """
        transport_id = inputs.transport_id
        route_path = await get_route_path(self.db, transport_id)

        if route_path is None:
            result = await self.directions.compute_route(inputs.pick_up, inputs.drop_off)
            if isinstance(result, RouteUnavailable):
                logger.warning("Pricing unavailable for transport %s: %s", transport_id, result.reason)
                raise PricingUnavailableError(result.reason, transport_id)
            route_path = await store_route_path(self.db, transport_id, result)

        if not route_path.total_distance_meters or route_path.total_distance_meters <= 0:
            raise PricingUnavailableError("route distance is zero", transport_id)

        return route_path.total_distance_meters, route_path.total_duration_seconds

    @staticmethod
    def _calculate(inputs: SnapshotInputs, distance_meters: float, duration_seconds: float) -> PriceBreakdown:
        return calculate_price(
            distance_miles=meters_to_miles(distance_meters),
            duration_minutes=seconds_to_minutes(duration_seconds),
            rates=inputs.rates,
            fee_amount=inputs.fee_amount,
            multi_animal_flat_fee=inputs.multi_animal_flat_fee,
            animal_count=inputs.animal_count,
        )

    async def _insert(self, inputs: SnapshotInputs, revision: int, breakdown: PriceBreakdown) -> PricingSnapshot:
        snapshot = PricingSnapshot(
            transport_id=inputs.transport_id,
            revision=revision,
            pricing_rule_id=inputs.rule_id,
            calculation_version=inputs.calculation_version,
            complexity_type=inputs.complexity_type,
            **breakdown.rounded(),
        )
        self.db.add(snapshot)

        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent writer got this revision first
            await self.db.rollback()
            existing = await get_current_snapshot(self.db, inputs.transport_id)
            if existing:
                raise SnapshotAlreadyExistsError(existing)
            raise

        await self.db.refresh(snapshot)
        logger.info(
            "Pricing snapshot written for transport %s (revision %s, rule v%s): total=%s payout=%s",
            inputs.transport_id, revision, inputs.calculation_version,
            snapshot.total_ride_cost, snapshot.driver_payout,
        )
        return snapshot

    async def create_snapshot(self, transport_id: int) -> PricingSnapshot:
        """
        Price a transport once.

        Raises:
            ResourceNotFoundError: Unknown transport
            SnapshotAlreadyExistsError: Already priced (carries the stored snapshot)
            RuleNotConfiguredError: No pricing rule yet
            FeeNotFoundError: Complexity classification not seeded
            PricingUnavailableError: Route could not be resolved; nothing written
        """
        transport = await self._load_transport(transport_id)

        existing = await get_current_snapshot(self.db, transport.id)
        if existing:
            raise SnapshotAlreadyExistsError(existing)

        inputs = await self._prepare(transport)
        distance_meters, duration_seconds = await self._resolve_route(inputs)
        breakdown = self._calculate(inputs, distance_meters, duration_seconds)

        async with snapshot_write_lock(self.redis, inputs.transport_id):
            existing = await get_current_snapshot(self.db, inputs.transport_id)
            if existing:
                raise SnapshotAlreadyExistsError(existing)

            return await self._insert(inputs, 1, breakdown)

    async def create_new_revision(self, transport_id: int) -> PricingSnapshot:
        """
        Explicitly re-price a transport under the current rule and fee.

        Appends revision N+1; earlier revisions are left untouched.
        """
        transport = await self._load_transport(transport_id)
        inputs = await self._prepare(transport)
        distance_meters, duration_seconds = await self._resolve_route(inputs)
        breakdown = self._calculate(inputs, distance_meters, duration_seconds)

        async with snapshot_write_lock(self.redis, inputs.transport_id):
            current = await get_current_snapshot(self.db, inputs.transport_id)
            revision = (current.revision if current else 0) + 1
            return await self._insert(inputs, revision, breakdown)

    async def estimate(
        self,
        pick_up: LatLng,
        drop_off: LatLng,
        complexity_type: ComplexityType,
        animal_count: int,
    ) -> Tuple[PriceBreakdown, PricingRule]:
        """Quote a prospective transport without writing anything."""
        rule, fee = await self._resolve_rates(complexity_type)

        result = await self.directions.distance_matrix(pick_up, drop_off)
        if isinstance(result, RouteUnavailable):
            raise PricingUnavailableError(result.reason)
        if result.distance_meters <= 0:
            raise PricingUnavailableError("route distance is zero")

        breakdown = calculate_price(
            distance_miles=meters_to_miles(result.distance_meters),
            duration_minutes=seconds_to_minutes(result.duration_seconds),
            rates=RateValues.from_rule(rule),
            fee_amount=fee.amount,
            multi_animal_flat_fee=fee.multi_animal_flat_fee,
            animal_count=animal_count,
        )
        return breakdown, rule
