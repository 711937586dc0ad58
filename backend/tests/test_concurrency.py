"""
Concurrency Tests.

Validates that concurrent snapshot writes for one transport are serialized
and that the database constraint catches a writer that slips past.
"""

import asyncio

import pytest
from sqlalchemy import select, func

from backend.app.core.exceptions import PricingUnavailableError, SnapshotAlreadyExistsError
from backend.app.domain.pricing import snapshot_builder
from backend.app.domain.pricing.snapshot_builder import PricingSnapshotBuilder
from backend.app.models.pricing_snapshot import PricingSnapshot
from backend.app.models.route_path import RoutePath
from backend.app.services import route_paths
from backend.app.services.snapshot_lock import snapshot_lock_key, snapshot_write_lock


@pytest.mark.asyncio
async def test_snapshot_lock_serializes_writers(redis):
    """Two writers for the same transport never hold the lock together."""
    inside = 0
    max_inside = 0

    async def writer():
        nonlocal inside, max_inside
        async with snapshot_write_lock(redis, transport_id=7, wait_seconds=2):
            inside += 1
            max_inside = max(max_inside, inside)
            await asyncio.sleep(0.1)
            inside -= 1

    await asyncio.gather(writer(), writer(), writer())

    assert max_inside == 1


@pytest.mark.asyncio
async def test_different_transports_do_not_contend(redis):
    async with snapshot_write_lock(redis, transport_id=1, wait_seconds=0):
        async with snapshot_write_lock(redis, transport_id=2, wait_seconds=0):
            pass


@pytest.mark.asyncio
async def test_unique_constraint_turns_race_into_no_op(db_session, directions, redis, transport, seeded_pricing, mocker):
    """A writer that missed a concurrent insert gets the stored snapshot back."""
    builder = PricingSnapshotBuilder(db_session, directions, redis)
    winner_id = (await builder.create_snapshot(transport.id)).id

    real_lookup = snapshot_builder.get_current_snapshot
    calls = {"n": 0}

    # The loser's two existence checks ran before the winner committed
    async def racing_lookup(db, transport_id):
        calls["n"] += 1
        if calls["n"] <= 2:
            return None
        return await real_lookup(db, transport_id)

    mocker.patch.object(snapshot_builder, "get_current_snapshot", side_effect=racing_lookup)

    with pytest.raises(SnapshotAlreadyExistsError) as exc_info:
        await builder.create_snapshot(transport.id)

    assert exc_info.value.snapshot.id == winner_id
    count = (await db_session.execute(select(func.count(PricingSnapshot.id)))).scalar()
    assert count == 1


@pytest.mark.asyncio
async def test_route_race_does_not_break_pricing(db_session, directions, redis, transport, seeded_pricing, mocker):
    """A route stored by a concurrent request still lets this request price the transport."""
    transport_id = transport.id
    await route_paths.store_route_path(db_session, transport_id, directions.route_result)

    real_lookup = route_paths.get_route_path
    calls = {"n": 0}

    # Both lookups ran before the other request committed its route
    async def racing_lookup(db, lookup_transport_id):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return await real_lookup(db, lookup_transport_id)

    mocker.patch.object(snapshot_builder, "get_route_path", return_value=None)
    mocker.patch.object(route_paths, "get_route_path", side_effect=racing_lookup)

    builder = PricingSnapshotBuilder(db_session, directions, redis)
    snapshot = await builder.create_snapshot(transport_id)

    assert snapshot.transport_id == transport_id
    assert snapshot.revision == 1
    assert snapshot.total_ride_cost == 6.5
    count = (await db_session.execute(
        select(func.count(RoutePath.id)).where(RoutePath.transport_id == transport_id)
    )).scalar()
    assert count == 1


@pytest.mark.asyncio
async def test_expired_lock_is_not_released_over_new_holder(redis):
    """Releasing a lock that expired mid-write leaves the next writer's lock alone."""
    key = snapshot_lock_key(7)

    async with snapshot_write_lock(redis, transport_id=7, wait_seconds=0):
        # TTL ran out and another writer took over
        redis.store[key] = "next-writer"

    assert await redis.get(key) == "next-writer"


@pytest.mark.asyncio
async def test_lock_wait_timeout_makes_pricing_unavailable(redis):
    async with snapshot_write_lock(redis, transport_id=7, wait_seconds=0):
        with pytest.raises(PricingUnavailableError):
            async with snapshot_write_lock(redis, transport_id=7, wait_seconds=0.1):
                pass
