"""
Failure Injection Tests.

Validates resilience against provider and Redis failures.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from backend.app.core.reliability import CircuitBreaker, CircuitOpenError
from backend.app.domain.pricing.snapshot_builder import PricingSnapshotBuilder
from backend.app.services.snapshot_lock import snapshot_write_lock

from conftest import MockLock


async def failing_func():
    raise ValueError("Boom")


async def ok_func():
    return "ok"


@pytest.mark.asyncio
async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=60)

    for _ in range(2):
        with pytest.raises(ValueError):
            await cb.call(failing_func)

    with pytest.raises(CircuitOpenError):
        await cb.call(ok_func)


@pytest.mark.asyncio
async def test_circuit_breaker_half_open_recovers(mocker):
    cb = CircuitBreaker(failure_threshold=1, reset_timeout=30)
    clock = mocker.patch("backend.app.core.reliability.monotonic", return_value=1000.0)

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"

    clock.return_value = 1031.0
    assert await cb.call(ok_func) == "ok"
    assert cb.state == "CLOSED"
    assert cb.failures == 0


@pytest.mark.asyncio
async def test_circuit_breaker_half_open_failure_reopens(mocker):
    cb = CircuitBreaker(failure_threshold=3, reset_timeout=30)
    clock = mocker.patch("backend.app.core.reliability.monotonic", return_value=1000.0)
    for _ in range(3):
        with pytest.raises(ValueError):
            await cb.call(failing_func)

    clock.return_value = 1031.0
    with pytest.raises(ValueError):
        await cb.call(failing_func)

    assert cb.state == "OPEN"


class BrokenRedis:
    async def set(self, *args, **kwargs):
        raise RedisConnectionError("redis down")

    async def get(self, *args, **kwargs):
        raise RedisConnectionError("redis down")

    async def delete(self, *args, **kwargs):
        raise RedisConnectionError("redis down")

    def lock(self, name, **kwargs):
        return MockLock(self, name, **kwargs)


@pytest.mark.asyncio
async def test_snapshot_lock_tolerates_redis_outage():
    entered = False
    async with snapshot_write_lock(BrokenRedis(), transport_id=1):
        entered = True

    assert entered


@pytest.mark.asyncio
async def test_pricing_survives_redis_outage(db_session, directions, transport, seeded_pricing):
    builder = PricingSnapshotBuilder(db_session, directions, BrokenRedis())

    snapshot = await builder.create_snapshot(transport.id)

    assert snapshot.revision == 1
