"""
Per-transport serialization of pricing snapshot writes.

At most one snapshot write per transport id is in flight at a time. The lock
is redis-py's Lock: a key set with NX and a TTL, released by a token-checked
script, so a crashed holder cannot wedge the transport and a holder whose
lock expired cannot release someone else's. The (transport_id, revision)
unique constraint on pricing_snapshots remains the final guard.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from redis.exceptions import LockNotOwnedError, RedisError

from backend.app.core.config import settings
from backend.app.core.exceptions import PricingUnavailableError

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.05


def snapshot_lock_key(transport_id: int) -> str:
    return f"pricing:snapshot-lock:{transport_id}"


@asynccontextmanager
async def snapshot_write_lock(
    redis,
    transport_id: int,
    ttl_seconds: Optional[int] = None,
    wait_seconds: Optional[float] = None,
):
    """
    Hold the snapshot write lock for a transport.

    Waits up to wait_seconds for a concurrent writer to finish, then gives up
    with PricingUnavailableError so the caller can retry. If Redis itself is
    unreachable the write proceeds under the database constraint alone.

    Usage:
        async with snapshot_write_lock(redis, transport.id):
            ...check for an existing snapshot, then insert...
    """
    wait = settings.snapshot_lock_wait_seconds if wait_seconds is None else wait_seconds
    lock = redis.lock(
        snapshot_lock_key(transport_id),
        timeout=ttl_seconds or settings.snapshot_lock_ttl_seconds,
        sleep=POLL_INTERVAL_SECONDS,
        blocking_timeout=wait,
        thread_local=False,
    )

    try:
        acquired = await lock.acquire()
    except RedisError as exc:
        logger.warning("Snapshot lock unavailable for transport %s, relying on unique constraint: %s", transport_id, exc)
        acquired = None

    if acquired is False:
        raise PricingUnavailableError("another pricing computation is in progress", transport_id)

    try:
        yield
    finally:
        if acquired:
            try:
                await lock.release()
            except LockNotOwnedError:
                logger.warning("Snapshot lock for transport %s expired before release", transport_id)
            except RedisError as exc:
                logger.warning("Failed to release snapshot lock for transport %s: %s", transport_id, exc)
