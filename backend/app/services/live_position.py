"""
Live position updates from drivers.

One row per transport, overwritten on every ping (last write wins).
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from backend.app.models.live_position import LivePosition

logger = logging.getLogger(__name__)


async def get_live_position(db: AsyncSession, transport_id: int) -> Optional[LivePosition]:
    result = await db.execute(
        select(LivePosition).where(LivePosition.transport_id == transport_id)
    )
    return result.scalar_one_or_none()


def _apply(position: LivePosition, driver_id: int, latitude: float, longitude: float, recorded_at: datetime):
    position.driver_id = driver_id
    position.latitude = latitude
    position.longitude = longitude
    position.recorded_at = recorded_at


async def upsert_live_position(
    db: AsyncSession,
    transport_id: int,
    driver_id: int,
    latitude: float,
    longitude: float,
    recorded_at: Optional[datetime] = None,
) -> LivePosition:
    """
    Record the latest driver position for a transport.

    Readers always see a fully committed row. Two pings racing for the
    first insert collapse into an update of the winner's row.
    """
    recorded_at = recorded_at or datetime.now(timezone.utc)

    position = await get_live_position(db, transport_id)
    if position is None:
        position = LivePosition(transport_id=transport_id)
        _apply(position, driver_id, latitude, longitude, recorded_at)
        db.add(position)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            position = await get_live_position(db, transport_id)
            _apply(position, driver_id, latitude, longitude, recorded_at)
            await db.commit()
    else:
        _apply(position, driver_id, latitude, longitude, recorded_at)
        await db.commit()

    await db.refresh(position)
    logger.debug("Live position for transport %s: %.6f, %.6f", transport_id, latitude, longitude)
    return position
