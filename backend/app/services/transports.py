"""
Transport lookup with access control.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.core.guards import TransportAccessGuard
from backend.app.models.transport import Transport

access_guard = TransportAccessGuard()


async def get_accessible_transport(db: AsyncSession, transport_id: int, current_user: dict) -> Transport:
    """
    Load a transport (with animal and driver) the caller may see.

    Raises:
        ResourceNotFoundError: Unknown transport
        HTTPException 403: Caller has no access to it
    """
    result = await db.execute(
        select(Transport)
        .options(
            selectinload(Transport.animal),
            selectinload(Transport.driver),
        )
        .where(Transport.id == transport_id)
    )
    transport = result.scalar_one_or_none()

    if not transport:
        raise ResourceNotFoundError("Transport", transport_id)

    driver_user_id = transport.driver.user_id if transport.driver else None
    access_guard.enforce(current_user, transport.shelter_id, driver_user_id)

    return transport
