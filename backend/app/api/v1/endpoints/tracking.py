"""
Live Tracking API Endpoints.

Drivers report their position; shelters, drivers and admins read the live
tracking view.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.models.enums import ADMIN_ROLES, SHELTER_ROLES, UserRole
from backend.app.schemas.tracking import LivePositionResponse, LiveTrackingResponse, LocationPing
from backend.app.core.config import settings
from backend.app.core.guards import require_role
from backend.app.domain.tracking.tracking_assembler import LiveTrackingAssembler
from backend.app.services.directions_client import DirectionsClient, get_directions_client
from backend.app.services.live_position import upsert_live_position
from backend.app.services.transports import get_accessible_transport

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Live Tracking"])


@router.post("/driver/transports/{transport_id}/location", response_model=LivePositionResponse)
async def report_location(
    ping: LocationPing,
    transport_id: int = Path(..., description="Transport ID"),
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db),
    directions: DirectionsClient = Depends(get_directions_client),
):
    """
    Report the driver's current position (Driver only).

    Only the driver assigned to the transport may report. The latest ping
    replaces the previous one.
    """
    transport = await get_accessible_transport(db, transport_id, current_user)

    if settings.validate_ping_coordinates:
        if not await directions.validate_coordinates(ping.latitude, ping.longitude):
            logger.info("Rejected location ping for transport %s: coordinates not resolvable", transport.id)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid coordinates"
            )

    return await upsert_live_position(
        db,
        transport_id=transport.id,
        driver_id=transport.driver_id,
        latitude=ping.latitude,
        longitude=ping.longitude,
    )


@router.get("/transports/{transport_id}/tracking", response_model=LiveTrackingResponse)
async def get_live_tracking(
    transport_id: int = Path(..., description="Transport ID"),
    current_user: dict = Depends(require_role(ADMIN_ROLES + SHELTER_ROLES + [UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db),
    directions: DirectionsClient = Depends(get_directions_client),
):
    """
    Live tracking view of a transport.

    A transport whose route has not been computed yet returns
    tracking_available=false with empty progress fields instead of an error.
    """
    transport = await get_accessible_transport(db, transport_id, current_user)

    assembler = LiveTrackingAssembler(db, directions)
    return await assembler.get_live_tracking(transport.id, transport=transport)
