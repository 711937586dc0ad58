"""
Live Tracking Assembler (Domain Logic).

Merges the stored route, the latest driver position and the pricing snapshot
into the live tracking view of a transport. Tracking degrades rather than
fails: a missing route or an unreachable geocoder still yields a response.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from backend.app.core.config import settings
from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.domain.pricing.calculator import meters_to_miles
from backend.app.domain.pricing.snapshot_builder import get_current_snapshot
from backend.app.domain.tracking.progress import PositionFix, as_utc, calculate_progress, decode_polyline
from backend.app.models.live_position import LivePosition
from backend.app.models.transport import Transport
from backend.app.schemas.tracking import LiveTrackingResponse, MilestoneResponse
from backend.app.services.directions_client import DirectionsClient
from backend.app.services.route_paths import get_route_path

logger = logging.getLogger(__name__)

PENDING_LOCATION = "Pending Update"


def _miles(meters: float) -> float:
    return float(meters_to_miles(meters))


class LiveTrackingAssembler:
    """
    Builds LiveTrackingResponse for a transport.

    Only a missing transport is an error; everything else degrades.
    """

    def __init__(self, db: AsyncSession, directions: Optional[DirectionsClient] = None):
        self.db = db
        self.directions = directions

    async def load_transport(self, transport_id: int) -> Transport:
        result = await self.db.execute(
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

        return transport

    async def _live_position(self, transport_id: int) -> Optional[LivePosition]:
        result = await self.db.execute(
            select(LivePosition).where(LivePosition.transport_id == transport_id)
        )
        return result.scalar_one_or_none()

    async def _location_name(self, position: Optional[LivePosition]) -> str:
        if position is None or self.directions is None or not settings.reverse_geocode_tracking:
            return PENDING_LOCATION

        address = await self.directions.reverse_geocode_address(position.latitude, position.longitude)
        return address or PENDING_LOCATION

    async def get_live_tracking(
        self,
        transport_id: int,
        transport: Optional[Transport] = None,
        now: Optional[datetime] = None,
    ) -> LiveTrackingResponse:
        """
        Assemble the tracking view.

        Args:
            transport_id: Transport to track
            transport: Already-loaded transport (skips the lookup)
            now: Clock override

        Raises:
            ResourceNotFoundError: Unknown transport
        """
        if transport is None:
            transport = await self.load_transport(transport_id)
        now = as_utc(now or datetime.now(timezone.utc))

        position = await self._live_position(transport.id)
        route_path = await get_route_path(self.db, transport.id)
        animal = transport.animal
        driver = transport.driver

        response = LiveTrackingResponse(
            transport_id=transport.id,
            status=transport.status.value,
            animal_name=animal.name if animal else None,
            animal_breed=animal.breed if animal else None,
            primary_animal_id=transport.animal_id,
            bonded_animal_id=transport.bonded_pair_id,
            driver_id=transport.driver_id,
            driver_name=driver.name if driver else None,
            pick_up_location=transport.pick_up_location,
            drop_off_location=transport.drop_off_location,
            current_location=await self._location_name(position),
            current_latitude=position.latitude if position else None,
            current_longitude=position.longitude if position else None,
            last_location_ping=as_utc(position.recorded_at) if position else None,
            tracking_available=route_path is not None,
        )

        if route_path is None:
            logger.info("No route path for transport %s; returning tracking without progress", transport.id)
            if position is not None:
                age = (now - as_utc(position.recorded_at)).total_seconds()
                response.position_stale = age > settings.stale_ping_seconds
                response.driver_connected = not response.position_stale
            return response

        total_duration_seconds = route_path.total_duration_seconds
        if not total_duration_seconds:
            snapshot = await get_current_snapshot(self.db, transport.id)
            if snapshot is not None:
                total_duration_seconds = snapshot.duration_minutes * 60

        fix = None
        if position is not None:
            fix = PositionFix(position.latitude, position.longitude, position.recorded_at)

        progress = calculate_progress(
            points=decode_polyline(route_path.encoded_polyline),
            position=fix,
            total_distance_meters=route_path.total_distance_meters,
            total_duration_seconds=total_duration_seconds or 0,
            legs=route_path.legs,
            now=now,
            stale_after_seconds=settings.stale_ping_seconds,
        )

        response.driver_connected = progress.driver_connected
        response.position_stale = progress.position_stale
        response.total_distance = _miles(route_path.total_distance_meters)
        response.distance_traveled = _miles(progress.distance_traveled_meters)
        response.distance_remaining = _miles(progress.distance_remaining_meters)
        response.progress_percentage = progress.progress_percentage
        response.estimated_total_time_minutes = round((total_duration_seconds or 0) / 60, 1)
        response.estimated_time_remaining_minutes = round(progress.estimated_time_remaining_minutes, 1)
        response.estimated_dropoff_time = now + timedelta(minutes=progress.estimated_time_remaining_minutes)
        response.milestones = [
            MilestoneResponse(
                name=milestone.name,
                distance_from_pickup=_miles(milestone.distance_from_origin_meters),
                reached=milestone.reached,
                eta=milestone.eta,
            )
            for milestone in progress.milestones
        ]
        response.route_polyline = route_path.encoded_polyline
        return response
