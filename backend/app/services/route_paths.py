"""
Route path storage for transports.

A transport's route is computed once through the directions provider and
kept as immutable reference geometry for pricing and live tracking.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from backend.app.core.exceptions import RouteUnavailableError
from backend.app.models.route_path import RoutePath
from backend.app.models.transport import Transport
from backend.app.services.directions_client import DirectionsClient, RouteFound, RouteResult, RouteUnavailable

logger = logging.getLogger(__name__)


async def get_route_path(db: AsyncSession, transport_id: int) -> Optional[RoutePath]:
    result = await db.execute(
        select(RoutePath).where(RoutePath.transport_id == transport_id)
    )
    return result.scalar_one_or_none()


async def compute_transport_route(directions: DirectionsClient, transport: Transport) -> RouteResult:
    """Ask the provider for the pick-up to drop-off route of a transport."""
    return await directions.compute_route(
        (transport.pick_up_latitude, transport.pick_up_longitude),
        (transport.drop_off_latitude, transport.drop_off_longitude),
    )


async def store_route_path(db: AsyncSession, transport_id: int, route: RouteFound) -> RoutePath:
    """
    Insert the route path for a transport unless one already exists.

    The first writer wins; a concurrent insert hitting the unique constraint
    gets the stored row back instead.
    """
    existing = await get_route_path(db, transport_id)
    if existing:
        return existing

    route_path = RoutePath(
        transport_id=transport_id,
        encoded_polyline=route.encoded_polyline,
        total_distance_meters=route.distance_meters,
        total_duration_seconds=route.duration_seconds,
        legs=[leg.to_dict() for leg in route.legs],
    )
    db.add(route_path)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Route path for transport %s was stored by a concurrent request", transport_id)
        return await get_route_path(db, transport_id)

    await db.refresh(route_path)
    return route_path


async def ensure_route_path(db: AsyncSession, directions: DirectionsClient, transport: Transport) -> RoutePath:
    """
    Return the transport's route path, computing it on first use.

    Raises:
        RouteUnavailableError: If the provider failed; nothing is stored.
    """
    existing = await get_route_path(db, transport.id)
    if existing:
        return existing

    result = await compute_transport_route(directions, transport)
    if isinstance(result, RouteUnavailable):
        raise RouteUnavailableError(result.reason, details={"transport_id": transport.id})

    return await store_route_path(db, transport.id, result)
