"""
Transport Pricing API Endpoints.

Quotes, route computation and price locking for transports.
"""

from fastapi import APIRouter, Depends, Path, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.models.enums import ADMIN_ROLES, SHELTER_ROLES, UserRole
from backend.app.schemas.pricing import PriceEstimateRequest, PriceEstimateResponse, PricingSnapshotResponse
from backend.app.schemas.tracking import RoutePathResponse
from backend.app.core.exceptions import ResourceNotFoundError, SnapshotAlreadyExistsError
from backend.app.core.guards import require_role
from backend.app.core.redis_client import get_redis
from backend.app.domain.pricing.calculator import to_cents
from backend.app.domain.pricing.snapshot_builder import PricingSnapshotBuilder, get_current_snapshot
from backend.app.services.audit import log_request_event, AuditAction
from backend.app.services.directions_client import DirectionsClient, get_directions_client
from backend.app.services.route_paths import ensure_route_path, get_route_path
from backend.app.services.transports import get_accessible_transport

router = APIRouter(tags=["Pricing"])

TRANSPORT_ROLES = ADMIN_ROLES + SHELTER_ROLES + [UserRole.DRIVER]


@router.post("/pricing/estimate", response_model=PriceEstimateResponse)
async def estimate_price(
    quote: PriceEstimateRequest,
    current_user: dict = Depends(require_role(ADMIN_ROLES + SHELTER_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
    directions: DirectionsClient = Depends(get_directions_client),
):
    """
    Quote a prospective transport under the current rule.

    Nothing is stored; the price is only locked by the pricing snapshot.
    """
    builder = PricingSnapshotBuilder(db, directions, redis)
    breakdown, rule = await builder.estimate(
        (quote.pick_up_latitude, quote.pick_up_longitude),
        (quote.drop_off_latitude, quote.drop_off_longitude),
        quote.complexity_type,
        quote.animal_count,
    )

    return PriceEstimateResponse(
        calculation_version=rule.calculation_version,
        complexity_type=quote.complexity_type,
        animal_count=quote.animal_count,
        distance_miles=float(breakdown.distance_miles),
        duration_minutes=float(breakdown.duration_minutes),
        distance_cost=to_cents(breakdown.distance_cost),
        time_cost=to_cents(breakdown.time_cost),
        complexity_fee=to_cents(breakdown.complexity_fee),
        subtotal=to_cents(breakdown.subtotal),
        platform_fee=to_cents(breakdown.platform_fee),
        driver_payout=to_cents(breakdown.driver_payout),
        total_ride_cost=to_cents(breakdown.total_ride_cost),
    )


@router.post("/transports/{transport_id}/route", response_model=RoutePathResponse)
async def compute_transport_route(
    request: Request,
    transport_id: int = Path(..., description="Transport ID"),
    current_user: dict = Depends(require_role(TRANSPORT_ROLES)),
    db: AsyncSession = Depends(get_db),
    directions: DirectionsClient = Depends(get_directions_client),
):
    """
    Compute and store the transport's route (normally at job acceptance).

    Idempotent: an already stored route is returned unchanged.
    """
    transport = await get_accessible_transport(db, transport_id, current_user)

    existing = await get_route_path(db, transport.id)
    if existing:
        return existing

    route_path = await ensure_route_path(db, directions, transport)

    await log_request_event(
        db,
        AuditAction.ROUTE_COMPUTED,
        request,
        current_user,
        transport_id=transport_id,
        distance_meters=route_path.total_distance_meters,
        duration_seconds=route_path.total_duration_seconds,
    )

    return route_path


@router.post(
    "/transports/{transport_id}/pricing-snapshot",
    response_model=PricingSnapshotResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_pricing_snapshot(
    request: Request,
    response: Response,
    transport_id: int = Path(..., description="Transport ID"),
    current_user: dict = Depends(require_role(TRANSPORT_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
    directions: DirectionsClient = Depends(get_directions_client),
):
    """
    Lock the price of a transport.

    Returns 201 with the new snapshot, or 200 with the stored one if the
    transport was already priced. Pricing failures return 503 and store
    nothing; retry later.
    """
    transport = await get_accessible_transport(db, transport_id, current_user)

    builder = PricingSnapshotBuilder(db, directions, redis)
    try:
        snapshot = await builder.create_snapshot(transport.id)
    except SnapshotAlreadyExistsError as exc:
        response.status_code = status.HTTP_200_OK
        return exc.snapshot

    await log_request_event(
        db,
        AuditAction.PRICING_SNAPSHOT_CREATED,
        request,
        current_user,
        transport_id=transport_id,
        snapshot_id=snapshot.id,
        calculation_version=snapshot.calculation_version,
        total_ride_cost=snapshot.total_ride_cost,
    )

    return snapshot


@router.get("/transports/{transport_id}/pricing-snapshot", response_model=PricingSnapshotResponse)
async def get_pricing_snapshot(
    transport_id: int = Path(..., description="Transport ID"),
    current_user: dict = Depends(require_role(TRANSPORT_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """Current (latest revision) pricing snapshot of a transport."""
    transport = await get_accessible_transport(db, transport_id, current_user)

    snapshot = await get_current_snapshot(db, transport.id)
    if snapshot is None:
        raise ResourceNotFoundError("Pricing snapshot for transport", transport.id)

    return snapshot
