"""
Admin Pricing API Endpoints.

Pricing rule versions, complexity fees and explicit snapshot re-pricing.
"""

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from backend.app.db.session import get_db
from backend.app.models.enums import ADMIN_ROLES, ComplexityType
from backend.app.schemas.pricing import (
    ComplexityFeeResponse,
    ComplexityFeeUpdate,
    PricingRuleCreate,
    PricingRuleResponse,
    PricingSnapshotResponse,
)
from backend.app.core.exceptions import RuleNotConfiguredError
from backend.app.core.guards import require_role
from backend.app.core.redis_client import get_redis
from backend.app.domain.pricing.pricing_resolver import PricingResolver
from backend.app.domain.pricing.snapshot_builder import PricingSnapshotBuilder
from backend.app.services import pricing_admin
from backend.app.services.audit import log_request_event, AuditAction
from backend.app.services.directions_client import DirectionsClient, get_directions_client

router = APIRouter(prefix="/admin", tags=["Admin - Pricing"])


@router.post("/pricing-rules", response_model=PricingRuleResponse, status_code=status.HTTP_201_CREATED)
async def create_pricing_rule(
    rule: PricingRuleCreate,
    request: Request,
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    Append a new pricing rule version.

    Existing versions are never modified; the new one applies to transports
    priced from now on.
    """
    new_rule = await pricing_admin.create_pricing_rule(
        db,
        rate_per_mile=rule.rate_per_mile,
        rate_per_minute=rule.rate_per_minute,
        base_fare=rule.base_fare,
        platform_fee_percent=rule.platform_fee_percent,
        min_payout=rule.min_payout,
        effective_date=rule.effective_date,
        created_by_admin_id=current_user["user_id"],
    )

    await log_request_event(
        db,
        AuditAction.PRICING_RULE_CREATED,
        request,
        current_user,
        rule_id=new_rule.id,
        calculation_version=new_rule.calculation_version,
    )

    return new_rule


@router.get("/pricing-rules", response_model=List[PricingRuleResponse])
async def list_pricing_rules(
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """List all pricing rule versions, newest first."""
    return await pricing_admin.list_pricing_rules(db)


@router.get("/pricing-rules/current", response_model=PricingRuleResponse)
async def get_current_pricing_rule(
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    rule = await PricingResolver.resolve_active_rule(db)
    if rule is None:
        raise RuleNotConfiguredError()
    return rule


@router.get("/complexity-fees", response_model=List[ComplexityFeeResponse])
async def list_complexity_fees(
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    return await pricing_admin.list_complexity_fees(db)


@router.patch("/complexity-fees/{complexity_type}", response_model=ComplexityFeeResponse)
async def update_complexity_fee(
    update: ComplexityFeeUpdate,
    request: Request,
    complexity_type: ComplexityType = Path(..., description="Complexity classification"),
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a complexity fee.

    Already-priced transports keep the amounts copied into their snapshots.
    """
    fee = await pricing_admin.update_complexity_fee(
        db,
        complexity_type,
        amount=update.amount,
        multi_animal_flat_fee=update.multi_animal_flat_fee,
    )

    await log_request_event(
        db,
        AuditAction.COMPLEXITY_FEE_UPDATED,
        request,
        current_user,
        complexity_type=complexity_type.value,
        amount=fee.amount,
        multi_animal_flat_fee=fee.multi_animal_flat_fee,
    )

    return fee


@router.post(
    "/transports/{transport_id}/pricing-snapshot/revisions",
    response_model=PricingSnapshotResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_pricing_snapshot_revision(
    request: Request,
    transport_id: int = Path(..., description="Transport ID"),
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
    directions: DirectionsClient = Depends(get_directions_client),
):
    """
    Re-price a transport under the current rule.

    Appends a new snapshot revision; earlier revisions stay as they are.
    """
    builder = PricingSnapshotBuilder(db, directions, redis)
    snapshot = await builder.create_new_revision(transport_id)

    await log_request_event(
        db,
        AuditAction.PRICING_SNAPSHOT_REVISED,
        request,
        current_user,
        transport_id=transport_id,
        snapshot_id=snapshot.id,
        revision=snapshot.revision,
        calculation_version=snapshot.calculation_version,
    )

    return snapshot
