"""
Audit trail for pricing and routing changes.

Every admin pricing edit, snapshot creation and route computation is written
to audit_logs with the acting user and the request correlation id.
"""

import logging
from typing import Optional, Dict, Any

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditAction:
    PRICING_RULE_CREATED = "PRICING_RULE_CREATED"
    COMPLEXITY_FEE_UPDATED = "COMPLEXITY_FEE_UPDATED"
    PRICING_SNAPSHOT_CREATED = "PRICING_SNAPSHOT_CREATED"
    PRICING_SNAPSHOT_REVISED = "PRICING_SNAPSHOT_REVISED"
    ROUTE_COMPUTED = "ROUTE_COMPUTED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    transport_id: Optional[int] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Persist one audit entry and commit it.

    actor_id is None for system actions such as seeding.
    """
    entry = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        transport_id=transport_id,
        meta_data=metadata,
        ip_address=ip_address
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)

    logger.info("Audit %s by %s", action, actor_id if actor_id is not None else "system")
    return entry


async def log_request_event(
    db: AsyncSession,
    action: str,
    request: Request,
    current_user: dict,
    **metadata: Any,
) -> AuditLog:
    """Audit an action taken through the API by the authenticated caller."""
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id:
        metadata["correlation_id"] = correlation_id

    return await log_event(
        db=db,
        action=action,
        actor_id=current_user.get("user_id"),
        actor_username=current_user.get("sub"),
        transport_id=metadata.get("transport_id"),
        metadata=metadata,
        ip_address=request.client.host if request.client else None,
    )
