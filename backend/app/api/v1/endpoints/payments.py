"""
Payment API Endpoints.

Detailed transaction views and admin payment statistics.
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from backend.app.db.session import get_db
from backend.app.models.enums import ADMIN_ROLES, SHELTER_ROLES, TransactionStatus
from backend.app.schemas.transaction import (
    DetailedTransactionResponse,
    PaymentStatsResponse,
    TransactionListResponse,
)
from backend.app.core.guards import require_role
from backend.app.services.transactions import (
    get_detailed_transaction,
    get_payment_stats,
    list_detailed_transactions,
)
from backend.app.services.transports import access_guard

router = APIRouter(tags=["Payments"])
admin_router = APIRouter(prefix="/admin", tags=["Admin - Payments"])


@router.get("/transactions/{transaction_id}", response_model=DetailedTransactionResponse)
async def get_transaction(
    transaction_id: int = Path(..., description="Transaction ID"),
    current_user: dict = Depends(require_role(ADMIN_ROLES + SHELTER_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Transaction with the pricing breakdown of its transport."""
    transaction = await get_detailed_transaction(db, transaction_id)
    access_guard.enforce(current_user, transaction.shelter_id, None, "transaction")
    return transaction


@admin_router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[TransactionStatus] = Query(None),
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Transaction history, newest first."""
    transactions, total = await list_detailed_transactions(db, page=page, page_size=page_size, status=status)
    return TransactionListResponse(
        transactions=transactions,
        total=total,
        page=page,
        page_size=page_size,
    )


@admin_router.get("/payment-stats", response_model=PaymentStatsResponse)
async def payment_stats(
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    return await get_payment_stats(db)
