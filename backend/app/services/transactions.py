"""
Transaction read models.

Flattens transactions with their transport's current pricing snapshot for
the admin payment views and computes payment statistics.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.models.enums import (
    ACTIVE_TRANSPORT_STATUSES,
    SETTLED_TRANSACTION_STATUSES,
    TransactionStatus,
)
from backend.app.models.pricing_snapshot import PricingSnapshot
from backend.app.models.transaction import Transaction
from backend.app.models.transport import Transport
from backend.app.schemas.transaction import (
    DetailedTransactionResponse,
    MonthlyPaymentBreakdown,
    PaymentStatsResponse,
)

UNKNOWN = "Unknown"
MONTHS_IN_BREAKDOWN = 6


def _transaction_query():
    return select(Transaction).options(
        selectinload(Transaction.transport).selectinload(Transport.animal),
        selectinload(Transaction.transport).selectinload(Transport.driver),
        selectinload(Transaction.transport).selectinload(Transport.shelter),
    )


async def _latest_snapshots(db: AsyncSession, transport_ids: List[int]) -> Dict[int, PricingSnapshot]:
    """Current (highest revision) snapshot per transport."""
    if not transport_ids:
        return {}

    result = await db.execute(
        select(PricingSnapshot)
        .where(PricingSnapshot.transport_id.in_(transport_ids))
        .order_by(PricingSnapshot.transport_id, PricingSnapshot.revision)
    )
    # Later revisions overwrite earlier ones
    return {snapshot.transport_id: snapshot for snapshot in result.scalars().all()}


def build_detailed_transaction(
    transaction: Transaction,
    snapshot: Optional[PricingSnapshot],
) -> DetailedTransactionResponse:
    """Flatten a transaction and its pricing breakdown. Missing snapshot values read as 0."""
    transport = transaction.transport

    def snapshot_value(field: str) -> float:
        return getattr(snapshot, field) if snapshot is not None else 0.0

    return DetailedTransactionResponse(
        id=transaction.id,
        status=transaction.status.value,
        amount=transaction.amount,
        currency=transaction.currency,
        created_at=transaction.created_at,
        completed_at=transport.completed_at,
        transport_id=transaction.transport_id,
        transport_date=transport.transport_date,
        pick_up_location=transport.pick_up_location,
        drop_off_location=transport.drop_off_location,
        distance_miles=snapshot_value("distance_miles"),
        duration_minutes=snapshot_value("duration_minutes"),
        driver_id=transport.driver_id,
        driver_name=transport.driver.name if transport.driver else UNKNOWN,
        shelter_id=transport.shelter_id,
        shelter_name=transport.shelter.name if transport.shelter else UNKNOWN,
        animal_name=transport.animal.name if transport.animal else UNKNOWN,
        rate_per_mile=snapshot_value("rate_per_mile"),
        rate_per_minute=snapshot_value("rate_per_minute"),
        distance_cost=snapshot_value("distance_cost"),
        time_cost=snapshot_value("time_cost"),
        complexity_fee=round(snapshot_value("animal_complexity_fee") + snapshot_value("multi_animal_fee"), 2),
        platform_fee=snapshot_value("platform_fee"),
        driver_payout=snapshot_value("driver_payout"),
        total_cost=snapshot_value("total_ride_cost"),
    )


async def get_detailed_transaction(db: AsyncSession, transaction_id: int) -> DetailedTransactionResponse:
    result = await db.execute(_transaction_query().where(Transaction.id == transaction_id))
    transaction = result.scalar_one_or_none()

    if not transaction:
        raise ResourceNotFoundError("Transaction", transaction_id)

    snapshots = await _latest_snapshots(db, [transaction.transport_id])
    return build_detailed_transaction(transaction, snapshots.get(transaction.transport_id))


async def list_detailed_transactions(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    status: Optional[TransactionStatus] = None,
) -> Tuple[List[DetailedTransactionResponse], int]:
    """Newest first. Returns (page of transactions, total matching)."""
    count_query = select(func.count(Transaction.id))
    query = _transaction_query()
    if status is not None:
        count_query = count_query.where(Transaction.status == status)
        query = query.where(Transaction.status == status)

    total = (await db.execute(count_query)).scalar() or 0

    result = await db.execute(
        query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    transactions = result.scalars().all()

    snapshots = await _latest_snapshots(db, [t.transport_id for t in transactions])
    return [build_detailed_transaction(t, snapshots.get(t.transport_id)) for t in transactions], total


def _month_starts(now: datetime, months: int) -> List[datetime]:
    """First day of each of the last `months` months, oldest first."""
    starts = []
    year, month = now.year, now.month
    for _ in range(months):
        starts.append(datetime(year, month, 1, tzinfo=timezone.utc))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


async def get_payment_stats(db: AsyncSession, now: Optional[datetime] = None) -> PaymentStatsResponse:
    """
    Payment statistics.

    Revenue, payouts, platform fees and miles count settled transactions
    only (CHARGED, TRANSFERRED, PROCESSING).
    """
    now = now or datetime.now(timezone.utc)

    counts: Dict[TransactionStatus, int] = {}
    sums: Dict[TransactionStatus, float] = {}
    grouped = await db.execute(
        select(Transaction.status, func.count(Transaction.id), func.sum(Transaction.amount))
        .group_by(Transaction.status)
    )
    for status, count, amount in grouped.all():
        counts[status] = count
        sums[status] = amount or 0.0

    settled_result = await db.execute(
        select(Transaction).where(Transaction.status.in_(SETTLED_TRANSACTION_STATUSES))
    )
    settled = settled_result.scalars().all()
    snapshots = await _latest_snapshots(db, [t.transport_id for t in settled])

    total_driver_payouts = 0.0
    total_platform_fees = 0.0
    total_miles = 0.0
    for transaction in settled:
        snapshot = snapshots.get(transaction.transport_id)
        if snapshot is not None:
            total_driver_payouts += snapshot.driver_payout
            total_platform_fees += snapshot.platform_fee
            total_miles += snapshot.distance_miles

    total_rides = (await db.execute(select(func.count(Transport.id)))).scalar() or 0
    active_rides = (await db.execute(
        select(func.count(Transport.id)).where(Transport.status.in_(ACTIVE_TRANSPORT_STATUSES))
    )).scalar() or 0

    breakdown = []
    for start in _month_starts(now, MONTHS_IN_BREAKDOWN):
        in_month = [
            t for t in settled
            if t.created_at is not None
            and (t.created_at.year, t.created_at.month) == (start.year, start.month)
        ]
        breakdown.append(MonthlyPaymentBreakdown(
            month=start.strftime("%b %y"),
            revenue=round(sum(t.amount for t in in_month), 2),
            payouts=round(sum(
                snapshots[t.transport_id].driver_payout for t in in_month if t.transport_id in snapshots
            ), 2),
            count=len(in_month),
        ))

    return PaymentStatsResponse(
        total_revenue=round(sum(sums.get(s, 0.0) for s in SETTLED_TRANSACTION_STATUSES), 2),
        total_driver_payouts=round(total_driver_payouts, 2),
        total_platform_fees=round(total_platform_fees, 2),
        total_transactions=sum(counts.values()),
        pending_transactions=counts.get(TransactionStatus.PENDING, 0),
        completed_transactions=counts.get(TransactionStatus.TRANSFERRED, 0),
        failed_transactions=counts.get(TransactionStatus.FAILED, 0),
        total_miles=round(total_miles, 2),
        total_rides=total_rides,
        active_rides=active_rides,
        monthly_breakdown=breakdown,
    )
