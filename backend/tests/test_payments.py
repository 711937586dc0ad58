"""
Payment Read Model Tests.

Detailed transactions and payment statistics built from pricing snapshots.
"""

import pytest
from datetime import datetime, timezone

from backend.app.domain.pricing.snapshot_builder import PricingSnapshotBuilder
from backend.app.models.enums import ComplexityType, TransactionStatus, TransportStatus
from backend.app.models.transaction import Transaction
from backend.app.services import pricing_admin
from backend.app.services.transactions import get_payment_stats, list_detailed_transactions

from conftest import auth_headers


@pytest.fixture
async def priced_transactions(db_session, directions, redis, transport_factory, driver, seeded_pricing):
    """Three priced transports: one settled single, one settled bonded pair, one pending."""
    await pricing_admin.create_pricing_rule(
        db_session, rate_per_mile=0.65, rate_per_minute=0, base_fare=0, platform_fee_percent=10, min_payout=5,
    )
    builder = PricingSnapshotBuilder(db_session, directions, redis)

    specs = [
        (ComplexityType.STANDARD, False, TransactionStatus.CHARGED),
        (ComplexityType.MEDICAL, True, TransactionStatus.TRANSFERRED),
        (ComplexityType.STANDARD, False, TransactionStatus.PENDING),
    ]
    transactions = []
    for complexity_type, bonded, status in specs:
        transport = await transport_factory(driver, complexity_type, bonded)
        transport.status = TransportStatus.COMPLETED
        snapshot = await builder.create_snapshot(transport.id)
        transaction = Transaction(transport_id=transport.id, status=status, amount=snapshot.total_ride_cost)
        db_session.add(transaction)
        await db_session.commit()
        await db_session.refresh(transaction)
        transactions.append(transaction)
    return transactions


async def test_detailed_transaction_flattens_snapshot(client, admin_headers, priced_transactions):
    bonded = priced_transactions[1]

    response = await client.get(f"/v1/transactions/{bonded.id}", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "TRANSFERRED"
    assert data["amount"] == 40.15
    assert data["currency"] == "usd"
    assert data["driver_name"] == "Dana Driver"
    assert data["shelter_name"] == "Happy Tails Rescue"
    assert data["animal_name"] == "Biscuit"
    assert data["distance_miles"] == 10.0
    assert data["rate_per_mile"] == 0.65
    assert data["complexity_fee"] == 30
    assert data["platform_fee"] == 3.65
    assert data["driver_payout"] == 32.85
    assert data["total_cost"] == 40.15


async def test_shelter_sees_own_transaction_only(client, shelter, priced_transactions):
    own = await client.get(
        f"/v1/transactions/{priced_transactions[0].id}",
        headers=auth_headers("SHELTER_ADMIN", 20, shelter.id),
    )
    other = await client.get(
        f"/v1/transactions/{priced_transactions[0].id}",
        headers=auth_headers("SHELTER_ADMIN", 21, shelter.id + 1),
    )

    assert own.status_code == 200
    assert other.status_code == 403
    assert other.json()["error_code"] == "ERR_PERM_001"
    assert other.json()["details"]["resource"] == "transaction"


async def test_unknown_transaction(client, admin_headers):
    response = await client.get("/v1/transactions/9999", headers=admin_headers)

    assert response.status_code == 404


async def test_transaction_list_paginates_and_filters(client, admin_headers, priced_transactions):
    page = (await client.get("/v1/admin/transactions?page=1&page_size=2", headers=admin_headers)).json()

    assert page["total"] == 3
    assert len(page["transactions"]) == 2
    assert page["transactions"][0]["id"] == priced_transactions[-1].id

    pending = (await client.get("/v1/admin/transactions?status=PENDING", headers=admin_headers)).json()
    assert pending["total"] == 1
    assert pending["transactions"][0]["status"] == "PENDING"


async def test_transaction_without_snapshot_reads_zero(db_session, transport):
    db_session.add(Transaction(transport_id=transport.id, status=TransactionStatus.PENDING, amount=0))
    await db_session.commit()

    transactions, total = await list_detailed_transactions(db_session)

    assert total == 1
    assert transactions[0].total_cost == 0
    assert transactions[0].complexity_fee == 0


async def test_payment_stats(db_session, priced_transactions):
    stats = await get_payment_stats(db_session, now=datetime.now(timezone.utc))

    assert stats.total_transactions == 3
    assert stats.pending_transactions == 1
    assert stats.completed_transactions == 1
    assert stats.failed_transactions == 0
    # Settled: 7.15 + 40.15
    assert stats.total_revenue == 47.3
    assert stats.total_driver_payouts == 38.7
    assert stats.total_platform_fees == 4.3
    assert stats.total_miles == 20.0
    assert stats.total_rides == 3
    assert stats.active_rides == 0
    assert len(stats.monthly_breakdown) == 6
    assert stats.monthly_breakdown[-1].count == 2
    assert stats.monthly_breakdown[-1].revenue == 47.3


async def test_payment_stats_endpoint_is_admin_only(client, shelter_headers, admin_headers):
    assert (await client.get("/v1/admin/payment-stats", headers=shelter_headers)).status_code == 403

    response = await client.get("/v1/admin/payment-stats", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["total_transactions"] == 0
