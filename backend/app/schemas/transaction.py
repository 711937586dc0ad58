"""
Transaction schemas.

Flattened transaction views with the pricing breakdown of the transport.
"""

from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class DetailedTransactionResponse(BaseModel):
    id: int
    status: str
    amount: float
    currency: str
    created_at: datetime
    completed_at: Optional[datetime]

    transport_id: int
    transport_date: Optional[datetime]
    pick_up_location: str
    drop_off_location: str
    distance_miles: float
    duration_minutes: float

    driver_id: Optional[int]
    driver_name: str

    shelter_id: int
    shelter_name: str

    animal_name: str

    rate_per_mile: float
    rate_per_minute: float
    distance_cost: float
    time_cost: float
    complexity_fee: float
    platform_fee: float
    driver_payout: float
    total_cost: float


class TransactionListResponse(BaseModel):
    """Schema for paginated transaction list."""
    transactions: List[DetailedTransactionResponse]
    total: int
    page: int
    page_size: int


class MonthlyPaymentBreakdown(BaseModel):
    month: str
    revenue: float
    payouts: float
    count: int


class PaymentStatsResponse(BaseModel):
    total_revenue: float
    total_driver_payouts: float
    total_platform_fees: float
    total_transactions: int
    pending_transactions: int
    completed_transactions: int
    failed_transactions: int
    total_miles: float
    total_rides: int
    active_rides: int
    monthly_breakdown: List[MonthlyPaymentBreakdown]
