"""
Pricing schemas.

Schemas for pricing rules, complexity fees, pricing snapshots and quotes.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from backend.app.models.enums import ComplexityType


class PricingRuleCreate(BaseModel):
    """Schema for appending a new pricing rule version."""
    rate_per_mile: float = Field(..., ge=0, description="Rate per mile in dollars")
    rate_per_minute: float = Field(..., ge=0, description="Rate per minute in dollars")
    base_fare: float = Field(..., ge=0)
    platform_fee_percent: float = Field(..., ge=0, le=100, description="Platform fee percentage (0-100)")
    min_payout: float = Field(..., ge=0, description="Minimum payout to driver")
    effective_date: Optional[datetime] = None


class PricingRuleResponse(BaseModel):
    id: int
    rate_per_mile: float
    rate_per_minute: float
    base_fare: float
    platform_fee_percent: float
    min_payout: float
    effective_date: datetime
    calculation_version: int
    created_by_admin_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class ComplexityFeeUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""
    amount: Optional[float] = Field(None, ge=0, description="Fee amount in dollars")
    multi_animal_flat_fee: Optional[float] = Field(None, ge=0, description="Additional flat fee for multi-animal")


class ComplexityFeeResponse(BaseModel):
    id: int
    complexity_type: ComplexityType
    amount: float
    multi_animal_flat_fee: float
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class PricingSnapshotResponse(BaseModel):
    """Immutable financial breakdown of a transport."""
    id: int
    transport_id: int
    revision: int
    pricing_rule_id: int
    calculation_version: int
    complexity_type: ComplexityType
    animal_count: int

    distance_miles: float
    duration_minutes: float

    rate_per_mile: float
    rate_per_minute: float
    base_fare: float
    platform_fee_percent: float
    min_payout: float

    distance_cost: float
    time_cost: float
    animal_complexity_fee: float
    multi_animal_fee: float
    complexity_fee: float
    subtotal: float
    platform_fee: float
    driver_payout: float
    total_ride_cost: float

    created_at: datetime

    class Config:
        from_attributes = True


class PriceEstimateRequest(BaseModel):
    """Quote request for a prospective transport."""
    pick_up_latitude: float = Field(..., ge=-90, le=90)
    pick_up_longitude: float = Field(..., ge=-180, le=180)
    drop_off_latitude: float = Field(..., ge=-90, le=90)
    drop_off_longitude: float = Field(..., ge=-180, le=180)
    complexity_type: ComplexityType = ComplexityType.STANDARD
    animal_count: int = Field(1, ge=1)


class PriceEstimateResponse(BaseModel):
    calculation_version: int
    complexity_type: ComplexityType
    animal_count: int
    distance_miles: float
    duration_minutes: float
    distance_cost: float
    time_cost: float
    complexity_fee: float
    subtotal: float
    platform_fee: float
    driver_payout: float
    total_ride_cost: float
