"""
Price calculation for transport jobs.

Pure arithmetic, no I/O. Amounts are carried as Decimal at full precision
through every step and only rounded to cents at the persistence/display
boundary (PriceBreakdown.rounded), so rounding error never compounds.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Union

CENT = Decimal("0.01")
METERS_TO_MILES = Decimal("0.000621371")

Number = Union[int, float, Decimal]


def to_decimal(value: Number) -> Decimal:
    """Convert through str so 0.65 stays 0.65 rather than its binary float expansion."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_cents(value: Decimal) -> float:
    return float(value.quantize(CENT, rounding=ROUND_HALF_UP))


def meters_to_miles(distance_meters: Number) -> Decimal:
    """Provider meters to billable miles, two decimals."""
    return (to_decimal(distance_meters) * METERS_TO_MILES).quantize(CENT, rounding=ROUND_HALF_UP)


def seconds_to_minutes(duration_seconds: Number) -> int:
    """Provider seconds to billable minutes, rounded up."""
    return math.ceil(float(duration_seconds) / 60)


@dataclass(frozen=True)
class RateValues:
    """The rate table values a computation used (copied off the rule)."""
    rate_per_mile: Decimal
    rate_per_minute: Decimal
    base_fare: Decimal
    platform_fee_percent: Decimal
    min_payout: Decimal

    @classmethod
    def from_rule(cls, rule: Any) -> "RateValues":
        return cls(
            rate_per_mile=to_decimal(rule.rate_per_mile),
            rate_per_minute=to_decimal(rule.rate_per_minute),
            base_fare=to_decimal(rule.base_fare),
            platform_fee_percent=to_decimal(rule.platform_fee_percent),
            min_payout=to_decimal(rule.min_payout),
        )


@dataclass(frozen=True)
class PriceBreakdown:
    distance_miles: Decimal
    duration_minutes: Decimal
    animal_count: int
    rates: RateValues
    distance_cost: Decimal
    time_cost: Decimal
    animal_complexity_fee: Decimal
    multi_animal_fee: Decimal
    complexity_fee: Decimal
    subtotal: Decimal
    platform_fee: Decimal
    driver_payout: Decimal
    total_ride_cost: Decimal

    def rounded(self) -> Dict[str, float]:
        """Column values for a PricingSnapshot (money rounded to cents)."""
        return {
            "distance_miles": float(self.distance_miles),
            "duration_minutes": float(self.duration_minutes),
            "animal_count": self.animal_count,
            "rate_per_mile": float(self.rates.rate_per_mile),
            "rate_per_minute": float(self.rates.rate_per_minute),
            "base_fare": float(self.rates.base_fare),
            "platform_fee_percent": float(self.rates.platform_fee_percent),
            "min_payout": float(self.rates.min_payout),
            "distance_cost": to_cents(self.distance_cost),
            "time_cost": to_cents(self.time_cost),
            "animal_complexity_fee": to_cents(self.animal_complexity_fee),
            "multi_animal_fee": to_cents(self.multi_animal_fee),
            "complexity_fee": to_cents(self.complexity_fee),
            "subtotal": to_cents(self.subtotal),
            "platform_fee": to_cents(self.platform_fee),
            "driver_payout": to_cents(self.driver_payout),
            "total_ride_cost": to_cents(self.total_ride_cost),
        }


def calculate_price(
    distance_miles: Number,
    duration_minutes: Number,
    rates: RateValues,
    fee_amount: Number,
    multi_animal_flat_fee: Number,
    animal_count: int,
) -> PriceBreakdown:
    """
    Compute the financial breakdown of a transport.

    The steps run in a fixed order, each feeding the next:

        distance_cost  = miles * rate_per_mile
        time_cost      = minutes * rate_per_minute
        complexity_fee = fee + (multi-animal flat fee if more than one animal)
        subtotal       = base_fare + distance_cost + time_cost + complexity_fee
        platform_fee   = subtotal * platform_fee_percent / 100
        driver_payout  = max(min_payout, subtotal - platform_fee)
        total          = subtotal + platform_fee

    The platform fee is added to the shelter's total and independently
    deducted from the driver's payout, which is then floored at min_payout.
    """
    miles = to_decimal(distance_miles)
    minutes = to_decimal(duration_minutes)

    distance_cost = miles * rates.rate_per_mile
    time_cost = minutes * rates.rate_per_minute

    animal_complexity_fee = to_decimal(fee_amount)
    multi_animal_fee = to_decimal(multi_animal_flat_fee) if animal_count > 1 else Decimal("0")
    complexity_fee = animal_complexity_fee + multi_animal_fee

    subtotal = rates.base_fare + distance_cost + time_cost + complexity_fee
    platform_fee = subtotal * rates.platform_fee_percent / Decimal("100")
    driver_payout = max(rates.min_payout, subtotal - platform_fee)
    total_ride_cost = subtotal + platform_fee

    return PriceBreakdown(
        distance_miles=miles,
        duration_minutes=minutes,
        animal_count=animal_count,
        rates=rates,
        distance_cost=distance_cost,
        time_cost=time_cost,
        animal_complexity_fee=animal_complexity_fee,
        multi_animal_fee=multi_animal_fee,
        complexity_fee=complexity_fee,
        subtotal=subtotal,
        platform_fee=platform_fee,
        driver_payout=driver_payout,
        total_ride_cost=total_ride_cost,
    )
