"""
Pricing administration.

Pricing rules are append-only: an admin "change" creates the next
calculation version and never edits an existing row. Complexity fees are
edited in place; snapshots copy the amounts they used, so edits never
reach already-priced transports.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from backend.app.domain.pricing.pricing_resolver import PricingResolver
from backend.app.models.complexity_fee import AnimalComplexityFee
from backend.app.models.enums import ComplexityType
from backend.app.models.pricing_rule import PricingRule

logger = logging.getLogger(__name__)

MAX_VERSION_ATTEMPTS = 3


async def list_pricing_rules(db: AsyncSession) -> List[PricingRule]:
    """Rule history, newest version first."""
    result = await db.execute(
        select(PricingRule).order_by(PricingRule.calculation_version.desc())
    )
    return result.scalars().all()


async def create_pricing_rule(
    db: AsyncSession,
    rate_per_mile: float,
    rate_per_minute: float,
    base_fare: float,
    platform_fee_percent: float,
    min_payout: float,
    effective_date: Optional[datetime] = None,
    created_by_admin_id: Optional[int] = None,
) -> PricingRule:
    """
    Append the next pricing rule version.

    The calculation_version unique constraint decides concurrent appends;
    the loser retries with the following version.
    """
    for attempt in range(MAX_VERSION_ATTEMPTS):
        rule = PricingRule(
            rate_per_mile=rate_per_mile,
            rate_per_minute=rate_per_minute,
            base_fare=base_fare,
            platform_fee_percent=platform_fee_percent,
            min_payout=min_payout,
            effective_date=effective_date or datetime.now(timezone.utc),
            calculation_version=await PricingResolver.next_calculation_version(db),
            created_by_admin_id=created_by_admin_id,
        )
        db.add(rule)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            if attempt == MAX_VERSION_ATTEMPTS - 1:
                raise
            logger.warning("Pricing rule version collision (attempt %s), retrying", attempt + 1)
            continue

        await db.refresh(rule)
        logger.info("Pricing rule v%s created by admin %s", rule.calculation_version, created_by_admin_id)
        return rule


async def list_complexity_fees(db: AsyncSession) -> List[AnimalComplexityFee]:
    result = await db.execute(
        select(AnimalComplexityFee).order_by(AnimalComplexityFee.amount.asc())
    )
    return result.scalars().all()


async def update_complexity_fee(
    db: AsyncSession,
    complexity_type: ComplexityType,
    amount: Optional[float] = None,
    multi_animal_flat_fee: Optional[float] = None,
) -> AnimalComplexityFee:
    """
    Update a complexity fee in place.

    Raises:
        FeeNotFoundError: If the classification has not been seeded.
    """
    fee = await PricingResolver.resolve_complexity_fee(db, complexity_type)

    if amount is not None:
        fee.amount = amount
    if multi_animal_flat_fee is not None:
        fee.multi_animal_flat_fee = multi_animal_flat_fee

    await db.commit()
    await db.refresh(fee)
    logger.info(
        "Complexity fee %s updated: amount=%s multi_animal_flat_fee=%s",
        complexity_type.value, fee.amount, fee.multi_animal_flat_fee,
    )
    return fee
