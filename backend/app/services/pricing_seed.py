"""
Default pricing data.

Seeds calculation version 1 and the four complexity fees. Safe to run
repeatedly: existing rows are never touched.
"""

import logging
from datetime import datetime, timezone
from typing import Dict

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from backend.app.domain.pricing.pricing_resolver import PricingResolver
from backend.app.models.complexity_fee import AnimalComplexityFee
from backend.app.models.enums import ComplexityType
from backend.app.models.pricing_rule import PricingRule

logger = logging.getLogger(__name__)

DEFAULT_RULE = {
    "rate_per_mile": 0.65,
    "rate_per_minute": 0.0,
    "base_fare": 0.0,
    "platform_fee_percent": 0.0,
    "min_payout": 0.0,
}

# (amount, multi_animal_flat_fee)
DEFAULT_COMPLEXITY_FEES = {
    ComplexityType.STANDARD: (0.0, 0.0),
    ComplexityType.PUPPY_KITTEN: (10.0, 5.0),
    ComplexityType.MEDICAL: (20.0, 10.0),
    ComplexityType.SPECIAL_HANDLING: (25.0, 15.0),
}


async def seed_pricing_defaults(db: AsyncSession) -> Dict[str, int]:
    """
    Insert missing default pricing data.

    Returns:
        {"rules": n, "complexity_fees": m} rows created
    """
    created = {"rules": 0, "complexity_fees": 0}

    if await PricingResolver.resolve_active_rule(db) is None:
        db.add(PricingRule(
            calculation_version=1,
            effective_date=datetime.now(timezone.utc),
            **DEFAULT_RULE,
        ))
        created["rules"] = 1

    result = await db.execute(select(AnimalComplexityFee.complexity_type))
    existing = set(result.scalars().all())

    for complexity_type, (amount, flat_fee) in DEFAULT_COMPLEXITY_FEES.items():
        if complexity_type in existing:
            continue
        db.add(AnimalComplexityFee(
            complexity_type=complexity_type,
            amount=amount,
            multi_animal_flat_fee=flat_fee,
        ))
        created["complexity_fees"] += 1

    await db.commit()
    logger.info("Pricing defaults seeded: %s", created)
    return created
