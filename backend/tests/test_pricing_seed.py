"""
Pricing Seed Tests.
"""

from sqlalchemy import select

from backend.app.models.complexity_fee import AnimalComplexityFee
from backend.app.models.enums import ComplexityType
from backend.app.models.pricing_rule import PricingRule
from backend.app.services.pricing_seed import seed_pricing_defaults


async def test_seed_creates_defaults(db_session):
    created = await seed_pricing_defaults(db_session)

    assert created == {"rules": 1, "complexity_fees": 4}

    rule = (await db_session.execute(select(PricingRule))).scalar_one()
    assert rule.calculation_version == 1
    assert rule.rate_per_mile == 0.65
    assert rule.platform_fee_percent == 0

    fees = {
        fee.complexity_type: (fee.amount, fee.multi_animal_flat_fee)
        for fee in (await db_session.execute(select(AnimalComplexityFee))).scalars().all()
    }
    assert fees == {
        ComplexityType.STANDARD: (0, 0),
        ComplexityType.PUPPY_KITTEN: (10, 5),
        ComplexityType.MEDICAL: (20, 10),
        ComplexityType.SPECIAL_HANDLING: (25, 15),
    }


async def test_seed_is_idempotent(db_session):
    await seed_pricing_defaults(db_session)

    created = await seed_pricing_defaults(db_session)

    assert created == {"rules": 0, "complexity_fees": 0}
    assert len((await db_session.execute(select(PricingRule))).scalars().all()) == 1
