"""
Rate Table Resolver.

Resolves the pricing rule and complexity fee in effect at computation time.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from backend.app.core.exceptions import FeeNotFoundError
from backend.app.models.pricing_rule import PricingRule
from backend.app.models.complexity_fee import AnimalComplexityFee
from backend.app.models.enums import ComplexityType


class PricingResolver:

    @staticmethod
    async def resolve_active_rule(db: AsyncSession) -> Optional[PricingRule]:
        """
        Find the rule with the highest calculation version.

        Returns None when no rule has been created yet. That is a bootstrap
        state, not an error; callers that need a rule raise
        RuleNotConfiguredError.
        """
        result = await db.execute(
            select(PricingRule).order_by(PricingRule.calculation_version.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def next_calculation_version(db: AsyncSession) -> int:
        current = (await db.execute(select(func.max(PricingRule.calculation_version)))).scalar()
        return (current or 0) + 1

    @staticmethod
    async def resolve_complexity_fee(db: AsyncSession, complexity_type: ComplexityType) -> AnimalComplexityFee:
        """
        Find the current fee row for a classification.

        Raises:
            FeeNotFoundError: If the classification has not been seeded.
        """
        result = await db.execute(
            select(AnimalComplexityFee).where(AnimalComplexityFee.complexity_type == complexity_type)
        )
        fee = result.scalar_one_or_none()

        if not fee:
            raise FeeNotFoundError(complexity_type)

        return fee
