"""
Pricing Rule database model.

Versioned, append-only rate table used to price transports.
"""

from sqlalchemy import Column, Integer, Float, DateTime
from sqlalchemy.sql import func
from backend.app.db.session import Base


class PricingRule(Base):
    """
    Pricing Rule model.

    Rows are never edited: an admin change creates a new rule with the next
    calculation_version, and the highest version is the one in effect.
    """
    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Rates
    rate_per_mile = Column(Float, nullable=False)
    rate_per_minute = Column(Float, nullable=False, default=0.0)
    base_fare = Column(Float, nullable=False, default=0.0)
    platform_fee_percent = Column(Float, nullable=False, default=0.0)  # 0-100
    min_payout = Column(Float, nullable=False, default=0.0)

    # Versioning
    effective_date = Column(DateTime(timezone=True), nullable=False)
    calculation_version = Column(Integer, nullable=False, unique=True, index=True)

    # Audit (None for seeded rules)
    created_by_admin_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<PricingRule(id={self.id}, version={self.calculation_version}, rate_per_mile={self.rate_per_mile})>"
