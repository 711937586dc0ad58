"""
Pricing Snapshot database model.

Point-in-time financial breakdown for one transport.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime, Enum, UniqueConstraint
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import ComplexityType


class PricingSnapshot(Base):
    """
    Pricing Snapshot model.

    Written once and never updated. The rates used are copied from the
    PricingRule in effect at computation time, not referenced, so later rule
    versions cannot change a recorded price. A re-price appends a new
    revision; the (transport_id, revision) constraint makes the insert
    conditional so two concurrent writers cannot both create revision N.
    """
    __tablename__ = "pricing_snapshots"
    __table_args__ = (
        UniqueConstraint("transport_id", "revision", name="uq_pricing_snapshots_transport_revision"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    transport_id = Column(Integer, ForeignKey("transports.id"), nullable=False, index=True)
    revision = Column(Integer, nullable=False, default=1)

    # Provenance
    pricing_rule_id = Column(Integer, ForeignKey("pricing_rules.id"), nullable=False)
    calculation_version = Column(Integer, nullable=False)
    complexity_type = Column(Enum(ComplexityType), nullable=False)
    animal_count = Column(Integer, nullable=False, default=1)

    # Route inputs
    distance_miles = Column(Float, nullable=False)
    duration_minutes = Column(Float, nullable=False)

    # Rates used (copied)
    rate_per_mile = Column(Float, nullable=False)
    rate_per_minute = Column(Float, nullable=False)
    base_fare = Column(Float, nullable=False)
    platform_fee_percent = Column(Float, nullable=False)
    min_payout = Column(Float, nullable=False)

    # Financials (rounded to cents at write time)
    distance_cost = Column(Float, nullable=False)
    time_cost = Column(Float, nullable=False)
    animal_complexity_fee = Column(Float, nullable=False)
    multi_animal_fee = Column(Float, nullable=False)
    complexity_fee = Column(Float, nullable=False)
    subtotal = Column(Float, nullable=False)
    platform_fee = Column(Float, nullable=False)
    driver_payout = Column(Float, nullable=False)
    total_ride_cost = Column(Float, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<PricingSnapshot(transport_id={self.transport_id}, revision={self.revision}, "
            f"total={self.total_ride_cost})>"
        )
