"""
Animal Complexity Fee database model.
"""

from sqlalchemy import Column, Integer, Float, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import ComplexityType


class AnimalComplexityFee(Base):
    """
    Current surcharge for a complexity classification.

    Unlike pricing rules these rows are edited in place; snapshots copy the
    amounts they used, so edits never change past prices.
    """
    __tablename__ = "animal_complexity_fees"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    complexity_type = Column(Enum(ComplexityType), nullable=False, unique=True, index=True)
    amount = Column(Float, nullable=False, default=0.0)
    multi_animal_flat_fee = Column(Float, nullable=False, default=0.0)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<AnimalComplexityFee(type='{self.complexity_type.value}', amount={self.amount})>"
