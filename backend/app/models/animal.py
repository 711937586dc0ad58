"""
Animal database model.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import ComplexityType


class Animal(Base):
    """Animal awaiting or undergoing transport."""
    __tablename__ = "animals"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    shelter_id = Column(Integer, ForeignKey("shelters.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    breed = Column(String(100), nullable=True)
    complexity_type = Column(Enum(ComplexityType), default=ComplexityType.STANDARD, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Animal(id={self.id}, name='{self.name}', complexity='{self.complexity_type.value}')>"
