"""
Transport database model.

A transport job moves one animal (optionally with its bonded pair) from a
pick-up location to a drop-off location.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import TransportStatus


class Transport(Base):
    """
    Transport model.

    Owns at most one RoutePath and LivePosition and an append-only list of
    PricingSnapshot revisions.
    """
    __tablename__ = "transports"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership
    shelter_id = Column(Integer, ForeignKey("shelters.id"), nullable=False, index=True)
    animal_id = Column(Integer, ForeignKey("animals.id"), nullable=False, index=True)
    bonded_pair_id = Column(Integer, ForeignKey("animals.id"), nullable=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True, index=True)

    status = Column(Enum(TransportStatus), default=TransportStatus.PENDING, nullable=False, index=True)

    # Locations
    pick_up_location = Column(String(500), nullable=False)
    pick_up_latitude = Column(Float, nullable=False)
    pick_up_longitude = Column(Float, nullable=False)
    drop_off_location = Column(String(500), nullable=False)
    drop_off_latitude = Column(Float, nullable=False)
    drop_off_longitude = Column(Float, nullable=False)

    # Timestamps
    transport_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    animal = relationship("Animal", foreign_keys=[animal_id])
    bonded_pair = relationship("Animal", foreign_keys=[bonded_pair_id])
    driver = relationship("Driver")
    shelter = relationship("Shelter")

    @property
    def animal_count(self) -> int:
        return 2 if self.bonded_pair_id else 1

    def __repr__(self):
        return f"<Transport(id={self.id}, status='{self.status.value}')>"
