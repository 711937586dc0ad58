"""
Live Position database model.

Latest known driver position for a transport. No history is kept.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime
from sqlalchemy.sql import func
from backend.app.db.session import Base


class LivePosition(Base):
    """
    Live Position model.

    One row per transport, overwritten on every driver ping (last write wins).
    """
    __tablename__ = "live_positions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    transport_id = Column(Integer, ForeignKey("transports.id"), nullable=False, unique=True, index=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False)  # When the ping was received

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<LivePosition(transport_id={self.transport_id}, lat={self.latitude}, lng={self.longitude})>"
