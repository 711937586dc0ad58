"""
Route Path database model.

Reference geometry for live progress calculations.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime, Text, JSON
from sqlalchemy.sql import func
from backend.app.db.session import Base


class RoutePath(Base):
    """
    Route Path model.

    Created once when the transport's route is computed (job acceptance) and
    treated as immutable afterwards.

    legs: [{"name", "distance_meters", "duration_seconds", "end_latitude", "end_longitude"}]
    """
    __tablename__ = "route_paths"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    transport_id = Column(Integer, ForeignKey("transports.id"), nullable=False, unique=True, index=True)

    encoded_polyline = Column(Text, nullable=False)
    total_distance_meters = Column(Float, nullable=False)
    total_duration_seconds = Column(Float, nullable=False)
    legs = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<RoutePath(transport_id={self.transport_id}, distance_m={self.total_distance_meters})>"
