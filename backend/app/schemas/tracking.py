"""
Live tracking schemas.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class LocationPing(BaseModel):
    """Driver position report."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class LivePositionResponse(BaseModel):
    transport_id: int
    driver_id: int
    latitude: float
    longitude: float
    recorded_at: datetime

    class Config:
        from_attributes = True


class RoutePathResponse(BaseModel):
    transport_id: int
    encoded_polyline: str
    total_distance_meters: float
    total_duration_seconds: float
    legs: List[dict] = []
    created_at: datetime

    class Config:
        from_attributes = True


class MilestoneResponse(BaseModel):
    name: str
    distance_from_pickup: float  # miles
    reached: bool
    eta: Optional[datetime]


class LiveTrackingResponse(BaseModel):
    """
    Live tracking view of a transport.

    When the route has not been computed yet, tracking_available is False and
    the progress, distance and ETA fields are None.
    """
    transport_id: int
    status: str

    animal_name: Optional[str]
    animal_breed: Optional[str]
    primary_animal_id: int
    bonded_animal_id: Optional[int] = None

    driver_id: Optional[int] = None
    driver_name: Optional[str] = None

    pick_up_location: str
    drop_off_location: str
    current_location: str
    current_latitude: Optional[float] = None
    current_longitude: Optional[float] = None
    last_location_ping: Optional[datetime] = None
    driver_connected: bool = False
    position_stale: bool = False

    tracking_available: bool
    total_distance: Optional[float] = None  # miles
    distance_traveled: Optional[float] = None
    distance_remaining: Optional[float] = None
    progress_percentage: Optional[int] = None
    estimated_total_time_minutes: Optional[float] = None
    estimated_time_remaining_minutes: Optional[float] = None
    estimated_dropoff_time: Optional[datetime] = None
    milestones: List[MilestoneResponse] = []
    route_polyline: Optional[str] = None
