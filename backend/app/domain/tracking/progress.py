"""
Polyline progress calculation.

Pure geometry over a stored route: where is the driver along the path, how
much is left, and when will each milestone be reached. Degenerate input
(no position, empty polyline, zero-length route) yields defined fallback
values instead of exceptions.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import polyline

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6371008.8
FALLBACK_MILESTONE_SPACING_METERS = 10000.0
MAX_FALLBACK_MILESTONES = 5
DEFAULT_STALE_AFTER_SECONDS = 60

Point = Tuple[float, float]  # (lat, lng)


@dataclass(frozen=True)
class PositionFix:
    latitude: float
    longitude: float
    recorded_at: datetime


@dataclass(frozen=True)
class Milestone:
    name: str
    distance_from_origin_meters: float
    reached: bool
    eta: Optional[datetime]


@dataclass(frozen=True)
class ProgressResult:
    distance_traveled_meters: float
    distance_remaining_meters: float
    progress_percentage: int
    estimated_time_remaining_minutes: float
    driver_connected: bool
    position_stale: bool
    milestones: List[Milestone] = field(default_factory=list)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; they are stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def decode_polyline(encoded: Optional[str]) -> List[Point]:
    """Decode a Google encoded polyline. Empty or corrupt input is an empty path."""
    if not encoded:
        return []
    try:
        return [(float(lat), float(lng)) for lat, lng in polyline.decode(encoded)]
    except (ValueError, IndexError, TypeError) as exc:
        logger.warning("Could not decode route polyline: %s", exc)
        return []


def haversine_meters(a: Point, b: Point) -> float:
    lat1, lng1 = math.radians(a[0]), math.radians(a[1])
    lat2, lng2 = math.radians(b[0]), math.radians(b[1])
    h = (
        math.sin((lat2 - lat1) / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin((lng2 - lng1) / 2) ** 2
    )
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))


def project_onto_segment(point: Point, start: Point, end: Point) -> Tuple[float, float]:
    """
    Project a point onto segment start-end.

    Works in a local equirectangular plane anchored at the segment start,
    which is accurate at route-segment scale.

    Returns:
        (t, offset): position along the segment in [0, 1] and the
        perpendicular distance (meters) from the point to the segment.
    """
    scale = math.radians(1) * EARTH_RADIUS_METERS
    cos_lat = math.cos(math.radians((start[0] + end[0]) / 2))

    dx = (end[1] - start[1]) * cos_lat * scale
    dy = (end[0] - start[0]) * scale
    px = (point[1] - start[1]) * cos_lat * scale
    py = (point[0] - start[0]) * scale

    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        t = 0.0
    else:
        t = max(0.0, min(1.0, (px * dx + py * dy) / length_sq))

    offset = math.hypot(px - t * dx, py - t * dy)
    return t, offset


def locate_on_polyline(points: Sequence[Point], position: Point) -> Tuple[float, float]:
    """
    Geometric distance traveled along the path up to the position's projection.

    The closest segment wins (not the closest vertex), so a driver halfway
    along a long straight segment is counted as halfway.

    Returns:
        (traveled_meters, polyline_length_meters); (0, 0) for fewer than two points.
    """
    if len(points) < 2:
        return 0.0, 0.0

    segment_lengths = [haversine_meters(points[i], points[i + 1]) for i in range(len(points) - 1)]

    best_index, best_t, best_offset = 0, 0.0, math.inf
    for index in range(len(segment_lengths)):
        t, offset = project_onto_segment(position, points[index], points[index + 1])
        if offset < best_offset:
            best_index, best_t, best_offset = index, t, offset

    traveled = sum(segment_lengths[:best_index]) + best_t * segment_lengths[best_index]
    return traveled, sum(segment_lengths)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _milestone_anchors(legs: Optional[Sequence[Any]], total_distance: float) -> List[Tuple[str, float]]:
    """(name, cumulative meters) for each leg end, or evenly spaced checkpoints without legs."""
    anchors: List[Tuple[str, float]] = []
    cumulative = 0.0

    for index, leg in enumerate(legs or []):
        data: Dict[str, Any] = leg if isinstance(leg, dict) else leg.to_dict()
        cumulative += float(data.get("distance_meters") or 0)
        anchors.append((data.get("name") or f"Milestone {index + 1}", cumulative))

    if anchors or total_distance <= 0:
        return anchors

    count = min(MAX_FALLBACK_MILESTONES, max(1, int(total_distance // FALLBACK_MILESTONE_SPACING_METERS)))
    for index in range(1, count + 1):
        name = "Drop-off" if index == count else f"Checkpoint {index}"
        anchors.append((name, total_distance * index / count))
    return anchors


def calculate_progress(
    points: Sequence[Point],
    position: Optional[PositionFix],
    total_distance_meters: float,
    total_duration_seconds: float,
    legs: Optional[Sequence[Any]] = None,
    now: Optional[datetime] = None,
    stale_after_seconds: float = DEFAULT_STALE_AFTER_SECONDS,
) -> ProgressResult:
    """
    Progress of a driver along a route.

    Geometric traveled distance is rescaled to the provider's total distance,
    so the route start is always 0% and the route end always 100% even when
    the decoded polyline is slightly shorter or longer than the provider's
    figure.
    """
    now = as_utc(now or datetime.now(timezone.utc))
    total_distance = max(0.0, float(total_distance_meters or 0))
    total_duration = max(0.0, float(total_duration_seconds or 0))

    traveled = 0.0
    driver_connected = False
    position_stale = False

    if position is not None:
        age = (now - as_utc(position.recorded_at)).total_seconds()
        position_stale = age > stale_after_seconds
        driver_connected = not position_stale

        geometric, path_length = locate_on_polyline(points, (position.latitude, position.longitude))
        if path_length > 0 and total_distance > 0:
            traveled = min(total_distance, geometric / path_length * total_distance)

    remaining = max(0.0, total_distance - traveled)

    if total_distance > 0:
        percentage = max(0, min(100, _round_half_up(traveled / total_distance * 100)))
    else:
        percentage = 0

    # Not started: the whole trip is still ahead
    if position is None:
        eta_minutes = total_duration / 60
    elif total_distance > 0:
        eta_minutes = total_duration * remaining / total_distance / 60
    else:
        eta_minutes = 0.0

    milestones = []
    for name, anchor in _milestone_anchors(legs, total_distance):
        reached = traveled >= anchor
        eta = None
        if not reached and total_distance > 0:
            seconds_to_go = total_duration * (anchor - traveled) / total_distance
            eta = now + timedelta(seconds=seconds_to_go)
        milestones.append(Milestone(name=name, distance_from_origin_meters=anchor, reached=reached, eta=eta))

    return ProgressResult(
        distance_traveled_meters=traveled,
        distance_remaining_meters=remaining,
        progress_percentage=percentage,
        estimated_time_remaining_minutes=eta_minutes,
        driver_connected=driver_connected,
        position_stale=position_stale,
        milestones=milestones,
    )
