"""
Directions provider client.

Sole responsibility: talk to the Google Maps Platform HTTP APIs (Routes,
Distance Matrix, Geocoding) and return normalized outputs.

Every call runs under a hard timeout and behind a circuit breaker. Upstream
failures of any kind (timeouts, transport errors, non-OK statuses, malformed
payloads) come back as the RouteUnavailable variant rather than as raised
httpx errors, so callers must handle both branches and decide their own
fallback or retry policy. Nothing here retries.
"""

import logging
import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

from backend.app.core.config import settings
from backend.app.core.reliability import CircuitBreaker, CircuitOpenError, directions_circuit_breaker

logger = logging.getLogger(__name__)

# Internal coordinate type: (lat, lng)
LatLng = Tuple[float, float]

MAX_TIMEOUT_SECONDS = 10.0
MAX_ROUTE_LEGS = 10

ROUTES_FIELD_MASK = ",".join([
    "routes.distanceMeters",
    "routes.duration",
    "routes.polyline.encodedPolyline",
    "routes.legs.distanceMeters",
    "routes.legs.duration",
    "routes.legs.staticDuration",
    "routes.legs.endLocation",
    "routes.legs.steps.distanceMeters",
    "routes.legs.steps.staticDuration",
    "routes.legs.steps.navigationInstruction",
    "routes.legs.steps.endLocation",
])

_HTML_TAG = re.compile(r"<[^>]*>?")
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*([hms])")


@dataclass(frozen=True)
class RouteLeg:
    """One named stretch of a route, ending at a milestone."""
    name: str
    distance_meters: float
    duration_seconds: float
    end_latitude: Optional[float] = None
    end_longitude: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RouteFound:
    distance_meters: float
    duration_seconds: float
    encoded_polyline: str
    legs: List[RouteLeg] = field(default_factory=list)


@dataclass(frozen=True)
class DistanceFound:
    distance_meters: float
    duration_seconds: float


@dataclass(frozen=True)
class RouteUnavailable:
    """Upstream failure or timeout. Recoverable: retry on a later request."""
    reason: str


RouteResult = Union[RouteFound, RouteUnavailable]
DistanceResult = Union[DistanceFound, RouteUnavailable]


class ProviderResponseError(Exception):
    """Provider answered, but not with something we can use."""


def parse_duration(value: Any) -> float:
    """
    Parse a provider duration into seconds.

    Accepts Routes API strings ("1234s", "3.5s"), human strings ("1h 32m"),
    raw numbers, and {"seconds": n} / {"value": n} objects. Unparseable input is 0.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, dict):
        return parse_duration(value.get("seconds", value.get("value")))
    if isinstance(value, str):
        multipliers = {"h": 3600, "m": 60, "s": 1}
        return float(sum(float(amount) * multipliers[unit] for amount, unit in _DURATION_PART.findall(value)))
    return 0.0


def _lat_lng(location: Optional[Dict[str, Any]]) -> Tuple[Optional[float], Optional[float]]:
    lat_lng = (location or {}).get("latLng") or {}
    return lat_lng.get("latitude"), lat_lng.get("longitude")


def _step_name(step: Dict[str, Any], index: int) -> str:
    instruction = (step.get("navigationInstruction") or {}).get("instructions") or f"Step {index + 1}"
    return _HTML_TAG.sub("", instruction).strip() or f"Step {index + 1}"


def build_route_legs(route: Dict[str, Any]) -> List[RouteLeg]:
    """
    Derive milestone legs from a Routes API route.

    Navigation steps are preferred. At most MAX_ROUTE_LEGS are kept; the tail
    is folded into a final "Drop-off" leg so leg distances still add up to the
    whole route. Without steps the provider legs are used as-is.
    """
    provider_legs = route.get("legs") or []
    steps = [step for leg in provider_legs for step in (leg.get("steps") or [])]

    if steps:
        legs = []
        for index, step in enumerate(steps[:MAX_ROUTE_LEGS - 1] if len(steps) > MAX_ROUTE_LEGS else steps):
            lat, lng = _lat_lng(step.get("endLocation"))
            legs.append(RouteLeg(
                name=_step_name(step, index),
                distance_meters=float(step.get("distanceMeters") or 0),
                duration_seconds=parse_duration(step.get("staticDuration") or step.get("duration")),
                end_latitude=lat,
                end_longitude=lng,
            ))

        if len(steps) > MAX_ROUTE_LEGS:
            tail = steps[MAX_ROUTE_LEGS - 1:]
            lat, lng = _lat_lng(tail[-1].get("endLocation"))
            legs.append(RouteLeg(
                name="Drop-off",
                distance_meters=float(sum(s.get("distanceMeters") or 0 for s in tail)),
                duration_seconds=sum(parse_duration(s.get("staticDuration") or s.get("duration")) for s in tail),
                end_latitude=lat,
                end_longitude=lng,
            ))
        return legs

    legs = []
    for index, leg in enumerate(provider_legs):
        lat, lng = _lat_lng(leg.get("endLocation"))
        is_last = index == len(provider_legs) - 1
        legs.append(RouteLeg(
            name="Drop-off" if is_last else f"Stop {index + 1}",
            distance_meters=float(leg.get("distanceMeters") or 0),
            duration_seconds=parse_duration(leg.get("duration") or leg.get("staticDuration")),
            end_latitude=lat,
            end_longitude=lng,
        ))
    return legs


def parse_route_response(data: Dict[str, Any]) -> RouteFound:
    """Normalize a computeRoutes payload. Raises ProviderResponseError when no usable route."""
    routes = data.get("routes") or []
    if not routes:
        raise ProviderResponseError("provider returned no route")

    route = routes[0]
    legs = build_route_legs(route)

    distance = route.get("distanceMeters")
    if distance is None:
        distance = sum(leg.get("distanceMeters") or 0 for leg in route.get("legs") or [])

    duration = parse_duration(route.get("duration"))
    if not duration:
        duration = sum(
            parse_duration(leg.get("duration") or leg.get("staticDuration"))
            for leg in route.get("legs") or []
        )

    polyline = (route.get("polyline") or {}).get("encodedPolyline") or ""

    return RouteFound(
        distance_meters=float(distance),
        duration_seconds=float(duration),
        encoded_polyline=polyline,
        legs=legs,
    )


class DirectionsClient:
    """
    Directions provider adapter.

    Args:
        api_key: Google Maps Platform key (defaults to settings)
        timeout: per-request timeout in seconds, capped at 10
        transport: optional httpx transport (tests inject httpx.MockTransport)
        circuit_breaker: breaker shared across requests
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.directions_api_key
        self.timeout = min(timeout or settings.directions_timeout_seconds, MAX_TIMEOUT_SECONDS)
        self._transport = transport
        self.circuit_breaker = circuit_breaker or directions_circuit_breaker

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()

    async def _guarded(self, parse, method: str, url: str, **kwargs):
        """
        Run one provider request under the breaker and parse it; any failure is RouteUnavailable.

        Only transport-level failures count against the breaker. A well-formed
        "no result" answer does not.
        """
        try:
            data = await self.circuit_breaker.call(self._request, method, url, **kwargs)
            return parse(data)
        except CircuitOpenError:
            return RouteUnavailable("directions provider circuit is open")
        except httpx.TimeoutException:
            logger.warning("Directions provider timed out after %ss (%s)", self.timeout, url)
            return RouteUnavailable("directions provider timed out")
        except httpx.HTTPStatusError as exc:
            logger.warning("Directions provider returned HTTP %s (%s)", exc.response.status_code, url)
            return RouteUnavailable(f"directions provider returned HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            logger.warning("Directions provider transport error: %s", exc)
            return RouteUnavailable("directions provider unreachable")
        except (ProviderResponseError, ValueError, KeyError, TypeError, IndexError, AttributeError) as exc:
            logger.warning("Directions provider response unusable: %s", exc)
            return RouteUnavailable(str(exc) or "directions provider response unusable")

    async def compute_route(self, origin: LatLng, destination: LatLng) -> RouteResult:
        """Driving route between two points: distance (m), duration (s), encoded polyline, legs."""
        body = {
            "origin": {"location": {"latLng": {"latitude": origin[0], "longitude": origin[1]}}},
            "destination": {"location": {"latLng": {"latitude": destination[0], "longitude": destination[1]}}},
            "travelMode": "DRIVE",
            "computeAlternativeRoutes": False,
        }
        headers = {"X-Goog-Api-Key": self.api_key, "X-Goog-FieldMask": ROUTES_FIELD_MASK}

        result = await self._guarded(parse_route_response, "POST", settings.routes_api_url, json=body, headers=headers)
        if isinstance(result, RouteFound):
            logger.info(
                "Route computed: %.0fm, %.0fs, %d legs, polyline length %d",
                result.distance_meters, result.duration_seconds, len(result.legs), len(result.encoded_polyline),
            )
        return result

    async def distance_matrix(self, origin: LatLng, destination: LatLng) -> DistanceResult:
        """Straight driving distance/duration pair between two points."""
        params = {
            "origins": f"{origin[0]},{origin[1]}",
            "destinations": f"{destination[0]},{destination[1]}",
            "units": "imperial",
            "key": self.api_key,
        }

        def parse(data: Dict[str, Any]) -> DistanceFound:
            if data.get("status") != "OK":
                raise ProviderResponseError(f"distance matrix status {data.get('status')}")
            element = data["rows"][0]["elements"][0]
            if element.get("status") != "OK":
                raise ProviderResponseError(f"distance matrix element status {element.get('status')}")
            return DistanceFound(
                distance_meters=float(element["distance"]["value"]),
                duration_seconds=float(element["duration"]["value"]),
            )

        return await self._guarded(parse, "GET", settings.distance_matrix_url, params=params)

    async def _reverse_geocode(self, latitude: float, longitude: float) -> Optional[List[Dict[str, Any]]]:
        params = {"latlng": f"{latitude},{longitude}", "key": self.api_key}

        def parse(data: Dict[str, Any]) -> List[Dict[str, Any]]:
            if data.get("status") != "OK" or not data.get("results"):
                raise ProviderResponseError(f"reverse geocode status {data.get('status')}")
            return data["results"]

        result = await self._guarded(parse, "GET", settings.geocode_url, params=params)
        if isinstance(result, RouteUnavailable):
            return None
        return result

    async def validate_coordinates(self, latitude: float, longitude: float) -> bool:
        """True when the provider can reverse-geocode the point. Never raises."""
        return await self._reverse_geocode(latitude, longitude) is not None

    async def reverse_geocode_address(self, latitude: float, longitude: float) -> Optional[str]:
        """Formatted address for a point, or None on any upstream failure."""
        results = await self._reverse_geocode(latitude, longitude)
        if not results:
            return None
        return results[0].get("formatted_address")


_default_client: Optional[DirectionsClient] = None


def get_directions_client() -> DirectionsClient:
    """
    Get the shared directions client.

    This can be used as a FastAPI dependency (tests override it).
    """
    global _default_client
    if _default_client is None:
        _default_client = DirectionsClient()
    return _default_client
