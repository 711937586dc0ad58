"""
Directions Provider Client Tests.

Every upstream failure must come back as RouteUnavailable, never as a raised
httpx error.
"""

import httpx
import pytest

from backend.app.core.reliability import CircuitBreaker
from backend.app.services.directions_client import (
    MAX_ROUTE_LEGS,
    MAX_TIMEOUT_SECONDS,
    DirectionsClient,
    DistanceFound,
    RouteFound,
    RouteUnavailable,
    build_route_legs,
    parse_duration,
)

ORIGIN = (40.0, -75.0)
DESTINATION = (40.1, -75.0)


def make_client(handler, failure_threshold=5):
    return DirectionsClient(
        api_key="test-key",
        transport=httpx.MockTransport(handler),
        circuit_breaker=CircuitBreaker(failure_threshold=failure_threshold, reset_timeout=60),
    )


def routes_payload(steps=None):
    leg = {
        "distanceMeters": 16093,
        "duration": "1200s",
        "endLocation": {"latLng": {"latitude": 40.1, "longitude": -75.0}},
    }
    if steps is not None:
        leg["steps"] = steps
    return {
        "routes": [{
            "distanceMeters": 16093,
            "duration": "1200s",
            "polyline": {"encodedPolyline": "_p~iF~ps|U_ulLnnqC"},
            "legs": [leg],
        }]
    }


def step(index, meters=100):
    return {
        "distanceMeters": meters,
        "staticDuration": "10s",
        "navigationInstruction": {"instructions": f"Turn <b>left</b> onto Road {index}"},
        "endLocation": {"latLng": {"latitude": 40.0 + index * 0.001, "longitude": -75.0}},
    }


async def test_compute_route_parses_routes_response():
    seen = {}

    def handler(request: httpx.Request):
        seen["headers"] = request.headers
        return httpx.Response(200, json=routes_payload())

    result = await make_client(handler).compute_route(ORIGIN, DESTINATION)

    assert isinstance(result, RouteFound)
    assert result.distance_meters == 16093
    assert result.duration_seconds == 1200
    assert result.encoded_polyline == "_p~iF~ps|U_ulLnnqC"
    assert [leg.name for leg in result.legs] == ["Drop-off"]
    assert seen["headers"]["X-Goog-Api-Key"] == "test-key"
    assert "routes.polyline.encodedPolyline" in seen["headers"]["X-Goog-FieldMask"]


async def test_timeout_is_route_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    result = await make_client(handler).compute_route(ORIGIN, DESTINATION)

    assert isinstance(result, RouteUnavailable)
    assert "timed out" in result.reason


async def test_http_error_status_is_route_unavailable():
    result = await make_client(lambda request: httpx.Response(500)).compute_route(ORIGIN, DESTINATION)

    assert result == RouteUnavailable("directions provider returned HTTP 500")


async def test_connection_error_is_route_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    result = await make_client(handler).compute_route(ORIGIN, DESTINATION)

    assert isinstance(result, RouteUnavailable)


@pytest.mark.parametrize("payload", [{}, {"routes": []}, {"routes": [None]}])
async def test_malformed_payload_is_route_unavailable(payload):
    result = await make_client(lambda request: httpx.Response(200, json=payload)).compute_route(ORIGIN, DESTINATION)

    assert isinstance(result, RouteUnavailable)


async def test_non_json_body_is_route_unavailable():
    result = await make_client(lambda request: httpx.Response(200, text="<html>")).compute_route(ORIGIN, DESTINATION)

    assert isinstance(result, RouteUnavailable)


async def test_circuit_opens_after_repeated_failures():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    client = make_client(handler, failure_threshold=2)
    for _ in range(2):
        await client.compute_route(ORIGIN, DESTINATION)

    result = await client.compute_route(ORIGIN, DESTINATION)

    assert result == RouteUnavailable("directions provider circuit is open")
    assert len(calls) == 2


async def test_empty_route_does_not_trip_the_circuit():
    client = make_client(lambda request: httpx.Response(200, json={"routes": []}), failure_threshold=1)

    await client.compute_route(ORIGIN, DESTINATION)

    assert client.circuit_breaker.state == "CLOSED"


async def test_distance_matrix():
    payload = {
        "status": "OK",
        "rows": [{"elements": [{"status": "OK", "distance": {"value": 16093}, "duration": {"value": 1200}}]}],
    }

    result = await make_client(lambda request: httpx.Response(200, json=payload)).distance_matrix(ORIGIN, DESTINATION)

    assert result == DistanceFound(distance_meters=16093, duration_seconds=1200)


async def test_distance_matrix_element_failure():
    payload = {"status": "OK", "rows": [{"elements": [{"status": "ZERO_RESULTS"}]}]}

    result = await make_client(lambda request: httpx.Response(200, json=payload)).distance_matrix(ORIGIN, DESTINATION)

    assert isinstance(result, RouteUnavailable)


async def test_validate_coordinates_and_reverse_geocode():
    payload = {"status": "OK", "results": [{"formatted_address": "1 Main St, Springfield"}]}
    client = make_client(lambda request: httpx.Response(200, json=payload))

    assert await client.validate_coordinates(40.0, -75.0) is True
    assert await client.reverse_geocode_address(40.0, -75.0) == "1 Main St, Springfield"


async def test_geocode_failures_never_raise():
    client = make_client(lambda request: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []}))

    assert await client.validate_coordinates(0.0, 0.0) is False
    assert await client.reverse_geocode_address(0.0, 0.0) is None


def test_timeout_is_capped():
    client = DirectionsClient(api_key="k", timeout=30)

    assert client.timeout == MAX_TIMEOUT_SECONDS


@pytest.mark.parametrize("value, seconds", [
    ("1234s", 1234),
    ("3.5s", 3.5),
    ("1h 32m", 5520),
    ("1h 2m 3s", 3723),
    (90, 90),
    ({"seconds": 42}, 42),
    (None, 0),
])
def test_parse_duration(value, seconds):
    assert parse_duration(value) == seconds


def test_step_legs_strip_html():
    legs = build_route_legs(routes_payload(steps=[step(1), step(2)])["routes"][0])

    assert [leg.name for leg in legs] == ["Turn left onto Road 1", "Turn left onto Road 2"]
    assert legs[0].duration_seconds == 10


def test_long_step_list_folds_into_drop_off():
    steps = [step(i) for i in range(25)]

    legs = build_route_legs(routes_payload(steps=steps)["routes"][0])

    assert len(legs) == MAX_ROUTE_LEGS
    assert legs[-1].name == "Drop-off"
    assert sum(leg.distance_meters for leg in legs) == 2500
    assert legs[-1].end_latitude == pytest.approx(40.024)
