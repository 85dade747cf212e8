import asyncio

import httpx
import polyline
import pytest

from roadguard.config.settings import Settings
from roadguard.core.errors import RoutingError, RoutingErrorKind, ValidationError
from roadguard.domain.models import GeoPoint
from roadguard.ingestion.route_provider import (
    GoogleDirectionsProvider,
    StaticRouteProvider,
    parse_location_text,
    parse_route_candidates,
)


def _settings(**provider) -> Settings:
    return Settings.model_validate({"routing": {"provider": {"api_key": "test-key", **provider}}})


def _directions_route(summary: str, points: list[tuple[float, float]]) -> dict:
    return {
        "summary": summary,
        "legs": [
            {
                "distance": {"text": "5.0 km", "value": 5000},
                "duration": {"text": "10 mins", "value": 600},
                "duration_in_traffic": {"text": "12 mins", "value": 720},
            }
        ],
        "overview_polyline": {"points": polyline.encode(points)},
        "warnings": ["Toll road"],
    }


def test_google_provider_parses_routes(monkeypatch):
    seen: dict = {}

    async def fake_aget_json(url, *, params=None, headers=None, timeout_seconds=15):  # noqa: ARG001
        seen["url"] = url
        seen["params"] = params
        return {
            "status": "OK",
            "routes": [
                _directions_route("Hwy 1", [(25.0, 121.5), (25.01, 121.51), (25.02, 121.52)]),
                _directions_route("Local", [(25.0, 121.5), (25.02, 121.52)]),
            ],
        }

    monkeypatch.setattr("roadguard.ingestion.route_provider.aget_json", fake_aget_json)

    routes = asyncio.run(GoogleDirectionsProvider(_settings()).fetch_routes("Taipei 101", "25.02,121.52"))

    assert seen["url"].endswith("/directions/json")
    assert seen["params"]["mode"] == "driving"
    assert seen["params"]["alternatives"] == "true"
    assert seen["params"]["key"] == "test-key"
    assert [r.index for r in routes] == [0, 1]
    first = routes[0]
    assert first.summary_label == "Hwy 1"
    assert first.distance_meters == 5000
    assert first.duration_seconds == 600
    assert first.duration_in_traffic_seconds == 720
    assert first.duration_text == "10 mins"
    assert first.warnings == ["Toll road"]
    assert len(first.polyline) == 3
    assert first.polyline[1].lat == pytest.approx(25.01)
    assert first.polyline[1].lng == pytest.approx(121.51)


@pytest.mark.parametrize(
    "payload, kind",
    [
        ({"status": "ZERO_RESULTS", "routes": []}, RoutingErrorKind.NOT_FOUND),
        ({"status": "NOT_FOUND"}, RoutingErrorKind.NOT_FOUND),
        ({"status": "OK", "routes": []}, RoutingErrorKind.NOT_FOUND),
        ({"status": "REQUEST_DENIED", "error_message": "bad key"}, RoutingErrorKind.TRANSPORT),
        ({"status": "OK", "routes": [{"summary": "no legs"}]}, RoutingErrorKind.TRANSPORT),
    ],
)
def test_google_provider_maps_statuses(monkeypatch, payload, kind):
    async def fake_aget_json(url, *, params=None, headers=None, timeout_seconds=15):  # noqa: ARG001
        return payload

    monkeypatch.setattr("roadguard.ingestion.route_provider.aget_json", fake_aget_json)

    with pytest.raises(RoutingError) as excinfo:
        asyncio.run(GoogleDirectionsProvider(_settings()).fetch_routes("a", "b"))
    assert excinfo.value.kind is kind
    assert excinfo.value.retryable is True


def test_google_provider_transport_failure(monkeypatch):
    async def fake_aget_json(url, *, params=None, headers=None, timeout_seconds=15):  # noqa: ARG001
        raise httpx.ConnectError("connection refused", request=httpx.Request("GET", url))

    monkeypatch.setattr("roadguard.ingestion.route_provider.aget_json", fake_aget_json)

    with pytest.raises(RoutingError) as excinfo:
        asyncio.run(GoogleDirectionsProvider(_settings()).fetch_routes("a", "b", alternatives=False))
    assert excinfo.value.kind is RoutingErrorKind.TRANSPORT


def test_google_provider_requires_api_key(monkeypatch):
    calls: list = []

    async def fake_aget_json(*args, **kwargs):
        calls.append(args)
        return {}

    monkeypatch.setattr("roadguard.ingestion.route_provider.aget_json", fake_aget_json)

    with pytest.raises(RoutingError, match="GOOGLE_MAPS_API_KEY"):
        asyncio.run(GoogleDirectionsProvider(_settings(api_key=None)).fetch_routes("a", "b"))
    assert calls == []


def test_static_provider_serves_provider_shaped_payload():
    payload = {
        "routes": [
            {
                "summary": "Via Main St",
                "distanceText": "3.1 km",
                "distanceMeters": 3100,
                "durationText": "9 mins",
                "durationSeconds": 540,
                "polyline": [{"lat": 25.0, "lng": 121.5}, {"lat": 25.01, "lng": 121.5}],
                "warnings": [],
            },
            {
                "distanceMeters": 2900,
                "durationSeconds": 600,
                "polyline": [{"lat": 25.0, "lng": 121.5}, {"lat": 25.01, "lng": 121.51}],
            },
        ]
    }
    provider = StaticRouteProvider.from_payload(payload)

    all_routes = asyncio.run(provider.fetch_routes("a", "b"))
    single = asyncio.run(provider.fetch_routes("a", "b", alternatives=False))

    assert [r.summary_label for r in all_routes] == ["Via Main St", "Route 2"]
    assert all_routes[0].distance_text == "3.1 km"
    assert len(single) == 1


def test_static_provider_without_routes_reports_not_found():
    with pytest.raises(RoutingError) as excinfo:
        asyncio.run(StaticRouteProvider([]).fetch_routes("a", "b"))
    assert excinfo.value.kind is RoutingErrorKind.NOT_FOUND


def test_parse_route_candidates_accepts_bare_list():
    routes = parse_route_candidates([{"distanceMeters": 10, "durationSeconds": 5}])
    assert routes[0].index == 0
    assert routes[0].polyline == []


def test_parse_location_text():
    assert parse_location_text("25.0330, 121.5654") == GeoPoint(lat=25.033, lng=121.5654)
    assert parse_location_text("Taipei 101") is None
    with pytest.raises(ValidationError):
        parse_location_text("25.0,190.0")
