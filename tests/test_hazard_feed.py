import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from roadguard.config.settings import Settings
from roadguard.core.errors import HazardFeedError
from roadguard.domain.models import EventType, GeoPoint, HazardStatus
from roadguard.ingestion.hazard_feed import HazardFeedClient, load_hazards_file, parse_hazard_payload

_ROWS = [
    {
        "id": 1,
        "lat": 25.04,
        "lng": 121.56,
        "eventType": 0,
        "status": 0,
        "confirmationCount": 3,
        "totalRegards": "0.25",
        "txHash": "0xabc",
        "timestamp": 1735689600,
        "expiresAt": 1735776000,
    },
    {"id": 2, "lat": 25.05, "lng": 121.57, "eventType": 5, "status": 1, "timestamp": 1735689600},
    {"id": 3, "lat": 25.06, "lng": 121.58, "eventType": 4, "status": 2, "timestamp": 1735689600},
    {"id": 4, "lng": 121.58, "eventType": 1},
    {"id": 5, "lat": 25.07, "lng": 121.59, "eventType": 42, "status": 0, "timestamp": 1735689600},
]


def test_parse_payload_converts_rows():
    hazards = parse_hazard_payload({"reports": _ROWS})

    # Row 4 has no latitude and is skipped.
    assert [h.id for h in hazards] == [1, 2, 3, 5]
    first = hazards[0]
    assert first.location == GeoPoint(lat=25.04, lng=121.56)
    assert first.event_type is EventType.ACCIDENT
    assert first.is_confirmed is True
    assert first.tip_total == pytest.approx(0.25)
    assert first.source_ref == "0xabc"
    assert first.created_at == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert first.expires_at == datetime(2025, 1, 2, tzinfo=timezone.utc)
    assert hazards[1].event_type is EventType.TRAFFIC_JAM
    assert hazards[1].status is HazardStatus.CONFIRMED
    # Unknown event type ids fall back to ACCIDENT.
    assert hazards[3].event_type is EventType.ACCIDENT


def test_parse_payload_filters_statuses():
    hazards = parse_hazard_payload(_ROWS, statuses=[0, 1])
    assert [h.id for h in hazards] == [1, 2, 5]


def test_parse_payload_rejects_non_list():
    with pytest.raises(HazardFeedError):
        parse_hazard_payload({"reports": "nope"})


def test_load_hazards_file(tmp_path):
    path = tmp_path / "hazards.json"
    path.write_text(json.dumps({"reports": _ROWS[:2]}), encoding="utf-8")
    assert [h.id for h in load_hazards_file(path)] == [1, 2]


def test_client_fetch_builds_query(monkeypatch):
    seen: dict = {}

    async def fake_aget_json(url, *, params=None, headers=None, timeout_seconds=15):  # noqa: ARG001
        seen["url"] = url
        seen["params"] = params
        return {"reports": _ROWS}

    monkeypatch.setattr("roadguard.ingestion.hazard_feed.aget_json", fake_aget_json)
    settings = Settings.model_validate({"hazard_feed": {"base_url": "http://feed.test/"}})

    hazards = asyncio.run(HazardFeedClient(settings).fetch(GeoPoint(lat=25.0, lng=121.5), radius_km=3))

    assert seen["url"] == "http://feed.test/api/reports"
    assert seen["params"] == {"lat": 25.0, "lng": 121.5, "radius": 3, "limit": 100}
    assert [h.id for h in hazards] == [1, 2, 5]


def test_client_reports_feed_errors(monkeypatch):
    async def error_payload(url, *, params=None, headers=None, timeout_seconds=15):  # noqa: ARG001
        return {"error": "Failed to fetch reports", "reports": []}

    monkeypatch.setattr("roadguard.ingestion.hazard_feed.aget_json", error_payload)
    with pytest.raises(HazardFeedError, match="Failed to fetch reports"):
        asyncio.run(HazardFeedClient(Settings()).fetch(GeoPoint(lat=0, lng=0)))


def test_client_wraps_transport_errors(monkeypatch):
    async def unreachable(url, *, params=None, headers=None, timeout_seconds=15):  # noqa: ARG001
        raise httpx.ConnectError("refused", request=httpx.Request("GET", url))

    monkeypatch.setattr("roadguard.ingestion.hazard_feed.aget_json", unreachable)
    with pytest.raises(HazardFeedError):
        asyncio.run(HazardFeedClient(Settings()).fetch(GeoPoint(lat=0, lng=0)))
