"""
Route providers.

A route provider resolves an origin/destination pair (address text or "lat,lng") into
an ordered list of candidate driving routes. Two implementations live here:
- `GoogleDirectionsProvider`: the Google Directions web service (async, via httpx),
- `StaticRouteProvider`: pre-resolved routes in the provider response shape, used for
  offline CLI runs and tests.

Every failure is reported as `RoutingError` (NOT_FOUND or TRANSPORT) so the engine can
treat providers uniformly.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol, Sequence

import httpx
import polyline as polyline_codec
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from roadguard.config.settings import Settings
from roadguard.core.env import resolve_project_path
from roadguard.core.errors import RoutingError, RoutingErrorKind, ValidationError
from roadguard.core.http import aget_json
from roadguard.domain.models import GeoPoint, RouteCandidate, RoutePath

logger = logging.getLogger(__name__)

_CANDIDATES_ADAPTER = TypeAdapter(list[RouteCandidate])
_LATLNG_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*$")

# Directions statuses that mean "no route between these places".
_NOT_FOUND_STATUSES = {"NOT_FOUND", "ZERO_RESULTS"}


class RouteProvider(Protocol):
    async def fetch_routes(
        self, origin: str, destination: str, *, alternatives: bool = True
    ) -> list[RoutePath]: ...


def parse_location_text(text: str) -> GeoPoint | None:
    """Return a GeoPoint when `text` is a "lat,lng" pair, otherwise None (address text).

    Raises:
        ValidationError: If the text is a coordinate pair outside WGS-84 ranges.
    """
    m = _LATLNG_RE.match(text or "")
    if not m:
        return None
    lat, lng = float(m.group(1)), float(m.group(2))
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise ValidationError(f"coordinates out of range: {text.strip()!r}")
    return GeoPoint(lat=lat, lng=lng)


def candidates_to_paths(candidates: Sequence[RouteCandidate]) -> list[RoutePath]:
    """Convert provider-shaped candidates into RoutePaths, indexed by position."""
    return [
        RoutePath(
            index=i,
            polyline=list(c.polyline),
            distance_meters=c.distance_meters,
            duration_seconds=c.duration_seconds,
            duration_in_traffic_seconds=c.duration_in_traffic_seconds,
            summary_label=c.summary or f"Route {i + 1}",
            warnings=list(c.warnings),
            distance_text=c.distance_text,
            duration_text=c.duration_text,
            duration_in_traffic_text=c.duration_in_traffic_text,
        )
        for i, c in enumerate(candidates)
    ]


def parse_route_candidates(payload: Any) -> list[RoutePath]:
    """Validate a provider response (a list, or `{"routes": [...]}`) into RoutePaths."""
    if isinstance(payload, dict):
        payload = payload.get("routes", [])
    return candidates_to_paths(_CANDIDATES_ADAPTER.validate_python(payload))


class StaticRouteProvider:
    """Serves a fixed list of routes regardless of the query text."""

    def __init__(self, routes: Sequence[RoutePath]):
        self._routes = list(routes)

    @classmethod
    def from_payload(cls, payload: Any) -> "StaticRouteProvider":
        return cls(parse_route_candidates(payload))

    @classmethod
    def from_file(cls, path: str | Path) -> "StaticRouteProvider":
        resolved = resolve_project_path(path)
        return cls.from_payload(json.loads(resolved.read_text(encoding="utf-8")))

    async def fetch_routes(
        self, origin: str, destination: str, *, alternatives: bool = True
    ) -> list[RoutePath]:
        if not self._routes:
            raise RoutingError(RoutingErrorKind.NOT_FOUND, "no routes configured")
        return list(self._routes) if alternatives else self._routes[:1]


class GoogleDirectionsProvider:
    """Google Directions web service client (driving mode only)."""

    def __init__(self, settings: Settings):
        self._settings = settings

    def _params(self, origin: str, destination: str, alternatives: bool) -> dict[str, Any]:
        cfg = self._settings.routing.provider
        if not cfg.api_key:
            raise RoutingError(
                RoutingErrorKind.TRANSPORT,
                "Google Maps API key is not configured. Set GOOGLE_MAPS_API_KEY.",
            )
        params: dict[str, Any] = {
            "origin": origin.strip(),
            "destination": destination.strip(),
            "mode": "driving",
            "alternatives": "true" if alternatives else "false",
            "key": cfg.api_key,
        }
        if cfg.departure_time:
            # Needed for duration_in_traffic.
            params["departure_time"] = cfg.departure_time
        return params

    @staticmethod
    def _parse_route(index: int, route: dict[str, Any]) -> RoutePath:
        legs = route.get("legs") or []
        if not legs:
            raise ValueError("route has no legs")

        def _total(field: str) -> float | None:
            values = [(leg.get(field) or {}).get("value") for leg in legs]
            if any(v is None for v in values):
                return None
            return float(sum(values))

        encoded = (route.get("overview_polyline") or {}).get("points") or ""
        points = [GeoPoint(lat=lat, lng=lng) for lat, lng in polyline_codec.decode(encoded)] if encoded else []
        first_leg = legs[0]
        return RoutePath(
            index=index,
            polyline=points,
            distance_meters=_total("distance") or 0.0,
            duration_seconds=_total("duration") or 0.0,
            duration_in_traffic_seconds=_total("duration_in_traffic"),
            summary_label=route.get("summary") or f"Route {index + 1}",
            warnings=[str(w) for w in route.get("warnings") or []],
            distance_text=(first_leg.get("distance") or {}).get("text"),
            duration_text=(first_leg.get("duration") or {}).get("text"),
            duration_in_traffic_text=(first_leg.get("duration_in_traffic") or {}).get("text"),
        )

    async def fetch_routes(
        self, origin: str, destination: str, *, alternatives: bool = True
    ) -> list[RoutePath]:
        params = self._params(origin, destination, alternatives)
        logger.info("Requesting directions (alternatives=%s)", alternatives)
        try:
            payload = await aget_json(
                self._settings.routing.provider.base_url,
                params=params,
                timeout_seconds=self._settings.app.http_timeout_seconds,
            )
        except (httpx.HTTPError, ValueError) as e:
            raise RoutingError(RoutingErrorKind.TRANSPORT, f"directions request failed: {e}") from e

        if not isinstance(payload, dict):
            raise RoutingError(RoutingErrorKind.TRANSPORT, "directions response is not an object")

        status = str(payload.get("status") or "")
        if status in _NOT_FOUND_STATUSES:
            raise RoutingError(RoutingErrorKind.NOT_FOUND, status)
        if status != "OK":
            message = payload.get("error_message") or ""
            raise RoutingError(RoutingErrorKind.TRANSPORT, f"{status or 'UNKNOWN'} {message}".strip())

        try:
            routes = [self._parse_route(i, r) for i, r in enumerate(payload.get("routes") or [])]
        except (ValueError, TypeError, PydanticValidationError) as e:
            raise RoutingError(RoutingErrorKind.TRANSPORT, f"malformed directions response: {e}") from e
        if not routes:
            raise RoutingError(RoutingErrorKind.NOT_FOUND, "ZERO_RESULTS")

        logger.info("Directions returned %d routes", len(routes))
        return routes
