"""
Navigation hand-off links.

Routing providers do not guarantee the same path for an identical origin/destination,
so the link pins a few evenly spaced intermediate waypoints from the compared route.
Launching the link is the caller's job.
"""

from __future__ import annotations

from typing import Mapping
from urllib.parse import urlencode

from roadguard.config.settings import NavigationSettings
from roadguard.core.errors import ValidationError
from roadguard.domain.models import GeoPoint, NavigationLink, RoutePath

MAX_WAYPOINTS = 3


def sample_waypoints(polyline: list[GeoPoint], max_waypoints: int = MAX_WAYPOINTS) -> list[GeoPoint]:
    """Pick up to `max_waypoints` interior points spaced evenly along the polyline.

    Start and end are never returned. With `k` waypoints over `n` points the picks are
    the indices `j * (n - 1) // (k + 1)` for `j = 1..k`.
    """
    n = len(polyline)
    k = min(int(max_waypoints), n - 2)
    if k <= 0:
        return []
    return [polyline[j * (n - 1) // (k + 1)] for j in range(1, k + 1)]


def _fmt(p: GeoPoint, decimals: int) -> str:
    return f"{p.lat:.{decimals}f},{p.lng:.{decimals}f}"


def build_navigation_link(
    route: RoutePath,
    *,
    base_url: str = "https://www.google.com/maps/dir/",
    extra_params: Mapping[str, str] | None = None,
    max_waypoints: int = MAX_WAYPOINTS,
    travel_mode: str = "driving",
    decimals: int = 6,
) -> NavigationLink:
    """Build an external turn-by-turn URL that follows `route`."""
    if len(route.polyline) < 2:
        raise ValidationError(f"route {route.index} has no usable polyline for navigation")

    origin = route.polyline[0]
    destination = route.polyline[-1]
    waypoints = sample_waypoints(route.polyline, max_waypoints)

    params: dict[str, str] = dict(extra_params or {})
    params["origin"] = _fmt(origin, decimals)
    params["destination"] = _fmt(destination, decimals)
    if waypoints:
        params["waypoints"] = "|".join(_fmt(w, decimals) for w in waypoints)
    params["travelmode"] = travel_mode

    sep = "&" if "?" in base_url else "?"
    url = f"{base_url}{sep}{urlencode(params, safe=',')}"
    return NavigationLink(
        route_index=route.index,
        url=url,
        origin=origin,
        destination=destination,
        waypoints=waypoints,
        travel_mode=travel_mode,
    )


def build_navigation_link_from_settings(route: RoutePath, settings: NavigationSettings) -> NavigationLink:
    return build_navigation_link(
        route,
        base_url=settings.base_url,
        extra_params=settings.extra_params,
        max_waypoints=settings.max_waypoints,
        travel_mode=settings.travel_mode,
        decimals=settings.coordinate_decimals,
    )
