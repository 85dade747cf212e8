from __future__ import annotations
from math import asin, cos, radians, sin, sqrt
from typing import Protocol, Sequence

"""
Geospatial helpers.

We keep a tiny geometry layer here so routing modules can do distance calculations
without pulling in heavier GIS dependencies.
"""

# Mean earth radius used by Google's spherical geometry library, so distances line up
# with what the map client shows.
EARTH_RADIUS_M = 6_371_000


class LatLng(Protocol):
    """Anything with `lat`/`lng` attributes in decimal degrees."""

    @property
    def lat(self) -> float: ...

    @property
    def lng(self) -> float: ...


def haversine_m(a: LatLng, b: LatLng) -> float:
    """Compute great-circle distance in meters between two points."""
    lat1 = radians(a.lat)
    lng1 = radians(a.lng)
    lat2 = radians(b.lat)
    lng2 = radians(b.lng)

    dlat = lat2 - lat1
    dlng = lng2 - lng1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_M * asin(min(1.0, sqrt(h)))


def cumulative_distances_m(points: Sequence[LatLng]) -> list[float]:
    """Return the arc length from the first point up to each point (same length as `points`)."""
    out: list[float] = []
    total = 0.0
    for i, p in enumerate(points):
        if i > 0:
            total += haversine_m(points[i - 1], p)
        out.append(total)
    return out


def _to_local_xy_m(p: LatLng, *, lat0_deg: float) -> tuple[float, float]:
    # Equirectangular projection around a reference latitude; fine at segment scale.
    x = radians(p.lng) * EARTH_RADIUS_M * cos(radians(lat0_deg))
    y = radians(p.lat) * EARTH_RADIUS_M
    return x, y


def project_onto_segment(p: LatLng, a: LatLng, b: LatLng) -> tuple[float, float]:
    """Project `p` onto segment `a -> b`.

    Returns `(distance_m, fraction)` where `fraction` in [0, 1] is the position of the
    closest point along the segment. Degenerate segments project onto `a`.
    """
    lat0 = (a.lat + b.lat) / 2
    ax, ay = _to_local_xy_m(a, lat0_deg=lat0)
    bx, by = _to_local_xy_m(b, lat0_deg=lat0)
    px, py = _to_local_xy_m(p, lat0_deg=lat0)

    dx = bx - ax
    dy = by - ay
    seg_len2 = dx * dx + dy * dy
    if seg_len2 <= 0:
        return haversine_m(p, a), 0.0

    t = ((px - ax) * dx + (py - ay) * dy) / seg_len2
    t = max(0.0, min(1.0, t))
    qx = ax + t * dx
    qy = ay + t * dy
    return sqrt((px - qx) ** 2 + (py - qy) ** 2), t
