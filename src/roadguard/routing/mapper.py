"""
Route hazard mapper.

Projects point hazards onto candidate routes:
- a hazard is "on route" when its distance to the route is within the threshold
  (500 m by default, inclusive),
- its position is the arc length from the route start to the matched point.

The default `vertex` projection matches against the sampled polyline vertices only
(the nearest vertex wins). The recorded position is the distance walked before
stepping onto that vertex, so it trails by one segment: vertices 0 and 1 both map to 0.
This is an approximation: on sparsely sampled stretches a hazard close to the road but far from
any vertex is missed. `segment` projection measures against the segments instead.

The mapping is a pure function of (routes, hazards): no state, deterministic output,
and each route's list is sorted (stable) by distance from the start.
"""

from __future__ import annotations

import logging
from math import inf
from typing import Sequence

from roadguard.config.settings import HazardMatchSettings
from roadguard.core.geo import cumulative_distances_m, haversine_m, project_onto_segment
from roadguard.domain.models import GeoPoint, HazardReport, RouteHazard, RoutePath
from roadguard.hazards.index import HazardIndex

logger = logging.getLogger(__name__)

ON_ROUTE_THRESHOLD_M = 500.0


def _match_vertex(location: GeoPoint, polyline: Sequence[GeoPoint], cumulative: Sequence[float]) -> tuple[float, float]:
    min_distance = inf
    matched_distance = 0.0
    for point, arc_length in zip(polyline, cumulative):
        d = haversine_m(location, point)
        if d < min_distance:
            min_distance = d
            matched_distance = arc_length
    return min_distance, matched_distance


def _match_segment(location: GeoPoint, polyline: Sequence[GeoPoint], cumulative: Sequence[float]) -> tuple[float, float]:
    if len(polyline) == 1:
        return haversine_m(location, polyline[0]), 0.0
    min_distance = inf
    matched_distance = 0.0
    for i in range(len(polyline) - 1):
        d, t = project_onto_segment(location, polyline[i], polyline[i + 1])
        if d < min_distance:
            min_distance = d
            matched_distance = cumulative[i] + t * (cumulative[i + 1] - cumulative[i])
    return min_distance, matched_distance


def hazards_on_route(
    route: RoutePath,
    hazards: Sequence[HazardReport],
    *,
    threshold_m: float = ON_ROUTE_THRESHOLD_M,
    projection: str = "vertex",
) -> list[RouteHazard]:
    """Return the hazards on `route`, sorted ascending by distance from the route start.

    An empty polyline yields no hazards. Hazards sharing a location are each evaluated
    on their own (no deduplication).
    """
    polyline = route.polyline
    if not polyline:
        return []

    cumulative = cumulative_distances_m(polyline)
    if projection == "segment":
        match = _match_segment
    else:
        match = _match_vertex
        cumulative = [0.0] + cumulative[:-1]

    found: list[RouteHazard] = []
    for hazard in hazards:
        min_distance, matched_distance = match(hazard.location, polyline, cumulative)
        if min_distance <= threshold_m:
            found.append(
                RouteHazard(
                    hazard=hazard,
                    route_index=route.index,
                    distance_from_start_meters=matched_distance,
                )
            )
    return sorted(found, key=lambda rh: rh.distance_from_start_meters)


def map_hazards_to_routes(
    routes: Sequence[RoutePath],
    hazards: HazardIndex | Sequence[HazardReport],
    *,
    config: HazardMatchSettings | None = None,
) -> dict[int, list[RouteHazard]]:
    """Map every route index to its on-route hazards.

    When given a `HazardIndex` and vertex projection is used, candidates are first
    narrowed with the index's spatial grid; the output is identical to a full scan.
    """
    cfg = config or HazardMatchSettings()
    threshold_m = float(cfg.threshold_m)

    all_hazards = hazards.current_hazards() if isinstance(hazards, HazardIndex) else list(hazards)
    use_grid = isinstance(hazards, HazardIndex) and cfg.use_spatial_index and cfg.projection == "vertex"

    out: dict[int, list[RouteHazard]] = {}
    for route in routes:
        if use_grid:
            positions = hazards.positions_near_path(route.polyline, radius_m=threshold_m)
            candidates = [all_hazards[pos] for pos in positions]
        else:
            candidates = all_hazards
        out[route.index] = hazards_on_route(
            route, candidates, threshold_m=threshold_m, projection=cfg.projection
        )
        if not route.polyline:
            logger.warning("Route %d has an empty polyline; reporting no hazards for it", route.index)

    logger.debug(
        "Mapped %d hazards onto %d routes: %s",
        len(all_hazards),
        len(routes),
        {i: len(v) for i, v in out.items()},
    )
    return out
