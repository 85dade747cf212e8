"""
Route comparison labels (fastest / shortest / safest).

Ranking is derived, display-only data: it never feeds back into selection or
navigation. Ties qualify every tied route for the label.
"""

from __future__ import annotations

from typing import Callable

from roadguard.domain.models import CLEAR_LABEL, RoutePath, RouteRanking, RouteSet


def _argmin_all(routes: list[RoutePath], key: Callable[[RoutePath], float]) -> list[int]:
    best = min(key(r) for r in routes)
    return [r.index for r in routes if key(r) == best]


def rank_routes(route_set: RouteSet) -> RouteRanking:
    """Compute comparison labels for every route in `route_set`."""
    routes = route_set.routes
    counts = {r.index: route_set.hazard_count(r.index) for r in routes}
    min_count = min(counts.values())

    return RouteRanking(
        fastest=_argmin_all(routes, lambda r: r.duration_seconds),
        shortest=_argmin_all(routes, lambda r: r.distance_meters),
        safest=_argmin_all(routes, lambda r: counts[r.index]),
        min_hazard_count=min_count,
        safest_label=hazard_badge(min_count),
    )


def hazard_badge(count: int) -> str:
    """Badge text for a hazard count: `CLEAR` for zero, otherwise the number."""
    return CLEAR_LABEL if count == 0 else str(count)
