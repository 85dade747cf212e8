"""
Small formatting helpers.

Used by the CLI to print compact route comparison summaries.
"""

from __future__ import annotations

from roadguard.domain.models import RoutePath, RouteRanking, RouteSet
from roadguard.routing.ranker import hazard_badge


def format_distance(meters: float) -> str:
    if meters >= 1000:
        return f"{meters / 1000:.1f} km"
    return f"{int(round(meters))} m"


def format_duration(seconds: float) -> str:
    minutes = int(round(seconds / 60))
    if minutes >= 60:
        return f"{minutes // 60} h {minutes % 60} min"
    return f"{minutes} min"


def one_line_summary(route: RoutePath, route_set: RouteSet, ranking: RouteRanking | None = None) -> str:
    """Render a compact single-line summary for one route."""
    parts = [
        f"#{route.index + 1} {route.summary_label or f'Route {route.index + 1}'}",
        route.distance_text or format_distance(route.distance_meters),
        route.duration_text or format_duration(route.duration_seconds),
        f"hazards={hazard_badge(route_set.hazard_count(route.index))}",
    ]
    if route.duration_in_traffic_text:
        parts.append(f"{route.duration_in_traffic_text} with traffic")
    if ranking is not None:
        labels = ranking.labels_for(route.index)
        if labels:
            parts.append("[" + ", ".join(labels) + "]")
    return " | ".join(parts)
