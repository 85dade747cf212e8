"""
Render layers for map clients.

Turns a read-only `EngineSnapshot` into plain draw instructions (polylines, route
number badges, start/end pins). The map client owns every graphic object; this module
only decides colors and stacking so that selected routes are drawn on top.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from roadguard.config.settings import RenderSettings
from roadguard.domain.models import EngineSnapshot, GeoPoint


@dataclass(frozen=True)
class MarkerLayer:
    kind: str
    position: GeoPoint
    label: str
    z_index: int


@dataclass(frozen=True)
class RouteLayer:
    route_index: int
    color: str
    selected: bool
    opacity: float
    z_index: int
    path: list[GeoPoint]
    badge: MarkerLayer | None
    hazard_count: int


@dataclass(frozen=True)
class RenderPlan:
    routes: list[RouteLayer] = field(default_factory=list)
    markers: list[MarkerLayer] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.routes and not self.markers


def route_color(index: int, palette: list[str]) -> str:
    return palette[index % len(palette)]


def build_render_plan(snapshot: EngineSnapshot, settings: RenderSettings | None = None) -> RenderPlan:
    """Build draw-ordered layers: unselected routes first, selected routes last (on top)."""
    cfg = settings or RenderSettings()
    route_set = snapshot.route_set
    if route_set is None:
        return RenderPlan()

    selected = set(snapshot.selection.selected_indices) if snapshot.selection else {0}

    layers: list[RouteLayer] = []
    for route in route_set.routes:
        is_selected = route.index in selected
        badge = None
        if route.polyline:
            badge = MarkerLayer(
                kind="route_badge",
                position=route.polyline[len(route.polyline) // 2],
                label=str(route.index + 1),
                z_index=(200 if is_selected else 50) + route.index,
            )
        layers.append(
            RouteLayer(
                route_index=route.index,
                color=route_color(route.index, cfg.palette),
                selected=is_selected,
                opacity=cfg.selected_opacity if is_selected else cfg.unselected_opacity,
                z_index=(100 if is_selected else 0) + route.index,
                path=list(route.polyline),
                badge=badge,
                hazard_count=route_set.hazard_count(route.index),
            )
        )
    layers.sort(key=lambda layer: (layer.selected, layer.route_index))

    markers: list[MarkerLayer] = []
    first = route_set.routes[0]
    if first.start is not None and first.end is not None:
        markers.append(MarkerLayer(kind="start", position=first.start, label="A", z_index=300))
        markers.append(MarkerLayer(kind="end", position=first.end, label="B", z_index=300))

    return RenderPlan(routes=layers, markers=markers)
