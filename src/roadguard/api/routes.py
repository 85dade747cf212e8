"""
API routes.

Endpoints:
- GET    `/api/routes`: current planning snapshot (routes, hazards per route, selection, ranking).
- POST   `/api/routes`: calculate routes for an origin/destination query.
- DELETE `/api/routes`: clear the active routes.
- POST   `/api/routes/selection`: toggle / select-only / set / reset the compared routes.
- GET    `/api/routes/ranking`, `/api/routes/layers`, `/api/routes/navigation`.
- PUT    `/api/hazards`, POST `/api/hazards/refresh`: replace or pull the hazard set.
- GET    `/api/event-types`: hazard kinds and labels for the UI legend.

Handlers are `async def` so every engine command runs on the event loop; the engine
is never touched from a worker thread.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from functools import lru_cache

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from roadguard.config.settings import get_settings
from roadguard.core.errors import HazardFeedError, RoutingError, ValidationError
from roadguard.domain.models import (
    EngineSnapshot,
    EventType,
    GeoPoint,
    HazardReport,
    NavigationLink,
    RouteQuery,
    SelectionCommand,
    SelectionState,
)
from roadguard.ingestion.hazard_feed import HazardFeedClient
from roadguard.ingestion.route_provider import GoogleDirectionsProvider
from roadguard.routing.engine import RouteEngine

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache
def _engine() -> RouteEngine:
    settings = get_settings()
    return RouteEngine(GoogleDirectionsProvider(settings), settings=settings)


@lru_cache
def _feed() -> HazardFeedClient:
    return HazardFeedClient(get_settings())


def _validation_error(e: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": str(e)})


class HazardReplaceRequest(BaseModel):
    hazards: list[HazardReport] = Field(default_factory=list)


class HazardRefreshRequest(BaseModel):
    center: GeoPoint | None = None
    radius_km: float | None = Field(default=None, gt=0)


@router.get("/api/routes", response_model=EngineSnapshot)
async def get_routes() -> EngineSnapshot:
    return _engine().snapshot()


@router.post("/api/routes", response_model=EngineSnapshot)
async def post_routes(query: RouteQuery) -> EngineSnapshot:
    """Calculate routes; the previous routes stay visible if the provider fails."""
    engine = _engine()
    if engine.pending:
        raise HTTPException(
            status_code=409,
            detail={"code": "REQUEST_PENDING", "message": "A route request is already in progress"},
        )
    try:
        return await engine.calculate_route(
            query.origin, query.destination, alternatives=query.alternatives
        )
    except ValidationError as e:
        raise _validation_error(e) from e
    except RoutingError as e:
        raise HTTPException(
            status_code=502,
            detail={
                "code": "ROUTING_ERROR",
                "kind": e.kind.value,
                "message": e.user_message,
                "retryable": e.retryable,
            },
        ) from e


@router.delete("/api/routes", response_model=EngineSnapshot)
async def delete_routes() -> EngineSnapshot:
    return _engine().clear_route()


@router.delete("/api/routes/error", response_model=EngineSnapshot)
async def delete_route_error() -> EngineSnapshot:
    return _engine().dismiss_error()


@router.post("/api/routes/selection", response_model=SelectionState)
async def post_selection(command: SelectionCommand) -> SelectionState:
    engine = _engine()
    try:
        if command.action == "toggle":
            return engine.toggle_route(command.index)
        if command.action == "select_only":
            return engine.select_only(command.index)
        if command.action == "reset":
            return engine.reset_selection()
        return engine.select_routes(command.indices or [])
    except ValidationError as e:
        raise _validation_error(e) from e


@router.get("/api/routes/ranking")
async def get_ranking() -> dict:
    snapshot = _engine().snapshot()
    if snapshot.route_set is None or snapshot.ranking is None:
        return {"ranking": None, "routes": []}
    ranking = snapshot.ranking
    return {
        "ranking": ranking.model_dump(mode="json"),
        "routes": [
            {
                "index": r.index,
                "summary": r.summary_label,
                "distance_meters": r.distance_meters,
                "duration_seconds": r.duration_seconds,
                "hazard_count": snapshot.route_set.hazard_count(r.index),
                "labels": ranking.labels_for(r.index),
            }
            for r in snapshot.route_set.routes
        ],
    }


@router.get("/api/routes/layers")
async def get_layers() -> dict:
    """Return draw instructions for the map (selected routes stacked on top)."""
    plan = _engine().render_plan()
    return {"routes": [asdict(layer) for layer in plan.routes], "markers": [asdict(m) for m in plan.markers]}


@router.get("/api/routes/navigation", response_model=NavigationLink)
async def get_navigation(index: int | None = None) -> NavigationLink:
    try:
        return _engine().navigation_link(index)
    except ValidationError as e:
        raise _validation_error(e) from e


@router.put("/api/hazards", response_model=EngineSnapshot)
async def put_hazards(body: HazardReplaceRequest) -> EngineSnapshot:
    return _engine().update_hazards(body.hazards)


@router.post("/api/hazards/refresh", response_model=EngineSnapshot)
async def post_hazards_refresh(body: HazardRefreshRequest | None = None) -> EngineSnapshot:
    """Pull hazards from the feed around `center` (defaults to the active route's start)."""
    engine = _engine()
    body = body or HazardRefreshRequest()
    center = body.center
    if center is None and engine.route_set is not None:
        center = engine.route_set.routes[0].start
    if center is None:
        raise _validation_error(ValueError("center is required when no route is active"))
    try:
        return await engine.refresh_hazards(_feed(), center, radius_km=body.radius_km)
    except HazardFeedError as e:
        raise HTTPException(
            status_code=502, detail={"code": "HAZARD_FEED_ERROR", "message": str(e)}
        ) from e


@router.get("/api/event-types")
async def get_event_types() -> dict:
    return {"event_types": [{"id": t.id, "name": t.value, "label": t.label} for t in EventType]}


@router.get("/api/settings")
async def get_public_settings() -> dict:
    """Return safe-to-expose settings for UI defaults (credentials removed)."""
    data = get_settings().model_dump(mode="json")
    data.get("routing", {}).get("provider", {}).pop("api_key", None)
    return {
        "app": {"name": data.get("app", {}).get("name")},
        "routing": data.get("routing", {}),
        "navigation": data.get("navigation", {}),
        "render": data.get("render", {}),
    }
