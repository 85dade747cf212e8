from __future__ import annotations

# This module is the orchestrator for route planning.
# It wires together:
# - input validation (origin/destination text)
# - the route provider (the only await point)
# - hazard mapping + ranking (pure, recomputed whenever routes or hazards change)
# - the comparison selection and the navigation hand-off
#
# The engine is the single owner of RouteSet/SelectionState. Callers send commands
# (calculate_route, toggle_route, select_only, clear_route, update_hazards) and read
# immutable snapshots; nothing outside the engine mutates its state.
#
# Ordering rule: every calculate_route call takes a new sequence number, and only the
# latest one may apply its result. clear_route() also advances the sequence so a late
# response can never bring a cleared RouteSet back.

import logging
from typing import Iterable

from roadguard.config.settings import Settings, get_settings
from roadguard.core.errors import (
    RoutingError,
    RoutingErrorKind,
    StaleResultDiscarded,
    ValidationError,
)
from roadguard.domain.models import (
    EngineSnapshot,
    GeoPoint,
    HazardReport,
    NavigationLink,
    RouteErrorInfo,
    RoutePath,
    RouteRanking,
    RouteSet,
    SelectionState,
)
from roadguard.hazards.index import HazardIndex
from roadguard.ingestion.hazard_feed import HazardFeedClient
from roadguard.ingestion.route_provider import RouteProvider, parse_location_text
from roadguard.routing.mapper import map_hazards_to_routes
from roadguard.routing.navigation import build_navigation_link_from_settings
from roadguard.routing.ranker import rank_routes
from roadguard.routing.render import RenderPlan, build_render_plan
from roadguard.routing.selection import RouteSelection

logger = logging.getLogger(__name__)


class RouteEngine:
    """Owns the active RouteSet and selection for one planning session."""

    def __init__(
        self,
        provider: RouteProvider,
        *,
        hazard_index: HazardIndex | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self._provider = provider
        if hazard_index is None:
            hazard_index = HazardIndex(cell_size_m=self._settings.routing.hazards.spatial_cell_m)
        self._hazards = hazard_index

        self._route_set: RouteSet | None = None
        self._selection: RouteSelection | None = None
        self._ranking: RouteRanking | None = None
        self._error: RouteErrorInfo | None = None

        self._latest_seq = 0
        self._pending_seq: int | None = None

    # --- read side -------------------------------------------------------------------

    @property
    def hazard_index(self) -> HazardIndex:
        return self._hazards

    @property
    def pending(self) -> bool:
        return self._pending_seq is not None

    @property
    def route_set(self) -> RouteSet | None:
        return self._route_set

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            request_seq=self._latest_seq,
            pending=self.pending,
            hazard_revision=self._hazards.revision,
            route_set=self._route_set,
            selection=self._selection.snapshot() if self._selection else None,
            ranking=self._ranking,
            error=self._error,
        )

    def render_plan(self) -> RenderPlan:
        return build_render_plan(self.snapshot(), self._settings.render)

    # --- CalculateRoute --------------------------------------------------------------

    @staticmethod
    def _validate_query(origin: str, destination: str) -> tuple[str, str]:
        origin = (origin or "").strip()
        destination = (destination or "").strip()
        if not origin or not destination:
            raise ValidationError("Please enter both origin and destination")
        # Coordinate-pair text must be in range; address text is passed through as-is.
        parse_location_text(origin)
        parse_location_text(destination)
        return origin, destination

    def _settle(self, seq: int) -> None:
        """Claim the right to apply the result of request `seq`."""
        if seq != self._latest_seq:
            raise StaleResultDiscarded(seq, self._latest_seq)
        self._pending_seq = None

    def _record_failure(self, seq: int, error: RoutingError) -> None:
        # The previous RouteSet and selection stay as they are.
        self._error = RouteErrorInfo(
            code=error.kind.value,
            message=RoutingError.user_message,
            retryable=error.retryable,
            request_seq=seq,
        )
        logger.warning("Route request #%d failed: %s", seq, error)

    def _build_route_set(self, origin: str, destination: str, routes: list[RoutePath]) -> RouteSet:
        # Providers index by position already; renumber defensively so indices stay dense.
        routes = [r if r.index == i else r.model_copy(update={"index": i}) for i, r in enumerate(routes)]
        hazards_by_route = map_hazards_to_routes(
            routes, self._hazards, config=self._settings.routing.hazards
        )
        return RouteSet(
            origin_text=origin,
            destination_text=destination,
            routes=routes,
            hazards_by_route=hazards_by_route,
        )

    async def calculate_route(
        self, origin: str, destination: str, *, alternatives: bool | None = None
    ) -> EngineSnapshot:
        """Resolve routes for a query and make them the active RouteSet.

        Raises:
            ValidationError: Missing origin/destination (no provider call is made).
            RoutingError: The provider failed; the prior RouteSet is left untouched and
                the error is recorded on the snapshot.

        A result that arrives after a newer request (or after `clear_route()`) is
        dropped and the current snapshot is returned unchanged.
        """
        origin, destination = self._validate_query(origin, destination)
        if alternatives is None:
            alternatives = self._settings.routing.provider.alternatives

        self._latest_seq += 1
        seq = self._latest_seq
        self._pending_seq = seq
        logger.info("Route request #%d issued (alternatives=%s)", seq, alternatives)

        try:
            routes = await self._provider.fetch_routes(origin, destination, alternatives=alternatives)
            if not routes:
                raise RoutingError(RoutingErrorKind.NOT_FOUND, "provider returned no routes")
        except RoutingError as e:
            try:
                self._settle(seq)
            except StaleResultDiscarded as stale:
                logger.debug("%s", stale)
                return self.snapshot()
            self._record_failure(seq, e)
            raise
        except BaseException:
            if self._pending_seq == seq:
                self._pending_seq = None
            raise

        try:
            self._settle(seq)
        except StaleResultDiscarded as stale:
            logger.debug("%s", stale)
            return self.snapshot()

        # Build everything first, then swap in one step.
        route_set = self._build_route_set(origin, destination, routes)
        ranking = rank_routes(route_set)
        selection = RouteSelection(len(route_set.routes))

        self._route_set = route_set
        self._ranking = ranking
        self._selection = selection
        self._error = None
        logger.info(
            "Route request #%d applied: %d routes, hazards per route %s",
            seq,
            len(route_set.routes),
            [route_set.hazard_count(r.index) for r in route_set.routes],
        )
        return self.snapshot()

    # --- SelectRoutes ----------------------------------------------------------------

    def _require_selection(self) -> RouteSelection:
        if self._selection is None or self._route_set is None:
            raise ValidationError("no routes to select; calculate a route first")
        return self._selection

    def toggle_route(self, index: int) -> SelectionState:
        selection = self._require_selection()
        if not selection.toggle(index):
            logger.debug("Ignored toggle of the only selected route %d", index)
        return selection.snapshot()

    def select_only(self, index: int) -> SelectionState:
        selection = self._require_selection()
        selection.select_only(index)
        return selection.snapshot()

    def select_routes(self, indices: Iterable[int]) -> SelectionState:
        selection = self._require_selection()
        selection.set(indices)
        return selection.snapshot()

    def reset_selection(self) -> SelectionState:
        selection = self._require_selection()
        selection.clear()
        return selection.snapshot()

    # --- ClearRoute ------------------------------------------------------------------

    def clear_route(self) -> EngineSnapshot:
        """Drop the RouteSet, selection and error; in-flight results will be discarded."""
        self._latest_seq += 1
        self._pending_seq = None
        self._route_set = None
        self._selection = None
        self._ranking = None
        self._error = None
        logger.info("Route state cleared (sequence now #%d)", self._latest_seq)
        return self.snapshot()

    def dismiss_error(self) -> EngineSnapshot:
        self._error = None
        return self.snapshot()

    # --- hazards ---------------------------------------------------------------------

    def update_hazards(self, hazards: Iterable[HazardReport]) -> EngineSnapshot:
        """Replace the hazard set and re-map the active RouteSet (selection is kept)."""
        revision = self._hazards.replace(hazards)
        if self._route_set is not None:
            hazards_by_route = map_hazards_to_routes(
                self._route_set.routes, self._hazards, config=self._settings.routing.hazards
            )
            route_set = self._route_set.model_copy(update={"hazards_by_route": hazards_by_route})
            self._ranking = rank_routes(route_set)
            self._route_set = route_set
        logger.info("Hazards updated: revision=%d count=%d", revision, len(self._hazards))
        return self.snapshot()

    async def refresh_hazards(
        self, feed: HazardFeedClient, center: GeoPoint, *, radius_km: float | None = None
    ) -> EngineSnapshot:
        """Pull hazards from the feed. On `HazardFeedError` the current hazards are kept."""
        hazards = await feed.fetch(center, radius_km=radius_km)
        return self.update_hazards(hazards)

    # --- navigation ------------------------------------------------------------------

    def navigation_link(self, index: int | None = None) -> NavigationLink:
        """Navigation hand-off for `index`, or for the first selected route by default."""
        selection = self._require_selection()
        if index is None:
            index = selection.primary
        if not 0 <= index < len(self._route_set.routes):
            raise ValidationError(f"route index {index} is out of range")
        return build_navigation_link_from_settings(self._route_set.routes[index], self._settings.navigation)
