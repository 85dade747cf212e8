import asyncio

import pytest

from factories import east, hazard, north, straight_route
from roadguard.config.settings import Settings
from roadguard.core.errors import HazardFeedError, RoutingError, RoutingErrorKind, ValidationError
from roadguard.domain.models import GeoPoint
from roadguard.routing.engine import RouteEngine


class _GatedProvider:
    """Answers per origin; an origin with a gate blocks until the gate is set."""

    def __init__(self, answers: dict, gates: dict | None = None):
        self.answers = answers
        self.gates = gates or {}
        self.calls: list[tuple[str, str, bool]] = []

    async def fetch_routes(self, origin, destination, *, alternatives=True):
        self.calls.append((origin, destination, alternatives))
        gate = self.gates.get(origin)
        if gate is not None:
            await gate.wait()
        answer = self.answers[origin]
        if isinstance(answer, Exception):
            raise answer
        return answer


def _three_routes():
    return [
        straight_route(0, duration_s=600, distance_m=5000),
        straight_route(1, lng=east(900), duration_s=500, distance_m=5200),
        straight_route(2, lng=east(1800), duration_s=700, distance_m=4800),
    ]


def _engine(provider, **kwargs) -> RouteEngine:
    return RouteEngine(provider, settings=Settings(), **kwargs)


def test_successful_query_builds_route_set_and_resets_selection():
    engine = _engine(_GatedProvider({"a": _three_routes()}))
    engine.update_hazards([hazard(1, north(1200), east(300))])

    snapshot = asyncio.run(engine.calculate_route("a", "b"))

    assert snapshot.pending is False
    assert snapshot.error is None
    assert [r.index for r in snapshot.route_set.routes] == [0, 1, 2]
    assert snapshot.route_set.hazard_count(0) == 1
    assert snapshot.route_set.hazard_count(1) == 0
    assert snapshot.selection.selected_indices == [0]
    assert snapshot.ranking.fastest == [1]
    assert snapshot.ranking.shortest == [2]
    assert snapshot.ranking.safest == [1, 2]
    assert snapshot.ranking.safest_label == "CLEAR"


def test_new_route_set_resets_selection_to_first_route():
    engine = _engine(_GatedProvider({"a": _three_routes(), "c": _three_routes()}))
    asyncio.run(engine.calculate_route("a", "b"))
    engine.select_routes([1, 2])

    snapshot = asyncio.run(engine.calculate_route("c", "b"))

    assert snapshot.selection.selected_indices == [0]
    assert snapshot.route_set.origin_text == "c"


@pytest.mark.parametrize("origin, destination", [("", "b"), ("a", "   "), ("91,0", "b")])
def test_invalid_queries_never_reach_the_provider(origin, destination):
    provider = _GatedProvider({"a": _three_routes()})
    engine = _engine(provider)

    with pytest.raises(ValidationError):
        asyncio.run(engine.calculate_route(origin, destination))

    assert provider.calls == []
    assert engine.snapshot().request_seq == 0


def test_not_found_keeps_previous_routes_and_selection():
    provider = _GatedProvider(
        {"a": _three_routes(), "nowhere": RoutingError(RoutingErrorKind.NOT_FOUND, "ZERO_RESULTS")}
    )
    engine = _engine(provider)
    before = asyncio.run(engine.calculate_route("a", "b"))
    engine.toggle_route(1)

    with pytest.raises(RoutingError):
        asyncio.run(engine.calculate_route("nowhere", "b"))

    after = engine.snapshot()
    assert after.route_set == before.route_set
    assert after.selection.selected_indices == [0, 1]
    assert after.error.code == "NOT_FOUND"
    assert after.error.message == "Could not calculate route"
    assert after.error.retryable is True
    assert after.pending is False

    assert engine.dismiss_error().error is None


def test_not_found_without_previous_routes_leaves_engine_empty():
    engine = _engine(_GatedProvider({"x": RoutingError(RoutingErrorKind.TRANSPORT, "timeout")}))

    with pytest.raises(RoutingError):
        asyncio.run(engine.calculate_route("x", "y"))

    snapshot = engine.snapshot()
    assert snapshot.route_set is None
    assert snapshot.selection is None
    assert snapshot.error.code == "TRANSPORT"


def test_empty_provider_answer_is_reported_as_not_found():
    engine = _engine(_GatedProvider({"a": []}))
    with pytest.raises(RoutingError) as excinfo:
        asyncio.run(engine.calculate_route("a", "b"))
    assert excinfo.value.kind is RoutingErrorKind.NOT_FOUND


def test_older_response_arriving_late_is_discarded():
    async def scenario():
        gate = asyncio.Event()
        slow_routes = [straight_route(0, summary="slow")]
        provider = _GatedProvider({"slow": slow_routes, "fast": _three_routes()}, gates={"slow": gate})
        engine = _engine(provider)

        slow = asyncio.create_task(engine.calculate_route("slow", "b"))
        await asyncio.sleep(0)
        assert engine.pending is True

        await engine.calculate_route("fast", "b")
        gate.set()
        late = await slow
        return engine, late

    engine, late = asyncio.run(scenario())

    assert engine.route_set.origin_text == "fast"
    assert len(engine.route_set.routes) == 3
    assert late.request_seq == 2
    assert late.route_set.origin_text == "fast"


def test_older_failure_arriving_late_does_not_set_an_error():
    async def scenario():
        gate = asyncio.Event()
        provider = _GatedProvider(
            {"slow": RoutingError(RoutingErrorKind.TRANSPORT), "fast": _three_routes()},
            gates={"slow": gate},
        )
        engine = _engine(provider)
        slow = asyncio.create_task(engine.calculate_route("slow", "b"))
        await asyncio.sleep(0)
        await engine.calculate_route("fast", "b")
        gate.set()
        await slow
        return engine

    engine = asyncio.run(scenario())
    assert engine.snapshot().error is None
    assert engine.route_set.origin_text == "fast"


def test_clear_drops_a_result_that_lands_afterwards():
    async def scenario():
        gate = asyncio.Event()
        provider = _GatedProvider({"a": _three_routes()}, gates={"a": gate})
        engine = _engine(provider)
        task = asyncio.create_task(engine.calculate_route("a", "b"))
        await asyncio.sleep(0)
        cleared = engine.clear_route()
        gate.set()
        await task
        return engine, cleared

    engine, cleared = asyncio.run(scenario())

    assert cleared.pending is False
    snapshot = engine.snapshot()
    assert snapshot.route_set is None
    assert snapshot.selection is None
    assert snapshot.ranking is None


def test_selection_commands_require_routes():
    engine = _engine(_GatedProvider({}))
    with pytest.raises(ValidationError):
        engine.toggle_route(0)
    with pytest.raises(ValidationError):
        engine.navigation_link()


def test_update_hazards_remaps_active_routes_and_keeps_selection():
    engine = _engine(_GatedProvider({"a": _three_routes()}))
    asyncio.run(engine.calculate_route("a", "b"))
    engine.select_only(2)
    revision_before = engine.snapshot().hazard_revision

    snapshot = engine.update_hazards(
        [hazard(1, north(400), east(1800)), hazard(2, north(800), east(1850))]
    )

    assert snapshot.hazard_revision == revision_before + 1
    assert [rh.hazard.id for rh in snapshot.route_set.hazards_for(2)] == [1, 2]
    assert snapshot.selection.selected_indices == [2]
    assert snapshot.ranking.safest == [0, 1]


def test_navigation_link_defaults_to_first_selected_route():
    engine = _engine(_GatedProvider({"a": _three_routes()}))
    asyncio.run(engine.calculate_route("a", "b"))
    engine.toggle_route(2)
    engine.toggle_route(1)
    engine.toggle_route(0)

    link = engine.navigation_link()

    assert engine.snapshot().selection.selected_indices == [1, 2]
    assert link.route_index == 2
    assert link.url.startswith("https://www.google.com/maps/dir/?api=1&origin=")
    with pytest.raises(ValidationError):
        engine.navigation_link(5)


class _Feed:
    def __init__(self, hazards=None, error: Exception | None = None):
        self.hazards = hazards or []
        self.error = error
        self.centers: list[GeoPoint] = []

    async def fetch(self, center, *, radius_km=None, limit=None):
        self.centers.append(center)
        if self.error is not None:
            raise self.error
        return self.hazards


def test_refresh_hazards_from_feed():
    engine = _engine(_GatedProvider({"a": _three_routes()}))
    asyncio.run(engine.calculate_route("a", "b"))
    feed = _Feed([hazard(5, north(2000), 0.0)])

    snapshot = asyncio.run(engine.refresh_hazards(feed, GeoPoint(lat=0, lng=0)))

    assert feed.centers == [GeoPoint(lat=0, lng=0)]
    assert snapshot.route_set.hazard_count(0) == 1


def test_feed_failure_keeps_current_hazards():
    engine = _engine(_GatedProvider({}))
    engine.update_hazards([hazard(1, 0.0, 0.0)])

    with pytest.raises(HazardFeedError):
        asyncio.run(engine.refresh_hazards(_Feed(error=HazardFeedError("down")), GeoPoint(lat=0, lng=0)))

    assert [h.id for h in engine.hazard_index.current_hazards()] == [1]
