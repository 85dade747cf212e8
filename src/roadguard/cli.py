"""
RoadGuard CLI entrypoint.

This CLI is intended for quick local route comparisons and debugging without a map UI.
It delegates all planning logic to `roadguard.routing.engine.RouteEngine`.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from roadguard.config.settings import Settings, get_settings
from roadguard.core.errors import RoutingError, ValidationError
from roadguard.core.logging import configure_logging
from roadguard.domain.models import EventType
from roadguard.ingestion.hazard_feed import load_hazards_file
from roadguard.ingestion.route_provider import (
    GoogleDirectionsProvider,
    RouteProvider,
    StaticRouteProvider,
)
from roadguard.routing.engine import RouteEngine
from roadguard.routing.explain import format_distance, one_line_summary


def _build_engine(args: argparse.Namespace, settings: Settings) -> RouteEngine:
    provider: RouteProvider
    if args.routes_file:
        provider = StaticRouteProvider.from_file(args.routes_file)
    else:
        provider = GoogleDirectionsProvider(settings)
    engine = RouteEngine(provider, settings=settings)
    if args.hazards_file:
        engine.update_hazards(load_hazards_file(args.hazards_file))
    return engine


def _calculate(args: argparse.Namespace) -> RouteEngine | None:
    settings = get_settings()
    engine = _build_engine(args, settings)
    try:
        asyncio.run(engine.calculate_route(args.origin, args.destination, alternatives=not args.single))
    except ValidationError as e:
        print(f"error: {e}", file=sys.stderr)
        return None
    except RoutingError as e:
        print(f"error: {e.user_message} ({e})", file=sys.stderr)
        return None
    return engine


def _cmd_routes(args: argparse.Namespace) -> int:
    """Handle the `routes` subcommand."""
    engine = _calculate(args)
    if engine is None:
        return 1
    snapshot = engine.snapshot()
    route_set, ranking = snapshot.route_set, snapshot.ranking
    try:
        link = engine.navigation_link(args.index)
    except ValidationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.json:
        payload = snapshot.model_dump(mode="json")
        payload["navigation"] = link.model_dump(mode="json")
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    print(f"{route_set.origin_text} -> {route_set.destination_text}")
    print(f"Safest: {ranking.safest_label}")
    for route in route_set.routes:
        print(one_line_summary(route, route_set, ranking))
        for rh in route_set.hazards_for(route.index):
            hazard = rh.hazard
            print(
                f"    - {format_distance(rh.distance_from_start_meters):>9}  {hazard.event_type.label}"
                f" (#{hazard.id}, confirmations={hazard.confirmation_count})"
            )
    print(f"Navigate: {link.url}")
    return 0


def _cmd_navigate(args: argparse.Namespace) -> int:
    engine = _calculate(args)
    if engine is None:
        return 1
    try:
        link = engine.navigation_link(args.index)
    except ValidationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    print(link.url)
    return 0


def _cmd_event_types(_: argparse.Namespace) -> int:
    for t in EventType:
        print(f"{t.id}  {t.value:<16} {t.label}")
    return 0


def _add_query_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--origin", required=True, help='Address text or "lat,lng"')
    p.add_argument("--destination", required=True, help='Address text or "lat,lng"')
    p.add_argument(
        "--routes-file",
        default=None,
        help="Offline routes (provider response JSON) instead of calling the directions service.",
    )
    p.add_argument("--hazards-file", default=None, help="Hazard feed JSON ({\"reports\": [...]}).")
    p.add_argument("--single", action="store_true", help="Request a single route (no alternatives).")
    p.add_argument("--index", type=int, default=None, help="Route index for the navigation link.")


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the RoadGuard CLI."""
    parser = argparse.ArgumentParser(prog="roadguard")
    parser.add_argument(
        "--log-level", default=None, help="Logging level (default: app.log_level / ROADGUARD_LOG_LEVEL)."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    routes = sub.add_parser("routes", help="Compare candidate routes by time, distance and hazards.")
    _add_query_arguments(routes)
    routes.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    routes.set_defaults(func=_cmd_routes)

    nav = sub.add_parser("navigate", help="Print the navigation hand-off URL for a route.")
    _add_query_arguments(nav)
    nav.set_defaults(func=_cmd_navigate)

    et = sub.add_parser("event-types", help="List hazard event types.")
    et.set_defaults(func=_cmd_event_types)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m roadguard.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        configure_logging(args.log_level)
    except ValueError as e:
        parser.error(str(e))
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
