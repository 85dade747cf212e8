"""
Error taxonomy for the route hazard engine.

- `ValidationError`: bad caller input, rejected before any provider call.
- `RoutingError`: the route provider could not produce routes (retryable).
- `StaleResultDiscarded`: internal bookkeeping for superseded requests; never user-visible.
- `HazardFeedError`: the hazard feed could not be read.

The API layer maps these onto HTTP error payloads; see `roadguard.api.routes`.
"""

from __future__ import annotations

from enum import Enum


class RoadGuardError(Exception):
    """Base class for errors raised by this package."""


class ValidationError(RoadGuardError, ValueError):
    """Invalid input (missing origin/destination, bad index, malformed coordinates)."""


class RoutingErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    TRANSPORT = "TRANSPORT"


class RoutingError(RoadGuardError):
    """Route provider failure. Always surfaced to users as a retryable message."""

    user_message = "Could not calculate route"

    def __init__(self, kind: RoutingErrorKind, detail: str = ""):
        self.kind = RoutingErrorKind(kind)
        self.detail = detail
        self.retryable = True
        super().__init__(f"{self.kind.value}: {detail}" if detail else self.kind.value)


class StaleResultDiscarded(RoadGuardError):
    """A provider result arrived for a request that is no longer the latest one."""

    def __init__(self, request_seq: int, latest_seq: int):
        self.request_seq = request_seq
        self.latest_seq = latest_seq
        super().__init__(f"discarded result of request #{request_seq} (latest is #{latest_seq})")


class HazardFeedError(RoadGuardError):
    """Hazard feed transport or payload failure."""
