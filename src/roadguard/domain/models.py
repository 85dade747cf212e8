"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- feed inputs (`HazardReport`, `HazardFeedRecord`)
- provider inputs (`RouteCandidate`, `RoutePath`)
- engine state exposed as read-only snapshots (`RouteSet`, `EngineSnapshot`)
- API/CLI requests (`RouteQuery`, `SelectionCommand`)

Engine-facing models are frozen: the engine replaces them wholesale and renderers
only ever see immutable values.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class GeoPoint(BaseModel):
    """A geographic point in WGS-84 decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


_EVENT_TYPE_IDS = {
    "ACCIDENT": 0,
    "ROAD_CLOSURE": 1,
    "PROTEST": 2,
    "POLICE_ACTIVITY": 3,
    "HAZARD": 4,
    "TRAFFIC_JAM": 5,
}

_EVENT_TYPE_LABELS = {
    "ACCIDENT": "Accident",
    "ROAD_CLOSURE": "Road Closure",
    "PROTEST": "Protest",
    "POLICE_ACTIVITY": "Police Activity",
    "HAZARD": "Hazard",
    "TRAFFIC_JAM": "Traffic Jam",
}


class EventType(str, Enum):
    """The six kinds of community-reported road incidents."""

    ACCIDENT = "ACCIDENT"
    ROAD_CLOSURE = "ROAD_CLOSURE"
    PROTEST = "PROTEST"
    POLICE_ACTIVITY = "POLICE_ACTIVITY"
    HAZARD = "HAZARD"
    TRAFFIC_JAM = "TRAFFIC_JAM"

    @property
    def id(self) -> int:
        return _EVENT_TYPE_IDS[self.value]

    @property
    def label(self) -> str:
        return _EVENT_TYPE_LABELS[self.value]

    @classmethod
    def from_id(cls, value: int) -> "EventType":
        """Map the contract's numeric id; unknown ids are shown as accidents."""
        for member in cls:
            if member.id == value:
                return member
        return cls.ACCIDENT


class HazardStatus(IntEnum):
    ACTIVE = 0
    CONFIRMED = 1
    EXPIRED = 2
    SLASHED = 3


# A report counts as confirmed by the community at this many confirmations.
CONFIRMED_THRESHOLD = 3


class HazardReport(BaseModel):
    """A point hazard as delivered by the feed. Immutable to the engine."""

    model_config = ConfigDict(frozen=True)

    id: int
    location: GeoPoint
    event_type: EventType
    confirmation_count: int = Field(0, ge=0)
    stake_amount: float = Field(0.0, ge=0)
    tip_total: float = Field(0.0, ge=0)
    created_at: datetime
    expires_at: datetime | None = None
    source_ref: str | None = None
    status: HazardStatus = HazardStatus.ACTIVE
    commitment: str | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.confirmation_count >= CONFIRMED_THRESHOLD


def _status_or_active(value: int) -> HazardStatus:
    try:
        return HazardStatus(value)
    except ValueError:
        return HazardStatus.ACTIVE


class HazardFeedRecord(BaseModel):
    """One row of the hazard feed payload (`GET /api/reports`)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    event_type: int = 0
    status: int = 0
    confirmation_count: int = 0
    total_regards: float = 0.0
    stake_amount: float = 0.0
    commitment: str | None = None
    tx_hash: str | None = None
    timestamp: int | None = None
    expires_at: int | None = None

    def to_hazard_report(self) -> HazardReport:
        created = (
            datetime.fromtimestamp(self.timestamp, tz=timezone.utc)
            if self.timestamp
            else datetime.now(timezone.utc)
        )
        expires = datetime.fromtimestamp(self.expires_at, tz=timezone.utc) if self.expires_at else None
        return HazardReport(
            id=self.id,
            location=GeoPoint(lat=self.lat, lng=self.lng),
            event_type=EventType.from_id(self.event_type),
            confirmation_count=max(0, self.confirmation_count),
            stake_amount=max(0.0, self.stake_amount),
            tip_total=max(0.0, self.total_regards),
            created_at=created,
            expires_at=expires,
            source_ref=self.tx_hash,
            status=_status_or_active(self.status),
            commitment=self.commitment,
        )


class RouteCandidate(BaseModel):
    """One route in the provider response shape (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    summary: str = ""
    distance_text: str | None = None
    distance_meters: float = Field(..., ge=0)
    duration_text: str | None = None
    duration_seconds: float = Field(..., ge=0)
    duration_in_traffic_text: str | None = None
    duration_in_traffic_seconds: float | None = Field(default=None, ge=0)
    polyline: list[GeoPoint] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class RoutePath(BaseModel):
    """A candidate driving route between the query's origin and destination."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)
    polyline: list[GeoPoint] = Field(default_factory=list)
    distance_meters: float = Field(..., ge=0)
    duration_seconds: float = Field(..., ge=0)
    duration_in_traffic_seconds: float | None = Field(default=None, ge=0)
    summary_label: str = ""
    warnings: list[str] = Field(default_factory=list)

    distance_text: str | None = None
    duration_text: str | None = None
    duration_in_traffic_text: str | None = None

    @property
    def start(self) -> GeoPoint | None:
        return self.polyline[0] if self.polyline else None

    @property
    def end(self) -> GeoPoint | None:
        return self.polyline[-1] if self.polyline else None


class RouteHazard(BaseModel):
    """A hazard found on a route, positioned by arc length from the route start."""

    model_config = ConfigDict(frozen=True)

    hazard: HazardReport
    route_index: int = Field(..., ge=0)
    distance_from_start_meters: float = Field(..., ge=0)


class RouteSet(BaseModel):
    """The full result of one route-planning query."""

    model_config = ConfigDict(frozen=True)

    origin_text: str
    destination_text: str
    routes: list[RoutePath] = Field(..., min_length=1)
    hazards_by_route: dict[int, list[RouteHazard]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_indices(self) -> "RouteSet":
        for position, route in enumerate(self.routes):
            if route.index != position:
                raise ValueError(f"routes[{position}].index must be {position}, got {route.index}")
        for key in self.hazards_by_route:
            if not 0 <= key < len(self.routes):
                raise ValueError(f"hazards_by_route has unknown route index {key}")
        return self

    def hazards_for(self, index: int) -> list[RouteHazard]:
        return self.hazards_by_route.get(index, [])

    def hazard_count(self, index: int) -> int:
        return len(self.hazards_for(index))


class SelectionState(BaseModel):
    """Snapshot of the routes currently being compared."""

    model_config = ConfigDict(frozen=True)

    selected_indices: list[int] = Field(..., min_length=1)


CLEAR_LABEL = "CLEAR"


class RouteRanking(BaseModel):
    """Display-only comparison labels derived from a RouteSet."""

    model_config = ConfigDict(frozen=True)

    fastest: list[int]
    shortest: list[int]
    safest: list[int]
    min_hazard_count: int = Field(..., ge=0)
    safest_label: str

    def labels_for(self, index: int) -> list[str]:
        out: list[str] = []
        if index in self.fastest:
            out.append("fastest")
        if index in self.shortest:
            out.append("shortest")
        if index in self.safest:
            out.append("safest")
        return out


class RouteErrorInfo(BaseModel):
    """User-facing error banner state (dismissible)."""

    model_config = ConfigDict(frozen=True)

    code: Literal["NOT_FOUND", "TRANSPORT"]
    message: str
    retryable: bool = True
    request_seq: int


class NavigationLink(BaseModel):
    """External turn-by-turn hand-off for one route."""

    model_config = ConfigDict(frozen=True)

    route_index: int
    url: str
    origin: GeoPoint
    destination: GeoPoint
    waypoints: list[GeoPoint] = Field(default_factory=list)
    travel_mode: str = "driving"


class EngineSnapshot(BaseModel):
    """Read-only view of the engine state handed to renderers and the API."""

    model_config = ConfigDict(frozen=True)

    request_seq: int = 0
    pending: bool = False
    hazard_revision: int = 0
    route_set: RouteSet | None = None
    selection: SelectionState | None = None
    ranking: RouteRanking | None = None
    error: RouteErrorInfo | None = None


class RouteQuery(BaseModel):
    """`CalculateRoute` request payload. Blank values are rejected by the engine."""

    origin: str = ""
    destination: str = ""
    alternatives: bool = True


class SelectionCommand(BaseModel):
    """`SelectRoutes` request payload."""

    action: Literal["toggle", "select_only", "set", "reset"]
    index: int | None = None
    indices: list[int] | None = None

    @model_validator(mode="after")
    def _validate_arguments(self) -> "SelectionCommand":
        if self.action in ("toggle", "select_only") and self.index is None:
            raise ValueError(f"action '{self.action}' requires 'index'")
        if self.action == "set" and not self.indices:
            raise ValueError("action 'set' requires a non-empty 'indices'")
        return self
