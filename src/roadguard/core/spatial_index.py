"""
Lightweight spatial indexing (grid bucket) for lat/lng points.

Used by the hazard index to avoid scanning every report against every route vertex
when the feed returns a few hundred hazards. Candidates found through the grid are
always confirmed with an exact haversine check, so results match a full scan.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Generic, Sequence, TypeVar

from roadguard.core.geo import LatLng, haversine_m

T = TypeVar("T")

# Slightly under the true length of one degree of latitude, so query boxes err on the wide side.
_M_PER_DEG = 110_000.0


@dataclass(frozen=True)
class _Point:
    lat: float
    lng: float


@dataclass(frozen=True)
class _Entry(Generic[T]):
    ordinal: int
    item: T
    lat: float
    lng: float


class SpatialGridIndex(Generic[T]):
    def __init__(
        self,
        items: Sequence[T],
        *,
        get_latlng: Callable[[T], tuple[float, float]],
        cell_size_m: float = 1000.0,
    ):
        if float(cell_size_m) <= 0:
            raise ValueError("cell_size_m must be > 0")
        self._cell_deg = float(cell_size_m) / _M_PER_DEG
        self._cells: dict[tuple[int, int], list[_Entry[T]]] = {}
        self._entries: list[_Entry[T]] = []

        for ordinal, it in enumerate(items):
            lat, lng = get_latlng(it)
            e = _Entry(ordinal=ordinal, item=it, lat=float(lat), lng=float(lng))
            self._entries.append(e)
            self._cells.setdefault(self._cell_key(e.lat, e.lng), []).append(e)

    def __len__(self) -> int:
        return len(self._entries)

    def _cell_key(self, lat: float, lng: float) -> tuple[int, int]:
        return (int(math.floor(lat / self._cell_deg)), int(math.floor(lng / self._cell_deg)))

    def _candidates(self, lat: float, lng: float, radius_m: float) -> list[_Entry[T]]:
        dlat = radius_m / _M_PER_DEG
        cos_lat = math.cos(math.radians(lat)) - math.radians(dlat)
        if cos_lat <= 0.01 or abs(lng) + radius_m / (_M_PER_DEG * max(cos_lat, 0.01)) >= 180:
            # Near the poles or the antimeridian the degree grid is unreliable; scan everything.
            return self._entries
        dlng = radius_m / (_M_PER_DEG * cos_lat)

        lat_lo, lng_lo = self._cell_key(lat - dlat, lng - dlng)
        lat_hi, lng_hi = self._cell_key(lat + dlat, lng + dlng)
        out: list[_Entry[T]] = []
        for ci in range(lat_lo, lat_hi + 1):
            for cj in range(lng_lo, lng_hi + 1):
                cell = self._cells.get((ci, cj))
                if cell:
                    out.extend(cell)
        return out

    def _entries_within(self, *, lat: float, lng: float, radius_m: float) -> list[_Entry[T]]:
        r = float(radius_m)
        if r < 0:
            return []
        origin = _Point(lat=float(lat), lng=float(lng))
        return [
            e
            for e in self._candidates(origin.lat, origin.lng, r)
            if haversine_m(origin, _Point(lat=e.lat, lng=e.lng)) <= r
        ]

    def query_within(self, *, lat: float, lng: float, radius_m: float) -> list[T]:
        """Items within `radius_m` (inclusive) of a point, in insertion order."""
        entries = self._entries_within(lat=lat, lng=lng, radius_m=radius_m)
        return [e.item for e in sorted(entries, key=lambda e: e.ordinal)]

    def query_near_path(self, points: Sequence[LatLng], *, radius_m: float) -> list[T]:
        """Items within `radius_m` (inclusive) of any of `points`, deduplicated, in insertion order."""
        seen: dict[int, _Entry[T]] = {}
        for p in points:
            for e in self._entries_within(lat=p.lat, lng=p.lng, radius_m=radius_m):
                seen.setdefault(e.ordinal, e)
        return [seen[k].item for k in sorted(seen)]
