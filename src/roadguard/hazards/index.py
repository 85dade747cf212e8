"""
In-memory hazard index.

The hazard list is owned by the feed: callers hand over a complete list and the index
replaces its contents wholesale. A revision counter lets the engine tell whether the
hazards behind a RouteSet are still current.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from roadguard.core.geo import LatLng
from roadguard.core.spatial_index import SpatialGridIndex
from roadguard.domain.models import HazardReport

logger = logging.getLogger(__name__)


class HazardIndex:
    """Holds the current set of point hazards visible to the engine."""

    def __init__(self, hazards: Iterable[HazardReport] = (), *, cell_size_m: float = 1000.0):
        self._cell_size_m = float(cell_size_m)
        self._hazards: tuple[HazardReport, ...] = tuple(hazards)
        self._revision = 0
        self._grid: SpatialGridIndex[int] | None = None

    @property
    def revision(self) -> int:
        return self._revision

    def __len__(self) -> int:
        return len(self._hazards)

    def current_hazards(self) -> list[HazardReport]:
        return list(self._hazards)

    def replace(self, hazards: Iterable[HazardReport]) -> int:
        """Swap in a new hazard list and return the new revision number."""
        self._hazards = tuple(hazards)
        self._grid = None
        self._revision += 1
        logger.debug("Hazard index replaced: revision=%d hazards=%d", self._revision, len(self._hazards))
        return self._revision

    def _grid_index(self) -> SpatialGridIndex[int]:
        if self._grid is None:
            hazards = self._hazards
            self._grid = SpatialGridIndex(
                list(range(len(hazards))),
                get_latlng=lambda pos: (hazards[pos].location.lat, hazards[pos].location.lng),
                cell_size_m=self._cell_size_m,
            )
        return self._grid

    def positions_near_path(self, points: Sequence[LatLng], *, radius_m: float) -> list[int]:
        """Positions (into `current_hazards()`) of hazards within `radius_m` of any of `points`.

        Hazards are reported by position so duplicate reports at the same location stay
        independent.
        """
        if not self._hazards or not points:
            return []
        return self._grid_index().query_near_path(points, radius_m=radius_m)
