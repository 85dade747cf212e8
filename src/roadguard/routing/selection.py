"""
Multi-route comparison selection.

A tiny state machine over the set of selected route indices. While a RouteSet exists
the set is never empty: toggling the only selected route is a no-op.

Indices are kept in the order they were added. `primary` (the navigation default)
is the earliest one still selected; snapshots list them sorted.
"""

from __future__ import annotations

from typing import Iterable

from roadguard.core.errors import ValidationError
from roadguard.domain.models import SelectionState


class RouteSelection:
    """Selected route indices for one RouteSet of `route_count` routes."""

    def __init__(self, route_count: int):
        if route_count < 1:
            raise ValidationError("a selection needs at least one route")
        self._route_count = int(route_count)
        self._selected: dict[int, None] = {0: None}

    @property
    def route_count(self) -> int:
        return self._route_count

    @property
    def selected(self) -> frozenset[int]:
        return frozenset(self._selected)

    @property
    def primary(self) -> int:
        return next(iter(self._selected))

    def _check(self, index: int) -> int:
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < self._route_count:
            raise ValidationError(f"route index {index!r} is out of range (0..{self._route_count - 1})")
        return index

    def toggle(self, index: int) -> bool:
        """Add or remove `index`. Returns False when the call was a no-op."""
        index = self._check(index)
        if index in self._selected:
            if len(self._selected) == 1:
                return False
            del self._selected[index]
            return True
        self._selected[index] = None
        return True

    def select_only(self, index: int) -> None:
        self._selected = {self._check(index): None}

    def clear(self) -> None:
        """Back to the initial selection (the first route only)."""
        self._selected = {0: None}

    def set(self, indices: Iterable[int]) -> None:
        """Replace the selection wholesale (validated, must be non-empty)."""
        chosen = dict.fromkeys(self._check(i) for i in indices)
        if not chosen:
            raise ValidationError("selection cannot be empty")
        self._selected = chosen

    def snapshot(self) -> SelectionState:
        return SelectionState(selected_indices=sorted(self._selected))
