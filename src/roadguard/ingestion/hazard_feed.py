"""
Hazard feed client.

Reads community hazard reports for a map region from the reports API
(`GET /api/reports?lat=..&lng=..&radius=..&limit=..`) and parses them into
`HazardReport`s for the hazard index.

Rows that fail validation are skipped (and logged) rather than failing the whole
refresh; transport failures raise `HazardFeedError` so the caller keeps the hazards
it already has.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from roadguard.config.settings import Settings
from roadguard.core.env import resolve_project_path
from roadguard.core.errors import HazardFeedError
from roadguard.core.http import aget_json
from roadguard.domain.models import GeoPoint, HazardFeedRecord, HazardReport

logger = logging.getLogger(__name__)


def parse_hazard_payload(payload: Any, *, statuses: list[int] | None = None) -> list[HazardReport]:
    """Parse a feed payload (`{"reports": [...]}` or a bare list) into HazardReports.

    Only reports whose status is in `statuses` are kept (all when None).
    """
    rows = payload.get("reports", []) if isinstance(payload, dict) else payload
    if not isinstance(rows, list):
        raise HazardFeedError("hazard feed payload has no report list")

    allowed = set(statuses) if statuses is not None else None
    out: list[HazardReport] = []
    skipped = 0
    for row in rows:
        try:
            record = HazardFeedRecord.model_validate(row)
        except PydanticValidationError:
            skipped += 1
            continue
        if allowed is not None and record.status not in allowed:
            continue
        out.append(record.to_hazard_report())
    if skipped:
        logger.warning("Skipped %d malformed hazard rows", skipped)
    return out


def load_hazards_file(path: str | Path) -> list[HazardReport]:
    """Load a saved feed payload from disk (no status filtering)."""
    resolved = resolve_project_path(path)
    return parse_hazard_payload(json.loads(resolved.read_text(encoding="utf-8")))


class HazardFeedClient:
    """Fetches hazards around a point from the reports API."""

    def __init__(self, settings: Settings):
        self._settings = settings

    @property
    def url(self) -> str:
        cfg = self._settings.hazard_feed
        return cfg.base_url.rstrip("/") + "/" + cfg.path.lstrip("/")

    async def fetch(
        self, center: GeoPoint, *, radius_km: float | None = None, limit: int | None = None
    ) -> list[HazardReport]:
        cfg = self._settings.hazard_feed
        params = {
            "lat": center.lat,
            "lng": center.lng,
            "radius": radius_km if radius_km is not None else cfg.radius_km,
            "limit": limit if limit is not None else cfg.limit,
        }
        logger.info("Fetching hazards around lat=%.4f lng=%.4f radius=%skm", center.lat, center.lng, params["radius"])
        try:
            payload = await aget_json(
                self.url, params=params, timeout_seconds=self._settings.app.http_timeout_seconds
            )
        except (httpx.HTTPError, ValueError) as e:
            raise HazardFeedError(f"hazard feed request failed: {e}") from e

        if isinstance(payload, dict) and payload.get("error"):
            # The reports API answers 200 with an error field when its upstream is down.
            raise HazardFeedError(f"hazard feed reported an error: {payload['error']}")

        hazards = parse_hazard_payload(payload, statuses=cfg.statuses)
        logger.info("Hazard feed returned %d hazards", len(hazards))
        return hazards
