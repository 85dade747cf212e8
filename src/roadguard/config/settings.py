# src/roadguard/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/roadguard/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `ROADGUARD_CONFIG_PATH` (replaces the packaged defaults)
- environment variables (e.g., `GOOGLE_MAPS_API_KEY`, `ROADGUARD_HAZARD_FEED_URL`)

Design rule:
- Tuning knobs (on-route threshold, waypoint count, palette) live in YAML, not in
  business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from roadguard.core.env import load_dotenv_if_present


def _yaml_mapping(text: str, source: object) -> dict[str, Any]:
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{source}: YAML root must be a mapping, got {type(data).__name__}")
    return data


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file shipped inside `roadguard.config`."""
    return _yaml_mapping(resources.files("roadguard.config").joinpath(filename).read_text(encoding="utf-8"), filename)


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    return _yaml_mapping(Path(path).read_text(encoding="utf-8"), path)


class AppSettings(BaseModel):
    name: str = "RoadGuard"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class HazardMatchSettings(BaseModel):
    threshold_m: float = Field(500.0, gt=0)
    projection: Literal["vertex", "segment"] = "vertex"
    use_spatial_index: bool = True
    spatial_cell_m: float = Field(1000.0, gt=0)


class RouteProviderSettings(BaseModel):
    base_url: str = "https://maps.googleapis.com/maps/api/directions/json"
    api_key: str | None = None
    alternatives: bool = True
    departure_time: str | None = "now"


class RoutingSettings(BaseModel):
    hazards: HazardMatchSettings = Field(default_factory=HazardMatchSettings)
    provider: RouteProviderSettings = Field(default_factory=RouteProviderSettings)


class NavigationSettings(BaseModel):
    base_url: str = "https://www.google.com/maps/dir/"
    extra_params: dict[str, str] = Field(default_factory=lambda: {"api": "1"})
    max_waypoints: int = Field(3, ge=0, le=3)
    travel_mode: str = "driving"
    coordinate_decimals: int = Field(6, ge=1, le=10)


class HazardFeedSettings(BaseModel):
    base_url: str = "http://localhost:3000"
    path: str = "/api/reports"
    radius_km: float = Field(10.0, gt=0)
    limit: int = Field(100, ge=1)
    statuses: list[int] = Field(default_factory=lambda: [0, 1])


class RenderSettings(BaseModel):
    palette: list[str] = Field(
        default_factory=lambda: ["#65B3AE", "#8B5CF6", "#F59E0B", "#EC4899", "#10B981"]
    )
    selected_opacity: float = Field(1.0, ge=0, le=1)
    unselected_opacity: float = Field(0.5, ge=0, le=1)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    routing: RoutingSettings = Field(default_factory=RoutingSettings)
    navigation: NavigationSettings = Field(default_factory=NavigationSettings)
    hazard_feed: HazardFeedSettings = Field(default_factory=HazardFeedSettings)
    render: RenderSettings = Field(default_factory=RenderSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("ROADGUARD_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    api_key = os.getenv("GOOGLE_MAPS_API_KEY")
    if api_key:
        data.setdefault("routing", {}).setdefault("provider", {})["api_key"] = api_key

    feed_url = os.getenv("ROADGUARD_HAZARD_FEED_URL")
    if feed_url:
        data.setdefault("hazard_feed", {})["base_url"] = feed_url

    nav_url = os.getenv("ROADGUARD_NAV_BASE_URL")
    if nav_url:
        data.setdefault("navigation", {})["base_url"] = nav_url

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("ROADGUARD_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
