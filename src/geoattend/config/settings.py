# src/geoattend/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/geoattend/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `GEOATTEND_API_URL`, `GEOATTEND_API_TOKEN`)
- an external YAML file via `GEOATTEND_CONFIG_PATH`

Design rule:
- Backend URLs, radius policy and map tokens live here and are passed explicitly to
  the services that need them; nothing reads module-level constants.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from geoattend.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `geoattend.config`."""
    text = resources.files("geoattend.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "GeoAttend"
    timezone: str = "Asia/Riyadh"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class CacheSettings(BaseModel):
    enabled: bool = True
    dir: str = ".cache/geoattend"
    default_ttl_seconds: int = 60 * 60


class RetrySettings(BaseModel):
    max_attempts: int = Field(2, ge=0)
    base_delay_seconds: float = Field(0.5, ge=0)
    max_delay_seconds: float = Field(8.0, ge=0)


class LocationEndpoints(BaseModel):
    settings: str = "/hr/location/settings"
    active_employees: str = "/hr/location/active-employees"
    analytics: str = "/hr/location/analytics"
    history: str = "/hr/location/history"
    update: str = "/hr/location/update"


class BackendSettings(BaseModel):
    base_url: str
    token: str | None = None
    email: str | None = None
    password: str | None = None
    request_spacing_seconds: float = Field(0.0, ge=0)
    reference_cache_ttl_seconds: int = 10 * 60
    retry: RetrySettings = Field(default_factory=RetrySettings)
    location: LocationEndpoints = Field(default_factory=LocationEndpoints)


class GeofenceSettings(BaseModel):
    # None means "no policy": branches without a configured radius are undetermined.
    default_radius_m: float | None = Field(default=None, ge=0)
    meters_label: str = "meters"
    kilometers_label: str = "km"
    kilometers_decimals: int = Field(1, ge=0, le=3)


class TrackingDefaults(BaseModel):
    location_update_frequency: int = 300
    min_location_accuracy: int = 10
    location_tracking_enabled: bool = True
    work_hours_start: str = "09:00"
    work_hours_end: str = "17:00"
    location_retention_days: int = 90


class MapCenter(BaseModel):
    lat: float = Field(25.2048, ge=-90, le=90)
    lon: float = Field(55.2708, ge=-180, le=180)


class MapSettings(BaseModel):
    access_token: str | None = None
    style: str = "mapbox://styles/mapbox/streets-v12"
    center: MapCenter = Field(default_factory=MapCenter)
    zoom: int = 12


class SimulatedLocation(BaseModel):
    name: str
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class SimulatorSettings(BaseModel):
    device_info: str = "Web Simulator"
    fallback_location_name: str = "Unspecified location"
    locations: list[SimulatedLocation] = Field(default_factory=list)


class PaginationSettings(BaseModel):
    per_page: int = Field(10, ge=1, le=200)
    window_radius: int = Field(2, ge=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    backend: BackendSettings
    geofence: GeofenceSettings = Field(default_factory=GeofenceSettings)
    tracking: TrackingDefaults = Field(default_factory=TrackingDefaults)
    map: MapSettings = Field(default_factory=MapSettings)
    simulator: SimulatorSettings = Field(default_factory=SimulatorSettings)
    pagination: PaginationSettings = Field(default_factory=PaginationSettings)


_ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "GEOATTEND_LOG_LEVEL": ("app", "log_level"),
    "GEOATTEND_CACHE_DIR": ("cache", "dir"),
    "GEOATTEND_API_URL": ("backend", "base_url"),
    "GEOATTEND_API_TOKEN": ("backend", "token"),
    "GEOATTEND_API_EMAIL": ("backend", "email"),
    "GEOATTEND_API_PASSWORD": ("backend", "password"),
    "GEOATTEND_MAP_TOKEN": ("map", "access_token"),
}


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay the whitelisted environment variables onto the raw settings payload."""
    load_dotenv_if_present()
    data = dict(data)
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            data[section] = {**(data.get(section) or {}), key: value}
    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("GEOATTEND_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
