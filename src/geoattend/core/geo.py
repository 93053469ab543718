"""
Geospatial helpers.

This is the one shared distance implementation used by attendance verification,
the location heatmap, the API and the CLI.

The calculator functions are pure and never validate their inputs: callers are
expected to coerce/validate coordinates at the boundary (see `coerce_geo_point`).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

EARTH_RADIUS_M = 6_371_000.0


class InvalidCoordinatesError(ValueError):
    """Raised when a coordinate cannot be turned into a usable latitude/longitude."""


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


@dataclass(frozen=True)
class DistanceResult:
    distance_m: float
    within_radius: bool


def compute_distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle (Haversine) distance in meters between two points."""
    lat1 = math.radians(a.lat)
    lon1 = math.radians(a.lon)
    lat2 = math.radians(b.lat)
    lon2 = math.radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def classify_within_radius(distance_m: float, radius_m: float) -> bool:
    """Return True when `distance_m` is inside the radius (boundary inclusive)."""
    return distance_m <= radius_m


def measure(a: GeoPoint, b: GeoPoint, radius_m: float) -> DistanceResult:
    """Distance between `a` and `b` plus the radius classification."""
    d = compute_distance_meters(a, b)
    return DistanceResult(distance_m=d, within_radius=classify_within_radius(d, radius_m))


def format_distance(
    distance_m: float,
    *,
    meters_label: str = "meters",
    kilometers_label: str = "km",
    decimals: int = 1,
) -> str:
    """Render a distance for display.

    Below 1000 m the value is rounded half-up to whole meters; from 1000 m on it is
    shown in kilometers with `decimals` places (1 by default, e.g. "1.0 km").
    """
    if distance_m < 1000:
        return f"{int(math.floor(distance_m + 0.5))} {meters_label}"
    return f"{distance_m / 1000:.{decimals}f} {kilometers_label}"


def coerce_coordinate(value: Any, *, name: str, limit: float) -> float:
    """Convert a loosely-typed coordinate (number or numeric string) to float.

    Raises:
        InvalidCoordinatesError: missing, non-numeric, non-finite or outside [-limit, limit].
    """
    if value is None or isinstance(value, bool):
        raise InvalidCoordinatesError(f"{name} is required")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise InvalidCoordinatesError(f"{name} is required")
    try:
        out = float(value)
    except (TypeError, ValueError):
        raise InvalidCoordinatesError(f"{name} must be numeric, got {value!r}") from None
    if not math.isfinite(out):
        raise InvalidCoordinatesError(f"{name} must be finite, got {value!r}")
    if not -limit <= out <= limit:
        raise InvalidCoordinatesError(f"{name} out of range [-{limit:g}, {limit:g}]: {out}")
    return out


def coerce_geo_point(lat: Any, lon: Any) -> GeoPoint:
    """Build a validated `GeoPoint` from raw latitude/longitude values."""
    return GeoPoint(
        lat=coerce_coordinate(lat, name="latitude", limit=90.0),
        lon=coerce_coordinate(lon, name="longitude", limit=180.0),
    )
