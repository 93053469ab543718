"""
Location-history heatmap data.

Builds the GeoJSON the dashboard map layer consumes. Points whose coordinates are
not numeric, or are exactly 0 (the tracker's "no fix" value), are dropped.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)


class EmployeeTag(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    department: str | None = None


class LocationPoint(BaseModel):
    """One recorded device location (coordinates kept raw until `valid_points`)."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    employee_id: int | None = None
    latitude: Any = None
    longitude: Any = None
    accuracy: float | None = None
    recorded_at: str | None = None
    time_ago: str | None = None
    employee: EmployeeTag | None = None

    @field_validator("accuracy", mode="before")
    @classmethod
    def _accuracy(cls, v: Any) -> float | None:
        if v is None or v == "":
            return None
        try:
            value = float(v)
        except (TypeError, ValueError):
            logger.warning("Discarding non-numeric location accuracy: %r", v)
            return None
        return value if math.isfinite(value) and value >= 0 else None

    def coordinates(self) -> tuple[float, float] | None:
        """(lat, lon) as floats, or None when the point has no usable fix."""
        try:
            lat = float(self.latitude)
            lon = float(self.longitude)
        except (TypeError, ValueError):
            return None
        if not (math.isfinite(lat) and math.isfinite(lon)):
            return None
        if lat == 0 or lon == 0:
            return None
        return lat, lon


def valid_points(points: Iterable[LocationPoint]) -> list[LocationPoint]:
    return [p for p in points if p.coordinates() is not None]


def heatmap_features(points: Iterable[LocationPoint]) -> dict[str, Any]:
    """GeoJSON FeatureCollection with one weighted Point per valid location."""
    features = []
    for p in valid_points(points):
        lat, lon = p.coordinates()  # type: ignore[misc]
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [lon, lat]},
                "properties": {
                    "intensity": 1,
                    "timestamp": p.recorded_at,
                    "employee_name": (p.employee.name if p.employee else None) or "Unknown",
                    "accuracy": p.accuracy,
                },
            }
        )
    return {"type": "FeatureCollection", "features": features}


def bounds(points: Iterable[LocationPoint]) -> dict[str, float] | None:
    """South/west/north/east extent of the valid points, for fitting the map view."""
    coords = [c for c in (p.coordinates() for p in points) if c is not None]
    if not coords:
        return None
    lats = [c[0] for c in coords]
    lons = [c[1] for c in coords]
    return {"south": min(lats), "west": min(lons), "north": max(lats), "east": max(lons)}


def accuracy_badge(accuracy: float | None, min_accuracy: float) -> Literal["good", "poor", "unknown"]:
    if accuracy is None:
        return "unknown"
    return "good" if accuracy <= min_accuracy else "poor"


def history_rows(points: Iterable[LocationPoint], min_accuracy: float) -> list[dict[str, Any]]:
    """Location-history table rows, each tagged with its accuracy badge."""
    return [
        {**p.model_dump(mode="json"), "accuracy_badge": accuracy_badge(p.accuracy, min_accuracy)}
        for p in points
    ]
