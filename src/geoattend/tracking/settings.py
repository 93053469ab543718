"""
Location-tracking settings.

The backend stores tracking settings as a list of `{key, value, type, category,
description}` rows. This module folds that list over configured defaults and
validates edits before they are sent back.
"""

from __future__ import annotations

import re
from typing import Any, Iterable

from geoattend.config.settings import TrackingDefaults

# Same shape as the configured defaults; the backend rows map 1:1 onto its fields.
TrackingSettings = TrackingDefaults

_HHMM = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")

_TYPES = {
    "location_update_frequency": "number",
    "min_location_accuracy": "number",
    "location_tracking_enabled": "boolean",
    "work_hours_start": "string",
    "work_hours_end": "string",
    "location_retention_days": "number",
}
_CATEGORIES = {
    "location_update_frequency": "tracking",
    "min_location_accuracy": "tracking",
    "location_tracking_enabled": "tracking",
    "work_hours_start": "work_hours",
    "work_hours_end": "work_hours",
    "location_retention_days": "retention",
}
_DESCRIPTIONS = {
    "location_update_frequency": "Location update frequency in seconds",
    "min_location_accuracy": "Minimum location accuracy in meters",
    "location_tracking_enabled": "Enable location tracking",
    "work_hours_start": "Work hours start time",
    "work_hours_end": "Work hours end time",
    "location_retention_days": "Location data retention in days",
}


def from_backend(entries: Iterable[dict[str, Any]], defaults: TrackingDefaults) -> TrackingSettings:
    """Overlay backend `{key, value}` rows on `defaults`; unknown keys are ignored."""
    data = defaults.model_dump()
    for entry in entries:
        key = entry.get("key")
        if key in data and entry.get("value") is not None:
            data[key] = entry["value"]
    return TrackingSettings.model_validate(data)


def to_backend(settings: TrackingSettings) -> dict[str, Any]:
    return {
        "settings": [
            {
                "key": key,
                "value": value,
                "type": _TYPES.get(key, "string"),
                "category": _CATEGORIES.get(key, "general"),
                "description": _DESCRIPTIONS.get(key, "Setting configuration"),
            }
            for key, value in settings.model_dump().items()
        ]
    }


def validate_tracking_settings(settings: TrackingSettings) -> list[str]:
    """Return human-readable validation errors (empty when the settings are valid)."""
    errors: list[str] = []
    if settings.location_update_frequency < 60:
        errors.append("Update frequency cannot be less than 60 seconds")
    if not 1 <= settings.min_location_accuracy <= 1000:
        errors.append("Location accuracy must be between 1 and 1000 meters")
    if not _HHMM.match(settings.work_hours_start):
        errors.append("Work hours start must be in HH:MM format (24-hour)")
    if not _HHMM.match(settings.work_hours_end):
        errors.append("Work hours end must be in HH:MM format (24-hour)")
    if not 1 <= settings.location_retention_days <= 365:
        errors.append("Retention days must be between 1 and 365 days")
    return errors
