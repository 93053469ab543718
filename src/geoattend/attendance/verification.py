"""
Geofenced attendance verification.

Wraps the pure distance calculator with the caller-side policy:
- a branch without usable coordinates cannot be verified ("undetermined"),
- a branch without a radius uses the configured default, and is "undetermined"
  when no default exists (the distance is still reported),
- otherwise the location is "within" or "outside" the inclusive radius.

The result is advisory. The HR backend stays the authority on whether an
attendance record is accepted.
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel

from geoattend.config.settings import GeofenceSettings
from geoattend.core.geo import GeoPoint, classify_within_radius, compute_distance_meters, format_distance
from geoattend.domain.models import BranchInfo

logger = logging.getLogger(__name__)

VerificationStatus = Literal["within", "outside", "undetermined"]
UndeterminedReason = Literal["branch_unavailable", "branch_coordinates_missing", "radius_missing"]

__all__ = ["BranchInfo", "LocationVerification", "undetermined", "verify_location"]


class LocationVerification(BaseModel):
    status: VerificationStatus
    distance_m: float | None = None
    radius_m: float | None = None
    within_radius: bool | None = None
    distance_label: str | None = None
    branch_name: str | None = None
    reason: UndeterminedReason | None = None


def undetermined(reason: UndeterminedReason, *, branch_name: str | None = None) -> LocationVerification:
    return LocationVerification(status="undetermined", reason=reason, branch_name=branch_name)


def verify_location(
    point: GeoPoint,
    branch: BranchInfo | None,
    *,
    geofence: GeofenceSettings | None = None,
) -> LocationVerification:
    """Classify `point` against the branch geofence."""
    geofence = geofence or GeofenceSettings()
    if branch is None:
        return undetermined("branch_unavailable")

    center = branch.location()
    if center is None:
        return undetermined("branch_coordinates_missing", branch_name=branch.branch_name)

    distance_m = compute_distance_meters(point, center)
    label = format_distance(
        distance_m,
        meters_label=geofence.meters_label,
        kilometers_label=geofence.kilometers_label,
        decimals=geofence.kilometers_decimals,
    )
    radius_m = branch.check_in_radius_meters
    if radius_m is None:
        radius_m = geofence.default_radius_m

    if radius_m is None:
        return LocationVerification(
            status="undetermined",
            distance_m=distance_m,
            distance_label=label,
            branch_name=branch.branch_name,
            reason="radius_missing",
        )

    within = classify_within_radius(distance_m, radius_m)
    logger.debug(
        "Location %.6f,%.6f is %.1fm from branch %r (radius %.1fm, within=%s)",
        point.lat,
        point.lon,
        distance_m,
        branch.branch_name,
        radius_m,
        within,
    )
    return LocationVerification(
        status="within" if within else "outside",
        distance_m=distance_m,
        radius_m=radius_m,
        within_radius=within,
        distance_label=label,
        branch_name=branch.branch_name,
    )
