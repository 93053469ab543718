"""
Check-in / check-out flow (the mobile attendance simulator).

For each submission we:
1. coerce the reported location to strict numeric coordinates,
2. look up the employee's assigned branch,
3. compute the advisory geofence verification,
4. post the attendance action to the HR backend with the computed distance.

A failing branch lookup does not block the submission: the backend decides.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Literal

import httpx
from pydantic import BaseModel

from geoattend.attendance.verification import LocationVerification, undetermined, verify_location
from geoattend.backend.hr_client import HrApiError, HrClient
from geoattend.config.settings import Settings, SimulatedLocation
from geoattend.core.geo import GeoPoint, coerce_geo_point
from geoattend.domain.models import AttendanceStatus, BranchInfo, CheckoutInfo

logger = logging.getLogger(__name__)

Action = Literal["check_in", "check_out"]


class CheckResult(BaseModel):
    action: Action
    employee_id: int
    verification: LocationVerification
    response: dict[str, Any]
    checkout_info: CheckoutInfo | None = None


def _require_employee_id(employee_id: Any) -> int:
    if employee_id is None or employee_id == "":
        raise ValueError("employee_id is required")
    try:
        return int(employee_id)
    except (TypeError, ValueError):
        raise ValueError(f"employee_id must be an integer, got {employee_id!r}") from None


class CheckInService:
    """Orchestrates location verification and attendance submission."""

    def __init__(self, client: HrClient, settings: Settings):
        self._client = client
        self._settings = settings

    def _branch(self, employee_id: int) -> BranchInfo | None:
        return self._client.branch_info(employee_id)

    def branch_distance(self, employee_id: Any, lat: Any, lon: Any) -> LocationVerification:
        """Verify a location against the employee's branch without submitting anything."""
        emp_id = _require_employee_id(employee_id)
        point = coerce_geo_point(lat, lon)
        return verify_location(point, self._branch(emp_id), geofence=self._settings.geofence)

    def _verify_for_submission(self, employee_id: int, point: GeoPoint) -> LocationVerification:
        try:
            branch = self._branch(employee_id)
        except (httpx.HTTPError, HrApiError) as exc:
            logger.warning("Branch lookup failed for employee %s: %s", employee_id, exc)
            return undetermined("branch_unavailable")
        return verify_location(point, branch, geofence=self._settings.geofence)

    def _submit(
        self,
        action: Action,
        employee_id: Any,
        lat: Any,
        lon: Any,
        *,
        location_name: str | None,
        notes: str,
    ) -> CheckResult:
        emp_id = _require_employee_id(employee_id)
        point = coerce_geo_point(lat, lon)
        verification = self._verify_for_submission(emp_id, point)

        distance = verification.distance_m
        payload = {
            "employee_id": emp_id,
            "latitude": point.lat,
            "longitude": point.lon,
            "location_name": location_name or self._settings.simulator.fallback_location_name,
            "device_info": self._settings.simulator.device_info,
            "notes": notes,
            "distance_from_branch": round(distance, 1) if distance is not None else None,
            "within_radius": verification.within_radius,
        }
        submit = self._client.check_in if action == "check_in" else self._client.check_out
        response = submit(payload)
        response = response if isinstance(response, dict) else {}

        checkout_info = None
        if action == "check_out" and isinstance(response.get("checkout_info"), dict):
            checkout_info = CheckoutInfo.model_validate(response["checkout_info"])

        logger.info(
            "Submitted %s for employee %s (geofence=%s)", action, emp_id, verification.status
        )
        return CheckResult(
            action=action,
            employee_id=emp_id,
            verification=verification,
            response=response,
            checkout_info=checkout_info,
        )

    def check_in(
        self, employee_id: Any, lat: Any, lon: Any, *, location_name: str | None = None, notes: str = ""
    ) -> CheckResult:
        return self._submit("check_in", employee_id, lat, lon, location_name=location_name, notes=notes)

    def check_out(
        self, employee_id: Any, lat: Any, lon: Any, *, location_name: str | None = None, notes: str = ""
    ) -> CheckResult:
        return self._submit("check_out", employee_id, lat, lon, location_name=location_name, notes=notes)

    def status(self, employee_id: Any) -> AttendanceStatus:
        return self._client.attendance_status(_require_employee_id(employee_id))

    def simulated_location(self, rng: random.Random | None = None) -> SimulatedLocation:
        """Pick one of the configured sample locations."""
        locations = self._settings.simulator.locations
        if not locations:
            raise ValueError("No simulator locations are configured")
        return (rng or random).choice(locations)
