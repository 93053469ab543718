"""
Domain models (Pydantic).

These types are the contract between the HR backend client, the attendance services
and the API/CLI surfaces. The backend is loosely typed (ids and coordinates may
arrive as strings, nested objects may be null), so the models normalize at the
boundary and downstream code can rely on plain numbers.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from geoattend.core.geo import GeoPoint, InvalidCoordinatesError, coerce_coordinate

logger = logging.getLogger(__name__)

AttendanceState = Literal["present", "absent", "late", "leave", "half_day"]


def _optional_coordinate(value: Any, *, name: str, limit: float) -> float | None:
    if value is None or value == "":
        return None
    try:
        return coerce_coordinate(value, name=name, limit=limit)
    except InvalidCoordinatesError as exc:
        logger.warning("Discarding invalid %s from backend: %s", name, exc)
        return None


class _BackendModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class NamedRef(_BackendModel):
    id: int | None = None
    name: str | None = None
    title: str | None = None


class BranchRef(_BackendModel):
    id: int | None = None
    name: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @field_validator("latitude", mode="before")
    @classmethod
    def _lat(cls, v: Any) -> float | None:
        return _optional_coordinate(v, name="latitude", limit=90.0)

    @field_validator("longitude", mode="before")
    @classmethod
    def _lon(cls, v: Any) -> float | None:
        return _optional_coordinate(v, name="longitude", limit=180.0)


class Employee(_BackendModel):
    id: int
    name: str
    email: str | None = None
    phone: str | None = None
    department: NamedRef | None = None
    position: NamedRef | None = None
    branch: BranchRef | None = None


class Department(_BackendModel):
    id: int
    name: str
    description: str | None = None
    employees_count: int | None = None


class Position(_BackendModel):
    id: int
    title: str
    description: str | None = None
    department_id: int | None = None


class BranchInfo(_BackendModel):
    """An employee's assigned branch as returned by `/hr/attendance/branch-info`."""

    branch_id: int | None = None
    branch_name: str | None = None
    branch_address: str | None = None
    city_name: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    check_in_radius_meters: float | None = None
    has_coordinates: bool | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_coordinates(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("coordinates"), dict):
            coords = data["coordinates"]
            data = {**data}
            for name in ("latitude", "longitude"):
                if data.get(name) is None:
                    data[name] = coords.get(name)
        return data

    @field_validator("latitude", mode="before")
    @classmethod
    def _lat(cls, v: Any) -> float | None:
        return _optional_coordinate(v, name="latitude", limit=90.0)

    @field_validator("longitude", mode="before")
    @classmethod
    def _lon(cls, v: Any) -> float | None:
        return _optional_coordinate(v, name="longitude", limit=180.0)

    @field_validator("check_in_radius_meters", mode="before")
    @classmethod
    def _radius(cls, v: Any) -> float | None:
        if v is None or v == "":
            return None
        try:
            radius = float(v)
        except (TypeError, ValueError):
            logger.warning("Discarding non-numeric check-in radius from backend: %r", v)
            return None
        return radius if radius >= 0 else None

    def location(self) -> GeoPoint | None:
        """Branch coordinates, or None when the branch cannot be located."""
        if self.has_coordinates is False:
            return None
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(lat=self.latitude, lon=self.longitude)


class AttendanceStatus(_BackendModel):
    """Today's check-in state for one employee."""

    status: str
    date: str | None = None
    check_in_time: str | None = None
    check_out_time: str | None = None
    total_hours: float | None = None
    can_check_in: bool = False
    can_check_out: bool = False

    @model_validator(mode="before")
    @classmethod
    def _unwrap_envelope(cls, data: Any) -> Any:
        # The envelope's own `status` is "success"; the attendance state lives in
        # `attendance_status` or in the nested `data` object.
        if not isinstance(data, dict):
            return data
        if isinstance(data.get("data"), dict):
            data = {**data, **data["data"]}
        if data.get("attendance_status"):
            data = {**data, "status": data["attendance_status"]}
        return data

    @property
    def is_checked_in(self) -> bool:
        return self.status == "checked_in"


class AttendanceRecord(_BackendModel):
    id: int
    employee_id: int
    date: str
    check_in_time: str | None = None
    check_out_time: str | None = None
    total_hours: float | None = None
    status: str | None = None
    notes: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    is_checked_in: bool = False
    is_checked_out: bool = False
    employee: Employee | None = None

    @field_validator("latitude", mode="before")
    @classmethod
    def _lat(cls, v: Any) -> float | None:
        return _optional_coordinate(v, name="latitude", limit=90.0)

    @field_validator("longitude", mode="before")
    @classmethod
    def _lon(cls, v: Any) -> float | None:
        return _optional_coordinate(v, name="longitude", limit=180.0)

    @property
    def work_state(self) -> Literal["working", "completed", "not_started"]:
        if self.is_checked_in and not self.is_checked_out:
            return "working"
        if self.is_checked_out:
            return "completed"
        return "not_started"


class AttendanceStatistics(_BackendModel):
    total_days: int = 0
    total_employees: int = 0
    total_hours: float = 0
    average_hours: float = 0


class AttendanceFilters(BaseModel):
    """Query filters for the attendance table."""

    search: str | None = None
    employee_id: int | None = None
    date_from: str | None = None
    date_to: str | None = None
    status: AttendanceState | None = None
    page: int = Field(1, ge=1)
    per_page: int = Field(10, ge=1, le=200)

    def to_params(self) -> dict[str, Any]:
        """Backend query params with empty filters dropped."""
        return {k: v for k, v in self.model_dump().items() if v not in (None, "")}


class CheckoutInfo(_BackendModel):
    branch_name: str | None = None
    is_at_assigned_branch: bool | None = None
    distance_from_branch: str | float | None = None


class LeaveRequest(_BackendModel):
    id: int
    employee_id: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    reason: str | None = None
    status: str | None = None
