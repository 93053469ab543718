"""
API routes.

Endpoints:
- POST `/api/geofence/distance`: pure distance + radius check between two points.
- GET  `/api/employees/{id}/branch-distance`: verify a location against the assigned branch.
- POST `/api/attendance/check-in` / `/api/attendance/check-out`: verified submissions.
- GET  `/api/attendance/status`, `/api/attendance`: today's state and the records table.
- GET  `/api/location/heatmap`, GET/PUT `/api/location/settings`: tracking screens.
- GET  `/api/departments`, `/api/positions`, `/api/branches`, `/api/cities`: reference lists.
- GET  `/api/simulator/locations`, `/api/settings`: UI defaults (secrets redacted).
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Any, Iterator

import httpx
from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field, ValidationError

from geoattend.attendance.checkin import CheckInService, CheckResult
from geoattend.attendance.verification import LocationVerification
from geoattend.backend.hr_client import HrApiError, HrClient, build_client
from geoattend.config.settings import get_settings
from geoattend.core.geo import GeoPoint, classify_within_radius, compute_distance_meters, format_distance
from geoattend.core.pagination import PageInfo, page_window, paginate
from geoattend.core.time import parse_date
from geoattend.domain.models import AttendanceFilters, AttendanceState, AttendanceStatus
from geoattend.tracking.heatmap import LocationPoint, bounds, heatmap_features, history_rows
from geoattend.tracking.settings import (
    TrackingSettings,
    from_backend,
    to_backend,
    validate_tracking_settings,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class GeoPointSchema(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class DistanceRequest(BaseModel):
    origin: GeoPointSchema
    target: GeoPointSchema
    radius_m: float | None = Field(default=None, ge=0)


class DistanceResponse(BaseModel):
    distance_m: float
    within_radius: bool | None
    distance_label: str


class CheckRequest(BaseModel):
    employee_id: int
    # Raw values; the service coerces them and invalid ones map to a 400.
    latitude: float | str
    longitude: float | str
    location_name: str | None = None
    notes: str = ""


@lru_cache
def _client() -> HrClient:
    return build_client(get_settings())


def _service() -> CheckInService:
    return CheckInService(_client(), get_settings())


@contextmanager
def _backend_errors() -> Iterator[None]:
    """Translate service/backend failures into JSON HTTP errors."""
    try:
        yield
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": str(e)}) from e
    except HrApiError as e:
        raise HTTPException(status_code=502, detail={"code": "BACKEND_ERROR", "message": str(e)}) from e
    except httpx.HTTPError as e:
        logger.warning("HR backend unavailable: %s", e)
        raise HTTPException(
            status_code=502, detail={"code": "BACKEND_UNAVAILABLE", "message": str(e)}
        ) from e


@router.post("/api/geofence/distance", response_model=DistanceResponse)
def post_distance(req: DistanceRequest) -> DistanceResponse:
    """Distance between two points; `within_radius` is null when no radius is given."""
    geofence = get_settings().geofence
    d = compute_distance_meters(
        GeoPoint(lat=req.origin.lat, lon=req.origin.lon), GeoPoint(lat=req.target.lat, lon=req.target.lon)
    )
    return DistanceResponse(
        distance_m=d,
        within_radius=classify_within_radius(d, req.radius_m) if req.radius_m is not None else None,
        distance_label=format_distance(
            d,
            meters_label=geofence.meters_label,
            kilometers_label=geofence.kilometers_label,
            decimals=geofence.kilometers_decimals,
        ),
    )


@router.get("/api/employees/{employee_id}/branch-distance", response_model=LocationVerification)
def get_branch_distance(employee_id: int, lat: str = Query(...), lon: str = Query(...)) -> LocationVerification:
    with _backend_errors():
        return _service().branch_distance(employee_id, lat, lon)


@router.post("/api/attendance/check-in", response_model=CheckResult)
def post_check_in(req: CheckRequest) -> CheckResult:
    with _backend_errors():
        return _service().check_in(
            req.employee_id, req.latitude, req.longitude, location_name=req.location_name, notes=req.notes
        )


@router.post("/api/attendance/check-out", response_model=CheckResult)
def post_check_out(req: CheckRequest) -> CheckResult:
    with _backend_errors():
        return _service().check_out(
            req.employee_id, req.latitude, req.longitude, location_name=req.location_name, notes=req.notes
        )


@router.get("/api/attendance/status", response_model=AttendanceStatus)
def get_attendance_status(employee_id: int) -> AttendanceStatus:
    with _backend_errors():
        return _service().status(employee_id)


@router.get("/api/attendance")
def get_attendances(
    search: str | None = None,
    employee_id: int | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    status: AttendanceState | None = None,
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, ge=1, le=200),
) -> dict[str, Any]:
    """Attendance table rows plus pagination and the page-number strip."""
    settings = get_settings()
    filters = AttendanceFilters(
        search=search,
        employee_id=employee_id,
        date_from=date_from,
        date_to=date_to,
        status=status,
        page=page,
        per_page=per_page or settings.pagination.per_page,
    )
    with _backend_errors():
        records, payload = _client().list_attendances(filters)
    info = PageInfo.from_payload(payload if isinstance(payload, dict) else None)
    return {
        "attendances": [{**r.model_dump(mode="json"), "work_state": r.work_state} for r in records],
        "pagination": info.model_dump(),
        "pages": page_window(info.current_page, info.last_page, radius=settings.pagination.window_radius),
    }


def _location_points(raw: Any) -> list[LocationPoint]:
    points = []
    for row in raw if isinstance(raw, list) else []:
        if not isinstance(row, dict):
            continue
        try:
            points.append(LocationPoint.model_validate(row))
        except ValidationError as e:
            logger.warning("Skipping malformed location row %s: %s", row.get("id"), e)
    return points


@router.get("/api/location/heatmap")
def get_location_heatmap(
    date: str | None = None,
    employee_id: int | None = None,
    page: int = Query(1, ge=1),
) -> dict[str, Any]:
    """Heatmap GeoJSON for one day, for one employee or everyone.

    With `employee_id`, the response also carries that employee's history table,
    paginated client-side and tagged with accuracy badges.
    """
    settings = get_settings()
    with _backend_errors():
        day = parse_date(date, settings.app.timezone).isoformat()
        client = _client()
        if employee_id is None:
            raw = client.location_analytics(date=day)
        else:
            raw = client.location_history(employee_id, date=day)
    points = _location_points(raw)
    out: dict[str, Any] = {
        "date": day,
        "heatmap": heatmap_features(points),
        "bounds": bounds(points),
        "count": len(points),
    }
    if employee_id is not None:
        history = paginate(points, page, settings.pagination.per_page)
        out["history"] = {
            "items": history_rows(history.items, settings.tracking.min_location_accuracy),
            "pagination": history.info.model_dump(),
            "pages": page_window(
                history.info.current_page, history.info.last_page, radius=settings.pagination.window_radius
            ),
        }
    return out


@router.get("/api/location/settings", response_model=TrackingSettings)
def get_location_settings() -> TrackingSettings:
    settings = get_settings()
    with _backend_errors():
        entries = _client().location_settings()
    return from_backend(entries, settings.tracking)


@router.put("/api/location/settings", response_model=TrackingSettings)
def put_location_settings(update: TrackingSettings) -> TrackingSettings:
    errors = validate_tracking_settings(update)
    if errors:
        raise HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "errors": errors})
    with _backend_errors():
        _client().update_location_settings(to_backend(update))
    return update


@router.get("/api/departments")
def get_departments() -> dict[str, Any]:
    with _backend_errors():
        return {"departments": [d.model_dump() for d in _client().list_departments()]}


@router.get("/api/positions")
def get_positions() -> dict[str, Any]:
    with _backend_errors():
        return {"positions": [p.model_dump() for p in _client().list_positions()]}


@router.get("/api/branches")
def get_branches() -> dict[str, Any]:
    with _backend_errors():
        return {"branches": _client().list_branches()}


@router.get("/api/cities")
def get_cities() -> dict[str, Any]:
    with _backend_errors():
        return {"cities": _client().list_cities()}


@router.get("/api/simulator/locations")
def get_simulator_locations() -> dict[str, Any]:
    return {"locations": [loc.model_dump() for loc in get_settings().simulator.locations]}


@router.get("/api/settings")
def get_public_settings() -> dict[str, Any]:
    """Return safe-to-expose settings for UI defaults (credentials removed)."""
    data = get_settings().model_dump(mode="json")
    backend = data.get("backend", {})
    for secret in ("token", "email", "password"):
        backend.pop(secret, None)
    data.get("map", {}).pop("access_token", None)
    return {
        "app": {"name": data["app"]["name"], "timezone": data["app"]["timezone"]},
        "backend": backend,
        "geofence": data["geofence"],
        "tracking": data["tracking"],
        "map": data["map"],
        "pagination": data["pagination"],
        "map_enabled": bool(get_settings().map.access_token),
    }
