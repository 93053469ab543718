"""
HR backend client.

This module is responsible only for talking to the remote HR REST backend:
- bearer-token authentication (static token or email/password login),
- retry/backoff for 429/5xx/transport errors and one re-login on 401,
- unwrapping the backend's `{"status": "success", ...}` envelopes,
- caching slowly-changing reference lists (departments, positions, cities, branches).

It does not decide whether a location is valid; see `geoattend.attendance`.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from geoattend.config.settings import Settings
from geoattend.core.cache import FileCache
from geoattend.core.env import resolve_project_path
from geoattend.core.http import request_json
from geoattend.domain.models import (
    AttendanceFilters,
    AttendanceRecord,
    AttendanceStatistics,
    AttendanceStatus,
    BranchInfo,
    Department,
    Employee,
    LeaveRequest,
    Position,
)

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}
# Other methods are resent only on 429 or when the request never reached the backend.
_IDEMPOTENT_METHODS = {"GET", "HEAD", "PUT", "DELETE"}
_UNSENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


class HrApiError(RuntimeError):
    """The backend answered with a non-success envelope."""

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload


def _extract_list(payload: Any, key: str) -> list[Any]:
    """Find a list under `key`, `data.key` or `data` (the backend is not consistent)."""
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    if isinstance(payload.get(key), list):
        return payload[key]
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    if isinstance(data, list):
        return data
    return []


def _extract_obj(payload: Any, key: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        return {}
    if key in payload:
        return payload[key] if isinstance(payload[key], dict) else {}
    data = payload.get("data")
    if not isinstance(data, dict):
        return {}
    if key in data:
        return data[key] if isinstance(data[key], dict) else {}
    return data


class HrClient:
    """HR backend API client with token management, retry and reference caching."""

    def __init__(self, settings: Settings, cache: FileCache):
        self._settings = settings
        self._cache = cache
        self._token: str | None = settings.backend.token
        self._last_request_monotonic: float | None = None

    @property
    def token(self) -> str | None:
        return self._token

    @staticmethod
    def _parse_retry_after_seconds(value: str | None) -> float | None:
        if not value:
            return None
        try:
            seconds = float(value)
        except ValueError:
            return None
        return seconds if seconds >= 0 else None

    def _url(self, path: str) -> str:
        return self._settings.backend.base_url.rstrip("/") + "/" + path.lstrip("/")

    def _throttle_requests(self) -> None:
        spacing_seconds = float(self._settings.backend.request_spacing_seconds)
        if spacing_seconds <= 0:
            return

        now = time.monotonic()
        if self._last_request_monotonic is not None:
            remaining = spacing_seconds - (now - self._last_request_monotonic)
            if remaining > 0:
                time.sleep(remaining)
                now = time.monotonic()
        self._last_request_monotonic = now

    def _can_login(self) -> bool:
        return bool(self._settings.backend.email and self._settings.backend.password)

    def _send(self, method: str, path: str, *, params: dict[str, Any] | None, json: Any) -> Any:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else None
        self._throttle_requests()
        return request_json(
            method,
            self._url(path),
            params=params,
            json=json,
            headers=headers,
            timeout_seconds=self._settings.app.http_timeout_seconds,
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        authenticate: bool = True,
    ) -> Any:
        """Send a request with simple retry/backoff and a single re-login on 401."""
        retry = self._settings.backend.retry
        max_attempts = int(retry.max_attempts)
        base_delay_seconds = float(retry.base_delay_seconds)
        max_delay_seconds = float(retry.max_delay_seconds)

        if authenticate and not self._token and self._can_login():
            self._login_from_settings()

        idempotent = method.upper() in _IDEMPOTENT_METHODS
        relogged = False
        attempt = 0
        while True:
            try:
                payload = self._send(method, path, params=params, json=json)
                return self._unwrap(payload)
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code

                if status == 401 and authenticate and not relogged and self._can_login():
                    logger.info("HR backend returned 401; logging in again and retrying.")
                    self._token = None
                    self._login_from_settings()
                    relogged = True
                    continue
                if status == 401:
                    self._token = None

                if status not in _RETRYABLE_STATUS or attempt >= max_attempts:
                    raise
                if status != 429 and not idempotent:
                    raise

                delay = min(max_delay_seconds, base_delay_seconds * (2**attempt))
                retry_after = self._parse_retry_after_seconds(exc.response.headers.get("Retry-After"))
                if retry_after is not None:
                    delay = max(delay, retry_after)

                logger.warning(
                    "HR backend %s %s failed with status=%s; retrying in %.2fs (attempt %s/%s)",
                    method,
                    path,
                    status,
                    delay,
                    attempt + 1,
                    max_attempts,
                )
            except httpx.TransportError as exc:
                if attempt >= max_attempts:
                    raise
                if not idempotent and not isinstance(exc, _UNSENT_ERRORS):
                    raise
                delay = min(max_delay_seconds, base_delay_seconds * (2**attempt))
                logger.warning(
                    "HR backend transport error on %s %s; retrying in %.2fs (attempt %s/%s)",
                    method,
                    path,
                    delay,
                    attempt + 1,
                    max_attempts,
                )
            time.sleep(delay)
            attempt += 1

    @staticmethod
    def _unwrap(payload: Any) -> Any:
        if isinstance(payload, dict) and payload.get("status") == "error":
            message = payload.get("msg") or payload.get("message") or "HR backend reported an error"
            raise HrApiError(str(message), payload)
        return payload

    # --- auth ---------------------------------------------------------------

    def _login_from_settings(self) -> None:
        backend = self._settings.backend
        self.login(str(backend.email), str(backend.password))

    def login(self, email: str, password: str) -> dict[str, Any]:
        """Authenticate and keep the bearer token for subsequent calls."""
        payload = self._request(
            "POST", "/hr/login", json={"email": email, "password": password}, authenticate=False
        )
        token = None
        if isinstance(payload, dict):
            data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
            token = payload.get("token") or payload.get("access_token") or data.get("token")
        if not token:
            raise HrApiError("HR login response is missing a token.", payload)
        self._token = str(token)
        return payload

    def logout(self) -> Any:
        try:
            return self._request("POST", "/hr/logout", authenticate=False)
        finally:
            self._token = None

    def me(self) -> Any:
        return self._request("GET", "/hr/me")

    def refresh(self) -> Any:
        payload = self._request("POST", "/hr/refresh")
        if isinstance(payload, dict) and payload.get("token"):
            self._token = str(payload["token"])
        return payload

    # --- generic CRUD --------------------------------------------------------

    def _list(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self._request("GET", path, params=params)

    def _get(self, path: str, item_id: int | str) -> Any:
        return self._request("GET", f"{path}/{item_id}")

    def _create(self, path: str, data: dict[str, Any]) -> Any:
        return self._request("POST", path, json=data)

    def _update(self, path: str, item_id: int | str, data: dict[str, Any]) -> Any:
        return self._request("PUT", f"{path}/{item_id}", json=data)

    def _delete(self, path: str, item_id: int | str) -> Any:
        return self._request("DELETE", f"{path}/{item_id}")

    def _cached_reference(self, name: str, path: str) -> list[dict[str, Any]]:
        """Reference lists change rarely; serve stale copies when the backend is down."""

        def builder() -> list[dict[str, Any]]:
            logger.info("Fetching %s from HR backend", name)
            return _extract_list(self._list(path), name)

        value = self._cache.get_or_set(
            "reference",
            f"{self._settings.backend.base_url}:{name}",
            builder,
            ttl_seconds=int(self._settings.backend.reference_cache_ttl_seconds),
            stale_if_error=True,
            stale_predicate=lambda exc: isinstance(exc, httpx.HTTPError),
        )
        return list(value or [])

    # --- employees -----------------------------------------------------------

    def list_employees(self, *, search: str | None = None, page: int = 1, per_page: int = 10) -> Any:
        params = {"search": search, "page": page, "per_page": per_page}
        return self._list("/hr/employees", {k: v for k, v in params.items() if v not in (None, "")})

    def list_mobile_employees(self) -> list[Employee]:
        return [Employee.model_validate(e) for e in _extract_list(self._list("/hr/employees/mobile"), "employees")]

    def get_employee(self, employee_id: int | str) -> Any:
        return self._get("/hr/employees", employee_id)

    def create_employee(self, data: dict[str, Any]) -> Any:
        return self._create("/hr/employees", data)

    def update_employee(self, employee_id: int | str, data: dict[str, Any]) -> Any:
        return self._update("/hr/employees", employee_id, data)

    def delete_employee(self, employee_id: int | str) -> Any:
        return self._delete("/hr/employees", employee_id)

    def employee_registration_stats(self, params: dict[str, Any] | None = None) -> Any:
        return self._list("/hr/employees/registration-stats", params)

    # --- departments / positions ----------------------------------------------

    def list_departments(self) -> list[Department]:
        return [Department.model_validate(d) for d in self._cached_reference("departments", "/hr/departments")]

    def paginate_departments(self, *, search: str | None = None, page: int = 1, per_page: int = 10) -> Any:
        params = {"search": search, "page": page, "per_page": per_page}
        return self._list("/hr/departments", {k: v for k, v in params.items() if v not in (None, "")})

    def get_department(self, department_id: int | str) -> Any:
        return self._get("/hr/departments", department_id)

    def create_department(self, data: dict[str, Any]) -> Any:
        return self._create("/hr/departments", data)

    def update_department(self, department_id: int | str, data: dict[str, Any]) -> Any:
        return self._update("/hr/departments", department_id, data)

    def delete_department(self, department_id: int | str) -> Any:
        return self._delete("/hr/departments", department_id)

    def list_positions(self) -> list[Position]:
        return [Position.model_validate(p) for p in self._cached_reference("positions", "/hr/positions")]

    def paginate_positions(self, *, search: str | None = None, page: int = 1, per_page: int = 10) -> Any:
        params = {"search": search, "page": page, "per_page": per_page}
        return self._list("/hr/positions", {k: v for k, v in params.items() if v not in (None, "")})

    def get_position(self, position_id: int | str) -> Any:
        return self._get("/hr/positions", position_id)

    def create_position(self, data: dict[str, Any]) -> Any:
        return self._create("/hr/positions", data)

    def update_position(self, position_id: int | str, data: dict[str, Any]) -> Any:
        return self._update("/hr/positions", position_id, data)

    def delete_position(self, position_id: int | str) -> Any:
        return self._delete("/hr/positions", position_id)

    def list_cities(self) -> list[dict[str, Any]]:
        return self._cached_reference("cities", "/hr/cities")

    def list_branches(self) -> list[dict[str, Any]]:
        return self._cached_reference("branches", "/hr/branches")

    # --- attendance (dashboard) ----------------------------------------------------

    def list_attendances(self, filters: AttendanceFilters | None = None) -> tuple[list[AttendanceRecord], Any]:
        """Return parsed records plus the raw payload (for its `pagination` block)."""
        payload = self._list("/hr/attendances", (filters or AttendanceFilters()).to_params())
        records = [AttendanceRecord.model_validate(r) for r in _extract_list(payload, "attendances")]
        return records, payload

    def get_attendance(self, attendance_id: int | str) -> Any:
        return self._get("/hr/attendances", attendance_id)

    def update_attendance(self, attendance_id: int | str, data: dict[str, Any]) -> Any:
        return self._update("/hr/attendances", attendance_id, data)

    def delete_attendance(self, attendance_id: int | str) -> Any:
        return self._delete("/hr/attendances", attendance_id)

    def attendance_statistics(
        self, *, employee_id: int | None = None, date_from: str | None = None, date_to: str | None = None
    ) -> AttendanceStatistics:
        params = {"employee_id": employee_id, "date_from": date_from, "date_to": date_to}
        payload = self._list("/hr/attendances/statistics", {k: v for k, v in params.items() if v})
        return AttendanceStatistics.model_validate(_extract_obj(payload, "statistics"))

    # --- attendance (mobile) -------------------------------------------------------

    def check_in(self, data: dict[str, Any]) -> Any:
        return self._request("POST", "/hr/attendance/checkin", json=data)

    def check_out(self, data: dict[str, Any]) -> Any:
        return self._request("POST", "/hr/attendance/checkout", json=data)

    def attendance_status(self, employee_id: int | str) -> AttendanceStatus:
        payload = self._request("GET", "/hr/attendance/status", params={"employee_id": employee_id})
        return AttendanceStatus.model_validate(payload)

    def attendance_history(self, employee_id: int | str, params: dict[str, Any] | None = None) -> Any:
        return self._request("GET", "/hr/attendance/history", params={"employee_id": employee_id, **(params or {})})

    def branch_info(self, employee_id: int | str) -> BranchInfo | None:
        """The employee's assigned branch, or None when the employee has none."""
        payload = self._request("GET", "/hr/attendance/branch-info", params={"employee_id": employee_id})
        info = _extract_obj(payload, "branch_info")
        return BranchInfo.model_validate(info) if info else None

    # --- leave requests ------------------------------------------------------------

    def list_leave_requests(self) -> list[LeaveRequest]:
        payload = self._list("/hr/leave-requests")
        return [LeaveRequest.model_validate(r) for r in _extract_list(payload, "leave_requests")]

    def create_leave_request(self, data: dict[str, Any]) -> Any:
        return self._create("/hr/leave-requests", data)

    def approve_leave_request(self, request_id: int | str, data: dict[str, Any] | None = None) -> Any:
        return self._request("POST", f"/hr/leave-requests/{request_id}/approve", json=data or {})

    def reject_leave_request(self, request_id: int | str, data: dict[str, Any] | None = None) -> Any:
        return self._request("POST", f"/hr/leave-requests/{request_id}/reject", json=data or {})

    # --- location tracking ------------------------------------------------------------

    def location_settings(self) -> list[dict[str, Any]]:
        return _extract_list(self._request("GET", self._settings.backend.location.settings), "settings")

    def update_location_settings(self, payload: dict[str, Any]) -> Any:
        return self._request("PUT", self._settings.backend.location.settings, json=payload)

    def active_employees(self) -> list[dict[str, Any]]:
        payload = self._request("GET", self._settings.backend.location.active_employees)
        return _extract_list(payload, "active_employees")

    def location_analytics(self, *, date: str) -> list[dict[str, Any]]:
        payload = self._request("GET", self._settings.backend.location.analytics, params={"date": date})
        return _extract_list(payload, "locations")

    def location_history(self, employee_id: int | str, *, date: str) -> list[dict[str, Any]]:
        path = f"{self._settings.backend.location.history}/{employee_id}"
        return _extract_list(self._request("GET", path, params={"date": date}), "locations")

    def update_location(self, data: dict[str, Any]) -> Any:
        return self._request("POST", self._settings.backend.location.update, json=data)


def build_client(settings: Settings) -> HrClient:
    """Construct an `HrClient` backed by the configured on-disk cache."""
    cache = FileCache(
        resolve_project_path(settings.cache.dir),
        enabled=settings.cache.enabled,
        default_ttl_seconds=settings.cache.default_ttl_seconds,
    )
    return HrClient(settings, cache)
