import httpx
from starlette.testclient import TestClient

from geoattend.api.app import app
from geoattend.backend.hr_client import HrApiError
from geoattend.domain.models import AttendanceRecord, AttendanceStatus, BranchInfo, Department


class _StubHrClient:
    def __init__(self):
        self.submitted = []
        self.saved_settings = None
        self.history_calls = []

    def branch_info(self, employee_id):
        return BranchInfo(
            branch_id=1,
            branch_name="Dubai HQ",
            latitude=25.2048,
            longitude=55.2708,
            check_in_radius_meters=50,
            has_coordinates=True,
        )

    def check_in(self, data):
        self.submitted.append(data)
        return {"status": "success", "message": "Checked in"}

    def check_out(self, data):
        raise HrApiError("You have not checked in today", {"status": "error"})

    def attendance_status(self, employee_id):
        return AttendanceStatus(status="not_checked_in", can_check_in=True)

    def list_attendances(self, filters):
        record = AttendanceRecord(id=1, employee_id=7, date="2026-01-05", is_checked_in=True)
        payload = {"status": "success", "pagination": {"current_page": filters.page, "last_page": 9, "total": 85}}
        return [record], payload

    def location_analytics(self, *, date):
        return [
            {"latitude": "25.2048", "longitude": "55.2708", "recorded_at": f"{date} 09:00", "employee": {"name": "Omar"}},
            {"latitude": 0, "longitude": 0},
            {"latitude": "24.7136", "longitude": "46.6753", "accuracy": "n/a"},
            {"id": "abc", "latitude": "24.7", "longitude": "46.6"},
        ]

    def location_history(self, employee_id, *, date):
        self.history_calls.append((employee_id, date))
        return [
            {"id": i, "latitude": 25.2 + i / 1000, "longitude": 55.27, "accuracy": 5 * i,
             "recorded_at": f"{date} 09:{i:02d}"}
            for i in range(1, 13)
        ]

    def location_settings(self):
        return [{"key": "location_update_frequency", "value": 600}]

    def update_location_settings(self, payload):
        self.saved_settings = payload
        return {"status": "success"}

    def list_departments(self):
        return [Department(id=1, name="Sales")]

    def list_positions(self):
        raise httpx.ConnectError("down", request=httpx.Request("GET", "https://hr.test/hr/positions"))

    def list_branches(self):
        return [{"id": 1, "name": "Dubai HQ"}]

    def list_cities(self):
        return []


def _patch_client(monkeypatch):
    import geoattend.api.routes as routes

    stub = _StubHrClient()
    monkeypatch.setattr(routes, "_client", lambda: stub)
    return stub


def test_health():
    with TestClient(app) as c:
        resp = c.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_distance_endpoint():
    payload = {
        "origin": {"lat": 24.7136, "lon": 46.6753},
        "target": {"lat": 21.4858, "lon": 39.1925},
        "radius_m": 1000,
    }
    with TestClient(app) as c:
        resp = c.post("/api/geofence/distance", json=payload)
        no_radius = c.post("/api/geofence/distance", json={k: payload[k] for k in ("origin", "target")})
        invalid = c.post("/api/geofence/distance", json={**payload, "origin": {"lat": 91, "lon": 0}})

    assert resp.status_code == 200
    data = resp.json()
    assert abs(data["distance_m"] - 844_000) < 5_000
    assert data["within_radius"] is False
    assert data["distance_label"].endswith(" km")
    assert no_radius.json()["within_radius"] is None
    assert invalid.status_code == 422


def test_branch_distance_endpoint(monkeypatch):
    _patch_client(monkeypatch)
    with TestClient(app) as c:
        ok = c.get("/api/employees/7/branch-distance", params={"lat": "25.2050", "lon": "55.2710"})
        bad = c.get("/api/employees/7/branch-distance", params={"lat": "abc", "lon": "55.2710"})

    assert ok.status_code == 200
    assert ok.json()["status"] == "within"
    assert ok.json()["distance_label"] == "30 meters"
    assert bad.status_code == 400
    assert bad.json()["detail"]["code"] == "VALIDATION_ERROR"


def test_check_in_and_backend_error_mapping(monkeypatch):
    stub = _patch_client(monkeypatch)
    body = {"employee_id": 7, "latitude": 25.2050, "longitude": "55.2710", "location_name": "Office"}
    with TestClient(app) as c:
        check_in = c.post("/api/attendance/check-in", json=body)
        check_out = c.post("/api/attendance/check-out", json=body)

    assert check_in.status_code == 200
    assert check_in.json()["verification"]["within_radius"] is True
    assert stub.submitted[0]["longitude"] == 55.2710
    assert check_out.status_code == 502
    assert check_out.json()["detail"] == {"code": "BACKEND_ERROR", "message": "You have not checked in today"}


def test_status_and_attendance_table(monkeypatch):
    _patch_client(monkeypatch)
    with TestClient(app) as c:
        status = c.get("/api/attendance/status", params={"employee_id": 7})
        table = c.get("/api/attendance", params={"page": 5, "status": "present"})
        bad_status = c.get("/api/attendance", params={"status": "sleeping"})

    assert status.json()["can_check_in"] is True
    data = table.json()
    assert data["attendances"][0]["employee_id"] == 7
    assert data["attendances"][0]["work_state"] == "working"
    assert data["pagination"]["last_page"] == 9
    assert data["pages"] == [1, None, 3, 4, 5, 6, 7, None, 9]
    assert bad_status.status_code == 422


def test_heatmap_endpoint(monkeypatch):
    stub = _patch_client(monkeypatch)
    with TestClient(app) as c:
        everyone = c.get("/api/location/heatmap", params={"date": "2026-01-05"})
        one = c.get("/api/location/heatmap", params={"date": "2026-01-05", "employee_id": 7})
        second = c.get("/api/location/heatmap", params={"date": "2026-01-05", "employee_id": 7, "page": 2})
        bad_date = c.get("/api/location/heatmap", params={"date": "05/01/2026"})

    assert everyone.status_code == 200
    data = everyone.json()
    assert data["count"] == 3
    assert len(data["heatmap"]["features"]) == 2
    assert data["heatmap"]["features"][0]["properties"]["employee_name"] == "Omar"
    assert data["heatmap"]["features"][1]["properties"]["accuracy"] is None
    assert data["bounds"]["north"] == 25.2048
    assert "history" not in data
    assert one.json()["count"] == 12
    assert stub.history_calls == [(7, "2026-01-05"), (7, "2026-01-05")]
    assert bad_date.status_code == 400

    first_page = one.json()["history"]
    assert len(first_page["items"]) == 10
    assert first_page["pagination"] == {"current_page": 1, "last_page": 2, "total": 12, "per_page": 10}
    assert first_page["pages"] == [1, 2]
    assert [r["accuracy_badge"] for r in first_page["items"][:3]] == ["good", "good", "poor"]
    last_page = second.json()["history"]
    assert [r["id"] for r in last_page["items"]] == [11, 12]
    assert last_page["pagination"]["current_page"] == 2


def test_location_settings_roundtrip_and_validation(monkeypatch):
    stub = _patch_client(monkeypatch)
    with TestClient(app) as c:
        current = c.get("/api/location/settings").json()
        saved = c.put("/api/location/settings", json={**current, "location_retention_days": 30})
        rejected = c.put("/api/location/settings", json={**current, "location_update_frequency": 10})

    assert current["location_update_frequency"] == 600
    assert saved.status_code == 200
    rows = {r["key"]: r["value"] for r in stub.saved_settings["settings"]}
    assert rows["location_retention_days"] == 30
    assert rejected.status_code == 400
    assert rejected.json()["detail"]["errors"] == ["Update frequency cannot be less than 60 seconds"]


def test_reference_lists(monkeypatch):
    _patch_client(monkeypatch)
    with TestClient(app) as c:
        departments = c.get("/api/departments")
        positions = c.get("/api/positions")
        branches = c.get("/api/branches")

    assert departments.json()["departments"][0]["name"] == "Sales"
    assert positions.status_code == 502
    assert positions.json()["detail"]["code"] == "BACKEND_UNAVAILABLE"
    assert branches.json() == {"branches": [{"id": 1, "name": "Dubai HQ"}]}


def test_public_settings_hide_credentials():
    with TestClient(app) as c:
        data = c.get("/api/settings").json()
        sims = c.get("/api/simulator/locations").json()

    assert "token" not in data["backend"]
    assert "password" not in data["backend"]
    assert "access_token" not in data["map"]
    assert data["geofence"]["kilometers_label"] == "km"
    assert len(sims["locations"]) == 4
