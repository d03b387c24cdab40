"""
test_attendance_api.py — API tests for daily attendance.

Covers:
  - clock-in / clock-out guards
  - working hours config normalisation
  - timecard overtime aggregation
  - auto-checkout of rows left open
"""

from datetime import date, datetime

import pytest

from hvac_service.models_worklog import DailyAttendance
from hvac_service.utils.business_time import local_date


def _row(db, seed, user, day, clock_in, clock_out=None, **flags):
    row = DailyAttendance(
        tenant_id=seed.tenant.id,
        user_id=user.id,
        date=day,
        clock_in_time=clock_in,
        clock_out_time=clock_out,
        total_work_hours=round((clock_out - clock_in).total_seconds() / 3600, 2) if clock_out else None,
        **flags,
    )
    db.add(row)
    db.commit()
    return row


class TestClock:

    def test_clock_in_then_out(self, client, seed, auth):
        auth.login(seed.tech_user)
        response = client.post("/attendance/clock-in", json={"notes": "Dari rumah"})
        assert response.status_code == 200
        assert response.json()["clockOutTime"] is None

        out = client.post("/attendance/clock-out", json={"notes": "Pulang"}).json()
        assert out["clockOutTime"] is not None
        assert out["totalWorkHours"] >= 0
        assert out["notes"] == "Dari rumah\nPulang"

    def test_double_clock_in(self, client, seed, auth):
        auth.login(seed.tech_user)
        client.post("/attendance/clock-in", json={})
        assert client.post("/attendance/clock-in", json={}).status_code == 409

    def test_clock_out_without_clock_in(self, client, seed, auth):
        auth.login(seed.tech_user)
        assert client.post("/attendance/clock-out", json={}).status_code == 409

    def test_double_clock_out(self, client, seed, auth):
        auth.login(seed.tech_user)
        client.post("/attendance/clock-in", json={})
        client.post("/attendance/clock-out", json={})
        assert client.post("/attendance/clock-out", json={}).status_code == 409

    def test_today_returns_row_and_config(self, client, seed, auth):
        auth.login(seed.tech_user)
        assert client.get("/attendance/today").json()["attendance"] is None
        client.post("/attendance/clock-in", json={})
        body = client.get("/attendance/today").json()
        assert body["attendance"]["userId"] == seed.tech_user.id
        assert body["config"]["workStartTime"] == "09:00:00"

    def test_clock_times_record_actual_span(self, client, seed, auth):
        auth.login(seed.tech_user)
        row = client.post("/attendance/clock-in", json={}).json()
        assert row["workStartTime"] == row["clockInTime"]
        assert row["workEndTime"] is None

        out = client.post("/attendance/clock-out", json={}).json()
        assert out["workStartTime"] == out["clockInTime"]
        assert out["workEndTime"] == out["clockOutTime"]

    def test_clock_in_fills_existing_empty_row(self, client, db, seed, auth):
        db.add(DailyAttendance(tenant_id=seed.tenant.id, user_id=seed.tech_user.id, date=local_date()))
        db.commit()

        auth.login(seed.tech_user)
        response = client.post("/attendance/clock-in", json={"notes": "  "})
        assert response.status_code == 200
        assert response.json()["clockInTime"] is not None
        assert response.json()["notes"] is None
        assert db.query(DailyAttendance).count() == 1


class TestConfig:

    def test_defaults(self, client, seed):
        assert client.get("/attendance/config").json() == {
            "workStartTime": "09:00:00",
            "workEndTime": "17:00:00",
            "overtimeRatePerHour": 5000.0,
            "maxOvertimeHoursPerDay": 4,
        }

    def test_put_normalises_values(self, client, seed):
        response = client.put(
            "/attendance/config",
            json={
                "workStartTime": "08:00",
                "workEndTime": "nonsense",
                "overtimeRatePerHour": "-20",
                "maxOvertimeHoursPerDay": "3.9",
            },
        )
        assert response.json() == {
            "workStartTime": "08:00:00",
            "workEndTime": "17:00:00",
            "overtimeRatePerHour": 0.0,
            "maxOvertimeHoursPerDay": 3,
        }
        assert client.get("/attendance/config").json()["workStartTime"] == "08:00:00"

    def test_technician_cannot_change_config(self, client, seed, auth):
        auth.login(seed.tech_user)
        assert client.put("/attendance/config", json={}).status_code == 403


class TestTimecard:

    @pytest.fixture
    def march(self, db, seed):
        # Asia/Jakarta is UTC+7; the default day is 09:00-17:00 local
        _row(db, seed, seed.tech_user, date(2026, 3, 2), datetime(2026, 3, 2, 1, 30), datetime(2026, 3, 2, 11, 0))
        _row(
            db, seed, seed.tech_user, date(2026, 3, 3),
            datetime(2026, 3, 3, 2, 30), datetime(2026, 3, 3, 16, 0), is_late=True,
        )
        _row(
            db, seed, seed.tech_user, date(2026, 3, 4),
            datetime(2026, 3, 4, 2, 0), datetime(2026, 3, 4, 8, 0), is_early_leave=True,
        )
        _row(db, seed, seed.helper_user, date(2026, 3, 2), datetime(2026, 3, 2, 2, 0), datetime(2026, 3, 2, 10, 0))

    def test_overtime_is_capped_per_day(self, client, seed, march):
        body = client.get("/attendance/timecard", params={"dateFrom": "2026-03-01", "dateTo": "2026-03-31"}).json()
        budi = next(t for t in body["technicians"] if t["userId"] == seed.tech_user.id)
        assert budi["daysPresent"] == 3
        assert budi["lateCount"] == 1
        assert budi["earlyLeaveCount"] == 1
        assert budi["totalHours"] == pytest.approx(29.0)
        # 1.5 h + min(5.5, 4) h + 0 h
        assert budi["overtimeHours"] == pytest.approx(5.5)
        assert budi["overtimePay"] == pytest.approx(27500.0)

    def test_filter_by_technician(self, client, seed, march):
        body = client.get(
            "/attendance/timecard",
            params={"dateFrom": "2026-03-01", "dateTo": "2026-03-31", "technicianId": seed.helper.id},
        ).json()
        assert [t["userName"] for t in body["technicians"]] == ["Andi Helper"]
        assert body["technicians"][0]["overtimeHours"] == 0

    def test_inverted_range(self, client, seed):
        response = client.get("/attendance/timecard", params={"dateFrom": "2026-03-31", "dateTo": "2026-03-01"})
        assert response.status_code == 400

    def test_list_rows(self, client, seed, march):
        rows = client.get("/attendance", params={"dateFrom": "2026-03-03", "dateTo": "2026-03-04"}).json()
        assert [r["date"] for r in rows] == ["2026-03-04", "2026-03-03"]


def test_auto_checkout_closes_open_rows(client, db, seed):
    row = _row(db, seed, seed.tech_user, date(2026, 3, 5), datetime(2026, 3, 5, 1, 0))
    response = client.post("/attendance/auto-checkout", params={"date": "2026-03-05"})
    assert response.json()["closed"] == 1

    db.refresh(row)
    assert row.is_auto_checkout is True
    assert row.clock_out_time == datetime(2026, 3, 5, 10, 0)
    assert row.total_work_hours == 9.0
    assert row.work_end_time == row.clock_out_time

    again = client.post("/attendance/auto-checkout", params={"date": "2026-03-05"})
    assert again.json()["closed"] == 0
