from __future__ import annotations

from datetime import date, time

import pytest
from flask import Flask

from academy_dashboard.main import register_all


@pytest.fixture()
def client(academy, owner, teacher):
    app = Flask(__name__)
    app.secret_key = "test"
    app.config["TESTING"] = True
    register_all(app, academy)
    return app.test_client()


def _login(client, username):
    return client.post("/auth/login", json={"username": username, "password": "pw"})


def test_dashboard_requires_session(client):
    resp = client.get("/dashboard/timetable")

    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/auth/login")


def test_login_sets_session_and_redirects_login_page(client):
    resp = _login(client, "teacher.lee")

    assert resp.status_code == 200
    assert resp.get_json()["data"]["role"] == "teacher"
    again = client.get("/auth/login")
    assert again.status_code == 302
    assert again.headers["Location"].endswith("/dashboard/admin")


def test_bad_login_is_401(client):
    resp = client.post("/auth/login", json={"username": "teacher.lee", "password": "wrong"})

    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "message": "Invalid username or password"}


def test_logout_clears_session(client):
    _login(client, "teacher.lee")
    client.get("/auth/logout")

    assert client.get("/dashboard/admin").status_code == 302


def test_timetable_json(client, academy, teacher):
    class_id = academy.school_class("Reading", teacher=teacher)
    academy.block(class_id, 2, time(16, 0), time(17, 30))
    _login(client, "teacher.lee")

    body = client.get("/dashboard/timetable").get_json()

    assert body["success"]
    assert body["data"]["user_role"] == "teacher"
    assert body["data"]["blocks"][0]["start_time"] == "16:00"
    assert body["data"]["blocks"][0]["end_time"] == "17:30"


def test_domain_errors_map_to_status(client, academy):
    _login(client, "teacher.lee")

    forbidden = client.post(
        "/dashboard/timetable/blocks", json={"class_id": 1, "day_of_week": 1, "start_time": "09:00", "end_time": "10:00"}
    )
    assert forbidden.status_code == 403

    missing = client.post("/dashboard/transfers/requests/999/cancel")
    assert missing.status_code == 404

    invalid = client.post("/dashboard/transfers/move", json={"student_id": "x"})
    assert invalid.status_code == 400


def test_feed_save_replays_idempotency_key(client, academy, teacher):
    class_id = academy.school_class("Reading", teacher=teacher)
    block = academy.block(class_id, 2, time(16, 0), time(17, 0))
    student = academy.student("Yuna")
    academy.assignments.add(student_id=student, schedule_id=block, start_date=date(2026, 3, 2))
    _login(client, "teacher.lee")
    body = {
        "class_id": class_id,
        "student_id": student,
        "feed_date": "2026-03-10",
        "attendance_status": "present",
        "idempotency_key": "req-1",
    }

    first = client.post("/dashboard/feeds", json=body).get_json()
    second = client.post("/dashboard/feeds", json=body).get_json()

    assert first["data"]["cached"] is False
    assert second["data"] == {**first["data"], "cached": True}

    saved = client.get(f"/dashboard/feeds/classes/{class_id}?date=2026-03-10").get_json()
    assert saved["data"][0]["attendance_status"] == "present"


def test_unexpected_error_is_500(client, academy, monkeypatch):
    def boom(actor):
        raise RuntimeError("db down")

    monkeypatch.setattr(academy.timetable_service, "get_schedule_blocks", boom)
    _login(client, "teacher.lee")

    resp = client.get("/dashboard/timetable")

    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "message": "Internal server error"}


def test_weekly_report_route_validates_dates(client):
    _login(client, "director.kim")

    resp = client.post(
        "/dashboard/reports/weekly", json={"student_id": 1, "start_date": "03/02", "end_date": "2026-03-08"}
    )

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Start date must be YYYY-MM-DD"
