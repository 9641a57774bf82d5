from datetime import datetime, timezone

from fieldops.models.models import User
from fieldops.services import timeclock


# 2024-01-08 is a Monday; America/Mexico_City is UTC-6 in January
MONDAY_0920_LOCAL = datetime(2024, 1, 8, 15, 20, tzinfo=timezone.utc)


def test_settings_created_lazily_with_defaults(client, employee):
    _, headers = employee
    r = client.get("/settings/timeclock", headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["version"] == 1
    assert body["tolerance_minutes"] == 15
    assert body["geofence"] is None
    assert len(body["schedule"]) == 7
    sunday = next(d for d in body["schedule"] if d["weekday"] == 0)
    saturday = next(d for d in body["schedule"] if d["weekday"] == 6)
    assert sunday["active"] is False
    assert saturday["end"] == "14:00"


def test_update_settings_requires_admin(client, employee):
    _, headers = employee
    r = client.put("/settings/timeclock", json={"tolerance_minutes": 5}, headers=headers)
    assert r.status_code == 403


def test_update_settings_bumps_version(client, admin):
    _, headers = admin
    r = client.put(
        "/settings/timeclock",
        json={"tolerance_minutes": 5, "geofence": {"lat": 19.4326, "lng": -99.1332, "radius_m": 200}},
        headers=headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["version"] == 2
    assert body["tolerance_minutes"] == 5
    assert body["geofence"]["radius_m"] == 200

    r = client.put("/settings/timeclock", json={"clear_geofence": True}, headers=headers)
    assert r.json()["version"] == 3
    assert r.json()["geofence"] is None


def test_update_settings_validates_windows(client, admin):
    _, headers = admin
    bad = [{"weekday": 7, "active": True, "start": "09:00", "end": "18:00"}]
    assert client.put("/settings/timeclock", json={"schedule": bad}, headers=headers).status_code == 422
    assert client.put("/settings/timeclock", json={"tolerance_minutes": -1}, headers=headers).status_code == 422


def test_checkin_geofence(client, admin, employee):
    _, admin_headers = admin
    _, headers = employee
    client.put(
        "/settings/timeclock",
        json={"geofence": {"lat": 19.4326, "lng": -99.1332, "radius_m": 150}},
        headers=admin_headers,
    )

    r = client.post("/checkin", json={"direction": "in", "gps": {"lat": 19.5, "lng": -99.1332}}, headers=headers)
    assert r.status_code == 400
    assert r.json()["code"] == "outside_geofence"
    assert r.json()["distance_m"] > 150

    r = client.post(
        "/checkin", json={"direction": "entrada", "gps": {"lat": 19.4327, "lng": -99.1332}}, headers=headers
    )
    assert r.status_code == 201
    body = r.json()
    assert body["direction"] == "in"
    assert body["status"] in {"on_time", "late", "early", "unscheduled"}


def test_checkin_rejects_unknown_direction(client, employee):
    _, headers = employee
    assert client.post("/checkin", json={"direction": "sideways"}, headers=headers).status_code == 422


def test_checkin_evaluated_against_global_schedule(db, employee):
    user = db.query(User).one()
    row = timeclock.record_checkin(db, user, "in", now=MONDAY_0920_LOCAL)
    assert row.status == "late"
    assert row.minutes_off == 20
    assert row.local_date.isoformat() == "2024-01-08"


def test_checkin_prefers_custom_schedule(db, employee):
    user = db.query(User).one()
    user.custom_schedule = [{"weekday": 1, "active": True, "start": "09:30", "end": "17:00"}]
    db.commit()
    row = timeclock.record_checkin(db, user, "in", now=MONDAY_0920_LOCAL)
    assert row.status == "on_time"
    assert row.minutes_off == -10

    # Tuesday is absent from the custom schedule
    row = timeclock.record_checkin(db, user, "in", now=datetime(2024, 1, 9, 15, 0, tzinfo=timezone.utc))
    assert row.status == "unscheduled"


def test_list_checkins_scoped_to_employee(client, admin, employee):
    _, admin_headers = admin
    employee_user, headers = employee
    client.post("/checkin", json={"direction": "in"}, headers=headers)
    client.post("/checkin", json={"direction": "in"}, headers=admin_headers)

    mine = client.get("/checkins", headers=headers).json()
    assert len(mine) == 1
    assert mine[0]["user_id"] == employee_user["id"]

    # user_id filter is ignored for employees
    admin_id = client.get("/auth/me", headers=admin_headers).json()["id"]
    assert len(client.get("/checkins", params={"user_id": admin_id}, headers=headers).json()) == 1

    assert len(client.get("/checkins", headers=admin_headers).json()) == 2
    r = client.get("/checkins", params={"user_id": employee_user["id"]}, headers=admin_headers)
    assert len(r.json()) == 1
