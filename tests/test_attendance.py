import uuid

from fieldops.models.models import Attendance


WEEK = [{"weekday": d, "active": d != 0, "start": "08:00", "end": "17:00"} for d in range(7)]


def test_schedule_crud(client, employee):
    _, headers = employee
    r = client.post(
        "/schedules",
        json={"name": "Matutino", "days": WEEK, "geofence": {"lat": 19.4326, "lng": -99.1332, "radius_m": 100}},
        headers=headers,
    )
    assert r.status_code == 201
    schedule = r.json()
    assert len(schedule["days"]) == 7
    assert schedule["geofence"]["radius_m"] == 100

    r = client.put(f"/schedules/{schedule['id']}", json={"name": "Turno A", "clear_geofence": True}, headers=headers)
    assert r.status_code == 200
    assert r.json()["name"] == "Turno A"
    assert r.json()["geofence"] is None
    assert len(r.json()["days"]) == 7

    assert client.get(f"/schedules/{schedule['id']}", headers=headers).status_code == 200
    assert len(client.get("/schedules", headers=headers).json()) == 1

    assert client.delete(f"/schedules/{schedule['id']}", headers=headers).status_code == 200
    assert client.get(f"/schedules/{schedule['id']}", headers=headers).status_code == 404


def test_schedule_requires_name(client, employee):
    _, headers = employee
    assert client.post("/schedules", json={"name": "", "days": WEEK}, headers=headers).status_code == 422


def test_attendance_pairs_entry_and_exit(client, employee):
    user, headers = employee

    r = client.post("/attendance", json={"direction": "out"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"

    r = client.post("/attendance", json={"direction": "in", "service": "Instalación"}, headers=headers)
    assert r.status_code == 201
    opened = r.json()
    assert opened["check_in"] is not None
    assert opened["check_out"] is None

    r = client.post("/attendance", json={"direction": "in"}, headers=headers)
    assert r.status_code == 400

    r = client.post("/attendance", json={"direction": "salida"}, headers=headers)
    assert r.status_code == 201
    closed = r.json()
    assert closed["id"] == opened["id"]
    assert closed["check_out"] is not None
    assert closed["service"] == "Instalación"

    rows = client.get("/attendance", headers=headers).json()
    assert len(rows) == 1
    assert rows[0]["user_id"] == user["id"]


def test_attendance_geofence_from_latest_schedule(client, employee):
    _, headers = employee
    client.post(
        "/schedules",
        json={"name": "Oficina", "days": WEEK, "geofence": {"lat": 19.4326, "lng": -99.1332, "radius_m": 100}},
        headers=headers,
    )
    r = client.post(
        "/attendance", json={"direction": "in", "gps": {"lat": 20.0, "lng": -99.1332}}, headers=headers
    )
    assert r.status_code == 400
    assert r.json()["code"] == "outside_geofence"

    r = client.post(
        "/attendance", json={"direction": "in", "gps": {"lat": 19.4326, "lng": -99.1332}}, headers=headers
    )
    assert r.status_code == 201
    assert r.json()["schedule_id"] is not None


def test_attendance_filters(client, admin, employee):
    _, admin_headers = admin
    user, headers = employee
    client.post("/attendance", json={"direction": "in"}, headers=headers)
    client.post("/attendance", json={"direction": "in"}, headers=admin_headers)

    assert len(client.get("/attendance", headers=admin_headers).json()) == 2
    r = client.get("/attendance", params={"user_id": user["id"]}, headers=admin_headers)
    assert len(r.json()) == 1
    r = client.get("/attendance", params={"date": "2000-01-01"}, headers=admin_headers)
    assert r.json() == []


def test_sync_inserts_temporary_records_once(client, employee, db):
    _, headers = employee
    records = [
        {
            "id": "temp-1",
            "work_date": "2024-03-04",
            "service": "Visita",
            "check_in_at": "2024-03-04T15:00:00Z",
            "check_in_lat": 19.43,
            "check_in_lng": -99.13,
        },
        {"id": "temp-2", "work_date": "2024-03-05", "check_in_at": "2024-03-05T15:00:00Z"},
    ]
    r = client.post("/attendance/sync", json={"records": records}, headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["created"] == 2
    assert body["updated"] == 0
    assert {rec["client_ref"] for rec in body["records"]} == {"temp-1", "temp-2"}

    # Retried batch with the exit now captured
    records[0]["check_out_at"] = "2024-03-04T23:00:00Z"
    r = client.post("/attendance/sync", json={"records": records}, headers=headers)
    assert r.json()["created"] == 0
    assert r.json()["updated"] == 2
    assert db.query(Attendance).count() == 2

    row = db.query(Attendance).filter(Attendance.client_ref == "temp-1").one()
    assert row.check_out_at is not None
    assert row.service == "Visita"


def test_sync_merges_real_ids(client, employee, db):
    _, headers = employee
    opened = client.post("/attendance", json={"direction": "in", "service": "Soporte"}, headers=headers).json()

    r = client.post(
        "/attendance/sync",
        json={"records": [{"id": opened["id"], "check_out_at": "2024-03-04T23:00:00Z"}]},
        headers=headers,
    )
    assert r.json()["updated"] == 1
    row = db.get(Attendance, uuid.UUID(opened["id"]))
    assert row.check_out_at is not None
    assert row.service == "Soporte"


def test_sync_inserts_unknown_real_id(client, employee, db):
    _, headers = employee
    new_id = str(uuid.uuid4())
    r = client.post(
        "/attendance/sync",
        json={"records": [{"id": new_id, "work_date": "2024-03-06", "check_in_at": "2024-03-06T15:00:00Z"}]},
        headers=headers,
    )
    assert r.json()["created"] == 1
    assert r.json()["records"][0]["id"] == new_id
    assert db.get(Attendance, uuid.UUID(new_id)) is not None


def test_sync_cannot_touch_other_users_records(client, admin, employee):
    _, admin_headers = admin
    _, headers = employee
    theirs = client.post("/attendance", json={"direction": "in"}, headers=admin_headers).json()
    r = client.post(
        "/attendance/sync",
        json={"records": [{"id": theirs["id"], "service": "hijack"}]},
        headers=headers,
    )
    assert r.status_code == 400


def test_sync_temporary_ids_are_scoped_per_user(client, admin, employee, db):
    admin_user, admin_headers = admin
    employee_user, headers = employee

    r = client.post("/attendance/sync", json={"records": [{"id": "temp-1", "service": "admin-visit"}]}, headers=admin_headers)
    assert r.json()["created"] == 1

    r = client.post(
        "/attendance/sync",
        json={"records": [{"id": "temp-1", "service": "employee-visit", "work_date": "2024-03-09"}]},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["created"] == 1
    assert r.json()["updated"] == 0

    rows = {str(a.user_id): a for a in db.query(Attendance).filter(Attendance.client_ref == "temp-1").all()}
    assert len(rows) == 2
    assert rows[admin_user["id"]].service == "admin-visit"
    assert rows[employee_user["id"]].service == "employee-visit"
    assert rows[employee_user["id"]].work_date.isoformat() == "2024-03-09"
