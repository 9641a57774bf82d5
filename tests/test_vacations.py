import uuid


def _request(client, headers, start="2024-07-01", end="2024-07-05", reason="Viaje"):
    return client.post("/vacations", json={"start_date": start, "end_date": end, "reason": reason}, headers=headers)


def test_create_vacation(client, employee):
    user, headers = employee
    r = _request(client, headers)
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "pending"
    assert body["user_id"] == user["id"]
    assert body["user_name"] == "Ana Lopez"
    assert body["days"] == 5


def test_create_vacation_rejects_inverted_range(client, employee):
    _, headers = employee
    r = _request(client, headers, start="2024-07-10", end="2024-07-01")
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"


def test_employee_sees_only_own_requests(client, admin, employee):
    _, admin_headers = admin
    _, headers = employee
    _request(client, headers)
    _request(client, admin_headers)

    assert len(client.get("/vacations", headers=headers).json()) == 1
    assert len(client.get("/vacations", headers=admin_headers).json()) == 2


def test_status_update_is_admin_only(client, admin, employee):
    admin_user, admin_headers = admin
    _, headers = employee
    vacation = _request(client, headers).json()

    r = client.put(f"/vacations/{vacation['id']}/status", json={"status": "approved"}, headers=headers)
    assert r.status_code == 403

    r = client.put(f"/vacations/{vacation['id']}/status", json={"status": "approved"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "approved"
    assert r.json()["decided_by"] == admin_user["id"]
    assert r.json()["decided_at"] is not None

    r = client.put(f"/vacations/{vacation['id']}/status", json={"status": "pending"}, headers=admin_headers)
    assert r.json()["decided_by"] is None


def test_status_update_validation(client, admin, employee):
    _, admin_headers = admin
    _, headers = employee
    vacation = _request(client, headers).json()
    r = client.put(f"/vacations/{vacation['id']}/status", json={"status": "maybe"}, headers=admin_headers)
    assert r.status_code == 422
    r = client.put(f"/vacations/{uuid.uuid4()}/status", json={"status": "rejected"}, headers=admin_headers)
    assert r.status_code == 404


def test_filter_by_status(client, admin, employee):
    _, admin_headers = admin
    _, headers = employee
    first = _request(client, headers).json()
    _request(client, headers, start="2024-08-01", end="2024-08-02")
    client.put(f"/vacations/{first['id']}/status", json={"status": "rejected"}, headers=admin_headers)

    r = client.get("/vacations", params={"status": "rejected"}, headers=headers)
    assert [v["id"] for v in r.json()] == [first["id"]]
    assert len(client.get("/vacations", params={"status": "pending"}, headers=headers).json()) == 1
    assert client.get("/vacations", params={"status": "nope"}, headers=headers).status_code == 400
