import uuid


def test_list_users_admin_only(client, admin, employee):
    _, admin_headers = admin
    _, headers = employee
    assert client.get("/users", headers=headers).status_code == 403

    r = client.get("/users", headers=admin_headers)
    assert r.status_code == 200
    users = r.json()
    assert [u["email"] for u in users] == ["tech@naisata.com", "boss@naisata.com"]
    assert all("password_hash" not in u and "signature" not in u for u in users)


def test_assign_role(client, admin, employee):
    _, admin_headers = admin
    user, headers = employee

    r = client.put(f"/users/{user['id']}/role", json={"role": "admin"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["role"] == "admin"
    # Role is read from the database, so the existing token now has admin access
    assert client.get("/users", headers=headers).status_code == 200

    r = client.put(f"/users/{user['id']}/role", json={"role": "user"}, headers=admin_headers)
    assert r.json()["role"] == "employee"

    assert client.put(f"/users/{user['id']}/role", json={"role": "owner"}, headers=admin_headers).status_code == 422
    r = client.put(f"/users/{uuid.uuid4()}/role", json={"role": "admin"}, headers=admin_headers)
    assert r.status_code == 404


def test_assign_custom_schedule(client, admin, employee):
    _, admin_headers = admin
    user, _ = employee
    windows = [{"weekday": 1, "active": True, "start": "07:00", "end": "15:00"}]

    r = client.put(f"/users/{user['id']}/schedule", json={"custom_schedule": windows}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["custom_schedule"] == windows

    r = client.put(f"/users/{user['id']}/schedule", json={"custom_schedule": None}, headers=admin_headers)
    assert r.json()["custom_schedule"] is None


def test_config_merge(client, admin, employee):
    _, admin_headers = admin
    _, headers = employee
    assert client.get("/config", headers=headers).json() == {}

    assert client.post("/config", json={"company_name": "Naisata"}, headers=headers).status_code == 403

    r = client.post("/config", json={"company_name": "Naisata", "pdf": {"footer": "Gracias"}}, headers=admin_headers)
    assert r.status_code == 200
    r = client.post("/config", json={"company_name": "Naisata SA"}, headers=admin_headers)
    assert r.json() == {"company_name": "Naisata SA", "pdf": {"footer": "Gracias"}}
    assert client.get("/config", headers=headers).json() == r.json()

    assert client.post("/config", json={}, headers=admin_headers).status_code == 400


def test_health_metrics_and_request_id(client):
    r = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.headers["X-Request-ID"] == "abc-123"
    assert client.get("/metrics").status_code == 200
