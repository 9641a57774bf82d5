from fieldops.models.models import User

SIGNATURE = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAAB"
PASSWORD = "secret123"


def _register(client, **overrides):
    body = {
        "name": "Ana",
        "surname": "Lopez",
        "email": "ana@naisata.com",
        "phone": "5512345678",
    }
    body.update(overrides)
    return client.post("/auth/register", json=body)


def test_register_rejects_non_corporate_domain(client, db):
    r = _register(client, email="ana@gmail.com", password=PASSWORD)
    assert r.status_code == 400
    assert r.json()["code"] == "domain_not_allowed"
    assert db.query(User).count() == 0


def test_register_duplicate_email_is_case_insensitive(client, db):
    assert _register(client).status_code == 201
    r = _register(client, email="ANA@naisata.com")
    assert r.status_code == 409
    assert r.json()["code"] == "duplicate_email"
    assert db.query(User).count() == 1
    assert db.query(User).one().email == "ana@naisata.com"


def test_register_missing_fields(client):
    r = _register(client, phone="")
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"
    assert "phone" in r.json()["detail"]


def test_register_signature_requires_password(client, db):
    r = _register(client, signature=SIGNATURE)
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"
    assert db.query(User).count() == 0


def test_register_reports_most_advanced_state(client):
    assert _register(client).json()["state"] == "registered"
    assert _register(client, email="b@naisata.com", password=PASSWORD).json()["state"] == "password_set"
    r = _register(client, email="c@naisata.com", password=PASSWORD, signature=SIGNATURE)
    assert r.json()["state"] == "active"
    user = r.json()["user"]
    assert "password_hash" not in user
    assert "signature" not in user
    assert user["has_signature"] is True


def test_password_is_stored_hashed(client, db):
    _register(client, password=PASSWORD)
    user = db.query(User).one()
    assert user.password_hash
    assert user.password_hash != PASSWORD


def test_login_gating_sequence(client):
    _register(client)

    r = client.post("/auth/login", json={"email": "ana@naisata.com"})
    assert r.status_code == 403
    assert r.json()["code"] == "password_setup_required"
    assert r.json()["require_password_setup"] is True

    r = client.post("/auth/set-password", json={"email": "ana@naisata.com", "password": PASSWORD})
    assert r.status_code == 200
    assert r.json()["state"] == "password_set"

    r = client.post("/auth/login", json={"email": "ana@naisata.com", "password": PASSWORD})
    assert r.status_code == 403
    assert r.json()["code"] == "signature_setup_required"
    assert r.json()["require_signature_setup"] is True

    r = client.post(
        "/auth/set-signature",
        json={"email": "ana@naisata.com", "password": PASSWORD, "signature": SIGNATURE},
    )
    assert r.status_code == 200
    assert r.json()["state"] == "active"

    r = client.post("/auth/login", json={"email": "ana@naisata.com", "password": PASSWORD})
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["role"] == "employee"
    assert body["access_token"] and body["refresh_token"]


def test_login_returns_stored_role(client, admin):
    user, headers = admin
    assert user["role"] == "admin"
    r = client.get("/auth/me", headers=headers)
    assert r.status_code == 200
    assert r.json()["email"] == "boss@naisata.com"


def test_login_records_last_login(client, db, employee):
    assert db.query(User).one().last_login_at is not None


def test_login_failures(client):
    _register(client, password=PASSWORD, signature=SIGNATURE)
    r = client.post("/auth/login", json={"email": "ana@naisata.com", "password": "wrong-pass"})
    assert r.status_code == 401
    assert r.json()["code"] == "invalid_credentials"

    r = client.post("/auth/login", json={"email": "nobody@naisata.com", "password": PASSWORD})
    assert r.status_code == 401

    r = client.post("/auth/login", json={"email": "ana@gmail.com", "password": PASSWORD})
    assert r.status_code == 400
    assert r.json()["code"] == "domain_not_allowed"


def test_set_password_errors(client):
    r = client.post("/auth/set-password", json={"email": "ghost@naisata.com", "password": PASSWORD})
    assert r.status_code == 404

    _register(client, password=PASSWORD)
    r = client.post("/auth/set-password", json={"email": "ana@naisata.com", "password": "another1"})
    assert r.status_code == 409
    assert r.json()["code"] == "already_configured"


def test_set_signature_errors(client):
    _register(client)
    body = {"email": "ana@naisata.com", "password": PASSWORD, "signature": SIGNATURE}
    r = client.post("/auth/set-signature", json=body)
    assert r.status_code == 403
    assert r.json()["code"] == "password_setup_required"

    client.post("/auth/set-password", json={"email": "ana@naisata.com", "password": PASSWORD})
    r = client.post("/auth/set-signature", json={**body, "password": "wrong-pass"})
    assert r.status_code == 401

    assert client.post("/auth/set-signature", json=body).status_code == 200
    r = client.post("/auth/set-signature", json=body)
    assert r.status_code == 409
    assert r.json()["code"] == "already_configured"


def test_refresh_issues_new_pair(client):
    _register(client, password=PASSWORD, signature=SIGNATURE)
    tokens = client.post("/auth/login", json={"email": "ana@naisata.com", "password": PASSWORD}).json()

    r = client.post("/auth/refresh", params={"token": tokens["refresh_token"]})
    assert r.status_code == 200
    assert r.json()["access_token"]

    r = client.post("/auth/refresh", params={"token": tokens["access_token"]})
    assert r.status_code == 400


def test_refresh_token_cannot_authenticate(client):
    _register(client, password=PASSWORD, signature=SIGNATURE)
    tokens = client.post("/auth/login", json={"email": "ana@naisata.com", "password": PASSWORD}).json()
    r = client.get("/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
    assert r.status_code == 401


def test_protected_routes_require_token(client):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/companies").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401
