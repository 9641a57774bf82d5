import os

# Settings are read once at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["AUTO_CREATE_DB"] = "false"
os.environ["RATE_LIMIT"] = "100000/minute"
os.environ.setdefault("JWT_SECRET", "test-secret-for-the-pytest-suite-0123456789")

import pytest
from fastapi.testclient import TestClient

from fieldops.db import Base, build_engine, get_db, make_session_factory, session_scope
from fieldops.main import app
from fieldops.models.models import User


SIGNATURE = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAAB"
PASSWORD = "secret123"


@pytest.fixture()
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(client, session_factory):
    """Register an active account and return (user_json, auth_headers)."""

    def _make(email="tech@naisata.com", role="employee", name="Ana", surname="Lopez"):
        r = client.post(
            "/auth/register",
            json={
                "name": name,
                "surname": surname,
                "email": email,
                "phone": "5512345678",
                "password": PASSWORD,
                "signature": SIGNATURE,
            },
        )
        assert r.status_code == 201, r.text
        if role != "employee":
            with session_scope(session_factory) as session:
                session.query(User).filter(User.email == email.lower()).one().role = role
        r = client.post("/auth/login", json={"email": email, "password": PASSWORD})
        assert r.status_code == 200, r.text
        body = r.json()
        return body["user"], {"Authorization": f"Bearer {body['access_token']}"}

    return _make


@pytest.fixture()
def employee(make_user):
    return make_user()


@pytest.fixture()
def admin(make_user):
    return make_user(email="boss@naisata.com", role="admin", name="Luis", surname="Perez")
