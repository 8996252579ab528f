from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="socialapp_test_"))

# Must be set before socialapp.main builds its module-level app
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'import.db'}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENV"] = "test"
os.environ["SESSION_COOKIE_SECURE"] = "false"
os.environ["LOG_JSON"] = "false"


@pytest.fixture()
def settings(tmp_path):
    from socialapp.core.config import build_settings

    return build_settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'socialapp_test.db'}",
        ENV="test",
        JWT_SECRET="test-secret",
        BCRYPT_ROUNDS=4,
        SESSION_COOKIE_SECURE=False,
        LOG_JSON=False,
    )


@pytest.fixture()
def app(settings):
    from socialapp.main import create_app

    return create_app(settings)


@pytest.fixture()
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db(app):
    from socialapp.database import init_db

    init_db(app.state.engine)
    with app.state.session_factory() as session:
        yield session


@pytest.fixture()
def make_user(db):
    from socialapp.services import identity

    def _make(username: str, password: str | None = None, **kwargs):
        return identity.create_user(db, username=username, password=password, bcrypt_rounds=4, **kwargs)

    return _make


@pytest.fixture()
def register(client):
    """Register through the API; returns (user_json, auth headers)."""

    def _register(username: str, password: str = "secret123", email: str | None = None):
        resp = client.post(
            "/api/auth/register",
            json={"username": username, "password": password, "email": email},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return body["user"], {"Authorization": f"Bearer {body['access_token']}"}

    return _register
