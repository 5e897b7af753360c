import sys
from pathlib import Path

import pytest


BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


@pytest.fixture()
def app_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("APP_ENV", "testing")
    monkeypatch.setenv("MONGODB_URI", "mongomock://localhost")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")

    # Prevent accidental pollution from any existing env config.
    monkeypatch.delenv("ENV", raising=False)
    monkeypatch.delenv("APP_TIMEZONE", raising=False)
    monkeypatch.delenv("RATE_LIMIT_LOGIN", raising=False)
    monkeypatch.delenv("CORS_ORIGINS", raising=False)

    from hrms import create_app
    from hrms.db import reset_client_for_tests

    reset_client_for_tests()

    app = create_app()
    app.testing = True

    with app.test_client() as client:
        yield app, client

    reset_client_for_tests()


@pytest.fixture()
def db(app_client):
    app, _client = app_client
    return app.extensions["mongo_db"]


def register(client, email: str = "hr@example.com", password: str = "secret123", name: str = "HR Admin"):
    return client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password, "confirmPassword": password},
    )


@pytest.fixture()
def auth_headers(app_client):
    _app, client = app_client
    res = register(client)
    assert res.status_code == 201
    token = res.get_json()["data"]["token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def other_auth_headers(app_client):
    _app, client = app_client
    res = register(client, email="other@example.com", name="Other HR")
    assert res.status_code == 201
    token = res.get_json()["data"]["token"]
    return {"Authorization": f"Bearer {token}"}
