import os
import sqlite3
from pathlib import Path

import pytest

os.environ["ENVIRONMENT"] = "testing"
os.environ.setdefault("JWT_SECRET_KEY", "tests-only-signing-secret-0123456789abcdef")
os.environ.setdefault("API_PREFIX", "/api")

from fastapi.testclient import TestClient

from usermanager.application import create_app


ADMIN_PASSWORD = "Secr3tPass"


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "users.sqlite3"


@pytest.fixture
def client(db_path):
    app = create_app(database_url=f"sqlite+aiosqlite:///{db_path}")
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def raw_db(db_path):
    """Plain sqlite3 connection for poking at stored rows."""
    connection = sqlite3.connect(db_path)
    try:
        yield connection
    finally:
        connection.close()


def register(client, email="admin@example.com", username="site_admin", role=None, password=ADMIN_PASSWORD):
    payload = {"username": username, "email": email, "password": password}
    if role is not None:
        payload["role"] = role
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client):
    return auth_header(register(client)["token"])


@pytest.fixture
def member_headers(client):
    data = register(client, email="member@example.com", username="member", role="user")
    return auth_header(data["token"])


@pytest.fixture
def create_user(client, admin_headers):
    def _create(name="Jane Doe", email="jane@example.com", age=None, expected=201):
        payload = {"name": name, "email": email}
        if age is not None:
            payload["age"] = age
        response = client.post("/api/users", json=payload, headers=admin_headers)
        assert response.status_code == expected, response.text
        return response.json()
    return _create
