import uuid
from datetime import timedelta
from types import SimpleNamespace

from conftest import ADMIN_PASSWORD, auth_header, register

from usermanager.models.admin import Role
from usermanager.services.tokens import token_service


def test_register_returns_admin_and_token(client):
    response = client.post("/api/auth/register", json={
        "username": "site_admin", "email": "Admin@Example.com", "password": ADMIN_PASSWORD,
    })

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "success"
    assert body["data"]["admin"]["email"] == "admin@example.com"
    assert body["data"]["admin"]["role"] == "admin"
    assert body["data"]["admin"]["isActive"] is True
    assert "passwordHash" not in body["data"]["admin"]
    assert body["data"]["token"]


def test_register_rejects_duplicate_email(client):
    register(client)

    response = client.post("/api/auth/register", json={
        "username": "other", "email": "ADMIN@example.com", "password": ADMIN_PASSWORD,
    })

    assert response.status_code == 409
    assert response.json() == {"status": "error", "message": "Admin with this email already exists"}


def test_register_reports_all_validation_errors(client):
    response = client.post("/api/auth/register", json={"username": "x", "email": "bad", "password": "short"})

    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "error"
    assert body["message"] == "Validation failed"
    assert [error["field"] for error in body["errors"]] == ["username", "email", "password", "password"]


def test_register_with_unparsable_body_is_a_validation_error(client):
    response = client.post(
        "/api/auth/register", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert {error["field"] for error in response.json()["errors"]} == {"username", "email", "password"}


def test_login_with_valid_credentials(client):
    register(client)

    response = client.post("/api/auth/login", json={"email": "ADMIN@example.com", "password": ADMIN_PASSWORD})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["admin"]["lastLoginAt"] is not None
    assert data["token"]


def test_login_with_wrong_password(client):
    register(client)

    response = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "Wrong123"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


def test_login_with_unknown_email(client):
    response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "Whatever1"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


def test_login_with_non_string_password_is_a_validation_error(client):
    register(client)

    response = client.post("/api/auth/login", json={"email": "admin@example.com", "password": 12345678})

    assert response.status_code == 400
    assert response.json()["errors"] == [{"field": "password", "message": "Password is required"}]


def test_login_rejects_deactivated_account(client, raw_db):
    register(client)
    raw_db.execute("UPDATE admins SET is_active = 0")
    raw_db.commit()

    response = client.post("/api/auth/login", json={"email": "admin@example.com", "password": ADMIN_PASSWORD})

    assert response.status_code == 401
    assert response.json()["message"] == "Account is deactivated"


def test_profile_returns_current_admin(client):
    token = register(client)["token"]

    response = client.get("/api/auth/profile", headers=auth_header(token))

    assert response.status_code == 200
    assert response.json()["data"]["admin"]["username"] == "site_admin"


def test_profile_requires_token(client):
    response = client.get("/api/auth/profile")

    assert response.status_code == 401
    assert response.json()["message"] == "Access token is required"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_non_bearer_scheme_is_treated_as_missing(client):
    token = register(client)["token"]

    for header in (f"Token {token}", f"bearer {token}", token):
        response = client.get("/api/auth/profile", headers={"Authorization": header})
        assert response.status_code == 401
        assert response.json()["message"] == "Access token is required"


def test_expired_token_message_differs_from_invalid(client):
    admin = register(client)["admin"]
    principal = SimpleNamespace(id=uuid.UUID(admin["id"]), email=admin["email"], role=Role.ADMIN)
    expired = token_service.issue(principal, expires_delta=timedelta(seconds=-10))

    expired_response = client.get("/api/auth/profile", headers=auth_header(expired))
    invalid_response = client.get("/api/auth/profile", headers=auth_header("garbage.token.value"))

    assert expired_response.status_code == 401
    assert expired_response.json()["message"] == "Token has expired"
    assert invalid_response.status_code == 401
    assert invalid_response.json()["message"] == "Invalid token"


def test_token_for_unknown_admin_is_rejected(client):
    ghost = SimpleNamespace(id=uuid.uuid4(), email="ghost@example.com", role=Role.ADMIN)

    response = client.get("/api/auth/profile", headers=auth_header(token_service.issue(ghost)))

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token or user no longer exists"


def test_deactivated_admin_token_stops_working(client, raw_db):
    token = register(client)["token"]
    raw_db.execute("UPDATE admins SET is_active = 0")
    raw_db.commit()

    response = client.get("/api/users/stats", headers=auth_header(token))

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token or user no longer exists"
