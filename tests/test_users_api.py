import time
import uuid

import pytest

from usermanager.services.users import user_service


def test_create_then_get_returns_same_user(client, admin_headers, create_user):
    created = create_user(name="Grace Hopper", email="Grace@Navy.example.com", age=85)
    user = created["data"]["user"]

    assert created["status"] == "success"
    assert created["message"] == "User created successfully"
    assert user["email"] == "grace@navy.example.com"
    assert user["ageCategory"] == "Senior"
    assert user["createdAt"] and user["updatedAt"]

    response = client.get(f"/api/users/{user['id']}", headers=admin_headers)

    assert response.status_code == 200
    fetched = response.json()["data"]["user"]
    assert (fetched["name"], fetched["email"], fetched["age"]) == ("Grace Hopper", "grace@navy.example.com", 85)
    assert fetched["ageCategory"] == "Senior"


def test_user_without_age_is_not_specified(create_user):
    user = create_user(name="No Age")["data"]["user"]

    assert user["age"] is None
    assert user["ageCategory"] == "Not specified"


def test_duplicate_email_is_case_insensitive(create_user):
    create_user(email="dup@example.com")

    conflict = create_user(name="Someone Else", email="DUP@Example.com", expected=409)

    assert conflict == {"status": "error", "message": "User with this email already exists"}


def test_create_reports_validation_errors(client, admin_headers):
    response = client.post("/api/users", json={"name": "X1", "email": "x", "age": -3}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["errors"] == [
        {"field": "name", "message": "Name can only contain letters and spaces"},
        {"field": "email", "message": "Please provide a valid email address"},
        {"field": "age", "message": "Age must be a number between 0 and 150"},
    ]


def test_missing_token_wins_over_validation_errors(client):
    response = client.post("/api/users", json={"name": "1"})

    assert response.status_code == 401
    body = response.json()
    assert body["message"] == "Access token is required"
    assert "errors" not in body


def test_non_admin_cannot_create(client, member_headers, admin_headers):
    response = client.post("/api/users", json={"name": "Blocked", "email": "blocked@example.com"}, headers=member_headers)

    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Insufficient permissions."

    listing = client.get("/api/users", headers=admin_headers).json()["data"]
    assert listing["pagination"]["totalUsers"] == 0


def test_non_admin_forbidden_before_validation(client, member_headers):
    response = client.post("/api/users", json={}, headers=member_headers)

    assert response.status_code == 403


@pytest.mark.parametrize("method,path", [
    ("get", "/api/users"),
    ("get", "/api/users/stats"),
    ("put", f"/api/users/{uuid.uuid4()}"),
    ("delete", f"/api/users/{uuid.uuid4()}"),
])
def test_admin_only_routes(client, member_headers, method, path):
    response = client.request(method.upper(), path, headers=member_headers, json={})

    assert response.status_code == 403


def test_non_admin_can_read_single_user(client, create_user, member_headers):
    user = create_user()["data"]["user"]

    response = client.get(f"/api/users/{user['id']}", headers=member_headers)

    assert response.status_code == 200
    assert response.json()["data"]["user"]["email"] == "jane@example.com"


def test_get_unknown_user_is_404(client, admin_headers):
    response = client.get(f"/api/users/{uuid.uuid4()}", headers=admin_headers)

    assert response.status_code == 404
    assert response.json() == {"status": "error", "message": "User not found"}


def test_malformed_id_is_400(client, admin_headers):
    response = client.get("/api/users/12345", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["errors"] == [{"field": "id", "message": "Invalid user ID format"}]


@pytest.mark.parametrize("age,category", [(17, "Minor"), (18, "Adult"), (64, "Adult"), (65, "Senior")])
def test_partial_update_of_age(client, admin_headers, create_user, age, category):
    user = create_user(name="Jane Doe", email="jane@example.com", age=30)["data"]["user"]

    response = client.put(f"/api/users/{user['id']}", json={"age": age}, headers=admin_headers)

    assert response.status_code == 200
    updated = response.json()["data"]["user"]
    assert updated["name"] == "Jane Doe"
    assert updated["email"] == "jane@example.com"
    assert updated["age"] == age
    assert updated["ageCategory"] == category
    assert updated["createdAt"] == user["createdAt"]


def test_update_refreshes_updated_at(client, admin_headers, create_user):
    user = create_user(name="Jane Doe", email="jane@example.com", age=30)["data"]["user"]
    time.sleep(0.05)

    response = client.put(f"/api/users/{user['id']}", json={"age": 31}, headers=admin_headers)

    updated = response.json()["data"]["user"]
    assert updated["updatedAt"] != user["updatedAt"]
    assert updated["createdAt"] == user["createdAt"]


def test_update_to_taken_email_conflicts(client, admin_headers, create_user):
    create_user(name="First", email="first@example.com")
    second = create_user(name="Second", email="second@example.com")["data"]["user"]

    response = client.put(f"/api/users/{second['id']}", json={"email": "FIRST@example.com"}, headers=admin_headers)

    assert response.status_code == 409


def test_update_with_own_email_is_allowed(client, admin_headers, create_user):
    user = create_user(name="Same", email="same@example.com")["data"]["user"]

    response = client.put(
        f"/api/users/{user['id']}", json={"email": "Same@Example.com", "name": "Same Again"}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["data"]["user"]["name"] == "Same Again"


def test_update_unknown_user_is_404(client, admin_headers):
    response = client.put(f"/api/users/{uuid.uuid4()}", json={"age": 20}, headers=admin_headers)

    assert response.status_code == 404


def test_update_combines_id_and_body_errors(client, admin_headers):
    response = client.put("/api/users/not-an-id", json={"age": "old"}, headers=admin_headers)

    assert response.status_code == 400
    assert [error["field"] for error in response.json()["errors"]] == ["id", "age"]


def test_delete_returns_summary_and_removes(client, admin_headers, create_user):
    user = create_user(name="Gone Soon", email="gone@example.com", age=40)["data"]["user"]

    response = client.delete(f"/api/users/{user['id']}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"]["deletedUser"] == {
        "id": user["id"], "name": "Gone Soon", "email": "gone@example.com",
    }
    assert client.get(f"/api/users/{user['id']}", headers=admin_headers).status_code == 404
    assert client.delete(f"/api/users/{user['id']}", headers=admin_headers).status_code == 404


def _letters(index):
    # Names only allow letters and spaces
    return "".join(chr(ord("a") + int(digit)) for digit in f"{index:02d}")


def test_list_second_page(client, admin_headers, create_user):
    for index in range(25):
        create_user(name=f"User {_letters(index)}", email=f"user{index}@example.com", age=20 + index)

    response = client.get("/api/users", params={"page": 2, "limit": 10}, headers=admin_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["users"]) == 10
    assert data["pagination"] == {
        "currentPage": 2,
        "totalPages": 3,
        "totalUsers": 25,
        "hasNextPage": True,
        "hasPrevPage": True,
        "limit": 10,
    }
    assert all("ageCategory" not in user for user in data["users"])


def test_list_defaults_and_echoed_filters(client, admin_headers, create_user):
    create_user()

    data = client.get("/api/users", headers=admin_headers).json()["data"]

    assert data["pagination"]["currentPage"] == 1
    assert data["pagination"]["limit"] == 10
    assert data["pagination"]["hasPrevPage"] is False
    assert data["pagination"]["hasNextPage"] is False
    assert data["filters"] == {
        "ageMin": None, "ageMax": None, "search": None, "sortBy": "createdAt", "sortOrder": "desc",
    }


def test_list_empty_store(client, admin_headers):
    data = client.get("/api/users", headers=admin_headers).json()["data"]

    assert data["users"] == []
    assert data["pagination"]["totalPages"] == 0
    assert data["pagination"]["hasNextPage"] is False


def test_list_filters_by_inclusive_age_range(client, admin_headers, create_user):
    for name, age in (("Kid", 10), ("Teen", 18), ("Mid", 40), ("Old", 65), ("Unknown", None)):
        create_user(name=name, email=f"{name.lower()}@example.com", age=age)

    response = client.get(
        "/api/users", params={"ageMin": 18, "ageMax": 65, "sortBy": "age", "sortOrder": "asc"}, headers=admin_headers
    )

    data = response.json()["data"]
    assert [user["name"] for user in data["users"]] == ["Teen", "Mid", "Old"]
    assert data["filters"]["ageMin"] == 18
    assert data["filters"]["ageMax"] == 65
    assert data["filters"]["sortOrder"] == "asc"


def test_list_search_matches_name_or_email_case_insensitively(client, admin_headers, create_user):
    create_user(name="Alice Smith", email="alice@example.com")
    create_user(name="Bob Jones", email="bob@smithfamily.example.com")
    create_user(name="Carol White", email="carol@example.com")

    data = client.get(
        "/api/users", params={"search": "SMITH", "sortBy": "name", "sortOrder": "asc"}, headers=admin_headers
    ).json()["data"]

    assert [user["name"] for user in data["users"]] == ["Alice Smith", "Bob Jones"]
    assert data["pagination"]["totalUsers"] == 2
    assert data["filters"]["search"] == "SMITH"


def test_list_search_treats_wildcards_literally(client, admin_headers, create_user):
    create_user(name="Plain Name", email="plain@example.com")

    data = client.get("/api/users", params={"search": "%"}, headers=admin_headers).json()["data"]

    assert data["users"] == []


def test_list_sorts_descending_by_name(client, admin_headers, create_user):
    for name in ("Anna", "Cleo", "Bert"):
        create_user(name=name, email=f"{name.lower()}@example.com")

    data = client.get("/api/users", params={"sortBy": "name"}, headers=admin_headers).json()["data"]

    assert [user["name"] for user in data["users"]] == ["Cleo", "Bert", "Anna"]


def test_list_rejects_bad_query(client, admin_headers):
    response = client.get("/api/users", params={"limit": 0, "sortBy": "password"}, headers=admin_headers)

    assert response.status_code == 400
    assert [error["field"] for error in response.json()["errors"]] == ["limit", "sortBy"]


def test_list_rejects_page_beyond_limit(client, admin_headers):
    response = client.get("/api/users", params={"page": "100000000000000000000"}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["errors"] == [{"field": "page", "message": "Page must not exceed 1000000"}]


def test_stats_on_empty_store(client, admin_headers):
    response = client.get("/api/users/stats", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["overview"] == {"totalUsers": 0, "avgAge": 0, "minAge": 0, "maxAge": 0}
    assert data["ageDistribution"] == []


def test_stats_overview_and_distribution(client, admin_headers, create_user):
    people = [("Ann", 10), ("Ben", 20), ("Cat", 25), ("Dan", 26), ("Eve", 70), ("Fay", 150), ("Gus", None)]
    for name, age in people:
        create_user(name=name, email=f"{name.lower()}@example.com", age=age)

    data = client.get("/api/users/stats", headers=admin_headers).json()["data"]

    assert data["overview"] == {"totalUsers": 7, "avgAge": 50.17, "minAge": 10, "maxAge": 150}
    assert data["ageDistribution"] == [
        {"bucket": 0, "count": 1, "users": [{"name": "Ann", "age": 10}]},
        {"bucket": 18, "count": 3, "users": [
            {"name": "Ben", "age": 20}, {"name": "Cat", "age": 25}, {"name": "Dan", "age": 26},
        ]},
        {"bucket": 65, "count": 1, "users": [{"name": "Eve", "age": 70}]},
        {"bucket": "Other", "count": 1, "users": [{"name": "Fay", "age": 150}]},
    ]


def test_stats_without_any_ages(client, admin_headers, create_user):
    create_user(name="Ageless", email="ageless@example.com")

    overview = client.get("/api/users/stats", headers=admin_headers).json()["data"]["overview"]

    assert overview == {"totalUsers": 1, "avgAge": 0, "minAge": 0, "maxAge": 0}


def test_store_failure_is_reported_generically(client, admin_headers, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("connection refused by db-primary:5432")

    monkeypatch.setattr(user_service, "list_users", broken)

    response = client.get("/api/users", headers=admin_headers)

    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Internal server error while retrieving users"}


def test_create_failure_is_reported_generically(client, admin_headers, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(user_service, "create_user", broken)

    response = client.post("/api/users", json={"name": "Jane", "email": "jane@example.com"}, headers=admin_headers)

    assert response.status_code == 500
    assert "disk full" not in response.text
