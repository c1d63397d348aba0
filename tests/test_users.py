"""Tests for the users API."""

from sqlalchemy import select

from auth import verify_password
from models import User


def test_create_user_returns_generated_id(client):
    response = client.post("/api/users", json={
        "username": "alice",
        "email": "a@x.com",
        "password": "correct horse",
    })

    assert response.status_code == 201
    body = response.json()
    assert isinstance(body["id"], int)
    assert body["username"] == "alice"
    assert body["is_active"] is True
    assert "password" not in body
    assert "password_hash" not in body


def test_password_is_stored_hashed(client, db):
    client.post("/api/users", json={
        "username": "alice",
        "email": "a@x.com",
        "password": "correct horse",
    })

    stored = db.execute(select(User.password_hash).where(User.username == "alice")).scalar_one()
    assert stored != "correct horse"
    assert verify_password("correct horse", stored)


def test_duplicate_username_is_rejected(client, make_user):
    make_user("alice", email="a@x.com")

    response = client.post("/api/users", json={
        "username": "alice",
        "email": "other@x.com",
        "password": "another-pass",
    })

    assert response.status_code == 409
    assert response.json()["error"] == "duplicate"


def test_duplicate_email_is_rejected(client, make_user):
    make_user("alice", email="a@x.com")

    response = client.post("/api/users", json={
        "username": "bob",
        "email": "a@x.com",
        "password": "another-pass",
    })

    assert response.status_code == 409


def test_missing_fields_return_400(client):
    response = client.post("/api/users", json={"username": "alice"})

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_invalid_email_returns_400(client):
    response = client.post("/api/users", json={
        "username": "alice",
        "email": "not-an-email",
        "password": "long-enough",
    })

    assert response.status_code == 400


def test_get_unknown_user_returns_404(client):
    response = client.get("/api/users/999")

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_update_user_can_deactivate(client, make_user):
    user = make_user("alice")

    response = client.put(f"/api/users/{user['id']}", json={"is_active": False})

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    active = client.get("/api/users", params={"is_active": True}).json()
    assert active == []


def test_update_to_taken_username_conflicts(client, make_user):
    make_user("alice")
    bob = make_user("bob")

    response = client.put(f"/api/users/{bob['id']}", json={"username": "alice"})

    assert response.status_code == 409


def test_update_keeping_own_email_is_allowed(client, make_user):
    alice = make_user("alice", email="a@x.com")

    response = client.put(f"/api/users/{alice['id']}", json={
        "email": "a@x.com",
        "first_name": "Alice",
    })

    assert response.status_code == 200
    assert response.json()["first_name"] == "Alice"


def test_update_password_rehashes(client, db, make_user):
    alice = make_user("alice")

    client.put(f"/api/users/{alice['id']}", json={"password": "brand-new-secret"})

    stored = db.execute(select(User.password_hash).where(User.id == alice["id"])).scalar_one()
    assert verify_password("brand-new-secret", stored)


def test_list_users_is_paginated_in_id_order(client, make_user):
    ids = [make_user(f"user{i}")["id"] for i in range(5)]

    page = client.get("/api/users", params={"skip": 1, "limit": 2}).json()

    assert [u["id"] for u in page] == ids[1:3]


def test_delete_user(client, make_user):
    alice = make_user("alice")

    response = client.delete(f"/api/users/{alice['id']}")

    assert response.status_code == 200
    assert client.get(f"/api/users/{alice['id']}").status_code == 404
    assert client.delete(f"/api/users/{alice['id']}").status_code == 404


def test_update_with_null_for_required_field_returns_400(client, make_user):
    user = make_user("alice", email="a@x.com")

    for field in ("username", "email", "is_active"):
        response = client.put(f"/api/users/{user['id']}", json={field: None})
        assert response.status_code == 400, field
        assert response.json()["error"] == "validation_error"

    unchanged = client.get(f"/api/users/{user['id']}").json()
    assert (unchanged["username"], unchanged["email"]) == ("alice", "a@x.com")


def test_update_can_clear_optional_names(client, make_user):
    user = make_user("alice", email="a@x.com")
    client.put(f"/api/users/{user['id']}", json={"first_name": "Alice"})

    response = client.put(f"/api/users/{user['id']}", json={"first_name": None})

    assert response.status_code == 200
    assert response.json()["first_name"] is None
