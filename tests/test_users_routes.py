"""HTTP tests for registration, login and the health check."""
from __future__ import annotations


def test_health(client) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_register_login_me(client) -> None:
    r = client.post(
        "/users",
        json={"email": "carla@example.com", "password": "s3cret-pass", "name": "Carla", "role": "client"},
    )
    assert r.status_code == 201
    assert r.json()["role"] == "client"

    r = client.post("/users", json={"email": "carla@example.com", "password": "s3cret-pass", "role": "client"})
    assert r.status_code == 409

    r = client.post("/auth/login", data={"username": "carla@example.com", "password": "wrong-pass"})
    assert r.status_code == 401

    r = client.post("/auth/login", data={"username": "carla@example.com", "password": "s3cret-pass"})
    assert r.status_code == 200
    token = r.json()["access_token"]

    r = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["email"] == "carla@example.com"


def test_admin_cannot_self_register(client) -> None:
    r = client.post("/users", json={"email": "root@example.com", "password": "s3cret-pass", "role": "admin"})
    assert r.status_code == 403


def test_bad_token_401(client) -> None:
    r = client.get("/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
