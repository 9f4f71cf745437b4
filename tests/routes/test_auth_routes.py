"""HTTP tests for signup, signin, /me and the health probe."""
from __future__ import annotations

import pytest

from booktech.db.engine import reset_for_tests
from booktech.startup import create_app


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    monkeypatch.delenv("BOOKTECH_ADMIN_PASSWORD", raising=False)
    monkeypatch.delenv("RAZORPAY_KEY_ID", raising=False)
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def client():
    return create_app({"TESTING": True}).test_client()


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["db"] is True
    assert body["payments"] == "demo"


def test_signup_then_me(client):
    resp = client.post(
        "/api/auth/signup",
        json={"email": "Reader@Example.com", "password": "secret1", "name": "Reader"},
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["user"]["email"] == "reader@example.com"
    assert body["user"]["role"] == "customer"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.get_json()["email"] == "reader@example.com"


def test_duplicate_signup_conflicts(client):
    payload = {"email": "dup@example.com", "password": "secret1"}
    assert client.post("/api/auth/signup", json=payload).status_code == 201
    resp = client.post("/api/auth/signup", json=payload)
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "email_in_use"


def test_signup_rejects_admin_role(client):
    resp = client.post(
        "/api/auth/signup", json={"email": "x@example.com", "password": "secret1", "role": "admin"}
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "role_not_allowed"


def test_signin_with_wrong_password(client):
    client.post("/api/auth/signup", json={"email": "r@example.com", "password": "secret1"})
    resp = client.post("/api/auth/signin", json={"email": "r@example.com", "password": "nope123"})
    assert resp.status_code == 401
    ok = client.post("/api/auth/signin", json={"email": "r@example.com", "password": "secret1"})
    assert ok.status_code == 200
    assert ok.get_json()["token"]


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    bad = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert bad.status_code == 401


def test_unknown_route_is_json(client):
    resp = client.get("/api/does-not-exist")
    assert resp.status_code == 404
    assert resp.is_json


def test_profile_update(client):
    first = client.post("/api/auth/signup", json={"email": "one@example.com", "password": "secret1"}).get_json()
    client.post("/api/auth/signup", json={"email": "two@example.com", "password": "secret1"})
    headers = {"Authorization": f"Bearer {first['token']}"}

    resp = client.put(
        "/api/users/profile",
        json={"name": "One", "avatar": "https://cdn.example.com/a.png"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.get_json()["avatar"] == "https://cdn.example.com/a.png"

    bad = client.put("/api/users/profile", json={"avatar": "not a url"}, headers=headers)
    assert bad.status_code == 400
    taken = client.put("/api/users/profile", json={"email": "two@example.com"}, headers=headers)
    assert taken.status_code == 409
    assert client.get("/api/users/profile", headers=headers).get_json()["name"] == "One"
