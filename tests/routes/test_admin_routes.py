"""HTTP tests for the admin surface: role gating, users and payouts."""
from __future__ import annotations

import pytest

from booktech.db.engine import reset_for_tests
from booktech.db.repositories import books_repo, ledger_repo
from booktech.startup import create_app

ADMIN_EMAIL = "root@booktech.test"
ADMIN_PASSWORD = "admin-pass"
BANK = {"account_holder": "Ada Author", "account_number": "000123", "ifsc": "BANK0001"}


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    monkeypatch.setenv("BOOKTECH_ADMIN_EMAIL", ADMIN_EMAIL)
    monkeypatch.setenv("BOOKTECH_ADMIN_PASSWORD", ADMIN_PASSWORD)
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def client():
    return create_app({"TESTING": True}).test_client()


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client):
    resp = client.post("/api/auth/signin", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return _bearer(resp.get_json()["token"])


@pytest.fixture
def author(client):
    resp = client.post(
        "/api/auth/signup",
        json={"email": "author@example.com", "password": "secret1", "name": "Ada", "role": "author"},
    )
    body = resp.get_json()
    return body["user"], _bearer(body["token"])


def test_customer_is_forbidden(client):
    resp = client.post("/api/auth/signup", json={"email": "c@example.com", "password": "secret1"})
    headers = _bearer(resp.get_json()["token"])

    assert client.get("/api/admin/users", headers=headers).status_code == 403
    assert client.get("/api/admin/users").status_code == 401


def test_admin_lists_and_deletes_users(client, admin_headers, author):
    user, _ = author

    users = client.get("/api/admin/users?role=author", headers=admin_headers).get_json()
    assert [u["email"] for u in users] == ["author@example.com"]

    assert client.delete(f"/api/admin/users/{user['id']}", headers=admin_headers).status_code == 200
    missing = client.delete(f"/api/admin/users/{user['id']}", headers=admin_headers)
    assert missing.status_code == 404


def test_admin_cannot_delete_self(client, admin_headers):
    me = client.get("/api/auth/me", headers=admin_headers).get_json()
    resp = client.delete(f"/api/admin/users/{me['id']}", headers=admin_headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "cannot_delete_self"


def test_settlement_review_flow(client, admin_headers, author):
    user, author_headers = author
    ledger_repo.add_transaction(user["id"], "credit", 500, "Sale of Alpha")

    created = client.post(
        "/api/users/settlement-requests", json={"amount": 200, "bankDetails": BANK}, headers=author_headers
    )
    assert created.status_code == 201
    settlement_id = created.get_json()["id"]
    assert client.get("/api/users/wallet", headers=author_headers).get_json()["balance"] == 300.0

    no_reason = client.patch(
        f"/api/admin/settlement-requests/{settlement_id}/reject", json={}, headers=admin_headers
    )
    assert no_reason.status_code == 400
    rejected = client.patch(
        f"/api/admin/settlement-requests/{settlement_id}/reject",
        json={"reason": "Account closed"},
        headers=admin_headers,
    )
    assert rejected.get_json()["status"] == "rejected"

    again = client.patch(
        f"/api/admin/settlement-requests/{settlement_id}/approve", headers=admin_headers
    )
    assert again.status_code == 409
    assert client.get("/api/users/wallet", headers=author_headers).get_json()["balance"] == 500.0


def test_settlement_over_balance_conflicts(client, author):
    _, author_headers = author
    resp = client.post(
        "/api/users/settlement-requests", json={"amount": 200, "bank_details": BANK}, headers=author_headers
    )
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "insufficient_balance"


def test_analytics(client, admin_headers, author):
    body = client.get("/api/admin/analytics", headers=admin_headers).get_json()
    assert body["user_counts"]["author"] == 1
    assert body["book_count"] == 0


def test_admin_review_moderation_is_logged(client, admin_headers, author):
    user, _ = author
    book = books_repo.create_book(title="Alpha", author="Ada", author_id=user["id"], price=5.0, status="approved")
    reader = client.post("/api/auth/signup", json={"email": "r@example.com", "password": "secret1"})
    reader_headers = _bearer(reader.get_json()["token"])
    posted = client.post(
        f"/api/books/{book.id}/reviews", json={"rating": 1, "comment": "Awful!!!"}, headers=reader_headers
    )
    review_id = posted.get_json()["review"]["id"]

    assert client.put(f"/api/admin/reviews/{review_id}", json={"rating": 2}, headers=reader_headers).status_code == 403
    edited = client.put(
        f"/api/admin/reviews/{review_id}",
        json={"comment": "Not for me", "reason": "Tone"},
        headers=admin_headers,
    )
    assert edited.status_code == 200
    removed = client.delete(f"/api/admin/reviews/{review_id}", json={"reason": "Spam"}, headers=admin_headers)
    assert removed.get_json()["total_reviews"] == 0
    assert client.delete(f"/api/admin/reviews/{review_id}", headers=admin_headers).status_code == 404

    logs = client.get(f"/api/admin/moderation-logs?book={book.id}", headers=admin_headers).get_json()
    assert [log["action_type"] for log in logs] == ["delete", "edit"]
    assert logs[1]["old_value"] == {"rating": 1, "comment": "Awful!!!"}
    assert logs[1]["new_value"] == {"rating": 1, "comment": "Not for me"}
    assert logs[0]["reason"] == "Spam"
    assert logs[0]["target_user_id"] == reader.get_json()["user"]["id"]
