"""HTTP tests for reading progress, stats and bookmarks."""
from __future__ import annotations

import pytest

from booktech.db.engine import reset_for_tests
from booktech.db.repositories import books_repo
from booktech.startup import create_app


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def client():
    return create_app({"TESTING": True}).test_client()


@pytest.fixture
def headers(client):
    resp = client.post("/api/auth/signup", json={"email": "reader@example.com", "password": "secret1"})
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}


@pytest.fixture
def book(client):
    return books_repo.create_book(
        title="Long Read", author="Ada", author_id=1, price=5.0, total_pages=200, status="approved"
    )


def test_progress_defaults_to_version_zero(client, headers, book):
    resp = client.get(f"/api/users/progress?book={book.id}", headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["page"] == 1
    assert body["version"] == 0


def test_progress_save_and_stale_write(client, headers, book):
    first = client.post("/api/users/progress", json={"book": book.id, "page": 120}, headers=headers)
    assert first.status_code == 200
    assert first.get_json()["version"] == 1
    second = client.post(
        "/api/users/progress", json={"book": book.id, "page": 130, "version": 1}, headers=headers
    )
    assert second.get_json()["version"] == 2

    stale = client.post(
        "/api/users/progress", json={"book": book.id, "page": 80, "version": 1}, headers=headers
    )

    assert stale.status_code == 409
    body = stale.get_json()
    assert body["stale"] is True
    assert body["page"] == 130
    assert body["version"] == 2


def test_progress_page_is_clamped(client, headers, book):
    resp = client.post("/api/users/progress", json={"book": book.id, "page": 999}, headers=headers)
    body = resp.get_json()
    assert body["page"] == 200
    assert body["percent"] == 100


def test_progress_without_page_is_rejected(client, headers, book):
    client.post("/api/users/progress", json={"book": book.id, "page": 42}, headers=headers)

    resp = client.post("/api/users/progress", json={"book": book.id}, headers=headers)

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "page_required"
    saved = client.get(f"/api/users/progress?book={book.id}", headers=headers).get_json()
    assert saved["page"] == 42
    assert saved["version"] == 1


def test_progress_for_unknown_book_is_not_stored(client, headers):
    resp = client.post(
        "/api/users/progress", json={"book": 4040, "page": 3, "totalPages": 50}, headers=headers
    )

    assert resp.status_code == 404
    assert resp.get_json()["error"] == "book_not_found"
    assert client.get("/api/users/progress", headers=headers).get_json() == []


def test_progress_requires_login(client, book):
    assert client.post("/api/users/progress", json={"book": book.id, "page": 3}).status_code == 401


def test_reading_stats_accumulate(client, headers, book):
    client.post(
        "/api/users/reading-stats", json={"bookId": book.id, "readingTime": 3, "pagesRead": 6}, headers=headers
    )
    client.post("/api/users/reading-stats", json={"book_id": book.id, "reading_time": 2}, headers=headers)

    stats = client.get("/api/users/reading-stats", headers=headers).get_json()

    assert stats["reading_time"] == 5
    assert stats["pages_read"] == 10
    assert stats["books_read"] == 1
    assert stats["current_streak"] == 1


def test_bookmark_toggle(client, headers, book):
    on = client.post("/api/users/bookmarks", json={"book": book.id, "page": 12}, headers=headers)
    assert on.status_code == 200
    listed = client.get(f"/api/users/bookmarks?book={book.id}", headers=headers).get_json()
    assert listed["bookmarks"] == [12]

    client.post("/api/users/bookmarks", json={"book": book.id, "page": 12}, headers=headers)
    listed = client.get(f"/api/users/bookmarks?book={book.id}", headers=headers).get_json()
    assert listed["bookmarks"] == []


def test_bookmarks_need_book_param(client, headers):
    assert client.get("/api/users/bookmarks", headers=headers).status_code == 400
