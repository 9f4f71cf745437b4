"""Tests for books_service moderation, visibility and reviews."""
from __future__ import annotations

import pytest

from booktech.db.engine import init_engine_once, reset_for_tests
from booktech.db.repositories import users_repo
from booktech.services import books_service


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def author():
    return users_repo.create_user("author@example.com", "hash", name="Ada", role="author").as_dict()


def test_new_books_wait_for_approval(author):
    book = books_service.create_book(
        author,
        {"title": "Alpha", "price": "12.50", "category": "Fiction", "content": [{"title": "One", "pages": ["a", "b"]}]},
    )

    assert book["status"] == "pending"
    assert book["author"] == "Ada"
    assert book["total_pages"] == 2
    assert books_service.list_approved() == []
    with pytest.raises(books_service.BookAccessError):
        books_service.get_book(book["id"], None)
    assert books_service.get_book(book["id"], author)["title"] == "Alpha"

    books_service.set_status(book["id"], "approved")

    assert [b["id"] for b in books_service.list_approved(category="fiction")] == [book["id"]]
    assert [b["id"] for b in books_service.list_approved(search="alp")] == [book["id"]]


def test_title_is_required(author):
    with pytest.raises(books_service.BookValidationError, match="title_required"):
        books_service.create_book(author, {"title": "  "})


def test_authors_only_edit_their_own_books(author):
    other = users_repo.create_user("other@example.com", "hash", role="author").as_dict()
    book = books_service.create_book(author, {"title": "Alpha", "price": 5})
    with pytest.raises(books_service.BookNotFoundError):
        books_service.update_own_book(other["id"], book["id"], {"title": "Stolen"})
    updated = books_service.update_own_book(author["id"], book["id"], {"title": "Alpha 2"})
    assert updated["title"] == "Alpha 2"


def test_reviews_update_average_and_are_unique(author):
    book = books_service.create_book(author, {"title": "Alpha", "price": 5})
    first = users_repo.create_user("r1@example.com", "hash", name="R1")
    second = users_repo.create_user("r2@example.com", "hash", name="R2")

    books_service.add_review(book["id"], first.id, 5, "Great")
    result = books_service.add_review(book["id"], second.id, 2)

    assert result["rating"] == 3.5
    assert result["total_reviews"] == 2
    with pytest.raises(books_service.DuplicateReviewError):
        books_service.add_review(book["id"], first.id, 1)
    with pytest.raises(books_service.BookValidationError, match="rating_out_of_range"):
        books_service.add_review(book["id"], first.id, 6)
    assert {r["user_name"] for r in books_service.list_reviews(book["id"])} == {"R1", "R2"}


def test_admin_review_edit_and_delete_are_logged(author):
    book = books_service.create_book(author, {"title": "Alpha", "price": 5})
    reader = users_repo.create_user("r1@example.com", "hash", name="R1")
    other = users_repo.create_user("r2@example.com", "hash", name="R2")
    review = books_service.add_review(book["id"], reader.id, 1, "Rubbish, buy elsewhere!!")["review"]
    books_service.add_review(book["id"], other.id, 5)

    edited = books_service.moderate_review(
        99, review["id"], {"rating": 3, "comment": "Not for me", "reason": "Abusive wording"}
    )

    assert edited["rating"] == 4.0
    assert edited["log"]["action_type"] == "edit"
    assert edited["log"]["old_value"] == {"rating": 1, "comment": "Rubbish, buy elsewhere!!"}
    assert edited["log"]["new_value"] == {"rating": 3, "comment": "Not for me"}
    assert edited["log"]["target_user_id"] == reader.id
    assert edited["log"]["moderator_id"] == 99

    removed = books_service.remove_review(99, review["id"], "Spam")

    assert removed["total_reviews"] == 1
    assert removed["rating"] == 5.0
    assert removed["log"]["old_value"] == {"rating": 3, "comment": "Not for me"}
    assert removed["log"]["new_value"] is None
    assert [r["user_id"] for r in books_service.list_reviews(book["id"])] == [other.id]
    logs = books_service.list_moderation_logs(book["id"])
    assert [log["action_type"] for log in logs] == ["delete", "edit"]
    assert [log["action_type"] for log in books_service.list_moderation_logs(action_type="edit")] == ["edit"]


def test_moderating_missing_review_or_empty_edit_is_refused(author):
    book = books_service.create_book(author, {"title": "Alpha", "price": 5})
    review = books_service.add_review(book["id"], author["id"], 4)["review"]

    with pytest.raises(books_service.ReviewNotFoundError):
        books_service.remove_review(1, 4040)
    with pytest.raises(books_service.BookValidationError, match="nothing_to_update"):
        books_service.moderate_review(1, review["id"], {"reason": "just because"})
    with pytest.raises(books_service.BookValidationError, match="rating_out_of_range"):
        books_service.moderate_review(1, review["id"], {"rating": 0})
    assert books_service.list_moderation_logs() == []


def test_viewing_an_approved_book_counts_a_view(author):
    book = books_service.create_book(author, {"title": "Alpha", "price": 5})
    books_service.set_status(book["id"], "approved")

    assert books_service.get_book(book["id"], None)["views"] == 1
    assert books_service.get_book(book["id"], {"id": 555, "role": "customer"})["views"] == 2
    assert books_service.get_book(book["id"], author)["views"] == 2
