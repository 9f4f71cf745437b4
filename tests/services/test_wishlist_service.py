"""Tests for wishlist_service."""
from __future__ import annotations

import pytest

from booktech.db.engine import init_engine_once, reset_for_tests
from booktech.db.repositories import books_repo, users_repo
from booktech.services import wishlist_service


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    monkeypatch.delenv("BOOKTECH_TAX_RATE", raising=False)
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def reader():
    return users_repo.create_user("reader@example.com", "hash")


@pytest.fixture
def book():
    return books_repo.create_book(title="Saved", author="Ada", author_id=1, price=10.0, status="approved")


def test_add_is_idempotent(reader, book):
    assert wishlist_service.add(reader.id, book.id)["created"] is True
    assert wishlist_service.add(reader.id, book.id)["created"] is False
    items = wishlist_service.list_wishlist(reader.id)
    assert [item["book"]["title"] for item in items] == ["Saved"]


def test_unknown_book_and_missing_item(reader):
    with pytest.raises(wishlist_service.WishlistError, match="book_not_found"):
        wishlist_service.add(reader.id, 404)
    with pytest.raises(wishlist_service.WishlistError, match="wishlist_item_not_found"):
        wishlist_service.remove(reader.id, 404)


def test_move_to_cart(reader, book):
    wishlist_service.add(reader.id, book.id)

    cart = wishlist_service.move_to_cart(reader.id, book.id)

    assert cart["item_count"] == 1
    assert cart["total"] == 11.8
    assert wishlist_service.list_wishlist(reader.id) == []
