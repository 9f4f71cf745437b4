"""Tests for cart_service server-side totals."""
from __future__ import annotations

from decimal import Decimal

import pytest

from booktech.db.engine import init_engine_once, reset_for_tests
from booktech.db.repositories import books_repo, users_repo
from booktech.services import cart_service


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    monkeypatch.delenv("BOOKTECH_TAX_RATE", raising=False)
    init_engine_once()
    yield
    reset_for_tests(drop=True)


def _book(price, *, status="approved", title="Book"):
    return books_repo.create_book(title=title, author="Writer", author_id=99, price=price, status=status)


def _user():
    return users_repo.create_user("reader@example.com", "hash", name="Reader")


def test_compute_totals_applies_tax_half_up():
    totals = cart_service.compute_totals([(10, 1), (15, 1)])
    assert totals["subtotal"] == Decimal("25.00")
    assert totals["tax"] == Decimal("4.50")
    assert totals["total"] == Decimal("29.50")


def test_compute_totals_respects_configured_rate(monkeypatch):
    monkeypatch.setenv("BOOKTECH_TAX_RATE", "0.05")
    totals = cart_service.compute_totals([("19.99", 3)])
    assert totals["subtotal"] == Decimal("59.97")
    assert totals["tax"] == Decimal("3.00")
    assert totals["total"] == Decimal("62.97")


def test_cart_mutations_return_server_totals():
    user = _user()
    ten, fifteen = _book(10.0, title="Ten"), _book(15.0, title="Fifteen")

    cart_service.add_to_cart(user.id, ten.id)
    cart = cart_service.add_to_cart(user.id, fifteen.id)

    assert cart["item_count"] == 2
    assert cart["subtotal"] == 25.0
    assert cart["tax"] == 4.5
    assert cart["total"] == 29.5
    assert cart["total"] == pytest.approx(sum(line["line_total"] for line in cart["items"]) * 1.18)


def test_adding_same_book_merges_quantity_and_update_to_zero_removes():
    user = _user()
    book = _book(12.5)

    cart_service.add_to_cart(user.id, book.id)
    cart = cart_service.add_to_cart(user.id, book.id, 2)
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 3
    assert cart["subtotal"] == 37.5

    cart = cart_service.update_quantity(user.id, cart["items"][0]["id"], 0)
    assert cart["items"] == []
    assert cart["total"] == 0.0


def test_unapproved_books_cannot_be_added():
    user = _user()
    pending = _book(5.0, status="pending")
    with pytest.raises(cart_service.BookUnavailableError):
        cart_service.add_to_cart(user.id, pending.id)


def test_remove_unknown_item_raises():
    user = _user()
    with pytest.raises(cart_service.CartItemNotFoundError):
        cart_service.remove_item(user.id, 1234)
