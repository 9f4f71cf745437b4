"""Tests for order fulfilment and delivery transitions."""
from __future__ import annotations

import pytest

from booktech.db.engine import init_engine_once, reset_for_tests
from booktech.db.repositories import notifications_repo, orders_repo, users_repo
from booktech.services import delivery_service, orders_service


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def people():
    return {
        "customer": users_repo.create_user("reader@example.com", "hash", name="Reader").as_dict(),
        "author": users_repo.create_user("author@example.com", "hash", role="author").as_dict(),
        "other_author": users_repo.create_user("other@example.com", "hash", role="author").as_dict(),
        "admin": users_repo.create_user("admin@example.com", "hash", role="admin").as_dict(),
        "courier": users_repo.create_user("courier@example.com", "hash", role="delivery_boy").as_dict(),
    }


@pytest.fixture
def order(people):
    row, _ = orders_repo.create_order(
        {"order_number": "BT0001", "user_id": people["customer"]["id"], "subtotal": 10.0, "tax": 1.8, "total": 11.8},
        [
            {"book_id": 1, "author_id": people["author"]["id"], "title": "Alpha", "author": "A", "price": 10.0, "quantity": 1},
        ],
    )
    return row


def test_author_moves_order_along_the_chain(people, order):
    author = people["author"]
    for status in ("confirmed", "processing", "shipped"):
        result = orders_service.update_status(order.id, status, author)
        assert result["status"] == status
    assert notifications_repo.unread_count(people["customer"]["id"]) == 3


def test_illegal_transition_is_refused(people, order):
    with pytest.raises(orders_service.OrderTransitionError):
        orders_service.update_status(order.id, "shipped", people["admin"])
    orders_service.update_status(order.id, "cancelled", people["admin"])
    with pytest.raises(orders_service.OrderTransitionError):
        orders_service.update_status(order.id, "confirmed", people["admin"])


def test_unrelated_author_cannot_touch_order(people, order):
    with pytest.raises(orders_service.OrderAccessError):
        orders_service.update_status(order.id, "confirmed", people["other_author"])
    with pytest.raises(orders_service.OrderAccessError):
        orders_service.get_order(order.id, people["other_author"])
    assert orders_service.get_order(order.id, people["customer"])["order_number"] == "BT0001"


def test_author_sees_only_own_items(people, order):
    orders = orders_service.author_orders(people["author"]["id"])
    assert [o["id"] for o in orders] == [order.id]
    assert orders_service.author_orders(people["other_author"]["id"]) == []


def test_delivery_flow_marks_order_delivered(people, order):
    delivery = delivery_service.assign(order.id, people["courier"]["id"], "Leave at door")
    courier_id = people["courier"]["id"]

    for status in ("picked_up", "in_transit", "delivered"):
        result = delivery_service.update_status(courier_id, delivery["id"], status)
        assert result["status"] == status

    assert orders_repo.get_order(order.id).status == "delivered"
    stats = delivery_service.stats(courier_id)
    assert stats["delivered"] == 1
    assert stats["total"] == 1


def test_delivery_rules(people, order):
    with pytest.raises(delivery_service.DeliveryError, match="delivery_boy_not_found"):
        delivery_service.assign(order.id, people["author"]["id"])
    delivery = delivery_service.assign(order.id, people["courier"]["id"])
    with pytest.raises(delivery_service.DeliveryError, match="order_already_assigned"):
        delivery_service.assign(order.id, people["courier"]["id"])
    with pytest.raises(delivery_service.DeliveryTransitionError):
        delivery_service.update_status(people["courier"]["id"], delivery["id"], "delivered")
    with pytest.raises(delivery_service.DeliveryNotFoundError):
        delivery_service.update_status(people["admin"]["id"], delivery["id"], "picked_up")
