"""Tests for subscription plans and paid subscriptions."""
from __future__ import annotations

import pytest

from booktech.db.engine import init_engine_once, reset_for_tests
from booktech.db.repositories import users_repo
from booktech.services import payment_gateway, subscription_service


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    for name in ("RAZORPAY_KEY_ID", "RAZORPAY_KEY_SECRET"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BOOKTECH_DEMO_ORDERS", "true")
    init_engine_once()
    subscription_service.seed_default_plans()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def reader():
    return users_repo.create_user("reader@example.com", "hash", name="Reader").as_dict()


def test_default_plans_are_seeded_once():
    subscription_service.seed_default_plans()
    plans = subscription_service.list_plans()
    assert [p["name"] for p in plans] == ["Basic", "Premium", "Enterprise"]
    assert [p["is_popular"] for p in plans] == [False, True, False]


def test_plan_names_are_restricted():
    with pytest.raises(subscription_service.SubscriptionValidationError, match="plan_name_invalid"):
        subscription_service.create_plan({"name": "Gold", "price": 5})
    with pytest.raises(subscription_service.SubscriptionValidationError, match="price_invalid"):
        subscription_service.create_plan({"name": "Basic", "price": 0})
    with pytest.raises(subscription_service.SubscriptionError, match="plan_exists"):
        subscription_service.create_plan({"name": "Premium", "price": 25})


def test_update_and_delete_plan():
    plan = subscription_service.list_plans()[0]
    updated = subscription_service.update_plan(plan["id"], {"price": 12.5, "features": ["Everything"]})
    assert updated["price"] == 12.5
    assert updated["features"] == ["Everything"]

    subscription_service.delete_plan(plan["id"])
    with pytest.raises(subscription_service.PlanNotFoundError):
        subscription_service.delete_plan(plan["id"])


def test_subscribe_and_cancel(reader):
    assert subscription_service.subscribe(reader["id"], "Basic") == {"subscription": "basic"}
    with pytest.raises(subscription_service.SubscriptionValidationError):
        subscription_service.subscribe(reader["id"], "none")
    assert subscription_service.cancel(reader["id"]) == {"subscription": "none"}


def test_paid_subscription_falls_back_to_demo(reader):
    result = subscription_service.subscribe_with_payment(reader, "enterprise")

    assert result["status"] == "demo"
    assert result["subscription"] == "enterprise"
    assert users_repo.get_user(reader["id"]).subscription == "enterprise"


def test_paid_subscription_without_demo_fails(monkeypatch, reader):
    monkeypatch.setenv("BOOKTECH_DEMO_ORDERS", "false")
    with pytest.raises(subscription_service.GatewayUnavailableError):
        subscription_service.subscribe_with_payment(reader, "premium")
    assert users_repo.get_user(reader["id"]).subscription == "none"


def test_apply_paid_subscription_ignores_unknown_plan(reader):
    prefix = payment_gateway.SUBSCRIPTION_PREFIX
    assert subscription_service.apply_paid_subscription("reader@example.com", f"{prefix} platinum") is None
    assert subscription_service.apply_paid_subscription("READER@example.com", f"{prefix} Basic") == reader["id"]
    assert users_repo.get_user(reader["id"]).subscription == "basic"
