"""HTTP tests for the payment gateway webhook."""
from __future__ import annotations

import json

import pytest

from booktech.db.engine import reset_for_tests
from booktech.db.repositories import users_repo
from booktech.services import payment_gateway
from booktech.startup import create_app

SECRET = "whsec_test"


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    monkeypatch.delenv("RAZORPAY_KEY_SECRET", raising=False)
    monkeypatch.setenv("RAZORPAY_WEBHOOK_SECRET", SECRET)
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def client():
    return create_app({"TESTING": True}).test_client()


def _post(client, body: dict, signature: str | None = None):
    raw = json.dumps(body).encode("utf-8")
    sig = signature if signature is not None else payment_gateway.compute_signature(raw, SECRET)
    return client.post(
        "/api/razorpay/webhook",
        data=raw,
        content_type="application/json",
        headers={payment_gateway.SIGNATURE_HEADER: sig},
    )


def test_unsigned_webhook_is_rejected(client):
    resp = _post(client, {"event": "payment_link.paid"}, signature="deadbeef")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "signature_invalid"


def test_webhook_without_secret_is_unavailable(client, monkeypatch):
    monkeypatch.delenv("RAZORPAY_WEBHOOK_SECRET", raising=False)
    resp = _post(client, {"event": "payment_link.paid"}, signature="deadbeef")
    assert resp.status_code == 503


def test_signed_subscription_webhook_upgrades_user(client):
    users_repo.create_user("reader@example.com", "hash", name="Reader")
    body = {
        "event": "payment_link.paid",
        "payload": {
            "payment_link": {
                "entity": {
                    "id": "plink_sub",
                    "description": "Subscription payment for plan: premium",
                    "customer": {"email": "reader@example.com"},
                }
            },
            "payment": {"entity": {"id": "pay_1"}},
        },
    }

    resp = _post(client, body)

    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"
    assert users_repo.get_user_by_email("reader@example.com").subscription == "premium"


def test_unrelated_event_is_acknowledged(client):
    resp = _post(client, {"event": "payment.authorized", "payload": {}})
    assert resp.status_code == 200
