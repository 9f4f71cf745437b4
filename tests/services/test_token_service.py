"""Tests for token_service session and reset tokens."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from booktech.services import token_service


@pytest.fixture(autouse=True)
def secret(monkeypatch):
    monkeypatch.setenv("BOOKTECH_SECRET_KEY", "test-secret")
    monkeypatch.delenv("BOOKTECH_TOKEN_TTL_DAYS", raising=False)
    monkeypatch.delenv("BOOKTECH_RESET_TOKEN_TTL_HOURS", raising=False)


def test_session_token_round_trip_normalizes_email():
    token = token_service.issue_session_token({"id": 5, "email": "Reader@Example.com", "role": "author"})

    claims = token_service.decode_session_token(token)

    assert claims["user_id"] == 5
    assert claims["email"] == "reader@example.com"
    assert claims["role"] == "author"


def test_decode_rejects_tampered_token():
    token = token_service.issue_session_token({"id": 5, "email": "reader@example.com"})
    tampered = token[:-1] + ("A" if token[-1] != "A" else "B")

    with pytest.raises(token_service.TokenDecodeError):
        token_service.decode_session_token(tampered)


def test_token_from_another_secret_is_rejected(monkeypatch):
    token = token_service.issue_session_token({"id": 5, "email": "reader@example.com"})
    monkeypatch.setenv("BOOKTECH_SECRET_KEY", "rotated")
    with pytest.raises(token_service.TokenDecodeError):
        token_service.decode_session_token(token)


def test_reset_token_is_not_a_session_token():
    token = token_service.issue_reset_token(5, "reader@example.com", "hash-1")
    with pytest.raises(token_service.TokenDecodeError, match="wrong_token_kind"):
        token_service.decode_session_token(token)
    claims = token_service.decode_reset_token(token)
    assert claims["fingerprint"] == token_service.password_fingerprint("hash-1")


def test_reset_token_expiration_enforced(monkeypatch):
    issued = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    monkeypatch.setattr(token_service, "_utcnow", lambda: issued)
    token = token_service.issue_reset_token(5, "reader@example.com", "hash-1")

    monkeypatch.setattr(token_service, "_utcnow", lambda: issued + timedelta(hours=2))

    with pytest.raises(token_service.TokenExpiredError):
        token_service.decode_reset_token(token)


def test_session_token_lives_for_configured_days(monkeypatch):
    issued = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    monkeypatch.setattr(token_service, "_utcnow", lambda: issued)
    token = token_service.issue_session_token({"id": 5, "email": "reader@example.com"})

    monkeypatch.setattr(token_service, "_utcnow", lambda: issued + timedelta(days=6))
    assert token_service.decode_session_token(token)["user_id"] == 5

    monkeypatch.setattr(token_service, "_utcnow", lambda: issued + timedelta(days=8))
    with pytest.raises(token_service.TokenExpiredError):
        token_service.decode_session_token(token)
