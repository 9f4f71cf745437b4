"""Tests for auth_service signup, signin and password flows."""
from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest

from booktech.db.engine import init_engine_once, reset_for_tests
from booktech.db.repositories import users_repo
from booktech.services import auth_service, token_service, wallet_service


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    monkeypatch.setenv("BOOKTECH_SECRET_KEY", "test-secret")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


def _token_from(link: str) -> str:
    return parse_qs(urlparse(link).query)["token"][0]


def test_signup_returns_token_for_new_user():
    result = auth_service.signup(email=" Reader@Example.com ", password="secret1", name="Reader")

    assert result["user"]["email"] == "reader@example.com"
    assert result["user"]["role"] == "customer"
    claims = token_service.decode_session_token(result["token"])
    assert claims["user_id"] == result["user"]["id"]


def test_signup_rules():
    auth_service.signup(email="reader@example.com", password="secret1")
    with pytest.raises(auth_service.EmailInUseError):
        auth_service.signup(email="READER@example.com", password="secret1")
    with pytest.raises(auth_service.AuthValidationError, match="password_too_short"):
        auth_service.signup(email="new@example.com", password="123")
    with pytest.raises(auth_service.AuthValidationError, match="role_not_allowed"):
        auth_service.signup(email="new@example.com", password="secret1", role="admin")


def test_signup_with_referral_code_rewards_both():
    referrer = auth_service.signup(email="ref@example.com", password="secret1")["user"]
    code = wallet_service.create_referral_code(referrer["id"], reward_amount=50)["code"]

    result = auth_service.signup(email="new@example.com", password="secret1", referral_code=code)

    assert result["referral"]["referrer_id"] == referrer["id"]
    assert wallet_service.get_wallet(referrer["id"])["balance"] == 50.0
    assert wallet_service.get_wallet(result["user"]["id"])["balance"] == 50.0


def test_bad_referral_code_does_not_block_signup():
    result = auth_service.signup(email="new@example.com", password="secret1", referral_code="NOPE0000")
    assert result["referral_error"] == "referral_code_invalid"
    assert users_repo.get_user_by_email("new@example.com") is not None


def test_signin_checks_password():
    auth_service.signup(email="reader@example.com", password="secret1")
    assert auth_service.signin(email="reader@example.com", password="secret1")["token"]
    with pytest.raises(auth_service.InvalidCredentialsError):
        auth_service.signin(email="reader@example.com", password="wrong!!")
    with pytest.raises(auth_service.InvalidCredentialsError):
        auth_service.signin(email="ghost@example.com", password="secret1")


def test_change_password_requires_current_password():
    user = auth_service.signup(email="reader@example.com", password="secret1")["user"]
    with pytest.raises(auth_service.InvalidCredentialsError):
        auth_service.change_password(user["id"], "nope", "newsecret")
    auth_service.change_password(user["id"], "secret1", "newsecret")
    assert auth_service.signin(email="reader@example.com", password="newsecret")["user"]["id"] == user["id"]


def test_reset_token_works_once():
    auth_service.signup(email="reader@example.com", password="secret1")
    assert auth_service.forgot_password("ghost@example.com") is None
    token = _token_from(auth_service.forgot_password("reader@example.com"))

    auth_service.reset_password(token, "brandnew")

    assert auth_service.signin(email="reader@example.com", password="brandnew")
    with pytest.raises(auth_service.ResetTokenError, match="token_already_used"):
        auth_service.reset_password(token, "another1")


def test_ensure_admin_account_is_idempotent():
    first = auth_service.ensure_admin_account("Admin@Example.com", "adminpw")
    second = auth_service.ensure_admin_account("admin@example.com", "adminpw")
    assert first == second
    assert users_repo.get_user(first).role == "admin"
    assert auth_service.ensure_admin_account("admin@example.com", None) is None
