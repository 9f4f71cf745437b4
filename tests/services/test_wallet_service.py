"""Tests for wallet_service: derived balances, referrals and payouts."""
from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from booktech.db.engine import init_engine_once, reset_for_tests
from booktech.db.repositories import ledger_repo, users_repo
from booktech.services import wallet_service

BANK = {"account_holder": "Ada Author", "account_number": "000123", "ifsc": "BANK0001"}


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def author():
    user = users_repo.create_user("author@example.com", "hash", name="Ada", role="author")
    ledger_repo.add_transaction(user.id, "credit", 500, "Sale of Alpha")
    return user


@pytest.fixture
def admin():
    return users_repo.create_user("admin@example.com", "hash", role="admin")


def test_wallet_is_derived_from_ledger(author):
    ledger_repo.add_transaction(author.id, "purchase", 40, "Order BT1")
    wallet_service.request_settlement(author.id, 150, BANK)

    wallet = wallet_service.get_wallet(author.id)

    assert wallet["total_earned"] == 500.0
    assert wallet["pending_balance"] == 150.0
    assert wallet["balance"] == 350.0
    assert wallet["total_spent"] == 40.0
    assert wallet["points"] == 50


def test_settlement_validation(author):
    with pytest.raises(wallet_service.WalletValidationError, match="amount_below_minimum"):
        wallet_service.request_settlement(author.id, 50, BANK)
    with pytest.raises(wallet_service.WalletValidationError, match="bank_details_required"):
        wallet_service.request_settlement(author.id, 200, {"account_holder": "Ada"})
    with pytest.raises(wallet_service.InsufficientBalanceError):
        wallet_service.request_settlement(author.id, 600, BANK)


def test_approve_settlement_completes_debit(author, admin):
    row = wallet_service.request_settlement(author.id, 200, BANK)

    approved = wallet_service.approve_settlement(row["id"], admin.id)

    assert approved["status"] == "completed"
    wallet = wallet_service.get_wallet(author.id)
    assert wallet["pending_balance"] == 0.0
    assert wallet["balance"] == 300.0


def test_rejected_settlement_never_returns_to_pending(author, admin):
    row = wallet_service.request_settlement(author.id, 200, BANK)
    wallet_service.mark_processing(row["id"], admin.id)

    with pytest.raises(wallet_service.WalletValidationError):
        wallet_service.reject_settlement(row["id"], admin.id, "  ")
    rejected = wallet_service.reject_settlement(row["id"], admin.id, "Account closed")

    assert rejected["status"] == "rejected"
    assert wallet_service.get_wallet(author.id)["balance"] == 500.0
    with pytest.raises(wallet_service.SettlementTransitionError):
        wallet_service.mark_processing(row["id"], admin.id)
    with pytest.raises(wallet_service.SettlementTransitionError):
        wallet_service.approve_settlement(row["id"], admin.id)

    again = wallet_service.request_settlement(author.id, 200, BANK)
    assert again["status"] == "pending"
    assert again["id"] != row["id"]


def test_redeem_referral_rewards_both_sides(author):
    code = wallet_service.create_referral_code(author.id, reward_amount=100, max_usage=1)
    newcomer = users_repo.create_user("new@example.com", "hash")

    result = wallet_service.redeem_referral(code["code"].lower(), newcomer.id)

    assert result["referrer_id"] == author.id
    assert wallet_service.get_wallet(author.id)["total_earned"] == 600.0
    assert wallet_service.get_wallet(newcomer.id)["balance"] == 100.0

    another = users_repo.create_user("late@example.com", "hash")
    with pytest.raises(wallet_service.ReferralCodeError, match="referral_code_exhausted"):
        wallet_service.redeem_referral(code["code"], another.id)


def test_redeem_rejects_own_inactive_and_expired_codes(author):
    code = wallet_service.create_referral_code(author.id)
    with pytest.raises(wallet_service.ReferralCodeError, match="referral_code_own"):
        wallet_service.redeem_referral(code["code"], author.id)

    expired = ledger_repo.create_referral_code(
        author.id, "EXPIRED1", reward_amount=100, max_usage=5, expires_at=datetime.utcnow() - timedelta(days=1)
    )
    with pytest.raises(wallet_service.ReferralCodeError, match="referral_code_expired"):
        wallet_service.redeem_referral(expired.code, 999)

    wallet_service.deactivate_referral_code(author.id, code["id"])
    with pytest.raises(wallet_service.ReferralCodeError, match="referral_code_invalid"):
        wallet_service.redeem_referral(code["code"], 999)


def test_generated_codes_are_eight_uppercase_characters(author):
    code = wallet_service.create_referral_code(author.id)["code"]
    assert len(code) == 8
    assert code == code.upper()
    assert code.isalnum()
