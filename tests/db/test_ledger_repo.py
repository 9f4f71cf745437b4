"""Tests for ledger_repo balances and settlement bookkeeping."""
from __future__ import annotations

import pytest

from booktech.db.engine import init_engine_once, reset_for_tests
from booktech.db.repositories import ledger_repo


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


def test_balance_counts_completed_credits_and_debits():
    ledger_repo.add_transaction(1, "credit", 300, "Sale")
    ledger_repo.add_transaction(1, "referral", 100, "Referral reward")
    ledger_repo.add_transaction(1, "debit", 50, "Adjustment")
    ledger_repo.add_transaction(1, "credit", 999, "Failed sale", status="failed")
    ledger_repo.add_transaction(2, "credit", 70, "Someone else")

    balance = ledger_repo.balance_for(1)

    assert balance["credits"] == 400.0
    assert balance["debits"] == 50.0
    assert balance["pending"] == 0.0
    assert balance["balance"] == 350.0


def test_create_settlement_holds_a_pending_debit():
    ledger_repo.add_transaction(1, "credit", 500, "Sale")

    row = ledger_repo.create_settlement(1, 200, {"account_holder": "A", "account_number": "1", "ifsc": "X"})

    assert row.status == "pending"
    tx = ledger_repo.list_transactions(1, type="settlement")[0]
    assert tx.status == "pending"
    assert tx.reference_id == str(row.id)
    assert ledger_repo.balance_for(1)["pending"] == 200.0


def test_update_settlement_mirrors_transaction_status():
    ledger_repo.add_transaction(1, "credit", 500, "Sale")
    row = ledger_repo.create_settlement(1, 200, {"account_holder": "A", "account_number": "1", "ifsc": "X"})

    updated = ledger_repo.update_settlement(
        row.id,
        status="rejected",
        from_statuses=("pending", "processing"),
        rejection_reason="bad ifsc",
        transaction_status="failed",
    )

    assert updated.status == "rejected"
    assert updated.rejection_reason == "bad ifsc"
    assert ledger_repo.list_transactions(1, type="settlement")[0].status == "failed"
    assert ledger_repo.balance_for(1)["pending"] == 0.0


def test_referral_codes_are_unique():
    ledger_repo.create_referral_code(1, "ABCD1234", reward_amount=100, max_usage=2, expires_at=None)
    with pytest.raises(ledger_repo.CodeExistsError):
        ledger_repo.create_referral_code(2, "ABCD1234", reward_amount=100, max_usage=2, expires_at=None)


def test_update_settlement_only_moves_from_expected_status():
    ledger_repo.add_transaction(1, "credit", 500, "Sale")
    row = ledger_repo.create_settlement(1, 200, {"account_holder": "A", "account_number": "1", "ifsc": "X"})
    ledger_repo.update_settlement(
        row.id, status="rejected", from_statuses=("pending",), rejection_reason="closed", transaction_status="failed"
    )

    late = ledger_repo.update_settlement(
        row.id, status="completed", from_statuses=("pending", "processing"), transaction_status="completed"
    )

    assert late is None
    assert ledger_repo.get_settlement(row.id).status == "rejected"
    assert ledger_repo.list_transactions(1, type="settlement")[0].status == "failed"
