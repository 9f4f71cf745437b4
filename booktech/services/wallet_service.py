"""Wallet, referral codes and settlement (payout) workflows.

The wallet is a read-only view derived from the transaction ledger:

* ``total_earned``: completed credits and referral rewards
* ``total_spent``: completed purchases
* ``pending_balance``: settlement debits still waiting for an admin
* ``balance``: what the user can still withdraw (earned minus paid out
  minus pending)
"""
from __future__ import annotations

import secrets
import string
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from booktech.db.repositories import ledger_repo, orders_repo, users_repo
from booktech.utils import constants
from booktech.utils.currency import as_float, to_decimal
from booktech.utils.logging import get_logger

LOG = get_logger("wallet_service")

_CODE_ALPHABET = string.ascii_uppercase + string.digits
_CODE_LENGTH = 8
_CODE_ATTEMPTS = 5
_POINTS_PER_UNIT = 10
_REQUIRED_BANK_FIELDS = ("account_holder", "account_number", "ifsc")


class WalletError(RuntimeError):
    """Base error for wallet workflows."""


class WalletValidationError(ValueError):
    """Raised when request payloads are malformed."""


class ReferralCodeError(WalletError):
    """Raised when a referral code cannot be redeemed."""


class SettlementNotFoundError(WalletError):
    """Raised when a settlement request id is unknown."""


class SettlementTransitionError(WalletError):
    """Raised when an admin attempts an illegal settlement transition."""


class InsufficientBalanceError(WalletError):
    """Raised when a payout exceeds the available balance."""


def _purchases_total(user_id: int) -> Decimal:
    total = Decimal("0.00")
    for tx in ledger_repo.list_transactions(user_id, type="purchase"):
        if tx.status == "completed":
            total += to_decimal(tx.amount)
    return total


def get_wallet(user_id: int) -> Dict[str, Any]:
    ledger = ledger_repo.balance_for(user_id)
    earned = to_decimal(ledger["credits"])
    paid_out = to_decimal(ledger["debits"])
    pending = to_decimal(ledger["pending"])
    available = earned - paid_out - pending
    return {
        "balance": as_float(available),
        "pending_balance": as_float(pending),
        "total_earned": as_float(earned),
        "total_spent": as_float(_purchases_total(user_id)),
        "points": int(earned // _POINTS_PER_UNIT),
    }


def list_transactions(user_id: int, tx_type: Optional[str] = None) -> List[Dict[str, Any]]:
    if tx_type and tx_type not in constants.TRANSACTION_TYPES:
        raise WalletValidationError("invalid_transaction_type")
    return [tx.as_dict() for tx in ledger_repo.list_transactions(user_id, type=tx_type)]


def _generate_code() -> str:
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(_CODE_LENGTH))


def create_referral_code(
    user_id: int,
    *,
    reward_amount: Any = 100,
    max_usage: Any = 10,
    expires_in_days: Any = None,
) -> Dict[str, Any]:
    reward = to_decimal(reward_amount)
    if reward <= 0:
        raise WalletValidationError("invalid_reward_amount")
    try:
        usage = int(max_usage)
    except (TypeError, ValueError) as exc:
        raise WalletValidationError("invalid_max_usage") from exc
    if usage < 1:
        raise WalletValidationError("invalid_max_usage")
    expires_at = None
    if expires_in_days not in (None, ""):
        try:
            days = int(expires_in_days)
        except (TypeError, ValueError) as exc:
            raise WalletValidationError("invalid_expiry") from exc
        if days < 1:
            raise WalletValidationError("invalid_expiry")
        expires_at = datetime.utcnow() + timedelta(days=days)
    for _ in range(_CODE_ATTEMPTS):
        try:
            row = ledger_repo.create_referral_code(
                user_id,
                _generate_code(),
                reward_amount=as_float(reward),
                max_usage=usage,
                expires_at=expires_at,
            )
        except ledger_repo.CodeExistsError:
            continue
        LOG.info("Referral code created user_id=%s code=%s", user_id, row.code)
        return row.as_dict()
    raise WalletError("referral_code_generation_failed")


def list_referral_codes(user_id: int) -> List[Dict[str, Any]]:
    return [row.as_dict() for row in ledger_repo.list_referral_codes(user_id)]


def deactivate_referral_code(user_id: int, code_id: int) -> Dict[str, Any]:
    row = ledger_repo.deactivate_referral_code(user_id, code_id)
    if not row:
        raise ReferralCodeError("referral_code_not_found")
    return row.as_dict()


def redeem_referral(code: str, new_user_id: int) -> Dict[str, Any]:
    """Reward both sides of a referral; raises ReferralCodeError when unusable."""
    cleaned = (code or "").strip().upper()
    row = ledger_repo.get_referral_by_code(cleaned) if cleaned else None
    if not row or not row.is_active:
        raise ReferralCodeError("referral_code_invalid")
    if row.user_id == new_user_id:
        raise ReferralCodeError("referral_code_own")
    if row.expires_at and row.expires_at < datetime.utcnow():
        raise ReferralCodeError("referral_code_expired")
    if (row.usage_count or 0) >= (row.max_usage or 0):
        raise ReferralCodeError("referral_code_exhausted")
    ledger_repo.increment_usage(row.id)
    reward = row.reward_amount
    ledger_repo.add_transaction(
        row.user_id,
        "referral",
        reward,
        f"Referral reward for code {row.code}",
        reference_id=str(new_user_id),
    )
    ledger_repo.add_transaction(
        new_user_id,
        "referral",
        reward,
        f"Signup bonus with code {row.code}",
        reference_id=row.code,
    )
    LOG.info("Referral redeemed code=%s referrer=%s referee=%s", row.code, row.user_id, new_user_id)
    return {"referrer_id": row.user_id, "reward_amount": reward}


def _validate_bank_details(details: Any) -> Dict[str, str]:
    if not isinstance(details, dict):
        raise WalletValidationError("bank_details_required")
    cleaned = {k: str(v).strip() for k, v in details.items() if v is not None and str(v).strip()}
    missing = [field for field in _REQUIRED_BANK_FIELDS if field not in cleaned]
    if missing:
        raise WalletValidationError("bank_details_required")
    return cleaned


def request_settlement(user_id: int, amount: Any, bank_details: Any) -> Dict[str, Any]:
    value = to_decimal(amount)
    if value <= 0:
        raise WalletValidationError("invalid_amount")
    if value < constants.MIN_SETTLEMENT_AMOUNT:
        raise WalletValidationError("amount_below_minimum")
    details = _validate_bank_details(bank_details)
    available = to_decimal(get_wallet(user_id)["balance"])
    if value > available:
        raise InsufficientBalanceError("insufficient_balance")
    row = ledger_repo.create_settlement(user_id, as_float(value), details)
    LOG.info("Settlement requested id=%s user_id=%s amount=%s", row.id, user_id, value)
    return row.as_dict()


def list_settlements(user_id: int) -> List[Dict[str, Any]]:
    return [row.as_dict() for row in ledger_repo.list_settlements(user_id=user_id)]


def admin_list_settlements(status: Optional[str] = None) -> List[Dict[str, Any]]:
    rows = ledger_repo.list_settlements(status=status or None)
    users = users_repo.get_users(row.user_id for row in rows)
    results = []
    for row in rows:
        data = row.as_dict()
        user = users.get(row.user_id)
        data["user"] = {"id": user.id, "name": user.name, "email": user.email} if user else None
        results.append(data)
    return results


def _transition(settlement_id: int, target: str, **fields: Any) -> Dict[str, Any]:
    row = ledger_repo.get_settlement(settlement_id)
    if not row:
        raise SettlementNotFoundError("settlement_not_found")
    if target not in constants.SETTLEMENT_TRANSITIONS.get(row.status, ()):
        raise SettlementTransitionError(f"cannot_move_{row.status}_to_{target}")
    sources = [s for s, targets in constants.SETTLEMENT_TRANSITIONS.items() if target in targets]
    moved = ledger_repo.update_settlement(settlement_id, status=target, from_statuses=sources, **fields)
    if moved is None:
        current = ledger_repo.get_settlement(settlement_id)
        raise SettlementTransitionError(f"cannot_move_{current.status if current else 'missing'}_to_{target}")
    return moved.as_dict()


def mark_processing(settlement_id: int, admin_id: int) -> Dict[str, Any]:
    return _transition(settlement_id, "processing", processed_by=admin_id)


def approve_settlement(settlement_id: int, admin_id: int) -> Dict[str, Any]:
    row = _transition(
        settlement_id,
        "completed",
        processed_by=admin_id,
        processed_at=datetime.utcnow(),
        transaction_status="completed",
    )
    LOG.info("Settlement approved id=%s by admin=%s", settlement_id, admin_id)
    return row


def reject_settlement(settlement_id: int, admin_id: int, reason: Optional[str]) -> Dict[str, Any]:
    """Reject a payout; its held debit is released by marking it failed."""
    reason = (reason or "").strip()
    if not reason:
        raise WalletValidationError("rejection_reason_required")
    row = _transition(
        settlement_id,
        "rejected",
        processed_by=admin_id,
        rejection_reason=reason,
        processed_at=datetime.utcnow(),
        transaction_status="failed",
    )
    LOG.info("Settlement rejected id=%s by admin=%s", settlement_id, admin_id)
    return row


def financial_stats() -> Dict[str, Any]:
    revenue = orders_repo.revenue_summary()
    totals = ledger_repo.totals_by_type()
    settlements = ledger_repo.list_settlements()
    paid_out = sum(to_decimal(s.amount) for s in settlements if s.status == "completed")
    pending = [s for s in settlements if s.status in ("pending", "processing")]
    return {
        "total_revenue": revenue["revenue"],
        "paid_orders": revenue["paid_orders"],
        "total_payouts": as_float(to_decimal(paid_out)),
        "pending_payouts": len(pending),
        "pending_payout_amount": as_float(to_decimal(sum(to_decimal(s.amount) for s in pending))),
        "referral_rewards": totals.get("referral", 0.0),
    }


__all__ = [
    "WalletError",
    "WalletValidationError",
    "ReferralCodeError",
    "SettlementNotFoundError",
    "SettlementTransitionError",
    "InsufficientBalanceError",
    "get_wallet",
    "list_transactions",
    "create_referral_code",
    "list_referral_codes",
    "deactivate_referral_code",
    "redeem_referral",
    "request_settlement",
    "list_settlements",
    "admin_list_settlements",
    "mark_processing",
    "approve_settlement",
    "reject_settlement",
    "financial_stats",
]
