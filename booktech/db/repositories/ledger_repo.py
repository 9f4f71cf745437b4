"""Repository helpers for the wallet ledger.

Balances are never stored; ``balance_for`` derives them from completed
transactions every time.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from booktech.db import app_session
from booktech.db.models import ReferralCode, SettlementRequest, Transaction
from booktech.db.models.base import dump_json

_CREDIT_TYPES = ("credit", "referral")
_DEBIT_TYPES = ("debit", "settlement")


class CodeExistsError(Exception):
    """Raised when a generated referral code collides with an existing one."""


def add_transaction(
    user_id: int,
    type: str,
    amount: float,
    description: str,
    *,
    status: str = "completed",
    reference_id: Optional[str] = None,
) -> Transaction:
    tx = Transaction(
        user_id=user_id,
        type=type,
        amount=round(float(amount), 2),
        description=description,
        status=status,
        reference_id=reference_id,
    )
    with app_session() as session:
        session.add(tx)
    return tx


def list_transactions(user_id: int, type: Optional[str] = None) -> List[Transaction]:
    with app_session() as session:
        query = session.query(Transaction).filter(Transaction.user_id == user_id)
        if type:
            query = query.filter(Transaction.type == type)
        return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()


def balance_for(user_id: int) -> Dict[str, float]:
    """Credits minus debits over completed transactions, plus pending totals."""
    with app_session() as session:
        rows = (
            session.query(Transaction.type, Transaction.status, func.sum(Transaction.amount))
            .filter(Transaction.user_id == user_id)
            .group_by(Transaction.type, Transaction.status)
            .all()
        )
    credits = debits = pending = 0.0
    for tx_type, status, total in rows:
        total = float(total or 0.0)
        if status == "completed":
            if tx_type in _CREDIT_TYPES:
                credits += total
            elif tx_type in _DEBIT_TYPES:
                debits += total
        elif status == "pending" and tx_type in _DEBIT_TYPES:
            pending += total
    return {
        "credits": round(credits, 2),
        "debits": round(debits, 2),
        "pending": round(pending, 2),
        "balance": round(credits - debits, 2),
    }


def totals_by_type() -> Dict[str, float]:
    with app_session() as session:
        rows = (
            session.query(Transaction.type, func.sum(Transaction.amount))
            .filter(Transaction.status == "completed")
            .group_by(Transaction.type)
            .all()
        )
        return {tx_type: round(float(total or 0.0), 2) for tx_type, total in rows}


def create_referral_code(
    user_id: int,
    code: str,
    *,
    reward_amount: float = 100.0,
    max_usage: int = 10,
    expires_at: Optional[datetime] = None,
) -> ReferralCode:
    row = ReferralCode(
        user_id=user_id,
        code=code,
        reward_amount=reward_amount,
        max_usage=max_usage,
        expires_at=expires_at,
    )
    try:
        with app_session() as session:
            session.add(row)
    except IntegrityError as exc:
        raise CodeExistsError(code) from exc
    return row


def get_referral_by_code(code: str) -> Optional[ReferralCode]:
    with app_session() as session:
        return session.query(ReferralCode).filter(ReferralCode.code == code).one_or_none()


def list_referral_codes(user_id: int) -> List[ReferralCode]:
    with app_session() as session:
        return (
            session.query(ReferralCode)
            .filter(ReferralCode.user_id == user_id)
            .order_by(ReferralCode.created_at.desc(), ReferralCode.id.desc())
            .all()
        )


def deactivate_referral_code(user_id: int, code_id: int) -> Optional[ReferralCode]:
    with app_session() as session:
        row = (
            session.query(ReferralCode)
            .filter(ReferralCode.id == code_id, ReferralCode.user_id == user_id)
            .one_or_none()
        )
        if not row:
            return None
        row.is_active = False
        return row


def increment_usage(code_id: int) -> Optional[ReferralCode]:
    with app_session() as session:
        row = session.query(ReferralCode).filter(ReferralCode.id == code_id).one_or_none()
        if not row:
            return None
        row.usage_count = (row.usage_count or 0) + 1
        return row


def create_settlement(user_id: int, amount: float, bank_details: Dict[str, Any]) -> SettlementRequest:
    """Insert a pending settlement and its pending debit in one transaction."""
    with app_session() as session:
        tx = Transaction(
            user_id=user_id,
            type="settlement",
            amount=round(float(amount), 2),
            description="Settlement request",
            status="pending",
        )
        session.add(tx)
        session.flush()
        row = SettlementRequest(
            user_id=user_id,
            amount=round(float(amount), 2),
            bank_details=dump_json(bank_details),
            transaction_id=tx.id,
        )
        session.add(row)
        session.flush()
        tx.reference_id = str(row.id)
    return row


def get_settlement(settlement_id: int) -> Optional[SettlementRequest]:
    with app_session() as session:
        return session.query(SettlementRequest).filter(SettlementRequest.id == settlement_id).one_or_none()


def list_settlements(user_id: Optional[int] = None, status: Optional[str] = None) -> List[SettlementRequest]:
    with app_session() as session:
        query = session.query(SettlementRequest)
        if user_id is not None:
            query = query.filter(SettlementRequest.user_id == user_id)
        if status:
            query = query.filter(SettlementRequest.status == status)
        return query.order_by(SettlementRequest.created_at.desc(), SettlementRequest.id.desc()).all()


def update_settlement(
    settlement_id: int,
    *,
    status: str,
    from_statuses: Iterable[str],
    processed_by: Optional[int] = None,
    rejection_reason: Optional[str] = None,
    processed_at: Optional[datetime] = None,
    transaction_status: Optional[str] = None,
) -> Optional[SettlementRequest]:
    """Move a settlement to ``status`` and mirror it onto its ledger row.

    The UPDATE only matches while the row is still in one of ``from_statuses``;
    returns None when it is missing or another reviewer moved it first.
    """
    fields: Dict[Any, Any] = {SettlementRequest.status: status}
    if processed_by is not None:
        fields[SettlementRequest.processed_by] = processed_by
    if rejection_reason is not None:
        fields[SettlementRequest.rejection_reason] = rejection_reason
    if processed_at is not None:
        fields[SettlementRequest.processed_at] = processed_at
    with app_session() as session:
        moved = (
            session.query(SettlementRequest)
            .filter(SettlementRequest.id == settlement_id, SettlementRequest.status.in_(tuple(from_statuses)))
            .update(fields, synchronize_session=False)
        )
        if not moved:
            return None
        row = session.query(SettlementRequest).filter(SettlementRequest.id == settlement_id).one()
        if transaction_status and row.transaction_id:
            session.query(Transaction).filter(Transaction.id == row.transaction_id).update(
                {Transaction.status: transaction_status}, synchronize_session=False
            )
        return row


__all__ = [
    "CodeExistsError",
    "add_transaction",
    "list_transactions",
    "balance_for",
    "totals_by_type",
    "create_referral_code",
    "get_referral_by_code",
    "list_referral_codes",
    "deactivate_referral_code",
    "increment_usage",
    "create_settlement",
    "get_settlement",
    "list_settlements",
    "update_settlement",
]
