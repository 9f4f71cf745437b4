"""Wallet ledger: transactions, referral codes and settlement requests.

There is no balance column; balances are always derived from transactions.
"""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text

from .base import Base, iso, load_json, utcnow


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    type = Column(String(16), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    description = Column(String(255), nullable=False, default="")
    status = Column(String(16), nullable=False, default="completed", index=True)
    reference_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "amount": self.amount,
            "description": self.description,
            "status": self.status,
            "reference_id": self.reference_id,
            "created_at": iso(self.created_at),
        }


class ReferralCode(Base):
    __tablename__ = "referral_codes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    code = Column(String(16), nullable=False, unique=True, index=True)
    reward_amount = Column(Float, nullable=False, default=100.0)
    max_usage = Column(Integer, nullable=False, default=10)
    usage_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "reward_amount": self.reward_amount,
            "max_usage": self.max_usage,
            "usage_count": self.usage_count,
            "is_active": bool(self.is_active),
            "expires_at": iso(self.expires_at),
            "created_at": iso(self.created_at),
        }


class SettlementRequest(Base):
    """Payout of wallet earnings to a bank account, transitioned by admins."""

    __tablename__ = "settlement_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    bank_details = Column(Text, nullable=False)  # JSON object
    status = Column(String(16), nullable=False, default="pending", index=True)
    rejection_reason = Column(String(500), nullable=True)
    transaction_id = Column(Integer, nullable=True)
    processed_by = Column(Integer, nullable=True)
    processed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "amount": self.amount,
            "bank_details": load_json(self.bank_details, {}),
            "status": self.status,
            "rejection_reason": self.rejection_reason,
            "processed_at": iso(self.processed_at),
            "created_at": iso(self.created_at),
        }


__all__ = ["Transaction", "ReferralCode", "SettlementRequest"]
