"""User accounts and per-user notifications."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text

from .base import Base, iso, load_json, utcnow


class User(Base):
    """Account row. Reading statistics live on the user like the original API."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="customer", index=True)
    subscription = Column(String(32), nullable=False, default="none")
    avatar = Column(String(500), nullable=True)
    phone = Column(String(32), nullable=True)
    referred_by = Column(Integer, nullable=True, index=True)

    books_read = Column(Integer, nullable=False, default=0)
    pages_read = Column(Integer, nullable=False, default=0)
    reading_minutes = Column(Integer, nullable=False, default=0)
    current_streak = Column(Integer, nullable=False, default=0)
    last_read_date = Column(String(10), nullable=True)  # YYYY-MM-DD
    read_book_ids = Column(Text, nullable=True)  # JSON array of ints
    monthly_progress = Column(Text, nullable=True)  # JSON {"2026-10": {"books_read": n, "pages_read": n}}

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def read_books(self) -> list:
        return list(load_json(self.read_book_ids, []))

    def monthly(self) -> dict:
        return dict(load_json(self.monthly_progress, {}))

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "subscription": self.subscription,
            "avatar": self.avatar,
            "phone": self.phone,
            "created_at": iso(self.created_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} email={self.email} role={self.role}>"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_id = Column(Integer, nullable=False, index=True)
    sender_id = Column(Integer, nullable=True, index=True)
    message = Column(Text, nullable=False)
    type = Column(String(16), nullable=False, default="info")
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "recipient_id": self.recipient_id,
            "sender_id": self.sender_id,
            "message": self.message,
            "type": self.type,
            "read": bool(self.read),
            "created_at": iso(self.created_at),
        }


class Plan(Base):
    """Subscription plan offered on the pricing page."""

    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False, unique=True)
    price = Column(Float, nullable=False, default=0.0)
    features = Column(Text, nullable=True)  # JSON array of strings
    is_popular = Column(Boolean, nullable=False, default=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "features": load_json(self.features, []),
            "is_popular": bool(self.is_popular),
        }


__all__ = ["User", "Notification", "Plan"]
