"""Cart, orders and deliveries."""
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from .base import Base, iso, load_json, utcnow


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    book_id = Column(Integer, nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    added_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_cart_user_book"),
    )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "book_id": self.book_id,
            "quantity": self.quantity,
            "added_at": iso(self.added_at),
        }


class Order(Base):
    """Checkout record.

    ``status`` is fulfilment (pending → confirmed → processing → shipped →
    delivered, or cancelled); ``payment_status`` is driven by the gateway
    webhook. ``is_demo`` marks orders created while the gateway was offline.
    """

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_number = Column(String(32), nullable=False, unique=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    subtotal = Column(Float, nullable=False, default=0.0)
    tax = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False, default=0.0)
    shipping_address = Column(Text, nullable=True)  # JSON object
    payment_method = Column(String(32), nullable=True)
    status = Column(String(16), nullable=False, default="pending", index=True)
    payment_status = Column(String(16), nullable=False, default="pending", index=True)
    payment_link_id = Column(String(64), nullable=True, index=True)
    payment_link_url = Column(String(500), nullable=True)
    gateway_payment_id = Column(String(64), nullable=True)
    is_demo = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "total": self.total,
            "shipping_address": load_json(self.shipping_address, None),
            "payment_method": self.payment_method,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_link_id": self.payment_link_id,
            "payment_link_url": self.payment_link_url,
            "is_demo": bool(self.is_demo),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Order id={self.id} number={self.order_number} status={self.status}/{self.payment_status}>"


class OrderItem(Base):
    """Line item snapshot; title / author / price are copied at checkout."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, nullable=False, index=True)
    book_id = Column(Integer, nullable=False, index=True)
    author_id = Column(Integer, nullable=True, index=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "book_id": self.book_id,
            "author_id": self.author_id,
            "title": self.title,
            "author": self.author,
            "price": self.price,
            "quantity": self.quantity,
        }


class Delivery(Base):
    __tablename__ = "deliveries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, nullable=False, unique=True, index=True)
    delivery_boy_id = Column(Integer, nullable=False, index=True)
    status = Column(String(16), nullable=False, default="assigned", index=True)
    notes = Column(Text, nullable=True)
    assigned_at = Column(DateTime, default=utcnow, nullable=False)
    delivered_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "delivery_boy_id": self.delivery_boy_id,
            "status": self.status,
            "notes": self.notes,
            "assigned_at": iso(self.assigned_at),
            "delivered_at": iso(self.delivered_at),
            "updated_at": iso(self.updated_at),
        }


__all__ = ["CartItem", "Order", "OrderItem", "Delivery"]
