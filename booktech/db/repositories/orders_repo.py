"""Repository helpers for orders, order items and deliveries."""
from __future__ import annotations

import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from booktech.db import app_session
from booktech.db.models import Delivery, Order, OrderItem

_ORDER_UPDATABLE = {
    "status",
    "payment_status",
    "payment_link_id",
    "payment_link_url",
    "gateway_payment_id",
    "is_demo",
}
_DELIVERY_UPDATABLE = {"status", "notes", "delivered_at"}


class DeliveryExistsError(Exception):
    """Raised when an order already has a delivery assignment."""


def create_order(order_fields: Dict[str, Any], items: Iterable[Dict[str, Any]]) -> Tuple[Order, List[OrderItem]]:
    order = Order(**order_fields)
    rows: List[OrderItem] = []
    with app_session() as session:
        session.add(order)
        session.flush()
        for item in items:
            row = OrderItem(order_id=order.id, **item)
            session.add(row)
            rows.append(row)
    return order, rows


def get_order(order_id: int) -> Optional[Order]:
    with app_session() as session:
        return session.query(Order).filter(Order.id == order_id).one_or_none()


def get_order_by_payment_link(payment_link_id: str) -> Optional[Order]:
    with app_session() as session:
        return session.query(Order).filter(Order.payment_link_id == payment_link_id).one_or_none()


def list_orders_for_user(user_id: int) -> List[Order]:
    with app_session() as session:
        return (
            session.query(Order)
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )


def list_orders_for_author(author_id: int) -> List[Order]:
    with app_session() as session:
        order_ids = session.query(OrderItem.order_id).filter(OrderItem.author_id == author_id).distinct()
        return (
            session.query(Order)
            .filter(Order.id.in_(order_ids))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )


def list_all_orders(status: Optional[str] = None) -> List[Order]:
    with app_session() as session:
        query = session.query(Order)
        if status:
            query = query.filter(Order.status == status)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def list_items(order_ids: Iterable[int]) -> Dict[int, List[OrderItem]]:
    ids = {int(o) for o in order_ids}
    if not ids:
        return {}
    mapping: Dict[int, List[OrderItem]] = {oid: [] for oid in ids}
    with app_session() as session:
        for row in session.query(OrderItem).filter(OrderItem.order_id.in_(ids)).order_by(OrderItem.id.asc()):
            mapping[row.order_id].append(row)
    return mapping


def update_order(order_id: int, **fields: Any) -> Optional[Order]:
    unknown = set(fields) - _ORDER_UPDATABLE
    if unknown:
        raise ValueError(f"unsupported order fields: {sorted(unknown)}")
    with app_session() as session:
        order = session.query(Order).filter(Order.id == order_id).one_or_none()
        if not order:
            return None
        for key, value in fields.items():
            setattr(order, key, value)
        return order


def mark_paid(order_id: int, **fields: Any) -> bool:
    """Flip an unpaid order to ``payment_status='completed'``.

    Only one caller can win; a replayed webhook racing the first sees False.
    """
    unknown = set(fields) - _ORDER_UPDATABLE
    if unknown:
        raise ValueError(f"unsupported order fields: {sorted(unknown)}")
    values = {getattr(Order, key): value for key, value in fields.items()}
    values[Order.payment_status] = "completed"
    with app_session() as session:
        moved = (
            session.query(Order)
            .filter(Order.id == order_id, Order.payment_status != "completed")
            .update(values, synchronize_session=False)
        )
    return bool(moved)


def purchased_book_ids(user_id: int) -> List[int]:
    """Books in the user's paid orders (their library)."""
    with app_session() as session:
        rows = (
            session.query(OrderItem.book_id)
            .join(Order, Order.id == OrderItem.order_id)
            .filter(Order.user_id == user_id, Order.payment_status == "completed")
            .distinct()
            .all()
        )
        return [row.book_id for row in rows]


def author_sales(
    author_id: int,
    *,
    start: Optional[datetime.datetime] = None,
    end: Optional[datetime.datetime] = None,
) -> List[Tuple[Order, OrderItem]]:
    """Paid line items of ``author_id``'s books with their order, oldest first.

    ``start`` is inclusive and ``end`` exclusive.
    """
    with app_session() as session:
        query = (
            session.query(Order, OrderItem)
            .join(OrderItem, OrderItem.order_id == Order.id)
            .filter(OrderItem.author_id == author_id, Order.payment_status == "completed")
        )
        if start is not None:
            query = query.filter(Order.created_at >= start)
        if end is not None:
            query = query.filter(Order.created_at < end)
        return query.order_by(Order.created_at.asc(), OrderItem.id.asc()).all()


def book_order_counts() -> Dict[int, int]:
    with app_session() as session:
        rows = (
            session.query(OrderItem.book_id, func.sum(OrderItem.quantity))
            .group_by(OrderItem.book_id)
            .all()
        )
        return {book_id: int(total or 0) for book_id, total in rows}


def revenue_summary() -> Dict[str, Any]:
    with app_session() as session:
        total, count = (
            session.query(func.sum(Order.total), func.count(Order.id))
            .filter(Order.payment_status == "completed", Order.is_demo.is_(False))
            .one()
        )
        return {"revenue": round(float(total or 0.0), 2), "paid_orders": int(count or 0)}


def count_orders() -> int:
    with app_session() as session:
        return session.query(Order).count()


def create_delivery(order_id: int, delivery_boy_id: int, notes: Optional[str] = None) -> Delivery:
    delivery = Delivery(order_id=order_id, delivery_boy_id=delivery_boy_id, notes=notes)
    try:
        with app_session() as session:
            session.add(delivery)
    except IntegrityError as exc:
        raise DeliveryExistsError("Order already assigned") from exc
    return delivery


def get_delivery(delivery_id: int) -> Optional[Delivery]:
    with app_session() as session:
        return session.query(Delivery).filter(Delivery.id == delivery_id).one_or_none()


def list_deliveries(delivery_boy_id: int, status: Optional[str] = None) -> List[Delivery]:
    with app_session() as session:
        query = session.query(Delivery).filter(Delivery.delivery_boy_id == delivery_boy_id)
        if status:
            query = query.filter(Delivery.status == status)
        return query.order_by(Delivery.assigned_at.desc(), Delivery.id.desc()).all()


def update_delivery(delivery_id: int, **fields: Any) -> Optional[Delivery]:
    unknown = set(fields) - _DELIVERY_UPDATABLE
    if unknown:
        raise ValueError(f"unsupported delivery fields: {sorted(unknown)}")
    with app_session() as session:
        delivery = session.query(Delivery).filter(Delivery.id == delivery_id).one_or_none()
        if not delivery:
            return None
        for key, value in fields.items():
            setattr(delivery, key, value)
        return delivery


__all__ = [
    "DeliveryExistsError",
    "create_order",
    "get_order",
    "get_order_by_payment_link",
    "list_orders_for_user",
    "list_orders_for_author",
    "list_all_orders",
    "list_items",
    "update_order",
    "mark_paid",
    "purchased_book_ids",
    "author_sales",
    "book_order_counts",
    "revenue_summary",
    "count_orders",
    "create_delivery",
    "get_delivery",
    "list_deliveries",
    "update_delivery",
]
