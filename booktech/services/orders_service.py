"""Order visibility and fulfilment transitions for customers, authors and admins."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from booktech.db.repositories import books_repo, orders_repo, users_repo
from booktech.services import notifications_service
from booktech.utils import constants
from booktech.utils.logging import get_logger

LOG = get_logger("orders_service")


class OrderError(RuntimeError):
    pass


class OrderNotFoundError(OrderError):
    pass


class OrderAccessError(OrderError):
    pass


class OrderTransitionError(OrderError):
    pass


def _with_items(orders, *, only_author: Optional[int] = None) -> List[Dict[str, Any]]:
    items = orders_repo.list_items(order.id for order in orders)
    users = users_repo.get_users(order.user_id for order in orders)
    results = []
    for order in orders:
        data = order.as_dict()
        rows = items.get(order.id, [])
        if only_author is not None:
            rows = [row for row in rows if row.author_id == only_author]
        data["items"] = [row.as_dict() for row in rows]
        customer = users.get(order.user_id)
        data["customer"] = {"id": customer.id, "name": customer.name, "email": customer.email} if customer else None
        results.append(data)
    return results


def my_orders(user_id: int) -> List[Dict[str, Any]]:
    return _with_items(orders_repo.list_orders_for_user(user_id))


def author_orders(author_id: int) -> List[Dict[str, Any]]:
    return _with_items(orders_repo.list_orders_for_author(author_id), only_author=author_id)


def all_orders(status: Optional[str] = None) -> List[Dict[str, Any]]:
    return _with_items(orders_repo.list_all_orders(status))


def _author_ids(order_id: int) -> set:
    return {row.author_id for row in orders_repo.list_items([order_id]).get(order_id, []) if row.author_id}


def get_order(order_id: int, viewer: Dict[str, Any]) -> Dict[str, Any]:
    order = orders_repo.get_order(order_id)
    if not order:
        raise OrderNotFoundError("order_not_found")
    allowed = (
        viewer.get("role") == constants.ROLE_ADMIN
        or order.user_id == viewer.get("id")
        or viewer.get("id") in _author_ids(order.id)
    )
    if not allowed:
        raise OrderAccessError("not_authorized")
    return _with_items([order])[0]


def update_status(order_id: int, status: Any, actor: Dict[str, Any]) -> Dict[str, Any]:
    """Move an order along the fulfilment chain (author of an item or admin)."""
    if status not in constants.ORDER_STATUSES:
        raise OrderTransitionError("status_invalid")
    order = orders_repo.get_order(order_id)
    if not order:
        raise OrderNotFoundError("order_not_found")
    if actor.get("role") != constants.ROLE_ADMIN and actor.get("id") not in _author_ids(order.id):
        raise OrderAccessError("not_authorized")
    if status not in constants.ORDER_TRANSITIONS.get(order.status, ()):
        raise OrderTransitionError(f"cannot_move_{order.status}_to_{status}")
    order = orders_repo.update_order(order.id, status=status)
    notifications_service.notify(order.user_id, f"Order {order.order_number} is now {status}.")
    LOG.info("Order status id=%s -> %s by user=%s", order.id, status, actor.get("id"))
    return _with_items([order])[0]


def author_dashboard(author_id: int) -> Dict[str, Any]:
    books = books_repo.list_books(author_id=author_id)
    orders = orders_repo.list_orders_for_author(author_id)
    return {
        "total_books": len(books),
        "approved_books": sum(1 for b in books if b.status == constants.BOOK_APPROVED),
        "pending_books": sum(1 for b in books if b.status == constants.BOOK_PENDING),
        "total_sales": sum(b.sales or 0 for b in books),
        "total_earnings": round(sum(b.earnings or 0.0 for b in books), 2),
        "total_orders": len(orders),
        "pending_orders": sum(1 for o in orders if o.status == "pending"),
    }


__all__ = [
    "OrderError",
    "OrderNotFoundError",
    "OrderAccessError",
    "OrderTransitionError",
    "my_orders",
    "author_orders",
    "all_orders",
    "get_order",
    "update_status",
    "author_dashboard",
]
