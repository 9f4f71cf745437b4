"""Checkout, gateway payment links, the payment webhook and the library.

An order is created from the cart (or a single book), then the gateway is
asked for a hosted payment link. When the gateway is not configured or the
request fails and demo orders are enabled, the order is completed on the
spot as a demo order instead.
"""
from __future__ import annotations

import secrets
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from booktech import config as app_config
from booktech.db.models.base import dump_json
from booktech.db.repositories import books_repo, cart_repo, ledger_repo, orders_repo
from booktech.services import cart_service, notifications_service, payment_gateway, subscription_service
from booktech.utils import constants
from booktech.utils.currency import as_float, to_decimal
from booktech.utils.logging import get_logger

LOG = get_logger("checkout_service")

_REQUIRED_ADDRESS_FIELDS = ("name", "address", "city", "pincode")
PAYMENT_METHODS = ("razorpay", "card", "upi", "netbanking", "cod")


class CheckoutError(RuntimeError):
    pass


class CheckoutValidationError(ValueError):
    pass


class EmptyCartError(CheckoutError):
    pass


class GatewayUnavailableError(CheckoutError):
    pass


class OrderNotFoundError(CheckoutError):
    pass


def _order_number() -> str:
    return f"BT{datetime.utcnow():%Y%m%d%H%M%S}{secrets.token_hex(3).upper()}"


def _clean_address(address: Any) -> Dict[str, str]:
    if not isinstance(address, dict):
        raise CheckoutValidationError("shipping_address_required")
    cleaned = {k: str(v).strip() for k, v in address.items() if v is not None and str(v).strip()}
    if any(field not in cleaned for field in _REQUIRED_ADDRESS_FIELDS):
        raise CheckoutValidationError("shipping_address_incomplete")
    return cleaned


def _create_order(
    user_id: int,
    lines: List[Tuple[Any, int]],
    *,
    shipping_address: Optional[Dict[str, str]],
    payment_method: str,
):
    totals = cart_service.compute_totals((book.price, qty) for book, qty in lines)
    items = [
        {
            "book_id": book.id,
            "author_id": book.author_id,
            "title": book.title,
            "author": book.author,
            "price": book.price,
            "quantity": qty,
        }
        for book, qty in lines
    ]
    order, rows = orders_repo.create_order(
        {
            "order_number": _order_number(),
            "user_id": user_id,
            "subtotal": as_float(totals["subtotal"]),
            "tax": as_float(totals["tax"]),
            "total": as_float(totals["total"]),
            "shipping_address": dump_json(shipping_address),
            "payment_method": payment_method,
        },
        items,
    )
    LOG.info("Order created id=%s number=%s total=%s", order.id, order.order_number, order.total)
    return order, rows


def _order_payload(order, rows=None) -> Dict[str, Any]:
    data = order.as_dict()
    if rows is None:
        rows = orders_repo.list_items([order.id]).get(order.id, [])
    data["items"] = [row.as_dict() for row in rows]
    return data


def _request_payment(order, user: Dict[str, Any], description: str) -> Dict[str, Any]:
    ok, payload = payment_gateway.create_payment_link(
        amount=order.total,
        description=description,
        customer=user,
        reference_id=order.order_number,
    )
    if ok:
        order = orders_repo.update_order(
            order.id,
            payment_link_id=payload["id"],
            payment_link_url=payload["short_url"],
        )
        return {"status": "created", "payment_link": payload["short_url"], "order": _order_payload(order)}
    if not app_config.demo_orders_enabled():
        orders_repo.update_order(order.id, payment_status="failed", status="cancelled")
        raise GatewayUnavailableError("payment_gateway_unavailable")
    LOG.warning("Gateway unavailable (%s); completing demo order id=%s", payload.get("error"), order.id)
    order = complete_payment(order.id, demo=True)
    return {"status": "demo", "payment_link": None, "order": _order_payload(order)}


def checkout(user: Dict[str, Any], shipping_address: Any, payment_method: Any = None) -> Dict[str, Any]:
    method = payment_method if isinstance(payment_method, str) and payment_method.strip() else "razorpay"
    method = method.strip().lower()
    if method not in PAYMENT_METHODS:
        raise CheckoutValidationError("payment_method_invalid")
    address = _clean_address(shipping_address)
    items = cart_repo.list_items(user["id"])
    books = books_repo.get_books(item.book_id for item in items)
    lines = [
        (books[item.book_id], item.quantity)
        for item in items
        if item.book_id in books and books[item.book_id].status == constants.BOOK_APPROVED
    ]
    if not lines:
        raise EmptyCartError("cart_empty")
    order, _ = _create_order(user["id"], lines, shipping_address=address, payment_method=method)
    cart_repo.clear(user["id"])
    return _request_payment(order, user, f"Payment for order {order.order_number}")


def buy_book(user: Dict[str, Any], book_id: Any) -> Dict[str, Any]:
    """Single-book purchase through a dedicated payment link."""
    try:
        book = books_repo.get_book(int(book_id))
    except (TypeError, ValueError) as exc:
        raise CheckoutValidationError("book_id_required") from exc
    if not book or book.status != constants.BOOK_APPROVED:
        raise OrderNotFoundError("book_not_found")
    if not book.price or book.price <= 0:
        raise CheckoutValidationError("invalid_book_price")
    order, _ = _create_order(user["id"], [(book, 1)], shipping_address=None, payment_method="razorpay")
    return _request_payment(order, user, f"Payment for book: {book.title}")


def complete_payment(order_id: int, *, demo: bool = False, gateway_payment_id: Optional[str] = None):
    """Mark an order paid; repeated calls for a paid order are no-ops."""
    order = orders_repo.get_order(order_id)
    if not order:
        raise OrderNotFoundError("order_not_found")
    if order.payment_status == "completed":
        return order
    fields: Dict[str, Any] = {"is_demo": demo}
    if order.status == "pending":
        fields["status"] = "confirmed"
    if gateway_payment_id:
        fields["gateway_payment_id"] = gateway_payment_id
    if not orders_repo.mark_paid(order.id, **fields):
        LOG.info("Order id=%s already paid; skipping duplicate completion", order.id)
        return orders_repo.get_order(order.id)
    order = orders_repo.get_order(order.id)
    items = orders_repo.list_items([order.id]).get(order.id, [])
    if not demo:
        ledger_repo.add_transaction(
            order.user_id,
            "purchase",
            order.total,
            f"Order {order.order_number}",
            reference_id=order.order_number,
        )
        for item in items:
            amount = as_float(to_decimal(item.price) * item.quantity)
            books_repo.record_sale(item.book_id, item.quantity, amount)
            if item.author_id:
                ledger_repo.add_transaction(
                    item.author_id,
                    "credit",
                    amount,
                    f"Sale of {item.title}",
                    reference_id=order.order_number,
                )
                notifications_service.notify(item.author_id, f"Your book '{item.title}' was purchased.", "success")
    notifications_service.notify(order.user_id, f"Payment received for order {order.order_number}.", "success")
    LOG.info("Order paid id=%s demo=%s", order.id, demo)
    return order


def handle_webhook(raw_body: bytes, headers: Mapping[str, str]) -> Tuple[bool, Dict[str, Any]]:
    accepted, event, payload = payment_gateway.parse_webhook(raw_body, headers)
    if not accepted or payload is None:
        LOG.warning("Gateway webhook rejected reason=%s", event)
        return False, {"error": event}
    entity = payment_gateway.payment_link_entity(payload)
    link_id = entity.get("id")
    if event == "payment_link.paid":
        description = entity.get("description") or ""
        if description.startswith(payment_gateway.SUBSCRIPTION_PREFIX):
            email = (entity.get("customer") or {}).get("email")
            user_id = subscription_service.apply_paid_subscription(email, description)
            return True, {"event": event, "subscription_user_id": user_id}
        order = orders_repo.get_order_by_payment_link(link_id) if link_id else None
        if not order:
            LOG.warning("Paid webhook for unknown payment link id=%s", link_id)
            return True, {"event": event, "order_id": None}
        payment_id = payment_gateway.payment_entity(payload).get("id")
        complete_payment(order.id, gateway_payment_id=payment_id)
        return True, {"event": event, "order_id": order.id}
    if event == "payment_link.failed":
        order = orders_repo.get_order_by_payment_link(link_id) if link_id else None
        if order and order.payment_status != "completed":
            orders_repo.update_order(order.id, payment_status="failed")
            notifications_service.notify(order.user_id, f"Payment failed for order {order.order_number}.", "error")
            LOG.info("Order payment failed id=%s", order.id)
        return True, {"event": event, "order_id": order.id if order else None}
    LOG.debug("Ignoring gateway event=%s", event)
    return True, {"event": event, "ignored": True}


def library(user_id: int) -> List[Dict[str, Any]]:
    """Books the user has paid for."""
    books = books_repo.get_books(orders_repo.purchased_book_ids(user_id))
    return [books[book_id].as_dict() for book_id in sorted(books)]


__all__ = [
    "PAYMENT_METHODS",
    "CheckoutError",
    "CheckoutValidationError",
    "EmptyCartError",
    "GatewayUnavailableError",
    "OrderNotFoundError",
    "checkout",
    "buy_book",
    "complete_payment",
    "handle_webhook",
    "library",
]
