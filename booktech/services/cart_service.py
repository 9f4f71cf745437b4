"""Shopping cart with server-side totals.

Every mutating call returns the full cart so the client never has to
compute prices itself: ``subtotal`` is the sum of price x quantity, ``tax``
is the subtotal times the configured rate, and ``total`` is their sum, each
rounded half-up to cents.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Tuple

from booktech import config as app_config
from booktech.db.repositories import books_repo, cart_repo, orders_repo
from booktech.utils import constants
from booktech.utils.currency import as_float, quantize, to_decimal
from booktech.utils.logging import get_logger

LOG = get_logger("cart_service")


class CartError(RuntimeError):
    pass


class CartValidationError(ValueError):
    pass


class CartItemNotFoundError(CartError):
    pass


class BookUnavailableError(CartError):
    """Raised for unknown or unapproved books."""


def compute_totals(lines: Iterable[Tuple[Any, int]]) -> Dict[str, Decimal]:
    """Totals for ``(unit_price, quantity)`` pairs."""
    subtotal = Decimal("0.00")
    for price, quantity in lines:
        subtotal += to_decimal(price) * int(quantity)
    subtotal = quantize(subtotal)
    tax = quantize(subtotal * app_config.tax_rate())
    return {"subtotal": subtotal, "tax": tax, "total": quantize(subtotal + tax)}


def _cart_lines(user_id: int) -> List[Dict[str, Any]]:
    items = cart_repo.list_items(user_id)
    books = books_repo.get_books(item.book_id for item in items)
    lines = []
    for item in items:
        book = books.get(item.book_id)
        if not book:
            continue
        data = item.as_dict()
        data["book"] = book.as_dict()
        data["line_total"] = as_float(to_decimal(book.price) * item.quantity)
        lines.append(data)
    return lines


def get_cart(user_id: int) -> Dict[str, Any]:
    lines = _cart_lines(user_id)
    totals = compute_totals((line["book"]["price"], line["quantity"]) for line in lines)
    return {
        "items": lines,
        "item_count": sum(line["quantity"] for line in lines),
        "subtotal": as_float(totals["subtotal"]),
        "tax": as_float(totals["tax"]),
        "tax_rate": float(app_config.tax_rate()),
        "total": as_float(totals["total"]),
    }


def _parse_quantity(raw: Any, *, default: int = 1) -> int:
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise CartValidationError("quantity_invalid") from exc


def add_to_cart(user_id: int, book_id: Any, quantity: Any = None) -> Dict[str, Any]:
    try:
        book_id = int(book_id)
    except (TypeError, ValueError) as exc:
        raise CartValidationError("book_id_required") from exc
    qty = _parse_quantity(quantity)
    if qty < 1:
        raise CartValidationError("quantity_invalid")
    book = books_repo.get_book(book_id)
    if not book or book.status != constants.BOOK_APPROVED:
        raise BookUnavailableError("book_not_found")
    cart_repo.add_item(user_id, book_id, qty)
    return get_cart(user_id)


def update_quantity(user_id: int, item_id: Any, quantity: Any) -> Dict[str, Any]:
    try:
        item_id = int(item_id)
    except (TypeError, ValueError) as exc:
        raise CartValidationError("item_id_required") from exc
    found, _ = cart_repo.set_quantity(user_id, item_id, _parse_quantity(quantity, default=0))
    if not found:
        raise CartItemNotFoundError("cart_item_not_found")
    return get_cart(user_id)


def remove_item(user_id: int, item_id: Any) -> Dict[str, Any]:
    try:
        item_id = int(item_id)
    except (TypeError, ValueError) as exc:
        raise CartValidationError("item_id_required") from exc
    if not cart_repo.remove_item(user_id, item_id):
        raise CartItemNotFoundError("cart_item_not_found")
    return get_cart(user_id)


def clear_cart(user_id: int) -> Dict[str, Any]:
    removed = cart_repo.clear(user_id)
    LOG.debug("Cart cleared user_id=%s removed=%s", user_id, removed)
    return get_cart(user_id)


def reorder(user_id: int, order_id: Any) -> Dict[str, Any]:
    """Copy the still-available items of one of the user's orders into the cart."""
    try:
        order_id = int(order_id)
    except (TypeError, ValueError) as exc:
        raise CartValidationError("order_id_required") from exc
    order = orders_repo.get_order(order_id)
    if not order or order.user_id != user_id:
        raise CartItemNotFoundError("order_not_found")
    items = orders_repo.list_items([order.id]).get(order.id, [])
    books = books_repo.get_books(item.book_id for item in items)
    skipped = []
    for item in items:
        book = books.get(item.book_id)
        if not book or book.status != constants.BOOK_APPROVED:
            skipped.append(item.book_id)
            continue
        cart_repo.add_item(user_id, item.book_id, item.quantity or 1)
    cart = get_cart(user_id)
    cart["skipped_book_ids"] = skipped
    return cart


__all__ = [
    "CartError",
    "CartValidationError",
    "CartItemNotFoundError",
    "BookUnavailableError",
    "compute_totals",
    "get_cart",
    "add_to_cart",
    "update_quantity",
    "remove_item",
    "clear_cart",
    "reorder",
]
