"""Cart endpoints under /api/cart. Every mutation answers with the full cart."""
from __future__ import annotations

from flask import Blueprint, jsonify

from booktech.routes.common import current_user, json_body, json_error, require_login
from booktech.services import cart_service
from booktech.utils.logging import get_logger

bp = Blueprint("cart_api", __name__, url_prefix="/api/cart")
LOG = get_logger("routes.cart")

_ERROR_MESSAGES = {
    "book_id_required": "bookId is required.",
    "item_id_required": "itemId is required.",
    "order_id_required": "orderId is required.",
    "quantity_invalid": "Quantity must be a whole number.",
    "book_not_found": "Book not found.",
    "cart_item_not_found": "Cart item not found.",
    "order_not_found": "Order not found.",
}


def _json_error(code: str, status: int = 400, **kwargs):
    return json_error(code, status, messages=_ERROR_MESSAGES, **kwargs)


def _handle(fn, *args):
    try:
        return jsonify(fn(*args))
    except cart_service.CartValidationError as exc:
        return _json_error(str(exc), 400)
    except (cart_service.CartItemNotFoundError, cart_service.BookUnavailableError) as exc:
        return _json_error(str(exc), 404)


@bp.route("", methods=["GET"])
def get_cart():
    auth = require_login()
    if auth is not True:
        return auth
    return jsonify(cart_service.get_cart(current_user()["id"]))


@bp.route("/add", methods=["POST"])
def add():
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    book_id = data.get("book_id", data.get("bookId"))
    return _handle(cart_service.add_to_cart, current_user()["id"], book_id, data.get("quantity"))


@bp.route("/update", methods=["PATCH"])
def update():
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    item_id = data.get("item_id", data.get("itemId"))
    return _handle(cart_service.update_quantity, current_user()["id"], item_id, data.get("quantity"))


@bp.route("/remove", methods=["DELETE"])
def remove():
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    item_id = data.get("item_id", data.get("itemId"))
    return _handle(cart_service.remove_item, current_user()["id"], item_id)


@bp.route("/clear", methods=["DELETE"])
def clear():
    auth = require_login()
    if auth is not True:
        return auth
    return jsonify(cart_service.clear_cart(current_user()["id"]))


@bp.route("/reorder", methods=["POST"])
def reorder():
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    order_id = data.get("order_id", data.get("orderId"))
    return _handle(cart_service.reorder, current_user()["id"], order_id)


def register_cart_routes(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_cart_routes"]
