"""Checkout, single-book payment links and the user's library."""
from __future__ import annotations

from flask import Blueprint, jsonify

from booktech.routes.common import current_user, json_body, json_error, require_login
from booktech.services import checkout_service
from booktech.utils.logging import get_logger

bp = Blueprint("checkout_api", __name__, url_prefix="/api/checkout")
LOG = get_logger("routes.checkout")

_ERROR_MESSAGES = {
    "cart_empty": "Your cart is empty.",
    "shipping_address_required": "A shipping address is required.",
    "shipping_address_incomplete": "Shipping address needs name, address, city and pincode.",
    "payment_method_invalid": "Unsupported payment method.",
    "book_id_required": "bookId is required.",
    "book_not_found": "Book not found.",
    "invalid_book_price": "Invalid book price.",
    "payment_gateway_unavailable": "Payment gateway is unavailable. Try again later.",
}


def _json_error(code: str, status: int = 400, **kwargs):
    return json_error(code, status, messages=_ERROR_MESSAGES, **kwargs)


def _run(fn, *args):
    try:
        return jsonify(fn(*args))
    except checkout_service.CheckoutValidationError as exc:
        return _json_error(str(exc), 400)
    except checkout_service.EmptyCartError:
        return _json_error("cart_empty", 400)
    except checkout_service.OrderNotFoundError as exc:
        return _json_error(str(exc), 404)
    except checkout_service.GatewayUnavailableError:
        return _json_error("payment_gateway_unavailable", 502)


@bp.route("", methods=["POST"])
def checkout():
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    address = data.get("shipping_address", data.get("shippingAddress"))
    method = data.get("payment_method", data.get("paymentMethod"))
    return _run(checkout_service.checkout, current_user(), address, method)


@bp.route("/create-payment-link", methods=["POST"])
def create_payment_link():
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    return _run(checkout_service.buy_book, current_user(), data.get("book_id", data.get("bookId")))


@bp.route("/library", methods=["GET"])
def library():
    auth = require_login()
    if auth is not True:
        return auth
    return jsonify(checkout_service.library(current_user()["id"]))


def register_checkout_routes(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_checkout_routes"]
