"""Order endpoints for customers, authors, admins and delivery staff.

Three blueprints live here because they share error handling:
``/api/orders``, ``/api/author`` and ``/api/delivery-boy``.
"""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from booktech.routes.common import (
    current_user,
    json_body,
    json_error,
    require_admin,
    require_login,
    require_role,
)
from booktech.services import delivery_service, orders_service
from booktech.utils.logging import get_logger

bp = Blueprint("orders_api", __name__, url_prefix="/api/orders")
author_bp = Blueprint("author_api", __name__, url_prefix="/api/author")
delivery_bp = Blueprint("delivery_api", __name__, url_prefix="/api/delivery-boy")
LOG = get_logger("routes.orders")

_ERROR_MESSAGES = {
    "order_not_found": "Order not found.",
    "not_authorized": "Not authorized to access this order.",
    "status_invalid": "Unknown status.",
    "delivery_not_found": "Delivery not found.",
    "delivery_boy_not_found": "Delivery user not found.",
    "order_already_assigned": "Order is already assigned.",
    "order_not_deliverable": "Cancelled or delivered orders cannot be assigned.",
}


def _json_error(code: str, status: int = 400, **kwargs):
    return json_error(code, status, messages=_ERROR_MESSAGES, **kwargs)


def _order_error(exc: Exception):
    if isinstance(exc, (orders_service.OrderNotFoundError, delivery_service.DeliveryNotFoundError)):
        return _json_error(str(exc), 404)
    if isinstance(exc, orders_service.OrderAccessError):
        return _json_error("not_authorized", 403)
    if isinstance(exc, (orders_service.OrderTransitionError, delivery_service.DeliveryTransitionError)):
        return _json_error(str(exc), 409, message=f"Transition not allowed: {exc}")
    if str(exc) == "order_already_assigned":
        return _json_error("order_already_assigned", 409)
    return _json_error(str(exc), 400)


_ERRORS = (orders_service.OrderError, delivery_service.DeliveryError)


@bp.route("/my-orders", methods=["GET"])
def my_orders():
    auth = require_login()
    if auth is not True:
        return auth
    return jsonify(orders_service.my_orders(current_user()["id"]))


@bp.route("/author-orders", methods=["GET"])
def author_orders():
    auth = require_role("author", "admin")
    if auth is not True:
        return auth
    return jsonify(orders_service.author_orders(current_user()["id"]))


@bp.route("/update-status/<int:order_id>", methods=["PATCH"])
def update_status(order_id: int):
    auth = require_role("author", "admin")
    if auth is not True:
        return auth
    data = json_body()
    status = data.get("status", data.get("orderStatus"))
    try:
        return jsonify(orders_service.update_status(order_id, status, current_user()))
    except _ERRORS as exc:
        return _order_error(exc)


@bp.route("/<int:order_id>", methods=["GET"])
def get_order(order_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(orders_service.get_order(order_id, current_user()))
    except _ERRORS as exc:
        return _order_error(exc)


@bp.route("/admin/all", methods=["GET"])
def admin_orders():
    auth = require_admin()
    if auth is not True:
        return auth
    return jsonify(orders_service.all_orders(request.args.get("status")))


@bp.route("/<int:order_id>/assign", methods=["POST"])
def assign(order_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    data = json_body()
    courier = data.get("delivery_boy_id", data.get("deliveryBoyId"))
    try:
        return jsonify(delivery_service.assign(order_id, courier, data.get("notes"))), 201
    except _ERRORS as exc:
        return _order_error(exc)


@author_bp.route("/dashboard", methods=["GET"])
def author_dashboard():
    auth = require_role("author", "admin")
    if auth is not True:
        return auth
    return jsonify(orders_service.author_dashboard(current_user()["id"]))


@author_bp.route("/orders", methods=["GET"])
def author_orders_alias():
    return author_orders()


@delivery_bp.route("/deliveries", methods=["GET"])
def deliveries():
    auth = require_role("delivery_boy")
    if auth is not True:
        return auth
    try:
        return jsonify(delivery_service.list_for(current_user()["id"], request.args.get("status")))
    except _ERRORS as exc:
        return _order_error(exc)


@delivery_bp.route("/stats", methods=["GET"])
def delivery_stats():
    auth = require_role("delivery_boy")
    if auth is not True:
        return auth
    return jsonify(delivery_service.stats(current_user()["id"]))


@delivery_bp.route("/deliveries/<int:delivery_id>/status", methods=["PATCH"])
def delivery_status(delivery_id: int):
    auth = require_role("delivery_boy")
    if auth is not True:
        return auth
    data = json_body()
    try:
        result = delivery_service.update_status(current_user()["id"], delivery_id, data.get("status"), data.get("notes"))
    except _ERRORS as exc:
        return _order_error(exc)
    return jsonify(result)


def register_orders_routes(app) -> None:
    app.register_blueprint(bp)
    app.register_blueprint(author_bp)
    app.register_blueprint(delivery_bp)


__all__ = ["bp", "author_bp", "delivery_bp", "register_orders_routes"]
