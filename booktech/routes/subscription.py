"""Subscription and plan endpoints under /api/subscription."""
from __future__ import annotations

from flask import Blueprint, jsonify

from booktech.routes.common import current_user, json_body, json_error, require_admin, require_login
from booktech.services import subscription_service

bp = Blueprint("subscription_api", __name__, url_prefix="/api/subscription")

_ERROR_MESSAGES = {
    "plan_invalid": "Unknown plan.",
    "plan_not_found": "Plan not found.",
    "plan_exists": "A plan with that name already exists.",
    "plan_name_invalid": "Plan name must be basic, premium or enterprise.",
    "name_required": "Plan name is required.",
    "price_invalid": "Price must be positive.",
    "features_invalid": "Features must be a list.",
    "user_not_found": "User not found.",
    "payment_gateway_unavailable": "Payment gateway is unavailable. Try again later.",
}


def _json_error(code: str, status: int = 400, **kwargs):
    return json_error(code, status, messages=_ERROR_MESSAGES, **kwargs)


def _sub_error(exc: Exception):
    if isinstance(exc, subscription_service.PlanNotFoundError):
        return _json_error(str(exc), 404)
    if isinstance(exc, subscription_service.GatewayUnavailableError):
        return _json_error(str(exc), 502)
    if str(exc) == "plan_exists":
        return _json_error("plan_exists", 409)
    if str(exc) == "user_not_found":
        return _json_error("user_not_found", 404)
    return _json_error(str(exc), 400)


_ERRORS = (subscription_service.SubscriptionError, subscription_service.SubscriptionValidationError)


@bp.route("", methods=["GET"])
def get_subscription():
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(subscription_service.get_subscription(current_user()["id"]))
    except _ERRORS as exc:
        return _sub_error(exc)


@bp.route("", methods=["POST"])
def subscribe():
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(subscription_service.subscribe(current_user()["id"], json_body().get("plan")))
    except _ERRORS as exc:
        return _sub_error(exc)


@bp.route("", methods=["DELETE"])
def cancel():
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(subscription_service.cancel(current_user()["id"]))
    except _ERRORS as exc:
        return _sub_error(exc)


@bp.route("/pay", methods=["POST"])
def subscribe_with_payment():
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(subscription_service.subscribe_with_payment(current_user(), json_body().get("plan")))
    except _ERRORS as exc:
        return _sub_error(exc)


@bp.route("/plans", methods=["GET"])
def plans():
    return jsonify(subscription_service.list_plans())


@bp.route("/plans", methods=["POST"])
def create_plan():
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(subscription_service.create_plan(json_body())), 201
    except _ERRORS as exc:
        return _sub_error(exc)


@bp.route("/plans/<int:plan_id>", methods=["PUT"])
def update_plan(plan_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(subscription_service.update_plan(plan_id, json_body()))
    except _ERRORS as exc:
        return _sub_error(exc)


@bp.route("/plans/<int:plan_id>", methods=["DELETE"])
def delete_plan(plan_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        subscription_service.delete_plan(plan_id)
    except _ERRORS as exc:
        return _sub_error(exc)
    return jsonify({"message": "Plan deleted"})


def register_subscription_routes(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_subscription_routes"]
