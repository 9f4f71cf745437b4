"""Admin-only endpoints under /api/admin.

Every handler starts with the ``require_admin()`` guard. Services raise
code-bearing exceptions which are mapped to JSON errors here.
"""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from booktech.routes.common import current_user, json_body, json_error, require_admin
from booktech.services import admin_service, books_service, support_service, wallet_service
from booktech.utils.logging import get_logger

bp = Blueprint("admin_api", __name__, url_prefix="/api/admin")
LOG = get_logger("routes.admin")

_ERROR_MESSAGES = {
    "user_not_found": "User not found.",
    "cannot_delete_self": "You cannot delete your own account.",
    "role_invalid": "Unknown role.",
    "subscription_invalid": "Unknown subscription.",
    "email_invalid": "Email address is invalid.",
    "email_in_use": "Email already registered.",
    "book_not_found": "Book not found.",
    "settlement_not_found": "Settlement request not found.",
    "rejection_reason_required": "A rejection reason is required.",
    "ticket_not_found": "Ticket not found.",
    "review_not_found": "Review not found.",
    "rating_required": "Rating required.",
    "rating_out_of_range": "Rating must be between 1 and 5.",
    "nothing_to_update": "Provide a rating or comment to change.",
    "action_type_invalid": "Action must be edit or delete.",
    "book_invalid": "book must be a number.",
}

_NOT_FOUND = (
    admin_service.UserNotFoundError,
    books_service.BookNotFoundError,
    books_service.ReviewNotFoundError,
    wallet_service.SettlementNotFoundError,
    support_service.TicketNotFoundError,
)
_CONFLICT = (
    wallet_service.SettlementTransitionError,
    support_service.TicketTransitionError,
)
_ERRORS = (
    admin_service.AdminError,
    admin_service.AdminValidationError,
    books_service.BookError,
    books_service.BookValidationError,
    wallet_service.WalletError,
    wallet_service.WalletValidationError,
    support_service.SupportError,
    support_service.SupportValidationError,
)


def _json_error(code: str, status: int = 400, **kwargs):
    return json_error(code, status, messages=_ERROR_MESSAGES, **kwargs)


def _admin_error(exc: Exception):
    code = str(exc)
    if isinstance(exc, _NOT_FOUND):
        return _json_error(code, 404)
    if isinstance(exc, _CONFLICT):
        return _json_error(code, 409, message=f"Transition not allowed: {code}")
    if code == "email_in_use":
        return _json_error(code, 409)
    return _json_error(code, 400)


# ---- users ----

@bp.route("/users", methods=["GET"])
def list_users():
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(admin_service.list_users(request.args.get("role")))
    except _ERRORS as exc:
        return _admin_error(exc)


@bp.route("/users/<int:user_id>", methods=["PUT"])
def update_user(user_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(admin_service.update_user(user_id, json_body()))
    except _ERRORS as exc:
        return _admin_error(exc)


@bp.route("/users/<int:user_id>", methods=["DELETE"])
def delete_user(user_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        result = admin_service.delete_user(user_id, current_user()["id"])
    except _ERRORS as exc:
        return _admin_error(exc)
    LOG.info("Admin %s deleted user %s", current_user().get("id"), user_id)
    return jsonify(result)


@bp.route("/cleanup", methods=["POST"])
def cleanup():
    auth = require_admin()
    if auth is not True:
        return auth
    return jsonify({"message": "Cleanup complete", "results": admin_service.cleanup()})


# ---- books ----

@bp.route("/books", methods=["GET"])
def list_books():
    auth = require_admin()
    if auth is not True:
        return auth
    return jsonify(books_service.list_all())


@bp.route("/books/<int:book_id>", methods=["PUT"])
def update_book(book_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(books_service.admin_update_book(book_id, json_body()))
    except _ERRORS as exc:
        return _admin_error(exc)


@bp.route("/books/<int:book_id>", methods=["DELETE"])
def delete_book(book_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        books_service.admin_delete_book(book_id)
    except _ERRORS as exc:
        return _admin_error(exc)
    return jsonify({"message": "Book deleted"})


# ---- review moderation ----

@bp.route("/reviews/<int:review_id>", methods=["PUT"])
def edit_review(review_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(books_service.moderate_review(current_user()["id"], review_id, json_body()))
    except _ERRORS as exc:
        return _admin_error(exc)


@bp.route("/reviews/<int:review_id>", methods=["DELETE"])
def delete_review(review_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        result = books_service.remove_review(current_user()["id"], review_id, json_body().get("reason"))
    except _ERRORS as exc:
        return _admin_error(exc)
    return jsonify(result)


@bp.route("/moderation-logs", methods=["GET"])
def moderation_logs():
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(
            books_service.list_moderation_logs(request.args.get("book"), request.args.get("action"))
        )
    except _ERRORS as exc:
        return _admin_error(exc)


# ---- analytics ----

@bp.route("/analytics", methods=["GET"])
def analytics():
    auth = require_admin()
    if auth is not True:
        return auth
    return jsonify(admin_service.analytics())


@bp.route("/financial-stats", methods=["GET"])
def financial_stats():
    auth = require_admin()
    if auth is not True:
        return auth
    return jsonify(wallet_service.financial_stats())


# ---- payouts ----

@bp.route("/settlement-requests", methods=["GET"])
def settlements():
    auth = require_admin()
    if auth is not True:
        return auth
    return jsonify(wallet_service.admin_list_settlements(request.args.get("status")))


@bp.route("/settlement-requests/<int:settlement_id>/processing", methods=["PATCH"])
def settlement_processing(settlement_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(wallet_service.mark_processing(settlement_id, current_user()["id"]))
    except _ERRORS as exc:
        return _admin_error(exc)


@bp.route("/settlement-requests/<int:settlement_id>/approve", methods=["PATCH"])
def settlement_approve(settlement_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(wallet_service.approve_settlement(settlement_id, current_user()["id"]))
    except _ERRORS as exc:
        return _admin_error(exc)


@bp.route("/settlement-requests/<int:settlement_id>/reject", methods=["PATCH"])
def settlement_reject(settlement_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    data = json_body()
    try:
        row = wallet_service.reject_settlement(
            settlement_id,
            current_user()["id"],
            data.get("reason", data.get("rejection_reason")),
        )
    except _ERRORS as exc:
        return _admin_error(exc)
    return jsonify(row)


# ---- support ----

@bp.route("/tickets", methods=["GET"])
def tickets():
    auth = require_admin()
    if auth is not True:
        return auth
    return jsonify(support_service.admin_list(request.args.get("status")))


@bp.route("/tickets/<int:ticket_id>/status", methods=["PATCH"])
def ticket_status(ticket_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(support_service.set_status(ticket_id, json_body().get("status")))
    except _ERRORS as exc:
        return _admin_error(exc)


def register_admin_routes(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_admin_routes"]
