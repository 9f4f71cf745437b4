"""Contact form, support tickets and help articles under /api/support."""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from booktech.routes.common import current_user, json_body, json_error, require_login
from booktech.services import support_service
from booktech.utils import load_current_user

bp = Blueprint("support_api", __name__, url_prefix="/api/support")

_ERROR_MESSAGES = {
    "message_required": "Message is required.",
    "subject_required": "Subject is required.",
    "description_required": "Description is required.",
    "category_invalid": "Unknown ticket category.",
    "priority_invalid": "Unknown ticket priority.",
    "ticket_not_found": "Ticket not found.",
    "ticket_closed": "This ticket is closed.",
}


def _json_error(code: str, status: int = 400, **kwargs):
    return json_error(code, status, messages=_ERROR_MESSAGES, **kwargs)


def _support_error(exc: Exception):
    if isinstance(exc, support_service.TicketNotFoundError):
        return _json_error(str(exc), 404)
    if isinstance(exc, support_service.TicketTransitionError):
        return _json_error(str(exc), 409)
    return _json_error(str(exc), 400)


_ERRORS = (support_service.SupportError, support_service.SupportValidationError)


@bp.route("", methods=["POST"])
def contact():
    data = json_body()
    viewer = load_current_user() or {}
    try:
        row = support_service.submit_message(
            data.get("message"),
            email=data.get("email") or viewer.get("email"),
            user_id=viewer.get("id"),
        )
    except _ERRORS as exc:
        return _support_error(exc)
    return jsonify({"message": "Support message received", "id": row["id"]}), 201


@bp.route("/tickets", methods=["POST"])
def create_ticket():
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(support_service.create_ticket(current_user()["id"], json_body())), 201
    except _ERRORS as exc:
        return _support_error(exc)


@bp.route("/tickets", methods=["GET"])
def list_tickets():
    auth = require_login()
    if auth is not True:
        return auth
    return jsonify(support_service.list_tickets(current_user()["id"]))


@bp.route("/tickets/<int:ticket_id>", methods=["GET"])
def get_ticket(ticket_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(support_service.get_ticket(ticket_id, current_user()))
    except _ERRORS as exc:
        return _support_error(exc)


@bp.route("/tickets/<int:ticket_id>/reply", methods=["POST"])
def reply(ticket_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(support_service.reply(ticket_id, current_user(), json_body().get("message")))
    except _ERRORS as exc:
        return _support_error(exc)


@bp.route("/help-articles", methods=["GET"])
def help_articles():
    return jsonify(support_service.help_articles(request.args.get("category")))


def register_support_routes(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_support_routes"]
