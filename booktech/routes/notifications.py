"""Notification endpoints under /api/notifications."""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from booktech.routes.common import current_user, json_body, json_error, require_login
from booktech.services import notifications_service

bp = Blueprint("notifications_api", __name__, url_prefix="/api/notifications")

_ERROR_MESSAGES = {
    "message_required": "Message is required.",
    "type_invalid": "Unknown notification type.",
    "recipient_required": "Recipient is required.",
    "recipient_not_found": "Recipient not found.",
    "notification_not_found": "Notification not found.",
}


def _json_error(code: str, status: int = 400, **kwargs):
    return json_error(code, status, messages=_ERROR_MESSAGES, **kwargs)


@bp.route("", methods=["POST"])
def send():
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    try:
        row = notifications_service.send(
            data.get("recipient", data.get("recipient_id")),
            data.get("message"),
            type=data.get("type") or "info",
            sender_id=current_user()["id"],
        )
    except notifications_service.NotificationValidationError as exc:
        return _json_error(str(exc), 400)
    except notifications_service.NotificationError as exc:
        return _json_error(str(exc), 404)
    return jsonify(row), 201


@bp.route("", methods=["GET"])
def list_notifications():
    auth = require_login()
    if auth is not True:
        return auth
    unread_only = request.args.get("unread", "").lower() in ("1", "true", "yes")
    return jsonify(notifications_service.list_for(current_user()["id"], unread_only))


@bp.route("/unread-count", methods=["GET"])
def unread_count():
    auth = require_login()
    if auth is not True:
        return auth
    return jsonify({"unread_count": notifications_service.unread_count(current_user()["id"])})


@bp.route("/<int:notification_id>/read", methods=["PUT"])
def mark_read(notification_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(notifications_service.mark_read(current_user()["id"], notification_id))
    except notifications_service.NotificationError as exc:
        return _json_error(str(exc), 404)


@bp.route("/read-all", methods=["PUT"])
def mark_all_read():
    auth = require_login()
    if auth is not True:
        return auth
    return jsonify(notifications_service.mark_all_read(current_user()["id"]))


@bp.route("/<int:notification_id>", methods=["DELETE"])
def delete(notification_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        notifications_service.delete(current_user()["id"], notification_id)
    except notifications_service.NotificationError as exc:
        return _json_error(str(exc), 404)
    return jsonify({"message": "Notification deleted"})


def register_notifications_routes(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_notifications_routes"]
