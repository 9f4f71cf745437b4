"""Inbound payment-gateway webhook."""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from booktech.routes.common import json_error
from booktech.services import checkout_service
from booktech.utils.logging import get_logger

bp = Blueprint("payments_api", __name__, url_prefix="/api/razorpay")
LOG = get_logger("routes.payments")

_ERROR_MESSAGES = {
    "webhook_secret_not_configured": "Webhook secret is not configured.",
    "signature_invalid": "Webhook signature mismatch.",
    "invalid_json": "Webhook body is not valid JSON.",
}


@bp.route("/webhook", methods=["POST"])
def webhook():
    raw = request.get_data(cache=False) or b""
    ok, result = checkout_service.handle_webhook(raw, request.headers)
    if not ok:
        code = result.get("error") or "rejected"
        status = 503 if code == "webhook_secret_not_configured" else 400
        return json_error(code, status, messages=_ERROR_MESSAGES)
    return jsonify({"status": "ok", **result})


def register_payments_routes(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_payments_routes"]
