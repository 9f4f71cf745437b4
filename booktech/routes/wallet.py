"""Wallet, referral-code and settlement endpoints (user side under /api/users)."""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from booktech.routes.common import current_user, json_body, json_error, require_login
from booktech.services import wallet_service
from booktech.utils.logging import get_logger

bp = Blueprint("wallet_api", __name__, url_prefix="/api/users")
LOG = get_logger("routes.wallet")

_ERROR_MESSAGES = {
    "invalid_transaction_type": "Unknown transaction type.",
    "invalid_reward_amount": "Reward amount must be positive.",
    "invalid_max_usage": "Max usage must be at least 1.",
    "invalid_expiry": "Expiry must be a positive number of days.",
    "referral_code_not_found": "Referral code not found.",
    "referral_code_generation_failed": "Could not generate a unique code. Try again.",
    "invalid_amount": "Amount must be positive.",
    "amount_below_minimum": "Amount is below the minimum settlement.",
    "bank_details_required": "Bank details (account holder, account number, IFSC) are required.",
    "insufficient_balance": "Amount exceeds your available balance.",
}


def _json_error(code: str, status: int = 400, **kwargs):
    return json_error(code, status, messages=_ERROR_MESSAGES, **kwargs)


def _wallet_error(exc: Exception):
    code = str(exc)
    if isinstance(exc, wallet_service.ReferralCodeError):
        return _json_error(code, 404)
    if isinstance(exc, wallet_service.InsufficientBalanceError):
        return _json_error(code, 409)
    if isinstance(exc, wallet_service.WalletError):
        return _json_error(code, 500)
    return _json_error(code, 400)


_ERRORS = (wallet_service.WalletError, wallet_service.WalletValidationError)


@bp.route("/wallet", methods=["GET"])
def wallet():
    auth = require_login()
    if auth is not True:
        return auth
    return jsonify(wallet_service.get_wallet(current_user()["id"]))


@bp.route("/transactions", methods=["GET"])
def transactions():
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(wallet_service.list_transactions(current_user()["id"], request.args.get("type")))
    except _ERRORS as exc:
        return _wallet_error(exc)


@bp.route("/referral-codes", methods=["GET"])
def referral_codes():
    auth = require_login()
    if auth is not True:
        return auth
    return jsonify(wallet_service.list_referral_codes(current_user()["id"]))


@bp.route("/referral-codes", methods=["POST"])
def create_referral_code():
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    try:
        row = wallet_service.create_referral_code(
            current_user()["id"],
            reward_amount=data.get("reward_amount", data.get("rewardAmount", 100)),
            max_usage=data.get("max_usage", data.get("maxUsage", 10)),
            expires_in_days=data.get("expires_in_days", data.get("expiresInDays")),
        )
    except _ERRORS as exc:
        return _wallet_error(exc)
    return jsonify(row), 201


@bp.route("/referral-codes/<int:code_id>/deactivate", methods=["PATCH"])
def deactivate_referral_code(code_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(wallet_service.deactivate_referral_code(current_user()["id"], code_id))
    except _ERRORS as exc:
        return _wallet_error(exc)


@bp.route("/settlement-requests", methods=["GET"])
def settlements():
    auth = require_login()
    if auth is not True:
        return auth
    return jsonify(wallet_service.list_settlements(current_user()["id"]))


@bp.route("/settlement-requests", methods=["POST"])
def request_settlement():
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    try:
        row = wallet_service.request_settlement(
            current_user()["id"],
            data.get("amount"),
            data.get("bank_details", data.get("bankDetails")),
        )
    except _ERRORS as exc:
        return _wallet_error(exc)
    return jsonify(row), 201


def register_wallet_routes(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_wallet_routes"]
