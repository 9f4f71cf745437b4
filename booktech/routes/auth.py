"""Signup / signin / current-user endpoints under /api/auth."""
from __future__ import annotations

from flask import Blueprint, jsonify

from booktech.routes.common import current_user, json_body, json_error, require_login
from booktech.services import auth_service
from booktech.utils.logging import get_logger

bp = Blueprint("auth_api", __name__, url_prefix="/api/auth")
LOG = get_logger("routes.auth")

_ERROR_MESSAGES = {
    "email_required": "A valid email address is required.",
    "password_too_short": "Password must be at least 6 characters.",
    "role_not_allowed": "That role cannot be chosen at signup.",
    "email_in_use": "Email already in use.",
    "invalid_credentials": "Invalid credentials.",
    "user_not_found": "User not found.",
}


def _json_error(code: str, status: int = 400, **kwargs):
    return json_error(code, status, messages=_ERROR_MESSAGES, **kwargs)


@bp.route("/signup", methods=["POST"])
def signup():
    data = json_body()
    try:
        result = auth_service.signup(
            email=data.get("email"),
            password=data.get("password"),
            name=data.get("name"),
            role=data.get("role"),
            referral_code=data.get("referral_code") or data.get("referralCode"),
        )
    except auth_service.AuthValidationError as exc:
        return _json_error(str(exc), 400)
    except auth_service.EmailInUseError:
        return _json_error("email_in_use", 409)
    return jsonify(result), 201


@bp.route("/signin", methods=["POST"])
def signin():
    data = json_body()
    try:
        result = auth_service.signin(email=data.get("email"), password=data.get("password"))
    except auth_service.InvalidCredentialsError:
        return _json_error("invalid_credentials", 401)
    return jsonify(result)


@bp.route("/me", methods=["GET"])
def me():
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(auth_service.me(current_user()["id"]))
    except auth_service.UserNotFoundError:
        return _json_error("user_not_found", 404)


def register_auth_routes(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_auth_routes"]
