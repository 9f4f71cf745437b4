"""Per-user endpoints under /api/users: profile, passwords, reading and wishlist."""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from booktech.routes.common import current_user, json_body, json_error, require_login
from booktech.services import (
    auth_service,
    cart_service,
    reading_service,
    users_service,
    wishlist_service,
)
from booktech.utils.logging import get_logger

bp = Blueprint("users_api", __name__, url_prefix="/api/users")
LOG = get_logger("routes.users")

_ERROR_MESSAGES = {
    "user_not_found": "User not found.",
    "name_required": "Name cannot be empty.",
    "email_invalid": "A valid email address is required.",
    "email_in_use": "Email already in use.",
    "avatar_invalid": "Avatar must be an http(s) URL.",
    "current_password_incorrect": "Current password is incorrect.",
    "password_too_short": "Password must be at least 6 characters.",
    "invalid_or_expired_token": "Invalid or expired token.",
    "token_already_used": "This reset link was already used.",
    "book_required": "book is required.",
    "page_required": "page is required.",
    "book_not_found": "Book not found.",
    "version_invalid": "version must be a number.",
    "total_pages_invalid": "totalPages must be a number.",
    "reading_time_invalid": "readingTime must be a non-negative number.",
    "pages_read_invalid": "pagesRead must be a non-negative number.",
    "book_invalid": "bookId must be a number.",
    "wishlist_item_not_found": "Book is not in your wishlist.",
}


def _json_error(code: str, status: int = 400, **kwargs):
    return json_error(code, status, messages=_ERROR_MESSAGES, **kwargs)


def _pick(data, *keys):
    for key in keys:
        if key in data:
            return data[key]
    return None


@bp.route("/profile", methods=["GET"])
def get_profile():
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(users_service.get_profile(current_user()["id"]))
    except users_service.ProfileError as exc:
        return _json_error(str(exc), 404)


@bp.route("/profile", methods=["PUT"])
def update_profile():
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(users_service.update_profile(current_user()["id"], json_body()))
    except users_service.ProfileValidationError as exc:
        return _json_error(str(exc), 400)
    except users_service.ProfileError as exc:
        code = str(exc)
        return _json_error(code, 409 if code == "email_in_use" else 404)


@bp.route("/password", methods=["PUT"])
def change_password():
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    try:
        auth_service.change_password(
            current_user()["id"],
            _pick(data, "current_password", "currentPassword"),
            _pick(data, "new_password", "newPassword"),
        )
    except auth_service.AuthValidationError as exc:
        return _json_error(str(exc), 400)
    except auth_service.InvalidCredentialsError:
        return _json_error("current_password_incorrect", 400)
    except auth_service.UserNotFoundError:
        return _json_error("user_not_found", 404)
    return jsonify({"message": "Password changed successfully"})


@bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    auth_service.forgot_password(json_body().get("email"))
    return jsonify({"message": auth_service.FORGOT_PASSWORD_MESSAGE})


@bp.route("/reset-password", methods=["POST"])
def reset_password():
    data = json_body()
    try:
        auth_service.reset_password(data.get("token"), _pick(data, "new_password", "newPassword"))
    except auth_service.AuthValidationError as exc:
        return _json_error(str(exc), 400)
    except auth_service.ResetTokenError as exc:
        return _json_error(str(exc), 400)
    return jsonify({"message": "Password reset successful"})


@bp.route("/progress", methods=["GET"])
def get_progress():
    auth = require_login()
    if auth is not True:
        return auth
    user_id = current_user()["id"]
    book = request.args.get("book", type=int)
    if book is None:
        return jsonify(reading_service.list_progress(user_id))
    return jsonify(reading_service.get_progress(user_id, book))


@bp.route("/progress", methods=["POST"])
def save_progress():
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    try:
        result = reading_service.save_progress(
            current_user()["id"],
            _pick(data, "book", "book_id", "bookId"),
            data.get("page"),
            total_pages=_pick(data, "total_pages", "totalPages"),
            version=data.get("version"),
        )
    except reading_service.ReadingValidationError as exc:
        return _json_error(str(exc), 400)
    except reading_service.BookNotFoundError:
        return _json_error("book_not_found", 404)
    return jsonify(result), (409 if result.get("stale") else 200)


@bp.route("/reading-stats", methods=["GET"])
def get_reading_stats():
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(reading_service.get_reading_stats(current_user()["id"]))
    except reading_service.ReadingError as exc:
        return _json_error(str(exc), 404)


@bp.route("/reading-stats", methods=["POST"])
def record_reading_stats():
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    try:
        result = reading_service.record_reading_stats(
            current_user()["id"],
            _pick(data, "book_id", "bookId"),
            _pick(data, "reading_time", "readingTime") or 0,
            _pick(data, "pages_read", "pagesRead"),
        )
    except reading_service.ReadingValidationError as exc:
        return _json_error(str(exc), 400)
    except reading_service.ReadingError as exc:
        return _json_error(str(exc), 404)
    return jsonify(result)


@bp.route("/bookmarks", methods=["GET"])
def list_bookmarks():
    auth = require_login()
    if auth is not True:
        return auth
    book = request.args.get("book", type=int)
    if book is None:
        return _json_error("book_required", 400)
    return jsonify({"book": book, "bookmarks": reading_service.list_bookmarks(current_user()["id"], book)})


@bp.route("/bookmarks", methods=["POST"])
def toggle_bookmark():
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    try:
        result = reading_service.toggle_bookmark(
            current_user()["id"], _pick(data, "book", "book_id", "bookId"), data.get("page")
        )
    except reading_service.ReadingValidationError as exc:
        return _json_error(str(exc), 400)
    except reading_service.BookNotFoundError:
        return _json_error("book_not_found", 404)
    return jsonify(result)


@bp.route("/wishlist", methods=["GET"])
def wishlist():
    auth = require_login()
    if auth is not True:
        return auth
    return jsonify(wishlist_service.list_wishlist(current_user()["id"]))


@bp.route("/wishlist/<int:book_id>", methods=["POST"])
def wishlist_add(book_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        result = wishlist_service.add(current_user()["id"], book_id)
    except wishlist_service.WishlistError as exc:
        return _json_error(str(exc), 404)
    return jsonify(result), (201 if result["created"] else 200)


@bp.route("/wishlist/<int:book_id>", methods=["DELETE"])
def wishlist_remove(book_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        wishlist_service.remove(current_user()["id"], book_id)
    except wishlist_service.WishlistError as exc:
        return _json_error(str(exc), 404)
    return jsonify({"message": "Removed from wishlist"})


@bp.route("/wishlist/<int:book_id>/move-to-cart", methods=["POST"])
def wishlist_move(book_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(wishlist_service.move_to_cart(current_user()["id"], book_id))
    except wishlist_service.WishlistError as exc:
        return _json_error(str(exc), 404)
    except cart_service.BookUnavailableError:
        return _json_error("book_not_found", 404)


def register_users_routes(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_users_routes"]
