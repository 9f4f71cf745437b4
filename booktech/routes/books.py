"""Catalogue, authoring, moderation and review endpoints under /api/books."""
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
from booktech.services import books_service
from booktech.utils import load_current_user
from booktech.utils.logging import get_logger

bp = Blueprint("books_api", __name__, url_prefix="/api/books")
LOG = get_logger("routes.books")

_ERROR_MESSAGES = {
    "book_not_found": "Book not found.",
    "book_not_found_or_not_yours": "Book not found or not your book.",
    "not_authorized": "Not authorized.",
    "title_required": "Title is required.",
    "price_invalid": "Price must be zero or more.",
    "tags_invalid": "Tags must be a list.",
    "content_invalid": "Content must be a list of chapters.",
    "reading_type_invalid": "Reading type must be soft or hard.",
    "total_pages_invalid": "Total pages must be a positive number.",
    "rating_required": "Rating required.",
    "rating_out_of_range": "Rating must be between 1 and 5.",
    "already_reviewed": "You have already reviewed this book.",
    "status_invalid": "Unknown book status.",
}


def _json_error(code: str, status: int = 400, **kwargs):
    return json_error(code, status, messages=_ERROR_MESSAGES, **kwargs)


def _not_found_or_invalid(exc: Exception):
    if isinstance(exc, books_service.BookNotFoundError):
        return _json_error(str(exc), 404)
    if isinstance(exc, books_service.BookAccessError):
        return _json_error("not_authorized", 403)
    if isinstance(exc, books_service.DuplicateReviewError):
        return _json_error("already_reviewed", 409)
    return _json_error(str(exc), 400)


_SERVICE_ERRORS = (books_service.BookError, books_service.BookValidationError)


@bp.route("", methods=["GET"])
def list_books():
    return jsonify(books_service.list_approved(request.args.get("category"), request.args.get("search")))


@bp.route("/categories", methods=["GET"])
def categories():
    return jsonify(books_service.list_categories())


@bp.route("/<int:book_id>", methods=["GET"])
def get_book(book_id: int):
    try:
        return jsonify(books_service.get_book(book_id, load_current_user()))
    except _SERVICE_ERRORS as exc:
        return _not_found_or_invalid(exc)


@bp.route("/my/books", methods=["GET"])
def my_books():
    auth = require_login()
    if auth is not True:
        return auth
    return jsonify(books_service.list_author_books(current_user()["id"]))


@bp.route("", methods=["POST"])
def create_book():
    auth = require_role("author", "admin")
    if auth is not True:
        return auth
    try:
        book = books_service.create_book(current_user(), json_body())
    except _SERVICE_ERRORS as exc:
        return _not_found_or_invalid(exc)
    return jsonify(book), 201


@bp.route("/<int:book_id>", methods=["PUT"])
def update_book(book_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(books_service.update_own_book(current_user()["id"], book_id, json_body()))
    except _SERVICE_ERRORS as exc:
        return _not_found_or_invalid(exc)


@bp.route("/<int:book_id>", methods=["DELETE"])
def delete_book(book_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        books_service.delete_own_book(current_user()["id"], book_id)
    except _SERVICE_ERRORS as exc:
        return _not_found_or_invalid(exc)
    return jsonify({"message": "Book deleted"})


@bp.route("/admin/pending", methods=["GET"])
def pending():
    auth = require_admin()
    if auth is not True:
        return auth
    return jsonify(books_service.list_pending())


@bp.route("/admin/approve/<int:book_id>", methods=["POST"])
def approve(book_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(books_service.set_status(book_id, "approved"))
    except _SERVICE_ERRORS as exc:
        return _not_found_or_invalid(exc)


@bp.route("/admin/reject/<int:book_id>", methods=["POST"])
def reject(book_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(books_service.set_status(book_id, "rejected"))
    except _SERVICE_ERRORS as exc:
        return _not_found_or_invalid(exc)


@bp.route("/<int:book_id>/reviews", methods=["POST"])
def add_review(book_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    data = json_body()
    try:
        result = books_service.add_review(book_id, current_user()["id"], data.get("rating"), data.get("comment"))
    except _SERVICE_ERRORS as exc:
        return _not_found_or_invalid(exc)
    return jsonify(result), 201


@bp.route("/<int:book_id>/reviews", methods=["GET"])
def list_reviews(book_id: int):
    try:
        return jsonify(books_service.list_reviews(book_id))
    except _SERVICE_ERRORS as exc:
        return _not_found_or_invalid(exc)


def register_books_routes(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_books_routes"]
