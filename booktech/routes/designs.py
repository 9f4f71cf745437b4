"""Book design endpoints under /api/book-designs."""
from __future__ import annotations

from flask import Blueprint, jsonify

from booktech.routes.common import (
    current_user,
    json_body,
    json_error,
    require_admin,
    require_login,
    require_role,
)
from booktech.services import design_service
from booktech.utils import load_current_user
from booktech.utils.logging import get_logger

bp = Blueprint("designs_api", __name__, url_prefix="/api/book-designs")
LOG = get_logger("routes.designs")

_ERROR_MESSAGES = {
    "design_not_found": "Book design not found.",
    "design_not_found_or_not_yours": "Book design not found or not your design.",
    "design_locked": "Cannot edit approved book designs.",
    "design_fields_required": "Title, author, cover image URL, and content are required.",
    "design_is_free": "This book is free to read.",
    "formatting_invalid": "Formatting values are invalid.",
    "tags_invalid": "Tags must be a list.",
    "price_invalid": "Price must be zero or more.",
    "nothing_to_update": "Nothing to update.",
    "status_invalid": "Unknown design status.",
}

_ERRORS = (design_service.DesignError, design_service.DesignValidationError)


def _json_error(code: str, status: int = 400, **kwargs):
    return json_error(code, status, messages=_ERROR_MESSAGES, **kwargs)


def _design_error(exc: Exception):
    if isinstance(exc, design_service.DesignNotFoundError):
        return _json_error(str(exc), 404)
    return _json_error(str(exc), 400)


@bp.route("", methods=["GET"])
def list_designs():
    return jsonify(design_service.list_public())


@bp.route("/<int:design_id>", methods=["GET"])
def get_design(design_id: int):
    try:
        return jsonify(design_service.get_design(design_id, load_current_user()))
    except _ERRORS as exc:
        return _design_error(exc)


@bp.route("", methods=["POST"])
def create_design():
    auth = require_role("author")
    if auth is not True:
        return auth
    try:
        design = design_service.create_design(current_user(), json_body())
    except _ERRORS as exc:
        return _design_error(exc)
    return jsonify(design), 201


@bp.route("/<int:design_id>", methods=["PUT"])
def update_design(design_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(design_service.update_design(current_user()["id"], design_id, json_body()))
    except _ERRORS as exc:
        return _design_error(exc)


@bp.route("/<int:design_id>", methods=["DELETE"])
def delete_design(design_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        design_service.delete_design(current_user()["id"], design_id)
    except _ERRORS as exc:
        return _design_error(exc)
    return jsonify({"message": "Book design deleted successfully"})


@bp.route("/my/designs", methods=["GET"])
def my_designs():
    auth = require_login()
    if auth is not True:
        return auth
    return jsonify(design_service.list_for_author(current_user()["id"]))


@bp.route("/admin/pending", methods=["GET"])
def pending():
    auth = require_admin()
    if auth is not True:
        return auth
    return jsonify(design_service.list_pending())


@bp.route("/admin/approve/<int:design_id>", methods=["POST"])
def approve(design_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(design_service.set_status(design_id, "approved"))
    except _ERRORS as exc:
        return _design_error(exc)


@bp.route("/admin/reject/<int:design_id>", methods=["POST"])
def reject(design_id: int):
    auth = require_admin()
    if auth is not True:
        return auth
    try:
        return jsonify(design_service.set_status(design_id, "rejected"))
    except _ERRORS as exc:
        return _design_error(exc)


@bp.route("/<int:design_id>/read", methods=["POST"])
def record_read(design_id: int):
    try:
        return jsonify(design_service.record_read(design_id))
    except _ERRORS as exc:
        return _design_error(exc)


@bp.route("/<int:design_id>/purchase", methods=["POST"])
def purchase(design_id: int):
    auth = require_login()
    if auth is not True:
        return auth
    try:
        return jsonify(design_service.purchase(design_id, current_user()["id"]))
    except _ERRORS as exc:
        return _design_error(exc)


def register_designs_routes(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_designs_routes"]
