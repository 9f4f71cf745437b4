"""Author analytics under /api/analytics.

Authors see their own figures; admins may pass ``?author=<id>``.
"""
from __future__ import annotations

from flask import Blueprint, Response, jsonify, request

from booktech.routes.common import current_user, json_error, require_role
from booktech.services import analytics_service
from booktech.utils.logging import get_logger

bp = Blueprint("analytics_api", __name__, url_prefix="/api/analytics")
LOG = get_logger("routes.analytics")

_ERROR_MESSAGES = {
    "date_invalid": "Dates must be YYYY-MM-DD.",
    "date_range_invalid": "endDate must not be before startDate.",
    "limit_invalid": "limit must be a positive number.",
    "author_invalid": "author must be a number.",
    "format_invalid": "format must be json or csv.",
}


def _json_error(code: str, status: int = 400, **kwargs):
    return json_error(code, status, messages=_ERROR_MESSAGES, **kwargs)


def _arg(*names):
    for name in names:
        value = request.args.get(name)
        if value not in (None, ""):
            return value
    return None


def _scope():
    """Resolve ``(author_id, window)`` from the caller and query string."""
    user = current_user()
    author_id = user["id"]
    requested = _arg("author", "author_id")
    if requested is not None and user.get("role") == "admin":
        try:
            author_id = int(requested)
        except ValueError as exc:
            raise analytics_service.AnalyticsValidationError("author_invalid") from exc
    window = analytics_service.parse_range(_arg("startDate", "start_date"), _arg("endDate", "end_date"))
    return author_id, window


@bp.route("/sales-trends", methods=["GET"])
def sales_trends():
    auth = require_role("author", "admin")
    if auth is not True:
        return auth
    try:
        author_id, window = _scope()
    except analytics_service.AnalyticsValidationError as exc:
        return _json_error(str(exc), 400)
    return jsonify(analytics_service.sales_trends(author_id, window, _arg("category")))


@bp.route("/downloads-vs-orders", methods=["GET"])
def downloads_vs_orders():
    auth = require_role("author", "admin")
    if auth is not True:
        return auth
    try:
        author_id, window = _scope()
    except analytics_service.AnalyticsValidationError as exc:
        return _json_error(str(exc), 400)
    return jsonify(analytics_service.downloads_vs_orders(author_id, window, _arg("category")))


@bp.route("/most-viewed", methods=["GET"])
def most_viewed():
    auth = require_role("author", "admin")
    if auth is not True:
        return auth
    try:
        author_id, window = _scope()
        data = analytics_service.most_viewed(author_id, window, _arg("limit") or analytics_service.DEFAULT_LIMIT)
    except analytics_service.AnalyticsValidationError as exc:
        return _json_error(str(exc), 400)
    return jsonify(data)


@bp.route("/summary", methods=["GET"])
def summary():
    auth = require_role("author", "admin")
    if auth is not True:
        return auth
    try:
        author_id, window = _scope()
    except analytics_service.AnalyticsValidationError as exc:
        return _json_error(str(exc), 400)
    return jsonify(analytics_service.summary(author_id, window))


@bp.route("/category-breakdown", methods=["GET"])
def category_breakdown():
    auth = require_role("author", "admin")
    if auth is not True:
        return auth
    try:
        author_id, window = _scope()
    except analytics_service.AnalyticsValidationError as exc:
        return _json_error(str(exc), 400)
    return jsonify(analytics_service.category_breakdown(author_id, window))


@bp.route("/export", methods=["GET"])
def export():
    auth = require_role("author", "admin")
    if auth is not True:
        return auth
    fmt = (_arg("format") or "json").lower()
    if fmt not in ("json", "csv"):
        return _json_error("format_invalid", 400)
    try:
        author_id, window = _scope()
    except analytics_service.AnalyticsValidationError as exc:
        return _json_error(str(exc), 400)
    if fmt == "csv":
        body = analytics_service.export_csv(author_id, window, _arg("category"))
        return Response(
            body,
            mimetype="text/csv",
            headers={"Content-Disposition": f'attachment; filename="analytics-{author_id}.csv"'},
        )
    return jsonify(dict(analytics_service.export(author_id, window, _arg("category")), format="json"))


def register_analytics_routes(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_analytics_routes"]
