"""Application initialization / wiring.

Orchestrates: DB init, default plan seeding, admin bootstrap, route
registration and the per-request hooks (CORS headers, session teardown).
"""
from __future__ import annotations

from typing import Any, Optional

from flask import Flask, jsonify, request

from booktech import config as app_config
from booktech.db import init_engine_once
from booktech.db.engine import remove_scoped_session
from booktech.routes import register_all as register_routes
from booktech.services import auth_service, subscription_service
from booktech.utils.logging import get_logger

LOG = get_logger("booktech.startup")

_CORS_HEADERS = {
    "Access-Control-Allow-Headers": "Authorization, Content-Type, X-Razorpay-Signature",
    "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
}


def _maybe_bootstrap_admin() -> None:
    email = app_config.admin_bootstrap_email()
    password = app_config.admin_bootstrap_password()
    if not password:
        LOG.debug("Admin bootstrap skipped (no password configured)")
        return
    try:
        user_id = auth_service.ensure_admin_account(email, password)
        LOG.info("Admin bootstrap applied email=%s id=%s", email, user_id)
    except Exception:
        LOG.exception("Admin bootstrap failed email=%s", email)


def _register_hooks(app: Flask) -> None:
    origin = app_config.frontend_url()

    @app.after_request
    def _cors(response):  # type: ignore[no-untyped-def]
        request_origin = request.headers.get("Origin")
        response.headers["Access-Control-Allow-Origin"] = request_origin if request_origin == origin else origin
        for key, value in _CORS_HEADERS.items():
            response.headers.setdefault(key, value)
        return response

    @app.errorhandler(404)
    def _not_found(_exc):  # type: ignore[no-untyped-def]
        return jsonify({"error": "not_found", "message": "Resource not found."}), 404

    @app.errorhandler(405)
    def _method_not_allowed(_exc):  # type: ignore[no-untyped-def]
        return jsonify({"error": "method_not_allowed", "message": "Method not allowed."}), 405

    app.teardown_appcontext(remove_scoped_session)


def init_app(app: Any) -> None:
    LOG.debug("init_app starting")
    init_engine_once()
    LOG.debug("DB engine initialized")
    LOG.debug("Default subscription plans ensured count=%s", subscription_service.seed_default_plans())
    _maybe_bootstrap_admin()
    register_routes(app)
    _register_hooks(app)
    LOG.info("App startup wiring complete config=%s", app_config.summarize_runtime_config())


def create_app(overrides: Optional[dict] = None) -> Flask:
    app = Flask("booktech")
    app.config["SECRET_KEY"] = app_config.secret_key()
    app.config["JSON_SORT_KEYS"] = False
    if overrides:
        app.config.update(overrides)
    init_app(app)
    return app


__all__ = ["create_app", "init_app"]
