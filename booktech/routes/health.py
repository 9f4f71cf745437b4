"""Liveness probe for load balancers: ``GET /healthz``."""
from __future__ import annotations

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from booktech.db import get_engine
from booktech.services import payment_gateway
from booktech.utils.logging import get_logger

LOG = get_logger("routes.health")

bp = Blueprint("health", __name__)


def _database_reachable() -> bool:
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        LOG.warning("Database probe failed: %s", exc)
        return False
    return True


@bp.route("/healthz", methods=["GET"])
def healthz():
    db_ok = _database_reachable()
    body = {
        "status": "ok" if db_ok else "degraded",
        "db": db_ok,
        "payments": "live" if payment_gateway.is_configured() else "demo",
    }
    return jsonify(body), (200 if db_ok else 503)


def register_health(app) -> None:
    app.register_blueprint(bp)


__all__ = ["bp", "register_health"]
