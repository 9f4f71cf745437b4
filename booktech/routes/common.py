"""Helpers shared by every API blueprint: JSON errors and auth guards.

Guards follow one calling convention::

    auth = require_login()
    if auth is not True:
        return auth
    user = current_user()
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from flask import jsonify, request

from booktech.utils import (
    AuthenticationError,
    PermissionError,
    ensure_authenticated,
    ensure_role,
    load_current_user,
)

_COMMON_MESSAGES = {
    "authentication_required": "Authentication required.",
    "permission_denied": "You are not allowed to do that.",
    "invalid_json": "Request body must be a JSON object.",
}


def json_error(
    code: str,
    status: int = 400,
    *,
    messages: Optional[Mapping[str, str]] = None,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
):
    payload: Dict[str, Any] = {"error": code}
    final = message or (messages or {}).get(code) or _COMMON_MESSAGES.get(code)
    if final:
        payload["message"] = final
    if details is not None:
        payload["details"] = details
    return jsonify(payload), status


def require_login():
    try:
        ensure_authenticated()
    except AuthenticationError:
        return json_error("authentication_required", 401)
    return True


def require_role(*roles: str):
    try:
        ensure_role(*roles)
    except AuthenticationError:
        return json_error("authentication_required", 401)
    except PermissionError as exc:  # type: ignore
        return json_error("permission_denied", 403, message=str(exc))
    return True


def require_admin():
    return require_role("admin")


def current_user() -> Dict[str, Any]:
    return load_current_user() or {}


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


__all__ = ["json_error", "require_login", "require_role", "require_admin", "current_user", "json_body"]
