"""Identity & permission helpers for bearer-token authenticated requests."""
from __future__ import annotations

from typing import Any, Dict, Optional

from flask import g, request

from booktech.utils import constants
from booktech.utils.logging import get_logger

LOG = get_logger("identity")

_G_KEY = "booktech_user"


def normalize_email(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    cleaned = raw.strip().lower()
    return cleaned or None


def bearer_token_from_request() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if not header:
        return None
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    value = value.strip()
    return value or None


def load_current_user() -> Optional[Dict[str, Any]]:
    """Resolve the request's bearer token into a user dict (cached on ``g``)."""
    if _G_KEY in g:
        return g.get(_G_KEY)
    from booktech.db.repositories import users_repo
    from booktech.services import token_service

    user: Optional[Dict[str, Any]] = None
    token = bearer_token_from_request()
    if token:
        try:
            claims = token_service.decode_session_token(token)
        except token_service.TokenError as exc:
            LOG.debug("Rejected bearer token: %s", exc)
            claims = None
        if claims:
            record = users_repo.get_user(int(claims["user_id"]))
            if record is not None:
                user = record.as_dict()
    setattr(g, _G_KEY, user)
    return user


def get_current_user_id() -> Optional[int]:
    user = load_current_user()
    if not user:
        return None
    try:
        return int(user["id"])
    except (KeyError, TypeError, ValueError):
        return None


def get_current_user_email() -> Optional[str]:
    user = load_current_user()
    return normalize_email(user.get("email")) if user else None


def current_role() -> Optional[str]:
    user = load_current_user()
    return user.get("role") if user else None


def is_admin_user() -> bool:
    return current_role() == constants.ROLE_ADMIN


class AuthenticationError(Exception):
    pass


class PermissionError(Exception):
    pass


def ensure_authenticated() -> Dict[str, Any]:
    user = load_current_user()
    if not user:
        raise AuthenticationError("Authentication required")
    return user


def ensure_role(*roles: str) -> Dict[str, Any]:
    user = ensure_authenticated()
    if user.get("role") not in roles:
        raise PermissionError(f"{' or '.join(roles)} privileges required")
    return user


def ensure_admin() -> Dict[str, Any]:
    return ensure_role(constants.ROLE_ADMIN)


__all__ = [
    "normalize_email",
    "bearer_token_from_request",
    "load_current_user",
    "get_current_user_id",
    "get_current_user_email",
    "current_role",
    "is_admin_user",
    "ensure_authenticated",
    "ensure_role",
    "ensure_admin",
    "AuthenticationError",
    "PermissionError",
]
