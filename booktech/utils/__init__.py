"""Utility helpers.

Flat import surface for the identity helpers so routes can do
``from booktech.utils import ensure_admin``.
"""
from .identity import (
    normalize_email,
    get_current_user_id,
    get_current_user_email,
    load_current_user,
    is_admin_user,
    ensure_authenticated,
    ensure_role,
    ensure_admin,
    AuthenticationError,
    PermissionError,
)
from . import constants

__all__ = [
    "normalize_email",
    "get_current_user_id",
    "get_current_user_email",
    "load_current_user",
    "is_admin_user",
    "ensure_authenticated",
    "ensure_role",
    "ensure_admin",
    "AuthenticationError",
    "PermissionError",
    "constants",
]
