"""Administrative user management, cleanup and platform analytics."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from booktech.db.repositories import books_repo, orders_repo, users_repo
from booktech.utils import constants
from booktech.utils.identity import normalize_email
from booktech.utils.logging import get_logger

LOG = get_logger("admin_service")


class AdminError(RuntimeError):
    pass


class AdminValidationError(ValueError):
    pass


class UserNotFoundError(AdminError):
    pass


def list_users(role: Optional[str] = None) -> List[Dict[str, Any]]:
    if role and role not in constants.ROLES:
        raise AdminValidationError("role_invalid")
    return [user.as_dict() for user in users_repo.list_users(role)]


def update_user(user_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    if "name" in payload:
        fields["name"] = (payload.get("name") or "").strip() or None
    if "email" in payload:
        email = normalize_email(payload.get("email"))
        if not email or "@" not in email:
            raise AdminValidationError("email_invalid")
        fields["email"] = email
    if "role" in payload:
        if payload.get("role") not in constants.ROLES:
            raise AdminValidationError("role_invalid")
        fields["role"] = payload["role"]
    if "subscription" in payload:
        if payload.get("subscription") not in constants.SUBSCRIPTIONS:
            raise AdminValidationError("subscription_invalid")
        fields["subscription"] = payload["subscription"]
    try:
        user = users_repo.update_user(user_id, **fields) if fields else users_repo.get_user(user_id)
    except users_repo.UserExistsError as exc:
        raise AdminError("email_in_use") from exc
    if not user:
        raise UserNotFoundError("user_not_found")
    LOG.info("Admin updated user id=%s fields=%s", user_id, sorted(fields))
    return user.as_dict()


def delete_user(user_id: int, acting_admin_id: int) -> Dict[str, Any]:
    if user_id == acting_admin_id:
        raise AdminValidationError("cannot_delete_self")
    user = users_repo.get_user(user_id)
    if not user:
        raise UserNotFoundError("user_not_found")
    counts = users_repo.delete_user_cascade(user_id)
    if counts is None:
        raise UserNotFoundError("user_not_found")
    return {
        "deleted_user": {"id": user.id, "email": user.email, "role": user.role},
        "deleted": counts,
    }


def cleanup() -> Dict[str, int]:
    results = users_repo.cleanup_orphans()
    LOG.info("Orphan cleanup results=%s", results)
    return results


def analytics() -> Dict[str, Any]:
    return {
        "user_counts": users_repo.count_by_role(),
        "book_count": books_repo.count_books(),
        "order_count": orders_repo.count_orders(),
        "book_order_counts": {str(k): v for k, v in orders_repo.book_order_counts().items()},
        "book_category_counts": books_repo.category_counts(),
        "revenue": orders_repo.revenue_summary()["revenue"],
    }


__all__ = [
    "AdminError",
    "AdminValidationError",
    "UserNotFoundError",
    "list_users",
    "update_user",
    "delete_user",
    "cleanup",
    "analytics",
]
