"""In-app notifications and the unread badge count."""
from __future__ import annotations

from typing import Any, Dict, Optional

from booktech.db.repositories import notifications_repo, users_repo
from booktech.utils import constants
from booktech.utils.logging import get_logger

LOG = get_logger("notifications_service")


class NotificationError(RuntimeError):
    pass


class NotificationValidationError(ValueError):
    pass


def send(recipient_id: Any, message: Any, *, type: str = "info", sender_id: Optional[int] = None) -> Dict[str, Any]:
    text = (message or "").strip() if isinstance(message, str) else ""
    if not text:
        raise NotificationValidationError("message_required")
    if type not in constants.NOTIFICATION_TYPES:
        raise NotificationValidationError("type_invalid")
    try:
        recipient = int(recipient_id)
    except (TypeError, ValueError) as exc:
        raise NotificationValidationError("recipient_required") from exc
    if not users_repo.get_user(recipient):
        raise NotificationError("recipient_not_found")
    row = notifications_repo.create_notification(recipient, text, type=type, sender_id=sender_id)
    return row.as_dict()


def notify(recipient_id: int, message: str, type: str = "info") -> None:
    """System notification; failures are logged, never raised."""
    try:
        notifications_repo.create_notification(recipient_id, message, type=type)
    except Exception:
        LOG.warning("Failed to store notification recipient=%s", recipient_id, exc_info=True)


def list_for(user_id: int, unread_only: bool = False) -> Dict[str, Any]:
    rows = notifications_repo.list_notifications(user_id, unread_only=unread_only)
    return {
        "notifications": [row.as_dict() for row in rows],
        "unread_count": notifications_repo.unread_count(user_id),
    }


def unread_count(user_id: int) -> int:
    return notifications_repo.unread_count(user_id)


def mark_read(user_id: int, notification_id: int) -> Dict[str, Any]:
    row = notifications_repo.mark_read(user_id, notification_id)
    if not row:
        raise NotificationError("notification_not_found")
    return {"notification": row.as_dict(), "unread_count": notifications_repo.unread_count(user_id)}


def mark_all_read(user_id: int) -> Dict[str, Any]:
    updated = notifications_repo.mark_all_read(user_id)
    return {"updated": updated, "unread_count": notifications_repo.unread_count(user_id)}


def delete(user_id: int, notification_id: int) -> None:
    if not notifications_repo.delete_notification(user_id, notification_id):
        raise NotificationError("notification_not_found")


__all__ = [
    "NotificationError",
    "NotificationValidationError",
    "send",
    "notify",
    "list_for",
    "unread_count",
    "mark_read",
    "mark_all_read",
    "delete",
]
