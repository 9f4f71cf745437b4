"""Repository helpers for user notifications."""
from __future__ import annotations

from typing import List, Optional

from booktech.db import app_session
from booktech.db.models import Notification


def create_notification(
    recipient_id: int,
    message: str,
    *,
    type: str = "info",
    sender_id: Optional[int] = None,
) -> Notification:
    row = Notification(recipient_id=recipient_id, sender_id=sender_id, message=message, type=type)
    with app_session() as session:
        session.add(row)
    return row


def list_notifications(recipient_id: int, unread_only: bool = False) -> List[Notification]:
    with app_session() as session:
        query = session.query(Notification).filter(Notification.recipient_id == recipient_id)
        if unread_only:
            query = query.filter(Notification.read.is_(False))
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def unread_count(recipient_id: int) -> int:
    with app_session() as session:
        return (
            session.query(Notification)
            .filter(Notification.recipient_id == recipient_id, Notification.read.is_(False))
            .count()
        )


def mark_read(recipient_id: int, notification_id: int) -> Optional[Notification]:
    with app_session() as session:
        row = (
            session.query(Notification)
            .filter(Notification.id == notification_id, Notification.recipient_id == recipient_id)
            .one_or_none()
        )
        if not row:
            return None
        row.read = True
        return row


def mark_all_read(recipient_id: int) -> int:
    with app_session() as session:
        return (
            session.query(Notification)
            .filter(Notification.recipient_id == recipient_id, Notification.read.is_(False))
            .update({Notification.read: True}, synchronize_session=False)
        )


def delete_notification(recipient_id: int, notification_id: int) -> bool:
    with app_session() as session:
        deleted = (
            session.query(Notification)
            .filter(Notification.id == notification_id, Notification.recipient_id == recipient_id)
            .delete(synchronize_session=False)
        )
        return bool(deleted)


__all__ = [
    "create_notification",
    "list_notifications",
    "unread_count",
    "mark_read",
    "mark_all_read",
    "delete_notification",
]
