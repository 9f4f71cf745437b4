"""Repository helpers for user accounts."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from booktech.db import app_session
from booktech.db.models import (
    Book,
    BookDesign,
    Bookmark,
    CartItem,
    Notification,
    Order,
    OrderItem,
    ReadingProgress,
    ReferralCode,
    Review,
    SettlementRequest,
    Ticket,
    TicketReply,
    Transaction,
    User,
    WishlistItem,
)
from booktech.db.models.base import dump_json
from booktech.utils.logging import get_logger

LOG = get_logger("users_repo")

_UPDATABLE = {"name", "email", "role", "subscription", "avatar", "phone", "password_hash"}


class UserExistsError(Exception):
    """Raised when an email address is already registered."""


def get_user(user_id: int) -> Optional[User]:
    with app_session() as session:
        return session.query(User).filter(User.id == user_id).one_or_none()


def get_user_by_email(email: str) -> Optional[User]:
    with app_session() as session:
        return session.query(User).filter(User.email == email).one_or_none()


def list_users(role: Optional[str] = None) -> List[User]:
    with app_session() as session:
        query = session.query(User)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.created_at.desc(), User.id.desc()).all()


def get_users(user_ids) -> Dict[int, User]:
    ids = {int(u) for u in user_ids if u is not None}
    if not ids:
        return {}
    with app_session() as session:
        rows = session.query(User).filter(User.id.in_(ids)).all()
        return {row.id: row for row in rows}


def count_by_role() -> Dict[str, int]:
    with app_session() as session:
        rows = session.query(User.role, func.count(User.id)).group_by(User.role).all()
        return {role: count for role, count in rows}


def create_user(
    email: str,
    password_hash: str,
    *,
    name: Optional[str] = None,
    role: str = "customer",
    referred_by: Optional[int] = None,
) -> User:
    user = User(
        email=email,
        password_hash=password_hash,
        name=name,
        role=role,
        referred_by=referred_by,
    )
    try:
        with app_session() as session:
            session.add(user)
    except IntegrityError as exc:
        raise UserExistsError("Email already registered") from exc
    return user


def update_user(user_id: int, **fields: Any) -> Optional[User]:
    unknown = set(fields) - _UPDATABLE
    if unknown:
        raise ValueError(f"unsupported user fields: {sorted(unknown)}")
    try:
        with app_session() as session:
            user = session.query(User).filter(User.id == user_id).one_or_none()
            if not user:
                return None
            for key, value in fields.items():
                setattr(user, key, value)
            return user
    except IntegrityError as exc:
        raise UserExistsError("Email already registered") from exc


def save_reading_stats(
    user_id: int,
    *,
    books_read: int,
    pages_read: int,
    reading_minutes: int,
    current_streak: int,
    last_read_date: Optional[str],
    read_book_ids: List[int],
    monthly_progress: Dict[str, Dict[str, int]],
) -> Optional[User]:
    with app_session() as session:
        user = session.query(User).filter(User.id == user_id).one_or_none()
        if not user:
            return None
        user.books_read = books_read
        user.pages_read = pages_read
        user.reading_minutes = reading_minutes
        user.current_streak = current_streak
        user.last_read_date = last_read_date
        user.read_book_ids = dump_json(read_book_ids)
        user.monthly_progress = dump_json(monthly_progress)
        return user


def delete_user_cascade(user_id: int) -> Optional[Dict[str, int]]:
    """Delete a user and every row that belongs to them in one transaction.

    Returns per-table deletion counts, or None when the user does not exist.
    """
    with app_session() as session:
        user = session.query(User).filter(User.id == user_id).one_or_none()
        if not user:
            return None
        counts: Dict[str, int] = {}
        book_ids = [row.id for row in session.query(Book.id).filter(Book.author_id == user_id)]
        order_ids = [row.id for row in session.query(Order.id).filter(Order.user_id == user_id)]
        ticket_ids = [row.id for row in session.query(Ticket.id).filter(Ticket.user_id == user_id)]
        if book_ids:
            counts["reviews_on_books"] = session.query(Review).filter(Review.book_id.in_(book_ids)).delete(
                synchronize_session=False
            )
        counts["books"] = session.query(Book).filter(Book.author_id == user_id).delete(synchronize_session=False)
        counts["book_designs"] = session.query(BookDesign).filter(BookDesign.author_id == user_id).delete(
            synchronize_session=False
        )
        counts["reviews"] = session.query(Review).filter(Review.user_id == user_id).delete(synchronize_session=False)
        counts["cart_items"] = session.query(CartItem).filter(CartItem.user_id == user_id).delete(
            synchronize_session=False
        )
        counts["wishlist_items"] = session.query(WishlistItem).filter(WishlistItem.user_id == user_id).delete(
            synchronize_session=False
        )
        counts["notifications"] = session.query(Notification).filter(
            (Notification.recipient_id == user_id) | (Notification.sender_id == user_id)
        ).delete(synchronize_session=False)
        if order_ids:
            session.query(OrderItem).filter(OrderItem.order_id.in_(order_ids)).delete(synchronize_session=False)
        counts["orders"] = session.query(Order).filter(Order.user_id == user_id).delete(synchronize_session=False)
        counts["progress"] = session.query(ReadingProgress).filter(ReadingProgress.user_id == user_id).delete(
            synchronize_session=False
        )
        session.query(Bookmark).filter(Bookmark.user_id == user_id).delete(synchronize_session=False)
        counts["transactions"] = session.query(Transaction).filter(Transaction.user_id == user_id).delete(
            synchronize_session=False
        )
        session.query(ReferralCode).filter(ReferralCode.user_id == user_id).delete(synchronize_session=False)
        session.query(SettlementRequest).filter(SettlementRequest.user_id == user_id).delete(
            synchronize_session=False
        )
        if ticket_ids:
            session.query(TicketReply).filter(TicketReply.ticket_id.in_(ticket_ids)).delete(synchronize_session=False)
        counts["tickets"] = session.query(Ticket).filter(Ticket.user_id == user_id).delete(synchronize_session=False)
        session.delete(user)
        LOG.info("Cascade-deleted user id=%s counts=%s", user_id, counts)
        return counts


def cleanup_orphans() -> Dict[str, int]:
    """Remove rows that reference users which no longer exist."""
    with app_session() as session:
        user_ids = [row.id for row in session.query(User.id)]
        results = {
            "books": session.query(Book).filter(Book.author_id.notin_(user_ids)).delete(synchronize_session=False),
            "notifications": session.query(Notification).filter(
                Notification.recipient_id.notin_(user_ids)
            ).delete(synchronize_session=False),
            "orders": session.query(Order).filter(Order.user_id.notin_(user_ids)).delete(synchronize_session=False),
            "cart_items": session.query(CartItem).filter(CartItem.user_id.notin_(user_ids)).delete(
                synchronize_session=False
            ),
            "progress": session.query(ReadingProgress).filter(ReadingProgress.user_id.notin_(user_ids)).delete(
                synchronize_session=False
            ),
        }
        order_ids = [row.id for row in session.query(Order.id)]
        results["order_items"] = session.query(OrderItem).filter(OrderItem.order_id.notin_(order_ids)).delete(
            synchronize_session=False
        )
        return results


__all__ = [
    "UserExistsError",
    "get_user",
    "get_user_by_email",
    "list_users",
    "get_users",
    "count_by_role",
    "create_user",
    "update_user",
    "save_reading_stats",
    "delete_user_cascade",
    "cleanup_orphans",
]
