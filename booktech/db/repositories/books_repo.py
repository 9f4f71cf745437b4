"""Repository helpers for books and reviews."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from booktech.db import app_session
from booktech.db.models import Book, ModerationLog, Review
from booktech.db.models.base import dump_json

_UPDATABLE = {
    "title",
    "author",
    "description",
    "price",
    "cover_image",
    "category",
    "genre",
    "tags",
    "is_premium",
    "reading_type",
    "content",
    "total_pages",
    "status",
}


class ReviewExistsError(Exception):
    """Raised when a user reviews the same book twice."""


def create_book(**fields: Any) -> Book:
    book = Book(**fields)
    with app_session() as session:
        session.add(book)
    return book


def get_book(book_id: int) -> Optional[Book]:
    with app_session() as session:
        return session.query(Book).filter(Book.id == book_id).one_or_none()


def get_books(book_ids: Iterable[int]) -> Dict[int, Book]:
    ids = {int(b) for b in book_ids if b is not None}
    if not ids:
        return {}
    with app_session() as session:
        rows = session.query(Book).filter(Book.id.in_(ids)).all()
        return {row.id: row for row in rows}


def list_books(
    *,
    status: Optional[str] = None,
    author_id: Optional[int] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    premium_first: bool = False,
) -> List[Book]:
    with app_session() as session:
        query = session.query(Book)
        if status:
            query = query.filter(Book.status == status)
        if author_id is not None:
            query = query.filter(Book.author_id == author_id)
        if category:
            query = query.filter(func.lower(Book.category) == category.lower())
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(func.lower(Book.title).like(pattern), func.lower(Book.author).like(pattern))
            )
        if premium_first:
            query = query.order_by(Book.is_premium.desc(), Book.created_at.desc(), Book.id.desc())
        else:
            query = query.order_by(Book.created_at.desc(), Book.id.desc())
        return query.all()


def update_book(book_id: int, fields: Dict[str, Any], *, author_id: Optional[int] = None) -> Optional[Book]:
    """Apply ``fields``; when ``author_id`` is given the book must belong to it."""
    unknown = set(fields) - _UPDATABLE
    if unknown:
        raise ValueError(f"unsupported book fields: {sorted(unknown)}")
    with app_session() as session:
        query = session.query(Book).filter(Book.id == book_id)
        if author_id is not None:
            query = query.filter(Book.author_id == author_id)
        book = query.one_or_none()
        if not book:
            return None
        for key, value in fields.items():
            setattr(book, key, value)
        return book


def delete_book(book_id: int, *, author_id: Optional[int] = None) -> bool:
    with app_session() as session:
        query = session.query(Book).filter(Book.id == book_id)
        if author_id is not None:
            query = query.filter(Book.author_id == author_id)
        book = query.one_or_none()
        if not book:
            return False
        session.query(Review).filter(Review.book_id == book_id).delete(synchronize_session=False)
        session.delete(book)
        return True


def record_sale(book_id: int, quantity: int, amount: float) -> Optional[Book]:
    with app_session() as session:
        book = session.query(Book).filter(Book.id == book_id).one_or_none()
        if not book:
            return None
        book.sales = (book.sales or 0) + quantity
        book.earnings = round((book.earnings or 0.0) + amount, 2)
        return book


def category_counts() -> Dict[str, int]:
    with app_session() as session:
        rows = (
            session.query(Book.category, func.count(Book.id))
            .filter(Book.category.isnot(None))
            .group_by(Book.category)
            .all()
        )
        return {category: count for category, count in rows}


def count_books() -> int:
    with app_session() as session:
        return session.query(Book).count()


def _refresh_rating(session, book_id: int) -> Optional[Book]:
    avg, count = (
        session.query(func.avg(Review.rating), func.count(Review.id))
        .filter(Review.book_id == book_id)
        .one()
    )
    book = session.query(Book).filter(Book.id == book_id).one_or_none()
    if book is not None:
        book.rating = float(avg or 0.0)
        book.total_reviews = int(count or 0)
    return book


def add_review(book_id: int, user_id: int, rating: int, comment: Optional[str]) -> Tuple[Review, Book]:
    """Insert a review and recompute the book's average rating atomically."""
    review = Review(book_id=book_id, user_id=user_id, rating=rating, comment=comment)
    try:
        with app_session() as session:
            session.add(review)
            session.flush()
            book = _refresh_rating(session, book_id)
    except IntegrityError as exc:
        raise ReviewExistsError("You have already reviewed this book") from exc
    return review, book


def list_reviews(book_id: int) -> List[Review]:
    with app_session() as session:
        return (
            session.query(Review)
            .filter(Review.book_id == book_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .all()
        )


def increment_views(book_id: int) -> None:
    with app_session() as session:
        session.query(Book).filter(Book.id == book_id).update(
            {Book.views: Book.views + 1}, synchronize_session=False
        )


def _review_snapshot(review: Review) -> Dict[str, Any]:
    return {"rating": review.rating, "comment": review.comment}


def moderate_review(
    review_id: int,
    moderator_id: int,
    *,
    fields: Optional[Dict[str, Any]] = None,
    reason: Optional[str] = None,
) -> Optional[Tuple[ModerationLog, Optional[Book]]]:
    """Edit (``fields`` given) or delete a review and log both versions.

    The review change, the book's rating refresh and the log row commit
    together. Returns None when the review does not exist.
    """
    with app_session() as session:
        review = session.query(Review).filter(Review.id == review_id).one_or_none()
        if review is None:
            return None
        old_value = _review_snapshot(review)
        if fields is None:
            action, new_value = "delete", None
            session.delete(review)
        else:
            action = "edit"
            for key in ("rating", "comment"):
                if key in fields:
                    setattr(review, key, fields[key])
            new_value = _review_snapshot(review)
        session.flush()
        log = ModerationLog(
            action_type=action,
            book_id=review.book_id,
            review_id=review.id,
            moderator_id=moderator_id,
            target_user_id=review.user_id,
            reason=reason,
            old_value=dump_json(old_value),
            new_value=dump_json(new_value),
        )
        session.add(log)
        book = _refresh_rating(session, review.book_id)
    return log, book


def list_moderation_logs(*, book_id: Optional[int] = None, action_type: Optional[str] = None) -> List[ModerationLog]:
    with app_session() as session:
        query = session.query(ModerationLog)
        if book_id is not None:
            query = query.filter(ModerationLog.book_id == book_id)
        if action_type:
            query = query.filter(ModerationLog.action_type == action_type)
        return query.order_by(ModerationLog.created_at.desc(), ModerationLog.id.desc()).all()


__all__ = [
    "ReviewExistsError",
    "create_book",
    "get_book",
    "get_books",
    "list_books",
    "update_book",
    "delete_book",
    "record_sale",
    "category_counts",
    "count_books",
    "add_review",
    "list_reviews",
    "increment_views",
    "moderate_review",
    "list_moderation_logs",
]
