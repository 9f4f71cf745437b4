"""Books, reviews, review moderation log and wishlist entries."""
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from .base import Base, iso, load_json, utcnow


class Book(Base):
    """Catalogue entry. ``content`` holds the chapters as a JSON list of
    ``{"title": ..., "pages": [...]}`` objects; ``total_pages`` is derived
    from it on save (or supplied explicitly for externally hosted books).
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    author_id = Column(Integer, nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    cover_image = Column(String(500), nullable=True)
    category = Column(String(64), nullable=True, index=True)
    genre = Column(String(64), nullable=True)
    tags = Column(Text, nullable=True)  # JSON array
    is_premium = Column(Boolean, nullable=False, default=False)
    reading_type = Column(String(8), nullable=False, default="soft")
    content = Column(Text, nullable=True)  # JSON chapters
    total_pages = Column(Integer, nullable=False, default=1)
    status = Column(String(16), nullable=False, default="pending", index=True)
    rating = Column(Float, nullable=False, default=0.0)
    total_reviews = Column(Integer, nullable=False, default=0)
    sales = Column(Integer, nullable=False, default=0)
    views = Column(Integer, nullable=False, default=0)
    earnings = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def chapters(self) -> list:
        return list(load_json(self.content, []))

    def as_dict(self, *, include_content: bool = False) -> dict:
        payload = {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "author_id": self.author_id,
            "description": self.description,
            "price": self.price,
            "cover_image": self.cover_image,
            "category": self.category,
            "genre": self.genre,
            "tags": load_json(self.tags, []),
            "is_premium": bool(self.is_premium),
            "reading_type": self.reading_type,
            "total_pages": self.total_pages,
            "status": self.status,
            "rating": round(self.rating or 0.0, 2),
            "total_reviews": self.total_reviews,
            "sales": self.sales,
            "views": self.views or 0,
            "earnings": self.earnings,
            "created_at": iso(self.created_at),
        }
        if include_content:
            payload["chapters"] = self.chapters()
        return payload

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Book id={self.id} title={self.title!r} status={self.status}>"


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("book_id", "user_id", name="uq_review_book_user"),
    )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "user_id": self.user_id,
            "rating": self.rating,
            "comment": self.comment,
            "created_at": iso(self.created_at),
        }


class ModerationLog(Base):
    """Audit trail for admin edits and deletions of reviews.

    ``old_value`` / ``new_value`` are JSON snapshots of the review before and
    after the action; ``new_value`` is empty for deletions.
    """

    __tablename__ = "moderation_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action_type = Column(String(8), nullable=False)  # edit | delete
    book_id = Column(Integer, nullable=False, index=True)
    review_id = Column(Integer, nullable=False, index=True)
    moderator_id = Column(Integer, nullable=False, index=True)
    target_user_id = Column(Integer, nullable=False, index=True)
    reason = Column(Text, nullable=True)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "action_type": self.action_type,
            "book_id": self.book_id,
            "review_id": self.review_id,
            "moderator_id": self.moderator_id,
            "target_user_id": self.target_user_id,
            "reason": self.reason,
            "old_value": load_json(self.old_value, None),
            "new_value": load_json(self.new_value, None),
            "created_at": iso(self.created_at),
        }


class WishlistItem(Base):
    __tablename__ = "wishlist_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    book_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_wishlist_user_book"),
        Index("ix_wishlist_book_user", "book_id", "user_id"),
    )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "book_id": self.book_id,
            "created_at": iso(self.created_at),
        }


__all__ = ["Book", "Review", "ModerationLog", "WishlistItem"]
