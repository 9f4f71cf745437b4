"""Reading progress & bookmarks."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, UniqueConstraint

from .base import Base, iso, utcnow


class ReadingProgress(Base):
    """Last-read page for a (user, book) pair.

    ``version`` increases by one on every accepted write; clients echo the
    version they last saw so stale writes from another device are refused.
    """

    __tablename__ = "reading_progress"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    book_id = Column(Integer, nullable=False, index=True)
    page = Column(Integer, nullable=False, default=1)
    total_pages = Column(Integer, nullable=False, default=1)
    percent = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_progress_user_book"),
    )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "book": self.book_id,
            "page": self.page,
            "total_pages": self.total_pages,
            "percent": self.percent,
            "version": self.version,
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<ReadingProgress user={self.user_id} book={self.book_id} page={self.page} v{self.version}>"


class Bookmark(Base):
    __tablename__ = "bookmarks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    book_id = Column(Integer, nullable=False, index=True)
    page = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", "page", name="uq_bookmark_user_book_page"),
    )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "page": self.page,
            "created_at": iso(self.created_at),
        }


__all__ = ["ReadingProgress", "Bookmark"]
