"""Repository helpers for reading progress and bookmarks."""
from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from booktech.db import app_session
from booktech.db.models import Bookmark, ReadingProgress


def get_progress(user_id: int, book_id: int) -> Optional[ReadingProgress]:
    with app_session() as session:
        return (
            session.query(ReadingProgress)
            .filter(ReadingProgress.user_id == user_id, ReadingProgress.book_id == book_id)
            .one_or_none()
        )


def list_progress(user_id: int) -> List[ReadingProgress]:
    with app_session() as session:
        return (
            session.query(ReadingProgress)
            .filter(ReadingProgress.user_id == user_id)
            .order_by(ReadingProgress.updated_at.desc(), ReadingProgress.id.desc())
            .all()
        )


def _insert_first(user_id: int, book_id: int, page: int, total_pages: int, percent: int) -> Optional[ReadingProgress]:
    """Insert version 1; returns None when another writer created the row first."""
    record = ReadingProgress(
        user_id=user_id,
        book_id=book_id,
        page=page,
        total_pages=total_pages,
        percent=percent,
        version=1,
    )
    try:
        with app_session() as session:
            session.add(record)
    except IntegrityError:
        return None
    return record


def upsert_progress(
    user_id: int,
    book_id: int,
    *,
    page: int,
    total_pages: int,
    percent: int,
    expected_version: Optional[int] = None,
) -> Tuple[ReadingProgress, bool]:
    """Create or update the (user, book) row.

    The version check and the write are a single conditional UPDATE, so two
    writers holding the same ``expected_version`` cannot both succeed: the
    loser sees zero affected rows and gets ``(current_row, False)``. Writes
    without ``expected_version`` always apply. Accepted writes bump
    ``version`` by one.
    """
    if get_progress(user_id, book_id) is None:
        created = _insert_first(user_id, book_id, page, total_pages, percent)
        if created is not None:
            return created, True
    with app_session() as session:
        query = session.query(ReadingProgress).filter(
            ReadingProgress.user_id == user_id, ReadingProgress.book_id == book_id
        )
        if expected_version is not None:
            query = query.filter(ReadingProgress.version <= expected_version)
        updated = query.update(
            {
                ReadingProgress.page: page,
                ReadingProgress.total_pages: total_pages,
                ReadingProgress.percent: percent,
                ReadingProgress.version: ReadingProgress.version + 1,
            },
            synchronize_session=False,
        )
    record = get_progress(user_id, book_id)
    return record, bool(updated)  # type: ignore[return-value]


def delete_progress(user_id: int, book_id: int) -> bool:
    with app_session() as session:
        deleted = (
            session.query(ReadingProgress)
            .filter(ReadingProgress.user_id == user_id, ReadingProgress.book_id == book_id)
            .delete(synchronize_session=False)
        )
        return bool(deleted)


def list_bookmarks(user_id: int, book_id: int) -> List[Bookmark]:
    with app_session() as session:
        return (
            session.query(Bookmark)
            .filter(Bookmark.user_id == user_id, Bookmark.book_id == book_id)
            .order_by(Bookmark.page.asc())
            .all()
        )


def toggle_bookmark(user_id: int, book_id: int, page: int) -> bool:
    """Add the bookmark if absent, remove it if present. Returns True when added."""
    with app_session() as session:
        existing = (
            session.query(Bookmark)
            .filter(Bookmark.user_id == user_id, Bookmark.book_id == book_id, Bookmark.page == page)
            .one_or_none()
        )
        if existing:
            session.delete(existing)
            return False
        session.add(Bookmark(user_id=user_id, book_id=book_id, page=page))
        return True


__all__ = [
    "get_progress",
    "list_progress",
    "upsert_progress",
    "delete_progress",
    "list_bookmarks",
    "toggle_bookmark",
]
