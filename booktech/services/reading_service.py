"""Reading progress, reading statistics and bookmarks.

Progress writes are versioned: each accepted write bumps ``version`` and a
write carrying a version older than the stored one is refused, returning
the stored record flagged ``stale`` so the device can adopt it. Writes
without a version keep last-writer-wins behaviour.
"""
from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from booktech.db.repositories import books_repo, orders_repo, progress_repo, users_repo
from booktech.utils.logging import get_logger

LOG = get_logger("reading_service")

PAGES_PER_MINUTE = 2


class ReadingError(RuntimeError):
    pass


class ReadingValidationError(ValueError):
    pass


class BookNotFoundError(ReadingError):
    pass


def clamp_page(page: Any, total_pages: int) -> int:
    """Clamp ``page`` into ``[1, total_pages]``; junk input lands on page 1."""
    total = max(int(total_pages or 1), 1)
    try:
        value = int(page)
    except (TypeError, ValueError):
        value = 1
    return min(max(value, 1), total)


def percent_for(page: int, total_pages: int) -> int:
    """Whole-number percentage, rounding halves up."""
    total = max(int(total_pages or 1), 1)
    return (page * 200 + total) // (2 * total)


def _optional_int(raw: Any, code: str) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ReadingValidationError(code) from exc


def get_progress(user_id: int, book_id: int) -> Dict[str, Any]:
    record = progress_repo.get_progress(user_id, book_id)
    if record:
        return record.as_dict()
    book = books_repo.get_book(book_id)
    total = book.total_pages if book else 1
    return {"book": book_id, "page": 1, "total_pages": total, "percent": percent_for(1, total), "version": 0}


def list_progress(user_id: int) -> List[Dict[str, Any]]:
    records = progress_repo.list_progress(user_id)
    books = books_repo.get_books(r.book_id for r in records)
    results = []
    for record in records:
        data = record.as_dict()
        book = books.get(record.book_id)
        data["title"] = book.title if book else None
        data["cover_image"] = book.cover_image if book else None
        results.append(data)
    return results


def save_progress(
    user_id: int,
    book_id: Any,
    page: Any,
    total_pages: Any = None,
    version: Any = None,
) -> Dict[str, Any]:
    book_id = _optional_int(book_id, "book_required")
    if book_id is None:
        raise ReadingValidationError("book_required")
    if page is None or page == "":
        raise ReadingValidationError("page_required")
    book = books_repo.get_book(book_id)
    if not book:
        raise BookNotFoundError("book_not_found")
    total = _optional_int(total_pages, "total_pages_invalid")
    if total is None or total < 1:
        total = book.total_pages or 1
    expected = _optional_int(version, "version_invalid")
    clamped = clamp_page(page, total)
    record, accepted = progress_repo.upsert_progress(
        user_id,
        book_id,
        page=clamped,
        total_pages=total,
        percent=percent_for(clamped, total),
        expected_version=expected,
    )
    data = record.as_dict()
    data["stale"] = not accepted
    if not accepted:
        LOG.info(
            "Stale progress write refused user_id=%s book_id=%s sent_version=%s stored_version=%s",
            user_id,
            book_id,
            expected,
            record.version,
        )
    return data


def _non_negative(raw: Any, code: str) -> int:
    value = _optional_int(raw, code) or 0
    if value < 0:
        raise ReadingValidationError(code)
    return value


def record_reading_stats(
    user_id: int,
    book_id: Any = None,
    reading_minutes: Any = 0,
    pages_read: Any = None,
    *,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Accumulate time / pages, mark the book read once and maintain the streak.

    Reading on consecutive days grows the streak; a gap of more than one day
    restarts it at 1. Several sessions on the same day leave it unchanged, and
    a zero-minute report never counts as a reading day.
    Without an explicit page count, pages are estimated from the minutes.
    """
    user = users_repo.get_user(user_id)
    if not user:
        raise ReadingError("user_not_found")
    minutes = _non_negative(reading_minutes, "reading_time_invalid")
    if pages_read is None:
        pages = minutes * PAGES_PER_MINUTE
    else:
        pages = _non_negative(pages_read, "pages_read_invalid")
    book = _optional_int(book_id, "book_invalid")
    today = today or date.today()
    today_key = today.isoformat()
    month_key = today.strftime("%Y-%m")

    read_ids = user.read_books()
    monthly = user.monthly()
    bucket = monthly.setdefault(month_key, {"books_read": 0, "pages_read": 0})
    books_read = user.books_read or 0
    if book is not None and book not in read_ids:
        read_ids.append(book)
        books_read += 1
        bucket["books_read"] += 1
    bucket["pages_read"] += pages

    streak = user.current_streak or 0
    last = user.last_read_date
    if minutes == 0:
        # an empty session (e.g. closing the reader right away) is not a reading day
        today_key = last
    elif last != today_key:
        yesterday = (today - timedelta(days=1)).isoformat()
        streak = streak + 1 if last == yesterday else 1
    elif streak == 0:
        streak = 1

    users_repo.save_reading_stats(
        user_id,
        books_read=books_read,
        pages_read=(user.pages_read or 0) + pages,
        reading_minutes=(user.reading_minutes or 0) + minutes,
        current_streak=streak,
        last_read_date=today_key,
        read_book_ids=read_ids,
        monthly_progress=monthly,
    )
    LOG.debug("Reading stats user_id=%s +%smin +%spages streak=%s", user_id, minutes, pages, streak)
    return get_reading_stats(user_id, today=today)


def get_reading_stats(user_id: int, *, today: Optional[date] = None) -> Dict[str, Any]:
    user = users_repo.get_user(user_id)
    if not user:
        raise ReadingError("user_not_found")
    today = today or date.today()
    streak = user.current_streak or 0
    if user.last_read_date not in (today.isoformat(), (today - timedelta(days=1)).isoformat()):
        streak = 0
    read_ids = user.read_books()
    genres = Counter(
        b.genre or b.category for b in books_repo.get_books(read_ids).values() if (b.genre or b.category)
    )
    monthly = user.monthly()
    return {
        "books_read": user.books_read or 0,
        "pages_read": user.pages_read or 0,
        "reading_time": user.reading_minutes or 0,
        "current_streak": streak,
        "last_read_date": user.last_read_date,
        "total_books": len(orders_repo.purchased_book_ids(user_id)),
        "favorite_genres": [name for name, _ in genres.most_common(3)],
        "monthly_progress": [dict(month=key, **monthly[key]) for key in sorted(monthly)],
    }


def _book_total(book_id: int) -> int:
    book = books_repo.get_book(book_id)
    if not book:
        raise BookNotFoundError("book_not_found")
    return book.total_pages or 1


def list_bookmarks(user_id: int, book_id: int) -> List[int]:
    return [b.page for b in progress_repo.list_bookmarks(user_id, book_id)]


def toggle_bookmark(user_id: int, book_id: Any, page: Any) -> Dict[str, Any]:
    book_id = _optional_int(book_id, "book_required")
    if book_id is None:
        raise ReadingValidationError("book_required")
    clamped = clamp_page(page, _book_total(book_id))
    added = progress_repo.toggle_bookmark(user_id, book_id, clamped)
    return {"page": clamped, "bookmarked": added, "bookmarks": list_bookmarks(user_id, book_id)}


__all__ = [
    "PAGES_PER_MINUTE",
    "ReadingError",
    "ReadingValidationError",
    "BookNotFoundError",
    "clamp_page",
    "percent_for",
    "get_progress",
    "list_progress",
    "save_progress",
    "record_reading_stats",
    "get_reading_stats",
    "list_bookmarks",
    "toggle_bookmark",
]
