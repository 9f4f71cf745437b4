"""Catalogue management: listing, authoring, moderation and reviews."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from booktech.db.models.base import dump_json
from booktech.db.repositories import books_repo, users_repo
from booktech.utils import constants
from booktech.utils.currency import as_float, to_decimal
from booktech.utils.logging import get_logger

LOG = get_logger("books_service")


class BookError(RuntimeError):
    """Base error for catalogue workflows."""


class BookValidationError(ValueError):
    """Raised when a book or review payload is malformed."""


class BookNotFoundError(BookError):
    pass


class BookAccessError(BookError):
    """Raised when a viewer may not see a non-approved book."""


class DuplicateReviewError(BookError):
    pass


class ReviewNotFoundError(BookError):
    pass


def _can_manage(book, viewer: Optional[Dict[str, Any]]) -> bool:
    if not viewer:
        return False
    if viewer.get("role") == constants.ROLE_ADMIN:
        return True
    return book.author_id == viewer.get("id")


def _pages_from_chapters(chapters: List[Dict[str, Any]]) -> int:
    total = 0
    for chapter in chapters:
        pages = chapter.get("pages") if isinstance(chapter, dict) else None
        total += len(pages) if isinstance(pages, list) and pages else 1
    return max(total, 1)


def _clean_fields(payload: Dict[str, Any], *, creating: bool) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    if creating or "title" in payload:
        title = (payload.get("title") or "").strip()
        if not title:
            raise BookValidationError("title_required")
        fields["title"] = title
    if "price" in payload or creating:
        price = to_decimal(payload.get("price", 0))
        if price < 0:
            raise BookValidationError("price_invalid")
        fields["price"] = as_float(price)
    for key in ("description", "cover_image", "category", "genre", "author"):
        if key in payload:
            value = payload.get(key)
            fields[key] = value.strip() if isinstance(value, str) and value.strip() else None
    if "tags" in payload:
        tags = payload.get("tags") or []
        if not isinstance(tags, list):
            raise BookValidationError("tags_invalid")
        fields["tags"] = dump_json([str(t).strip() for t in tags if str(t).strip()])
    if "is_premium" in payload:
        fields["is_premium"] = bool(payload.get("is_premium"))
    if "reading_type" in payload:
        reading_type = payload.get("reading_type") or "soft"
        if reading_type not in constants.READING_TYPES:
            raise BookValidationError("reading_type_invalid")
        fields["reading_type"] = reading_type
    if "content" in payload:
        chapters = payload.get("content") or []
        if not isinstance(chapters, list):
            raise BookValidationError("content_invalid")
        fields["content"] = dump_json(chapters)
        fields["total_pages"] = _pages_from_chapters(chapters)
    if "total_pages" in payload and payload.get("total_pages") is not None:
        try:
            total = int(payload["total_pages"])
        except (TypeError, ValueError) as exc:
            raise BookValidationError("total_pages_invalid") from exc
        if total < 1:
            raise BookValidationError("total_pages_invalid")
        fields["total_pages"] = total
    return fields


def list_approved(category: Optional[str] = None, search: Optional[str] = None) -> List[Dict[str, Any]]:
    books = books_repo.list_books(
        status=constants.BOOK_APPROVED,
        category=category or None,
        search=(search or "").strip() or None,
        premium_first=True,
    )
    return [book.as_dict() for book in books]


def get_book(book_id: int, viewer: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    book = books_repo.get_book(book_id)
    if not book:
        raise BookNotFoundError("book_not_found")
    if book.status != constants.BOOK_APPROVED and not _can_manage(book, viewer):
        raise BookAccessError("not_authorized")
    if book.status == constants.BOOK_APPROVED and book.author_id != (viewer or {}).get("id"):
        books_repo.increment_views(book_id)
        book.views = (book.views or 0) + 1
    return book.as_dict(include_content=True)


def list_author_books(author_id: int) -> List[Dict[str, Any]]:
    return [book.as_dict() for book in books_repo.list_books(author_id=author_id)]


def create_book(author: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
    fields = _clean_fields(payload, creating=True)
    if not fields.get("author"):
        fields["author"] = author.get("name") or author.get("email")
    fields["author_id"] = author["id"]
    fields["status"] = constants.BOOK_PENDING
    book = books_repo.create_book(**fields)
    LOG.info("Book submitted id=%s author_id=%s", book.id, author["id"])
    return book.as_dict(include_content=True)


def update_own_book(author_id: int, book_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    fields = _clean_fields(payload, creating=False)
    book = books_repo.update_book(book_id, fields, author_id=author_id)
    if not book:
        raise BookNotFoundError("book_not_found_or_not_yours")
    return book.as_dict(include_content=True)


def delete_own_book(author_id: int, book_id: int) -> None:
    if not books_repo.delete_book(book_id, author_id=author_id):
        raise BookNotFoundError("book_not_found_or_not_yours")
    LOG.info("Book deleted id=%s by author_id=%s", book_id, author_id)


def list_pending() -> List[Dict[str, Any]]:
    return [book.as_dict() for book in books_repo.list_books(status=constants.BOOK_PENDING)]


def list_all() -> List[Dict[str, Any]]:
    return [book.as_dict() for book in books_repo.list_books()]


def set_status(book_id: int, status: str) -> Dict[str, Any]:
    if status not in (constants.BOOK_APPROVED, constants.BOOK_REJECTED, constants.BOOK_PENDING):
        raise BookValidationError("status_invalid")
    book = books_repo.update_book(book_id, {"status": status})
    if not book:
        raise BookNotFoundError("book_not_found")
    LOG.info("Book moderated id=%s status=%s", book_id, status)
    return book.as_dict()


def admin_update_book(book_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    fields = _clean_fields(payload, creating=False)
    if "status" in payload:
        if payload["status"] not in (constants.BOOK_APPROVED, constants.BOOK_REJECTED, constants.BOOK_PENDING):
            raise BookValidationError("status_invalid")
        fields["status"] = payload["status"]
    book = books_repo.update_book(book_id, fields)
    if not book:
        raise BookNotFoundError("book_not_found")
    return book.as_dict()


def admin_delete_book(book_id: int) -> None:
    if not books_repo.delete_book(book_id):
        raise BookNotFoundError("book_not_found")
    LOG.info("Book deleted by admin id=%s", book_id)


def list_categories() -> List[Dict[str, Any]]:
    counts = books_repo.category_counts()
    return [{"name": name, "count": counts[name]} for name in sorted(counts)]


def _review_rating(value: Any) -> int:
    try:
        rating = int(value)
    except (TypeError, ValueError) as exc:
        raise BookValidationError("rating_required") from exc
    if rating < 1 or rating > 5:
        raise BookValidationError("rating_out_of_range")
    return rating


def _clean_text(value: Any) -> Optional[str]:
    return value.strip() if isinstance(value, str) and value.strip() else None


def add_review(book_id: int, user_id: int, rating: Any, comment: Any = None) -> Dict[str, Any]:
    value = _review_rating(rating)
    if not books_repo.get_book(book_id):
        raise BookNotFoundError("book_not_found")
    text = _clean_text(comment)
    try:
        review, book = books_repo.add_review(book_id, user_id, value, text)
    except books_repo.ReviewExistsError as exc:
        raise DuplicateReviewError("already_reviewed") from exc
    return {"review": review.as_dict(), "rating": round(book.rating, 2), "total_reviews": book.total_reviews}


def list_reviews(book_id: int) -> List[Dict[str, Any]]:
    if not books_repo.get_book(book_id):
        raise BookNotFoundError("book_not_found")
    reviews = books_repo.list_reviews(book_id)
    users = users_repo.get_users(r.user_id for r in reviews)
    results = []
    for review in reviews:
        data = review.as_dict()
        user = users.get(review.user_id)
        data["user_name"] = user.name if user else None
        results.append(data)
    return results


def moderate_review(moderator_id: int, review_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Admin edit of a review's rating and/or comment, recorded in the moderation log."""
    fields: Dict[str, Any] = {}
    if "rating" in payload:
        fields["rating"] = _review_rating(payload.get("rating"))
    if "comment" in payload:
        fields["comment"] = _clean_text(payload.get("comment"))
    if not fields:
        raise BookValidationError("nothing_to_update")
    result = books_repo.moderate_review(
        review_id, moderator_id, fields=fields, reason=_clean_text(payload.get("reason"))
    )
    if result is None:
        raise ReviewNotFoundError("review_not_found")
    log, book = result
    LOG.info("Review edited by moderator review_id=%s moderator_id=%s", review_id, moderator_id)
    return {"log": log.as_dict(), "rating": round(book.rating, 2) if book else None}


def remove_review(moderator_id: int, review_id: int, reason: Any = None) -> Dict[str, Any]:
    result = books_repo.moderate_review(review_id, moderator_id, reason=_clean_text(reason))
    if result is None:
        raise ReviewNotFoundError("review_not_found")
    log, book = result
    LOG.info("Review deleted by moderator review_id=%s moderator_id=%s", review_id, moderator_id)
    return {
        "log": log.as_dict(),
        "rating": round(book.rating, 2) if book else None,
        "total_reviews": book.total_reviews if book else 0,
    }


def list_moderation_logs(book_id: Any = None, action_type: Optional[str] = None) -> List[Dict[str, Any]]:
    if action_type and action_type not in ("edit", "delete"):
        raise BookValidationError("action_type_invalid")
    if book_id not in (None, ""):
        try:
            book_id = int(book_id)
        except (TypeError, ValueError) as exc:
            raise BookValidationError("book_invalid") from exc
    else:
        book_id = None
    logs = books_repo.list_moderation_logs(book_id=book_id, action_type=action_type or None)
    return [log.as_dict() for log in logs]


__all__ = [
    "BookError",
    "BookValidationError",
    "BookNotFoundError",
    "BookAccessError",
    "DuplicateReviewError",
    "ReviewNotFoundError",
    "list_approved",
    "get_book",
    "list_author_books",
    "create_book",
    "update_own_book",
    "delete_own_book",
    "list_pending",
    "list_all",
    "set_status",
    "admin_update_book",
    "admin_delete_book",
    "list_categories",
    "add_review",
    "list_reviews",
    "moderate_review",
    "remove_review",
    "list_moderation_logs",
]
