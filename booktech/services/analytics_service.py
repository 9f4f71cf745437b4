"""Per-author sales analytics and export.

Figures come from paid orders only and count the author's own line items,
so a mixed cart contributes just the author's share of revenue. Soft-copy
books are "downloads" and hard-copy books are "hard copy orders". Date
ranges apply when both ends are given; the end date is inclusive.
"""
from __future__ import annotations

import csv
import datetime
import io
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from booktech.db.repositories import books_repo, orders_repo
from booktech.utils.currency import as_float, to_decimal
from booktech.utils.logging import get_logger

LOG = get_logger("analytics_service")

UNCATEGORIZED = "Uncategorized"
DEFAULT_LIMIT = 5
EXPORT_COLUMNS = ("title", "category", "reading_type", "sales", "views", "revenue", "created_at")

DateRange = Tuple[Optional[datetime.datetime], Optional[datetime.datetime]]


class AnalyticsValidationError(ValueError):
    pass


def _parse_date(raw: str) -> datetime.datetime:
    try:
        return datetime.datetime.strptime(raw.strip()[:10], "%Y-%m-%d")
    except (AttributeError, ValueError) as exc:
        raise AnalyticsValidationError("date_invalid") from exc


def parse_range(start: Any = None, end: Any = None) -> DateRange:
    if not start or not end:
        return None, None
    first, last = _parse_date(start), _parse_date(end)
    if last < first:
        raise AnalyticsValidationError("date_range_invalid")
    return first, last + datetime.timedelta(days=1)


def _in_range(when: Optional[datetime.datetime], window: DateRange) -> bool:
    start, end = window
    if when is None:
        return start is None and end is None
    if start is not None and when < start:
        return False
    if end is not None and when >= end:
        return False
    return True


def _category_of(book) -> str:
    return (book.category if book else None) or UNCATEGORIZED


def _sales(author_id: int, window: DateRange, category: Optional[str] = None):
    """Yield ``(order, item, book)`` for the author's paid items in the window."""
    rows = orders_repo.author_sales(author_id, start=window[0], end=window[1])
    books = books_repo.get_books(item.book_id for _, item in rows)
    for order, item in rows:
        book = books.get(item.book_id)
        if category and _category_of(book).lower() != category.lower():
            continue
        yield order, item, book


def _line_total(item) -> Decimal:
    return to_decimal(item.price) * (item.quantity or 1)


def _is_download(book) -> bool:
    return book is None or book.reading_type != "hard"


def _author_books(author_id: int, window: DateRange, category: Optional[str] = None) -> List[Any]:
    books = books_repo.list_books(author_id=author_id, category=category or None)
    if window == (None, None):
        return books
    return [b for b in books if _in_range(b.created_at, window)]


def sales_trends(author_id: int, window: DateRange = (None, None), category: Optional[str] = None) -> Dict[str, Any]:
    days: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    seen_orders = set()
    for order, item, book in _sales(author_id, window, category):
        key = order.created_at.date().isoformat()
        day = days.setdefault(key, {"date": key, "revenue": Decimal("0"), "orders": 0, "downloads": 0})
        day["revenue"] += _line_total(item)
        if (key, order.id) not in seen_orders:
            seen_orders.add((key, order.id))
            day["orders"] += 1
        if _is_download(book):
            day["downloads"] += item.quantity or 1
    data = [dict(day, revenue=as_float(day["revenue"])) for day in days.values()]
    return {
        "data": data,
        "total_revenue": as_float(sum((d["revenue"] for d in days.values()), Decimal("0"))),
        "total_orders": sum(d["orders"] for d in data),
        "total_downloads": sum(d["downloads"] for d in data),
    }


def downloads_vs_orders(
    author_id: int, window: DateRange = (None, None), category: Optional[str] = None
) -> Dict[str, Any]:
    downloads = hard_copies = 0
    for _, item, book in _sales(author_id, window, category):
        if _is_download(book):
            downloads += item.quantity or 1
        else:
            hard_copies += item.quantity or 1
    return {
        "data": [
            {"label": "Downloads", "value": downloads},
            {"label": "Hard Copy Orders", "value": hard_copies},
        ],
        "total": downloads + hard_copies,
    }


def most_viewed(author_id: int, window: DateRange = (None, None), limit: Any = DEFAULT_LIMIT) -> List[Dict[str, Any]]:
    try:
        count = int(limit)
    except (TypeError, ValueError) as exc:
        raise AnalyticsValidationError("limit_invalid") from exc
    if count < 1:
        raise AnalyticsValidationError("limit_invalid")
    books = sorted(_author_books(author_id, window), key=lambda b: (-(b.views or 0), b.id))
    return [
        {
            "id": b.id,
            "title": b.title,
            "cover_image": b.cover_image,
            "views": b.views or 0,
            "sales": b.sales or 0,
        }
        for b in books[:count]
    ]


def summary(author_id: int, window: DateRange = (None, None)) -> Dict[str, Any]:
    revenue = Decimal("0")
    orders = set()
    downloads = 0
    for order, item, book in _sales(author_id, window):
        revenue += _line_total(item)
        orders.add(order.id)
        if _is_download(book):
            downloads += item.quantity or 1
    books = books_repo.list_books(author_id=author_id)
    return {
        "total_revenue": as_float(revenue),
        "total_orders": len(orders),
        "total_downloads": downloads,
        "total_views": sum(b.views or 0 for b in books),
        "total_books": len(books),
        "average_revenue": as_float(revenue / len(orders)) if orders else 0.0,
    }


def category_breakdown(author_id: int, window: DateRange = (None, None)) -> List[Dict[str, Any]]:
    groups: Dict[str, Dict[str, Any]] = {}
    for book in _author_books(author_id, window):
        name = _category_of(book)
        group = groups.setdefault(name, {"category": name, "sales": 0, "views": 0, "books": 0})
        group["sales"] += book.sales or 0
        group["views"] += book.views or 0
        group["books"] += 1
    return [groups[name] for name in sorted(groups)]


def _revenue_by_book(author_id: int, book_ids: Iterable[int]) -> Dict[int, Decimal]:
    wanted = set(book_ids)
    totals: Dict[int, Decimal] = {}
    for _, item, _book in _sales(author_id, (None, None)):
        if item.book_id in wanted:
            totals[item.book_id] = totals.get(item.book_id, Decimal("0")) + _line_total(item)
    return totals


def export(author_id: int, window: DateRange = (None, None), category: Optional[str] = None) -> Dict[str, Any]:
    """Book rows plus totals, filtered by the books' creation date and category."""
    books = _author_books(author_id, window, category)
    revenue = _revenue_by_book(author_id, (b.id for b in books))
    rows = [
        {
            "title": b.title,
            "category": _category_of(b),
            "reading_type": b.reading_type,
            "sales": b.sales or 0,
            "views": b.views or 0,
            "revenue": as_float(revenue.get(b.id, Decimal("0"))),
            "created_at": b.created_at.isoformat() if b.created_at else None,
        }
        for b in books
    ]
    order_ids = {order.id for order, item, _ in _sales(author_id, (None, None)) if item.book_id in revenue}
    return {
        "books": rows,
        "summary": {
            "total_books": len(rows),
            "total_sales": sum(r["sales"] for r in rows),
            "total_views": sum(r["views"] for r in rows),
            "total_orders": len(order_ids),
            "total_revenue": as_float(sum(revenue.values(), Decimal("0"))),
        },
    }


def export_csv(author_id: int, window: DateRange = (None, None), category: Optional[str] = None) -> str:
    report = export(author_id, window, category)
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(report["books"])
    LOG.debug("Analytics CSV export author_id=%s rows=%s", author_id, len(report["books"]))
    return buffer.getvalue()


__all__ = [
    "AnalyticsValidationError",
    "EXPORT_COLUMNS",
    "parse_range",
    "sales_trends",
    "downloads_vs_orders",
    "most_viewed",
    "summary",
    "category_breakdown",
    "export",
    "export_csv",
]
