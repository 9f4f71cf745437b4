"""Tests for analytics_service: per-author trends, splits and export."""
from __future__ import annotations

import datetime

import pytest

from booktech.db import app_session
from booktech.db.engine import init_engine_once, reset_for_tests
from booktech.db.models import Order
from booktech.db.repositories import books_repo, orders_repo, users_repo
from booktech.services import analytics_service


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def catalogue():
    author = users_repo.create_user("author@example.com", "hash", name="Ada", role="author")
    rival = users_repo.create_user("rival@example.com", "hash", name="Bo", role="author")
    ebook = books_repo.create_book(
        title="Soft", author="Ada", author_id=author.id, price=10.0, category="Fiction", status="approved"
    )
    paper = books_repo.create_book(
        title="Hard", author="Ada", author_id=author.id, price=20.0, reading_type="hard", status="approved"
    )
    theirs = books_repo.create_book(title="Other", author="Bo", author_id=rival.id, price=7.0, status="approved")
    return author, ebook, paper, theirs


def _order(number, when, lines, *, paid=True):
    order, _ = orders_repo.create_order(
        {"order_number": number, "user_id": 500, "subtotal": 0.0, "tax": 0.0, "total": 0.0},
        [
            {"book_id": b.id, "author_id": b.author_id, "title": b.title, "author": b.author, "price": b.price, "quantity": q}
            for b, q in lines
        ],
    )
    with app_session() as session:
        session.query(Order).filter(Order.id == order.id).update(
            {Order.created_at: when, Order.payment_status: "completed" if paid else "pending"},
            synchronize_session=False,
        )
    return order


def test_sales_trends_counts_only_the_authors_paid_items(catalogue):
    author, ebook, paper, theirs = catalogue
    _order("BT-1", datetime.datetime(2026, 5, 1, 9), [(ebook, 2), (theirs, 1)])
    _order("BT-2", datetime.datetime(2026, 5, 1, 17), [(paper, 1)])
    _order("BT-3", datetime.datetime(2026, 5, 3, 12), [(ebook, 1)])
    _order("BT-4", datetime.datetime(2026, 5, 3, 13), [(ebook, 5)], paid=False)

    trends = analytics_service.sales_trends(author.id)

    assert trends["data"] == [
        {"date": "2026-05-01", "revenue": 40.0, "orders": 2, "downloads": 2},
        {"date": "2026-05-03", "revenue": 10.0, "orders": 1, "downloads": 1},
    ]
    assert trends["total_revenue"] == 50.0
    assert trends["total_orders"] == 3
    assert trends["total_downloads"] == 3


def test_date_window_includes_the_end_day(catalogue):
    author, ebook, _paper, _theirs = catalogue
    _order("BT-1", datetime.datetime(2026, 5, 1, 9), [(ebook, 1)])
    _order("BT-2", datetime.datetime(2026, 5, 3, 23, 30), [(ebook, 1)])
    _order("BT-3", datetime.datetime(2026, 5, 4, 0, 5), [(ebook, 1)])

    window = analytics_service.parse_range("2026-05-02", "2026-05-03")

    assert [d["date"] for d in analytics_service.sales_trends(author.id, window)["data"]] == ["2026-05-03"]
    assert analytics_service.parse_range("2026-05-02", None) == (None, None)
    with pytest.raises(analytics_service.AnalyticsValidationError, match="date_invalid"):
        analytics_service.parse_range("yesterday", "2026-05-03")
    with pytest.raises(analytics_service.AnalyticsValidationError, match="date_range_invalid"):
        analytics_service.parse_range("2026-05-03", "2026-05-01")


def test_downloads_vs_hard_copies_and_summary(catalogue):
    author, ebook, paper, _theirs = catalogue
    _order("BT-1", datetime.datetime(2026, 5, 1), [(ebook, 3), (paper, 2)])
    _order("BT-2", datetime.datetime(2026, 5, 2), [(paper, 1)])
    books_repo.increment_views(ebook.id)
    books_repo.increment_views(ebook.id)
    books_repo.increment_views(paper.id)

    split = analytics_service.downloads_vs_orders(author.id)
    totals = analytics_service.summary(author.id)

    assert split["data"] == [
        {"label": "Downloads", "value": 3},
        {"label": "Hard Copy Orders", "value": 3},
    ]
    assert split["total"] == 6
    assert totals == {
        "total_revenue": 90.0,
        "total_orders": 2,
        "total_downloads": 3,
        "total_views": 3,
        "total_books": 2,
        "average_revenue": 45.0,
    }


def test_most_viewed_and_category_breakdown(catalogue):
    author, ebook, paper, _theirs = catalogue
    for _ in range(3):
        books_repo.increment_views(paper.id)
    books_repo.increment_views(ebook.id)
    books_repo.record_sale(ebook.id, 4, 40.0)

    viewed = analytics_service.most_viewed(author.id, limit=1)
    breakdown = analytics_service.category_breakdown(author.id)

    assert [b["title"] for b in viewed] == ["Hard"]
    assert breakdown == [
        {"category": "Fiction", "sales": 4, "views": 1, "books": 1},
        {"category": "Uncategorized", "sales": 0, "views": 3, "books": 1},
    ]
    with pytest.raises(analytics_service.AnalyticsValidationError):
        analytics_service.most_viewed(author.id, limit="0")


def test_export_csv_has_one_row_per_book(catalogue):
    author, ebook, _paper, _theirs = catalogue
    _order("BT-1", datetime.datetime(2026, 5, 1), [(ebook, 2)])

    report = analytics_service.export(author.id, category="fiction")
    text = analytics_service.export_csv(author.id)

    assert [b["title"] for b in report["books"]] == ["Soft"]
    assert report["summary"]["total_revenue"] == 20.0
    assert report["summary"]["total_orders"] == 1
    lines = text.strip().split("\n")
    assert lines[0] == ",".join(analytics_service.EXPORT_COLUMNS)
    assert len(lines) == 3
    assert any(line.startswith("Soft,Fiction,soft,") and ",20.0," in line for line in lines[1:])
