"""Tests for reading_service: clamping, versioned progress and streaks."""
from __future__ import annotations

from datetime import date

import pytest

from booktech.db.engine import init_engine_once, reset_for_tests
from booktech.db.repositories import books_repo, users_repo
from booktech.services import reading_service


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKTECH_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def reader():
    return users_repo.create_user("reader@example.com", "hash", name="Reader")


@pytest.fixture
def book():
    return books_repo.create_book(
        title="Long Read", author="Writer", author_id=99, price=5.0, status="approved", total_pages=200, genre="Fantasy"
    )


@pytest.mark.parametrize(
    "page, expected",
    [(0, 1), (-4, 1), (1, 1), (150, 150), (200, 200), (201, 200), ("junk", 1), (None, 1)],
)
def test_clamp_page(page, expected):
    assert reading_service.clamp_page(page, 200) == expected


def test_percent_rounds_half_up():
    assert reading_service.percent_for(1, 200) == 1  # 0.5 -> 1
    assert reading_service.percent_for(1, 3) == 33
    assert reading_service.percent_for(2, 3) == 67
    assert reading_service.percent_for(200, 200) == 100


def test_progress_defaults_to_page_one(reader, book):
    progress = reading_service.get_progress(reader.id, book.id)
    assert progress["page"] == 1
    assert progress["version"] == 0
    assert progress["total_pages"] == 200


def test_save_progress_clamps_and_uses_book_page_count(reader, book):
    saved = reading_service.save_progress(reader.id, book.id, 999)
    assert saved["page"] == 200
    assert saved["percent"] == 100
    assert saved["stale"] is False


def test_stale_version_is_refused(reader, book):
    first = reading_service.save_progress(reader.id, book.id, 80)
    reading_service.save_progress(reader.id, book.id, 120, version=first["version"])

    stale = reading_service.save_progress(reader.id, book.id, 81, version=first["version"])

    assert stale["stale"] is True
    assert stale["page"] == 120
    assert reading_service.get_progress(reader.id, book.id)["page"] == 120


def test_save_progress_unknown_book(reader):
    with pytest.raises(reading_service.BookNotFoundError):
        reading_service.save_progress(reader.id, 4040, 3)


def test_streak_grows_on_consecutive_days_and_resets_after_gap(reader, book):
    stats = reading_service.record_reading_stats(reader.id, book.id, 10, today=date(2026, 3, 1))
    assert stats["current_streak"] == 1
    assert stats["books_read"] == 1
    assert stats["pages_read"] == 20

    stats = reading_service.record_reading_stats(reader.id, book.id, 5, today=date(2026, 3, 1))
    assert stats["current_streak"] == 1
    assert stats["books_read"] == 1

    stats = reading_service.record_reading_stats(reader.id, None, 5, today=date(2026, 3, 2))
    assert stats["current_streak"] == 2

    stats = reading_service.record_reading_stats(reader.id, None, 5, 3, today=date(2026, 3, 5))
    assert stats["current_streak"] == 1
    assert stats["pages_read"] == 20 + 10 + 10 + 3
    assert stats["reading_time"] == 25
    assert stats["favorite_genres"] == ["Fantasy"]
    assert stats["monthly_progress"] == [{"month": "2026-03", "books_read": 1, "pages_read": 43}]


def test_displayed_streak_drops_to_zero_after_a_missed_day(reader):
    reading_service.record_reading_stats(reader.id, None, 5, today=date(2026, 3, 1))
    assert reading_service.get_reading_stats(reader.id, today=date(2026, 3, 2))["current_streak"] == 1
    assert reading_service.get_reading_stats(reader.id, today=date(2026, 3, 3))["current_streak"] == 0


def test_zero_minute_report_does_not_extend_streak(reader):
    reading_service.record_reading_stats(reader.id, None, 5, today=date(2026, 3, 1))

    stats = reading_service.record_reading_stats(reader.id, None, 0, today=date(2026, 3, 2))

    assert stats["current_streak"] == 1
    assert stats["last_read_date"] == "2026-03-01"
    assert reading_service.get_reading_stats(reader.id, today=date(2026, 3, 3))["current_streak"] == 0


def test_save_progress_requires_page(reader, book):
    with pytest.raises(reading_service.ReadingValidationError, match="page_required"):
        reading_service.save_progress(reader.id, book.id, None)


def test_toggle_bookmark_clamps_page(reader, book):
    result = reading_service.toggle_bookmark(reader.id, book.id, 500)
    assert result == {"page": 200, "bookmarked": True, "bookmarks": [200]}
    result = reading_service.toggle_bookmark(reader.id, book.id, 200)
    assert result["bookmarked"] is False
    assert reading_service.list_bookmarks(reader.id, book.id) == []
