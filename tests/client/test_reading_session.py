"""Tests for the reader-side ReadingSession against a scripted API client."""
from __future__ import annotations

import threading
import time
from typing import Any, Dict, List, Tuple

import pytest

from booktech.client.reading_session import ReadingSession, percent_for


class FakeClient:
    """Stands in for ApiClient; answers from ``server`` and records every call."""

    def __init__(self, page: int = 1, version: int = 0):
        self.server: Dict[str, Any] = {"page": page, "version": version}
        self.bookmarks: List[int] = []
        self.saved: List[Dict[str, Any]] = []
        self.stats: List[Dict[str, Any]] = []
        self.fail = False
        self.progress_fetches = 0

    def _down(self) -> Tuple[bool, Dict[str, Any]]:
        return False, {"error": "network_error"}

    def get_progress(self, book_id):
        self.progress_fetches += 1
        if self.fail:
            return self._down()
        return True, dict(self.server, book=book_id)

    def save_progress(self, payload):
        self.saved.append(payload)
        if self.fail:
            return self._down()
        sent = payload.get("version")
        if sent is not None and sent < self.server["version"]:
            return False, dict(self.server, stale=True, error="stale_progress", status=409)
        self.server = {"page": payload["page"], "version": self.server["version"] + 1}
        return True, dict(self.server, stale=False)

    def post_reading_stats(self, payload):
        self.stats.append(payload)
        if self.fail:
            return self._down()
        return True, {"reading_time": payload["reading_time"]}

    def list_bookmarks(self, book_id):
        if self.fail:
            return self._down()
        return True, {"book": book_id, "bookmarks": list(self.bookmarks)}

    def toggle_bookmark(self, book_id, page):
        if self.fail:
            return self._down()
        if page in self.bookmarks:
            self.bookmarks.remove(page)
            added = False
        else:
            self.bookmarks.append(page)
            added = True
        return True, {"page": page, "bookmarked": added, "bookmarks": sorted(self.bookmarks)}


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def _session(client, clock, total_pages=200):
    return ReadingSession(client, 7, total_pages, poll_seconds=5, stats_seconds=30, clock=clock)


def test_start_adopts_server_page_past_the_first(clock):
    client = FakeClient(page=42, version=3)
    session = _session(client, clock)

    assert session.start() == 42
    assert session.version == 3


def test_poll_overwrites_stale_local_page(clock):
    client = FakeClient()
    session = _session(client, clock)
    session.start()
    session.go_to_page(80)
    assert client.server["page"] == 80

    client.server = {"page": 120, "version": client.server["version"] + 1}  # another device moved on
    assert session.poll_once() == 120
    assert session.page == 120
    assert session.version == client.server["version"]


def test_go_to_page_is_clamped(clock):
    client = FakeClient()
    session = _session(client, clock, total_pages=50)
    session.start()

    assert session.go_to_page(0) == 1
    assert session.go_to_page(999) == 50
    assert session.go_to_page("abc") == 1
    assert session.previous_page() == 1
    session.go_to_page(50)
    assert session.next_page() == 50
    assert all(1 <= p["page"] <= 50 for p in client.saved)
    assert client.saved[-1]["percent"] == 100


def test_page_changes_carry_last_seen_version(clock):
    client = FakeClient(page=1, version=4)
    session = _session(client, clock)
    session.start()

    session.next_page()
    session.next_page()

    assert [p["version"] for p in client.saved] == [4, 5]
    assert session.version == 6


def test_stale_write_adopts_server_page(clock):
    client = FakeClient(page=1, version=1)
    session = _session(client, clock)
    session.start()
    client.server = {"page": 130, "version": 9}

    session.go_to_page(20)

    assert session.page == 130
    assert session.version == 9


def test_network_failures_are_swallowed(clock):
    client = FakeClient(page=30, version=2)
    session = _session(client, clock)
    session.start()
    client.fail = True

    assert session.go_to_page(31) == 31
    assert session.poll_once() == 31
    assert session.toggle_bookmark() is None
    clock.now += 120
    assert session.report_stats() is None
    session.close()


def test_report_stats_estimates_two_pages_per_minute(clock):
    client = FakeClient()
    session = _session(client, clock)
    session.start()

    clock.now += 30
    assert session.report_stats() is None  # under a minute, carried over
    clock.now += 60
    sent = session.report_stats()
    assert sent == {"book_id": 7, "reading_time": 1, "pages_read": 2}

    clock.now += 150
    sent = session.report_stats()
    assert sent["reading_time"] == 3  # 30 s carried + 150 s
    assert sent["pages_read"] == 6


def test_close_posts_final_stats_and_stops_timers(clock):
    client = FakeClient()
    session = _session(client, clock)
    session.start()
    session.run_timers()
    clock.now += 10

    session.close()
    session.close()

    assert len(client.stats) == 1
    assert client.stats[0]["reading_time"] == 0
    assert session._timers == []


class SlowStatsClient(FakeClient):
    """Holds the first stats post open until ``release`` is set."""

    def __init__(self):
        super().__init__()
        self.posting = threading.Event()
        self.release = threading.Event()

    def post_reading_stats(self, payload):
        if not self.stats:
            self.stats.append(payload)
            self.posting.set()
            self.release.wait(timeout=5)
            return True, {"reading_time": payload["reading_time"]}
        return super().post_reading_stats(payload)


def test_close_during_stats_tick_does_not_post_same_minutes_twice(clock):
    client = SlowStatsClient()
    session = _session(client, clock)
    session.start()
    clock.now += 90

    tick = threading.Thread(target=session.report_stats)
    tick.start()
    assert client.posting.wait(timeout=5)
    session.close()
    client.release.set()
    tick.join(timeout=5)

    assert [s["reading_time"] for s in client.stats] == [1, 0]


def test_failed_stats_post_keeps_minutes_for_next_report(clock):
    client = FakeClient()
    session = _session(client, clock)
    session.start()
    clock.now += 120
    client.fail = True
    assert session.report_stats() is None

    client.fail = False
    clock.now += 30
    sent = session.report_stats()

    assert sent["reading_time"] == 2


def test_running_timers_pick_up_another_devices_page():
    client = FakeClient(page=1, version=1)
    session = ReadingSession(client, 7, 200, poll_seconds=0.05, stats_seconds=30)
    session.start()
    session.run_timers()
    try:
        client.server = {"page": 120, "version": 2}
        deadline = time.monotonic() + 2
        while session.page != 120 and time.monotonic() < deadline:
            time.sleep(0.05)
        time.sleep(0.15)

        assert session.page == 120
        assert session.version == 2
        assert client.progress_fetches > 2
    finally:
        session.close()


def test_toggle_bookmark_tracks_server_set(clock):
    client = FakeClient()
    session = _session(client, clock)
    session.start()
    session.go_to_page(12)

    assert session.toggle_bookmark() is True
    assert session.is_bookmarked()
    assert session.bookmarks == [12]
    assert session.toggle_bookmark() is False
    assert session.bookmarks == []


def test_percent_matches_server_rounding():
    assert percent_for(1, 200) == 1
    assert percent_for(100, 200) == 50
    assert percent_for(2, 3) == 67
