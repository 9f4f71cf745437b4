"""Client-side reading session that keeps the current page in sync.

A session tracks one book for one signed-in reader:

* ``start()`` adopts the server page when it is past page 1;
* every page change is pushed fire-and-forget with the last seen ``version``;
* ``poll_once()`` (every few seconds under ``run_timers``) overwrites the
  local page with whatever the server holds;
* ``report_stats()`` (every 30 s) posts an elapsed-time based estimate;
* ``close()`` stops the timers and posts a final stats report.

Network failures are logged and swallowed; the reader never sees them.
"""
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, List, Optional, Set

from booktech import config as app_config
from booktech.client.api_client import ApiClient
from booktech.utils.logging import get_logger

LOG = get_logger("booktech.client.reader")

PAGES_PER_MINUTE = 2


def clamp(page: Any, total_pages: int) -> int:
    try:
        value = int(page)
    except (TypeError, ValueError):
        value = 1
    return max(1, min(value, max(1, total_pages)))


def percent_for(page: int, total_pages: int) -> int:
    total = max(1, total_pages)
    return (page * 200 + total) // (2 * total)


class _RepeatingTimer:
    """Re-arms a daemon ``threading.Timer`` after every tick until cancelled."""

    def __init__(self, interval: float, fn: Callable[[], Any], name: str) -> None:
        self.interval = interval
        self.fn = fn
        self.name = name
        self._timer: Optional[threading.Timer] = None
        self._stopped = threading.Event()

    def _tick(self) -> None:
        if self._stopped.is_set():
            return
        try:
            self.fn()
        except Exception:  # pragma: no cover - a tick must never kill the timer
            LOG.exception("Reader timer %s tick failed", self.name)
        self._arm()

    def _arm(self) -> None:
        if self._stopped.is_set():
            return
        self._timer = threading.Timer(self.interval, self._tick)
        self._timer.name = f"reader-{self.name}"
        self._timer.daemon = True
        self._timer.start()

    def start(self) -> None:
        self._arm()

    def cancel(self) -> None:
        self._stopped.set()
        if self._timer is not None:
            self._timer.cancel()


class ReadingSession:
    def __init__(
        self,
        client: ApiClient,
        book_id: int,
        total_pages: int,
        *,
        poll_seconds: Optional[float] = None,
        stats_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.book_id = book_id
        self.total_pages = max(1, int(total_pages or 1))
        self.poll_seconds = poll_seconds or app_config.reader_poll_seconds()
        self.stats_seconds = stats_seconds or app_config.reader_stats_seconds()
        self._clock = clock
        self._lock = threading.Lock()
        self._page = 1
        self._version: Optional[int] = None
        self._bookmarks: Set[int] = set()
        self._timers: List[_RepeatingTimer] = []
        self._last_report = clock()
        self._carry_seconds = 0.0
        self._closed = False

    # ---- state ----

    @property
    def page(self) -> int:
        with self._lock:
            return self._page

    @property
    def version(self) -> Optional[int]:
        with self._lock:
            return self._version

    @property
    def percent(self) -> int:
        return percent_for(self.page, self.total_pages)

    @property
    def bookmarks(self) -> List[int]:
        with self._lock:
            return sorted(self._bookmarks)

    def is_bookmarked(self) -> bool:
        with self._lock:
            return self._page in self._bookmarks

    def _adopt(self, data: Dict[str, Any], *, only_forward_start: bool = False) -> bool:
        """Take page/version from a server record. Returns True if the page moved."""
        remote = data.get("page")
        version = data.get("version")
        with self._lock:
            if isinstance(version, int):
                self._version = version
            if remote is None:
                return False
            page = clamp(remote, self.total_pages)
            if only_forward_start and page <= 1:
                return False
            if page == self._page:
                return False
            self._page = page
            return True

    # ---- lifecycle ----

    def start(self) -> int:
        ok, data = self.client.get_progress(self.book_id)
        if ok:
            if self._adopt(data, only_forward_start=True):
                LOG.info("Resumed book_id=%s at page=%s", self.book_id, self.page)
        else:
            LOG.warning("Progress fetch failed book_id=%s error=%s", self.book_id, data.get("error"))
        ok, data = self.client.list_bookmarks(self.book_id)
        if ok:
            with self._lock:
                self._bookmarks = {int(p) for p in data.get("bookmarks") or []}
        with self._lock:
            self._last_report = self._clock()
        return self.page

    def run_timers(self) -> None:
        if self._timers or self._closed:
            return
        self._timers = [
            _RepeatingTimer(self.poll_seconds, self.poll_once, "poll"),
            _RepeatingTimer(self.stats_seconds, self.report_stats, "stats"),
        ]
        for timer in self._timers:
            timer.start()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for timer in self._timers:
            timer.cancel()
        self._timers = []
        self.report_stats(final=True)

    # ---- navigation ----

    def go_to_page(self, page: Any) -> int:
        with self._lock:
            self._page = clamp(page, self.total_pages)
            current = self._page
        self._push_progress()
        return current

    def next_page(self) -> int:
        return self.go_to_page(self.page + 1)

    def previous_page(self) -> int:
        return self.go_to_page(self.page - 1)

    def _push_progress(self) -> None:
        with self._lock:
            payload = {
                "book": self.book_id,
                "page": self._page,
                "total_pages": self.total_pages,
                "percent": percent_for(self._page, self.total_pages),
            }
            if self._version is not None:
                payload["version"] = self._version
        ok, data = self.client.save_progress(payload)
        if ok:
            with self._lock:
                if isinstance(data.get("version"), int):
                    self._version = data["version"]
            return
        if data.get("stale"):
            LOG.info("Progress write was stale book_id=%s; adopting server page", self.book_id)
            self._adopt(data)
            return
        LOG.warning("Progress save failed book_id=%s error=%s", self.book_id, data.get("error"))

    def poll_once(self) -> int:
        ok, data = self.client.get_progress(self.book_id)
        if not ok:
            LOG.warning("Progress poll failed book_id=%s error=%s", self.book_id, data.get("error"))
            return self.page
        if self._adopt(data):
            LOG.debug("Progress poll moved book_id=%s to page=%s", self.book_id, self.page)
        return self.page

    # ---- stats & bookmarks ----

    def report_stats(self, final: bool = False) -> Optional[Dict[str, Any]]:
        """Post whole elapsed minutes since the last report (2 pages per minute).

        Partial minutes are carried to the next report. The reported window is
        claimed before posting, so a tick still in flight and ``close()`` never
        send the same seconds twice; a failed post hands the minutes back.
        Returns the payload sent, or None when there was nothing to report.
        """
        with self._lock:
            now = self._clock()
            seconds = self._carry_seconds + max(0.0, now - self._last_report)
            minutes = int(seconds // 60)
            if minutes < 1 and not final:
                return None
            self._last_report = now
            self._carry_seconds = seconds - minutes * 60
            payload = {
                "book_id": self.book_id,
                "reading_time": minutes,
                "pages_read": minutes * PAGES_PER_MINUTE,
            }
        ok, data = self.client.post_reading_stats(payload)
        if not ok:
            LOG.warning("Reading stats report failed book_id=%s error=%s", self.book_id, data.get("error"))
            with self._lock:
                self._carry_seconds += minutes * 60
            return None
        return payload

    def toggle_bookmark(self) -> Optional[bool]:
        page = self.page
        ok, data = self.client.toggle_bookmark(self.book_id, page)
        if not ok:
            LOG.warning("Bookmark toggle failed book_id=%s page=%s error=%s", self.book_id, page, data.get("error"))
            return None
        with self._lock:
            if "bookmarks" in data:
                self._bookmarks = {int(p) for p in data["bookmarks"]}
            elif data.get("bookmarked"):
                self._bookmarks.add(page)
            else:
                self._bookmarks.discard(page)
        return bool(data.get("bookmarked"))


__all__ = ["ReadingSession", "PAGES_PER_MINUTE", "clamp", "percent_for"]
