"""Thin bearer-token JSON client for the BookTech REST API.

Every call returns ``(ok, payload)``. Network errors and non-2xx answers are
reported through ``ok=False`` with an ``error`` key; nothing is raised.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import requests

from booktech import config as app_config
from booktech.utils.logging import get_logger

LOG = get_logger("booktech.client")

Result = Tuple[bool, Dict[str, Any]]


class ApiClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout or app_config.http_timeout()
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.set_token(token)

    def set_token(self, token: str) -> None:
        self.session.headers["Authorization"] = f"Bearer {token}"

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Result:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            r = self.session.request(method, url, json=json, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            LOG.warning("%s %s failed error=%s", method, path, exc)
            return False, {"error": "network_error", "details": str(exc)}
        try:
            data = r.json()
        except ValueError:
            data = {"raw": r.text}
        if not isinstance(data, dict):
            data = {"items": data}
        if 200 <= r.status_code < 300:
            return True, data
        data.setdefault("error", "http_error")
        data["status"] = r.status_code
        return False, data

    def get(self, path: str, **params: Any) -> Result:
        return self.request("GET", path, params=params or None)

    def post(self, path: str, body: Dict[str, Any]) -> Result:
        return self.request("POST", path, json=body)

    # ---- reader endpoints ----

    def get_progress(self, book_id: int) -> Result:
        return self.get("/api/users/progress", book=book_id)

    def save_progress(self, payload: Dict[str, Any]) -> Result:
        return self.post("/api/users/progress", payload)

    def post_reading_stats(self, payload: Dict[str, Any]) -> Result:
        return self.post("/api/users/reading-stats", payload)

    def list_bookmarks(self, book_id: int) -> Result:
        return self.get("/api/users/bookmarks", book=book_id)

    def toggle_bookmark(self, book_id: int, page: int) -> Result:
        return self.post("/api/users/bookmarks", {"book": book_id, "page": page})


__all__ = ["ApiClient", "Result"]
