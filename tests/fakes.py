# tests/fakes.py

from __future__ import annotations

import itertools
from typing import Any

from terceiro_olho.api.client import ApiError
from terceiro_olho.core.models import COVER_IDS, SEED_VOTES, iso_now


class FakeClock:
    """Manually advanced clock (seconds since epoch)."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSiteApi:
    """
    In-memory SiteApi used for unit tests.

    - Mirrors the server's behavior (ids, defaults, auto-approval, vote tally)
    - `fail_with` makes every call raise: "offline" -> unreachable, int -> HTTP status
    - Captures calls for assertions
    """

    base_url = "http://fake/api"

    def __init__(self, *, approve: bool = True) -> None:
        self.approve = approve
        self.fail_with: str | int | None = None
        self.calls: list[tuple[str, Any]] = []
        self.closed = False

        self.visits: dict[str, Any] = {"total": 0, "coverPage": 0, "daily": {}, "lastUpdate": None}
        self.news: list[dict[str, Any]] = []
        self.comments: list[dict[str, Any]] = []
        self.votes: dict[str, int] = dict(SEED_VOTES)
        self._ids = itertools.count(1000)

    def _call(self, name: str, arg: Any = None) -> None:
        self.calls.append((name, arg))
        if self.fail_with == "offline":
            raise ApiError("Connection refused", endpoint=f"/{name}")
        if isinstance(self.fail_with, int):
            raise ApiError(f"HTTP error {self.fail_with}", endpoint=f"/{name}", status=self.fail_with)

    def calls_to(self, name: str) -> list[Any]:
        return [arg for n, arg in self.calls if n == name]

    def close(self) -> None:
        self.closed = True

    # ---- visits ----

    def increment_visit(self, page: str = "total") -> dict[str, Any]:
        self._call("increment_visit", page)
        if page == "total":
            self.visits["total"] += 1
        elif page == "cover":
            self.visits["coverPage"] += 1
        today = iso_now()[:10]
        self.visits["daily"][today] = self.visits["daily"].get(today, 0) + 1
        self.visits["lastUpdate"] = iso_now()
        return {"success": True, "visits": dict(self.visits)}

    def get_visits(self) -> dict[str, Any]:
        self._call("get_visits")
        return dict(self.visits)

    # ---- news ----

    def get_news(self) -> list[dict[str, Any]]:
        self._call("get_news")
        return [dict(n) for n in self.news]

    def add_news(self, data: dict[str, Any]) -> dict[str, Any]:
        self._call("add_news", data)
        item = {
            "id": next(self._ids),
            "title": data["title"],
            "content": data["content"],
            "category": data.get("category") or "Geral",
            "author": data.get("author") or "Administrador",
            "date": iso_now(),
            "featured": bool(data.get("featured", False)),
        }
        self.news.append(item)
        return {"success": True, "news": item}

    # ---- comments ----

    def get_comments(self) -> list[dict[str, Any]]:
        self._call("get_comments")
        return [dict(c) for c in self.comments if c.get("approved")]

    def get_comments_by_page(self, page: str) -> list[dict[str, Any]]:
        return [c for c in self.get_comments() if c.get("page") == page]

    def add_comment(self, data: dict[str, Any]) -> dict[str, Any]:
        self._call("add_comment", data)
        comment = {
            "id": next(self._ids),
            "name": data["name"],
            "email": data.get("email", ""),
            "message": data["message"],
            "page": data.get("page") or "geral",
            "date": iso_now(),
            "approved": self.approve,
        }
        self.comments.append(comment)
        return {"success": True, "comment": dict(comment)}

    # ---- votes ----

    def get_votes(self) -> dict[str, int]:
        self._call("get_votes")
        return dict(self.votes)

    def vote(self, cover_id: str) -> dict[str, Any]:
        if cover_id not in COVER_IDS:
            raise ValueError(f"Invalid cover id: {cover_id!r}")
        self._call("vote", cover_id)
        self.votes[cover_id] += 1
        return {"success": True, "votes": dict(self.votes)}

    # ---- utils ----

    def is_online(self) -> bool:
        try:
            self._call("test")
        except ApiError:
            return False
        return True
