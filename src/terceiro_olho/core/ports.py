# src/terceiro_olho/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the services.

Services depend on Protocols instead of concrete implementations.
This keeps the HTTP client and the local store swappable and makes testing easier.
"""

from typing import Any, Protocol

JsonDict = dict[str, Any]


class SiteApi(Protocol):
    """Server JSON API (visits, news, comments, votes)."""

    def increment_visit(self, page: str = "total") -> JsonDict: ...
    def get_visits(self) -> JsonDict: ...

    def get_news(self) -> list[JsonDict]: ...
    def add_news(self, data: JsonDict) -> JsonDict: ...

    def get_comments(self) -> list[JsonDict]: ...
    def get_comments_by_page(self, page: str) -> list[JsonDict]: ...
    def add_comment(self, data: JsonDict) -> JsonDict: ...

    def get_votes(self) -> dict[str, int]: ...
    def vote(self, cover_id: str) -> JsonDict: ...

    def is_online(self) -> bool: ...


class KeyValueStore(Protocol):
    """localStorage-like persistence of JSON values under string keys."""

    def get(self, key: str, default: Any = None) -> Any: ...
    def set(self, key: str, value: Any) -> bool: ...
    def remove(self, key: str) -> bool: ...
    def keys(self, prefix: str = "") -> list[str]: ...
