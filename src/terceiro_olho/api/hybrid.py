# src/terceiro_olho/api/hybrid.py

from __future__ import annotations

import logging
from typing import Any

from ..core.ports import SiteApi
from ..storage.areas import CacheStorage, PendingCommentStorage, VisitStorage
from .client import ApiError

logger = logging.getLogger(__name__)

COMMENTS_CACHE_KEY = "comments_all"


class HybridApi:
    """
    Site API wrapper that falls back to the local store when the server is unreachable.

    Behavior:
    - visits: the local mirror is bumped on every increment, online or not
    - comments: a comment that cannot be delivered is queued as a pending comment
    - reads: the last good server answer is served while offline
    """

    def __init__(
        self,
        api: SiteApi,
        *,
        visits: VisitStorage,
        pending: PendingCommentStorage,
        cache: CacheStorage,
    ) -> None:
        self.api = api
        self._visits = visits
        self._pending = pending
        self._cache = cache

    def increment_visit(self, page: str = "total") -> dict[str, Any]:
        try:
            result = self.api.increment_visit(page)
        except ApiError as e:
            logger.warning("API offline, using local store: %s", e)
            local = self._visits.increment(page)
            return {"success": True, "visits": local, "offline": True}

        self._visits.increment(page)
        return result

    def get_visits(self) -> dict[str, Any]:
        try:
            return self.api.get_visits()
        except ApiError as e:
            logger.warning("API offline, using local store: %s", e)
            return {**self._visits.get(), "offline": True}

    def add_comment(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Deliver a comment, or queue it for a later retry.

        Only failures worth retrying (server unreachable, 5xx) are queued; a 4xx rejection
        would be rejected again and is raised to the caller.
        """
        try:
            return self.api.add_comment(data)
        except ApiError as e:
            if not e.retryable:
                raise
            logger.warning("API offline, saving comment to the local store: %s", e)
            entry = self._pending.add_pending(data)
            return {"success": True, "comment": entry, "pending": True}

    def get_comments(self) -> list[dict[str, Any]]:
        try:
            comments = self.api.get_comments()
        except ApiError as e:
            logger.warning("API offline, using local store: %s", e)
            cached = self._cache.get_stale(COMMENTS_CACHE_KEY)
            if cached is None:
                raise
            return list(cached)

        self._cache.set(COMMENTS_CACHE_KEY, comments)
        return comments
