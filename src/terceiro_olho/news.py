# src/terceiro_olho/news.py

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse

from .api.client import ApiError
from .core.models import NewsItem, parse_iso
from .core.ports import SiteApi
from .storage.areas import CacheStorage, PreferencesStorage

logger = logging.getLogger(__name__)

NEWS_CACHE_KEY = "news"


def _is_http_url(raw: str) -> bool:
    parsed = urlparse(raw)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _newest_first(items: list[NewsItem]) -> list[NewsItem]:
    def key(item: NewsItem) -> float:
        created = parse_iso(item.date)
        return created.timestamp() if created else 0.0

    return sorted(items, key=key, reverse=True)


class NewsFeed:
    def __init__(
        self,
        api: SiteApi,
        cache: CacheStorage,
        preferences: PreferencesStorage,
        *,
        cache_ttl_minutes: float = 60,
    ) -> None:
        self._api = api
        self._cache = cache
        self._preferences = preferences
        self.cache_ttl_minutes = cache_ttl_minutes
        self.from_cache = False

    def get_all(self) -> list[NewsItem]:
        """Newest first. Served from the TTL cache when fresh, or from a stale copy when offline."""
        # get() drops an expired entry, so keep the stale copy for the offline path first.
        stale = self._cache.get_stale(NEWS_CACHE_KEY)
        cached = self._cache.get(NEWS_CACHE_KEY)
        if isinstance(cached, list):
            self.from_cache = True
            return _newest_first([NewsItem.from_dict(n) for n in cached if isinstance(n, dict)])

        try:
            raw = self._api.get_news()
        except ApiError as e:
            if not isinstance(stale, list):
                raise
            logger.warning("API offline, using cached news: %s", e)
            self.from_cache = True
            return _newest_first([NewsItem.from_dict(n) for n in stale if isinstance(n, dict)])

        items = _newest_first([NewsItem.from_dict(n) for n in raw if isinstance(n, dict)])
        self._cache.set(NEWS_CACHE_KEY, [n.to_dict() for n in items], self.cache_ttl_minutes)
        self.from_cache = False
        return items

    def get_featured(self) -> list[NewsItem]:
        return [n for n in self.get_all() if n.featured]

    def by_category(self, category: str) -> list[NewsItem]:
        wanted = category.strip().lower()
        return [n for n in self.get_all() if n.category.lower() == wanted]

    def add(self, data: dict[str, Any]) -> NewsItem:
        title = str(data.get("title") or "").strip()
        content = str(data.get("content") or "").strip()
        if not title or not content:
            raise ValueError("Title and content are required")
        image = str(data.get("image") or "").strip()
        if image and not _is_http_url(image):
            raise ValueError("Invalid image URL")

        payload: dict[str, Any] = {
            "title": title,
            "content": content,
            "category": str(data.get("category") or "").strip() or "Geral",
            "author": str(data.get("author") or "").strip() or "Administrador",
            "featured": bool(data.get("featured", False)),
        }
        if image:
            payload["image"] = image

        result = self._api.add_news(payload)
        item = NewsItem.from_dict(result.get("news") or {})

        # The list changed on the server; next read goes there.
        self._cache.expire(NEWS_CACHE_KEY)
        logger.info("News %s published", item.id)
        return item

    def mark_read(self, news_id: Any) -> bool:
        return self._preferences.mark_news_as_read(news_id)

    def toggle_favorite(self, news_id: Any) -> bool:
        return self._preferences.toggle_favorite(news_id)

    def unread(self, items: list[NewsItem]) -> list[NewsItem]:
        read = set(self._preferences.get_value("read_news", []))
        return [n for n in items if n.id not in read]
