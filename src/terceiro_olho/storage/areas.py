# src/terceiro_olho/storage/areas.py

"""
Typed views over the local store.

Each class owns one or a few keys and keeps the same JSON layout across runs:
- visits            local mirror of the visit counters
- preferences       reader preferences (theme, read/favorite news, liked comments)
- pending_comments  comments waiting to reach the server
- has_voted / user_vote
- cache_<key>       TTL cache entries
- current_session / session_history
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections.abc import Callable
from typing import Any

from ..core.models import iso_now, parse_iso
from ..core.ports import KeyValueStore

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

VISITS_KEY = "visits"
PREFERENCES_KEY = "preferences"
PENDING_COMMENTS_KEY = "pending_comments"
HAS_VOTED_KEY = "has_voted"
USER_VOTE_KEY = "user_vote"
CACHE_PREFIX = "cache_"
CURRENT_SESSION_KEY = "current_session"
SESSION_HISTORY_KEY = "session_history"

MAX_VISIT_SESSIONS = 100
MAX_SESSION_HISTORY = 50

# Console and sync threads both rewrite the whole pending list.
_PENDING_LOCK = threading.RLock()
SESSION_MAX_AGE_DAYS = 30


def local_comment_id(clock: Clock = time.time) -> str:
    return f"local_{int(clock() * 1000)}_{secrets.token_hex(3)}"


class VisitStorage:
    def __init__(self, store: KeyValueStore, *, clock: Clock = time.time) -> None:
        self._store = store
        self._clock = clock

    def get(self) -> dict[str, Any]:
        visits = self._store.get(VISITS_KEY, None)
        if not isinstance(visits, dict):
            visits = {}
        visits.setdefault("total", 0)
        visits.setdefault("cover_page", 0)
        visits.setdefault("last_visit", None)
        visits.setdefault("sessions", [])
        return visits

    def increment(self, page: str = "total") -> dict[str, Any]:
        visits = self.get()
        now = iso_now(self._clock())

        if page == "total":
            visits["total"] = int(visits["total"]) + 1
        elif page == "cover":
            visits["cover_page"] = int(visits["cover_page"]) + 1

        visits["last_visit"] = now
        sessions = list(visits.get("sessions") or [])
        sessions.append({"page": page, "timestamp": now})
        visits["sessions"] = sessions[-MAX_VISIT_SESSIONS:]

        self._store.set(VISITS_KEY, visits)
        return visits

    def sync(self, server_data: dict[str, Any]) -> bool:
        """Server counters win; locally recorded sessions are kept."""
        local = self.get()
        merged = dict(server_data)
        if "coverPage" in merged and "cover_page" not in merged:
            merged["cover_page"] = merged.pop("coverPage")
        merged["sessions"] = local.get("sessions", [])
        merged.setdefault("last_visit", local.get("last_visit"))
        return self._store.set(VISITS_KEY, merged)


_DEFAULT_PREFERENCES: dict[str, Any] = {
    "theme": "dark",
    "notifications": True,
    "auto_increment": True,
    "language": "pt-BR",
    "last_page": "/",
    "favorite_news": [],
    "read_news": [],
    "liked_comments": [],
}


class PreferencesStorage:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def get(self) -> dict[str, Any]:
        prefs = self._store.get(PREFERENCES_KEY, None)
        out = {k: (list(v) if isinstance(v, list) else v) for k, v in _DEFAULT_PREFERENCES.items()}
        if isinstance(prefs, dict):
            out.update(prefs)
        return out

    def set(self, key: str, value: Any) -> bool:
        prefs = self.get()
        prefs[key] = value
        return self._store.set(PREFERENCES_KEY, prefs)

    def get_value(self, key: str, default: Any = None) -> Any:
        prefs = self.get()
        value = prefs.get(key)
        return default if value is None else value

    def mark_news_as_read(self, news_id: Any) -> bool:
        prefs = self.get()
        read = list(prefs.get("read_news") or [])
        if news_id in read:
            return True
        read.append(news_id)
        prefs["read_news"] = read
        return self._store.set(PREFERENCES_KEY, prefs)

    def toggle_favorite(self, news_id: Any) -> bool:
        prefs = self.get()
        favorites = list(prefs.get("favorite_news") or [])
        if news_id in favorites:
            favorites.remove(news_id)
        else:
            favorites.append(news_id)
        prefs["favorite_news"] = favorites
        return self._store.set(PREFERENCES_KEY, prefs)

    def toggle_liked_comment(self, comment_id: Any) -> bool:
        """Flip the like on a comment; returns the new liked state. Raises OSError if not saved."""
        prefs = self.get()
        liked = list(prefs.get("liked_comments") or [])
        now_liked = comment_id not in liked
        if now_liked:
            liked.append(comment_id)
        else:
            liked.remove(comment_id)
        prefs["liked_comments"] = liked
        if not self._store.set(PREFERENCES_KEY, prefs):
            raise OSError("could not persist comment like")
        return now_liked

    def liked_comments(self) -> list[Any]:
        return list(self.get().get("liked_comments") or [])


class PendingCommentStorage:
    """Queue of comments that failed to reach the server."""

    def __init__(self, store: KeyValueStore, *, clock: Clock = time.time) -> None:
        self._store = store
        self._clock = clock

    def get_pending(self) -> list[dict[str, Any]]:
        pending = self._store.get(PENDING_COMMENTS_KEY, [])
        if not isinstance(pending, list):
            return []
        return [c for c in pending if isinstance(c, dict)]

    def add_pending(self, comment: dict[str, Any]) -> dict[str, Any]:
        entry = {
            **comment,
            "id": local_comment_id(self._clock),
            "date": comment.get("date") or iso_now(self._clock()),
            "pending": True,
            "attempts": 0,
        }
        with _PENDING_LOCK:
            pending = self.get_pending()
            pending.append(entry)
            saved = self._store.set(PENDING_COMMENTS_KEY, pending)
        if not saved:
            logger.error("Pending comment %s could not be persisted", entry["id"])
        return entry

    def remove_pending(self, comment_id: Any) -> bool:
        with _PENDING_LOCK:
            pending = self.get_pending()
            remaining = [c for c in pending if c.get("id") != comment_id]
            if len(remaining) == len(pending):
                return False
            return self._store.set(PENDING_COMMENTS_KEY, remaining)

    def increment_attempts(self, comment_id: Any) -> bool:
        with _PENDING_LOCK:
            pending = self.get_pending()
            for comment in pending:
                if comment.get("id") == comment_id:
                    comment["attempts"] = int(comment.get("attempts") or 0) + 1
                    comment["last_attempt"] = iso_now(self._clock())
                    return self._store.set(PENDING_COMMENTS_KEY, pending)
            return False

    def count(self) -> int:
        return len(self.get_pending())


class VoteStorage:
    def __init__(self, store: KeyValueStore, *, clock: Clock = time.time) -> None:
        self._store = store
        self._clock = clock

    def has_voted(self) -> bool:
        return bool(self._store.get(HAS_VOTED_KEY, False))

    def record_vote(self, cover_id: str) -> bool:
        vote = {"cover_id": cover_id, "timestamp": iso_now(self._clock()), "ip": "local"}
        self._store.set(USER_VOTE_KEY, vote)
        return self._store.set(HAS_VOTED_KEY, True)

    def get_user_vote(self) -> dict[str, Any] | None:
        vote = self._store.get(USER_VOTE_KEY, None)
        return vote if isinstance(vote, dict) else None

    def clear_vote(self) -> bool:
        self._store.remove(HAS_VOTED_KEY)
        self._store.remove(USER_VOTE_KEY)
        return True


class CacheStorage:
    """TTL cache entries under cache_<key>: {data, timestamp (ms), ttl (ms)}."""

    def __init__(self, store: KeyValueStore, *, clock: Clock = time.time) -> None:
        self._store = store
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def set(self, key: str, data: Any, ttl_minutes: float = 60) -> bool:
        entry = {"data": data, "timestamp": self._now_ms(), "ttl": int(ttl_minutes * 60 * 1000)}
        return self._store.set(f"{CACHE_PREFIX}{key}", entry)

    def _expired(self, entry: dict[str, Any]) -> bool:
        try:
            return self._now_ms() - int(entry["timestamp"]) > int(entry["ttl"])
        except (KeyError, TypeError, ValueError):
            return True

    def get(self, key: str) -> Any:
        full_key = f"{CACHE_PREFIX}{key}"
        entry = self._store.get(full_key, None)
        if not isinstance(entry, dict):
            return None
        if self._expired(entry):
            self._store.remove(full_key)
            return None
        return entry.get("data")

    def get_stale(self, key: str) -> Any:
        """Last cached value regardless of age (offline fallback)."""
        entry = self._store.get(f"{CACHE_PREFIX}{key}", None)
        return entry.get("data") if isinstance(entry, dict) else None

    def expire(self, key: str) -> bool:
        """Mark an entry stale; get() misses, get_stale() still answers."""
        full_key = f"{CACHE_PREFIX}{key}"
        entry = self._store.get(full_key, None)
        if not isinstance(entry, dict):
            return False
        entry["ttl"] = -1
        return self._store.set(full_key, entry)

    def cleanup(self) -> int:
        removed = 0
        for full_key in self._store.keys(CACHE_PREFIX):
            entry = self._store.get(full_key, None)
            if not isinstance(entry, dict) or self._expired(entry):
                self._store.remove(full_key)
                removed += 1
        return removed


class SessionStorage:
    """Reading session log: pages visited and actions taken."""

    def __init__(self, store: KeyValueStore, *, clock: Clock = time.time) -> None:
        self._store = store
        self._clock = clock

    def start(self) -> dict[str, Any]:
        now = self._clock()
        session = {
            "id": f"session_{int(now * 1000)}",
            "start_time": iso_now(now),
            "pages": [],
            "actions": [],
        }
        self._store.set(CURRENT_SESSION_KEY, session)
        return session

    def get_current(self) -> dict[str, Any] | None:
        session = self._store.get(CURRENT_SESSION_KEY, None)
        return session if isinstance(session, dict) else None

    def record_page_visit(self, page: str) -> bool:
        session = self.get_current()
        if session is None:
            return False
        session.setdefault("pages", []).append({"page": page, "timestamp": iso_now(self._clock())})
        return self._store.set(CURRENT_SESSION_KEY, session)

    def record_action(self, action: str, data: dict[str, Any] | None = None) -> bool:
        session = self.get_current()
        if session is None:
            return False
        session.setdefault("actions", []).append(
            {"action": action, "data": data or {}, "timestamp": iso_now(self._clock())}
        )
        return self._store.set(CURRENT_SESSION_KEY, session)

    def end(self) -> bool:
        session = self.get_current()
        if session is None:
            return False
        now = self._clock()
        session["end_time"] = iso_now(now)
        started = parse_iso(session.get("start_time"))
        session["duration"] = int(now * 1000 - started.timestamp() * 1000) if started else 0

        history = self.history()
        history.append(session)
        self._store.set(SESSION_HISTORY_KEY, history[-MAX_SESSION_HISTORY:])
        self._store.remove(CURRENT_SESSION_KEY)
        return True

    def history(self) -> list[dict[str, Any]]:
        history = self._store.get(SESSION_HISTORY_KEY, [])
        return [s for s in history if isinstance(s, dict)] if isinstance(history, list) else []


def cleanup_storage(store: KeyValueStore, *, clock: Clock = time.time) -> dict[str, int]:
    """Drop expired cache entries and sessions older than 30 days."""
    logger.info("Cleaning up the local store...")
    cache_removed = CacheStorage(store, clock=clock).cleanup()

    sessions = SessionStorage(store, clock=clock)
    history = sessions.history()
    cutoff = clock() - SESSION_MAX_AGE_DAYS * 24 * 60 * 60
    recent = []
    for session in history:
        started = parse_iso(session.get("start_time"))
        if started is not None and started.timestamp() > cutoff:
            recent.append(session)

    sessions_removed = len(history) - len(recent)
    if sessions_removed:
        store.set(SESSION_HISTORY_KEY, recent)
        logger.info("Removed %d old sessions", sessions_removed)

    logger.info("Cleanup done (cache=%d sessions=%d)", cache_removed, sessions_removed)
    return {"cache_removed": cache_removed, "sessions_removed": sessions_removed}
