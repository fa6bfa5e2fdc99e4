# src/terceiro_olho/comments/feed.py

from __future__ import annotations

import logging
from typing import Any

from ..api.client import ApiError
from ..core.models import Comment, SortOrder, js_round, parse_iso
from ..core.ports import KeyValueStore, SiteApi
from ..debounce import Debouncer
from ..storage.areas import PreferencesStorage
from .validation import ensure_valid_comment

logger = logging.getLogger(__name__)

NEW_DRAFT = "new"


def _sort_key_date(comment: Comment) -> float:
    created = parse_iso(comment.date)
    return created.timestamp() if created else 0.0


def sort_comments(comments: list[Comment], order: SortOrder) -> list[Comment]:
    if order == SortOrder.OLDEST:
        return sorted(comments, key=_sort_key_date)
    if order == SortOrder.POPULAR:
        return sorted(comments, key=lambda c: c.likes, reverse=True)
    return sorted(comments, key=_sort_key_date, reverse=True)


def filter_comments(comments: list[Comment], term: str) -> list[Comment]:
    needle = term.strip().lower()
    if not needle:
        return list(comments)
    return [c for c in comments if needle in c.message.lower() or needle in c.name.lower()]


class CommentFeed:
    """
    Paginated, searchable view of one post's comments.

    Page 1 is mirrored to the local store (comments_<post_id>) and served from there
    when the server cannot be reached. Unsent comment text is kept as a draft.
    """

    def __init__(
        self,
        api: SiteApi,
        store: KeyValueStore,
        preferences: PreferencesStorage,
        *,
        post_id: str,
        page_size: int = 10,
        sort_by: str = "newest",
        debounce_ms: int = 300,
    ) -> None:
        if not post_id:
            raise ValueError("post_id is required")
        self._api = api
        self._store = store
        self._preferences = preferences

        self.post_id = post_id
        self.page_size = max(1, int(page_size))
        self.sort_by = SortOrder.parse(sort_by)

        self.comments: list[Comment] = []
        self.page = 1
        self.has_more = True
        self.total = 0
        self.loading = False
        self.error: str | None = None
        self.from_cache = False
        self.search_term = ""

        self._search = Debouncer(self._apply_search, debounce_ms / 1000.0)

    @property
    def _cache_key(self) -> str:
        return f"comments_{self.post_id}"

    @property
    def _drafts_key(self) -> str:
        return f"draft_comments_{self.post_id}"

    # ---- loading ----

    def _with_likes(self, comments: list[Comment]) -> list[Comment]:
        liked = set(self._preferences.liked_comments())
        for c in comments:
            if c.id in liked:
                c.likes += 1
        return comments

    def load(self, page_num: int = 1, reset: bool = False) -> list[Comment]:
        self.loading = True
        self.error = None
        try:
            raw = self._api.get_comments_by_page(self.post_id)
            everything = self._with_likes([Comment.from_dict(c) for c in raw if isinstance(c, dict)])
            matching = sort_comments(filter_comments(everything, self.search_term), self.sort_by)

            start = (page_num - 1) * self.page_size
            end = start + self.page_size
            chunk = matching[start:end]

            if reset or page_num == 1:
                self.comments = chunk
                self._store.set(self._cache_key, [c.to_dict() for c in chunk])
            else:
                known = {c.id for c in self.comments}
                self.comments = self.comments + [c for c in chunk if c.id not in known]

            self.has_more = end < len(matching)
            self.total = len(matching)
            self.page = page_num
            self.from_cache = False
            return chunk
        except ApiError as e:
            self.error = str(e) or "Unexpected error"
            logger.warning("Failed to load comments for %s: %s", self.post_id, e)
            if page_num == 1:
                cached = self._store.get(self._cache_key, [])
                if cached:
                    self.comments = [Comment.from_dict(c) for c in cached if isinstance(c, dict)]
                    self.from_cache = True
                    logger.info("Comments for %s loaded from the local cache", self.post_id)
            return []
        finally:
            self.loading = False

    def load_more(self) -> list[Comment]:
        if self.loading or not self.has_more:
            return []
        return self.load(self.page + 1)

    def refresh(self) -> list[Comment]:
        return self.load(1, reset=True)

    def _apply_search(self, term: str) -> None:
        self.search_term = term
        self.load(1, reset=True)

    def search(self, term: str) -> None:
        """Debounced: the reload happens once typing stops."""
        self._search(term)

    def flush_search(self) -> None:
        self._search.flush()

    def close(self) -> None:
        self._search.cancel()

    # ---- writing ----

    def create_comment(self, name: str, email: str, message: str) -> Comment | None:
        text = (message or "").strip()
        if not text:
            return None
        payload = {
            "name": name.strip(),
            "email": email.strip(),
            "message": text,
            "page": self.post_id,
        }
        ensure_valid_comment(payload)
        try:
            result = self._api.add_comment(payload)
        except ApiError:
            self.save_draft(NEW_DRAFT, message)
            raise
        comment = Comment.from_dict(result.get("comment") or {})
        self.comments = [comment] + self.comments
        self.clear_draft(NEW_DRAFT)
        return comment

    def toggle_like(self, comment_id: Any) -> bool | None:
        target = next((c for c in self.comments if c.id == comment_id), None)
        if target is None:
            return None

        # Optimistic update, reverted if the like cannot be saved.
        liked_before = comment_id in self._preferences.liked_comments()
        target.likes += -1 if liked_before else 1
        try:
            return self._preferences.toggle_liked_comment(comment_id)
        except OSError:
            target.likes += 1 if liked_before else -1
            self.error = "Could not save like"
            logger.warning("Like on comment %s reverted", comment_id)
            return liked_before

    # ---- drafts ----

    def _drafts(self) -> dict[str, str]:
        drafts = self._store.get(self._drafts_key, {})
        return drafts if isinstance(drafts, dict) else {}

    def save_draft(self, draft_id: Any, content: str) -> None:
        drafts = self._drafts()
        drafts[str(draft_id)] = content
        self._store.set(self._drafts_key, drafts)

    def get_draft(self, draft_id: Any) -> str:
        return str(self._drafts().get(str(draft_id)) or "")

    def clear_draft(self, draft_id: Any) -> None:
        drafts = self._drafts()
        if drafts.pop(str(draft_id), None) is not None:
            self._store.set(self._drafts_key, drafts)

    @property
    def has_unsaved_drafts(self) -> bool:
        return bool(self._drafts())

    # ---- status ----

    @property
    def is_empty(self) -> bool:
        return not self.comments and not self.loading

    def stats(self) -> dict[str, int]:
        total = len(self.comments)
        total_likes = sum(c.likes for c in self.comments)
        return {
            "total": total,
            "total_likes": total_likes,
            "average_likes": js_round(total_likes / total) if total else 0,
        }
