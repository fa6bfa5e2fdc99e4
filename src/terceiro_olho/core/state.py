# src/terceiro_olho/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..api.client import SiteApiClient
from ..api.hybrid import HybridApi
from ..comments.feed import CommentFeed
from ..comments.manager import CommentsManager
from ..news import NewsFeed
from ..storage.areas import (
    CacheStorage,
    PendingCommentStorage,
    PreferencesStorage,
    SessionStorage,
    VisitStorage,
    VoteStorage,
)
from ..storage.store import LocalStore
from ..visits import VisitCounter
from ..votes import CoverVoting


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    store: LocalStore
    api: SiteApiClient
    hybrid: HybridApi

    visit_storage: VisitStorage
    preferences: PreferencesStorage
    pending: PendingCommentStorage
    vote_storage: VoteStorage
    cache: CacheStorage
    session: SessionStorage

    comments: CommentsManager
    visits: VisitCounter
    cover_visits: VisitCounter
    voting: CoverVoting
    news: NewsFeed

    feeds: dict[str, CommentFeed] = field(default_factory=dict)

    # Console commands and the sync thread share the services above.
    lock: threading.RLock = field(default_factory=threading.RLock)

    def feed(self, post_id: str) -> CommentFeed:
        """One paginated comment view per post, created on first use."""
        existing = self.feeds.get(post_id)
        if existing is not None:
            return existing
        created = CommentFeed(
            self.api,
            self.store,
            self.preferences,
            post_id=post_id,
            page_size=int(getattr(self.settings, "page_size", 10)),
            debounce_ms=int(getattr(self.settings, "search_debounce_ms", 300)),
        )
        self.feeds[post_id] = created
        return created
