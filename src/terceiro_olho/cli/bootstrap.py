# src/terceiro_olho/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- wires the HTTP client, the local store and the services into AppState.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..api.client import SiteApiClient
from ..api.hybrid import HybridApi
from ..comments.manager import CommentsManager
from ..config import get_settings
from ..core.state import AppState
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

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
    Path(settings.store_path).parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, api: SiteApiClient | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the HTTP client) injectable makes the app easier to test.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = LocalStore(settings.store_path)
    if api is None:
        api = SiteApiClient.from_settings(settings)

    visit_storage = VisitStorage(store)
    preferences = PreferencesStorage(store)
    pending = PendingCommentStorage(store)
    vote_storage = VoteStorage(store)
    cache = CacheStorage(store)
    session = SessionStorage(store)

    hybrid = HybridApi(api, visits=visit_storage, pending=pending, cache=cache)

    comments = CommentsManager(
        hybrid,
        pending,
        session=session,
        enable_offline=bool(settings.offline_enabled),
        max_retries=int(settings.max_retries),
        retry_delay_seconds=float(settings.retry_delay_seconds),
        reconnect_delay_seconds=float(settings.reconnect_delay_seconds),
    )

    state = AppState(
        settings=settings,
        store=store,
        api=api,
        hybrid=hybrid,
        visit_storage=visit_storage,
        preferences=preferences,
        pending=pending,
        vote_storage=vote_storage,
        cache=cache,
        session=session,
        comments=comments,
        visits=VisitCounter(hybrid, visit_storage, session=session, page="total"),
        cover_visits=VisitCounter(hybrid, visit_storage, session=session, page="cover"),
        voting=CoverVoting(api, vote_storage, cache),
        news=NewsFeed(api, cache, preferences, cache_ttl_minutes=settings.cache_ttl_minutes),
    )
    logger.info(
        "State ready api=%s store=%s pending=%d",
        api.base_url,
        store.path,
        len(comments.pending_comments),
    )
    return state
