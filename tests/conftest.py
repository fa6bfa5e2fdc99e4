# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from terceiro_olho.api.hybrid import HybridApi
from terceiro_olho.cli.bootstrap import create_initial_state
from terceiro_olho.core.state import AppState
from terceiro_olho.storage.areas import CacheStorage, PendingCommentStorage, VisitStorage
from terceiro_olho.storage.store import LocalStore

from .fakes import FakeClock, FakeSiteApi


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the services.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="test",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        store_path=tmp_path / "local_store.sqlite3",
        # Switches
        offline_enabled=True,
        console_enabled=False,
        sync_enabled=True,
        # Timers
        max_retries=3,
        retry_delay_seconds=300.0,
        reconnect_delay_seconds=3.0,
        refresh_interval_seconds=0.0,
        sync_poll_seconds=0.01,
        # Views
        cache_ttl_minutes=60,
        page_size=10,
        search_debounce_ms=0,
        default_page="geral",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(tmp_path: Path) -> LocalStore:
    return LocalStore(tmp_path / "store.sqlite3")


@pytest.fixture()
def api() -> FakeSiteApi:
    return FakeSiteApi()


@pytest.fixture()
def hybrid(api: FakeSiteApi, store: LocalStore, clock: FakeClock) -> HybridApi:
    return HybridApi(
        api,
        visits=VisitStorage(store, clock=clock),
        pending=PendingCommentStorage(store, clock=clock),
        cache=CacheStorage(store, clock=clock),
    )


@pytest.fixture()
def state(settings: SimpleNamespace, api: FakeSiteApi) -> AppState:
    """
    AppState wired through the real composition root, with the fake API.

    We keep the real SQLite store here because its correctness is part of what we test.
    """
    return create_initial_state(settings=settings, api=api)  # type: ignore[arg-type]
