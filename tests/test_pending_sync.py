# tests/test_pending_sync.py

from __future__ import annotations

import asyncio
import time
from types import SimpleNamespace

import pytest

from terceiro_olho.comments.manager import CommentsManager, RetryReport
from terceiro_olho.comments.sync import run_pending_sync, start_sync_in_background
from terceiro_olho.storage.areas import PendingCommentStorage

from .fakes import FakeSiteApi

COMMENT = {"name": "Ana", "email": "ana@example.com", "message": "Gostei muito do capítulo!"}


class FakeManager:
    """
    Minimal stand-in for CommentsManager: counts calls, can be told to blow up.
    """

    def __init__(self, *, due: bool = True, fail: bool = False) -> None:
        self.due = due
        self.fail = fail
        self.is_online = True
        self.retries = 0
        self.fetches = 0

    def retry_due(self) -> bool:
        return self.due

    def retry_pending_comments(self) -> RetryReport:
        self.retries += 1
        if self.fail:
            raise RuntimeError("boom")
        self.due = False
        return RetryReport(successful=1)

    def fetch_comments(self):
        self.fetches += 1
        return []


@pytest.mark.asyncio
async def test_sync_runs_due_retry_once() -> None:
    manager = FakeManager()
    runner = asyncio.create_task(run_pending_sync(manager, poll_seconds=0.01))  # type: ignore[arg-type]

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert manager.retries == 1


@pytest.mark.asyncio
async def test_sync_survives_handler_errors() -> None:
    manager = FakeManager(fail=True)
    runner = asyncio.create_task(run_pending_sync(manager, poll_seconds=0.01))  # type: ignore[arg-type]

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert manager.retries >= 2


@pytest.mark.asyncio
async def test_sync_refreshes_only_while_online() -> None:
    manager = FakeManager(due=False)
    manager.is_online = False
    runner = asyncio.create_task(
        run_pending_sync(manager, poll_seconds=0.01, refresh_interval_seconds=0.01)  # type: ignore[arg-type]
    )

    await asyncio.sleep(0.05)
    assert manager.fetches == 0
    manager.is_online = True
    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert manager.fetches >= 1


@pytest.mark.asyncio
async def test_sync_delivers_pending_comments_with_real_manager(hybrid, api: FakeSiteApi, store) -> None:
    pending = PendingCommentStorage(store)
    manager = CommentsManager(hybrid, pending, reconnect_delay_seconds=0.0)
    manager.set_online(False)
    manager.add_comment(COMMENT)
    manager.set_online(True)

    runner = asyncio.create_task(run_pending_sync(manager, poll_seconds=0.01))
    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert pending.count() == 0
    assert len(api.calls_to("add_comment")) == 1


def test_background_runner_starts_and_stops() -> None:
    manager = FakeManager()
    state = SimpleNamespace(
        settings=SimpleNamespace(sync_enabled=True, sync_poll_seconds=0.01, refresh_interval_seconds=0.0),
        comments=manager,
    )

    runner = start_sync_in_background(state)  # type: ignore[arg-type]
    assert runner is not None

    deadline = time.monotonic() + 2
    while manager.retries == 0 and time.monotonic() < deadline:
        time.sleep(0.01)

    runner.stop()
    runner.join(timeout=2)
    assert not runner.thread.is_alive()
    assert manager.retries == 1


def test_background_runner_disabled() -> None:
    state = SimpleNamespace(settings=SimpleNamespace(sync_enabled=False), comments=FakeManager())
    assert start_sync_in_background(state) is None  # type: ignore[arg-type]
