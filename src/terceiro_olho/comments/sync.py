# src/terceiro_olho/comments/sync.py

from __future__ import annotations

"""
Pending comment sync loop.

A small polling loop that:
- runs a retry round whenever the manager says one is due,
- optionally refreshes the published comments while online.

The manager owns the timing decisions (retry delay, reconnect delay); this loop only
wakes up every poll_seconds to ask. To stop it, cancel the coroutine/task.
"""

import asyncio
import contextlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .manager import CommentsManager

if TYPE_CHECKING:
    from ..core.state import AppState

logger = logging.getLogger(__name__)


async def run_pending_sync(
        manager: CommentsManager,
        *,
        poll_seconds: float = 1.0,
        refresh_interval_seconds: float = 0.0,
) -> None:
    sleep_s = max(0.01, float(poll_seconds))
    refresh_s = max(0.0, float(refresh_interval_seconds))
    last_refresh = time.monotonic()

    while True:
        try:
            if manager.retry_due():
                report = manager.retry_pending_comments()
                logger.info(
                    "Retry round: sent=%s failed=%s remaining=%s",
                    report.successful,
                    report.failed,
                    report.remaining,
                )
        except Exception:
            logger.exception("retry_pending_comments failed")

        if refresh_s > 0 and manager.is_online and time.monotonic() - last_refresh >= refresh_s:
            last_refresh = time.monotonic()
            try:
                manager.fetch_comments()
            except Exception:
                logger.exception("fetch_comments failed")

        await asyncio.sleep(sleep_s)


@dataclass
class SyncBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    task: asyncio.Task

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.task.cancel)
        except Exception:
            logger.debug("Failed to signal sync stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_sync_in_background(state: AppState) -> SyncBackgroundRunner | None:
    """
    Run the pending comment loop in a background thread.

    The console REPL blocks on input(), so the loop gets its own thread and event loop.
    """
    settings = state.settings
    if not getattr(settings, "sync_enabled", True):
        logger.info("Pending comment sync disabled, not starting.")
        return None

    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        task = loop.create_task(
            run_pending_sync(
                state.comments,
                poll_seconds=float(getattr(settings, "sync_poll_seconds", 1.0)),
                refresh_interval_seconds=float(getattr(settings, "refresh_interval_seconds", 0.0)),
            )
        )
        holder["loop"] = loop
        holder["task"] = task
        ready.set()

        try:
            with contextlib.suppress(asyncio.CancelledError):
                loop.run_until_complete(task)
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="pending-sync", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    task = holder.get("task")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(task, asyncio.Task):
        logger.error("Sync thread did not initialize properly.")
        return None

    logger.info("Pending comment sync started.")
    return SyncBackgroundRunner(thread=t, loop=loop, task=task)
