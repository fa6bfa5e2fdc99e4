# src/terceiro_olho/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the pending comment sync loop in a background thread (optional),
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import contextlib
import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..comments.sync import SyncBackgroundRunner, start_sync_in_background
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _startup(state: AppState) -> None:
    """Open a reading session, load counters and comments, count this visit."""
    state.session.start()
    state.session.record_page_visit("/")

    online = state.comments.check_connectivity()
    logger.info("Server %s", "reachable" if online else "unreachable, working offline")

    state.visits.fetch_visits()
    state.comments.fetch_comments()

    if state.preferences.get_value("auto_increment", True):
        state.visits.increment_visit()


def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    for feed in state.feeds.values():
        with contextlib.suppress(Exception):
            feed.close()

    try:
        state.session.end()
    except Exception:
        logger.exception("Failed to close the reading session.")

    # LocalStore uses short-lived sqlite connections per call; no explicit close required.
    try:
        state.api.close()
    except Exception:
        logger.debug("HTTP client close failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/terceiro_olho")
    setup_logging(log_dir=log_dir, console_level=console_level)

    # keep noisy libs readable
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.info("Starting %s...", getattr(settings, "app_name", "terceiro-olho"))

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)
    _startup(state)

    sync_runner: SyncBackgroundRunner | None = start_sync_in_background(state)

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError):
        # Not on the main thread, or the platform lacks SIGTERM.
        logger.debug("Signal handlers not installed.", exc_info=True)

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running the sync loop only. Press Ctrl+C to stop.")
            stop_main.wait()

    finally:
        if sync_runner is not None:
            sync_runner.stop()
            sync_runner.join(timeout=10.0)

        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
