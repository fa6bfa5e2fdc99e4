# src/terceiro_olho/debounce.py

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Delay calls to `func` until they stop coming for `delay_seconds`.

    - leading: also call on the first call of a burst
    - trailing: call with the latest arguments once the burst is over
    - max_wait_seconds: never hold a pending call longer than this

    Calls run on a timer thread; flush() runs a pending call on the caller's thread.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        delay_seconds: float,
        *,
        leading: bool = False,
        trailing: bool = True,
        max_wait_seconds: float | None = None,
    ) -> None:
        self._func = func
        self._delay = max(0.0, float(delay_seconds))
        self._leading = leading
        self._trailing = trailing
        self._max_wait = max_wait_seconds

        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._max_timer: threading.Timer | None = None
        self._args: tuple[Any, ...] = ()
        self._kwargs: dict[str, Any] = {}
        self._has_pending = False
        self._in_burst = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._has_pending

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        call_now = False
        with self._lock:
            self._args, self._kwargs = args, kwargs
            self._cancel_timer()

            if self._leading and not self._in_burst:
                call_now = True
            elif self._trailing:
                self._has_pending = True
            self._in_burst = True

            self._timer = threading.Timer(self._delay, self._on_timer)
            self._timer.daemon = True
            self._timer.start()

            if self._max_wait is not None and self._max_timer is None:
                self._max_timer = threading.Timer(self._max_wait, self._on_timer)
                self._max_timer.daemon = True
                self._max_timer.start()

        if call_now:
            self._invoke(args, kwargs)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _cancel_all(self) -> None:
        self._cancel_timer()
        if self._max_timer is not None:
            self._max_timer.cancel()
            self._max_timer = None

    def _take_pending(self) -> tuple[tuple[Any, ...], dict[str, Any]] | None:
        with self._lock:
            self._cancel_all()
            self._in_burst = False
            if not self._has_pending:
                return None
            self._has_pending = False
            return self._args, self._kwargs

    def _on_timer(self) -> None:
        call = self._take_pending()
        if call is not None:
            self._invoke(*call)

    def _invoke(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        try:
            return self._func(*args, **kwargs)
        except Exception:
            logger.exception("Debounced call to %s failed", getattr(self._func, "__name__", self._func))
            return None

    def cancel(self) -> None:
        with self._lock:
            self._cancel_all()
            self._has_pending = False
            self._in_burst = False

    def flush(self) -> Any:
        """Run the pending call now (if any) and return its result."""
        call = self._take_pending()
        if call is None:
            return None
        return self._invoke(*call)

