# tests/test_debounce.py

from __future__ import annotations

import threading
import time

from terceiro_olho.debounce import Debouncer


def _wait(event: threading.Event, timeout: float = 2.0) -> bool:
    return event.wait(timeout)


def test_trailing_call_uses_latest_arguments() -> None:
    calls: list[str] = []
    done = threading.Event()

    def save(term: str) -> None:
        calls.append(term)
        done.set()

    d = Debouncer(save, 0.05)
    d("a")
    d("ab")
    d("abc")
    assert d.pending is True

    assert _wait(done)
    assert calls == ["abc"]
    assert d.pending is False


def test_flush_runs_pending_call_now_and_returns_result() -> None:
    d = Debouncer(lambda x: x * 2, 10.0)
    d(21)
    assert d.flush() == 42
    assert d.pending is False
    assert d.flush() is None


def test_cancel_drops_pending_call() -> None:
    calls: list[int] = []
    d = Debouncer(calls.append, 0.02)
    d(1)
    d.cancel()
    time.sleep(0.08)
    assert calls == []


def test_leading_calls_immediately_once_per_burst() -> None:
    calls: list[int] = []
    d = Debouncer(calls.append, 0.05, leading=True, trailing=False)
    d(1)
    d(2)
    d(3)
    assert calls == [1]

    time.sleep(0.15)
    d(4)
    assert calls == [1, 4]


def test_max_wait_forces_a_call_during_a_long_burst() -> None:
    calls: list[int] = []
    d = Debouncer(calls.append, 0.05, max_wait_seconds=0.1)

    end = time.monotonic() + 0.3
    i = 0
    while time.monotonic() < end:
        d(i)
        i += 1
        time.sleep(0.01)

    # the burst never paused for 50ms, only max_wait could have fired
    assert calls
    d.cancel()


def test_errors_in_wrapped_function_are_logged_not_raised(caplog) -> None:
    def boom() -> None:
        raise RuntimeError("nope")

    d = Debouncer(boom, 10.0)
    d()
    assert d.flush() is None
    assert "Debounced call to boom failed" in caplog.text

