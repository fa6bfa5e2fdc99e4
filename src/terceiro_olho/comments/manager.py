# src/terceiro_olho/comments/manager.py

from __future__ import annotations

"""
Comment state with offline support.

The manager keeps the list of published comments plus the queue of pending comments
(comments that could not reach the server). Pending comments are retried in rounds:
- a round is due `retry_delay_seconds` after a round that left comments behind
  (fixed delay, not exponential), or `reconnect_delay_seconds` after going back online
- a comment is tried at most `max_retries` times, then stays queued until discarded
- only one round runs at a time (non-blocking guard)

Rounds are triggered by comments/sync.py or explicitly (e.g. /retry in the console).
"""

import logging
import secrets
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from ..api.client import ApiError
from ..api.hybrid import HybridApi
from ..core.models import Comment, iso_now, js_round
from ..storage.areas import PendingCommentStorage, SessionStorage
from .validation import is_duplicate_comment, validate_comment

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AddCommentResult:
    success: bool
    message: str
    comment: Comment | None = None
    pending: bool = False


@dataclass(slots=True, frozen=True)
class RetryReport:
    successful: int = 0
    failed: int = 0
    remaining: int = 0


@dataclass(slots=True, frozen=True)
class CommentStats:
    total: int
    approved: int
    pending: int
    today: int
    this_week: int
    this_month: int
    last_7_days: dict[str, int] = field(default_factory=dict)
    avg_per_day: int = 0
    approval_rate: int = 0


class CommentsManager:
    def __init__(
        self,
        hybrid: HybridApi,
        pending_storage: PendingCommentStorage,
        *,
        session: SessionStorage | None = None,
        enable_offline: bool = True,
        max_retries: int = 3,
        retry_delay_seconds: float = 300.0,
        reconnect_delay_seconds: float = 3.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._hybrid = hybrid
        self._pending_storage = pending_storage
        self._session = session
        self._clock = clock

        self.enable_offline = enable_offline
        self.max_retries = max(0, int(max_retries))
        self.retry_delay_seconds = float(retry_delay_seconds)
        self.reconnect_delay_seconds = float(reconnect_delay_seconds)

        self.comments: list[Comment] = []
        self.pending_comments: list[dict[str, Any]] = []
        self.is_online = True
        self.is_loading = False
        self.is_submitting = False
        self.error: str | None = None
        self.next_retry_at: float | None = None

        self._lock = threading.RLock()
        self._retry_guard = threading.Lock()

        if self.enable_offline:
            self.pending_comments = self._pending_storage.get_pending()

    # ---- helpers ----

    def _record(self, action: str, data: dict[str, Any]) -> None:
        if self._session is not None:
            self._session.record_action(action, data)

    def _prepend(self, published: list[Comment]) -> None:
        with self._lock:
            known = {c.id for c in self.comments}
            fresh = [c for c in published if c.id not in known]
            self.comments = fresh + self.comments

    def _queue(self, payload: dict[str, Any]) -> dict[str, Any]:
        entry = self._pending_storage.add_pending(payload)
        with self._lock:
            self.pending_comments = self._pending_storage.get_pending()
            if self.is_online and self.next_retry_at is None:
                self.next_retry_at = self._clock() + self.retry_delay_seconds
        return entry

    # ---- loading ----

    def fetch_comments(self) -> list[Comment]:
        self.is_loading = True
        self.error = None
        try:
            raw = self._hybrid.get_comments()
            comments = [Comment.from_dict(c) for c in raw if isinstance(c, dict)]
            with self._lock:
                self.comments = comments
            self._record("comments_fetch", {"count": len(comments)})
            return comments
        except ApiError as e:
            logger.error("Failed to fetch comments: %s", e)
            self.error = str(e) or "Failed to load comments"
            return []
        finally:
            self.is_loading = False

    # ---- submit ----

    def add_comment(self, data: dict[str, Any]) -> AddCommentResult:
        self.is_submitting = True
        self.error = None
        try:
            errors = validate_comment(data)
            if errors:
                return self._fail(", ".join(errors))

            now = self._clock()
            with self._lock:
                seen = [c.to_dict() for c in self.comments] + list(self.pending_comments)
            if is_duplicate_comment(data, seen, now=now):
                return self._fail("A similar comment was sent recently")

            comment = Comment(
                id=f"temp_{int(now * 1000)}_{secrets.token_hex(4)}",
                name=str(data.get("name", "")).strip(),
                email=str(data.get("email", "")).strip(),
                message=str(data.get("message", "")).strip(),
                page=str(data.get("page") or "geral"),
                date=iso_now(now),
                approved=False,
                attempts=0,
            )

            if not self.is_online:
                if not self.enable_offline:
                    return self._fail("No internet connection")
                entry = self._queue(comment.submission())
                return AddCommentResult(
                    success=True,
                    message="Comment saved offline. It will be sent once you are connected.",
                    comment=Comment.from_dict(entry),
                    pending=True,
                )

            try:
                result = self._hybrid.api.add_comment(comment.submission())
            except ApiError as e:
                if not (self.enable_offline and e.retryable):
                    return self._fail(str(e))
                logger.warning("Comment not delivered, queued for retry: %s", e)
                entry = self._queue(comment.submission())
                return AddCommentResult(
                    success=True,
                    message="Comment saved. It will be sent when the connection is restored.",
                    comment=Comment.from_dict(entry),
                    pending=True,
                )

            published = Comment.from_dict(result.get("comment") or {})
            if published.approved:
                self._prepend([published])
            self._record("comment_add", {"success": True, "approved": published.approved})
            message = (
                "Comment added successfully!"
                if published.approved
                else "Comment sent and awaiting approval."
            )
            return AddCommentResult(success=True, message=message, comment=published)
        finally:
            self.is_submitting = False

    def _fail(self, message: str) -> AddCommentResult:
        logger.info("Comment not added: %s", message)
        self.error = message
        self._record("comment_add", {"success": False, "error": message})
        return AddCommentResult(success=False, message=message)

    # ---- pending queue ----

    def retry_pending_comments(self) -> RetryReport:
        if not self.is_online:
            return RetryReport()

        # A round already running (e.g. timer vs. /retry) -> skip this one.
        if not self._retry_guard.acquire(blocking=False):
            return RetryReport()

        try:
            current = self._pending_storage.get_pending()
            if not current:
                with self._lock:
                    self.pending_comments = []
                    self.next_retry_at = None
                return RetryReport()

            logger.info("Retrying %d pending comments...", len(current))
            published: list[Comment] = []
            failed = 0

            for entry in current:
                comment_id = entry.get("id")
                if int(entry.get("attempts") or 0) >= self.max_retries:
                    logger.warning("Comment %s exceeded max retries", comment_id)
                    failed += 1
                    continue

                self._pending_storage.increment_attempts(comment_id)
                try:
                    result = self._hybrid.api.add_comment(Comment.from_dict(entry).submission())
                except ApiError as e:
                    if not e.retryable:
                        logger.warning("Server rejected comment %s, dropping it: %s", comment_id, e)
                        self._pending_storage.remove_pending(comment_id)
                    else:
                        logger.error("Failed to resend comment %s: %s", comment_id, e)
                    failed += 1
                    continue

                self._pending_storage.remove_pending(comment_id)
                published.append(Comment.from_dict(result.get("comment") or {}))
                logger.info("Comment %s delivered", comment_id)

            self._prepend([c for c in published if c.approved])

            remaining = self._pending_storage.get_pending()
            with self._lock:
                self.pending_comments = remaining
                self.next_retry_at = self._clock() + self.retry_delay_seconds if remaining else None

            return RetryReport(successful=len(published), failed=failed, remaining=len(remaining))
        finally:
            self._retry_guard.release()

    def retry_due(self, now: float | None = None) -> bool:
        if not self.is_online or self.next_retry_at is None:
            return False
        now_ts = self._clock() if now is None else now
        return self.next_retry_at <= now_ts

    def set_online(self, online: bool) -> None:
        with self._lock:
            was_online = self.is_online
            self.is_online = bool(online)
            if self.is_online and not was_online:
                if self._pending_storage.count() > 0:
                    self.next_retry_at = self._clock() + self.reconnect_delay_seconds
            elif not self.is_online:
                self.next_retry_at = None
        if was_online != self.is_online:
            logger.info("Connectivity changed: %s", "online" if self.is_online else "offline")

    def check_connectivity(self) -> bool:
        online = self._hybrid.api.is_online()
        self.set_online(online)
        return online

    def discard_pending(self, comment_id: Any) -> bool:
        removed = self._pending_storage.remove_pending(comment_id)
        with self._lock:
            self.pending_comments = self._pending_storage.get_pending()
            if not self.pending_comments:
                self.next_retry_at = None
        return removed

    # ---- stats ----

    def get_stats(self) -> CommentStats:
        with self._lock:
            comments = list(self.comments)
            pending = len(self.pending_comments)

        today = datetime.fromtimestamp(self._clock()).date()
        per_day: dict[date, int] = {}
        for c in comments:
            created = c.created_at
            if created is None:
                continue
            day = created.astimezone().date()
            per_day[day] = per_day.get(day, 0) + 1

        def count_since(days: int) -> int:
            start = today - timedelta(days=days - 1)
            return sum(n for d, n in per_day.items() if start <= d <= today)

        last_7_days = {}
        for i in range(6, -1, -1):
            day = today - timedelta(days=i)
            last_7_days[day.isoformat()] = per_day.get(day, 0)

        total = len(comments)
        approved = sum(1 for c in comments if c.approved)
        return CommentStats(
            total=total,
            approved=approved,
            pending=pending,
            today=per_day.get(today, 0),
            this_week=count_since(7),
            this_month=count_since(30),
            last_7_days=last_7_days,
            avg_per_day=js_round(total / 7),
            approval_rate=js_round(approved / total * 100) if total else 0,
        )

    def total_count(self) -> int:
        with self._lock:
            return len(self.comments) + len(self.pending_comments)

    def clear_error(self) -> None:
        self.error = None
