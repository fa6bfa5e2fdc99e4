# src/terceiro_olho/comments/validation.py

from __future__ import annotations

import re
import time
from collections.abc import Iterable
from typing import Any

from ..core.models import parse_iso

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

MIN_NAME_LENGTH = 2
MIN_MESSAGE_LENGTH = 10
MAX_MESSAGE_LENGTH = 1000
FORBIDDEN_WORDS: tuple[str, ...] = ("spam", "fuck", "shit")

DUPLICATE_WINDOW_SECONDS = 5 * 60


class CommentValidationError(ValueError):
    def __init__(self, errors: list[str]) -> None:
        super().__init__(", ".join(errors))
        self.errors = errors


def validate_comment(data: dict[str, Any]) -> list[str]:
    """Return the list of problems with a comment submission (empty when valid)."""
    errors: list[str] = []
    name = str(data.get("name") or "")
    email = str(data.get("email") or "")
    message = str(data.get("message") or "")

    if len(name.strip()) < MIN_NAME_LENGTH:
        errors.append(f"Name must be at least {MIN_NAME_LENGTH} characters")
    if not EMAIL_RE.fullmatch(email):
        errors.append("Invalid email")
    if len(message.strip()) < MIN_MESSAGE_LENGTH:
        errors.append(f"Message must be at least {MIN_MESSAGE_LENGTH} characters")
    if len(message) > MAX_MESSAGE_LENGTH:
        errors.append(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")

    lowered = message.lower()
    if any(word in lowered for word in FORBIDDEN_WORDS):
        errors.append("Message contains forbidden words")

    return errors


def ensure_valid_comment(data: dict[str, Any]) -> None:
    errors = validate_comment(data)
    if errors:
        raise CommentValidationError(errors)


def is_duplicate_comment(
    new: dict[str, Any],
    existing: Iterable[dict[str, Any]],
    *,
    now: float | None = None,
) -> bool:
    """Same email and message as a comment sent within the last five minutes."""
    now_ts = time.time() if now is None else now
    email = new.get("email")
    message = str(new.get("message") or "").strip()

    for other in existing:
        if other.get("email") != email:
            continue
        if str(other.get("message") or "").strip() != message:
            continue
        sent_at = parse_iso(other.get("date"))
        if sent_at is not None and abs(sent_at.timestamp() - now_ts) < DUPLICATE_WINDOW_SECONDS:
            return True
    return False
