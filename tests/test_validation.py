# tests/test_validation.py

from __future__ import annotations

import pytest

from terceiro_olho.comments.validation import (
    CommentValidationError,
    ensure_valid_comment,
    is_duplicate_comment,
    validate_comment,
)
from terceiro_olho.core.models import iso_now

GOOD = {"name": "Ana", "email": "ana@example.com", "message": "Gostei muito do capítulo!"}


def test_valid_comment_has_no_errors() -> None:
    assert validate_comment(GOOD) == []
    ensure_valid_comment(GOOD)


@pytest.mark.parametrize(
    ("field", "value", "fragment"),
    [
        ("name", "A", "Name"),
        ("name", "   ", "Name"),
        ("email", "ana@example", "email"),
        ("email", "ana example@x.com", "email"),
        ("email", "ana@example.com\n", "email"),
        ("message", "curto", "at least"),
        ("message", "x" * 1001, "at most"),
        ("message", "This is SPAM content here", "forbidden"),
    ],
)
def test_invalid_fields(field: str, value: str, fragment: str) -> None:
    errors = validate_comment({**GOOD, field: value})
    assert len(errors) == 1
    assert fragment in errors[0]


def test_ensure_valid_collects_all_errors() -> None:
    with pytest.raises(CommentValidationError) as exc:
        ensure_valid_comment({"name": "", "email": "", "message": ""})
    assert len(exc.value.errors) == 3


def test_duplicate_within_five_minutes() -> None:
    now = 1_700_000_000.0
    existing = [{**GOOD, "date": iso_now(now - 60)}]

    assert is_duplicate_comment(GOOD, existing, now=now) is True
    assert is_duplicate_comment({**GOOD, "message": GOOD["message"] + "  "}, existing, now=now) is True
    assert is_duplicate_comment({**GOOD, "email": "x@y.com"}, existing, now=now) is False
    assert is_duplicate_comment(GOOD, existing, now=now + 5 * 60) is False


def test_duplicate_ignores_entries_without_date() -> None:
    assert is_duplicate_comment(GOOD, [dict(GOOD)], now=0) is False
