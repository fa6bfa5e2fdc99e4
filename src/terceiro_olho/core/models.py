# src/terceiro_olho/core/models.py

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

COVER_IDS: tuple[str, ...] = ("cover1", "cover2", "cover3")

# Tally the server is seeded with.
SEED_VOTES: dict[str, int] = {"cover1": 45, "cover2": 32, "cover3": 23}


def iso_now(ts: float | None = None) -> str:
    """UTC timestamp in the server's format: 2024-01-31T12:00:00.000Z."""
    dt = datetime.now(timezone.utc) if ts is None else datetime.fromtimestamp(ts, timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(raw: Any) -> datetime | None:
    """Parse an ISO timestamp into an aware datetime; None when missing or malformed."""
    if not raw or not isinstance(raw, str):
        return None
    try:
        dt = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def js_round(value: float) -> int:
    """Half-up rounding (Math.round), unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


class SortOrder(StrEnum):
    NEWEST = "newest"
    OLDEST = "oldest"
    POPULAR = "popular"

    @classmethod
    def parse(cls, raw: str | None) -> SortOrder:
        if not raw:
            return cls.NEWEST
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.NEWEST


@dataclass(slots=True)
class Comment:
    """
    A site comment.

    Two payload shapes circulate (name/message/date from the server, author/content/timestamp
    from older feed code); from_dict accepts both and to_dict always writes the server shape.
    """

    id: Any
    name: str
    message: str
    email: str = ""
    page: str = "geral"
    date: str = ""
    approved: bool = False
    likes: int = 0
    attempts: int = 0
    pending: bool = False
    last_attempt: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Comment:
        name = raw.get("name", raw.get("author")) or ""
        message = raw.get("message", raw.get("content")) or ""
        date = raw.get("date", raw.get("timestamp")) or ""
        try:
            likes = int(raw.get("likes") or 0)
        except (TypeError, ValueError):
            likes = 0
        try:
            attempts = int(raw.get("attempts") or 0)
        except (TypeError, ValueError):
            attempts = 0
        return cls(
            id=raw.get("id"),
            name=str(name),
            message=str(message),
            email=str(raw.get("email") or ""),
            page=str(raw.get("page") or "geral"),
            date=str(date),
            approved=bool(raw.get("approved", False)),
            likes=likes,
            attempts=attempts,
            pending=bool(raw.get("pending", False)),
            last_attempt=raw.get("last_attempt"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def submission(self) -> dict[str, Any]:
        """Fields the server accepts on POST /comments."""
        return {"name": self.name, "email": self.email, "message": self.message, "page": self.page}

    @property
    def created_at(self) -> datetime | None:
        return parse_iso(self.date)


@dataclass(slots=True)
class NewsItem:
    id: Any
    title: str
    content: str
    category: str = "Geral"
    author: str = "Administrador"
    date: str = ""
    featured: bool = False

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> NewsItem:
        return cls(
            id=raw.get("id"),
            title=str(raw.get("title") or ""),
            content=str(raw.get("content") or ""),
            category=str(raw.get("category") or "Geral"),
            author=str(raw.get("author") or "Administrador"),
            date=str(raw.get("date") or ""),
            featured=bool(raw.get("featured", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class VisitCounters:
    total: int = 0
    cover_page: int = 0
    daily: dict[str, int] = field(default_factory=dict)
    last_update: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> VisitCounters:
        raw = raw or {}
        daily_raw = raw.get("daily") or {}
        daily: dict[str, int] = {}
        if isinstance(daily_raw, dict):
            for day, count in daily_raw.items():
                try:
                    daily[str(day)] = int(count)
                except (TypeError, ValueError):
                    continue
        return cls(
            total=int(raw.get("total") or 0),
            cover_page=int(raw.get("cover_page", raw.get("coverPage")) or 0),
            daily=daily,
            last_update=raw.get("last_update", raw.get("lastUpdate")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def normalize_votes(raw: dict[str, Any] | None) -> dict[str, int]:
    """Project any vote payload onto the fixed cover key set."""
    raw = raw or {}
    out: dict[str, int] = {}
    for cover_id in COVER_IDS:
        try:
            out[cover_id] = int(raw.get(cover_id) or 0)
        except (TypeError, ValueError):
            out[cover_id] = 0
    return out


def vote_stats(votes: dict[str, Any]) -> dict[str, Any]:
    tally = normalize_votes(votes)
    total = sum(tally.values())
    percentages = {
        cover_id: js_round(count / total * 100) if total > 0 else 0
        for cover_id, count in tally.items()
    }
    return {"votes": tally, "total": total, "percentages": percentages}
