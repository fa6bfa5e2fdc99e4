# src/terceiro_olho/visits.py

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from .api.hybrid import HybridApi
from .core.models import VisitCounters, iso_now, js_round
from .storage.areas import SessionStorage, VisitStorage

logger = logging.getLogger(__name__)

OFFLINE_NOTICE = "Using local data (offline)"
TREND_BAND_PERCENT = 5


def format_count(value: int) -> str:
    """pt-BR grouping: 1234567 -> 1.234.567."""
    return f"{int(value):,}".replace(",", ".")


def _date_label(day: str) -> str:
    try:
        return date.fromisoformat(day).strftime("%d/%m/%Y")
    except ValueError:
        return day


def visit_trend(daily: dict[str, int]) -> dict[str, Any]:
    """
    Compare the mean of the last 3 days against the 3 days before them.

    Changes within +/-5% are "stable". A zero baseline with recent visits counts as +100%.
    """
    trend: dict[str, Any] = {"direction": "stable", "percentage": 0, "period": "daily"}
    if len(daily) < 2:
        return trend

    values = [int(v) for _, v in sorted(daily.items())]
    recent = values[-3:]
    previous = values[-6:-3]
    if not recent or not previous:
        return trend

    recent_avg = sum(recent) / len(recent)
    previous_avg = sum(previous) / len(previous)
    if previous_avg == 0:
        change = 0.0 if recent_avg == 0 else 100.0
    else:
        change = (recent_avg - previous_avg) / previous_avg * 100

    if change > TREND_BAND_PERCENT:
        trend["direction"] = "up"
    elif change < -TREND_BAND_PERCENT:
        trend["direction"] = "down"
    trend["percentage"] = abs(js_round(change))
    return trend


def chart_data(daily: dict[str, int]) -> list[dict[str, Any]]:
    return [
        {"date": day, "count": int(count), "formatted": _date_label(day)}
        for day, count in sorted(daily.items())
    ]


class VisitCounter:
    """
    Visit counters for one page ("total" or "cover").

    increment_visit() counts at most once per counter (one visit per run);
    reset_increment_flag() or reload() arm it again.
    """

    def __init__(
        self,
        hybrid: HybridApi,
        visit_storage: VisitStorage,
        *,
        session: SessionStorage | None = None,
        page: str = "total",
        enable_local_fallback: bool = True,
    ) -> None:
        self._hybrid = hybrid
        self._storage = visit_storage
        self._session = session
        self.page = page
        self.enable_local_fallback = enable_local_fallback

        self.visits = VisitCounters()
        self.error: str | None = None
        self.loading = False
        self.last_increment: str | None = None
        self._has_incremented = False

    @property
    def has_incremented(self) -> bool:
        return self._has_incremented

    def fetch_visits(self) -> VisitCounters:
        """Server counters, or the local mirror (with error set) when the server is unreachable."""
        self.loading = True
        self.error = None
        try:
            data = self._hybrid.get_visits()
            if not data.get("offline"):
                self.visits = VisitCounters.from_dict(data)
                if self.enable_local_fallback:
                    self._storage.sync(data)
            elif self.enable_local_fallback:
                self.visits = VisitCounters.from_dict(data)
                self.error = OFFLINE_NOTICE
            else:
                self.error = "Failed to load visits (offline)"
        finally:
            self.loading = False
        return self.visits

    def increment_visit(self, page: str | None = None) -> dict[str, Any] | None:
        if self._has_incremented:
            logger.debug("Visit already counted, ignoring")
            return None

        target = page or self.page
        self.last_increment = iso_now()
        self._has_incremented = True

        if target == "total":
            self.visits.total += 1
        elif target == "cover":
            self.visits.cover_page += 1

        result = self._hybrid.increment_visit(target)

        if self._session is not None:
            self._session.record_action("visit_increment", {"page": target})

        if isinstance(result, dict) and isinstance(result.get("visits"), dict):
            self.visits = VisitCounters.from_dict(result["visits"])
            self.error = OFFLINE_NOTICE if result.get("offline") else None

        logger.info("Visit counted for page %s", target)
        return result

    def reset_increment_flag(self) -> None:
        self._has_incremented = False

    def force_sync(self) -> VisitCounters:
        logger.info("Forcing visit sync...")
        return self.fetch_visits()

    def reload(self) -> VisitCounters:
        self._has_incremented = False
        return self.fetch_visits()

    def count(self, page: str | None = None) -> int:
        return self.visits.total if (page or self.page) == "total" else self.visits.cover_page

    def display_count(self, page: str | None = None) -> str:
        return format_count(self.count(page))

    def get_stats(self) -> dict[str, Any]:
        v = self.visits
        daily_values = list(v.daily.values())
        avg_daily = js_round(sum(daily_values) / len(daily_values)) if daily_values else 0
        cover_percentage = js_round(v.cover_page / v.total * 100) if v.total > 0 else 0
        return {
            "total": v.total,
            "cover_page": v.cover_page,
            "avg_daily": avg_daily,
            "cover_percentage": cover_percentage,
            "daily": dict(v.daily),
            "last_update": v.last_update,
        }
