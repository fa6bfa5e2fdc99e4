# src/terceiro_olho/votes.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .api.client import ApiError
from .core.models import COVER_IDS, SEED_VOTES, normalize_votes, vote_stats
from .core.ports import SiteApi
from .storage.areas import CacheStorage, VoteStorage

logger = logging.getLogger(__name__)

VOTES_CACHE_KEY = "votes"
VOTES_CACHE_TTL_MINUTES = 5


@dataclass(slots=True, frozen=True)
class VoteResult:
    accepted: bool
    cover_id: str
    votes: dict[str, int] = field(default_factory=dict)
    offline: bool = False


class CoverVoting:
    """Cover poll: one vote per reader, tally served from cache while offline."""

    def __init__(self, api: SiteApi, vote_storage: VoteStorage, cache: CacheStorage) -> None:
        self._api = api
        self._storage = vote_storage
        self._cache = cache

    def _cached_tally(self) -> dict[str, int] | None:
        cached = self._cache.get_stale(VOTES_CACHE_KEY)
        return normalize_votes(cached) if isinstance(cached, dict) else None

    def get_votes(self) -> dict[str, int]:
        try:
            votes = normalize_votes(self._api.get_votes())
        except ApiError as e:
            logger.warning("API offline, using cached votes: %s", e)
            return self._cached_tally() or dict(SEED_VOTES)
        self._cache.set(VOTES_CACHE_KEY, votes, VOTES_CACHE_TTL_MINUTES)
        return votes

    def vote(self, cover_id: str) -> VoteResult:
        if cover_id not in COVER_IDS:
            raise ValueError(f"Invalid cover id: {cover_id!r}")

        if self._storage.has_voted():
            logger.info("Vote ignored, this reader already voted")
            return VoteResult(accepted=False, cover_id=cover_id, votes=self.get_votes())

        try:
            result = self._api.vote(cover_id)
        except ApiError as e:
            if not e.retryable:
                raise
            logger.warning("API offline, vote kept locally: %s", e)
            votes = self._cached_tally() or dict(SEED_VOTES)
            votes[cover_id] += 1
            self._cache.set(VOTES_CACHE_KEY, votes, VOTES_CACHE_TTL_MINUTES)
            self._storage.record_vote(cover_id)
            return VoteResult(accepted=True, cover_id=cover_id, votes=votes, offline=True)

        votes = normalize_votes(result.get("votes") if isinstance(result, dict) else None)
        self._cache.set(VOTES_CACHE_KEY, votes, VOTES_CACHE_TTL_MINUTES)
        self._storage.record_vote(cover_id)
        logger.info("Vote recorded for %s", cover_id)
        return VoteResult(accepted=True, cover_id=cover_id, votes=votes)

    def get_stats(self) -> dict[str, object]:
        return vote_stats(self.get_votes())

    def user_vote(self) -> str | None:
        vote = self._storage.get_user_vote()
        return str(vote["cover_id"]) if vote and vote.get("cover_id") else None

    def has_voted(self) -> bool:
        return self._storage.has_voted()
