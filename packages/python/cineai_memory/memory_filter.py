from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Sequence, Set, TypeVar

from cineai_core.config import (
    NOVELTY_MIN_GENRE_OVERLAP,
    NOVELTY_PENALTY_MULTIPLIER,
    NOVELTY_WINDOW_HOURS,
)
from cineai_core.degrade import fail_open
from cineai_core.ports import InteractionHistory
from cineai_core.types import MovieId, ScoredRecommendation

log = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NoveltyParams:
    window_hours: float = NOVELTY_WINDOW_HOURS
    min_genre_overlap: float = NOVELTY_MIN_GENRE_OVERLAP
    penalty_multiplier: float = NOVELTY_PENALTY_MULTIPLIER


@dataclass(frozen=True)
class RecentItem:
    movie_id: MovieId
    genres: frozenset[str]


def genre_overlap(candidate: Sequence[str], recent: frozenset[str]) -> float:
    """Share of the candidate's genres that the recent item also has."""
    mine = set(candidate)
    if not mine:
        return 0.0
    return len(mine & recent) / len(mine)


class MemoryFilter:
    """
    Keeps recommendations fresh against what the user has already seen.

    Both operations degrade to returning their input unchanged when the
    history collaborator fails.
    """

    def __init__(
        self,
        history: InteractionHistory,
        *,
        params: NoveltyParams | None = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.history = history
        self.params = params or NoveltyParams()
        self._now = now

    async def seen_movie_ids(self, user_id: str) -> Set[MovieId]:
        ratings = await self.history.get_ratings(user_id)
        watchlist = await self.history.get_watchlist(user_id)
        seen = {r.movie_id for r in ratings}
        seen.update(e.movie_id for e in watchlist if e.watched)
        return seen

    async def recent_items(self, user_id: str) -> List[RecentItem]:
        cutoff = self._now() - timedelta(hours=self.params.window_hours)
        recent: List[RecentItem] = []

        for r in await self.history.get_ratings(user_id):
            if r.rated_at >= cutoff:
                recent.append(RecentItem(r.movie_id, frozenset(r.genres)))
        for e in await self.history.get_watchlist(user_id):
            if e.watched and e.watched_at is not None and e.watched_at >= cutoff:
                recent.append(RecentItem(e.movie_id, frozenset(e.genres)))
        for rec in await self.history.get_interactions(user_id, since=cutoff):
            if rec.occurred_at >= cutoff:
                recent.append(RecentItem(rec.movie_id, frozenset(rec.genres)))
        return recent

    @fail_open(lambda self, user_id, items: list(items), label="filter_unseen_movies")
    async def filter_unseen_movies(self, user_id: str, items: Sequence[T]) -> List[T]:
        """Drop anything the user rated or marked watched. Works on candidates and scored recs."""
        if not items:
            return []
        seen = await self.seen_movie_ids(user_id)
        return [it for it in items if it.movie_id not in seen]

    @fail_open(
        lambda self, user_id, recommendations: list(recommendations),
        label="apply_novelty_penalties",
    )
    async def apply_novelty_penalties(
        self, user_id: str, recommendations: Sequence[ScoredRecommendation]
    ) -> List[ScoredRecommendation]:
        if not recommendations:
            return []
        recent = await self.recent_items(user_id)
        if not recent:
            return list(recommendations)

        p = self.params
        out: List[ScoredRecommendation] = []
        penalized = 0
        for rec in recommendations:
            similar = any(
                item.movie_id == rec.movie_id
                or genre_overlap(rec.movie.genres, item.genres) >= p.min_genre_overlap
                for item in recent
            )
            if similar and not rec.novelty_penalty:
                out.append(
                    dataclasses.replace(
                        rec,
                        confidence_score=rec.confidence_score * p.penalty_multiplier,
                        novelty_penalty=True,
                        original_score=rec.confidence_score,
                    )
                )
                penalized += 1
            else:
                out.append(rec)

        if penalized:
            log.info(
                "Applied novelty penalty to %d of %d recommendations for %s",
                penalized,
                len(out),
                user_id,
            )
        return out
