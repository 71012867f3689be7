from __future__ import annotations

import calendar
import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List

import numpy as np

from cineai_core.config import (
    ABANDONED_AFTER_DAYS,
    AFFINITY_FULL_CONFIDENCE,
    AFFINITY_MAX_INTERACTIONS,
    AFFINITY_TOP_GENRES,
    AFFINITY_WINDOW_DAYS,
    IMPULSE_WATCH_DAYS,
    MIN_DIRECTOR_RATINGS,
    MIN_GENRE_ADDS,
    VELOCITY_WINDOW_DAYS,
)
from cineai_core.degrade import fail_open
from cineai_core.ports import InteractionHistory

from .insights import (
    extract_themes,
    generate_intelligence_insights,
    infer_viewing_contexts,
    top_genres,
)
from .schemas import (
    BehaviorProfile,
    DayGenreAffinity,
    GenreAddWatch,
    HourGenreAffinity,
    InteractionAffinity,
    RatingPattern,
    RatingPatterns,
    TemporalPatterns,
    WatchlistPattern,
    WatchlistPatterns,
)

log = logging.getLogger(__name__)

_DAY_S = 86400.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _days_between(a: datetime, b: datetime) -> int:
    return round((b - a).total_seconds() / _DAY_S)


def _averages(groups: Dict[str, List[float]], min_count: int = 1) -> Dict[str, float]:
    return {
        key: round(float(np.mean(values)), 2)
        for key, values in groups.items()
        if len(values) >= min_count
    }


class BehavioralAnalyzer:
    """
    Derives a user's behavior profile from their interaction history.

    Each analysis is an independent fail-open boundary: a collaborator
    failure yields that analysis' empty shape, never an exception.
    """

    def __init__(
        self,
        history: InteractionHistory,
        *,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.history = history
        self._now = now

    @fail_open(lambda self, user_id: RatingPatterns(), label="analyze_rating_patterns")
    async def analyze_rating_patterns(self, user_id: str) -> RatingPatterns:
        ratings = await self.history.get_ratings(user_id)
        if not ratings:
            return RatingPatterns()

        patterns = [
            RatingPattern(
                movie_id=r.movie_id,
                title=r.title,
                rating=r.rating,
                rated_at=r.rated_at,
                genres=list(r.genres),
                directors=list(r.directors),
                themes=extract_themes(r.overview),
            )
            for r in ratings
        ]

        buckets: Dict[int, List[RatingPattern]] = {star: [] for star in range(1, 6)}
        genre_ratings: Dict[str, List[float]] = defaultdict(list)
        director_ratings: Dict[str, List[float]] = defaultdict(list)
        for p in patterns:
            star = int(min(5, max(1, round(p.rating))))
            buckets[star].append(p)
            for genre in p.genres:
                genre_ratings[genre].append(p.rating)
            for director in p.directors:
                director_ratings[director].append(p.rating)

        average = round(float(np.mean([p.rating for p in patterns])), 2)
        result = RatingPatterns(
            five_star_movies=buckets[5],
            four_star_movies=buckets[4],
            three_star_movies=buckets[3],
            two_star_movies=buckets[2],
            one_star_movies=buckets[1],
            genre_rating_averages=_averages(genre_ratings),
            director_rating_averages=_averages(
                director_ratings, min_count=MIN_DIRECTOR_RATINGS
            ),
            rating_distribution={star: len(items) for star, items in buckets.items()},
            average_rating=average,
            total_ratings=len(patterns),
        )
        log.info(
            "Rating analysis complete for %s: %d ratings, average %.2f",
            user_id,
            result.total_ratings,
            result.average_rating,
        )
        return result

    @fail_open(
        lambda self, user_id: WatchlistPatterns(), label="analyze_watchlist_behavior"
    )
    async def analyze_watchlist_behavior(self, user_id: str) -> WatchlistPatterns:
        entries = await self.history.get_watchlist(user_id)
        if not entries:
            return WatchlistPatterns()

        now = self._now()
        patterns: List[WatchlistPattern] = []
        for e in entries:
            if e.watched and e.watched_at is not None:
                patterns.append(
                    WatchlistPattern(
                        movie_id=e.movie_id,
                        title=e.title,
                        added_at=e.added_at,
                        watched_at=e.watched_at,
                        time_to_watch_days=_days_between(e.added_at, e.watched_at),
                        completion_status="watched",
                        genres=list(e.genres),
                    )
                )
            else:
                age_days = _days_between(e.added_at, now)
                patterns.append(
                    WatchlistPattern(
                        movie_id=e.movie_id,
                        title=e.title,
                        added_at=e.added_at,
                        completion_status=(
                            "abandoned" if age_days > ABANDONED_AFTER_DAYS else "pending"
                        ),
                        genres=list(e.genres),
                    )
                )

        total = len(patterns)
        watched = [p for p in patterns if p.completion_status == "watched"]
        completion_rate = round(100 * len(watched) / total) if total else 0

        genre_stats: Dict[str, GenreAddWatch] = {}
        for p in patterns:
            for genre in p.genres:
                stats = genre_stats.setdefault(genre, GenreAddWatch())
                stats.added += 1
                if p.completion_status == "watched":
                    stats.watched += 1
        genre_completion = {
            genre: round(100 * s.watched / s.added)
            for genre, s in genre_stats.items()
            if s.added >= MIN_GENRE_ADDS
        }

        days_to_watch = [
            p.time_to_watch_days for p in watched if p.time_to_watch_days is not None
        ]
        result = WatchlistPatterns(
            total_items=total,
            watched_count=len(watched),
            completion_rate=completion_rate,
            genre_completion_rates=genre_completion,
            average_time_to_watch=(
                round(float(np.mean(days_to_watch))) if days_to_watch else 0
            ),
            impulse_watches=[
                p
                for p in watched
                if p.time_to_watch_days is not None
                and p.time_to_watch_days <= IMPULSE_WATCH_DAYS
            ],
            abandoned_movies=[p for p in patterns if p.completion_status == "abandoned"],
            pending_movies=[p for p in patterns if p.completion_status == "pending"],
            genre_add_vs_watch_patterns=genre_stats,
        )
        log.info(
            "Watchlist analysis complete for %s: %d items, %d%% completed",
            user_id,
            total,
            completion_rate,
        )
        return result

    @fail_open(
        lambda self, user_id: TemporalPatterns(), label="analyze_temporal_patterns"
    )
    async def analyze_temporal_patterns(self, user_id: str) -> TemporalPatterns:
        entries = await self.history.get_watchlist(user_id)
        watched = [e for e in entries if e.watched and e.watched_at is not None]
        if not watched:
            return TemporalPatterns()

        weekend: List[str] = []
        weekday: List[str] = []
        seasonal: Dict[str, List[str]] = defaultdict(list)
        for e in watched:
            # Monday == 0 ... Saturday == 5, Sunday == 6
            if e.watched_at.weekday() >= 5:
                weekend.extend(e.genres)
            else:
                weekday.extend(e.genres)
            seasonal[calendar.month_name[e.watched_at.month]].extend(e.genres)

        cutoff = self._now() - timedelta(days=VELOCITY_WINDOW_DAYS)
        recent = sum(1 for e in watched if e.watched_at >= cutoff)

        return TemporalPatterns(
            weekend_genres=top_genres(weekend),
            weekday_genres=top_genres(weekday),
            recent_watch_count=recent,
            recent_viewing_velocity=round(recent / (VELOCITY_WINDOW_DAYS / 7), 2),
            seasonal_preferences=dict(seasonal),
            preferred_viewing_contexts=infer_viewing_contexts(weekend, weekday),
        )

    @fail_open(
        lambda self, user_id: InteractionAffinity(),
        label="analyze_interaction_affinity",
    )
    async def analyze_interaction_affinity(self, user_id: str) -> InteractionAffinity:
        """
        Genre affinity from the user's recent interaction log.

        Every interaction counts one hit per genre of its movie, overall and in
        its hour-of-day and weekday slots. Only the latest
        AFFINITY_MAX_INTERACTIONS rows inside AFFINITY_WINDOW_DAYS are used.
        """
        since = self._now() - timedelta(days=AFFINITY_WINDOW_DAYS)
        records = await self.history.get_interactions(user_id, since=since)
        records = sorted(
            (r for r in records if r.genres), key=lambda r: r.occurred_at, reverse=True
        )[:AFFINITY_MAX_INTERACTIONS]
        if not records:
            return InteractionAffinity()

        overall: Counter = Counter()
        hourly: Dict[int, Counter] = defaultdict(Counter)
        daily: Dict[int, Counter] = defaultdict(Counter)
        for r in records:
            at = r.occurred_at.astimezone(timezone.utc)
            overall.update(r.genres)
            hourly[at.hour].update(r.genres)
            daily[at.weekday()].update(r.genres)

        peak = max(overall.values())
        result = InteractionAffinity(
            genre_affinity={g: round(n / peak, 4) for g, n in overall.items()},
            by_hour={
                hour: HourGenreAffinity(
                    preferred_genres=top_genres(counts.elements(), AFFINITY_TOP_GENRES),
                    confidence=min(1.0, sum(counts.values()) / AFFINITY_FULL_CONFIDENCE),
                )
                for hour, counts in sorted(hourly.items())
            },
            by_weekday={
                day: DayGenreAffinity(
                    preferred_genres=top_genres(counts.elements(), AFFINITY_TOP_GENRES),
                    interaction_count=sum(counts.values()),
                )
                for day, counts in sorted(daily.items())
            },
            total_interactions=len(records),
        )
        log.info(
            "Interaction affinity for %s: %d interactions, %d genres",
            user_id,
            result.total_interactions,
            len(result.genre_affinity),
        )
        return result

    def generate_intelligence_insights(
        self,
        rating_patterns: RatingPatterns,
        watchlist_patterns: WatchlistPatterns,
        temporal_patterns: TemporalPatterns,
    ):
        return generate_intelligence_insights(
            rating_patterns, watchlist_patterns, temporal_patterns
        )

    async def analyze_complete_user_behavior(self, user_id: str) -> BehaviorProfile:
        rating_patterns = await self.analyze_rating_patterns(user_id)
        watchlist_patterns = await self.analyze_watchlist_behavior(user_id)
        temporal_patterns = await self.analyze_temporal_patterns(user_id)
        affinity = await self.analyze_interaction_affinity(user_id)
        insights = generate_intelligence_insights(
            rating_patterns, watchlist_patterns, temporal_patterns
        )
        return BehaviorProfile(
            rating_patterns=rating_patterns,
            watchlist_patterns=watchlist_patterns,
            temporal_patterns=temporal_patterns,
            intelligence_insights=insights,
            interaction_affinity=affinity,
        )
