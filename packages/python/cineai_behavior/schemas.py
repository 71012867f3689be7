from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal

from pydantic import BaseModel, Field

from cineai_core.types import MovieId

CompletionStatus = Literal["watched", "abandoned", "pending"]


def _empty_distribution() -> Dict[int, int]:
    return {star: 0 for star in range(1, 6)}


class RatingPattern(BaseModel):
    movie_id: MovieId
    title: str = ""
    rating: float
    rated_at: datetime
    genres: List[str] = Field(default_factory=list)
    directors: List[str] = Field(default_factory=list)
    themes: List[str] = Field(default_factory=list)


class RatingPatterns(BaseModel):
    five_star_movies: List[RatingPattern] = Field(default_factory=list)
    four_star_movies: List[RatingPattern] = Field(default_factory=list)
    three_star_movies: List[RatingPattern] = Field(default_factory=list)
    two_star_movies: List[RatingPattern] = Field(default_factory=list)
    one_star_movies: List[RatingPattern] = Field(default_factory=list)
    genre_rating_averages: Dict[str, float] = Field(default_factory=dict)
    director_rating_averages: Dict[str, float] = Field(default_factory=dict)
    rating_distribution: Dict[int, int] = Field(default_factory=_empty_distribution)
    average_rating: float = 0.0
    total_ratings: int = 0


class WatchlistPattern(BaseModel):
    movie_id: MovieId
    title: str = ""
    added_at: datetime
    watched_at: datetime | None = None
    time_to_watch_days: int | None = None
    completion_status: CompletionStatus
    genres: List[str] = Field(default_factory=list)


class GenreAddWatch(BaseModel):
    added: int = 0
    watched: int = 0


class WatchlistPatterns(BaseModel):
    total_items: int = 0
    watched_count: int = 0
    completion_rate: int = 0  # percent
    genre_completion_rates: Dict[str, int] = Field(default_factory=dict)
    average_time_to_watch: int = 0  # days
    impulse_watches: List[WatchlistPattern] = Field(default_factory=list)
    abandoned_movies: List[WatchlistPattern] = Field(default_factory=list)
    pending_movies: List[WatchlistPattern] = Field(default_factory=list)
    genre_add_vs_watch_patterns: Dict[str, GenreAddWatch] = Field(default_factory=dict)


class TemporalPatterns(BaseModel):
    weekend_genres: List[str] = Field(default_factory=list)
    weekday_genres: List[str] = Field(default_factory=list)
    recent_watch_count: int = 0
    recent_viewing_velocity: float = 0.0  # movies per week
    seasonal_preferences: Dict[str, List[str]] = Field(default_factory=dict)
    preferred_viewing_contexts: List[str] = Field(default_factory=list)


class HourGenreAffinity(BaseModel):
    preferred_genres: List[str] = Field(default_factory=list)
    confidence: float = 0.0  # 0-1, grows with sample size


class DayGenreAffinity(BaseModel):
    preferred_genres: List[str] = Field(default_factory=list)
    interaction_count: int = 0


class InteractionAffinity(BaseModel):
    """Genre affinity learned from recorded interactions (ratings, adds, views, chat)."""

    genre_affinity: Dict[str, float] = Field(default_factory=dict)  # max-normalized
    by_hour: Dict[int, HourGenreAffinity] = Field(default_factory=dict)  # 0-23 UTC
    by_weekday: Dict[int, DayGenreAffinity] = Field(default_factory=dict)  # Monday == 0
    total_interactions: int = 0

    def ranked_genres(self) -> List[str]:
        return [
            g
            for g, _ in sorted(self.genre_affinity.items(), key=lambda kv: (-kv[1], kv[0]))
        ]


class IntelligenceInsights(BaseModel):
    taste_consistency_score: float = 0.0
    exploration_vs_comfort_ratio: float = 0.5
    genre_loyalty_scores: Dict[str, float] = Field(default_factory=dict)
    director_loyalty_scores: Dict[str, float] = Field(default_factory=dict)
    quality_threshold: float = 3.0


class BehaviorProfile(BaseModel):
    rating_patterns: RatingPatterns = Field(default_factory=RatingPatterns)
    watchlist_patterns: WatchlistPatterns = Field(default_factory=WatchlistPatterns)
    temporal_patterns: TemporalPatterns = Field(default_factory=TemporalPatterns)
    intelligence_insights: IntelligenceInsights = Field(
        default_factory=IntelligenceInsights
    )
    interaction_affinity: InteractionAffinity = Field(
        default_factory=InteractionAffinity
    )

    def top_genres(self, n: int = 5) -> List[str]:
        """
        Loyal genres first, then best-averaged genres, then genres the user keeps
        interacting with, then viewing-time genres.
        """
        insights = self.intelligence_insights
        ranked = sorted(
            insights.genre_loyalty_scores.items(), key=lambda kv: (-kv[1], kv[0])
        )
        averaged = sorted(
            self.rating_patterns.genre_rating_averages.items(),
            key=lambda kv: (-kv[1], kv[0]),
        )
        out: List[str] = []
        for genre in (
            [g for g, _ in ranked]
            + [g for g, avg in averaged if avg >= 3.0]
            + self.interaction_affinity.ranked_genres()
            + self.temporal_patterns.weekend_genres
            + self.temporal_patterns.weekday_genres
        ):
            if genre not in out:
                out.append(genre)
        return out[:n]
