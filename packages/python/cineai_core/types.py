from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field

MovieId = int


class InteractionKind(str, Enum):
    RATING = "rating"
    WATCHLIST_ADD = "watchlist_add"
    WATCHLIST_WATCHED = "watchlist_watched"
    VIEW = "view"
    CHAT_SIGNAL = "chat_signal"


class ConfidenceTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class CandidateMovie:
    movie_id: MovieId  # tmdb id
    title: str = ""
    genres: list[str] = field(default_factory=list)
    rating: float | None = None  # 0-10
    popularity: float | None = None  # 0-1, or raw TMDB popularity
    release_year: int | None = None
    recency: float | None = None  # 0-1 indicator if the catalog supplies one
    overview: str | None = None
    directors: list[str] = field(default_factory=list)
    cast: list[str] = field(default_factory=list)
    # Per-request signals, attached before scoring
    semantic_score: float = 0.0
    preference_score: float = 0.0
    has_genre_match: bool = False
    is_recent_release: bool = False
    has_preferred_director: bool = False
    has_preferred_actor: bool = False
    is_seasonal_trending: bool = False


class UserInteractionRecord(BaseModel):
    movie_id: MovieId
    kind: InteractionKind
    occurred_at: datetime  # tz-aware
    value: float | None = None
    genres: List[str] = Field(default_factory=list)
    context: Dict[str, Any] = Field(default_factory=dict)


class RatingRecord(BaseModel):
    movie_id: MovieId
    rating: float = Field(ge=0, le=5)  # 1-5 stars
    rated_at: datetime
    title: str = ""
    genres: List[str] = Field(default_factory=list)
    directors: List[str] = Field(default_factory=list)
    overview: str | None = None


class WatchlistEntry(BaseModel):
    movie_id: MovieId
    added_at: datetime
    watched: bool = False
    watched_at: datetime | None = None
    title: str = ""
    genres: List[str] = Field(default_factory=list)
    directors: List[str] = Field(default_factory=list)


@dataclass(frozen=True)
class FeatureContribution:
    feature: str  # "semantic", "rating", ..., or "boost:<name>"
    value: float  # signal value (pre-weight, post-normalization)
    weight: float  # weight or boost magnitude used in this run
    contribution: float  # weight * value


@dataclass(frozen=True)
class ScoredRecommendation:
    movie: CandidateMovie
    confidence_score: float
    confidence_tier: ConfidenceTier
    explanation: str
    factors: tuple[FeatureContribution, ...] = ()
    novelty_penalty: bool = False
    original_score: float | None = None

    @property
    def movie_id(self) -> MovieId:
        return self.movie.movie_id


class SearchCriteria(BaseModel):
    genres: List[str] = Field(default_factory=list)
    query: str | None = None
    exclude_ids: List[MovieId] = Field(default_factory=list)
    limit: int = Field(default=50, ge=1, le=500)
