from __future__ import annotations

from typing import (
    Dict,
    List,
    Mapping,
    Protocol,
    Sequence,
    Set,
    TypeVar,
    runtime_checkable,
)

from pydantic import BaseModel, Field

from cineai_behavior.schemas import BehaviorProfile
from cineai_core.types import CandidateMovie, MovieId, ScoredRecommendation
from cineai_weights.schemas import WeightConfig

T = TypeVar("T")


class BehaviorSource(Protocol):
    async def analyze_complete_user_behavior(self, user_id: str) -> BehaviorProfile: ...


class SeenFilter(Protocol):
    async def seen_movie_ids(self, user_id: str) -> Set[MovieId]: ...

    async def filter_unseen_movies(self, user_id: str, items: Sequence[T]) -> List[T]: ...

    async def apply_novelty_penalties(
        self, user_id: str, recommendations: Sequence[ScoredRecommendation]
    ) -> List[ScoredRecommendation]: ...


class WeightsProvider(Protocol):
    async def get_weights(self) -> WeightConfig: ...


@runtime_checkable
class SemanticScorer(Protocol):
    """Optional query/candidate similarity in [0, 1], keyed by movie id."""

    async def similarity(
        self, query: str, candidates: Sequence[CandidateMovie]
    ) -> Mapping[MovieId, float]: ...


class RecommendationOptions(BaseModel):
    count: int = Field(default=10, ge=1, le=100)
    context: str | None = None
    exclude_watched: bool = True
    factors: Dict[str, float] | None = None  # per-call weight/boost overrides
    preferred_actors: List[str] = Field(default_factory=list)
