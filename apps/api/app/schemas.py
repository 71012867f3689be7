from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator

from cineai_core.types import ConfidenceTier, ScoredRecommendation


# ---------- Admin weights ----------
class WeightsUpdateRequest(BaseModel):
    # values stay untyped here so bad entries surface as a 400 naming the field
    weights: Dict[str, Any]


class WeightsView(BaseModel):
    current: Dict[str, float]
    boosts: Dict[str, float]
    thresholds: Dict[str, float]
    meta: Dict[str, Any] = Field(default_factory=dict)
    version: str
    lastUpdated: str | None = None


class WeightsUpdateResponse(BaseModel):
    success: bool = True
    updated: Dict[str, float]
    version: str
    message: str


# ---------- Recommendations ----------
class RecommendationRequest(BaseModel):
    count: int = Field(default=10, ge=1, le=100)
    context: str | None = Field(
        default=None, examples=["cozy mystery for a rainy weekend"]
    )
    exclude_watched: bool = True
    factors: Dict[str, float] | None = None
    preferred_actors: List[str] = Field(default_factory=list)

    @field_validator("context")
    def strip_context(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None


class FactorOut(BaseModel):
    feature: str
    value: float
    weight: float
    contribution: float


class RecommendationOut(BaseModel):
    movie_id: int
    title: str
    genres: List[str]
    release_year: int | None = None
    rating: float | None = None
    confidence_score: float
    confidence_tier: ConfidenceTier
    explanation: str
    factors: List[FactorOut]
    novelty_penalty: bool = False
    original_score: float | None = None

    @classmethod
    def from_scored(cls, rec: ScoredRecommendation) -> "RecommendationOut":
        m = rec.movie
        return cls(
            movie_id=m.movie_id,
            title=m.title,
            genres=list(m.genres),
            release_year=m.release_year,
            rating=m.rating,
            confidence_score=round(rec.confidence_score, 4),
            confidence_tier=rec.confidence_tier,
            explanation=rec.explanation,
            factors=[
                FactorOut(
                    feature=f.feature,
                    value=f.value,
                    weight=f.weight,
                    contribution=f.contribution,
                )
                for f in rec.factors
            ],
            novelty_penalty=rec.novelty_penalty,
            original_score=rec.original_score,
        )


class RecommendationsResponse(BaseModel):
    recommendations: List[RecommendationOut]
    count: int


class LearningSignalRequest(BaseModel):
    movie_id: int
    action: str = Field(..., examples=["rating", "watchlist_add", "watched"])
    value: float | None = None
    genres: List[str] = Field(default_factory=list)
    context: Dict[str, Any] = Field(default_factory=dict)


class LearningSignalAccepted(BaseModel):
    accepted: bool = True
