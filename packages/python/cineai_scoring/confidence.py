from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Tuple

from cineai_core.config import TOP_RATED_CUTOFF
from cineai_core.types import (
    CandidateMovie,
    ConfidenceTier,
    FeatureContribution,
    ScoredRecommendation,
)
from cineai_weights.schemas import (
    DEFAULT_WEIGHT_CONFIG,
    WEIGHT_NAMES,
    Boosts,
    Thresholds,
    WeightConfig,
)

from .normalize import as_number, clamp01, norm_popularity, norm_rating, norm_recency

WeightsLike = WeightConfig | Mapping[str, Any]

_BOOST_ALIASES = {name: f.alias for name, f in Boosts.model_fields.items()}
_THRESHOLD_ALIASES = {name: f.alias for name, f in Thresholds.model_fields.items()}

_PHRASES = {
    "semantic": "Strong match for what you're looking for",
    "rating": "Highly rated",
    "popularity": "Popular right now",
    "recency": "Recent release",
    "preference": "Fits your taste profile",
    "boost:recent_release": "Recent release",
    "boost:top_rated": "Highly rated",
    "boost:genre_match": "Matches your favorite genres",
    "boost:preferred_director": "From a director you rate highly",
    "boost:preferred_actor": "Features an actor you like",
    "boost:seasonal_trending": "Fits what you watch this time of year",
}


@dataclass(frozen=True)
class ResolvedWeights:
    base: Dict[str, float]
    boosts: Dict[str, float]
    thresholds: Dict[str, float]


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    return value if isinstance(value, Mapping) else {}


def _base_value(entry: Any) -> float:
    if isinstance(entry, Mapping):
        return as_number(entry.get("base", entry.get("genreMatch")))
    return as_number(entry)


def resolve_weights(weights: WeightsLike | None) -> ResolvedWeights:
    """
    Flatten a WeightConfig or a loose mapping into plain floats.

    Missing or malformed keys become 0; thresholds fall back to defaults
    since they only drive the display tier.
    """
    if isinstance(weights, WeightConfig):
        return ResolvedWeights(
            base=weights.weights.model_dump(),
            boosts=weights.boosts.model_dump(),
            thresholds=weights.thresholds.model_dump(),
        )

    raw: Mapping[str, Any] = weights if isinstance(weights, Mapping) else {}
    block = _section(raw, "weights") or raw
    boosts = _section(raw, "boosts")
    thresholds = _section(raw, "thresholds")
    defaults = DEFAULT_WEIGHT_CONFIG.thresholds.model_dump()
    return ResolvedWeights(
        base={name: _base_value(block.get(name)) for name in WEIGHT_NAMES},
        boosts={
            name: as_number(boosts.get(alias, boosts.get(name)))
            for name, alias in _BOOST_ALIASES.items()
        },
        thresholds={
            name: (
                as_number(thresholds[alias])
                if alias in thresholds
                else defaults[name]
            )
            for name, alias in _THRESHOLD_ALIASES.items()
        },
    )


def _recency_signal(movie: CandidateMovie, year: int) -> float:
    if movie.recency is not None:
        return clamp01(as_number(movie.recency))
    if movie.release_year is None:
        return 0.0
    return norm_recency(year - as_number(movie.release_year))


def _boost_triggers(movie: CandidateMovie) -> Dict[str, bool]:
    return {
        "recent_release": bool(movie.is_recent_release),
        "top_rated": as_number(movie.rating) >= TOP_RATED_CUTOFF,
        "genre_match": bool(movie.has_genre_match),
        "preferred_director": bool(movie.has_preferred_director),
        "preferred_actor": bool(movie.has_preferred_actor),
        "seasonal_trending": bool(movie.is_seasonal_trending),
    }


def score_breakdown(
    movie: CandidateMovie, weights: WeightsLike | None, *, year: int
) -> Tuple[float, Tuple[FeatureContribution, ...]]:
    w = resolve_weights(weights)
    signals = {
        "semantic": clamp01(as_number(movie.semantic_score)),
        "rating": norm_rating(movie.rating),
        "popularity": norm_popularity(movie.popularity),
        "recency": _recency_signal(movie, year),
        "preference": clamp01(as_number(movie.preference_score)),
    }
    factors: List[FeatureContribution] = [
        FeatureContribution(
            feature=name,
            value=signals[name],
            weight=w.base[name],
            contribution=w.base[name] * signals[name],
        )
        for name in WEIGHT_NAMES
    ]
    for name, triggered in _boost_triggers(movie).items():
        if triggered and w.boosts[name] > 0:
            factors.append(
                FeatureContribution(
                    feature=f"boost:{name}",
                    value=1.0,
                    weight=w.boosts[name],
                    contribution=w.boosts[name],
                )
            )

    # base weights need not sum to 1
    score = clamp01(sum(f.contribution for f in factors))
    return score, tuple(factors)


def classify_tier(score: float, weights: WeightsLike | None) -> ConfidenceTier:
    t = resolve_weights(weights).thresholds
    if score >= t["high_confidence"]:
        return ConfidenceTier.HIGH
    if score >= t["medium_confidence"]:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def build_explanation(
    movie: CandidateMovie, tier: ConfidenceTier, factors: Tuple[FeatureContribution, ...]
) -> str:
    reasons: List[str] = []
    for f in sorted(factors, key=lambda f: f.contribution, reverse=True):
        if f.contribution <= 0:
            break
        if f.feature in ("rating", "boost:top_rated"):
            if as_number(movie.rating) < 7.0:
                continue
            phrase = f"Highly rated ({as_number(movie.rating):.1f}/10)"
        elif f.feature == "semantic" and f.value < 0.5:
            continue
        else:
            phrase = _PHRASES.get(f.feature, "")
        if phrase and phrase not in reasons:
            reasons.append(phrase)
        if len(reasons) == 3:
            break
    body = "; ".join(reasons) if reasons else "Recommended based on overall fit"
    return f"{tier.value.capitalize()} confidence: {body}"


def _current_year() -> int:
    return datetime.now(timezone.utc).year


class ConfidenceScorer:
    """Weighted-sum scorer with additive boosts, bounded to [0, 1]."""

    def __init__(self, *, current_year: Callable[[], int] = _current_year):
        self._current_year = current_year

    def calculate_confidence_score(
        self, candidate: CandidateMovie, weights: WeightsLike | None
    ) -> float:
        score, _ = score_breakdown(candidate, weights, year=self._current_year())
        return score

    def score(
        self, candidate: CandidateMovie, weights: WeightsLike | None
    ) -> ScoredRecommendation:
        score, factors = score_breakdown(candidate, weights, year=self._current_year())
        tier = classify_tier(score, weights)
        return ScoredRecommendation(
            movie=candidate,
            confidence_score=score,
            confidence_tier=tier,
            explanation=build_explanation(candidate, tier, factors),
            factors=factors,
        )
