from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List

import numpy as np

from cineai_core.config import LOYALTY_MIN_AVERAGE, TOP_GENRES_N

from .schemas import (
    IntelligenceInsights,
    RatingPatterns,
    TemporalPatterns,
    WatchlistPatterns,
)

_THEME_KEYWORDS = {
    "romance": ("love", "romance"),
    "war": ("war", "battle"),
    "family": ("family", "father", "mother"),
    "revenge": ("revenge", "vengeance"),
    "friendship": ("friendship", "friend"),
    "betrayal": ("betrayal", "betray"),
    "journey": ("journey", "adventure"),
    "survival": ("survival", "survive"),
}


def extract_themes(overview: str | None) -> List[str]:
    plot = (overview or "").lower()
    return [
        theme
        for theme, words in _THEME_KEYWORDS.items()
        if any(w in plot for w in words)
    ]


def top_genres(genres: Iterable[str], n: int = TOP_GENRES_N) -> List[str]:
    # most frequent first; ties broken alphabetically for determinism
    counts = Counter(genres)
    return [g for g, _ in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:n]]


def infer_viewing_contexts(weekend: List[str], weekday: List[str]) -> List[str]:
    contexts: List[str] = []
    if "Action" in weekend or "Adventure" in weekend:
        contexts.append("Weekend excitement seeker")
    if "Comedy" in weekday or "Romance" in weekday:
        contexts.append("Weekday relaxation")
    if "Drama" in weekend or "Thriller" in weekend:
        contexts.append("Weekend deep viewing")
    return contexts


def _distribution_std(distribution: Dict[int, int]) -> float:
    stars = np.array(list(distribution.keys()), dtype=float)
    counts = np.array(list(distribution.values()), dtype=float)
    if counts.sum() == 0:
        return 0.0
    mean = np.average(stars, weights=counts)
    return float(np.sqrt(np.average((stars - mean) ** 2, weights=counts)))


def taste_consistency(rating_patterns: RatingPatterns) -> float:
    """
    1.0 when the user rates every genre/director alike, falling toward 0 as
    their per-genre and per-director averages spread out. Star ratings live
    in [1, 5] so the population std is at most 2.
    """
    if rating_patterns.total_ratings == 0:
        return 0.0
    averages = list(rating_patterns.genre_rating_averages.values()) + list(
        rating_patterns.director_rating_averages.values()
    )
    if len(averages) >= 2:
        spread = float(np.std(averages))
    else:
        spread = _distribution_std(rating_patterns.rating_distribution)
    return round(max(0.0, min(1.0, 1.0 - spread / 2.0)), 2)


def generate_intelligence_insights(
    rating_patterns: RatingPatterns,
    watchlist_patterns: WatchlistPatterns,
    temporal_patterns: TemporalPatterns,
) -> IntelligenceInsights:
    # only rating data feeds the derived scores for now
    total = rating_patterns.total_ratings
    high = len(rating_patterns.five_star_movies) + len(
        rating_patterns.four_star_movies
    )
    exploration_vs_comfort = round(high / total, 2) if total > 0 else 0.5

    genre_loyalty = {
        genre: avg
        for genre, avg in rating_patterns.genre_rating_averages.items()
        if avg >= LOYALTY_MIN_AVERAGE
    }
    director_loyalty = {
        director: avg
        for director, avg in rating_patterns.director_rating_averages.items()
        if avg >= LOYALTY_MIN_AVERAGE
    }

    avg = rating_patterns.average_rating
    quality_threshold = avg - 0.5 if avg > 0 else 3.0

    return IntelligenceInsights(
        taste_consistency_score=taste_consistency(rating_patterns),
        exploration_vs_comfort_ratio=exploration_vs_comfort,
        genre_loyalty_scores=genre_loyalty,
        director_loyalty_scores=director_loyalty,
        quality_threshold=round(max(1.0, min(5.0, quality_threshold)), 2),
    )
