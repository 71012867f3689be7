from __future__ import annotations

import calendar
import dataclasses
import re
from datetime import datetime
from typing import Iterable, List, Mapping, Sequence, Set

import numpy as np

from cineai_behavior.schemas import BehaviorProfile
from cineai_core.config import RECENT_RELEASE_YEARS
from cineai_core.types import CandidateMovie, MovieId
from cineai_scoring.normalize import as_number, clamp01

_TOKEN = re.compile(r"[a-z0-9']+")
_STOPWORDS = {
    "the", "and", "for", "with", "that", "this", "from", "about", "movie",
    "movies", "film", "films", "something", "like", "want", "watch",
}


def tokenize(text: str | None) -> Set[str]:
    return {
        t
        for t in _TOKEN.findall((text or "").lower())
        if len(t) > 2 and t not in _STOPWORDS
    }


def keyword_similarity(context: str | None, movie: CandidateMovie) -> float:
    """Share of the request's keywords found in the movie's title, overview or genres."""
    wanted = tokenize(context)
    if not wanted:
        return 0.0
    have = tokenize(" ".join([movie.title, movie.overview or "", *movie.genres]))
    return len(wanted & have) / len(wanted)


def _affinity(avg: float) -> float:
    # 1-5 star average -> [0, 1]
    return max(0.0, min(1.0, (avg - 1.0) / 4.0))


def preference_score(movie: CandidateMovie, profile: BehaviorProfile) -> float:
    """
    Mean affinity over the movie's genres and directors the user has rated,
    plus its genres' affinity from recorded interactions.
    """
    rp = profile.rating_patterns
    learned = profile.interaction_affinity.genre_affinity
    known = [
        _affinity(rp.genre_rating_averages[g])
        for g in movie.genres
        if g in rp.genre_rating_averages
    ] + [
        _affinity(rp.director_rating_averages[d])
        for d in movie.directors
        if d in rp.director_rating_averages
    ] + [learned[g] for g in movie.genres if g in learned]
    return float(np.mean(known)) if known else 0.0


def _lower(items: Iterable[str]) -> Set[str]:
    return {s.strip().lower() for s in items if s and s.strip()}


def attach_signals(
    candidates: Sequence[CandidateMovie],
    profile: BehaviorProfile,
    *,
    context: str | None,
    preferred_actors: Sequence[str] = (),
    semantic_scores: Mapping[MovieId, float] | None = None,
    now: datetime,
) -> List[CandidateMovie]:
    """Return copies of the candidates with per-request scoring signals filled in."""
    top = set(profile.top_genres())
    loyal_directors = set(profile.intelligence_insights.director_loyalty_scores)
    actors = _lower(preferred_actors)
    this_month = set(
        profile.temporal_patterns.seasonal_preferences.get(
            calendar.month_name[now.month], []
        )
    )

    out: List[CandidateMovie] = []
    for movie in candidates:
        if semantic_scores is not None and movie.movie_id in semantic_scores:
            semantic = as_number(semantic_scores[movie.movie_id])
        else:
            semantic = keyword_similarity(context, movie)
        out.append(
            dataclasses.replace(
                movie,
                semantic_score=clamp01(semantic),
                preference_score=preference_score(movie, profile),
                has_genre_match=bool(top.intersection(movie.genres)),
                is_recent_release=(
                    movie.release_year is not None
                    and 0 <= now.year - movie.release_year <= RECENT_RELEASE_YEARS
                ),
                has_preferred_director=bool(loyal_directors.intersection(movie.directors)),
                has_preferred_actor=bool(actors & _lower(movie.cast)),
                is_seasonal_trending=bool(this_month.intersection(movie.genres)),
            )
        )
    return out
