from datetime import timedelta

import pytest

from cineai_core.types import (
    CandidateMovie,
    InteractionKind,
    RatingRecord,
    UserInteractionRecord,
    WatchlistEntry,
)
from cineai_memory.memory_filter import MemoryFilter, NoveltyParams, genre_overlap
from cineai_scoring.confidence import ConfidenceScorer
from cineai_weights.schemas import DEFAULT_WEIGHT_CONFIG

pytestmark = pytest.mark.anyio


@pytest.fixture()
def memory(history, now):
    return MemoryFilter(history, now=lambda: now)


def _scored(movie_id, genres, semantic=0.8):
    movie = CandidateMovie(
        movie_id=movie_id, title=f"M{movie_id}", genres=genres, semantic_score=semantic
    )
    return ConfidenceScorer(current_year=lambda: 2026).score(movie, DEFAULT_WEIGHT_CONFIG)


async def test_filter_unseen_drops_rated_and_watched(memory, history, now):
    history.ratings = [RatingRecord(movie_id=1, rating=4, rated_at=now)]
    history.watchlist = [
        WatchlistEntry(movie_id=2, added_at=now, watched=True, watched_at=now),
        WatchlistEntry(movie_id=3, added_at=now),
    ]
    items = [CandidateMovie(movie_id=i) for i in (1, 2, 3, 4)]

    once = await memory.filter_unseen_movies("u1", items)
    assert [m.movie_id for m in once] == [3, 4]

    twice = await memory.filter_unseen_movies("u1", once)
    assert twice == once
    assert len(items) == 4  # input untouched


async def test_filter_unseen_works_on_scored(memory, history, now):
    history.ratings = [RatingRecord(movie_id=1, rating=4, rated_at=now)]
    recs = [_scored(1, ["Drama"]), _scored(5, ["Drama"])]
    out = await memory.filter_unseen_movies("u1", recs)
    assert [r.movie_id for r in out] == [5]


async def test_filter_unseen_fails_open(memory, history):
    history.fail = True
    items = [CandidateMovie(movie_id=1), CandidateMovie(movie_id=2)]
    assert await memory.filter_unseen_movies("u1", items) == items


async def test_recent_horror_watch_penalizes_similar(memory, history, now):
    history.watchlist = [
        WatchlistEntry(
            movie_id=100,
            added_at=now - timedelta(days=1),
            watched=True,
            watched_at=now - timedelta(hours=1),
            genres=["Horror"],
        )
    ]
    recs = [
        _scored(1, ["Horror"]),
        _scored(2, ["Horror", "Thriller"]),
        _scored(3, ["Horror", "Mystery", "Thriller"]),
        _scored(4, ["Comedy"]),
    ]
    out = await memory.apply_novelty_penalties("u1", recs)

    by_id = {r.movie_id: r for r in out}
    for movie_id in (1, 2):
        rec = by_id[movie_id]
        assert rec.novelty_penalty is True
        assert rec.original_score == recs[movie_id - 1].confidence_score
        assert rec.confidence_score < rec.original_score
        assert rec.confidence_score == pytest.approx(rec.original_score * 0.8)
    # one shared genre out of three is below the overlap threshold
    assert by_id[3].novelty_penalty is False
    assert by_id[4].novelty_penalty is False
    # originals are never mutated
    assert all(r.novelty_penalty is False for r in recs)


async def test_same_movie_from_interaction_log_is_penalized(memory, history, now):
    history.interactions = [
        UserInteractionRecord(
            movie_id=9,
            kind=InteractionKind.VIEW,
            occurred_at=now - timedelta(hours=3),
        )
    ]
    out = await memory.apply_novelty_penalties("u1", [_scored(9, ["Western"])])
    assert out[0].novelty_penalty is True


async def test_old_interactions_do_not_penalize(memory, history, now):
    history.ratings = [
        RatingRecord(
            movie_id=50, rating=5, rated_at=now - timedelta(days=3), genres=["Horror"]
        )
    ]
    recs = [_scored(1, ["Horror"])]
    assert await memory.apply_novelty_penalties("u1", recs) == recs


async def test_custom_params(history, now):
    history.ratings = [
        RatingRecord(
            movie_id=50, rating=5, rated_at=now - timedelta(days=3), genres=["Horror"]
        )
    ]
    memory = MemoryFilter(
        history,
        params=NoveltyParams(window_hours=96, penalty_multiplier=0.5),
        now=lambda: now,
    )
    rec = _scored(1, ["Horror"])
    out = await memory.apply_novelty_penalties("u1", [rec])
    assert out[0].confidence_score == pytest.approx(rec.confidence_score * 0.5)


async def test_novelty_fails_open(memory, history):
    history.fail = True
    recs = [_scored(1, ["Horror"])]
    assert await memory.apply_novelty_penalties("u1", recs) == recs


def test_genre_overlap():
    assert genre_overlap(["Horror", "Thriller"], frozenset({"Horror"})) == 0.5
    assert genre_overlap([], frozenset({"Horror"})) == 0.0
