from datetime import datetime, timedelta, timezone

from cineai_core.types import CandidateMovie, InteractionKind, RatingRecord

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def _movies():
    return [
        CandidateMovie(movie_id=1, title="Arrival", genres=["Sci-Fi"], rating=7.9,
                       release_year=2016, overview="A linguist meets aliens."),
        CandidateMovie(movie_id=2, title="Heat", genres=["Crime"], rating=8.3,
                       release_year=1995),
        CandidateMovie(movie_id=3, title="Clue", genres=["Comedy"], rating=7.2,
                       release_year=1985),
    ]


def test_recommendations_return_scored_list(api):
    api.catalog.movies = _movies()
    res = api.client.post("/recommendations", json={"count": 2, "context": "aliens"})
    assert res.status_code == 200
    data = res.json()
    assert data["count"] == 2
    recs = data["recommendations"]
    assert recs[0]["movie_id"] == 1
    assert recs[0]["confidence_tier"] in {"high", "medium", "low"}
    assert recs[0]["explanation"]
    assert any(f["feature"] == "semantic" for f in recs[0]["factors"])
    scores = [r["confidence_score"] for r in recs]
    assert scores == sorted(scores, reverse=True)


def test_recommendations_exclude_rated(api):
    api.catalog.movies = _movies()
    api.history.ratings = [
        RatingRecord(movie_id=1, rating=3, rated_at=NOW - timedelta(days=60))
    ]
    res = api.client.post("/recommendations", json={})
    assert 1 not in [r["movie_id"] for r in res.json()["recommendations"]]


def test_recommendations_catalog_down_503(api):
    api.catalog.error = RuntimeError("catalog down")
    res = api.client.post("/recommendations", json={})
    assert res.status_code == 503


def test_recommendations_bad_factor_400(api):
    api.catalog.movies = _movies()
    res = api.client.post("/recommendations", json={"factors": {"vibes": 0.3}})
    assert res.status_code == 400
    assert res.json()["detail"]["field"] == "vibes"


def test_recommendations_empty_catalog(api):
    res = api.client.post("/recommendations", json={})
    assert res.status_code == 200
    assert res.json() == {"recommendations": [], "count": 0}


def test_learning_signal_accepted(api):
    res = api.client.post(
        "/recommendations/signals",
        json={"movie_id": 2, "action": "rating", "value": 4, "genres": ["Crime"]},
    )
    assert res.status_code == 202
    assert res.json() == {"accepted": True}
    # background task runs before TestClient returns
    [(user_id, record)] = api.history.recorded
    assert record.kind == InteractionKind.RATING
    assert record.value == 4


def test_learning_signal_unknown_action_still_202(api):
    res = api.client.post(
        "/recommendations/signals", json={"movie_id": 2, "action": "teleport"}
    )
    assert res.status_code == 202
    assert api.history.recorded == []


def test_behavior_profile_for_new_user(api):
    res = api.client.get("/recommendations/behavior")
    assert res.status_code == 200
    data = res.json()
    assert data["rating_patterns"]["total_ratings"] == 0
    assert data["rating_patterns"]["average_rating"] == 0
    assert data["watchlist_patterns"]["completion_rate"] == 0
    assert data["intelligence_insights"]["exploration_vs_comfort_ratio"] == 0.5
