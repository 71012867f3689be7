import json

import httpx
import pytest

from cineai_core.types import CandidateMovie
from cineai_logging.rec_logger import TelemetryLogger
from cineai_scoring.confidence import ConfidenceScorer
from cineai_weights.schemas import DEFAULT_WEIGHT_CONFIG

pytestmark = pytest.mark.anyio


def _recs():
    scorer = ConfidenceScorer(current_year=lambda: 2026)
    return [
        scorer.score(
            CandidateMovie(movie_id=i, title=f"M{i}", semantic_score=0.5, rating=8.2),
            DEFAULT_WEIGHT_CONFIG,
        )
        for i in (1, 2)
    ]


async def test_posts_one_row_per_recommendation():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201)

    logger = TelemetryLogger(
        "https://example.supabase.co/", "key", transport=httpx.MockTransport(handler)
    )
    await logger.log_recommendations(
        user_id="u1", recommendations=_recs(), weights_version="1.0", query_id="q1"
    )

    [req] = seen
    assert req.url.path == "/rest/v1/rec_results"
    assert req.headers["apikey"] == "key"
    rows = json.loads(req.content)
    assert [r["rank"] for r in rows] == [1, 2]
    assert rows[0]["query_id"] == "q1"
    assert rows[0]["meta_breakdown"]["weights_version"] == "1.0"
    assert "original_score" not in rows[0]["meta_breakdown"]  # None dropped


async def test_disabled_without_credentials():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("should not post")

    logger = TelemetryLogger("", "", transport=httpx.MockTransport(handler))
    await logger.log_recommendations(user_id="u1", recommendations=_recs())


async def test_http_failures_are_swallowed():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    logger = TelemetryLogger(
        "https://example.supabase.co", "key", transport=httpx.MockTransport(handler)
    )
    await logger.log_recommendations(user_id="u1", recommendations=_recs())


async def test_sample_rate_skips_unsampled_requests():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201)

    draws = iter([0.9, 0.1])
    logger = TelemetryLogger(
        "https://example.supabase.co",
        "key",
        sample=0.5,
        transport=httpx.MockTransport(handler),
        rand=lambda: next(draws),
    )
    await logger.log_recommendations(user_id="u1", recommendations=_recs())
    assert seen == []

    await logger.log_recommendations(user_id="u1", recommendations=_recs())
    assert len(seen) == 1
