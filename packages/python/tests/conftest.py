from datetime import datetime, timezone
from typing import Any, Dict, List

import pytest

from cineai_core.types import (
    CandidateMovie,
    RatingRecord,
    SearchCriteria,
    UserInteractionRecord,
    WatchlistEntry,
)

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)  # a Saturday


@pytest.fixture()
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def now() -> datetime:
    return NOW


class FakeHistory:
    """
    In-memory InteractionHistory + InteractionSink; set `fail` to make every read raise.

    Recorded interactions are also readable through get_interactions.
    """

    def __init__(self):
        self.ratings: List[RatingRecord] = []
        self.watchlist: List[WatchlistEntry] = []
        self.interactions: List[UserInteractionRecord] = []
        self.recorded: List[tuple] = []
        self.fail = False
        self.fail_writes = False

    def _check(self):
        if self.fail:
            raise RuntimeError("history backend down")

    async def get_ratings(self, user_id: str) -> List[RatingRecord]:
        self._check()
        return list(self.ratings)

    async def get_watchlist(self, user_id: str) -> List[WatchlistEntry]:
        self._check()
        return list(self.watchlist)

    async def get_interactions(self, user_id: str, since=None):
        self._check()
        return [r for r in self.interactions if since is None or r.occurred_at >= since]

    async def record_interaction(self, user_id: str, record: UserInteractionRecord):
        if self.fail_writes:
            raise RuntimeError("insert failed")
        self.recorded.append((user_id, record))
        self.interactions.append(record)


class FakeCatalog:
    """
    Returns `movies` filtered by genre and exclude_ids.

    `errors` is consumed one per call before any results are returned.
    """

    def __init__(self, movies: List[CandidateMovie] | None = None):
        self.movies = list(movies or [])
        self.errors: List[Exception] = []
        self.calls: List[SearchCriteria] = []

    async def search(self, criteria: SearchCriteria) -> List[CandidateMovie]:
        self.calls.append(criteria)
        if self.errors:
            raise self.errors.pop(0)
        found = [
            m
            for m in self.movies
            if m.movie_id not in criteria.exclude_ids
            and (not criteria.genres or set(m.genres) & set(criteria.genres))
        ]
        return found[: criteria.limit]


class FakeWeightSource:
    def __init__(self, document: Dict[str, Any] | None = None):
        self.document = document
        self.reads = 0
        self.writes: List[Dict[str, Any]] = []
        self.fail = False

    async def read(self):
        self.reads += 1
        if self.fail:
            raise OSError("disk unavailable")
        return self.document

    async def write(self, document: Dict[str, Any]) -> None:
        self.writes.append(document)
        self.document = document


class FakeClock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


@pytest.fixture()
def history() -> FakeHistory:
    return FakeHistory()


@pytest.fixture()
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def weight_source() -> FakeWeightSource:
    return FakeWeightSource(
        {
            "weights": {
                "semantic": {"base": 0.4, "description": "semantic sim"},
                "rating": {"base": 0.25},
                "popularity": {"base": 0.15},
                "recency": {"base": 0.1},
                "preference": {"genreMatch": 0.1},
            },
            "boosts": {"genreMatch": 0.2, "topRated": 0.15},
            "thresholds": {"highConfidence": 0.8},
            "version": "1.0",
            "experiment": "holdout-b",
        }
    )
