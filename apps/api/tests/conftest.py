from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, List

import pytest
from fastapi.testclient import TestClient

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
ADMIN_EMAIL = "admin@example.com"


class FakeHistory:
    def __init__(self):
        self.ratings: List[Any] = []
        self.watchlist: List[Any] = []
        self.interactions: List[Any] = []
        self.recorded: List[tuple] = []

    async def get_ratings(self, user_id):
        return list(self.ratings)

    async def get_watchlist(self, user_id):
        return list(self.watchlist)

    async def get_interactions(self, user_id, since=None):
        return list(self.interactions)

    async def record_interaction(self, user_id, record):
        self.recorded.append((user_id, record))


class FakeCatalog:
    def __init__(self):
        self.movies: List[Any] = []
        self.error: Exception | None = None

    async def search(self, criteria):
        if self.error is not None:
            raise self.error
        found = [m for m in self.movies if m.movie_id not in criteria.exclude_ids]
        return found[: criteria.limit]


@dataclass
class ApiHarness:
    client: TestClient
    weights_path: Any
    history: FakeHistory
    catalog: FakeCatalog
    user: Any = None
    overrides: dict = field(default_factory=dict)


@pytest.fixture()
def api(tmp_path):
    # Import inside the fixture so collection never needs real credentials
    from app.main import app  # type: ignore
    from app.deps.deps import get_settings, get_weight_store
    from app.deps.deps_recommendation import (
        get_behavior_analyzer,
        get_recommendation_engine,
    )
    from app.deps.supabase_client import CurrentUser, get_current_user
    from cineai_behavior.analyzer import BehavioralAnalyzer
    from cineai_memory.memory_filter import MemoryFilter
    from cineai_recommendation.engine import RecommendationEngine
    from cineai_weights.config_source import FileWeightConfigSource
    from cineai_weights.weight_store import WeightConfigStore

    weights_path = tmp_path / "recommender-weights.json"
    store = WeightConfigStore(FileWeightConfigSource(weights_path))
    history = FakeHistory()
    catalog = FakeCatalog()
    settings = SimpleNamespace(
        admin_email_set={ADMIN_EMAIL}, novelty_window_hours=48.0
    )
    analyzer = BehavioralAnalyzer(history, now=lambda: NOW)
    engine = RecommendationEngine(
        analyzer=analyzer,
        catalog=catalog,
        memory=MemoryFilter(history, now=lambda: NOW),
        weights=store,
        sink=history,
        now=lambda: NOW,
    )

    harness = ApiHarness(
        client=TestClient(app),
        weights_path=weights_path,
        history=history,
        catalog=catalog,
        user=CurrentUser(id="00000000-0000-0000-0000-000000000000", email=ADMIN_EMAIL),
    )

    app.dependency_overrides[get_current_user] = lambda: harness.user
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_weight_store] = lambda: store
    app.dependency_overrides[get_behavior_analyzer] = lambda: analyzer
    app.dependency_overrides[get_recommendation_engine] = lambda: engine

    try:
        yield harness
    finally:
        app.dependency_overrides.clear()
