from fastapi import Depends

from app.deps.deps import get_settings, get_telemetry, get_weight_store
from app.deps.supabase_client import get_supabase_client
from cineai_behavior.analyzer import BehavioralAnalyzer
from cineai_catalog.supabase_repo import SupabaseMovieCatalogRepo
from cineai_interactions.supabase_repo import SupabaseInteractionHistoryRepo
from cineai_memory.memory_filter import MemoryFilter, NoveltyParams
from cineai_recommendation.engine import RecommendationEngine


def get_history_repo(
    client=Depends(get_supabase_client),
) -> SupabaseInteractionHistoryRepo:
    return SupabaseInteractionHistoryRepo(client)


def get_catalog_repo(client=Depends(get_supabase_client)) -> SupabaseMovieCatalogRepo:
    return SupabaseMovieCatalogRepo(client)


def get_behavior_analyzer(
    history: SupabaseInteractionHistoryRepo = Depends(get_history_repo),
) -> BehavioralAnalyzer:
    return BehavioralAnalyzer(history)


def get_recommendation_engine(
    history: SupabaseInteractionHistoryRepo = Depends(get_history_repo),
    catalog: SupabaseMovieCatalogRepo = Depends(get_catalog_repo),
    analyzer: BehavioralAnalyzer = Depends(get_behavior_analyzer),
    weights=Depends(get_weight_store),
    telemetry=Depends(get_telemetry),
    settings=Depends(get_settings),
) -> RecommendationEngine:
    memory = MemoryFilter(
        history, params=NoveltyParams(window_hours=settings.novelty_window_hours)
    )
    return RecommendationEngine(
        analyzer=analyzer,
        catalog=catalog,
        memory=memory,
        weights=weights,
        sink=history,
        telemetry=telemetry,
    )
