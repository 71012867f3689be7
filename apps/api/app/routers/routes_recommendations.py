from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from app.deps.deps_recommendation import (
    get_behavior_analyzer,
    get_recommendation_engine,
)
from app.deps.supabase_client import get_current_user_id
from app.schemas import (
    LearningSignalAccepted,
    LearningSignalRequest,
    RecommendationOut,
    RecommendationRequest,
    RecommendationsResponse,
)
from cineai_behavior.analyzer import BehavioralAnalyzer
from cineai_behavior.schemas import BehaviorProfile
from cineai_core.errors import RecommendationUnavailable, WeightValidationError
from cineai_recommendation.engine import RecommendationEngine
from cineai_recommendation.types import RecommendationOptions

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


@router.post("", response_model=RecommendationsResponse)
async def recommend(
    req: RecommendationRequest,
    user_id: str = Depends(get_current_user_id),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
):
    options = RecommendationOptions(**req.model_dump())
    try:
        recs = await engine.generate_recommendations(user_id, options)
    except WeightValidationError as e:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, {"error": str(e), "field": e.field}
        )
    except RecommendationUnavailable as e:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, str(e))

    items = [RecommendationOut.from_scored(r) for r in recs]
    return RecommendationsResponse(recommendations=items, count=len(items))


@router.post(
    "/signals",
    response_model=LearningSignalAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def record_signal(
    req: LearningSignalRequest,
    background: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
):
    # fire-and-forget; the engine logs and swallows sink failures
    background.add_task(
        engine.record_learning_signal,
        user_id,
        req.movie_id,
        req.action,
        req.value,
        req.context,
        genres=req.genres,
    )
    return LearningSignalAccepted()


@router.get("/behavior", response_model=BehaviorProfile)
async def behavior_profile(
    user_id: str = Depends(get_current_user_id),
    analyzer: BehavioralAnalyzer = Depends(get_behavior_analyzer),
):
    return await analyzer.analyze_complete_user_behavior(user_id)
