from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Sequence

from cineai_behavior.schemas import BehaviorProfile
from cineai_core.config import CANDIDATE_POOL_MULTIPLIER, MIN_CANDIDATE_POOL
from cineai_core.errors import RecommendationUnavailable
from cineai_core.ports import InteractionSink, MovieCatalog
from cineai_core.types import (
    CandidateMovie,
    InteractionKind,
    MovieId,
    ScoredRecommendation,
    SearchCriteria,
    UserInteractionRecord,
)
from cineai_logging.rec_logger import TelemetryLogger
from cineai_scoring.confidence import ConfidenceScorer

from .signals import attach_signals
from .types import (
    BehaviorSource,
    RecommendationOptions,
    SeenFilter,
    SemanticScorer,
    WeightsProvider,
)

log = logging.getLogger(__name__)

MAX_SEARCH_LIMIT = 500

LEARNING_ACTIONS: Dict[str, InteractionKind] = {
    "rating": InteractionKind.RATING,
    "watchlist_add": InteractionKind.WATCHLIST_ADD,
    "watched": InteractionKind.WATCHLIST_WATCHED,
    "watchlist_watched": InteractionKind.WATCHLIST_WATCHED,
    "view": InteractionKind.VIEW,
    "chat_signal": InteractionKind.CHAT_SIGNAL,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def rank_key(rec: ScoredRecommendation):
    # score desc, catalog rating desc, then id for a stable total order
    return (-rec.confidence_score, -(rec.movie.rating or 0.0), rec.movie_id)


class RecommendationEngine:
    """
    Personalized ranking for one user request.

    profile -> candidate search -> signals -> weights -> score
    -> memory filter + novelty -> sort/truncate -> telemetry
    """

    def __init__(
        self,
        *,
        analyzer: BehaviorSource,
        catalog: MovieCatalog,
        memory: SeenFilter,
        weights: WeightsProvider,
        scorer: ConfidenceScorer | None = None,
        sink: InteractionSink | None = None,
        semantic: SemanticScorer | None = None,
        telemetry: TelemetryLogger | None = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.analyzer = analyzer
        self.catalog = catalog
        self.memory = memory
        self.weights = weights
        self.scorer = scorer or ConfidenceScorer(current_year=lambda: now().year)
        self.sink = sink
        self.semantic = semantic
        self.telemetry = telemetry
        self._now = now

    async def generate_recommendations(
        self, user_id: str, options: RecommendationOptions | None = None
    ) -> List[ScoredRecommendation]:
        opts = options or RecommendationOptions()

        profile = await self._profile(user_id)
        genres = profile.top_genres()
        pool = min(
            MAX_SEARCH_LIMIT, max(MIN_CANDIDATE_POOL, opts.count * CANDIDATE_POOL_MULTIPLIER)
        )
        seen = await self._seen_ids(user_id) if opts.exclude_watched else []
        candidates = await self._fetch_candidates(genres, opts.context, pool, seen)
        if not candidates:
            log.info("No candidates found for %s", user_id)
            return []

        semantic_scores = await self._semantic_scores(opts.context, candidates)
        candidates = attach_signals(
            candidates,
            profile,
            context=opts.context,
            preferred_actors=opts.preferred_actors,
            semantic_scores=semantic_scores,
            now=self._now(),
        )

        config = await self.weights.get_weights()
        if opts.factors:
            # per-call copy; the cached config is untouched
            config = config.with_overrides(opts.factors)

        scored = [self.scorer.score(c, config) for c in candidates]

        if opts.exclude_watched:
            try:
                scored = await self.memory.filter_unseen_movies(user_id, scored)
                scored = await self.memory.apply_novelty_penalties(user_id, scored)
            except Exception as e:
                log.warning("Memory filtering failed for %s, continuing: %s", user_id, e)

        final = sorted(scored, key=rank_key)[: opts.count]
        log.info(
            "Generated %d recommendations for %s (weights %s, %d candidates)",
            len(final),
            user_id,
            config.version,
            len(candidates),
        )
        await self._log_telemetry(user_id, final, config.version)
        return final

    async def record_learning_signal(
        self,
        user_id: str,
        movie_id: MovieId,
        action: str,
        value: float | None = None,
        context: Mapping[str, Any] | None = None,
        *,
        genres: Sequence[str] = (),
    ) -> bool:
        """Append one learning event. Returns False (after logging) instead of raising."""
        kind = LEARNING_ACTIONS.get(action)
        if kind is None:
            log.warning("Ignoring unknown learning action %r for %s", action, user_id)
            return False
        if self.sink is None:
            log.warning("No interaction sink configured; dropping %s signal", action)
            return False

        record = UserInteractionRecord(
            movie_id=movie_id,
            kind=kind,
            occurred_at=self._now(),
            value=value,
            genres=list(genres),
            context=dict(context or {}),
        )
        try:
            await self.sink.record_interaction(user_id, record)
        except Exception as e:
            log.warning("Failed to record %s signal for %s: %s", action, user_id, e)
            return False
        return True

    # ---------- Private helpers ----------
    async def _profile(self, user_id: str) -> BehaviorProfile:
        try:
            return await self.analyzer.analyze_complete_user_behavior(user_id)
        except Exception as e:
            log.warning("Behavior analysis failed for %s, using empty profile: %s", user_id, e)
            return BehaviorProfile()

    async def _seen_ids(self, user_id: str) -> List[MovieId]:
        try:
            return sorted(await self.memory.seen_movie_ids(user_id))
        except Exception as e:
            log.warning("Could not load seen movies for %s: %s", user_id, e)
            return []

    async def _fetch_candidates(
        self,
        genres: List[str],
        context: str | None,
        limit: int,
        exclude_ids: List[MovieId],
    ) -> List[CandidateMovie]:
        # seen ids are excluded in the query and again after scoring
        attempts = []
        if genres:
            attempts.append(
                SearchCriteria(
                    genres=genres, query=context, exclude_ids=exclude_ids, limit=limit
                )
            )
        attempts.append(
            SearchCriteria(query=context, exclude_ids=exclude_ids, limit=limit)
        )

        failures = 0
        last_error: Exception | None = None
        for criteria in attempts:
            try:
                found = await self.catalog.search(criteria)
            except Exception as e:
                failures += 1
                last_error = e
                log.warning("Candidate search failed (genres=%s): %s", criteria.genres, e)
                continue
            if found:
                return list(found)

        if failures == len(attempts):
            raise RecommendationUnavailable(
                "Movie catalog is unavailable"
            ) from last_error
        return []

    async def _semantic_scores(
        self, context: str | None, candidates: Sequence[CandidateMovie]
    ) -> Mapping[MovieId, float] | None:
        if self.semantic is None or not context:
            return None
        try:
            return await self.semantic.similarity(context, candidates)
        except Exception as e:
            log.warning("Semantic scoring failed, using keyword overlap: %s", e)
            return None

    async def _log_telemetry(
        self, user_id: str, final: List[ScoredRecommendation], version: str
    ) -> None:
        if self.telemetry is None or not final:
            return
        try:
            await self.telemetry.log_recommendations(
                user_id=user_id, recommendations=final, weights_version=version
            )
        except Exception as e:
            log.warning("Recommendation telemetry failed: %s", e)
