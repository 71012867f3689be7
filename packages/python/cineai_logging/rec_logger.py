from __future__ import annotations

import logging
import random
import uuid
from typing import Any, Callable, Sequence

import httpx
from fastapi.encoders import jsonable_encoder

from cineai_core.types import ScoredRecommendation

log = logging.getLogger(__name__)

ENDPOINT = "recommendations/personalized"


class TelemetryLogger:
    """
    Best-effort recommendation telemetry posted to Supabase REST.

    - rec_results: one row per ranked recommendation, with its factor breakdown

    Disabled (every call a no-op) when the URL or key is missing or sample is 0.
    Otherwise each request's list is logged with probability `sample`.
    Failures are logged and never raised to the caller.
    """

    def __init__(
        self,
        supabase_url: str,
        api_key: str,
        *,
        sample: float = 1.0,
        timeout_s: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
        rand: Callable[[], float] = random.random,
    ):
        self.supabase_url = (supabase_url or "").rstrip("/")
        self.api_key = api_key or ""
        self.sample = float(max(0.0, min(1.0, sample)))
        self.timeout_s = timeout_s
        self._transport = transport
        self._rand = rand

    def _enabled(self) -> bool:
        return bool(self.supabase_url and self.api_key and self.sample > 0)

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Prefer": "resolution=merge-duplicates",
        }

    async def _post(self, path: str, payload: list[dict[str, Any]]) -> None:
        if not self._enabled() or not payload:
            return
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                r = await client.post(
                    f"{self.supabase_url}/rest/v1/{path}",
                    headers=self._headers(),
                    json=payload,
                    timeout=self.timeout_s,
                )
            if r.status_code not in (200, 201, 204):
                log.warning(
                    "rec_logger POST %s failed %s: %s", path, r.status_code, r.text
                )
        except httpx.HTTPError as e:
            log.warning("rec_logger POST %s error: %s", path, e)

    @staticmethod
    def to_jsonable(x):
        return jsonable_encoder(x, exclude_none=True)

    async def log_recommendations(
        self,
        *,
        user_id: str,
        recommendations: Sequence[ScoredRecommendation],
        weights_version: str | None = None,
        query_id: str | None = None,
    ) -> None:
        """
        Insert one rec_results row per final recommendation.
        """
        if not self._enabled() or not recommendations:
            return
        if self.sample < 1.0 and self._rand() >= self.sample:
            return
        qid = query_id or uuid.uuid4().hex
        rows = []
        for rank, rec in enumerate(recommendations, start=1):
            rows.append(
                {
                    "endpoint": ENDPOINT,
                    "query_id": qid,
                    "user_id": user_id,
                    "media_type": "movie",
                    "media_id": rec.movie_id,
                    "rank": rank,
                    "title": rec.movie.title,
                    "score_final": rec.confidence_score,
                    "meta_breakdown": self.to_jsonable(
                        {
                            "factors": [
                                {
                                    "feature": f.feature,
                                    "value": f.value,
                                    "weight": f.weight,
                                    "contribution": f.contribution,
                                }
                                for f in rec.factors
                            ],
                            "tier": rec.confidence_tier.value,
                            "novelty_penalty": rec.novelty_penalty,
                            "original_score": rec.original_score,
                            "weights_version": weights_version,
                        }
                    ),
                    "stage": "final",
                }
            )
        await self._post("rec_results", rows)
