from __future__ import annotations

import re
from typing import List

from anyio import to_thread
from postgrest.exceptions import APIError as PostgrestAPIError

from cineai_core.errors import Forbidden
from cineai_core.types import CandidateMovie, SearchCriteria

TABLE = "movies"
COLUMNS = "id, title, year, genre, director, cast, plot, rating, popularity"
MAX_IN = 200  # keep matches PostgREST URL/param safety

# characters with meaning inside a PostgREST or= filter
_FILTER_META = re.compile(r"[,()%*\\]")


def _row_to_candidate(row: dict) -> CandidateMovie:
    return CandidateMovie(
        movie_id=int(row["id"]),
        title=row.get("title") or "",
        genres=list(row.get("genre") or []),
        rating=row.get("rating"),
        popularity=row.get("popularity"),
        release_year=row.get("year"),
        overview=row.get("plot"),
        directors=list(row.get("director") or []),
        cast=list(row.get("cast") or []),
    )


class SupabaseMovieCatalogRepo:
    def __init__(self, client):
        self.client = client

    # ---------- Async facade ----------
    async def search(self, criteria: SearchCriteria) -> List[CandidateMovie]:
        return await to_thread.run_sync(self._search_sync, criteria)

    # ---------- Private sync impls ----------
    def _search_sync(self, criteria: SearchCriteria) -> List[CandidateMovie]:
        q = self.client.table(TABLE).select(COLUMNS)
        if criteria.genres:
            q = q.overlaps("genre", list(criteria.genres))
        text = _FILTER_META.sub(" ", criteria.query or "").strip()
        if text:
            q = q.or_(f"title.ilike.*{text}*,plot.ilike.*{text}*")
        if criteria.exclude_ids:
            q = q.not_.in_("id", list(criteria.exclude_ids)[:MAX_IN])
        try:
            res = q.order("rating", desc=True).limit(criteria.limit).execute()
        except PostgrestAPIError as e:
            if (getattr(e, "code", None) or "") == "42501":
                raise Forbidden("permission denied")
            raise
        return [_row_to_candidate(r) for r in (res.data or [])]
