from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List

from anyio import to_thread
from postgrest.exceptions import APIError as PostgrestAPIError

from cineai_core.errors import Conflict, Forbidden
from cineai_core.types import (
    InteractionKind,
    RatingRecord,
    UserInteractionRecord,
    WatchlistEntry,
)

RATINGS_TABLE = "ratings"
WATCHLIST_TABLE = "watchlist"
INTERACTIONS_TABLE = "user_interactions"
MAX_ROWS = 5000  # safety cap per history fetch

MOVIE_EMBED = "movies ( id, title, year, genre, director, plot )"


def _map_pgrest(e: PostgrestAPIError) -> Exception:
    code = getattr(e, "code", None) or ""
    # Postgres / PostgREST error codes:
    # 23505 unique_violation, 42501 insufficient_privilege (RLS), 23503 foreign_key_violation
    if code == "23505":
        return Conflict("duplicate")
    if code == "42501":
        return Forbidden("permission denied")
    if code == "23503":
        return Conflict("foreign key violation")
    return e  # let unexpected ones bubble up to 500


def _ensure_ts(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    # PostgREST may hand back naive timestamps for `timestamp` columns
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _movie(row: dict) -> dict:
    movie = row.get("movies")
    return movie if isinstance(movie, dict) else {}


def _row_to_rating(row: dict) -> RatingRecord:
    movie = _movie(row)
    return RatingRecord(
        movie_id=row.get("movie_id") or movie.get("id"),
        rating=row["rating"],
        rated_at=_ensure_ts(row.get("created_at")),
        title=movie.get("title") or "",
        genres=movie.get("genre") or [],
        directors=movie.get("director") or [],
        overview=movie.get("plot"),
    )


def _row_to_watchlist(row: dict) -> WatchlistEntry:
    movie = _movie(row)
    watched_at = _ensure_ts(row.get("watched_at"))
    return WatchlistEntry(
        movie_id=row.get("movie_id") or movie.get("id"),
        added_at=_ensure_ts(row.get("added_at")),
        watched=bool(row.get("watched")) or watched_at is not None,
        watched_at=watched_at,
        title=movie.get("title") or "",
        genres=movie.get("genre") or [],
        directors=movie.get("director") or [],
    )


def _row_to_interaction(row: dict) -> UserInteractionRecord:
    return UserInteractionRecord(
        movie_id=row["movie_id"],
        kind=InteractionKind(row["interaction_type"]),
        occurred_at=_ensure_ts(row.get("created_at")),
        value=row.get("value"),
        genres=row.get("genres") or [],
        context=row.get("context") or {},
    )


class SupabaseInteractionHistoryRepo:
    """Ratings, watchlist and raw interaction events for one user."""

    def __init__(self, client):
        self.client = client

    # ---------- Async facade (runs sync work in threadpool) ----------
    async def get_ratings(self, user_id: str) -> List[RatingRecord]:
        return await to_thread.run_sync(self._get_ratings_sync, user_id)

    async def get_watchlist(self, user_id: str) -> List[WatchlistEntry]:
        return await to_thread.run_sync(self._get_watchlist_sync, user_id)

    async def get_interactions(
        self, user_id: str, since: datetime | None = None
    ) -> List[UserInteractionRecord]:
        return await to_thread.run_sync(self._get_interactions_sync, user_id, since)

    async def record_interaction(
        self, user_id: str, record: UserInteractionRecord
    ) -> None:
        await to_thread.run_sync(self._record_interaction_sync, user_id, record)

    # ---------- Private sync implementations ----------
    def _get_ratings_sync(self, user_id: str) -> List[RatingRecord]:
        try:
            res = (
                self.client.table(RATINGS_TABLE)
                .select(f"movie_id, rating, created_at, {MOVIE_EMBED}")
                .eq("user_id", user_id)
                .not_.is_("rating", None)
                .order("created_at", desc=True)
                .limit(MAX_ROWS)
                .execute()
            )
        except PostgrestAPIError as e:
            raise _map_pgrest(e)
        return [_row_to_rating(r) for r in (res.data or [])]

    def _get_watchlist_sync(self, user_id: str) -> List[WatchlistEntry]:
        try:
            res = (
                self.client.table(WATCHLIST_TABLE)
                .select(f"movie_id, added_at, watched, watched_at, {MOVIE_EMBED}")
                .eq("user_id", user_id)
                .order("added_at", desc=True)
                .limit(MAX_ROWS)
                .execute()
            )
        except PostgrestAPIError as e:
            raise _map_pgrest(e)
        return [_row_to_watchlist(r) for r in (res.data or [])]

    def _get_interactions_sync(
        self, user_id: str, since: datetime | None
    ) -> List[UserInteractionRecord]:
        q = (
            self.client.table(INTERACTIONS_TABLE)
            .select("movie_id, interaction_type, value, genres, context, created_at")
            .eq("user_id", user_id)
            .in_("interaction_type", [k.value for k in InteractionKind])
        )
        if since is not None:
            q = q.gte("created_at", since.isoformat())
        try:
            res = q.order("created_at", desc=True).limit(MAX_ROWS).execute()
        except PostgrestAPIError as e:
            raise _map_pgrest(e)
        return [_row_to_interaction(r) for r in (res.data or [])]

    def _record_interaction_sync(
        self, user_id: str, record: UserInteractionRecord
    ) -> None:
        payload = {
            "user_id": user_id,
            "movie_id": record.movie_id,
            "interaction_type": record.kind.value,
            "value": record.value,
            "genres": list(record.genres),
            "context": record.context,
            "created_at": record.occurred_at.isoformat(),
        }
        try:
            self.client.table(INTERACTIONS_TABLE).insert(payload).execute()
        except PostgrestAPIError as e:
            raise _map_pgrest(e)
