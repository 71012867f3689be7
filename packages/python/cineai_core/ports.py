from __future__ import annotations

from datetime import datetime
from typing import List, Protocol

from .types import (
    CandidateMovie,
    RatingRecord,
    SearchCriteria,
    UserInteractionRecord,
    WatchlistEntry,
)


class MovieCatalog(Protocol):
    async def search(self, criteria: SearchCriteria) -> List[CandidateMovie]: ...


class InteractionHistory(Protocol):
    async def get_ratings(self, user_id: str) -> List[RatingRecord]: ...

    async def get_watchlist(self, user_id: str) -> List[WatchlistEntry]: ...

    async def get_interactions(
        self, user_id: str, since: datetime | None = None
    ) -> List[UserInteractionRecord]: ...


class InteractionSink(Protocol):
    async def record_interaction(
        self, user_id: str, record: UserInteractionRecord
    ) -> None: ...
