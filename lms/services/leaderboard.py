from __future__ import annotations

from lms.models.question import LeaderboardEntry
from lms.stores.document_store import DocumentStore

LEADERBOARD = "leaderboard"


class LeaderboardService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def top(self, limit: int | None = None) -> list[LeaderboardEntry]:
        docs = await self._store.query(
            LEADERBOARD, order_by="score", descending=True, limit=limit
        )
        return [LeaderboardEntry.from_document(d) for d in docs]
