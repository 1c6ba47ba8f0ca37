from __future__ import annotations

from fastapi import APIRouter, Query

from lms.api.dependencies import CurrentUser, ServicesDep
from lms.models.question import LeaderboardEntry

router = APIRouter(prefix="/v1/leaderboard", tags=["leaderboard"])


@router.get("", response_model=list[LeaderboardEntry])
async def leaderboard(
    _principal: CurrentUser,
    services: ServicesDep,
    limit: int | None = Query(default=None, ge=1, le=500),
) -> list[LeaderboardEntry]:
    return await services.leaderboard.top(limit)
