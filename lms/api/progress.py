"""Progress endpoints.

GET recomputes the percentage from the completion map on every call and
writes it back, so the cached figure on ``courseProgress`` is never
served stale.
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import Field

from lms.api.dependencies import CurrentUser, ServicesDep
from lms.api.schemas import CamelModel, ProgressOut

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class CompleteIn(CamelModel):
    module_id: str
    sub_course_id: str
    score: float = Field(ge=0, le=100)
    attempts: int = Field(default=1, ge=1)


@router.get("/{course_id}", response_model=ProgressOut)
async def get_progress(
    course_id: str, principal: CurrentUser, services: ServicesDep
) -> ProgressOut:
    return ProgressOut.of(
        await services.progress.get_progress(principal.user_id, course_id)
    )


@router.post("/{course_id}/complete", response_model=ProgressOut)
async def complete_sub_course(
    course_id: str,
    payload: CompleteIn,
    principal: CurrentUser,
    services: ServicesDep,
) -> ProgressOut:
    return ProgressOut.of(
        await services.progress.complete_sub_course(
            principal.user_id,
            course_id,
            payload.module_id,
            payload.sub_course_id,
            payload.score,
            payload.attempts,
        )
    )
