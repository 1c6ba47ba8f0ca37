"""Course catalog and enrollment endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from lms.api.dependencies import CurrentUser, ServicesDep
from lms.api.schemas import ProgressOut
from lms.models.course import Course

router = APIRouter(prefix="/v1/courses", tags=["courses"])


@router.get("", response_model=dict[str, list[Course]])
async def catalog(
    _principal: CurrentUser,
    services: ServicesDep,
    course_type: str | None = Query(default=None, alias="type"),
) -> dict[str, list[Course]]:
    """Courses grouped by category; coming-soon courses sort last."""
    return await services.courses.catalog(course_type)


@router.get("/enrolled", response_model=list[ProgressOut])
async def enrolled_courses(
    principal: CurrentUser, services: ServicesDep
) -> list[ProgressOut]:
    return [
        ProgressOut.of(p) for p in await services.progress.list_enrolled(principal.user_id)
    ]


@router.get("/{course_id}", response_model=Course)
async def get_course(
    course_id: str, _principal: CurrentUser, services: ServicesDep
) -> Course:
    return await services.courses.get_course(course_id)


@router.post(
    "/{course_id}/enroll",
    response_model=ProgressOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(
    course_id: str, principal: CurrentUser, services: ServicesDep
) -> ProgressOut:
    return ProgressOut.of(await services.progress.enroll(principal.user_id, course_id))
