"""Admin reporting endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from lms.api.dependencies import AdminUser, ServicesDep
from lms.api.schemas import CamelModel

router = APIRouter(prefix="/v1/admin", tags=["admin"])


class UserProgressOut(CamelModel):
    user_id: str
    name: str
    email: str
    enrolled_courses: int
    total_exams: int
    passed_exams: int
    failed_exams: int
    average_score: float


@router.get("/progress", response_model=list[UserProgressOut])
async def user_progress_report(
    _admin: AdminUser, services: ServicesDep
) -> list[UserProgressOut]:
    return [
        UserProgressOut(
            user_id=row.user_id,
            name=row.name,
            email=row.email,
            enrolled_courses=row.enrolled_courses,
            total_exams=row.total_exams,
            passed_exams=row.passed_exams,
            failed_exams=row.failed_exams,
            average_score=row.average_score,
        )
        for row in await services.users.progress_report()
    ]
