"""Question bank administration (admin only)."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, File, Form, Query, UploadFile, status
from fastapi.responses import JSONResponse

from lms.api.dependencies import AdminUser, ServicesDep
from lms.api.schemas import CamelModel
from lms.models.question import DifficultyBreakdown, Question, QuestionSet
from lms.services.questions import ExportFile, QuestionFilter, QuestionImportError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["questions"])


class StatisticsOut(CamelModel):
    total: int
    by_subject: dict[str, int]
    by_topic: dict[str, int]
    by_difficulty: DifficultyBreakdown


class DeletedOut(CamelModel):
    deleted: int


def _filters(
    subject: str | None, topic: str | None, difficulty: str | None
) -> QuestionFilter:
    return QuestionFilter.from_params(subject, topic, difficulty)


def _download(export: ExportFile) -> JSONResponse:
    return JSONResponse(
        content=export.payload,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.post(
    "/questions/import",
    response_model=QuestionSet,
    status_code=status.HTTP_201_CREATED,
)
async def import_questions(
    principal: AdminUser,
    services: ServicesDep,
    file: UploadFile = File(...),
    title: str = Form(...),
    description: str = Form(""),
) -> QuestionSet:
    raw = await file.read()
    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise QuestionImportError("Quiz file is not valid JSON") from None
    return await services.questions.import_questions(
        payload, title, description, actor=principal.email or principal.user_id
    )


@router.get("/questions", response_model=list[Question])
async def list_questions(
    _admin: AdminUser,
    services: ServicesDep,
    subject: str | None = Query(default=None),
    topic: str | None = Query(default=None),
    difficulty: str | None = Query(default=None),
) -> list[Question]:
    return await services.questions.list_questions(_filters(subject, topic, difficulty))


@router.get("/questions/statistics", response_model=StatisticsOut)
async def question_statistics(_admin: AdminUser, services: ServicesDep) -> StatisticsOut:
    stats = await services.questions.statistics()
    return StatisticsOut(
        total=stats.total,
        by_subject=stats.by_subject,
        by_topic=stats.by_topic,
        by_difficulty=stats.by_difficulty,
    )


@router.get("/questions/export")
async def export_questions(
    _admin: AdminUser,
    services: ServicesDep,
    subject: str | None = Query(default=None),
    topic: str | None = Query(default=None),
    difficulty: str | None = Query(default=None),
) -> JSONResponse:
    return _download(
        await services.questions.export_questions(_filters(subject, topic, difficulty))
    )


@router.delete("/questions", response_model=DeletedOut)
async def delete_questions(
    principal: AdminUser,
    services: ServicesDep,
    subject: str | None = Query(default=None),
    topic: str | None = Query(default=None),
    difficulty: str | None = Query(default=None),
) -> DeletedOut:
    deleted = await services.questions.delete_questions(
        _filters(subject, topic, difficulty)
    )
    logger.info("Questions deleted by user=%s count=%d", principal.user_id, deleted)
    return DeletedOut(deleted=deleted)


@router.get("/quizzes", response_model=list[QuestionSet])
async def list_quizzes(_admin: AdminUser, services: ServicesDep) -> list[QuestionSet]:
    return await services.questions.list_quizzes()


@router.get("/quizzes/export")
async def export_quizzes(
    _admin: AdminUser,
    services: ServicesDep,
    difficulty: str | None = Query(default=None),
) -> JSONResponse:
    return _download(await services.questions.export_quizzes(difficulty))


@router.delete("/quizzes/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quiz(quiz_id: str, _admin: AdminUser, services: ServicesDep) -> None:
    await services.questions.delete_quiz(quiz_id)
