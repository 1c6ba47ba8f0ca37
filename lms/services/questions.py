"""Question bank administration.

Admins upload question sets as JSON files of the form

    {"questions": [{"question": ..., "options": [...], "correctOption": 0,
                    "subject": ..., "topic": ..., "difficulty": "beginner"}]}

An upload is all-or-nothing: every record is validated before the first
write, and the questions plus their ``quizzes/{id}`` summary are committed
in one batch.  That caps an upload at MAX_QUESTIONS_PER_UPLOAD questions.
Each stored question carries the ``quizId`` of the set it came in.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from lms.core.errors import NotFoundError, ValidationFailed
from lms.core.metrics import QUESTION_IMPORTS
from lms.models.base import iso_timestamp, utc_now
from lms.models.question import Difficulty, DifficultyBreakdown, Question, QuestionSet
from lms.services.progress import Clock
from lms.stores.document_store import (
    MAX_BATCH_WRITES,
    DocumentStore,
    FieldFilter,
    document_path,
    new_document_id,
)

logger = logging.getLogger(__name__)

QUESTIONS = "questions"
QUIZZES = "quizzes"

# One batch holds the questions plus the set summary.
MAX_QUESTIONS_PER_UPLOAD = MAX_BATCH_WRITES - 1

_FORMAT_HINT = (
    "Each question must have: question text, options array, correctOption "
    "number, subject, topic, and difficulty level (beginner/intermediate/advanced)"
)


class QuestionImportError(ValidationFailed):
    """The uploaded file was rejected; nothing was written."""


class QuizNotFound(NotFoundError):
    def __init__(self, quiz_id: str) -> None:
        super().__init__(f"Quiz not found: {quiz_id}")


@dataclass(frozen=True, slots=True)
class QuestionFilter:
    """Admin screen filters.  ``None`` means "all"."""

    subject: str | None = None
    topic: str | None = None
    difficulty: str | None = None

    @classmethod
    def from_params(
        cls,
        subject: str | None = None,
        topic: str | None = None,
        difficulty: str | None = None,
    ) -> QuestionFilter:
        def norm(value: str | None) -> str | None:
            if value is None or value.strip() == "" or value.strip().lower() == "all":
                return None
            return value.strip()

        return cls(norm(subject), norm(topic), norm(difficulty))

    def matches(self, question: Question) -> bool:
        if self.subject is not None and question.subject != self.subject:
            return False
        if self.topic is not None and question.topic != self.topic:
            return False
        if (
            self.difficulty is not None
            and question.difficulty.value != self.difficulty.lower()
        ):
            return False
        return True

    def label(self, field: str) -> str:
        return getattr(self, field) or "all"


@dataclass(frozen=True, slots=True)
class QuestionStatistics:
    total: int
    by_subject: dict[str, int]
    by_topic: dict[str, int]
    by_difficulty: DifficultyBreakdown


@dataclass(frozen=True, slots=True)
class ExportFile:
    filename: str
    payload: Any


def validate_records(records: list[Any]) -> list[Question]:
    """Validate every record or raise on the first bad one."""
    questions: list[Question] = []
    for idx, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise QuestionImportError(
                f"Invalid question format at index {idx}. {_FORMAT_HINT}"
            )
        try:
            questions.append(Question.model_validate(dict(record)))
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
            raise QuestionImportError(
                f"Invalid question format at index {idx} "
                f"({', '.join(fields) or 'record'}). {_FORMAT_HINT}"
            ) from None
    return questions


class QuestionBankService:
    def __init__(self, store: DocumentStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def import_questions(
        self,
        payload: Any,
        title: str,
        description: str = "",
        actor: str | None = None,
        id_factory: Callable[[], str] = new_document_id,
    ) -> QuestionSet:
        try:
            if not title or not title.strip():
                raise QuestionImportError("Please enter a title for the question set")
            if not isinstance(payload, Mapping) or not isinstance(
                payload.get("questions"), list
            ):
                raise QuestionImportError("Quiz file must contain a 'questions' array")
            if len(payload["questions"]) > MAX_QUESTIONS_PER_UPLOAD:
                raise QuestionImportError(
                    f"Quiz file has {len(payload['questions'])} questions; split it "
                    f"into files of at most {MAX_QUESTIONS_PER_UPLOAD}"
                )
            questions = validate_records(payload["questions"])
            if not questions:
                raise QuestionImportError("Quiz file contains no questions")
        except QuestionImportError as e:
            QUESTION_IMPORTS.labels(result="rejected").inc()
            logger.warning("Question import rejected title=%r: %s", title, e.message)
            raise

        now = iso_timestamp(self._clock())
        title = title.strip()
        quiz_id = id_factory()
        batch = self._store.batch()
        for q in questions:
            stored = q.model_copy(
                update={
                    "quiz_id": quiz_id,
                    "set_title": title,
                    "set_description": description,
                    "created_at": now,
                }
            )
            batch.set(document_path(QUESTIONS, id_factory()), stored.to_document())

        quiz = QuestionSet(
            id=quiz_id,
            title=title,
            description=description,
            question_count=len(questions),
            difficulty_breakdown=DifficultyBreakdown.of(questions),
            created_at=now,
            created_by=actor,
        )
        batch.set(document_path(QUIZZES, quiz_id), quiz.to_document())
        await batch.commit()

        QUESTION_IMPORTS.labels(result="accepted").inc()
        logger.info(
            "Imported %d questions into quiz=%s title=%r",
            len(questions),
            quiz.id,
            title,
        )
        return quiz

    async def list_questions(
        self, filters: QuestionFilter | None = None
    ) -> list[Question]:
        filters = filters or QuestionFilter()
        where: list[FieldFilter] = []
        if filters.subject is not None:
            where.append(FieldFilter("subject", "==", filters.subject))
        if filters.topic is not None:
            where.append(FieldFilter("topic", "==", filters.topic))
        docs = await self._store.query(QUESTIONS, where=where)
        # Difficulty is matched here: older uploads stored it in mixed case.
        return [q for q in (Question.from_document(d) for d in docs) if filters.matches(q)]

    async def statistics(self) -> QuestionStatistics:
        questions = await self.list_questions()
        return QuestionStatistics(
            total=len(questions),
            by_subject=dict(Counter(q.subject for q in questions)),
            by_topic=dict(Counter(q.topic for q in questions)),
            by_difficulty=DifficultyBreakdown.of(questions),
        )

    async def export_questions(self, filters: QuestionFilter | None = None) -> ExportFile:
        filters = filters or QuestionFilter()
        questions = await self.list_questions(filters)
        stamp = iso_timestamp(self._clock())
        filename = (
            f"questions-{filters.label('subject')}-{filters.label('topic')}"
            f"-{filters.label('difficulty')}-{stamp}.json"
        )
        return ExportFile(
            filename=filename,
            payload={"questions": [q.authoring_fields() for q in questions]},
        )

    async def delete_questions(self, filters: QuestionFilter | None = None) -> int:
        """Delete every matching question and return the count.

        Matches beyond one batch's worth are deleted in several batches, so a
        store failure part-way can leave some of them in place.
        """
        questions = await self.list_questions(filters)
        for start in range(0, len(questions), MAX_BATCH_WRITES):
            batch = self._store.batch()
            for q in questions[start : start + MAX_BATCH_WRITES]:
                batch.delete(document_path(QUESTIONS, q.id))
            await batch.commit()
        if questions:
            logger.info("Deleted %d questions filters=%s", len(questions), filters)
        return len(questions)

    async def list_quizzes(self) -> list[QuestionSet]:
        docs = await self._store.query(QUIZZES)
        quizzes = [QuestionSet.from_document(d) for d in docs]
        quizzes.sort(key=lambda q: q.created_at or "", reverse=True)
        return quizzes

    async def delete_quiz(self, quiz_id: str) -> None:
        path = document_path(QUIZZES, quiz_id)
        if await self._store.get(path) is None:
            raise QuizNotFound(quiz_id)
        await self._store.delete(path)
        logger.info("Deleted quiz=%s", quiz_id)

    async def export_quizzes(self, difficulty: str | None = None) -> ExportFile:
        """Export every set with its questions.

        A difficulty keeps only that difficulty's questions inside each set
        and drops sets left empty.  The set summaries are exported as stored.
        """
        level: Difficulty | None = None
        if difficulty and difficulty.lower() != "all":
            try:
                level = Difficulty(difficulty.lower())
            except ValueError:
                raise ValidationFailed(
                    "Difficulty must be beginner, intermediate or advanced"
                ) from None

        members: defaultdict[str, list[Question]] = defaultdict(list)
        wanted = QuestionFilter(difficulty=level.value if level else None)
        for q in await self.list_questions(wanted):
            if q.quiz_id:
                members[q.quiz_id].append(q)

        payload = []
        for quiz in await self.list_quizzes():
            questions = members.get(quiz.id or "", [])
            if level is not None and not questions:
                continue
            entry = quiz.model_dump(by_alias=True, mode="json")
            entry["questions"] = [q.authoring_fields() for q in questions]
            payload.append(entry)

        label = level.value if level else "all"
        stamp = iso_timestamp(self._clock())
        return ExportFile(filename=f"quizzes-{label}-{stamp}.json", payload=payload)
