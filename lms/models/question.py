from __future__ import annotations

from enum import StrEnum
from typing import Annotated

from pydantic import Field, StringConstraints, field_validator

from lms.models.base import Record

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Difficulty(StrEnum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# Fields an author supplies in an upload file and gets back in an export.
AUTHORING_FIELDS = (
    "question",
    "options",
    "correct_option",
    "subject",
    "topic",
    "difficulty",
)


class Question(Record):
    id: str | None = None
    question: NonBlank
    options: Annotated[list[str], Field(min_length=1)]
    correct_option: int
    subject: NonBlank
    topic: NonBlank
    difficulty: Difficulty
    quiz_id: str | None = None
    set_title: str | None = None
    set_description: str | None = None
    created_at: str | None = None

    @field_validator("correct_option", mode="before")
    @classmethod
    def _whole_number(cls, value: object) -> object:
        # JSON has a single number type, so 1.0 is index 1.  Booleans and
        # numeric strings are not indexes.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("correctOption must be a number")
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError("correctOption must be a whole number")
            return int(value)
        return value

    @field_validator("difficulty", mode="before")
    @classmethod
    def _lowercase(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    def authoring_fields(self) -> dict[str, object]:
        return self.model_dump(
            by_alias=True, include=set(AUTHORING_FIELDS), mode="json"
        )


class DifficultyBreakdown(Record):
    beginner: int = 0
    intermediate: int = 0
    advanced: int = 0

    @classmethod
    def of(cls, questions: list[Question]) -> DifficultyBreakdown:
        counts = {d.value: 0 for d in Difficulty}
        for q in questions:
            counts[q.difficulty.value] += 1
        return cls(**counts)

    def count(self, difficulty: Difficulty) -> int:
        return getattr(self, difficulty.value)


class QuestionSet(Record):
    """``quizzes/{id}``: one uploaded batch and its difficulty summary."""

    id: str | None = None
    title: str
    description: str = ""
    question_count: int = 0
    difficulty_breakdown: DifficultyBreakdown = Field(
        default_factory=DifficultyBreakdown
    )
    created_at: str | None = None
    created_by: str | None = None


class LeaderboardEntry(Record):
    id: str | None = None
    user: str
    score: float = 0
