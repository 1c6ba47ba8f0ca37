from __future__ import annotations

from typing import Any

from pydantic import Field

from lms.models.base import Record


class CompletionMap(Record):
    """``users/{uid}/completedSubCourses/{courseId}``.

    The source of truth for progress.  ``completed`` maps
    ``"<moduleId>_<subCourseId>"`` to a truthy marker; current writers store
    ``{completedAt, score, attempts}`` but older records hold bare ``true``.
    """

    completed: dict[str, Any] = Field(default_factory=dict)
    first_completed_at: str | None = None
    verification_id: str | None = None
    certificate_generated_at: str | None = None

    @property
    def completed_count(self) -> int:
        return sum(1 for marker in self.completed.values() if marker)

    def latest_completed_at(self) -> str | None:
        stamps = [
            marker["completedAt"]
            for marker in self.completed.values()
            if isinstance(marker, dict) and marker.get("completedAt")
        ]
        return max(stamps) if stamps else None


class EnrollmentProgress(Record):
    """``users/{uid}/courseProgress/{courseId}``: denormalised, never trusted."""

    progress: float = 0
    enrolled_at: str | None = None
    last_updated: str | None = None


class ExamResult(Record):
    course_id: str
    module_id: str
    sub_course_id: str
    score: float
    attempts: int = 1
    highest_score: float
    completed_at: str
