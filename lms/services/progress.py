"""Enrollment and progress tracking.

Two documents describe a learner's standing in a course:

  users/{uid}/completedSubCourses/{courseId}   which sub-units are done
  users/{uid}/courseProgress/{courseId}        enrolment date and a cached
                                               percentage

The completion map is the source of truth.  The cached percentage is
rewritten from it on every read, so a stale or hand-edited value never
survives a page load.

percent = round(100 * completed / total_sub_units), 0 for an empty course.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from lms.core.errors import (
    AlreadyEnrolled,
    NotEnrolled,
    NotFoundError,
    ValidationFailed,
)
from lms.models.base import iso_timestamp, utc_now
from lms.models.course import Course, completion_key
from lms.models.progress import CompletionMap, EnrollmentProgress, ExamResult
from lms.services.courses import CourseService
from lms.stores.document_store import DocumentStore, document_path

logger = logging.getLogger(__name__)

USERS = "users"
COURSE_PROGRESS = "courseProgress"
COMPLETED_SUB_COURSES = "completedSubCourses"
EXAM_RESULTS = "examResults"

PASSING_SCORE = 75

Clock = Callable[[], datetime]


class ScoreTooLow(ValidationFailed):
    def __init__(self, score: float) -> None:
        super().__init__(
            f"A score of at least {PASSING_SCORE}% is required (got {score:g}%)"
        )
        self.score = score


class SubCourseNotFound(NotFoundError):
    def __init__(self, course_id: str, module_id: str, sub_course_id: str) -> None:
        super().__init__(
            f"Sub-course {module_id}/{sub_course_id} not found in course {course_id}"
        )


def compute_percent(completed_count: int, total: int) -> int:
    if total <= 0:
        return 0
    return min(100, round(100 * completed_count / total))


def completion_path(user_id: str, course_id: str) -> str:
    return document_path(USERS, user_id, COMPLETED_SUB_COURSES, course_id)


def progress_path(user_id: str, course_id: str) -> str:
    return document_path(USERS, user_id, COURSE_PROGRESS, course_id)


def exam_result_path(
    user_id: str, course_id: str, module_id: str, sub_course_id: str
) -> str:
    return document_path(
        USERS, user_id, EXAM_RESULTS, f"{course_id}_{module_id}_{sub_course_id}"
    )


@dataclass(frozen=True, slots=True)
class CourseProgress:
    course_id: str
    percent: int
    completed: int
    total: int
    enrolled_at: str | None = None
    last_updated: str | None = None
    course_title: str = ""


class ProgressService:
    def __init__(
        self,
        store: DocumentStore,
        courses: CourseService,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._courses = courses
        self._clock = clock

    def _now(self) -> str:
        return iso_timestamp(self._clock())

    async def get_completion(self, user_id: str, course_id: str) -> CompletionMap | None:
        doc = await self._store.get(completion_path(user_id, course_id))
        return CompletionMap.from_document(doc) if doc is not None else None

    async def get_enrollment(
        self, user_id: str, course_id: str
    ) -> EnrollmentProgress | None:
        doc = await self._store.get(progress_path(user_id, course_id))
        return EnrollmentProgress.from_document(doc) if doc is not None else None

    async def enroll(self, user_id: str, course_id: str) -> CourseProgress:
        course = await self._courses.get_course(course_id)
        if (
            await self.get_enrollment(user_id, course_id) is not None
            or await self.get_completion(user_id, course_id) is not None
        ):
            raise AlreadyEnrolled(course_id)

        now = self._now()
        enrollment = EnrollmentProgress(progress=0, enrolled_at=now, last_updated=now)
        batch = self._store.batch()
        batch.set(progress_path(user_id, course_id), enrollment.to_document())
        batch.set(completion_path(user_id, course_id), CompletionMap().to_document())
        await batch.commit()

        logger.info("Enrolled user=%s course=%s", user_id, course_id)
        return CourseProgress(
            course_id=course_id,
            percent=0,
            completed=0,
            total=course.total_sub_units,
            enrolled_at=now,
            last_updated=now,
            course_title=course.title,
        )

    async def get_progress(self, user_id: str, course_id: str) -> CourseProgress:
        completion = await self.get_completion(user_id, course_id)
        enrollment = await self.get_enrollment(user_id, course_id)

        if completion is None:
            if enrollment is None:
                raise NotEnrolled(course_id)
            # No completion map: report the stored figure as-is.
            course = await self._courses.find_course(course_id)
            return CourseProgress(
                course_id=course_id,
                percent=round(enrollment.progress),
                completed=0,
                total=course.total_sub_units if course else 0,
                enrolled_at=enrollment.enrolled_at,
                last_updated=enrollment.last_updated,
                course_title=course.title if course else "",
            )

        course = await self._courses.get_course(course_id)
        percent = compute_percent(completion.completed_count, course.total_sub_units)
        now = self._now()
        await self._store.set(
            progress_path(user_id, course_id),
            {"progress": percent, "lastUpdated": now},
            merge=True,
        )
        return CourseProgress(
            course_id=course_id,
            percent=percent,
            completed=completion.completed_count,
            total=course.total_sub_units,
            enrolled_at=enrollment.enrolled_at if enrollment else None,
            last_updated=now,
            course_title=course.title,
        )

    async def complete_sub_course(
        self,
        user_id: str,
        course_id: str,
        module_id: str,
        sub_course_id: str,
        score: float,
        attempts: int = 1,
    ) -> CourseProgress:
        """Record a passed exam and mark its sub-unit complete.

        The completion entry, the exam result and the cached percentage are
        written in one batch.  Completing an already-completed sub-unit keeps
        its original ``completedAt``.
        """
        if score < PASSING_SCORE:
            raise ScoreTooLow(score)

        course = await self._courses.get_course(course_id)
        if not course.has_sub_course(module_id, sub_course_id):
            raise SubCourseNotFound(course_id, module_id, sub_course_id)

        completion = await self.get_completion(user_id, course_id)
        enrollment = await self.get_enrollment(user_id, course_id)
        if completion is None and enrollment is None:
            raise NotEnrolled(course_id)
        completion = completion or CompletionMap()

        now = self._now()
        key = completion_key(module_id, sub_course_id)
        previous = completion.completed.get(key)
        completed_at = now
        if isinstance(previous, dict) and previous.get("completedAt"):
            completed_at = previous["completedAt"]

        completed = dict(completion.completed)
        completed[key] = {
            "completedAt": completed_at,
            "score": score,
            "attempts": attempts,
        }
        done = CompletionMap(completed=completed).completed_count
        percent = compute_percent(done, course.total_sub_units)

        result_path = exam_result_path(user_id, course_id, module_id, sub_course_id)
        prior = await self._store.get(result_path)
        highest = score
        if prior is not None:
            highest = max(score, ExamResult.from_document(prior).highest_score)
        result = ExamResult(
            course_id=course_id,
            module_id=module_id,
            sub_course_id=sub_course_id,
            score=score,
            attempts=attempts,
            highest_score=highest,
            completed_at=now,
        )

        batch = self._store.batch()
        batch.set(
            completion_path(user_id, course_id),
            {"completed": {key: completed[key]}},
            merge=True,
        )
        batch.set(
            progress_path(user_id, course_id),
            {"progress": percent, "lastUpdated": now},
            merge=True,
        )
        batch.set(result_path, result.to_document())
        await batch.commit()

        logger.info(
            "Sub-course completed user=%s course=%s unit=%s score=%s percent=%d",
            user_id,
            course_id,
            key,
            score,
            percent,
        )
        return CourseProgress(
            course_id=course_id,
            percent=percent,
            completed=done,
            total=course.total_sub_units,
            enrolled_at=enrollment.enrolled_at if enrollment else None,
            last_updated=now,
            course_title=course.title,
        )

    async def list_enrolled(self, user_id: str) -> list[CourseProgress]:
        progress_docs = await self._store.query(
            "/".join((USERS, user_id, COURSE_PROGRESS))
        )
        completion_docs = await self._store.query(
            "/".join((USERS, user_id, COMPLETED_SUB_COURSES))
        )
        enrollments = {d.id: EnrollmentProgress.from_document(d) for d in progress_docs}
        completions = {d.id: CompletionMap.from_document(d) for d in completion_docs}

        results: list[CourseProgress] = []
        for course_id in sorted(enrollments.keys() | completions.keys()):
            course: Course | None = await self._courses.find_course(course_id)
            if course is None:
                logger.warning(
                    "Enrollment for missing course user=%s course=%s",
                    user_id,
                    course_id,
                )
                continue
            enrollment = enrollments.get(course_id)
            completion = completions.get(course_id)
            if completion is not None:
                completed = completion.completed_count
                percent = compute_percent(completed, course.total_sub_units)
            else:
                completed = 0
                percent = round(enrollment.progress) if enrollment else 0
            results.append(
                CourseProgress(
                    course_id=course_id,
                    percent=percent,
                    completed=completed,
                    total=course.total_sub_units,
                    enrolled_at=enrollment.enrolled_at if enrollment else None,
                    last_updated=enrollment.last_updated if enrollment else None,
                    course_title=course.title,
                )
            )
        return results
