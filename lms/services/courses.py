from __future__ import annotations

import logging
from collections import OrderedDict

from lms.core.errors import CourseNotFound, ValidationFailed
from lms.models.course import COURSE_TYPES, Course
from lms.stores.document_store import DocumentStore, document_path

logger = logging.getLogger(__name__)

COURSES = "courses"

# Coming-soon courses are listed after everything that can be taken now.
_STATUS_ORDER = {"available": 0, "coming_soon": 1}


class CourseService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get_course(self, course_id: str) -> Course:
        doc = await self._store.get(document_path(COURSES, course_id))
        if doc is None:
            raise CourseNotFound(course_id)
        return Course.from_document(doc)

    async def find_course(self, course_id: str) -> Course | None:
        doc = await self._store.get(document_path(COURSES, course_id))
        return Course.from_document(doc) if doc is not None else None

    async def list_courses(self, course_type: str | None = None) -> list[Course]:
        if course_type is not None and course_type not in COURSE_TYPES:
            raise ValidationFailed(
                f"Course type must be one of {', '.join(COURSE_TYPES)}"
            )
        docs = await self._store.query(COURSES)
        courses = [Course.from_document(d) for d in docs]
        if course_type is not None:
            courses = [c for c in courses if c.type == course_type]
        return courses

    async def catalog(self, course_type: str | None = None) -> dict[str, list[Course]]:
        """Courses grouped by category, categories in first-seen order."""
        courses = await self.list_courses(course_type)
        courses.sort(key=lambda c: _STATUS_ORDER.get(c.status, 0))

        grouped: OrderedDict[str, list[Course]] = OrderedDict()
        for course in courses:
            grouped.setdefault(course.category, []).append(course)
        logger.debug(
            "Catalog built type=%s courses=%d categories=%d",
            course_type or "all",
            len(courses),
            len(grouped),
        )
        return dict(grouped)
