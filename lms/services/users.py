"""User profiles and the admin progress report.

``users/{uid}`` holds the profile written at sign-up.  The report walks
every profile and summarises its enrolments and exam results; a result
counts as passed at the same threshold that completes a sub-unit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from lms.core.errors import NotFoundError
from lms.models.base import iso_timestamp, utc_now
from lms.models.principal import Principal
from lms.models.progress import ExamResult
from lms.models.user import UserProfile
from lms.services.progress import (
    COURSE_PROGRESS,
    EXAM_RESULTS,
    PASSING_SCORE,
    USERS,
    Clock,
)
from lms.stores.document_store import DocumentStore, document_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UserProgressSummary:
    user_id: str
    name: str
    email: str
    enrolled_courses: int
    total_exams: int
    passed_exams: int
    failed_exams: int
    average_score: float


class UserService:
    def __init__(self, store: DocumentStore, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def get_profile(self, user_id: str) -> UserProfile:
        doc = await self._store.get(document_path(USERS, user_id))
        if doc is None:
            raise NotFoundError(f"User not found: {user_id}")
        return UserProfile.from_document(doc)

    async def ensure_profile(self, principal: Principal) -> UserProfile:
        """Create ``users/{uid}`` on first sight; never overwrite an existing one."""
        path = document_path(USERS, principal.user_id)
        doc = await self._store.get(path)
        if doc is not None:
            return UserProfile.from_document(doc)
        profile = UserProfile(
            id=principal.user_id,
            name=principal.display_name,
            email=principal.email,
            role="admin" if principal.is_admin() else "user",
            created_at=iso_timestamp(self._clock()),
        )
        await self._store.set(path, profile.to_document())
        logger.info("Created profile user=%s", principal.user_id)
        return profile

    async def progress_report(self) -> list[UserProgressSummary]:
        report: list[UserProgressSummary] = []
        for doc in await self._store.query(USERS):
            profile = UserProfile.from_document(doc)
            enrolled = await self._store.query(f"{USERS}/{doc.id}/{COURSE_PROGRESS}")
            results = [
                ExamResult.from_document(d)
                for d in await self._store.query(f"{USERS}/{doc.id}/{EXAM_RESULTS}")
            ]
            passed = sum(1 for r in results if r.score >= PASSING_SCORE)
            average = (
                round(sum(r.score for r in results) / len(results), 1) if results else 0.0
            )
            report.append(
                UserProgressSummary(
                    user_id=doc.id,
                    name=profile.name or "N/A",
                    email=profile.email,
                    enrolled_courses=len(enrolled),
                    total_exams=len(results),
                    passed_exams=passed,
                    failed_exams=len(results) - passed,
                    average_score=average,
                )
            )
        return report
