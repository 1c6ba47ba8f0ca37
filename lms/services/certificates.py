"""Certificate issuance.

A learner who has completed every sub-unit of a course gets exactly one
verification id for it, ``IOF-`` followed by eight upper-case hex digits.
The id lives in two places:

  certificates/{verificationId}                  public record, looked up
                                                 by the verify page
  users/{uid}/completedSubCourses/{courseId}     verificationId,
                                                 certificateGeneratedAt,
                                                 firstCompletedAt

A fresh id is minted with both writes in one batch.  Reads repair the two
half-written shapes older clients could leave behind:

  map has an id, record missing     recreate the record under that id
  record exists, map has no id      copy the record's id back onto the map

Either way the caller gets the same id on every visit.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from lms.core.errors import CourseNotCompleted, NotFoundError
from lms.core.metrics import CERTIFICATES_ISSUED
from lms.models.base import iso_timestamp, utc_now
from lms.models.certificate import VERIFICATION_ID_RE, Certificate, CertificateState
from lms.models.principal import Principal
from lms.models.progress import CompletionMap
from lms.services.courses import CourseService
from lms.services.progress import Clock, completion_path, compute_percent
from lms.stores.document_store import DocumentStore, FieldFilter, document_path

logger = logging.getLogger(__name__)

CERTIFICATES = "certificates"

IssueOutcome = Literal["minted", "reused", "healed"]


class CertificateNotFound(NotFoundError):
    def __init__(self, verification_id: str) -> None:
        super().__init__(f"Certificate not found: {verification_id}")
        self.verification_id = verification_id


def new_verification_id() -> str:
    return f"IOF-{uuid.uuid4().hex[:8].upper()}"


def certificate_path(verification_id: str) -> str:
    return document_path(CERTIFICATES, verification_id)


@dataclass(frozen=True, slots=True)
class IssuedCertificate:
    certificate: Certificate
    outcome: IssueOutcome


class CertificateService:
    def __init__(
        self,
        store: DocumentStore,
        courses: CourseService,
        clock: Clock = utc_now,
        id_factory: Callable[[], str] = new_verification_id,
    ) -> None:
        self._store = store
        self._courses = courses
        self._clock = clock
        self._new_id = id_factory

    async def _completion(self, user_id: str, course_id: str) -> CompletionMap | None:
        doc = await self._store.get(completion_path(user_id, course_id))
        return CompletionMap.from_document(doc) if doc is not None else None

    async def _find_by_owner(self, user_id: str, course_id: str) -> Certificate | None:
        docs = await self._store.query(
            CERTIFICATES,
            where=[
                FieldFilter("userId", "==", user_id),
                FieldFilter("courseId", "==", course_id),
            ],
            limit=1,
        )
        return Certificate.from_document(docs[0]) if docs else None

    async def state(self, user_id: str, course_id: str) -> CertificateState:
        completion = await self._completion(user_id, course_id)
        if completion is None:
            return CertificateState.NOT_COMPLETED
        if completion.verification_id:
            return CertificateState.COMPLETED_WITH_CERTIFICATE
        course = await self._courses.get_course(course_id)
        if compute_percent(completion.completed_count, course.total_sub_units) < 100:
            return CertificateState.NOT_COMPLETED
        return CertificateState.COMPLETED_NO_CERTIFICATE

    async def issue(self, user: Principal, course_id: str) -> IssuedCertificate:
        """Return the learner's certificate for a course, minting it on first call.

        Raises CourseNotCompleted until every sub-unit is done.  Once issued,
        the certificate is returned even if the course later gains units.
        Store failures propagate; nothing is reported as issued unless its
        writes committed.
        """
        completion = await self._completion(user.user_id, course_id)
        if completion is None:
            raise CourseNotCompleted(course_id)

        course = await self._courses.get_course(course_id)
        now = iso_timestamp(self._clock())
        completed_at = (
            completion.first_completed_at or completion.latest_completed_at() or now
        )
        map_path = completion_path(user.user_id, course_id)

        if completion.verification_id:
            verification_id = completion.verification_id
            doc = await self._store.get(certificate_path(verification_id))
            if doc is not None:
                return self._done(Certificate.from_document(doc), "reused")

            cert = Certificate(
                verification_id=verification_id,
                user_id=user.user_id,
                user_name=user.name,
                course_id=course_id,
                course_name=course.title,
                completed_at=completed_at,
                generated_at=completion.certificate_generated_at or now,
            )
            batch = self._store.batch()
            batch.set(certificate_path(verification_id), cert.to_document())
            if not completion.first_completed_at:
                batch.set(map_path, {"firstCompletedAt": completed_at}, merge=True)
            await batch.commit()
            logger.warning(
                "Recreated missing certificate record verification_id=%s",
                verification_id,
            )
            return self._done(cert, "healed")

        orphan = await self._find_by_owner(user.user_id, course_id)
        if orphan is not None:
            await self._store.set(
                map_path,
                {
                    "verificationId": orphan.verification_id,
                    "certificateGeneratedAt": orphan.generated_at,
                    "firstCompletedAt": orphan.completed_at,
                },
                merge=True,
            )
            logger.warning(
                "Linked unreferenced certificate verification_id=%s",
                orphan.verification_id,
            )
            return self._done(orphan, "healed")

        percent = compute_percent(completion.completed_count, course.total_sub_units)
        if percent < 100:
            raise CourseNotCompleted(course_id)

        cert = Certificate(
            verification_id=self._new_id(),
            user_id=user.user_id,
            user_name=user.name,
            course_id=course_id,
            course_name=course.title,
            completed_at=completed_at,
            generated_at=now,
        )
        batch = self._store.batch()
        batch.set(certificate_path(cert.verification_id), cert.to_document())
        batch.set(
            map_path,
            {
                "verificationId": cert.verification_id,
                "certificateGeneratedAt": now,
                "firstCompletedAt": completed_at,
            },
            merge=True,
        )
        await batch.commit()
        return self._done(cert, "minted")

    def _done(self, cert: Certificate, outcome: IssueOutcome) -> IssuedCertificate:
        CERTIFICATES_ISSUED.labels(outcome=outcome).inc()
        logger.info(
            "Certificate %s verification_id=%s user=%s course=%s",
            outcome,
            cert.verification_id,
            cert.user_id,
            cert.course_id,
        )
        return IssuedCertificate(certificate=cert, outcome=outcome)

    async def verify(self, verification_id: str) -> Certificate:
        verification_id = verification_id.strip()
        if not VERIFICATION_ID_RE.match(verification_id):
            raise CertificateNotFound(verification_id)
        doc = await self._store.get(certificate_path(verification_id))
        if doc is None:
            raise CertificateNotFound(verification_id)
        return Certificate.from_document(doc)
