"""Certificate issuance: one verification id per learner and course."""

from __future__ import annotations

import asyncio
import itertools
from datetime import UTC, datetime

import pytest

from lms.core.errors import CourseNotCompleted
from lms.models.certificate import VERIFICATION_ID_RE, CertificateState
from lms.models.principal import Principal
from lms.services.certificates import (
    CertificateNotFound,
    CertificateService,
    certificate_path,
    new_verification_id,
)
from lms.services.courses import CourseService
from lms.services.progress import ProgressService, completion_path
from lms.stores.document_store import InMemoryDocumentStore
from tests.support import ALL_UNITS, FOUR_UNIT_MODULES, seed_course

LEARNER = Principal(user_id="u1", email="ada@example.com", display_name="Ada Lovelace")


def _clock() -> datetime:
    return datetime(2024, 5, 1, 9, 30, tzinfo=UTC)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    store = InMemoryDocumentStore()
    asyncio.run(seed_course(store))
    return store


@pytest.fixture
def ids():
    counter = itertools.count(1)
    return lambda: f"IOF-{next(counter):08X}"


@pytest.fixture
def certificates(store, ids) -> CertificateService:
    return CertificateService(store, CourseService(store), clock=_clock, id_factory=ids)


def _complete(store, units=ALL_UNITS) -> None:
    progress = ProgressService(store, CourseService(store), clock=_clock)
    asyncio.run(progress.enroll(LEARNER.user_id, "ds-101"))
    for module_id, sub_id in units:
        asyncio.run(
            progress.complete_sub_course(LEARNER.user_id, "ds-101", module_id, sub_id, 90)
        )


def test_new_verification_id_format() -> None:
    for _ in range(50):
        assert VERIFICATION_ID_RE.match(new_verification_id())


def test_incomplete_course_is_refused(certificates, store) -> None:
    _complete(store, ALL_UNITS[:2])
    with pytest.raises(CourseNotCompleted) as exc:
        asyncio.run(certificates.issue(LEARNER, "ds-101"))
    assert exc.value.message == "Course must be completed to view certificate"


def test_not_enrolled_is_refused(certificates) -> None:
    with pytest.raises(CourseNotCompleted):
        asyncio.run(certificates.issue(LEARNER, "ds-101"))


def test_first_issue_mints_and_mirrors(certificates, store) -> None:
    _complete(store)
    issued = asyncio.run(certificates.issue(LEARNER, "ds-101"))
    assert issued.outcome == "minted"
    cert = issued.certificate
    assert cert.verification_id == "IOF-00000001"
    assert cert.user_name == "Ada Lovelace"
    assert cert.course_name == "Introduction to Data Science"

    record = asyncio.run(store.get(certificate_path("IOF-00000001")))
    assert record.data["userId"] == "u1"
    assert record.data["courseId"] == "ds-101"

    completion = asyncio.run(store.get(completion_path("u1", "ds-101")))
    assert completion.data["verificationId"] == "IOF-00000001"
    assert completion.data["certificateGeneratedAt"] == "2024-05-01T09:30:00.000Z"
    assert completion.data["firstCompletedAt"] == "2024-05-01T09:30:00.000Z"


def test_repeat_visits_reuse_the_same_id(certificates, store) -> None:
    _complete(store)
    first = asyncio.run(certificates.issue(LEARNER, "ds-101"))
    second = asyncio.run(certificates.issue(LEARNER, "ds-101"))
    third = asyncio.run(certificates.issue(LEARNER, "ds-101"))
    assert second.outcome == "reused"
    assert third.outcome == "reused"
    assert (
        first.certificate.verification_id
        == second.certificate.verification_id
        == third.certificate.verification_id
    )
    assert len(asyncio.run(store.query("certificates"))) == 1


def test_missing_record_is_recreated_under_same_id(certificates, store) -> None:
    _complete(store)
    minted = asyncio.run(certificates.issue(LEARNER, "ds-101"))
    asyncio.run(store.delete(certificate_path(minted.certificate.verification_id)))

    healed = asyncio.run(certificates.issue(LEARNER, "ds-101"))
    assert healed.outcome == "healed"
    assert healed.certificate.verification_id == minted.certificate.verification_id
    assert asyncio.run(store.get(certificate_path("IOF-00000001"))) is not None


def test_unlinked_record_is_linked_back(certificates, store) -> None:
    _complete(store)
    minted = asyncio.run(certificates.issue(LEARNER, "ds-101"))
    # A client that wrote the record but never updated the map.
    current = asyncio.run(store.get(completion_path("u1", "ds-101")))
    asyncio.run(
        store.set(completion_path("u1", "ds-101"), {"completed": current.data["completed"]})
    )

    healed = asyncio.run(certificates.issue(LEARNER, "ds-101"))
    assert healed.outcome == "healed"
    assert healed.certificate.verification_id == minted.certificate.verification_id
    completion = asyncio.run(store.get(completion_path("u1", "ds-101")))
    assert completion.data["verificationId"] == minted.certificate.verification_id
    assert len(asyncio.run(store.query("certificates"))) == 1


def test_state_transitions(certificates, store) -> None:
    assert asyncio.run(certificates.state("u1", "ds-101")) == CertificateState.NOT_COMPLETED
    _complete(store, ALL_UNITS[:1])
    assert asyncio.run(certificates.state("u1", "ds-101")) == CertificateState.NOT_COMPLETED
    progress = ProgressService(store, CourseService(store), clock=_clock)
    for module_id, sub_id in ALL_UNITS[1:]:
        asyncio.run(progress.complete_sub_course("u1", "ds-101", module_id, sub_id, 80))
    assert (
        asyncio.run(certificates.state("u1", "ds-101"))
        == CertificateState.COMPLETED_NO_CERTIFICATE
    )
    asyncio.run(certificates.issue(LEARNER, "ds-101"))
    assert (
        asyncio.run(certificates.state("u1", "ds-101"))
        == CertificateState.COMPLETED_WITH_CERTIFICATE
    )


def test_issued_certificate_survives_new_units(certificates, store) -> None:
    _complete(store)
    minted = asyncio.run(certificates.issue(LEARNER, "ds-101"))
    asyncio.run(seed_course(store, modules=FOUR_UNIT_MODULES))

    again = asyncio.run(certificates.issue(LEARNER, "ds-101"))
    assert again.outcome == "reused"
    assert again.certificate.verification_id == minted.certificate.verification_id
    assert (
        asyncio.run(certificates.state("u1", "ds-101"))
        == CertificateState.COMPLETED_WITH_CERTIFICATE
    )


def test_new_units_block_a_certificate_not_yet_minted(certificates, store) -> None:
    _complete(store)
    asyncio.run(seed_course(store, modules=FOUR_UNIT_MODULES))
    with pytest.raises(CourseNotCompleted):
        asyncio.run(certificates.issue(LEARNER, "ds-101"))
    assert asyncio.run(certificates.state("u1", "ds-101")) == CertificateState.NOT_COMPLETED


def test_verify_finds_issued_certificate(certificates, store) -> None:
    _complete(store)
    asyncio.run(certificates.issue(LEARNER, "ds-101"))
    cert = asyncio.run(certificates.verify("  IOF-00000001 "))
    assert cert.user_name == "Ada Lovelace"


@pytest.mark.parametrize("bad_id", ["IOF-00000099", "iof-00000001", "not-an-id", ""])
def test_verify_unknown_or_malformed(certificates, bad_id: str) -> None:
    with pytest.raises(CertificateNotFound):
        asyncio.run(certificates.verify(bad_id))
