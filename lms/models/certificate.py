from __future__ import annotations

import re
from enum import StrEnum

from pydantic import field_validator

from lms.models.base import Record

VERIFICATION_ID_RE = re.compile(r"^IOF-[0-9A-F]{8}$")


class CertificateState(StrEnum):
    NOT_COMPLETED = "not_completed"
    COMPLETED_NO_CERTIFICATE = "completed_no_certificate"
    COMPLETED_WITH_CERTIFICATE = "completed_with_certificate"


class Certificate(Record):
    """``certificates/{verificationId}``: immutable once written."""

    verification_id: str
    user_id: str
    user_name: str
    course_id: str
    course_name: str
    completed_at: str
    generated_at: str

    @field_validator("verification_id")
    @classmethod
    def _check_format(cls, value: str) -> str:
        if not VERIFICATION_ID_RE.match(value):
            raise ValueError(f"verification id must look like IOF-XXXXXXXX: {value!r}")
        return value
