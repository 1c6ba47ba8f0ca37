"""Domain exceptions.

Services raise these; the API layer never inspects them beyond the
``status_code`` attribute, which the exception handler in ``lms.main`` uses
to build the ``{"detail": {"message": ...}}`` response.
"""

from __future__ import annotations


class LmsError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# --- 4xx ---


class ValidationFailed(LmsError):
    status_code = 422


class AuthenticationFailed(LmsError):
    status_code = 401


class PermissionDenied(LmsError):
    status_code = 403


class NotFoundError(LmsError):
    status_code = 404


class ConflictError(LmsError):
    status_code = 409


class UnsupportedOperation(LmsError):
    status_code = 501


# --- 5xx ---


class StoreError(LmsError):
    """The document store rejected or failed a read/write."""

    status_code = 502


class UpstreamError(LmsError):
    """A third-party API (news, image host) failed."""

    status_code = 503


class RecordValidationError(StoreError):
    """A stored document does not match its record schema."""


# --- Concrete cases used across services ---


class CourseNotFound(NotFoundError):
    def __init__(self, course_id: str) -> None:
        super().__init__(f"Course not found: {course_id}")
        self.course_id = course_id


class NotEnrolled(NotFoundError):
    def __init__(self, course_id: str) -> None:
        super().__init__(f"Not enrolled in course: {course_id}")
        self.course_id = course_id


class AlreadyEnrolled(ConflictError):
    def __init__(self, course_id: str) -> None:
        super().__init__(f"Already enrolled in course: {course_id}")
        self.course_id = course_id


class CourseNotCompleted(PermissionDenied):
    def __init__(self, course_id: str) -> None:
        super().__init__("Course must be completed to view certificate")
        self.course_id = course_id
