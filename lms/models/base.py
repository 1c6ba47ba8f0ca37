from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from lms.core.errors import RecordValidationError
from lms.stores.document_store import Document


def utc_now() -> datetime:
    return datetime.now(UTC)


def iso_timestamp(moment: datetime) -> str:
    """Millisecond ISO-8601 in UTC with a trailing Z (``2024-05-01T09:30:00.000Z``)."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


class Record(BaseModel):
    """A stored document validated at the data-access boundary.

    Field names are snake_case in Python and camelCase in the store.  The
    document id is never part of the stored data; ``from_document`` fills
    it in from the path.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @classmethod
    def from_document(cls, doc: Document) -> Self:
        data: dict[str, Any] = dict(doc.data)
        if "id" in cls.model_fields:
            data["id"] = doc.id
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise RecordValidationError(
                f"Malformed {cls.__name__} document at {doc.path}: "
                f"{e.error_count()} invalid field(s)"
            ) from e

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)
