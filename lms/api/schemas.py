"""Response shapes shared by several routers.

JSON bodies use camelCase keys, the same casing as the stored documents.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from lms.models.principal import Principal
from lms.services.progress import CourseProgress


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserOut(CamelModel):
    id: str
    email: str
    name: str
    roles: list[str]

    @classmethod
    def of(cls, principal: Principal) -> UserOut:
        return cls(
            id=principal.user_id,
            email=principal.email,
            name=principal.display_name,
            roles=sorted(principal.roles),
        )


class ProgressOut(CamelModel):
    course_id: str
    course_title: str
    progress: int
    completed: int
    total: int
    enrolled_at: str | None = None
    last_updated: str | None = None

    @classmethod
    def of(cls, p: CourseProgress) -> ProgressOut:
        return cls(
            course_id=p.course_id,
            course_title=p.course_title,
            progress=p.percent,
            completed=p.completed,
            total=p.total,
            enrolled_at=p.enrolled_at,
            last_updated=p.last_updated,
        )


class MessageOut(CamelModel):
    message: str
