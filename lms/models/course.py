from __future__ import annotations

from pydantic import Field, field_validator

from lms.models.base import Record

COURSE_TYPES = ("certification", "non-certification")


class SubCourse(Record):
    id: str
    title: str = ""


class CourseModule(Record):
    id: str
    title: str = ""
    sub_courses: list[SubCourse] = Field(default_factory=list)

    @field_validator("sub_courses", mode="before")
    @classmethod
    def _none_is_empty(cls, value: object) -> object:
        return [] if value is None else value


class Course(Record):
    id: str
    title: str
    description: str = ""
    category: str = "Uncategorized"
    type: str = "certification"
    status: str = "available"
    modules: list[CourseModule] = Field(default_factory=list)

    @field_validator("category", "status", mode="before")
    @classmethod
    def _blank_is_default(cls, value: object, info) -> object:
        if value in (None, ""):
            return "Uncategorized" if info.field_name == "category" else "available"
        return value

    @property
    def total_sub_units(self) -> int:
        return sum(len(module.sub_courses) for module in self.modules)

    def has_sub_course(self, module_id: str, sub_course_id: str) -> bool:
        return any(
            module.id == module_id
            and any(sub.id == sub_course_id for sub in module.sub_courses)
            for module in self.modules
        )


def completion_key(module_id: str, sub_course_id: str) -> str:
    return f"{module_id}_{sub_course_id}"
