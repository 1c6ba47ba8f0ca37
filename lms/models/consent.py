from __future__ import annotations

from typing import Literal

from pydantic import field_validator

from lms.models.base import Record

CookieKind = Literal["essential", "analytics", "marketing", "functional"]
OPTIONAL_COOKIE_KINDS: tuple[CookieKind, ...] = ("analytics", "marketing", "functional")


class CookiePreferences(Record):
    essential: bool = True
    analytics: bool = False
    marketing: bool = False
    functional: bool = False

    @field_validator("essential", mode="after")
    @classmethod
    def _essential_always_on(cls, _value: bool) -> bool:
        return True

    @classmethod
    def all_allowed(cls) -> CookiePreferences:
        return cls(analytics=True, marketing=True, functional=True)

    @classmethod
    def minimal(cls) -> CookiePreferences:
        return cls()


class ConsentRecord(Record):
    accepted: bool
    preferences: CookiePreferences
    timestamp: str
