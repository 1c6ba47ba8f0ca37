from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from lms.models.base import Record


@dataclass(frozen=True, slots=True)
class UserAccount:
    """Credentials held by the local identity provider."""

    id: str
    email: str
    password_hash: str
    display_name: str = ""
    roles: tuple[str, ...] = ("user",)
    is_active: bool = True

    @staticmethod
    def new(
        *,
        email: str,
        password_hash: str,
        display_name: str = "",
        roles: tuple[str, ...] = ("user",),
    ) -> UserAccount:
        return UserAccount(
            id=uuid4().hex,
            email=email.strip().lower(),
            password_hash=password_hash,
            display_name=display_name,
            roles=roles,
        )


class UserProfile(Record):
    """``users/{uid}``."""

    id: str | None = None
    name: str = ""
    email: str = ""
    role: str = "user"
    created_at: str | None = None
