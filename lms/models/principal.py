from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity resolved from a bearer token.

    Carried through the request via FastAPI's dependency system. Both
    identity providers produce one of these, so endpoints never see a raw
    token or a provider-specific claims dict.

        user_id: provider uid (``users/{uid}`` in the document store)
        email: address the account signed up with
        display_name: name printed on certificates and comments
        roles: platform roles (admin, user)
    """

    user_id: str
    email: str = ""
    display_name: str = ""
    roles: frozenset[str] = frozenset({"user"})

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def is_admin(self) -> bool:
        return "admin" in self.roles

    @property
    def name(self) -> str:
        return self.display_name or self.email or self.user_id
