from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from lms.models.user import UserAccount


class AccountRepo(Protocol):
    def get_by_id(self, user_id: str) -> UserAccount | None: ...
    def get_by_email(self, email: str) -> UserAccount | None: ...
    def add(self, account: UserAccount) -> None: ...
    def update_password_hash(self, user_id: str, password_hash: str) -> None: ...


class InMemoryAccountRepo:
    def __init__(self) -> None:
        self._by_email: dict[str, UserAccount] = {}
        self._by_id: dict[str, UserAccount] = {}

    def get_by_id(self, user_id: str) -> UserAccount | None:
        return self._by_id.get(user_id)

    def get_by_email(self, email: str) -> UserAccount | None:
        return self._by_email.get(email.strip().lower())

    def add(self, account: UserAccount) -> None:
        if account.email in self._by_email:
            raise ValueError("email already exists")
        self._by_email[account.email] = account
        self._by_id[account.id] = account

    def update_password_hash(self, user_id: str, password_hash: str) -> None:
        account = self._by_id.get(user_id)
        if account is None:
            raise KeyError("account not found")

        updated = replace(account, password_hash=password_hash)
        self._by_id[user_id] = updated
        self._by_email[updated.email] = updated
