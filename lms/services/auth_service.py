from __future__ import annotations

import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from lms.models.user import UserAccount
from lms.repos.account_repo import AccountRepo

logger = logging.getLogger(__name__)

# Argon2 hash strings encode parameters + salt.
_ph = PasswordHasher()

MIN_PASSWORD_LENGTH = 6


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


def authenticate_account(
    repo: AccountRepo, email: str, password: str
) -> UserAccount | None:
    account = repo.get_by_email(email)
    if account is None or not account.is_active:
        return None
    if not verify_password(password, account.password_hash):
        return None

    # Upgrade the stored hash if the hasher's parameters changed.
    if _ph.check_needs_rehash(account.password_hash):
        repo.update_password_hash(account.id, _ph.hash(password))
        logger.info("Rehashed password for user=%s", account.id)

    return account
