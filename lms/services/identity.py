"""Identity providers.

Every authenticated request carries a bearer ID token.  An
``IdentityProvider`` turns that token into a ``Principal`` and owns the
account lifecycle around it.

  LocalIdentityProvider     argon2 password hashes and ES256 tokens signed
                            by this process.  Used in dev and tests.
  FirebaseIdentityProvider  the hosted identity service.  Email/password
                            sign-in happens in the browser SDK; this side
                            only verifies ID tokens, creates accounts and
                            revokes sessions.

Sign-out revokes by token id (``jti``) for the local provider.  The
revocation entry lives in the cache until the token would have expired
anyway.  Used password-reset tokens are recorded the same way.

Both providers mail reset links through the injected ``Mailer``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable
from urllib.parse import urlencode

import jwt
from firebase_admin import auth as firebase_auth

from lms.core.errors import (
    AuthenticationFailed,
    ConflictError,
    UnsupportedOperation,
    ValidationFailed,
)
from lms.models.principal import Principal
from lms.models.user import UserAccount
from lms.repos.account_repo import AccountRepo
from lms.services import auth_service, token_service
from lms.services.cache import CacheService
from lms.services.mailer import Mailer, MailMessage
from lms.stores.document_store import DocumentStore, document_path

logger = logging.getLogger(__name__)


class AccountExists(ConflictError):
    def __init__(self) -> None:
        super().__init__("An account with this email already exists")


@dataclass(frozen=True, slots=True)
class AuthSession:
    principal: Principal
    token: str
    token_type: str = "id_token"


def _check_credentials(email: str, password: str) -> None:
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationFailed("A valid email address is required")
    _check_password(password)


def _check_password(password: str) -> None:
    if len(password) < auth_service.MIN_PASSWORD_LENGTH:
        raise ValidationFailed(
            f"Password must be at least {auth_service.MIN_PASSWORD_LENGTH} characters"
        )


def password_reset_message(email: str, link: str) -> MailMessage:
    return MailMessage(
        to=email,
        subject="Reset your password",
        body=(
            "We received a request to reset your password.\n"
            f"Follow this link to choose a new one:\n{link}\n\n"
            "If you did not ask for this, you can ignore this email."
        ),
    )


@runtime_checkable
class IdentityProvider(Protocol):
    async def sign_up(self, email: str, password: str, name: str) -> AuthSession: ...

    async def sign_in(self, email: str, password: str) -> AuthSession: ...

    async def sign_in_with_provider(self, provider: str, credential: str) -> AuthSession: ...

    async def verify(self, token: str) -> Principal: ...

    async def sign_out(self, token: str) -> None: ...

    async def send_password_reset(self, email: str) -> None: ...

    async def confirm_password_reset(self, token: str, new_password: str) -> None: ...


# ---------------------------------------------------------------------------
# Local provider
# ---------------------------------------------------------------------------


class LocalIdentityProvider:
    _REVOKED_PREFIX = "revoked-jti:"
    _USED_RESET_PREFIX = "used-reset-jti:"

    def __init__(
        self,
        accounts: AccountRepo,
        revocations: CacheService,
        mailer: Mailer,
        reset_url: str,
    ) -> None:
        self._accounts = accounts
        self._revocations = revocations
        self._mailer = mailer
        self._reset_url = reset_url

    def _session(self, account: UserAccount) -> AuthSession:
        token = token_service.create_id_token(
            sub=account.id,
            email=account.email,
            name=account.display_name,
            roles=list(account.roles),
        )
        return AuthSession(
            principal=Principal(
                user_id=account.id,
                email=account.email,
                display_name=account.display_name,
                roles=frozenset(account.roles),
            ),
            token=token,
        )

    async def sign_up(self, email: str, password: str, name: str) -> AuthSession:
        email = email.strip().lower()
        _check_credentials(email, password)
        if self._accounts.get_by_email(email) is not None:
            raise AccountExists()
        account = UserAccount.new(
            email=email,
            password_hash=auth_service.hash_password(password),
            display_name=name.strip(),
        )
        self._accounts.add(account)
        logger.info("Account created user=%s", account.id)
        return self._session(account)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        account = auth_service.authenticate_account(self._accounts, email, password)
        if account is None:
            logger.warning("Failed sign-in")
            raise AuthenticationFailed("Invalid email or password")
        return self._session(account)

    async def sign_in_with_provider(self, provider: str, credential: str) -> AuthSession:
        raise UnsupportedOperation(
            f"Sign-in with {provider} is not available with local accounts"
        )

    async def verify(self, token: str) -> Principal:
        try:
            claims = token_service.decode_id_token(token)
        except jwt.ExpiredSignatureError:
            logger.warning("Expired token rejected")
            raise AuthenticationFailed("Token expired") from None
        except jwt.InvalidTokenError as e:
            logger.warning("Invalid token rejected: %s", e)
            raise AuthenticationFailed("Invalid token") from None

        if await self._revocations.get(f"{self._REVOKED_PREFIX}{claims['jti']}"):
            logger.warning("Revoked token rejected user=%s", claims["sub"])
            raise AuthenticationFailed("Token revoked")

        return Principal(
            user_id=claims["sub"],
            email=claims.get("email", ""),
            display_name=claims.get("name", ""),
            roles=frozenset(claims.get("roles", ["user"])),
        )

    async def sign_out(self, token: str) -> None:
        try:
            claims = token_service.decode_id_token(token)
        except jwt.InvalidTokenError:
            # Already unusable; nothing to revoke.
            return
        remaining = max(1, int(claims["exp"] - time.time()))
        await self._revocations.set(
            f"{self._REVOKED_PREFIX}{claims['jti']}", "1", remaining
        )
        logger.info("Token revoked user=%s", claims["sub"])

    async def send_password_reset(self, email: str) -> None:
        account = self._accounts.get_by_email(email)
        if account is None:
            # Unknown addresses get the same response and no mail.
            logger.info("Password reset requested for unknown address")
            return
        token = token_service.create_reset_token(sub=account.id)
        link = f"{self._reset_url}?{urlencode({'token': token})}"
        await self._mailer.send(password_reset_message(account.email, link))
        logger.info("Password reset link sent user=%s", account.id)

    async def confirm_password_reset(self, token: str, new_password: str) -> None:
        """Set a new password from a reset link.  Each link works once."""
        try:
            claims = token_service.decode_reset_token(token)
        except jwt.InvalidTokenError as e:
            logger.warning("Invalid reset token rejected: %s", e)
            raise ValidationFailed("Reset link is invalid or has expired") from None

        used_key = f"{self._USED_RESET_PREFIX}{claims['jti']}"
        if await self._revocations.get(used_key):
            logger.warning("Reused reset token rejected user=%s", claims["sub"])
            raise ValidationFailed("Reset link has already been used")
        _check_password(new_password)

        try:
            self._accounts.update_password_hash(
                claims["sub"], auth_service.hash_password(new_password)
            )
        except KeyError:
            raise ValidationFailed("Reset link is invalid or has expired") from None

        remaining = max(1, int(claims["exp"] - time.time()))
        await self._revocations.set(used_key, "1", remaining)
        logger.info("Password reset completed user=%s", claims["sub"])


# ---------------------------------------------------------------------------
# Firebase provider
# ---------------------------------------------------------------------------


class FirebaseIdentityProvider:
    """Hosted identity service via ``firebase_admin.auth``.

    The Admin SDK is synchronous, so calls run in a worker thread.  Roles
    come from the ``admin`` custom claim or, failing that, the ``role``
    field of the user's ``users/{uid}`` profile.
    """

    def __init__(self, app, mailer: Mailer, store: DocumentStore | None = None) -> None:
        self._app = app
        self._mailer = mailer
        self._store = store

    async def _roles(self, claims: dict) -> frozenset[str]:
        roles = {"user"}
        if claims.get("admin") is True or "admin" in claims.get("roles", []):
            roles.add("admin")
        elif self._store is not None:
            doc = await self._store.get(document_path("users", claims["uid"]))
            if doc is not None and doc.data.get("role") == "admin":
                roles.add("admin")
        return frozenset(roles)

    async def _principal(self, claims: dict) -> Principal:
        return Principal(
            user_id=claims["uid"],
            email=claims.get("email", ""),
            display_name=claims.get("name", ""),
            roles=await self._roles(claims),
        )

    async def sign_up(self, email: str, password: str, name: str) -> AuthSession:
        email = email.strip().lower()
        _check_credentials(email, password)
        try:
            record = await asyncio.to_thread(
                firebase_auth.create_user,
                email=email,
                password=password,
                display_name=name.strip() or None,
                app=self._app,
            )
        except firebase_auth.EmailAlreadyExistsError:
            raise AccountExists() from None
        custom = await asyncio.to_thread(
            firebase_auth.create_custom_token, record.uid, app=self._app
        )
        logger.info("Account created user=%s", record.uid)
        return AuthSession(
            principal=Principal(
                user_id=record.uid,
                email=email,
                display_name=name.strip(),
                roles=frozenset({"user"}),
            ),
            token=custom.decode() if isinstance(custom, bytes) else custom,
            token_type="custom_token",
        )

    async def sign_in(self, email: str, password: str) -> AuthSession:
        raise UnsupportedOperation(
            "Email sign-in happens in the browser; send the resulting ID token "
            "to /auth/provider"
        )

    async def sign_in_with_provider(self, provider: str, credential: str) -> AuthSession:
        if provider not in ("firebase", "google"):
            raise UnsupportedOperation(f"Unknown sign-in provider: {provider}")
        principal = await self.verify(credential)
        return AuthSession(principal=principal, token=credential)

    async def verify(self, token: str) -> Principal:
        try:
            claims = await asyncio.to_thread(
                firebase_auth.verify_id_token, token, app=self._app, check_revoked=True
            )
        except firebase_auth.ExpiredIdTokenError:
            logger.warning("Expired token rejected")
            raise AuthenticationFailed("Token expired") from None
        except firebase_auth.RevokedIdTokenError:
            logger.warning("Revoked token rejected")
            raise AuthenticationFailed("Token revoked") from None
        except (firebase_auth.InvalidIdTokenError, ValueError) as e:
            logger.warning("Invalid token rejected: %s", e)
            raise AuthenticationFailed("Invalid token") from None
        return await self._principal(claims)

    async def sign_out(self, token: str) -> None:
        principal = await self.verify(token)
        await asyncio.to_thread(
            firebase_auth.revoke_refresh_tokens, principal.user_id, app=self._app
        )
        logger.info("Sessions revoked user=%s", principal.user_id)

    async def send_password_reset(self, email: str) -> None:
        # The Admin SDK only generates the link; delivery is ours.
        try:
            link = await asyncio.to_thread(
                firebase_auth.generate_password_reset_link, email, app=self._app
            )
        except firebase_auth.UserNotFoundError:
            logger.info("Password reset requested for unknown address")
            return
        await self._mailer.send(password_reset_message(email, link))
        logger.info("Password reset link sent")

    async def confirm_password_reset(self, token: str, new_password: str) -> None:
        raise UnsupportedOperation(
            "Reset links are completed on the hosted identity service's page"
        )
