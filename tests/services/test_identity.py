"""Local identity provider: sign-up, sign-in, token checks and sign-out."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import jwt
import pytest

from lms.core.errors import AuthenticationFailed, UnsupportedOperation, ValidationFailed
from lms.repos.account_repo import InMemoryAccountRepo
from lms.services import token_service
from lms.services.cache import InMemoryCacheService
from lms.services import identity as identity_module
from lms.services.identity import (
    AccountExists,
    FirebaseIdentityProvider,
    LocalIdentityProvider,
)
from lms.services.mailer import OutboxMailer
from tests.support import reset_token_in

RESET_URL = "https://learn.example/reset-password"


@pytest.fixture
def mailer() -> OutboxMailer:
    return OutboxMailer()


@pytest.fixture
def provider(mailer) -> LocalIdentityProvider:
    return LocalIdentityProvider(
        InMemoryAccountRepo(), InMemoryCacheService(), mailer, RESET_URL
    )


def test_sign_up_then_sign_in(provider) -> None:
    created = asyncio.run(provider.sign_up(" Ada@Example.com ", "secret-pw", "Ada"))
    assert created.principal.email == "ada@example.com"
    assert created.principal.roles == frozenset({"user"})

    session = asyncio.run(provider.sign_in("ada@example.com", "secret-pw"))
    assert session.principal.user_id == created.principal.user_id
    principal = asyncio.run(provider.verify(session.token))
    assert principal.display_name == "Ada"


def test_duplicate_sign_up(provider) -> None:
    asyncio.run(provider.sign_up("ada@example.com", "secret-pw", "Ada"))
    with pytest.raises(AccountExists):
        asyncio.run(provider.sign_up("ADA@example.com", "other-pw", "Ada"))


@pytest.mark.parametrize(
    ("email", "password"),
    [("not-an-email", "secret-pw"), ("@example.com", "secret-pw"), ("a@b.c", "short")],
)
def test_sign_up_validates_credentials(provider, email, password) -> None:
    with pytest.raises(ValidationFailed):
        asyncio.run(provider.sign_up(email, password, ""))


def test_bad_password(provider) -> None:
    asyncio.run(provider.sign_up("ada@example.com", "secret-pw", "Ada"))
    with pytest.raises(AuthenticationFailed) as exc:
        asyncio.run(provider.sign_in("ada@example.com", "wrong-pw"))
    assert exc.value.message == "Invalid email or password"


def test_provider_sign_in_is_unsupported_locally(provider) -> None:
    with pytest.raises(UnsupportedOperation):
        asyncio.run(provider.sign_in_with_provider("google", "credential"))


def test_sign_out_revokes_token(provider) -> None:
    session = asyncio.run(provider.sign_up("ada@example.com", "secret-pw", "Ada"))
    asyncio.run(provider.sign_out(session.token))
    with pytest.raises(AuthenticationFailed) as exc:
        asyncio.run(provider.verify(session.token))
    assert exc.value.message == "Token revoked"


def test_expired_token(provider) -> None:
    now = datetime.now(UTC)
    expired = jwt.encode(
        {
            "sub": "u1",
            "iss": token_service.ISSUER,
            "aud": token_service.AUDIENCE,
            "iat": now - timedelta(hours=2),
            "exp": now - timedelta(hours=1),
            "jti": "j1",
        },
        token_service._private_key,
        algorithm=token_service.ALGORITHM,
    )
    with pytest.raises(AuthenticationFailed) as exc:
        asyncio.run(provider.verify(expired))
    assert exc.value.message == "Token expired"


def test_reset_token_is_not_an_id_token(provider) -> None:
    reset = token_service.create_reset_token(sub="u1")
    with pytest.raises(AuthenticationFailed):
        asyncio.run(provider.verify(reset))
    assert token_service.decode_reset_token(reset)["sub"] == "u1"


def test_password_reset_for_unknown_address_is_silent(provider, mailer) -> None:
    asyncio.run(provider.send_password_reset("nobody@example.com"))
    assert mailer.sent == []


def test_password_reset_mails_a_link(provider, mailer) -> None:
    asyncio.run(provider.sign_up("ada@example.com", "secret-pw", "Ada"))
    asyncio.run(provider.send_password_reset("ada@example.com"))

    [message] = mailer.sent
    assert message.to == "ada@example.com"
    assert f"{RESET_URL}?token=" in message.body
    claims = token_service.decode_reset_token(reset_token_in(message.body))
    assert claims["aud"] == token_service.RESET_AUDIENCE


def test_reset_link_sets_new_password_once(provider, mailer) -> None:
    asyncio.run(provider.sign_up("ada@example.com", "secret-pw", "Ada"))
    asyncio.run(provider.send_password_reset("ada@example.com"))
    token = reset_token_in(mailer.sent[0].body)

    asyncio.run(provider.confirm_password_reset(token, "fresh-pw"))
    session = asyncio.run(provider.sign_in("ada@example.com", "fresh-pw"))
    assert session.principal.email == "ada@example.com"
    with pytest.raises(AuthenticationFailed):
        asyncio.run(provider.sign_in("ada@example.com", "secret-pw"))

    with pytest.raises(ValidationFailed) as exc:
        asyncio.run(provider.confirm_password_reset(token, "other-pw"))
    assert exc.value.message == "Reset link has already been used"


def test_reset_rejects_id_tokens_and_garbage(provider) -> None:
    session = asyncio.run(provider.sign_up("ada@example.com", "secret-pw", "Ada"))
    for token in (session.token, "not-a-token"):
        with pytest.raises(ValidationFailed) as exc:
            asyncio.run(provider.confirm_password_reset(token, "fresh-pw"))
        assert exc.value.message == "Reset link is invalid or has expired"


def test_reset_checks_new_password_before_using_link(provider, mailer) -> None:
    asyncio.run(provider.sign_up("ada@example.com", "secret-pw", "Ada"))
    asyncio.run(provider.send_password_reset("ada@example.com"))
    token = reset_token_in(mailer.sent[0].body)

    with pytest.raises(ValidationFailed):
        asyncio.run(provider.confirm_password_reset(token, "short"))
    asyncio.run(provider.confirm_password_reset(token, "fresh-pw"))


def test_firebase_reset_mails_the_hosted_link(monkeypatch, mailer) -> None:
    hosted = "https://auth.example/__/auth/action?mode=resetPassword&oobCode=abc"

    def generate(email, app=None):
        if email != "ada@example.com":
            raise identity_module.firebase_auth.UserNotFoundError("no user")
        return hosted

    monkeypatch.setattr(
        identity_module.firebase_auth, "generate_password_reset_link", generate
    )
    firebase = FirebaseIdentityProvider(object(), mailer)

    asyncio.run(firebase.send_password_reset("ada@example.com"))
    asyncio.run(firebase.send_password_reset("ghost@example.com"))

    [message] = mailer.sent
    assert message.to == "ada@example.com"
    assert hosted in message.body
    with pytest.raises(UnsupportedOperation):
        asyncio.run(firebase.confirm_password_reset("abc", "fresh-pw"))
