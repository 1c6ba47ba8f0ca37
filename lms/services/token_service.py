"""ID token creation and validation (ES256).

The local identity provider signs its own tokens so the API can run
without the hosted identity service.  Claims mirror what the hosted
service puts in its ID tokens: sub, email, name, plus the platform roles.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

# ---------------------------------------------------------------------------
# Key management
# ---------------------------------------------------------------------------
# Generated per process.  Tokens do not survive a restart, which is fine for
# the local provider; production verifies hosted-service tokens instead.
_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "learning-service"
AUDIENCE = "learning-service"
ID_TOKEN_TTL_MIN = 60

# Reset tokens share the key but not the audience, so one can never be
# presented as an ID token.
RESET_AUDIENCE = "learning-service-password-reset"
RESET_TOKEN_TTL_MIN = 30

_REQUIRED = ["sub", "exp", "iat", "jti"]


def create_id_token(
    *,
    sub: str,
    email: str = "",
    name: str = "",
    roles: list[str] | None = None,
) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ID_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "email": email,
        "name": name,
        "roles": roles or ["user"],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_id_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256.  Raises jwt.ExpiredSignatureError or
    jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": _REQUIRED},
    )


def create_reset_token(*, sub: str) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": RESET_AUDIENCE,
        "exp": now + timedelta(minutes=RESET_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_reset_token(token: str) -> dict:
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=RESET_AUDIENCE,
        options={"require": _REQUIRED},
    )
