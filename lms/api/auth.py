"""Sign-up, sign-in and session endpoints (/auth/*).

All of them delegate to the configured identity provider.  Sign-up and
provider sign-in also make sure the ``users/{uid}`` profile exists.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from lms.api.dependencies import CurrentUser, ServicesDep, bearer_token
from lms.api.schemas import CamelModel, MessageOut, UserOut
from lms.models.user import UserProfile
from lms.services.identity import AuthSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# --- Request / Response schemas -------------------------------------------


class SignUpIn(CamelModel):
    name: str = ""
    email: str
    password: str


class LoginIn(CamelModel):
    email: str
    password: str


class ProviderIn(CamelModel):
    provider: str
    credential: str


class PasswordResetIn(CamelModel):
    email: str


class PasswordResetConfirmIn(CamelModel):
    token: str
    new_password: str


class AuthOut(CamelModel):
    token: str
    token_type: str
    user: UserOut

    @classmethod
    def of(cls, session: AuthSession) -> AuthOut:
        return cls(
            token=session.token,
            token_type=session.token_type,
            user=UserOut.of(session.principal),
        )


# --- Endpoints --------------------------------------------------------------


@router.post("/signup", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
async def signup(payload: SignUpIn, services: ServicesDep) -> AuthOut:
    session = await services.identity.sign_up(
        payload.email, payload.password, payload.name
    )
    await services.users.ensure_profile(session.principal)
    logger.info("Sign-up succeeded user=%s", session.principal.user_id)
    return AuthOut.of(session)


@router.post("/login", response_model=AuthOut)
async def login(payload: LoginIn, services: ServicesDep) -> AuthOut:
    session = await services.identity.sign_in(payload.email, payload.password)
    logger.info("Login succeeded user=%s", session.principal.user_id)
    return AuthOut.of(session)


@router.post("/provider", response_model=AuthOut)
async def provider_login(payload: ProviderIn, services: ServicesDep) -> AuthOut:
    session = await services.identity.sign_in_with_provider(
        payload.provider, payload.credential
    )
    await services.users.ensure_profile(session.principal)
    return AuthOut.of(session)


@router.post(
    "/password-reset",
    response_model=MessageOut,
    status_code=status.HTTP_202_ACCEPTED,
)
async def password_reset(payload: PasswordResetIn, services: ServicesDep) -> MessageOut:
    await services.identity.send_password_reset(payload.email.strip().lower())
    return MessageOut(
        message="If an account exists for that address, a reset email is on its way"
    )


@router.post("/password-reset/confirm", response_model=MessageOut)
async def confirm_password_reset(
    payload: PasswordResetConfirmIn, services: ServicesDep
) -> MessageOut:
    await services.identity.confirm_password_reset(payload.token, payload.new_password)
    return MessageOut(message="Password updated; sign in with the new password")


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    _principal: CurrentUser,
    raw_token: Annotated[str, Depends(bearer_token)],
    services: ServicesDep,
) -> Response:
    await services.identity.sign_out(raw_token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=UserProfile)
async def me(principal: CurrentUser, services: ServicesDep) -> UserProfile:
    return await services.users.ensure_profile(principal)
