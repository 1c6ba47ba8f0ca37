from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from lms.core.errors import AuthenticationFailed
from lms.models.principal import Principal
from lms.services.container import Services

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]


def bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Not authenticated"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


async def require_user(
    services: ServicesDep,
    raw_token: Annotated[str, Depends(bearer_token)],
) -> Principal:
    """Validate the bearer ID token with the configured identity provider.

    Used as a FastAPI dependency on any protected endpoint.
    """
    try:
        principal = await services.identity.verify(raw_token)
    except AuthenticationFailed as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": e.message},
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        sorted(principal.roles),
    )
    return principal


def require_role(role: str):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role("admin"))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s",
                principal.user_id,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"message": "Insufficient permissions"},
            )
        return principal

    return _guard


CurrentUser = Annotated[Principal, Depends(require_user)]
AdminUser = Annotated[Principal, Depends(require_role("admin"))]
