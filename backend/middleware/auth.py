#  Voice Tutor - Auth Middleware
#
#  FastAPI dependencies around RequestAuthenticator.
#  get_identity: token only, returns the Identity embedded in the token.
#  get_current_user: token + user lookup, returns the user dict.
#  get_optional_user: like get_current_user but anonymous requests get None.
#
#  Depends on: backend/services/authenticator.py, backend/container.py
#  Used by:    routes/*

import logging

from dependency_injector.wiring import inject, Provide
from fastapi import Depends, Header, HTTPException, status

from backend.container import Container
from backend.logging_config import set_user_id
from backend.models.enums import AuthErrorKind
from backend.services.authenticator import AuthFailure, RequestAuthenticator
from backend.services.tokens import Identity

logger = logging.getLogger("tutor.auth")


def _reject(failure: AuthFailure) -> HTTPException:
    logger.debug("Request rejected: %s", failure.kind.value)
    if failure.kind is AuthErrorKind.PRINCIPAL_NOT_FOUND:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=failure.detail)
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=failure.detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


@inject
async def get_identity(
    authorization: str | None = Header(default=None),
    authenticator: RequestAuthenticator = Depends(Provide[Container.authenticator]),
) -> Identity:
    """Verify the bearer token and return its identity. Raises 401 on failure."""
    result = authenticator.authenticate(authorization)
    if isinstance(result, AuthFailure):
        raise _reject(result)
    set_user_id(result.user_id)
    return result


@inject
async def get_current_user(
    authorization: str | None = Header(default=None),
    authenticator: RequestAuthenticator = Depends(Provide[Container.authenticator]),
) -> dict:
    """Verify the bearer token and load the user. 401 on bad token, 404 if the user is gone."""
    result = await authenticator.resolve_principal(authorization)
    if isinstance(result, AuthFailure):
        raise _reject(result)
    identity, user = result
    set_user_id(identity.user_id)
    return user


@inject
async def get_optional_user(
    authorization: str | None = Header(default=None),
    authenticator: RequestAuthenticator = Depends(Provide[Container.authenticator]),
) -> dict | None:
    """Current user when a valid token is supplied, otherwise None."""
    result = await authenticator.resolve_principal(authorization)
    if isinstance(result, AuthFailure):
        return None
    return result[1]
