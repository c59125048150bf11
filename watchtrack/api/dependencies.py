from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from watchtrack.models.principal import Principal
from watchtrack.services import token_service
from watchtrack.services.progress_service import WatchProgressService

logger = logging.getLogger(__name__)

# tokenUrl only feeds the OpenAPI docs; tokens are issued by the identity provider
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(user_id=claims["sub"])
    logger.debug("Token validated for user=%s", principal.user_id)
    return principal


def get_progress_service(request: Request) -> WatchProgressService:
    """The service built in the app lifespan, stored on app.state."""
    service = getattr(request.app.state, "progress_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress store is not initialised",
        )
    return service
