"""Bearer-token check for routes that require an authenticated account."""

from __future__ import annotations

import logging
from typing import Any

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..security.tokens import decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="unauthenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_bearer_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    """Return the verified claims of the request's bearer token.

    Missing, malformed, expired, or wrongly signed tokens raise 401. The
    signing key is the one the running ``AuthService`` issues tokens with.
    """
    if credentials is None or not credentials.credentials:
        logger.warning("no bearer token provided")
        raise _unauthenticated()

    secret = request.app.state.auth_service.settings.jwt_secret
    try:
        return decode_access_token(credentials.credentials, secret)
    except jwt.PyJWTError as exc:
        logger.warning("invalid bearer token: %s", exc)
        raise _unauthenticated() from exc
