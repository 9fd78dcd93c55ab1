"""Utilities for issuing and validating bearer JWTs."""

from __future__ import annotations

import time
from typing import Any

import jwt

from ..config import get_settings

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["sub", "email", "exp"]


class TokenSigningError(RuntimeError):
    """Raised when a token cannot be encoded."""


def issue_access_token(
    *,
    subject: str,
    email: str,
    secret: str | None = None,
    ttl_seconds: int | None = None,
) -> tuple[str, int]:
    """Create a signed JWT representing an authenticated account.

    Parameters
    ----------
    subject:
        Account identifier to embed in the token `sub` claim.
    email:
        Account email, carried in the `email` claim.
    secret:
        HMAC signing key; defaults to the configured ``JWT_SECRET``.
    ttl_seconds:
        Token lifetime; defaults to the configured ``JWT_TTL_SECONDS``.

    Returns
    -------
    tuple[str, int]
        A tuple containing the encoded JWT string and its TTL (in seconds).
    """

    settings = get_settings()
    signing_key = settings.jwt_secret if secret is None else secret
    expires_in = settings.jwt_ttl_seconds if ttl_seconds is None else ttl_seconds
    payload: dict[str, Any] = {
        "sub": subject,
        "email": email,
        "exp": int(time.time()) + expires_in,
    }

    try:
        token = jwt.encode(payload, signing_key, algorithm=ALGORITHM)
    except (jwt.PyJWTError, TypeError, ValueError) as exc:
        raise TokenSigningError(str(exc)) from exc
    return token, expires_in


def decode_access_token(token: str, secret: str | None = None) -> dict[str, Any]:
    """Decode and verify a JWT returning its payload.

    Parameters
    ----------
    token:
        Encoded JWT issued by this service.
    secret:
        HMAC key used at issuance; defaults to the configured ``JWT_SECRET``.

    Returns
    -------
    dict[str, Any]
        The decoded payload if the signature, expiry and required claims check out.

    Raises
    ------
    jwt.PyJWTError
        Propagated when the token is malformed, expired, or signed with another key.
    """

    signing_key = get_settings().jwt_secret if secret is None else secret
    return jwt.decode(
        token,
        signing_key,
        algorithms=[ALGORITHM],
        options={"require": REQUIRED_CLAIMS},
    )
