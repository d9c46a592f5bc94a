"""
Bearer token authentication for the extraction endpoint.
"""

import hmac
import logging
from enum import Enum

from fastapi import Request

from .exceptions import InvalidTokenError, MissingTokenError

logger = logging.getLogger(__name__)


class AuthStatus(str, Enum):
    """Outcome of checking an Authorization header."""

    MISSING = "missing"
    INVALID = "invalid"
    AUTHENTICATED = "authenticated"


def extract_bearer_token(authorization: str | None) -> str:
    """
    Return the token from an ``Authorization: Bearer <token>`` header.

    The token is the second space-separated segment; an absent header or
    segment yields an empty string.
    """
    if not authorization:
        return ""
    parts = authorization.split(" ")
    return parts[1] if len(parts) > 1 else ""


def authenticate(authorization: str | None, secret: str) -> AuthStatus:
    """
    Check an Authorization header value against the configured secret.

    Args:
        authorization: Raw header value, or None if the header is absent.
        secret: The process-wide shared secret.

    Returns:
        AuthStatus.MISSING when no token is presented, AuthStatus.INVALID when
        the token does not exactly equal the secret, else AUTHENTICATED.
    """
    token = extract_bearer_token(authorization)
    if not token:
        return AuthStatus.MISSING
    if not hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8")):
        return AuthStatus.INVALID
    return AuthStatus.AUTHENTICATED


async def require_bearer_token(request: Request) -> None:
    """
    FastAPI dependency guarding routes with the configured bearer token.

    Raises:
        MissingTokenError: No token presented (401).
        InvalidTokenError: Token does not match (403).
    """
    secret = request.app.state.settings.auth_token
    result = authenticate(request.headers.get("authorization"), secret)

    if result is AuthStatus.MISSING:
        raise MissingTokenError()
    if result is AuthStatus.INVALID:
        client = request.client.host if request.client else "unknown"
        logger.warning("Rejected request with invalid token from %s", client)
        raise InvalidTokenError()
