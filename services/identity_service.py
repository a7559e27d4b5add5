"""
Identity service: resolves bearer tokens to authenticated buyers.

Authentication itself belongs to Supabase Auth. This service only asks it
who a token belongs to.
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from supabase import AuthError  # type: ignore[import-not-found]

from domain.errors import UnauthenticatedError
from domain.user import AuthenticatedUser
from repositories.client import get_auth_client

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an `Authorization: Bearer <token>` header value."""

    if not authorization:
        return None
    token = authorization.strip()
    if token.lower().startswith("bearer "):
        token = token[7:].strip()
    return token or None


def verify_token(token: Optional[str]) -> AuthenticatedUser:
    """
    Resolve an access token to the user it was issued for.

    Args:
        token: Raw JWT (without the "Bearer " prefix), or None

    Returns:
        AuthenticatedUser with the profile attributes from user_metadata

    Raises:
        UnauthenticatedError: if the token is missing, invalid or expired
    """

    if not token:
        raise UnauthenticatedError()

    try:
        response = get_auth_client().auth.get_user(token)
    except AuthError as e:
        logger.warning("Authentication error: %s", e)
        raise UnauthenticatedError() from e

    user = getattr(response, "user", None) if response is not None else None
    if user is None:
        logger.warning("Authentication error: token resolved to no user")
        raise UnauthenticatedError()

    authenticated = AuthenticatedUser.from_profile(
        user_id=UUID(str(user.id)),
        metadata=getattr(user, "user_metadata", None),
        email=getattr(user, "email", None),
    )
    logger.info("User authenticated: user_id=%s", authenticated.user_id)
    return authenticated


__all__ = ["extract_bearer_token", "verify_token"]
