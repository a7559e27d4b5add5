"""
Domain: authenticated buyers.

The platform does not own identities. A buyer is whatever the identity
provider vouches for: an opaque user id plus the profile attributes copied
onto each purchase record.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional
from uuid import UUID

DEFAULT_USER_NAME: str = "Usuário"


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    """
    Buyer identity resolved from a bearer token.

    Profile attributes are optional upstream; missing values fall back to
    DEFAULT_USER_NAME and an empty phone.
    """

    user_id: UUID
    full_name: str = DEFAULT_USER_NAME
    phone: str = ""
    email: Optional[str] = None

    @classmethod
    def from_profile(
        cls,
        user_id: UUID,
        metadata: Optional[Mapping[str, Any]],
        email: Optional[str] = None,
    ) -> AuthenticatedUser:
        """Build a user from the identity provider's `user_metadata` mapping."""

        metadata = metadata or {}
        return cls(
            user_id=user_id,
            full_name=str(metadata.get("full_name") or DEFAULT_USER_NAME),
            phone=str(metadata.get("phone") or ""),
            email=email,
        )


__all__ = ["AuthenticatedUser", "DEFAULT_USER_NAME"]
