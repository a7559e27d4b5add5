"""
Domain: payment completion events.

Only the fields the confirmation handler needs are lifted out of the
provider payload. Anything else stays with the provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional
from uuid import UUID

from .errors import MalformedEventError, MissingCorrelationError

CHECKOUT_COMPLETED: str = "checkout.session.completed"


@dataclass(frozen=True, slots=True)
class CorrelationMetadata:
    """Identifiers echoed back verbatim by the payment provider."""

    purchase_id: UUID
    user_id: UUID

    def as_metadata(self) -> dict[str, str]:
        """Serialize for the provider's metadata field."""
        return {
            "purchase_id": str(self.purchase_id),
            "user_id": str(self.user_id),
        }


@dataclass(frozen=True, slots=True)
class CompletionEvent:
    """
    A verified provider event.

    `correlation` is only resolved for checkout-completed events; other kinds
    are acknowledged and ignored by the handler.
    """

    event_id: str
    event_type: str
    session_id: Optional[str]
    metadata: Mapping[str, Any]

    @property
    def is_checkout_completed(self) -> bool:
        return self.event_type == CHECKOUT_COMPLETED

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> CompletionEvent:
        """
        Read an event from a verified provider payload.

        Raises:
            MalformedEventError: if type or data.object is missing
        """

        event_type = payload.get("type")
        data = payload.get("data")
        session = data.get("object") if isinstance(data, Mapping) else None
        if not isinstance(event_type, str) or not isinstance(session, Mapping):
            raise MalformedEventError("Event payload is missing type or data.object")

        metadata = session.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            metadata = {}

        return cls(
            event_id=str(payload.get("id", "")),
            event_type=event_type,
            session_id=session.get("id"),
            metadata=dict(metadata),
        )

    def correlation(self) -> CorrelationMetadata:
        """
        Extract `{purchase_id, user_id}` from the session metadata.

        Raises:
            MissingCorrelationError: if either id is absent or not a UUID
        """

        purchase_id = self.metadata.get("purchase_id")
        user_id = self.metadata.get("user_id")
        if not purchase_id or not user_id:
            raise MissingCorrelationError(self.session_id)

        try:
            return CorrelationMetadata(
                purchase_id=UUID(str(purchase_id)),
                user_id=UUID(str(user_id)),
            )
        except ValueError:
            raise MissingCorrelationError(self.session_id)


__all__ = [
    "CHECKOUT_COMPLETED",
    "CompletionEvent",
    "CorrelationMetadata",
]
