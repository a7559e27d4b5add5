"""
Domain: raffle purchase records.

Contract excerpts relevant here:
- A purchase is created PENDING and moves to CONFIRMED exactly once.
  CONFIRMED never goes back to PENDING.
- raffle_numbers is non-empty iff status is CONFIRMED, and then holds exactly
  `quantity` distinct numbers.
- quantity, amount and the owner are fixed at creation.

This module holds the entity and its invariants. Persistence and the
confirmation transition itself live in repositories/ and services/.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Tuple
from uuid import UUID

from .pricing import compute_price


class PurchaseStatus(str, Enum):
    """
    Purchase lifecycle states.

    Values are the strings stored in the `raffle_purchases.status` column.
    """

    PENDING = "pendente"
    CONFIRMED = "confirmado"


def _require_utc(name: str, value: datetime) -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


@dataclass(frozen=True, slots=True)
class PurchaseRecord:
    """
    One buyer's request for a block of raffle numbers.

    Tracks the purchase from intake (PENDING, no numbers) through payment
    confirmation (CONFIRMED, numbers assigned). Profile fields are a snapshot
    of the identity provider's data at intake time. checkout_origin is the
    frontend base URL the checkout session was opened with; re-opening checkout
    must send the same one.
    """

    purchase_id: UUID
    user_id: UUID
    quantity: int
    amount: int  # minor units (centavos)
    status: PurchaseStatus
    payment_session_ref: Optional[str] = None  # Stripe checkout session id
    raffle_numbers: Optional[Tuple[int, ...]] = None
    user_name: str = ""
    user_phone: str = ""
    created_at: Optional[datetime] = None
    checkout_origin: Optional[str] = None  # base URL of the success/cancel redirects

    def __post_init__(self) -> None:
        if self.amount != compute_price(self.quantity):
            raise ValueError(
                f"amount {self.amount} does not match price for quantity {self.quantity}"
            )

        has_numbers = bool(self.raffle_numbers)
        if self.status is PurchaseStatus.CONFIRMED:
            if not has_numbers:
                raise ValueError("confirmed purchase must carry raffle numbers")
            if len(self.raffle_numbers) != self.quantity:
                raise ValueError(
                    f"confirmed purchase has {len(self.raffle_numbers)} numbers, expected {self.quantity}"
                )
            if len(set(self.raffle_numbers)) != len(self.raffle_numbers):
                raise ValueError("raffle numbers must be distinct")
        elif has_numbers:
            raise ValueError("pending purchase cannot carry raffle numbers")

        if self.created_at is not None:
            _require_utc("created_at", self.created_at)

    @property
    def is_confirmed(self) -> bool:
        return self.status is PurchaseStatus.CONFIRMED

    @property
    def needs_checkout_session(self) -> bool:
        """True for a PENDING record whose checkout session was never attached."""
        return self.status is PurchaseStatus.PENDING and self.payment_session_ref is None

    def with_payment_session(self, session_ref: str) -> PurchaseRecord:
        """
        Return a copy carrying `session_ref`.

        The session reference is write-once; attaching a different one to a
        record that already has a reference is an error.
        """

        if self.payment_session_ref is not None and self.payment_session_ref != session_ref:
            raise ValueError("payment session reference is already set")
        return replace(self, payment_session_ref=session_ref)

    def confirmed(self, raffle_numbers: Tuple[int, ...]) -> PurchaseRecord:
        """
        Return the CONFIRMED copy of this record with `raffle_numbers` assigned.

        Raises:
            ValueError: if the record is already confirmed
        """

        if self.is_confirmed:
            raise ValueError("purchase is already confirmed")
        return replace(
            self,
            status=PurchaseStatus.CONFIRMED,
            raffle_numbers=tuple(raffle_numbers),
        )


__all__ = [
    "PurchaseRecord",
    "PurchaseStatus",
]
