"""
Number allocator.

Assigns a block of globally unique raffle numbers to one purchase and
confirms it, as a single store-side transaction:
- numbers come from a strictly increasing counter reserved under the
  store's row lock, so concurrent confirmations never overlap
- the reservation and the purchase update commit together or not at all
- re-running for an already confirmed purchase returns its existing numbers
  and reserves nothing

No in-process state or locking is involved; any number of handler processes
can call this concurrently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

from domain.errors import AllocationFailedError, AllocationPersistError, RecordNotFoundError
from domain.purchase import PurchaseRecord
from repositories.raffle_number_repository import (
    ReservationOutcome,
    confirm_purchase_with_numbers,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AllocationResult:
    """
    Numbers bound to a purchase.

    newly_confirmed is False when the purchase had already been confirmed by
    an earlier delivery and nothing was reserved this time.
    """
    raffle_numbers: Tuple[int, ...]
    newly_confirmed: bool

    @property
    def count(self) -> int:
        return len(self.raffle_numbers)


def _check_block(purchase: PurchaseRecord, numbers: Tuple[int, ...]) -> None:
    """Log a committed block that does not match the purchase; it cannot be undone here."""

    if len(numbers) != purchase.quantity or len(set(numbers)) != len(numbers):
        logger.error(
            "Committed block does not match purchase: purchase_id=%s expected=%s got=%s distinct=%s",
            purchase.purchase_id,
            purchase.quantity,
            len(numbers),
            len(set(numbers)),
        )


def allocate_and_confirm(purchase: PurchaseRecord) -> AllocationResult:
    """
    Reserve `purchase.quantity` numbers and confirm the purchase atomically.

    Args:
        purchase: Purchase to confirm (as read by the caller; the store
            re-reads and locks it)

    Returns:
        AllocationResult with the purchase's numbers. Once the store reports
        CONFIRMED the purchase is committed, so a block that does not match
        the quantity is logged and still returned.

    Raises:
        AllocationFailedError: number space exhausted; nothing was reserved
        AllocationPersistError: the transaction failed; nothing was reserved
            and the purchase is still PENDING
        RecordNotFoundError: the purchase disappeared before it was locked

    Example:
        result = allocate_and_confirm(purchase)
        if result.newly_confirmed:
            print(f"Assigned {result.count} numbers")
    """

    reservation = confirm_purchase_with_numbers(purchase.purchase_id)
    outcome = reservation.outcome

    if outcome is ReservationOutcome.CONFIRMED:
        _check_block(purchase, reservation.raffle_numbers)
        logger.info(
            "Generated raffle numbers for purchase: purchase_id=%s count=%s",
            purchase.purchase_id,
            len(reservation.raffle_numbers),
        )
        return AllocationResult(raffle_numbers=reservation.raffle_numbers, newly_confirmed=True)

    if outcome is ReservationOutcome.ALREADY_CONFIRMED:
        logger.info("Purchase already confirmed by the store: purchase_id=%s", purchase.purchase_id)
        return AllocationResult(raffle_numbers=reservation.raffle_numbers, newly_confirmed=False)

    if outcome is ReservationOutcome.NOT_FOUND:
        raise RecordNotFoundError(purchase.purchase_id)

    if outcome is ReservationOutcome.NUMBERS_EXHAUSTED:
        logger.error("Raffle number space exhausted: purchase_id=%s", purchase.purchase_id)
        raise AllocationFailedError(purchase.purchase_id, reservation.error_message or "exhausted")

    logger.error(
        "Error updating purchase record: purchase_id=%s error=%s",
        purchase.purchase_id,
        reservation.error_message,
    )
    raise AllocationPersistError(purchase.purchase_id, reservation.error_message or "store error")


__all__ = ["AllocationResult", "allocate_and_confirm"]
