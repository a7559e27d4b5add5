"""
Payment confirmation handler.

Consumes Stripe webhook deliveries. Stripe delivers at least once and
retries on any non-2xx answer, so this handler must:
- trust nothing from a body whose signature does not verify
- confirm each purchase at most once, however many times the event arrives
- only report success after the confirmation write has landed, so that a
  failed attempt is retried by Stripe

Per purchase the only transition is PENDING -> CONFIRMED. The transition and
the number allocation are one store-side transaction (see number_allocator).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
from uuid import UUID

from domain.errors import MissingCorrelationError, RecordNotFoundError
from domain.payment_event import CompletionEvent
from domain.purchase import PurchaseStatus
from repositories.purchase_repository import get_purchase_by_id
from services.number_allocator import allocate_and_confirm
from services.payment_provider import verify_webhook_payload

logger = logging.getLogger(__name__)


class ConfirmationOutcome(Enum):
    IGNORED = "ignored"  # not a checkout-completed event
    CONFIRMED = "confirmed"
    ALREADY_CONFIRMED = "already_confirmed"


@dataclass(frozen=True, slots=True)
class ConfirmationResult:
    """What a delivery did. Every outcome is acknowledged with 200."""
    outcome: ConfirmationOutcome
    event_type: str
    purchase_id: Optional[UUID] = None
    numbers_assigned: int = 0


def handle_completion_event(
    raw_body: Union[bytes, str],
    signature_header: Optional[str],
) -> ConfirmationResult:
    """
    Verify and apply one webhook delivery.

    Process:
    1. Verify the signature (nothing is parsed before this)
    2. Ignore event types other than checkout.session.completed
    3. Read {purchase_id, user_id} from the session metadata
    4. Load the purchase; stop here if it is already CONFIRMED
    5. Allocate numbers and confirm, atomically

    Args:
        raw_body: Request body exactly as received
        signature_header: Value of the Stripe-Signature header

    Returns:
        ConfirmationResult

    Raises:
        InvalidSignatureError: signature missing or wrong (400)
        MalformedEventError: verified body is not an event (400)
        MissingCorrelationError: metadata lacks purchase_id/user_id (400)
        RecordNotFoundError: no purchase for that id and user (404)
        AllocationFailedError / AllocationPersistError: nothing was
            committed; the purchase is still PENDING (500, Stripe retries)
        TransientStoreError: the purchase lookup failed (500)
    """

    payload = verify_webhook_payload(raw_body, signature_header)
    event = CompletionEvent.from_payload(payload)
    logger.info("Webhook event received: event_id=%s type=%s", event.event_id, event.event_type)

    if not event.is_checkout_completed:
        return ConfirmationResult(outcome=ConfirmationOutcome.IGNORED, event_type=event.event_type)

    try:
        correlation = event.correlation()
    except MissingCorrelationError:
        logger.warning(
            "Missing metadata in checkout session: session_id=%s metadata=%s",
            event.session_id,
            dict(event.metadata),
        )
        raise

    logger.info(
        "Checkout session completed: session_id=%s purchase_id=%s user_id=%s",
        event.session_id,
        correlation.purchase_id,
        correlation.user_id,
    )

    purchase = get_purchase_by_id(correlation.purchase_id)
    if purchase is None:
        logger.warning("Purchase record not found: purchase_id=%s", correlation.purchase_id)
        raise RecordNotFoundError(correlation.purchase_id)

    if purchase.user_id != correlation.user_id:
        logger.warning(
            "Purchase owner does not match event metadata: purchase_id=%s owner=%s event_user=%s",
            purchase.purchase_id,
            purchase.user_id,
            correlation.user_id,
        )
        raise RecordNotFoundError(correlation.purchase_id)

    if purchase.is_confirmed:
        logger.info("Purchase already confirmed, skipping: purchase_id=%s", purchase.purchase_id)
        return ConfirmationResult(
            outcome=ConfirmationOutcome.ALREADY_CONFIRMED,
            event_type=event.event_type,
            purchase_id=purchase.purchase_id,
        )

    allocation = allocate_and_confirm(purchase)
    if not allocation.newly_confirmed:
        # Another delivery confirmed it between our read and the store lock.
        return ConfirmationResult(
            outcome=ConfirmationOutcome.ALREADY_CONFIRMED,
            event_type=event.event_type,
            purchase_id=purchase.purchase_id,
        )

    logger.info(
        "Purchase record updated successfully: purchase_id=%s status=%s numbers=%s",
        purchase.purchase_id,
        PurchaseStatus.CONFIRMED.value,
        allocation.count,
    )
    return ConfirmationResult(
        outcome=ConfirmationOutcome.CONFIRMED,
        event_type=event.event_type,
        purchase_id=purchase.purchase_id,
        numbers_assigned=allocation.count,
    )


__all__ = [
    "ConfirmationOutcome",
    "ConfirmationResult",
    "handle_completion_event",
]
