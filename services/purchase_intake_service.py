"""
Purchase intake service.

Handles:
- Quantity validation and pricing (before anything is persisted)
- Caller authentication (before anything is persisted)
- Inserting the PENDING purchase record (the durability boundary)
- Opening the Stripe checkout session and attaching it to the record
- Re-opening checkout for PENDING records that never got a session

Raffle numbers are not touched here; they are assigned by the payment
confirmation handler once Stripe reports the payment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from domain.errors import RecordNotFoundError, TransientStoreError
from domain.purchase import PurchaseRecord
from repositories.purchase_repository import (
    attach_payment_session,
    get_purchase_by_id,
    insert_pending_purchase,
)
from services.identity_service import verify_token
from services.payment_provider import CheckoutSession, checkout_base_url, create_checkout_session
from services.pricing_service import calculate_purchase_quote

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PurchaseIntakeResult:
    """
    Result of a successful intake.

    redirect_url: hosted checkout page the buyer must be sent to
    total_amount: stored amount in minor units
    session_attached: False when the session id could not be written to the
        record (the checkout itself is still valid)
    """
    purchase_id: UUID
    redirect_url: str
    quantity: int
    total_amount: int
    session_attached: bool


def _attach_session_best_effort(purchase: PurchaseRecord, session: CheckoutSession) -> bool:
    """Write the session id onto the record; failures are logged, not raised."""

    try:
        attached = attach_payment_session(purchase.purchase_id, session.session_id)
    except TransientStoreError as e:
        logger.warning(
            "Error updating purchase with Stripe session ID: purchase_id=%s error=%s",
            purchase.purchase_id,
            e.detail,
        )
        return False

    if not attached:
        logger.warning(
            "Stripe session ID not attached (record already has one): purchase_id=%s",
            purchase.purchase_id,
        )
    return attached


def create_purchase(
    access_token: Optional[str],
    quantity: object,
    origin: Optional[str] = None,
) -> PurchaseIntakeResult:
    """
    Create a PENDING purchase and open its checkout session.

    Process:
    1. Validate quantity and compute the price
    2. Authenticate the caller
    3. Insert the PENDING record (no numbers, no session) with the checkout
       origin it will use
    4. Open a Stripe checkout session tagged with {purchase_id, user_id}
    5. Attach the session id to the record (best-effort)
    6. Return the checkout URL

    Args:
        access_token: Caller's bearer token (None when absent)
        quantity: Requested number of raffle entries
        origin: Frontend origin used for checkout success/cancel URLs

    Returns:
        PurchaseIntakeResult

    Raises:
        InvalidQuantityError: quantity outside [100, 10000]; nothing persisted
        UnauthenticatedError: missing/invalid token; nothing persisted
        TransientStoreError: the insert failed; nothing persisted
        SessionCreationFailedError: Stripe refused the session; the record
            stays PENDING without a session and can be retried with
            `resume_checkout`

    Example:
        result = create_purchase(token, 1000, origin="https://rifa.example")
        # result.total_amount == 5000
    """

    quote = calculate_purchase_quote(quantity)
    user = verify_token(access_token)

    logger.info(
        "Purchase requested: user_id=%s quantity=%s amount=%s",
        user.user_id,
        quote.quantity,
        quote.total_amount,
    )

    purchase = insert_pending_purchase(
        user,
        quote.quantity,
        quote.total_amount,
        checkout_origin=checkout_base_url(origin),
    )
    logger.info("Purchase stored successfully: purchase_id=%s", purchase.purchase_id)

    session = create_checkout_session(purchase, purchase.checkout_origin)
    attached = _attach_session_best_effort(purchase, session)

    return PurchaseIntakeResult(
        purchase_id=purchase.purchase_id,
        redirect_url=session.redirect_url,
        quantity=purchase.quantity,
        total_amount=purchase.amount,
        session_attached=attached,
    )


def resume_checkout(purchase_id: UUID, origin: Optional[str] = None) -> Optional[CheckoutSession]:
    """
    Re-open checkout for a PENDING purchase that has no session reference.

    The session is requested with the same idempotency key and the same
    origin as the original attempt, so if Stripe did create one before, the
    same session comes back and the buyer is never charged twice. `origin`
    is only used for records stored without a checkout origin.

    Returns:
        The CheckoutSession, or None if the purchase is confirmed or already
        has a session (nothing to do)

    Raises:
        RecordNotFoundError: no purchase with that id
        CheckoutConflictError: Stripe holds the idempotency key with
            different parameters
        SessionCreationFailedError: Stripe still refuses the session
        TransientStoreError: the session could not be attached
    """

    purchase = get_purchase_by_id(purchase_id)
    if purchase is None:
        raise RecordNotFoundError(purchase_id)

    if not purchase.needs_checkout_session:
        logger.info(
            "Checkout not resumed: purchase_id=%s status=%s has_session=%s",
            purchase.purchase_id,
            purchase.status.value,
            purchase.payment_session_ref is not None,
        )
        return None

    session = create_checkout_session(purchase, purchase.checkout_origin or origin)
    if not attach_payment_session(purchase.purchase_id, session.session_id):
        logger.warning("Resumed session not attached: purchase_id=%s", purchase.purchase_id)
    else:
        logger.info(
            "Checkout resumed: purchase_id=%s session_id=%s",
            purchase.purchase_id,
            session.session_id,
        )
    return session


__all__ = [
    "PurchaseIntakeResult",
    "create_purchase",
    "resume_checkout",
]
