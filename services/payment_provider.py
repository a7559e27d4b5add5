"""
Payment provider adapter (Stripe).

Two operations:
- open a Checkout Session for a PENDING purchase
- verify a webhook body against its `Stripe-Signature` header

Session creation uses an idempotency key derived from the purchase id, so
asking again for the same purchase (retry job, client retry) returns the
same session instead of opening a second charge.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

import stripe

from domain.errors import (
    CheckoutConflictError,
    InvalidSignatureError,
    MalformedEventError,
    SessionCreationFailedError,
)
from domain.payment_event import CorrelationMetadata
from domain.purchase import PurchaseRecord
from domain.pricing import provider_unit_amount
from settings import get_settings

logger = logging.getLogger(__name__)

PAYMENT_METHOD_TYPES: list[str] = ["card", "pix"]


@dataclass(frozen=True, slots=True)
class CheckoutSession:
    """Checkout session opened for one purchase."""
    session_id: str
    redirect_url: str


def idempotency_key_for(purchase: PurchaseRecord) -> str:
    return f"raffle-purchase-{purchase.purchase_id}"


def checkout_base_url(origin: Optional[str] = None) -> str:
    """Frontend base URL for the success/cancel redirects (FRONTEND_URL when no origin)."""
    return (origin or get_settings().frontend_url).rstrip("/")


def build_line_item(purchase: PurchaseRecord, currency: str, product_name: str) -> dict[str, Any]:
    """
    Stripe line item for a purchase.

    Stripe wants a unit amount and a quantity; the unit amount is the stored
    total divided back by quantity (see domain.pricing.provider_unit_amount).
    """

    return {
        "price_data": {
            "currency": currency,
            "product_data": {
                "name": f"Números - {product_name} ({purchase.quantity} números)",
                "description": (
                    f"Compra de {purchase.quantity} números para o sorteio do {product_name}."
                ),
            },
            "unit_amount": provider_unit_amount(purchase.amount, purchase.quantity),
        },
        "quantity": purchase.quantity,
    }


def create_checkout_session(purchase: PurchaseRecord, origin: Optional[str] = None) -> CheckoutSession:
    """
    Open a Stripe Checkout Session for `purchase`.

    The session carries `{purchase_id, user_id}` as metadata; Stripe echoes
    it back on `checkout.session.completed`.

    Args:
        purchase: PENDING purchase record (already persisted)
        origin: Frontend origin for success/cancel URLs; FRONTEND_URL when None

    Returns:
        CheckoutSession with the session id and the hosted checkout URL

    Raises:
        CheckoutConflictError: the purchase's idempotency key was already
            used with different parameters (e.g. another origin)
        SessionCreationFailedError: on any other Stripe error
    """

    settings = get_settings()
    base_url = checkout_base_url(origin)
    correlation = CorrelationMetadata(purchase_id=purchase.purchase_id, user_id=purchase.user_id)

    try:
        session = stripe.checkout.Session.create(
            api_key=settings.require("stripe_secret_key"),
            payment_method_types=PAYMENT_METHOD_TYPES,
            line_items=[build_line_item(purchase, settings.currency, settings.product_name)],
            mode="payment",
            success_url=f"{base_url}/minhas-numeros?success=true",
            cancel_url=f"{base_url}/comprar-numeros?canceled=true",
            metadata=correlation.as_metadata(),
            idempotency_key=idempotency_key_for(purchase),
        )
    except stripe.IdempotencyError as e:
        logger.error(
            "Stripe idempotency conflict: purchase_id=%s key=%s error=%s",
            purchase.purchase_id,
            idempotency_key_for(purchase),
            e,
        )
        raise CheckoutConflictError(purchase.purchase_id, str(e)) from e
    except stripe.StripeError as e:
        logger.error(
            "Stripe session creation failed: purchase_id=%s error_type=%s error=%s",
            purchase.purchase_id,
            type(e).__name__,
            e,
        )
        raise SessionCreationFailedError(purchase.purchase_id, str(e)) from e

    logger.info("Stripe session created: purchase_id=%s session_id=%s", purchase.purchase_id, session.id)
    return CheckoutSession(session_id=session.id, redirect_url=session.url)


def verify_webhook_payload(raw_body: Union[bytes, str], signature: Optional[str]) -> dict[str, Any]:
    """
    Verify a webhook body against its signature and parse it.

    Nothing from the body is read before the signature checks out.

    Returns:
        The event payload as a plain dict

    Raises:
        InvalidSignatureError: missing header or signature mismatch
        MalformedEventError: verified body is not a JSON object
    """

    if not signature:
        raise InvalidSignatureError("Missing Stripe-Signature header")

    try:
        payload = raw_body.decode("utf-8") if isinstance(raw_body, bytes) else raw_body
    except UnicodeDecodeError as e:
        raise InvalidSignatureError("Webhook body is not UTF-8") from e
    secret = get_settings().require("stripe_webhook_secret")

    try:
        stripe.WebhookSignature.verify_header(
            payload, signature, secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
        )
    except stripe.SignatureVerificationError as e:
        logger.warning("Webhook signature verification failed: %s", e)
        raise InvalidSignatureError(str(e)) from e

    try:
        event = json.loads(payload)
    except ValueError as e:
        raise MalformedEventError("Event body is not valid JSON") from e
    if not isinstance(event, dict):
        raise MalformedEventError("Event body is not a JSON object")
    return event


__all__ = [
    "CheckoutSession",
    "build_line_item",
    "checkout_base_url",
    "create_checkout_session",
    "idempotency_key_for",
    "verify_webhook_payload",
]
