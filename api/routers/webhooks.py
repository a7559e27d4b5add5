"""
Webhook Endpoints.

Stripe posts payment events here. The raw body is needed for signature
verification, so it is read directly from the request.
"""

from typing import Optional

from fastapi import APIRouter, Header, Request
from fastapi.concurrency import run_in_threadpool

from api.models import ErrorResponse, WebhookAck
from services.payment_confirmation_service import handle_completion_event

router = APIRouter()


@router.post(
    "/webhooks/stripe",
    response_model=WebhookAck,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Stripe Webhook",
    description="Receive Stripe events. Confirms purchases on checkout.session.completed."
)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
):
    """
    Handle a Stripe event delivery.

    - 200 `{"received": true}` for confirmed, already confirmed and ignored events
    - 400 for bad signatures, malformed events and missing metadata
    - 404 when the purchase does not exist
    - 500 when confirmation could not be committed (Stripe retries)
    """
    payload = await request.body()
    await run_in_threadpool(handle_completion_event, payload, stripe_signature)
    return WebhookAck(received=True)
