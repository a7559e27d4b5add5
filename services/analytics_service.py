"""
Analytics pixel dispatch (Kwai ads).

Fire-and-forget: callers schedule `send_initiated_checkout` as a background
task. Every failure is logged and dropped; nothing here may affect a
purchase.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from settings import get_settings

logger = logging.getLogger(__name__)

KWAI_EVENTS_URL: str = "https://www.adsnebula.com/log/common/api"
INITIATED_CHECKOUT: str = "EVENT_INITIATED_CHECKOUT"

_TIMEOUT = httpx.Timeout(5.0)


def build_initiated_checkout_event(quantity: int, pixel_id: str, product_name: str) -> dict[str, Any]:
    return {
        "clickid": "",
        "event_name": INITIATED_CHECKOUT,
        "is_attributed": 1,
        "mmpcode": "PL",
        "pixelId": pixel_id,
        "pixelSdkVersion": "9.9.9",
        "properties": {
            "content_id": f"raffle_{quantity}",
            "content_type": "raffle",
            "content_name": f"numeros {product_name} - {quantity} números",
        },
        "testFlag": False,
        "third_party": "Supabase",
        "trackFlag": True,
    }


def send_initiated_checkout(quantity: int) -> bool:
    """
    Post an "initiated checkout" event to the Kwai events API.

    Returns:
        True if the API accepted the event, False otherwise (including when
        KWAI_ACCESS_TOKEN is not configured). Never raises for HTTP errors.
    """

    settings = get_settings()
    if not settings.kwai_access_token:
        logger.debug("Kwai pixel disabled: KWAI_ACCESS_TOKEN is not set")
        return False

    body = build_initiated_checkout_event(quantity, settings.kwai_pixel_id, settings.product_name)
    body["access_token"] = settings.kwai_access_token

    try:
        with httpx.Client(timeout=_TIMEOUT) as client:
            response = client.post(
                KWAI_EVENTS_URL,
                json=body,
                headers={"accept": "application/json;charset=utf-8"},
            )
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Error sending Kwai pixel event: %s", e)
        return False

    logger.info("Kwai pixel 'Initiated Checkout' event sent: quantity=%s", quantity)
    return True


__all__ = [
    "INITIATED_CHECKOUT",
    "KWAI_EVENTS_URL",
    "build_initiated_checkout_event",
    "send_initiated_checkout",
]
