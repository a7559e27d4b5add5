"""
Raffle number repository (persistence).

Wraps the `confirm_raffle_purchase` PostgreSQL function, which in a single
transaction:
- locks the purchase row (FOR UPDATE)
- returns early if the purchase is missing or already confirmed
- reserves `quantity` numbers from the global counter (row-locked increment)
- writes raffle_numbers and status = 'confirmado'

Any failure aborts the transaction, so a counter range is never consumed
without being assigned. See sql/raffle_schema.sql.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Tuple
from uuid import UUID

import httpx
from postgrest.exceptions import APIError

from repositories.client import get_service_client

logger = logging.getLogger(__name__)

_CONFIRM_FUNCTION: str = "confirm_raffle_purchase"


class ReservationOutcome(Enum):
    """Outcome codes returned by confirm_raffle_purchase (plus STORE_ERROR)."""

    CONFIRMED = "CONFIRMED"
    ALREADY_CONFIRMED = "ALREADY_CONFIRMED"
    NOT_FOUND = "NOT_FOUND"
    NUMBERS_EXHAUSTED = "NUMBERS_EXHAUSTED"
    STORE_ERROR = "STORE_ERROR"  # call failed; transaction rolled back


@dataclass(frozen=True, slots=True)
class NumberReservation:
    """Result from the confirm_raffle_purchase PostgreSQL function."""

    outcome: ReservationOutcome
    raffle_numbers: Tuple[int, ...] = ()
    error_message: Optional[str] = None


def _parse_result(data: Mapping[str, Any]) -> NumberReservation:
    try:
        outcome = ReservationOutcome(str(data.get("outcome")))
    except ValueError:
        return NumberReservation(
            outcome=ReservationOutcome.STORE_ERROR,
            error_message=f"Unexpected function result: {dict(data)!r}",
        )

    numbers = data.get("raffle_numbers") or []
    return NumberReservation(
        outcome=outcome,
        raffle_numbers=tuple(int(n) for n in numbers),
        error_message=data.get("message"),
    )


def confirm_purchase_with_numbers(purchase_id: UUID) -> NumberReservation:
    """
    Reserve a block of numbers and confirm the purchase, atomically.

    Args:
        purchase_id: Purchase to confirm; its stored quantity decides the
            block size

    Returns:
        NumberReservation. Failures are reported through `outcome`, never
        raised.
    """

    try:
        response = (
            get_service_client()
            .rpc(_CONFIRM_FUNCTION, {"p_purchase_id": str(purchase_id)})
            .execute()
        )
    except APIError as e:
        # supabase-py may wrap a JSON function result in APIError
        try:
            error_data = e.json() if callable(getattr(e, "json", None)) else {}
        except ValueError:
            error_data = {}
        if isinstance(error_data, Mapping) and error_data.get("outcome"):
            return _parse_result(error_data)

        logger.error("confirm_raffle_purchase failed: purchase_id=%s error=%s", purchase_id, e.message)
        return NumberReservation(outcome=ReservationOutcome.STORE_ERROR, error_message=str(e.message))
    except httpx.HTTPError as e:
        logger.error("confirm_raffle_purchase transport error: purchase_id=%s error=%s", purchase_id, e)
        return NumberReservation(outcome=ReservationOutcome.STORE_ERROR, error_message=str(e))

    error = getattr(response, "error", None)
    if error:
        return NumberReservation(outcome=ReservationOutcome.STORE_ERROR, error_message=str(error))

    data = response.data
    if isinstance(data, list):
        data = data[0] if data else {}
    if not isinstance(data, Mapping):
        return NumberReservation(
            outcome=ReservationOutcome.STORE_ERROR,
            error_message=f"Unexpected function result: {data!r}",
        )
    return _parse_result(data)


__all__ = [
    "NumberReservation",
    "ReservationOutcome",
    "confirm_purchase_with_numbers",
]
