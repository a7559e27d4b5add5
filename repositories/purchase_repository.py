"""
Purchase repository (persistence).

This module provides *only* persistence operations for the PurchaseRecord
domain entity. It does not decide when a purchase may be created or
confirmed; it inserts, fetches and performs the guarded single-row updates
the services ask for.

The confirmation write (numbers + status) is not here: it runs inside the
`confirm_raffle_purchase` database function, see raffle_number_repository.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional
from uuid import UUID, uuid4

from postgrest.exceptions import APIError

from domain.errors import TransientStoreError
from domain.purchase import PurchaseRecord, PurchaseStatus
from domain.user import AuthenticatedUser
from repositories.client import get_service_client

logger = logging.getLogger(__name__)

# Supabase table name for purchase records.
# Keep this aligned with sql/raffle_schema.sql.
_PURCHASES_TABLE: str = "raffle_purchases"


def _parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _row_to_purchase(row: Mapping[str, Any]) -> PurchaseRecord:
    """Convert a Supabase row into a PurchaseRecord."""

    numbers = row.get("raffle_numbers")
    return PurchaseRecord(
        purchase_id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        quantity=int(row["quantity"]),
        amount=int(row["amount"]),
        status=PurchaseStatus(str(row["status"])),
        payment_session_ref=row.get("stripe_session_id"),
        raffle_numbers=tuple(int(n) for n in numbers) if numbers else None,
        user_name=str(row.get("user_name") or ""),
        user_phone=str(row.get("user_phone") or ""),
        created_at=_parse_utc_datetime(row["created_at"]) if row.get("created_at") else None,
        checkout_origin=row.get("checkout_origin"),
    )


def _execute(query: Any, operation: str) -> Any:
    """
    Run a PostgREST query, turning every failure mode into TransientStoreError.

    supabase-py raises APIError for most failures, but some versions still
    report them on `response.error`; both are handled.
    """

    try:
        response = query.execute()
    except APIError as e:
        logger.error("Store operation failed: operation=%s error=%s", operation, e.message)
        raise TransientStoreError(operation, str(e.message)) from e

    error = getattr(response, "error", None)
    if error:
        logger.error("Store operation failed: operation=%s error=%s", operation, error)
        raise TransientStoreError(operation, str(error))
    return response


def insert_pending_purchase(
    user: AuthenticatedUser,
    quantity: int,
    amount: int,
    checkout_origin: Optional[str] = None,
) -> PurchaseRecord:
    """
    Insert a new PENDING purchase with no raffle numbers and no session.

    Args:
        user: Buyer; profile fields are copied onto the record
        quantity: Validated entry count
        amount: Total in minor units, already priced
        checkout_origin: Frontend base URL the checkout session will use

    Returns:
        PurchaseRecord as stored

    Raises:
        TransientStoreError: if the insert fails
    """

    record = PurchaseRecord(
        purchase_id=uuid4(),
        user_id=user.user_id,
        quantity=quantity,
        amount=amount,
        status=PurchaseStatus.PENDING,
        user_name=user.full_name,
        user_phone=user.phone,
        created_at=datetime.now(timezone.utc),
        checkout_origin=checkout_origin,
    )

    payload: dict[str, Any] = {
        "id": str(record.purchase_id),
        "user_id": str(record.user_id),
        "user_name": record.user_name,
        "user_phone": record.user_phone,
        "quantity": record.quantity,
        "amount": record.amount,
        "status": record.status.value,
        "raffle_numbers": None,
        "created_at": record.created_at.isoformat(),
        "checkout_origin": record.checkout_origin,
    }

    _execute(get_service_client().table(_PURCHASES_TABLE).insert(payload), "insert_purchase")
    return record


def get_purchase_by_id(purchase_id: UUID) -> Optional[PurchaseRecord]:
    """
    Retrieve a single purchase record by its ID.

    Returns:
        PurchaseRecord or None if not found
    """

    response = _execute(
        get_service_client()
        .table(_PURCHASES_TABLE)
        .select("*")
        .eq("id", str(purchase_id))
        .limit(1),
        "get_purchase",
    )

    rows = getattr(response, "data", None) or []
    if not rows:
        return None
    return _row_to_purchase(rows[0])


def attach_payment_session(purchase_id: UUID, session_ref: str) -> bool:
    """
    Store the checkout session id on a record that has none yet.

    The update is guarded on `stripe_session_id IS NULL` so an existing
    reference is never overwritten. Status is not part of the guard: a
    webhook may confirm the purchase before the intake request gets here,
    and the session id is still recorded.

    Returns:
        True if a row was updated, False if the guard matched nothing
    """

    response = _execute(
        get_service_client()
        .table(_PURCHASES_TABLE)
        .update({"stripe_session_id": session_ref})
        .eq("id", str(purchase_id))
        .is_("stripe_session_id", "null"),
        "attach_payment_session",
    )
    rows = getattr(response, "data", None) or []
    return bool(rows)


def list_purchases_by_user(user_id: UUID) -> List[PurchaseRecord]:
    """
    Retrieve a buyer's purchases, newest first.

    Returns:
        List[PurchaseRecord] (possibly empty)
    """

    response = _execute(
        get_service_client()
        .table(_PURCHASES_TABLE)
        .select("*")
        .eq("user_id", str(user_id))
        .order("created_at", desc=True),
        "list_purchases_by_user",
    )
    rows = getattr(response, "data", None) or []
    return [_row_to_purchase(row) for row in rows]


def list_pending_without_session(limit: int = 100) -> List[PurchaseRecord]:
    """
    Retrieve PENDING purchases whose checkout session was never attached.

    These are the records left behind when session creation failed after the
    insert. Oldest first.
    """

    response = _execute(
        get_service_client()
        .table(_PURCHASES_TABLE)
        .select("*")
        .eq("status", PurchaseStatus.PENDING.value)
        .is_("stripe_session_id", "null")
        .order("created_at")
        .limit(limit),
        "list_pending_without_session",
    )
    rows = getattr(response, "data", None) or []
    return [_row_to_purchase(row) for row in rows]


__all__ = [
    "attach_payment_session",
    "get_purchase_by_id",
    "insert_pending_purchase",
    "list_pending_without_session",
    "list_purchases_by_user",
]
