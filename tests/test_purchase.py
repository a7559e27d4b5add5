"""
Tests for `domain/purchase.py`, `domain/payment_event.py` and `domain/user.py`.

Covers contract rules:
- amount must equal the price of quantity.
- raffle_numbers is non-empty iff CONFIRMED, sized to quantity, distinct.
- CONFIRMED never transitions again; session reference is write-once.
- Completion events expose correlation metadata or fail with MissingCorrelation.
"""

from __future__ import annotations

import json
from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from conftest import ALICE_ID, completion_event, pending_purchase
from domain.errors import MalformedEventError, MissingCorrelationError
from domain.payment_event import CompletionEvent
from domain.purchase import PurchaseRecord, PurchaseStatus
from domain.user import DEFAULT_USER_NAME, AuthenticatedUser


def test_pending_purchase_has_no_numbers() -> None:
    record = pending_purchase(100)

    assert record.status is PurchaseStatus.PENDING
    assert record.raffle_numbers is None
    assert record.is_confirmed is False
    assert record.needs_checkout_session is True


def test_amount_must_match_pricing_rule() -> None:
    with pytest.raises(ValueError):
        PurchaseRecord(
            purchase_id=uuid4(),
            user_id=ALICE_ID,
            quantity=1000,
            amount=10000,  # standard tier price for a promotional quantity
            status=PurchaseStatus.PENDING,
        )


def test_pending_purchase_cannot_carry_numbers() -> None:
    with pytest.raises(ValueError):
        pending_purchase(100, raffle_numbers=tuple(range(1, 101)))


def test_confirmed_purchase_requires_exactly_quantity_distinct_numbers() -> None:
    record = pending_purchase(100)

    with pytest.raises(ValueError):
        record.confirmed(tuple(range(1, 100)))

    with pytest.raises(ValueError):
        record.confirmed((1,) * 100)

    confirmed = record.confirmed(tuple(range(1, 101)))
    assert confirmed.status is PurchaseStatus.CONFIRMED
    assert len(confirmed.raffle_numbers) == 100


def test_confirmation_returns_new_instance_and_only_happens_once() -> None:
    record = pending_purchase(100)
    confirmed = record.confirmed(tuple(range(1, 101)))

    assert record.status is PurchaseStatus.PENDING
    with pytest.raises(ValueError):
        confirmed.confirmed(tuple(range(101, 201)))


def test_payment_session_reference_is_write_once() -> None:
    record = pending_purchase(100).with_payment_session("cs_test_1")

    assert record.needs_checkout_session is False
    assert record.with_payment_session("cs_test_1").payment_session_ref == "cs_test_1"
    with pytest.raises(ValueError):
        record.with_payment_session("cs_test_2")


def test_purchase_record_is_immutable() -> None:
    record = pending_purchase(100)

    with pytest.raises(FrozenInstanceError):
        record.status = PurchaseStatus.CONFIRMED  # type: ignore[misc]


def test_created_at_must_be_utc() -> None:
    with pytest.raises(ValueError):
        pending_purchase(100, created_at=datetime(2025, 1, 1))

    with pytest.raises(ValueError):
        pending_purchase(100, created_at=datetime(2025, 1, 1, tzinfo=timezone(timedelta(hours=-3))))


def test_status_values_match_stored_strings() -> None:
    assert PurchaseStatus("pendente") is PurchaseStatus.PENDING
    assert PurchaseStatus("confirmado") is PurchaseStatus.CONFIRMED


def test_user_profile_defaults() -> None:
    user = AuthenticatedUser.from_profile(ALICE_ID, None)

    assert user.full_name == DEFAULT_USER_NAME
    assert user.phone == ""


def test_user_profile_from_metadata() -> None:
    user = AuthenticatedUser.from_profile(ALICE_ID, {"full_name": "Alice", "phone": "+55"})

    assert user.full_name == "Alice"
    assert user.phone == "+55"


def test_completion_event_exposes_correlation() -> None:
    purchase_id = uuid4()
    event = CompletionEvent.from_payload(json.loads(completion_event(purchase_id, ALICE_ID)))

    assert event.is_checkout_completed
    correlation = event.correlation()
    assert correlation.purchase_id == purchase_id
    assert correlation.user_id == ALICE_ID


def test_completion_event_without_metadata_fails_correlation() -> None:
    event = CompletionEvent.from_payload(json.loads(completion_event(None, None)))

    with pytest.raises(MissingCorrelationError):
        event.correlation()


def test_completion_event_with_garbage_ids_fails_correlation() -> None:
    payload = json.loads(completion_event(uuid4(), ALICE_ID))
    payload["data"]["object"]["metadata"]["purchase_id"] = "not-a-uuid"

    with pytest.raises(MissingCorrelationError):
        CompletionEvent.from_payload(payload).correlation()


def test_completion_event_requires_type_and_object() -> None:
    with pytest.raises(MalformedEventError):
        CompletionEvent.from_payload({"id": "evt_1", "data": {}})


def test_other_event_types_are_not_checkout_completed() -> None:
    payload = json.loads(completion_event(uuid4(), ALICE_ID, event_type="payment_intent.created"))

    assert CompletionEvent.from_payload(payload).is_checkout_completed is False


def test_correlation_round_trips_as_provider_metadata() -> None:
    purchase_id = UUID("11111111-1111-1111-1111-111111111111")
    event = CompletionEvent(
        event_id="evt_1",
        event_type="checkout.session.completed",
        session_id="cs_1",
        metadata={"purchase_id": str(purchase_id), "user_id": str(ALICE_ID)},
    )

    assert event.correlation().as_metadata() == {
        "purchase_id": str(purchase_id),
        "user_id": str(ALICE_ID),
    }
