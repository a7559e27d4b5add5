"""
Pytest configuration and shared fakes.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and provides in-memory stand-ins for the
external collaborators:
- FakeRaffleStore: the raffle_purchases table plus confirm_raffle_purchase
  (row lock + counter reservation), installed over the repository functions
- FakeAuthClient: Supabase Auth `get_user`
- FakeCheckout: Stripe checkout session creation (idempotent per purchase)
- StripeCheckoutAPI: `stripe.checkout.Session.create` with Stripe's
  idempotency-key rules, for tests that run the real payment adapter
"""

import hashlib
import hmac
import json
import sys
import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List, Optional
from uuid import UUID, uuid4

import pytest
import stripe

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.errors import CheckoutConflictError, SessionCreationFailedError, TransientStoreError  # noqa: E402
from domain.purchase import PurchaseRecord, PurchaseStatus  # noqa: E402
from domain.user import AuthenticatedUser  # noqa: E402
from repositories.raffle_number_repository import NumberReservation, ReservationOutcome  # noqa: E402
from services.payment_provider import CheckoutSession  # noqa: E402
from settings import get_settings  # noqa: E402

WEBHOOK_SECRET = "whsec_test_secret"

ALICE_ID = UUID("00000000-0000-0000-0000-00000000a11c")
BOB_ID = UUID("00000000-0000-0000-0000-000000000b0b")

USERS_BY_TOKEN: Dict[str, SimpleNamespace] = {
    "token-alice": SimpleNamespace(
        id=str(ALICE_ID),
        email="alice@example.com",
        user_metadata={"full_name": "Alice Souza", "phone": "+5511999990000"},
    ),
    "token-bob": SimpleNamespace(id=str(BOB_ID), email=None, user_metadata={}),
}


class FakeRaffleStore:
    """
    In-memory raffle_purchases table.

    A single lock stands in for the database's row locks: every
    confirm_purchase_with_numbers call runs as one critical section, like the
    confirm_raffle_purchase transaction.
    """

    def __init__(self, first_number: int = 1, max_number: int = 99_999_999) -> None:
        self.rows: Dict[UUID, PurchaseRecord] = {}
        self.next_number = first_number
        self.max_number = max_number
        self._lock = threading.Lock()

        self.fail_insert = False
        self.fail_attach = False
        self.fail_lookup = False
        self.fail_confirm = False

        self.inserts = 0
        self.lookups = 0
        self.confirm_calls = 0
        self.reservations = 0

    # -- repository functions ------------------------------------------------

    def insert_pending_purchase(
        self,
        user: AuthenticatedUser,
        quantity: int,
        amount: int,
        checkout_origin: Optional[str] = None,
    ) -> PurchaseRecord:
        if self.fail_insert:
            raise TransientStoreError("insert_purchase", "connection refused")
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
        with self._lock:
            self.rows[record.purchase_id] = record
            self.inserts += 1
        return record

    def get_purchase_by_id(self, purchase_id: UUID) -> Optional[PurchaseRecord]:
        if self.fail_lookup:
            raise TransientStoreError("get_purchase", "timeout")
        with self._lock:
            self.lookups += 1
            return self.rows.get(purchase_id)

    def attach_payment_session(self, purchase_id: UUID, session_ref: str) -> bool:
        if self.fail_attach:
            raise TransientStoreError("attach_payment_session", "timeout")
        with self._lock:
            record = self.rows.get(purchase_id)
            if record is None or record.payment_session_ref is not None:
                return False
            self.rows[purchase_id] = record.with_payment_session(session_ref)
            return True

    def list_purchases_by_user(self, user_id: UUID) -> List[PurchaseRecord]:
        with self._lock:
            rows = [r for r in self.rows.values() if r.user_id == user_id]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)

    def list_pending_without_session(self, limit: int = 100) -> List[PurchaseRecord]:
        with self._lock:
            rows = [r for r in self.rows.values() if r.needs_checkout_session]
        return sorted(rows, key=lambda r: r.created_at)[:limit]

    def confirm_purchase_with_numbers(self, purchase_id: UUID) -> NumberReservation:
        with self._lock:
            self.confirm_calls += 1
            if self.fail_confirm:
                return NumberReservation(
                    outcome=ReservationOutcome.STORE_ERROR,
                    error_message="could not serialize access",
                )

            record = self.rows.get(purchase_id)
            if record is None:
                return NumberReservation(outcome=ReservationOutcome.NOT_FOUND)
            if record.is_confirmed:
                return NumberReservation(
                    outcome=ReservationOutcome.ALREADY_CONFIRMED,
                    raffle_numbers=record.raffle_numbers,
                )

            first = self.next_number
            last = first + record.quantity - 1
            if last > self.max_number:
                return NumberReservation(
                    outcome=ReservationOutcome.NUMBERS_EXHAUSTED,
                    error_message="Raffle number space exhausted",
                )

            numbers = tuple(range(first, last + 1))
            self.rows[purchase_id] = record.confirmed(numbers)
            self.next_number = last + 1
            self.reservations += 1
            return NumberReservation(outcome=ReservationOutcome.CONFIRMED, raffle_numbers=numbers)

    # -- helpers -------------------------------------------------------------

    def add(self, record: PurchaseRecord) -> PurchaseRecord:
        self.rows[record.purchase_id] = record
        return record


class FakeAuthClient:
    """Supabase client stand-in exposing `auth.get_user(token)`."""

    def __init__(self) -> None:
        self.auth = self
        self.calls = 0

    def get_user(self, token: str) -> SimpleNamespace:
        self.calls += 1
        return SimpleNamespace(user=USERS_BY_TOKEN.get(token))


class FakeCheckout:
    """
    Stripe checkout stand-in.

    Like Stripe with an idempotency key, asking twice for the same purchase
    returns the same session, and asking again with another origin is
    rejected as a conflict.
    """

    def __init__(self) -> None:
        self.sessions: Dict[UUID, CheckoutSession] = {}
        self.origins: Dict[UUID, Optional[str]] = {}
        self.calls: List[UUID] = []
        self.fail = False

    def __call__(self, purchase: PurchaseRecord, origin: Optional[str] = None) -> CheckoutSession:
        self.calls.append(purchase.purchase_id)
        first_origin = self.origins.setdefault(purchase.purchase_id, origin)
        if first_origin != origin:
            raise CheckoutConflictError(purchase.purchase_id, "idempotency key reused with other parameters")
        if self.fail:
            raise SessionCreationFailedError(purchase.purchase_id, "api_connection_error")
        if purchase.purchase_id not in self.sessions:
            session_id = f"cs_test_{len(self.sessions) + 1}"
            base = origin or "http://localhost:5173"
            self.sessions[purchase.purchase_id] = CheckoutSession(
                session_id=session_id,
                redirect_url=f"https://checkout.stripe.com/c/pay/{session_id}#{base}",
            )
        return self.sessions[purchase.purchase_id]


class StripeCheckoutAPI:
    """
    Stand-in for `stripe.checkout.Session.create` with Stripe's idempotency rules.

    A key seen before returns the saved session when the parameters match and
    raises `stripe.IdempotencyError` when they do not.
    """

    def __init__(self) -> None:
        self.saved: Dict[str, tuple] = {}
        self.requests: List[dict] = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        key = kwargs["idempotency_key"]
        params = {name: value for name, value in kwargs.items() if name not in ("api_key", "idempotency_key")}

        if key in self.saved:
            saved_params, session = self.saved[key]
            if saved_params != params:
                raise stripe.IdempotencyError(
                    "Keys for idempotent requests can only be used with the same parameters "
                    "they were first used with."
                )
            return session

        session_id = f"cs_test_{len(self.saved) + 1}"
        session = SimpleNamespace(id=session_id, url=f"https://checkout.stripe.com/c/pay/{session_id}")
        self.saved[key] = (params, session)
        return session


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Deterministic settings for every test."""

    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-role-key")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setenv("FRONTEND_URL", "https://rifa.example.com")
    monkeypatch.delenv("KWAI_ACCESS_TOKEN", raising=False)
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def store(monkeypatch) -> FakeRaffleStore:
    """In-memory store installed over every repository function the code uses."""

    fake = FakeRaffleStore()
    patches = {
        "services.purchase_intake_service": [
            "insert_pending_purchase",
            "attach_payment_session",
            "get_purchase_by_id",
        ],
        "services.payment_confirmation_service": ["get_purchase_by_id"],
        "services.number_allocator": ["confirm_purchase_with_numbers"],
        "api.routers.purchases": ["list_purchases_by_user"],
    }
    for module, names in patches.items():
        for name in names:
            monkeypatch.setattr(f"{module}.{name}", getattr(fake, name))
    return fake


@pytest.fixture
def auth_client(monkeypatch) -> FakeAuthClient:
    fake = FakeAuthClient()
    monkeypatch.setattr("services.identity_service.get_auth_client", lambda: fake)
    return fake


@pytest.fixture
def checkout(monkeypatch) -> FakeCheckout:
    fake = FakeCheckout()
    monkeypatch.setattr("services.purchase_intake_service.create_checkout_session", fake)
    return fake


@pytest.fixture
def stripe_api(monkeypatch) -> StripeCheckoutAPI:
    fake = StripeCheckoutAPI()
    monkeypatch.setattr(stripe.checkout.Session, "create", fake.create)
    return fake


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header value for `payload`."""

    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def completion_event(
    purchase_id: Optional[UUID],
    user_id: Optional[UUID],
    event_type: str = "checkout.session.completed",
    session_id: str = "cs_test_1",
) -> str:
    """JSON body of a Stripe event for a checkout session."""

    metadata = {}
    if purchase_id is not None:
        metadata["purchase_id"] = str(purchase_id)
    if user_id is not None:
        metadata["user_id"] = str(user_id)

    return json.dumps({
        "id": f"evt_{uuid4().hex[:12]}",
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": session_id, "object": "checkout.session", "metadata": metadata}},
    })


def pending_purchase(quantity: int = 100, user_id: UUID = ALICE_ID, **overrides) -> PurchaseRecord:
    """A PENDING record priced by the real pricing rule."""

    from domain.pricing import compute_price

    record = PurchaseRecord(
        purchase_id=uuid4(),
        user_id=user_id,
        quantity=quantity,
        amount=compute_price(quantity),
        status=PurchaseStatus.PENDING,
        created_at=datetime.now(timezone.utc),
    )
    return replace(record, **overrides) if overrides else record
