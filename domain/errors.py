"""
Domain: error taxonomy for the purchase pipeline.

Every failure the intake service, the confirmation handler or the number
allocator can surface is one of these. Each error carries:
- a stable `ErrorCode` (used in logs and tests)
- a human-readable message (returned to the caller as `{"error": message}`)
- the HTTP status the API layer answers with

The API layer never builds status codes itself; it reads them from here.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Stable identifiers for pipeline failures."""

    INVALID_QUANTITY = "INVALID_QUANTITY"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    MALFORMED_EVENT = "MALFORMED_EVENT"
    MISSING_CORRELATION = "MISSING_CORRELATION"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    ALLOCATION_FAILED = "ALLOCATION_FAILED"
    ALLOCATION_PERSIST_ERROR = "ALLOCATION_PERSIST_ERROR"
    SESSION_CREATION_FAILED = "SESSION_CREATION_FAILED"
    TRANSIENT_STORE_ERROR = "TRANSIENT_STORE_ERROR"


class RaffleError(Exception):
    """Base error with code, user-safe message and HTTP status."""

    status_code: int = 500

    def __init__(self, code: ErrorCode, message: str, status_code: Optional[int] = None) -> None:
        self.code = code
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidQuantityError(RaffleError):
    """Raised when a requested quantity falls outside the allowed range."""

    status_code = 400

    def __init__(self, quantity: object, minimum: int, maximum: int) -> None:
        self.quantity = quantity
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            ErrorCode.INVALID_QUANTITY,
            f"Quantidade deve ser entre {minimum} e {maximum} números",
        )


class UnauthenticatedError(RaffleError):
    """Raised when the caller has no valid identity."""

    status_code = 400

    def __init__(self, reason: str = "Usuário não autenticado") -> None:
        super().__init__(ErrorCode.UNAUTHENTICATED, reason)


class InvalidSignatureError(RaffleError):
    """Raised when a webhook body does not match its signature header."""

    status_code = 400

    def __init__(self, detail: str = "Invalid webhook signature") -> None:
        super().__init__(ErrorCode.INVALID_SIGNATURE, detail)


class MalformedEventError(RaffleError):
    """Raised when a verified webhook body cannot be read as an event."""

    status_code = 400

    def __init__(self, detail: str = "Malformed event") -> None:
        super().__init__(ErrorCode.MALFORMED_EVENT, detail)


class MissingCorrelationError(RaffleError):
    """Raised when a completion event lacks purchase/user metadata."""

    status_code = 400

    def __init__(self, session_id: Optional[str] = None) -> None:
        self.session_id = session_id
        super().__init__(ErrorCode.MISSING_CORRELATION, "Missing metadata")


class RecordNotFoundError(RaffleError):
    """Raised when a purchase record referenced by an event does not exist."""

    status_code = 404

    def __init__(self, purchase_id: object) -> None:
        self.purchase_id = purchase_id
        super().__init__(ErrorCode.RECORD_NOT_FOUND, "Purchase record not found")


class AllocationFailedError(RaffleError):
    """Raised when the number source cannot reserve the requested block."""

    status_code = 500

    def __init__(self, purchase_id: object, detail: str) -> None:
        self.purchase_id = purchase_id
        self.detail = detail
        super().__init__(ErrorCode.ALLOCATION_FAILED, "Error generating raffle numbers")


class AllocationPersistError(RaffleError):
    """Raised when the confirmation write (numbers + status) did not land."""

    status_code = 500

    def __init__(self, purchase_id: object, detail: str) -> None:
        self.purchase_id = purchase_id
        self.detail = detail
        super().__init__(ErrorCode.ALLOCATION_PERSIST_ERROR, "Error updating purchase record")


class SessionCreationFailedError(RaffleError):
    """Raised when the payment provider refuses to open a checkout session."""

    status_code = 500

    def __init__(self, purchase_id: object, detail: str) -> None:
        self.purchase_id = purchase_id
        self.detail = detail
        super().__init__(ErrorCode.SESSION_CREATION_FAILED, "Erro ao criar sessão de pagamento")


class CheckoutConflictError(SessionCreationFailedError):
    """
    Raised when Stripe rejects a reused idempotency key.

    The key `raffle-purchase-{id}` was already used with different request
    parameters, so Stripe neither returns the earlier session nor opens a new
    one until the key expires.
    """


class TransientStoreError(RaffleError):
    """Raised when the record store rejects or fails a read/write."""

    status_code = 500

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(ErrorCode.TRANSIENT_STORE_ERROR, "Erro ao registrar compra")


__all__ = [
    "AllocationFailedError",
    "AllocationPersistError",
    "CheckoutConflictError",
    "ErrorCode",
    "InvalidQuantityError",
    "InvalidSignatureError",
    "MalformedEventError",
    "MissingCorrelationError",
    "RaffleError",
    "RecordNotFoundError",
    "SessionCreationFailedError",
    "TransientStoreError",
    "UnauthenticatedError",
]
