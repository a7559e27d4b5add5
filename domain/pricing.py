"""
Domain: raffle entry pricing (pure).

Pricing contract:
- A purchase must request between MIN_QUANTITY and MAX_QUANTITY entries
  (inclusive). Anything else is rejected, never clamped.
- Unit price is a step function with one breakpoint: STANDARD_UNIT_PRICE
  below PROMOTIONAL_THRESHOLD, PROMOTIONAL_UNIT_PRICE at or above it.
- amount = quantity * unit price, in minor currency units (centavos).

The same quantity always yields the same amount. The payment confirmation
path relies on this when it reasons about stored amounts.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from .errors import InvalidQuantityError

MIN_QUANTITY: int = 100
MAX_QUANTITY: int = 10_000

PROMOTIONAL_THRESHOLD: int = 1_000

# Minor units (centavos) per entry.
STANDARD_UNIT_PRICE: int = 10
PROMOTIONAL_UNIT_PRICE: int = 5


def validate_quantity(quantity: object) -> int:
    """
    Return `quantity` as an int if it is inside [MIN_QUANTITY, MAX_QUANTITY].

    Booleans and non-integers are rejected the same way as out-of-range
    numbers.

    Raises:
        InvalidQuantityError
    """

    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError(quantity, MIN_QUANTITY, MAX_QUANTITY)
    if quantity < MIN_QUANTITY or quantity > MAX_QUANTITY:
        raise InvalidQuantityError(quantity, MIN_QUANTITY, MAX_QUANTITY)
    return quantity


def unit_price_for(quantity: int) -> int:
    """Unit price tier for an already validated quantity."""

    if quantity >= PROMOTIONAL_THRESHOLD:
        return PROMOTIONAL_UNIT_PRICE
    return STANDARD_UNIT_PRICE


def is_promotional(quantity: int) -> bool:
    return quantity >= PROMOTIONAL_THRESHOLD


def compute_price(quantity: object) -> int:
    """
    Total amount in minor units for `quantity` entries.

    Example:
        compute_price(100)   # 1000
        compute_price(1000)  # 5000

    Raises:
        InvalidQuantityError: if quantity is outside the allowed range
    """

    valid_quantity = validate_quantity(quantity)
    return valid_quantity * unit_price_for(valid_quantity)


def provider_unit_amount(amount: int, quantity: int) -> int:
    """
    Per-entry amount sent to the payment provider as a line-item unit price.

    Providers want a unit price and a multiplier, so the stored total is
    divided back by quantity and rounded half-up to the nearest minor unit.
    The stored `amount` stays authoritative when the two disagree.
    """

    if quantity <= 0:
        raise ValueError("quantity must be positive")
    unit = (Decimal(amount) / Decimal(quantity)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(unit)


def clamp_quantity(quantity: int) -> int:
    """
    Clamp a quantity into the allowed range.

    Only for interactive previews (quote endpoint). Purchase intake must use
    `validate_quantity` instead.
    """

    return max(MIN_QUANTITY, min(quantity, MAX_QUANTITY))


__all__ = [
    "MAX_QUANTITY",
    "MIN_QUANTITY",
    "PROMOTIONAL_THRESHOLD",
    "PROMOTIONAL_UNIT_PRICE",
    "STANDARD_UNIT_PRICE",
    "clamp_quantity",
    "compute_price",
    "is_promotional",
    "provider_unit_amount",
    "unit_price_for",
    "validate_quantity",
]
