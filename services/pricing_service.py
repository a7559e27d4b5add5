"""
Pricing service for raffle purchase quotes.

Builds quotes from the pricing rule in domain/pricing.py:
- `calculate_purchase_quote` for intake (strict: out-of-range is rejected)
- `preview_quote` for the interactive quantity picker (clamps into range and
  suggests the promotional tier when the buyer is close to it)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from domain.pricing import (
    PROMOTIONAL_THRESHOLD,
    clamp_quantity,
    compute_price,
    is_promotional,
    provider_unit_amount,
    unit_price_for,
    validate_quantity,
)

# Show the "buy 1000 and pay less per number" hint from this quantity on.
UPSELL_FROM_QUANTITY: int = 500


@dataclass(frozen=True, slots=True)
class PurchaseQuote:
    """
    Priced purchase of `quantity` raffle numbers.

    total_amount is authoritative. provider_unit_amount is what the payment
    provider receives per line-item unit and may differ after rounding.
    """
    quantity: int
    unit_price: int
    total_amount: int
    provider_unit_amount: int
    promotional: bool

    @property
    def provider_total(self) -> int:
        """Total the provider will actually collect (unit * quantity)."""
        return self.provider_unit_amount * self.quantity


@dataclass(frozen=True, slots=True)
class QuotePreview:
    """Quote for the quantity picker, with clamping and upsell details."""
    requested_quantity: int
    quote: PurchaseQuote
    clamped: bool
    upsell_quantity: Optional[int] = None
    upsell_total_amount: Optional[int] = None


def calculate_purchase_quote(quantity: object) -> PurchaseQuote:
    """
    Price a purchase request.

    Raises:
        InvalidQuantityError: if quantity is outside the allowed range

    Example:
        quote = calculate_purchase_quote(1000)
        quote.total_amount  # 5000
        quote.promotional   # True
    """
    valid_quantity = validate_quantity(quantity)
    total_amount = compute_price(valid_quantity)

    return PurchaseQuote(
        quantity=valid_quantity,
        unit_price=unit_price_for(valid_quantity),
        total_amount=total_amount,
        provider_unit_amount=provider_unit_amount(total_amount, valid_quantity),
        promotional=is_promotional(valid_quantity),
    )


def preview_quote(requested_quantity: int) -> QuotePreview:
    """
    Quote for an interactive quantity adjustment.

    The requested quantity is clamped into the allowed range. Buyers between
    UPSELL_FROM_QUANTITY and the promotional threshold also get the price of
    the promotional tier.
    """
    quantity = clamp_quantity(requested_quantity)
    quote = calculate_purchase_quote(quantity)

    upsell_quantity = None
    upsell_total_amount = None
    if UPSELL_FROM_QUANTITY <= quantity < PROMOTIONAL_THRESHOLD:
        upsell_quantity = PROMOTIONAL_THRESHOLD
        upsell_total_amount = compute_price(PROMOTIONAL_THRESHOLD)

    return QuotePreview(
        requested_quantity=requested_quantity,
        quote=quote,
        clamped=quantity != requested_quantity,
        upsell_quantity=upsell_quantity,
        upsell_total_amount=upsell_total_amount,
    )


__all__ = [
    "PurchaseQuote",
    "QuotePreview",
    "UPSELL_FROM_QUANTITY",
    "calculate_purchase_quote",
    "preview_quote",
]
