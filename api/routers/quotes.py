"""
Quotes API Endpoints.

Price preview for the quantity picker.
"""

from fastapi import APIRouter, Query

from api.models import QuoteResponse
from services.pricing_service import preview_quote

router = APIRouter()


@router.get(
    "/quotes",
    response_model=QuoteResponse,
    summary="Preview Price",
    description="Preview the price for a quantity. Out-of-range quantities are clamped to 100..10000."
)
def get_quote(quantity: int = Query(..., description="Requested number of raffle entries")):
    """
    Price preview for an interactive quantity adjustment.

    Unlike purchase intake, this endpoint clamps the quantity into range and
    reports that it did. Quantities from 500 to 999 also get the price of
    1000 numbers at the promotional rate.

    **Example:** `GET /api/v1/quotes?quantity=50` returns the quote for 100
    numbers with `clamped: true`.
    """
    preview = preview_quote(quantity)
    quote = preview.quote

    return QuoteResponse(
        requested_quantity=preview.requested_quantity,
        quantity=quote.quantity,
        clamped=preview.clamped,
        unit_price=quote.unit_price,
        total_amount=quote.total_amount,
        promotional=quote.promotional,
        upsell_quantity=preview.upsell_quantity,
        upsell_total_amount=preview.upsell_total_amount,
    )
