"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, StrictInt


# ============================================================================
# Purchase Models
# ============================================================================

class PurchaseRequest(BaseModel):
    """Request to start a raffle purchase."""
    # Range is checked by the intake service so the error message is the
    # "minimum/maximum entries" one.
    quantity: Optional[StrictInt] = Field(
        None,
        description="Number of raffle entries to buy (100 to 10000)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "quantity": 1000
            }
        }


class PurchaseResponse(BaseModel):
    """Response after a purchase was created and checkout opened."""
    redirect_url: str = Field(..., alias="redirectUrl")
    quantity: int
    total_amount: int = Field(..., alias="totalAmount", description="Minor units (centavos)")
    purchase_id: UUID = Field(..., alias="purchaseId")
    message: str

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "redirectUrl": "https://checkout.stripe.com/c/pay/cs_test_a1b2c3",
                "quantity": 1000,
                "totalAmount": 5000,
                "purchaseId": "123e4567-e89b-12d3-a456-426614174000",
                "message": "Compra criada! Você será redirecionado para o pagamento."
            }
        }


class PurchaseSummary(BaseModel):
    """One of the caller's purchases."""
    purchase_id: UUID = Field(..., alias="purchaseId")
    quantity: int
    total_amount: int = Field(..., alias="totalAmount")
    status: str
    raffle_numbers: List[int] = Field(default_factory=list, alias="raffleNumbers")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    class Config:
        populate_by_name = True


class PurchaseListResponse(BaseModel):
    """The caller's purchases, newest first."""
    items: List[PurchaseSummary]
    total_count: int = Field(..., alias="totalCount")

    class Config:
        populate_by_name = True


# ============================================================================
# Quote Models
# ============================================================================

class QuoteResponse(BaseModel):
    """Price preview for the quantity picker."""
    requested_quantity: int = Field(..., alias="requestedQuantity")
    quantity: int
    clamped: bool
    unit_price: int = Field(..., alias="unitPrice")
    total_amount: int = Field(..., alias="totalAmount")
    promotional: bool
    upsell_quantity: Optional[int] = Field(None, alias="upsellQuantity")
    upsell_total_amount: Optional[int] = Field(None, alias="upsellTotalAmount")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "requestedQuantity": 600,
                "quantity": 600,
                "clamped": False,
                "unitPrice": 10,
                "totalAmount": 6000,
                "promotional": False,
                "upsellQuantity": 1000,
                "upsellTotalAmount": 5000
            }
        }


# ============================================================================
# Webhook Models
# ============================================================================

class WebhookAck(BaseModel):
    """Acknowledgement returned to Stripe."""
    received: bool = True


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Quantidade deve ser entre 100 e 10000 números"
            }
        }
