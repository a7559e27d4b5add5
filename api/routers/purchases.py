"""
Purchases API Endpoints.

Endpoints for starting a raffle purchase and listing the caller's purchases.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Header

from api.models import ErrorResponse, PurchaseListResponse, PurchaseRequest, PurchaseResponse, PurchaseSummary
from repositories.purchase_repository import list_purchases_by_user
from services.analytics_service import send_initiated_checkout
from services.identity_service import extract_bearer_token, verify_token
from services.purchase_intake_service import create_purchase

router = APIRouter()


@router.post(
    "/purchase",
    response_model=PurchaseResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Start Purchase",
    description="Create a pending raffle purchase and open its Stripe checkout session."
)
def start_purchase(
    request: PurchaseRequest,
    background_tasks: BackgroundTasks,
    authorization: Optional[str] = Header(None),
    origin: Optional[str] = Header(None),
):
    """
    Start a raffle purchase.

    **Process:**
    1. Validates the quantity (100 to 10000 numbers)
    2. Authenticates the caller from the `Authorization: Bearer` header
    3. Stores a pending purchase
    4. Opens a Stripe checkout session for it
    5. Returns the checkout URL to redirect the buyer to

    Raffle numbers are assigned only after Stripe confirms the payment.

    **Pricing:**
    - 100 to 999 numbers: R$ 0,10 each
    - 1000+ numbers: R$ 0,05 each

    **Example request:**
    ```json
    {"quantity": 1000}
    ```
    """
    result = create_purchase(
        extract_bearer_token(authorization),
        request.quantity,
        origin=origin,
    )

    # Pixel dispatch runs after the response is sent and cannot fail it.
    background_tasks.add_task(send_initiated_checkout, result.quantity)

    return PurchaseResponse(
        redirect_url=result.redirect_url,
        quantity=result.quantity,
        total_amount=result.total_amount,
        purchase_id=result.purchase_id,
        message="Compra criada! Você será redirecionado para o pagamento.",
    )


@router.get(
    "/purchases",
    response_model=PurchaseListResponse,
    responses={400: {"model": ErrorResponse}},
    summary="List My Purchases",
    description="List the caller's purchases with their status and raffle numbers."
)
def list_my_purchases(authorization: Optional[str] = Header(None)):
    """
    List the authenticated caller's purchases, newest first.

    Pending purchases have no raffle numbers yet.
    """
    user = verify_token(extract_bearer_token(authorization))
    purchases = list_purchases_by_user(user.user_id)

    items = [
        PurchaseSummary(
            purchase_id=purchase.purchase_id,
            quantity=purchase.quantity,
            total_amount=purchase.amount,
            status=purchase.status.value,
            raffle_numbers=list(purchase.raffle_numbers or ()),
            created_at=purchase.created_at,
        )
        for purchase in purchases
    ]
    return PurchaseListResponse(items=items, total_count=len(items))
