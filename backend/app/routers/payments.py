"""
Payment API routes (PayMaya hosted checkout).
"""
from fastapi import APIRouter

from app.core.database import DbSession
from app.schemas.payment import CheckoutRequest, CheckoutResponse
from app.services.checkout import CheckoutService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/paymaya/checkout", response_model=CheckoutResponse)
async def create_paymaya_checkout(
    request: CheckoutRequest,
    session: DbSession,
) -> CheckoutResponse:
    """
    Open a PayMaya checkout session and return the redirect URL.

    When the request references an order, the amount must match its total
    and the checkout id is stored on the order for webhook matching.
    """
    checkout = await CheckoutService(session).create_checkout(request)
    return CheckoutResponse(checkout=checkout)
