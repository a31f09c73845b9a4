"""
PayMaya checkout session creation for an order.
"""
import uuid
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import OrderValidationError, PaymentGatewayError
from app.core.logging import get_logger
from app.models.order import Order
from app.repositories.order import OrderRepository
from app.schemas.payment import CheckoutRequest, CheckoutSession
from app.services.order_service import TOTAL_TOLERANCE, to_money
from app.services.paymaya_client import PayMayaClient

logger = get_logger(__name__)

CHECKOUT_CURRENCY = "PHP"
DEFAULT_BUYER_PHONE = "+639000000000"
DEFAULT_BUYER_EMAIL = "customer@example.com"
PAYMENT_METHOD = "paymaya"


def split_name(name: Optional[str]) -> tuple[str, str]:
    """'Juan Dela Cruz' -> ('Juan', 'Dela Cruz')."""
    if not name or not name.strip():
        return "Customer", ""
    first, _, last = name.strip().partition(" ")
    return first, last.strip()


def build_checkout_payload(
    request: CheckoutRequest,
    order: Optional[Order],
) -> dict[str, Any]:
    """Translate a checkout request into PayMaya's checkout body."""
    amount = f"{to_money(request.amount):.2f}"

    if order is not None:
        reference = order.order_number
        description = request.description or f"Order {order.order_number}"
        first_name, last_name = split_name(order.contact_name)
        email = order.contact_email
    else:
        reference = f"ORDER-{uuid.uuid4().hex[:13]}"
        description = request.description or "Order Payment"
        first_name, last_name = "Customer", ""
        email = None

    # Buyer fields sent with the request win over the order's
    customer = request.customer
    if customer is not None:
        if customer.first_name:
            first_name = customer.first_name
        elif customer.name:
            first_name = split_name(customer.name)[0]
        if customer.last_name:
            last_name = customer.last_name
        elif customer.name and not customer.first_name:
            last_name = split_name(customer.name)[1]
        if customer.email:
            email = str(customer.email)

    phone = (customer.phone if customer and customer.phone else None) or DEFAULT_BUYER_PHONE
    money = {"value": amount, "currency": CHECKOUT_CURRENCY}

    return {
        "totalAmount": money,
        "buyer": {
            "firstName": first_name,
            "lastName": last_name,
            "contact": {
                "phone": phone,
                "email": email or DEFAULT_BUYER_EMAIL,
            },
        },
        "items": [
            {
                "name": description,
                "quantity": "1",
                "code": reference,
                "description": description,
                "amount": money,
                "totalAmount": money,
            },
        ],
        "redirectUrl": {
            "success": str(request.success_url),
            "failure": str(request.failure_url or request.cancel_url),
            "cancel": str(request.cancel_url),
        },
        "requestReferenceNumber": reference,
    }


class CheckoutService:
    """Opens a hosted checkout and links it to the order."""

    def __init__(self, session: AsyncSession, client: Optional[PayMayaClient] = None) -> None:
        self.session = session
        self.orders = OrderRepository(session)
        self.client = client or PayMayaClient()

    async def _find_order(self, request: CheckoutRequest) -> Optional[Order]:
        if request.order_id is not None:
            order = await self.orders.get_by_id(request.order_id)
            if order is None:
                raise OrderValidationError(
                    details={"order_id": ["The selected order id is invalid."]},
                )
            return order
        if request.order_number:
            order = await self.orders.get_by_order_number(request.order_number)
            if order is None:
                raise OrderValidationError(
                    details={"order_number": ["The selected order number is invalid."]},
                )
            return order
        return None

    async def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        if not self.client.is_configured:
            raise PaymentGatewayError(
                "PayMaya credentials are not configured. "
                "Please set PAYMAYA_PUBLIC_KEY and PAYMAYA_SECRET_KEY.",
                status_code=400,
            )

        order = await self._find_order(request)
        amount = to_money(request.amount)

        if order is not None and abs(to_money(order.total_amount) - amount) > TOTAL_TOLERANCE:
            logger.warning(
                "Checkout amount does not match order total",
                order_number=order.order_number,
                amount=str(amount),
                total_amount=str(order.total_amount),
            )
            raise PaymentGatewayError(
                "Payment amount does not match order total",
                status_code=400,
            )

        payload = build_checkout_payload(request, order)
        response = await self.client.create_checkout(payload)

        checkout_id = str(response["checkoutId"])
        redirect_url = response.get("redirectUrl") or self.client.hosted_checkout_url(checkout_id)

        if order is not None:
            order.payment_gateway_id = checkout_id
            order.payment_method = PAYMENT_METHOD
            await self.session.flush()

        logger.info(
            "PayMaya checkout created",
            checkout_id=checkout_id,
            reference=payload["requestReferenceNumber"],
            order_db_id=order.id if order else None,
        )

        return CheckoutSession(
            id=checkout_id,
            redirect_url=redirect_url,
            order_id=payload["requestReferenceNumber"],
            order_db_id=order.id if order else None,
            amount=float(amount),
            currency=CHECKOUT_CURRENCY,
        )
