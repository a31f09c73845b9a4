"""
Order creation, lookup and back-office status updates.

Order creation never trusts client money: line subtotals are recomputed
from the current product price and a client subtotal that drifts more than
one centavo from the server figure is replaced, together with the total.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    AuthenticationRequiredError,
    OrderAccessDeniedError,
    OrderNotFoundError,
    OrderValidationError,
    ProductNotFoundError,
    ProductUnavailableError,
)
from app.core.logging import get_logger
from app.models.order import Order, OrderStatus, PaymentStatus
from app.repositories.order import OrderRepository
from app.repositories.product import ProductRepository
from app.schemas.order import OrderCreate, OrderStatusUpdate
from app.services.access import Actor, can_view_order

logger = get_logger(__name__)

CENT = Decimal("0.01")
TOTAL_TOLERANCE = Decimal("0.01")
DEFAULT_GUEST_NAME = "Guest"


def to_money(value: Any) -> Decimal:
    """Round to two decimals, half-up."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class PricedOrder:
    """Server-trusted totals and item snapshots ready to persist."""

    items: list[dict[str, Any]]
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    corrected: bool


async def price_order(session: AsyncSession, payload: OrderCreate) -> PricedOrder:
    """
    Recompute an order draft from authoritative product prices.

    Raises ProductNotFoundError / ProductUnavailableError for the first bad
    line, before anything is written.
    """
    products = await ProductRepository(session).get_many(
        item.product_id for item in payload.items
    )

    items: list[dict[str, Any]] = []
    calculated_subtotal = Decimal("0.00")

    for line in payload.items:
        product = products.get(line.product_id)
        if product is None:
            raise ProductNotFoundError(f"Product with ID {line.product_id} not found")
        if not product.is_active:
            raise ProductUnavailableError(f"Product {product.title} is not available")

        price = to_money(product.price)
        line_subtotal = to_money(price * line.quantity)
        calculated_subtotal += line_subtotal

        items.append({
            "product_id": product.id,
            "product_name": product.title,
            "product_price": price,
            "quantity": line.quantity,
            "subtotal": line_subtotal,
        })

    tax_amount = to_money(payload.tax_amount)
    discount_amount = to_money(payload.discount_amount)
    subtotal = to_money(payload.subtotal)
    total_amount = to_money(payload.total_amount)
    corrected = False

    if abs(calculated_subtotal - subtotal) > TOTAL_TOLERANCE:
        logger.warning(
            "Order total mismatch, using server subtotal",
            calculated=str(calculated_subtotal),
            provided=str(subtotal),
        )
        subtotal = calculated_subtotal
        total_amount = subtotal + tax_amount - discount_amount
        corrected = True

    expected_total = subtotal + tax_amount - discount_amount
    if abs(expected_total - total_amount) > TOTAL_TOLERANCE:
        logger.warning(
            "Order total inconsistent with its parts, recomputing",
            expected=str(expected_total),
            provided=str(total_amount),
        )
        total_amount = expected_total
        corrected = True

    if total_amount < 0:
        raise OrderValidationError(
            "Discount exceeds order value",
            details={"discount_amount": ["Discount cannot exceed subtotal plus tax"]},
        )

    return PricedOrder(
        items=items,
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        total_amount=to_money(total_amount),
        corrected=corrected,
    )


class OrderService:
    """Use cases around the Order aggregate that are not driven by payments."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.orders = OrderRepository(session)

    async def create_order(self, payload: OrderCreate, actor: Actor) -> Order:
        """
        Validate, price and persist an order in pending/pending.

        Runs inside the request transaction; any error leaves no rows behind.
        """
        customer_id: Optional[int] = actor.id if actor.is_customer else None

        if customer_id is None and not payload.guest_email:
            raise OrderValidationError(
                details={"guest_email": ["The guest email field is required."]},
            )

        logger.info(
            "Order creation request received",
            items_count=len(payload.items),
            has_customer=customer_id is not None,
        )

        priced = await price_order(self.session, payload)

        order_data: dict[str, Any] = {
            "customer_id": customer_id,
            "guest_email": None if customer_id else str(payload.guest_email),
            "guest_name": None if customer_id else (payload.guest_name or DEFAULT_GUEST_NAME),
            "status": OrderStatus.PENDING.value,
            "payment_status": PaymentStatus.PENDING.value,
            "subtotal": priced.subtotal,
            "tax_amount": priced.tax_amount,
            "discount_amount": priced.discount_amount,
            "total_amount": priced.total_amount,
            "currency": (payload.currency or settings.default_currency).upper(),
            "billing_address": payload.billing_address,
            "shipping_address": payload.shipping_address,
        }

        created = await self.orders.create_with_items(order_data, priced.items)
        order = await self.orders.get_detail(order_id=created.id)

        logger.info(
            "Order created",
            order_number=order.order_number,
            total_amount=str(order.total_amount),
            totals_corrected=priced.corrected,
            guest=customer_id is None,
        )
        return order

    async def get_visible_order(
        self,
        actor: Actor,
        *,
        order_id: Optional[int] = None,
        order_number: Optional[str] = None,
        guest_email: Optional[str] = None,
    ) -> Order:
        """Fetch one order and enforce read access."""
        order = await self.orders.get_detail(order_id=order_id, order_number=order_number)

        if order is None:
            raise OrderNotFoundError()

        decision = can_view_order(actor, order, guest_email)
        if not decision.allowed:
            logger.info(
                "Order access denied",
                order_id=order.id,
                actor_role=actor.role.value,
            )
            raise OrderAccessDeniedError()
        return order

    async def list_orders(
        self,
        actor: Actor,
        *,
        guest_email: Optional[str] = None,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        page: int = 1,
        per_page: int = 15,
    ) -> tuple[list[Order], int]:
        """
        Customers and guests see only their own orders, paid ones unless a
        payment_status filter is given. Staff see everything.
        """
        customer_id: Optional[int] = None
        email_filter: Optional[str] = None

        if actor.is_customer:
            customer_id = actor.id
            payment_status = payment_status or PaymentStatus.PAID.value
        elif actor.is_guest:
            if not guest_email:
                raise OrderValidationError(
                    "Guest email is required to view orders",
                    details={"guest_email": ["The guest email field is required."]},
                )
            email_filter = guest_email
            payment_status = payment_status or PaymentStatus.PAID.value

        return await self.orders.list_orders(
            customer_id=customer_id,
            guest_email=email_filter,
            status=status,
            payment_status=payment_status,
            skip=(page - 1) * per_page,
            limit=per_page,
        )

    async def update_status(
        self,
        actor: Actor,
        order_id: int,
        update: OrderStatusUpdate,
    ) -> Order:
        """
        Back-office override of both status axes.

        Lifecycle timestamps are stamped on first entry only.
        """
        if actor.is_guest:
            raise AuthenticationRequiredError()
        if not actor.is_staff:
            raise OrderAccessDeniedError("Unauthorized. Admin access required.")

        order = await self.orders.get_by_id(order_id, for_update=True)
        if order is None:
            raise OrderNotFoundError()

        order.override_status(
            update.status,
            payment_status=update.payment_status,
            now=datetime.now(timezone.utc),
        )

        await self.session.flush()
        order = await self.orders.get_detail(order_id=order.id)

        logger.info(
            "Order status updated",
            order_number=order.order_number,
            status=order.status,
            payment_status=order.payment_status,
            actor_role=actor.role.value,
        )
        return order
