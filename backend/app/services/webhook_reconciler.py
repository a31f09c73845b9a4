"""
PayMaya webhook reconciliation.

Maps a classified webhook onto exactly one order transition. Deliveries are
at-least-once, so every step is idempotent:

- the order row is locked while it is updated
- an already paid order is left alone
- entitlements are unique per order item
- the confirmation email is gated by recency and a sent-marker

Processing errors never reach the gateway. ``reconcile`` always returns an
acknowledgement; only a bad signature is rejected (by the router).
"""
import json
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.order import Order
from app.repositories.customer import CustomerRepository
from app.repositories.order import OrderRepository
from app.schemas.payment import WebhookAck
from app.services.entitlements import EntitlementGenerator
from app.services.order_confirmation import OrderConfirmationDispatcher
from app.services.webhook_events import (
    CheckoutCompletion,
    OrderReference,
    PaymentOutcome,
    Unrecognized,
    WebhookEvent,
    buyer_contact,
    classify_webhook,
)

logger = get_logger(__name__)

PLACEHOLDER_GUEST_EMAIL = "pending@payment.com"
PLACEHOLDER_GUEST_NAME = "Pending Payment"

ACK_RECEIVED = "Webhook received"
ACK_INVALID = "Invalid webhook payload format"
ACK_ERROR = "Error processing webhook"


class WebhookReconciler:
    """Applies PayMaya payment events to orders."""

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: Optional[OrderConfirmationDispatcher] = None,
    ) -> None:
        self.session = session
        self.orders = OrderRepository(session)
        self.dispatcher = dispatcher or OrderConfirmationDispatcher(session)

    async def reconcile(self, body: bytes) -> WebhookAck:
        """Process one delivery. Never raises."""
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            payload = None

        event = classify_webhook(payload)
        logger.info(
            "PayMaya webhook received",
            shape=event.shape,
            outcome=getattr(event, "outcome", None),
        )

        if isinstance(event, Unrecognized):
            logger.warning("PayMaya webhook with unrecognized payload", reason=event.reason)
            return WebhookAck(success=False, message=ACK_INVALID)

        try:
            paid_order = await self._apply(event)
            await self.session.commit()
        except Exception as e:
            logger.exception(
                "PayMaya webhook processing error",
                shape=event.shape,
                error=str(e),
            )
            await self.session.rollback()
            return WebhookAck(success=False, message=ACK_ERROR)

        if paid_order is not None:
            await self._send_confirmation(paid_order)

        return WebhookAck(success=True, message=ACK_RECEIVED)

    async def _find_order(self, reference: OrderReference) -> Optional[Order]:
        order = None
        if reference.checkout_id:
            order = await self.orders.get_by_gateway_id(reference.checkout_id, for_update=True)
        if order is None and reference.order_number:
            order = await self.orders.get_by_order_number(reference.order_number, for_update=True)
        return order

    async def _apply(self, event: WebhookEvent) -> Optional[Order]:
        """Returns the order when this delivery marked it paid."""
        outcome = event.outcome

        if outcome == PaymentOutcome.UNHANDLED:
            logger.info(
                "PayMaya webhook with unhandled status",
                shape=event.shape,
                data=event.data,
            )
            return None

        if outcome == PaymentOutcome.PENDING:
            logger.info(
                "PayMaya payment pending",
                checkout_id=event.reference.checkout_id,
                order_number=event.reference.order_number,
            )
            return None

        order = await self._find_order(event.reference) if event.reference else None
        if order is None:
            logger.warning(
                "Order not found for PayMaya webhook",
                outcome=outcome.value,
                checkout_id=event.reference.checkout_id,
                request_reference_number=event.reference.order_number,
            )
            return None

        if outcome == PaymentOutcome.SUCCESS:
            return await self._handle_success(event, order)
        if outcome == PaymentOutcome.FAILED:
            self._handle_failed(event, order)
        elif outcome == PaymentOutcome.CANCELLED:
            self._handle_cancelled(order)
        return None

    def _backfill_guest_contact(self, event: WebhookEvent, order: Order) -> None:
        """Replace placeholder guest details with what the gateway reports."""
        if order.customer_id is not None:
            return

        email, name = buyer_contact(event.data)
        updated = {}
        if email and order.guest_email in (None, "", PLACEHOLDER_GUEST_EMAIL):
            order.guest_email = email
            updated["guest_email"] = email
        if name and order.guest_name in (None, "", PLACEHOLDER_GUEST_NAME):
            order.guest_name = name
            updated["guest_name"] = name

        if updated:
            logger.info(
                "Guest order updated with gateway buyer info",
                order_number=order.order_number,
                **updated,
            )

    async def _handle_success(self, event: WebhookEvent, order: Order) -> Optional[Order]:
        if order.is_paid:
            logger.info(
                "Order already paid, ignoring duplicate success webhook",
                order_number=order.order_number,
            )
            return None

        # Checkout completion bodies carry no buyer details
        if not isinstance(event, CheckoutCompletion):
            self._backfill_guest_contact(event, order)

        order.mark_as_paid(event.payment_id, now=datetime.now(timezone.utc))
        await self.session.flush()
        logger.info(
            "Order updated to paid",
            order_number=order.order_number,
            payment_id=event.payment_id,
            shape=event.shape,
        )

        if order.customer_id is not None:
            try:
                async with self.session.begin_nested():
                    cleared = await CustomerRepository(self.session).clear_cart(order.customer_id)
                logger.info(
                    "Customer cart cleared",
                    customer_id=order.customer_id,
                    lines=cleared,
                )
            except Exception as e:
                logger.exception(
                    "Failed to clear customer cart",
                    customer_id=order.customer_id,
                    error=str(e),
                )

        # The payment transition is durable before any entitlement work starts
        await self.session.commit()

        try:
            async with self.session.begin_nested():
                result = await EntitlementGenerator(self.session).generate(order)
            logger.info(
                "Download tokens processed",
                order_number=order.order_number,
                created=len(result.created),
                skipped_existing=result.skipped_existing,
                skipped_no_file=result.skipped_no_file,
                failed=result.failed,
            )
        except Exception as e:
            logger.exception(
                "Download token generation failed",
                order_number=order.order_number,
                error=str(e),
            )

        return order

    async def _send_confirmation(self, order: Order) -> None:
        """Runs after commit so the email never announces an unsaved payment."""
        try:
            await self.dispatcher.send_confirmation(order)
        except Exception as e:
            logger.exception(
                "Order confirmation dispatch failed",
                order_number=order.order_number,
                error=str(e),
            )

    def _handle_failed(self, event: WebhookEvent, order: Order) -> None:
        error_message = (
            event.data.get("errorMessage")
            or event.data.get("failureReason")
            or "Payment failed"
        )
        if order.mark_as_failed():
            logger.info(
                "Order updated to failed",
                order_number=order.order_number,
                error_code=event.data.get("errorCode"),
                error_message=error_message,
            )
        else:
            logger.info(
                "Failure webhook ignored, order no longer pending",
                order_number=order.order_number,
                payment_status=order.payment_status,
            )

    def _handle_cancelled(self, order: Order) -> None:
        if order.mark_as_cancelled(now=datetime.now(timezone.utc)):
            logger.info("Order updated to cancelled", order_number=order.order_number)
        else:
            logger.info(
                "Cancellation webhook ignored, order no longer pending",
                order_number=order.order_number,
                payment_status=order.payment_status,
            )


async def reconcile_webhook(session: AsyncSession, body: bytes) -> WebhookAck:
    return await WebhookReconciler(session).reconcile(body)
