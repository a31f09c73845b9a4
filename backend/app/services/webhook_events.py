"""
PayMaya webhook payload classification.

PayMaya has delivered three body shapes over time. ``classify_webhook``
looks only at which fields are present and returns exactly one event
type; no database access happens here.

    checkout completion   {status, paymentStatus, requestReferenceNumber, ...}  (no isPaid)
    direct payment status {status, isPaid, checkoutId, ...}
    generic envelope      {id, type, data: {...}}
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class PaymentOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"
    PENDING = "pending"
    UNHANDLED = "unhandled"


@dataclass(frozen=True)
class OrderReference:
    """How to find the order: checkout id first, then order number."""

    checkout_id: Optional[str] = None
    order_number: Optional[str] = None

    def __bool__(self) -> bool:
        return bool(self.checkout_id or self.order_number)


@dataclass(frozen=True)
class CheckoutCompletion:
    status: str
    payment_status: str
    reference: OrderReference
    payment_id: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)
    shape: str = "checkout_completion"

    @property
    def outcome(self) -> PaymentOutcome:
        if self.payment_status == "PAYMENT_SUCCESS" and self.status in ("COMPLETED", "PAYMENT_SUCCESS"):
            return PaymentOutcome.SUCCESS
        if self.payment_status == "PAYMENT_EXPIRED" or self.status == "EXPIRED":
            return PaymentOutcome.CANCELLED
        if self.payment_status == "PAYMENT_FAILED":
            return PaymentOutcome.FAILED
        return PaymentOutcome.UNHANDLED


@dataclass(frozen=True)
class DirectStatus:
    status: str
    is_paid: bool
    reference: OrderReference
    payment_id: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)
    shape: str = "direct_status"

    @property
    def outcome(self) -> PaymentOutcome:
        if self.is_paid and self.status == "PAYMENT_SUCCESS":
            return PaymentOutcome.SUCCESS
        if self.status == "PAYMENT_FAILED":
            return PaymentOutcome.FAILED
        if self.status in ("PAYMENT_CANCELLED", "PAYMENT_CANCELED"):
            return PaymentOutcome.CANCELLED
        if self.status == "PAYMENT_PENDING":
            return PaymentOutcome.PENDING
        return PaymentOutcome.UNHANDLED


GENERIC_EVENT_OUTCOMES = {
    "payment.success": PaymentOutcome.SUCCESS,
    "payment.paid": PaymentOutcome.SUCCESS,
    "payment.failed": PaymentOutcome.FAILED,
    "payment.cancelled": PaymentOutcome.CANCELLED,
    "payment.canceled": PaymentOutcome.CANCELLED,
    "payment.pending": PaymentOutcome.PENDING,
}


@dataclass(frozen=True)
class GenericEvent:
    event_id: str
    event_type: str
    reference: OrderReference
    payment_id: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)
    shape: str = "generic_event"

    @property
    def outcome(self) -> PaymentOutcome:
        return GENERIC_EVENT_OUTCOMES.get(self.event_type, PaymentOutcome.UNHANDLED)


@dataclass(frozen=True)
class Unrecognized:
    reason: str
    shape: str = "unrecognized"


WebhookEvent = Union[CheckoutCompletion, DirectStatus, GenericEvent, Unrecognized]


def _present(payload: dict[str, Any], key: str) -> bool:
    return payload.get(key) is not None


def _text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _payment_id(data: dict[str, Any]) -> Optional[str]:
    return _text(data.get("id")) or _text(data.get("paymentId"))


def _reference_from(data: dict[str, Any]) -> OrderReference:
    return OrderReference(
        checkout_id=_text(data.get("checkoutId")),
        order_number=_text(data.get("requestReferenceNumber")),
    )


def classify_webhook(payload: Any) -> WebhookEvent:
    """Detect the payload shape. Precedence follows the list in the module docstring."""
    if not isinstance(payload, dict):
        return Unrecognized("payload is not a JSON object")

    if _present(payload, "status") and _present(payload, "paymentStatus") and not _present(payload, "isPaid"):
        return CheckoutCompletion(
            status=str(payload["status"]),
            payment_status=str(payload["paymentStatus"]),
            # This shape is matched by order number only
            reference=OrderReference(order_number=_text(payload.get("requestReferenceNumber"))),
            payment_id=_text(payload.get("id")),
            data=payload,
        )

    if _present(payload, "status") and _present(payload, "isPaid"):
        return DirectStatus(
            status=str(payload["status"]),
            is_paid=bool(payload["isPaid"]),
            reference=_reference_from(payload),
            payment_id=_payment_id(payload),
            data=payload,
        )

    event_id = payload.get("id")
    event_type = payload.get("type")
    data = payload.get("data")
    if (
        isinstance(event_id, str) and event_id
        and isinstance(event_type, str) and event_type
        and isinstance(data, dict)
    ):
        return GenericEvent(
            event_id=event_id,
            event_type=event_type,
            reference=_reference_from(data),
            payment_id=_payment_id(data),
            data=data,
        )

    return Unrecognized("missing id, type or data")


def buyer_contact(data: dict[str, Any]) -> tuple[Optional[str], Optional[str]]:
    """(email, name) reported by the gateway, if any."""
    buyer = data.get("buyer") if isinstance(data.get("buyer"), dict) else {}
    contact = buyer.get("contact") if isinstance(buyer.get("contact"), dict) else {}
    customer = data.get("customer") if isinstance(data.get("customer"), dict) else {}

    email = _text(contact.get("email")) or _text(customer.get("email")) or _text(data.get("email"))
    name = _text(buyer.get("firstName")) or _text(customer.get("name")) or _text(data.get("name"))
    return email, name
