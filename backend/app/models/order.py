"""
Order model - a customer's or guest's purchase and its payment state.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import utc_now

if TYPE_CHECKING:
    from app.models.customer import Customer
    from app.models.download import ProductDownload
    from app.models.product import Product


class OrderStatus(str, Enum):
    """Fulfillment axis."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Payment axis; the reconciler drives transitions out of PENDING."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class Order(Base):
    """
    Purchase header.

    Owned either by a registered customer or by a guest (email + name),
    never both. Money columns are fixed-point with two decimals and
    ``total_amount == subtotal + tax_amount - discount_amount``.
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ORD-YYYYMMDD-NNNN, assigned by OrderRepository
    order_number: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)

    # Ownership
    customer_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("customers.id", ondelete="SET NULL"),
        index=True,
    )
    guest_email: Mapped[Optional[str]] = mapped_column(String(255))
    guest_name: Mapped[Optional[str]] = mapped_column(String(255))

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default=OrderStatus.PENDING.value, index=True
    )
    payment_status: Mapped[str] = mapped_column(
        String(20), default=PaymentStatus.PENDING.value, index=True
    )
    payment_method: Mapped[Optional[str]] = mapped_column(String(50))

    # Financial
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="PHP")

    billing_address: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    shipping_address: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)

    # Gateway linkage
    payment_gateway_id: Mapped[Optional[str]] = mapped_column(String(255), index=True)  # checkout id
    payment_gateway_transaction_id: Mapped[Optional[str]] = mapped_column(String(255))  # payment id

    # Lifecycle timestamps, each written once
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )

    # Relationships
    customer: Mapped[Optional["Customer"]] = relationship("Customer", lazy="selectin")
    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )
    downloads: Mapped[list["ProductDownload"]] = relationship(
        "ProductDownload",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    @property
    def is_guest_order(self) -> bool:
        return self.customer_id is None

    @property
    def contact_email(self) -> Optional[str]:
        if self.customer_id is not None:
            return self.customer.email if self.customer else None
        return self.guest_email

    @property
    def contact_name(self) -> Optional[str]:
        if self.customer_id is not None:
            return self.customer.name if self.customer else None
        return self.guest_name

    def belongs_to_customer(self, customer_id: int) -> bool:
        return self.customer_id is not None and self.customer_id == customer_id

    def belongs_to_guest(self, email: Optional[str]) -> bool:
        """Guest ownership check; email comparison is case-insensitive."""
        return (
            self.customer_id is None
            and bool(self.guest_email)
            and bool(email)
            and self.guest_email.strip().lower() == email.strip().lower()
        )

    # State transitions. Each returns True when it changed the order.

    def mark_as_paid(
        self,
        transaction_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        if self.is_paid:
            return False
        self.payment_status = PaymentStatus.PAID.value
        self.status = OrderStatus.PROCESSING.value
        if transaction_id:
            self.payment_gateway_transaction_id = transaction_id
        if self.paid_at is None:
            self.paid_at = now or utc_now()
        return True

    def mark_as_failed(self) -> bool:
        if self.payment_status != PaymentStatus.PENDING.value:
            return False
        self.payment_status = PaymentStatus.FAILED.value
        return True

    def mark_as_cancelled(self, now: Optional[datetime] = None) -> bool:
        if self.payment_status != PaymentStatus.PENDING.value:
            return False
        self.status = OrderStatus.CANCELLED.value
        self.payment_status = PaymentStatus.CANCELLED.value
        if self.cancelled_at is None:
            self.cancelled_at = now or utc_now()
        return True

    def mark_as_completed(self, now: Optional[datetime] = None) -> bool:
        if self.status == OrderStatus.COMPLETED.value:
            return False
        self.status = OrderStatus.COMPLETED.value
        if self.completed_at is None:
            self.completed_at = now or utc_now()
        return True

    def override_status(
        self,
        status: str,
        payment_status: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Back-office override of both axes. Timestamps are stamped on first entry only."""
        now = now or utc_now()
        if payment_status is not None:
            self.payment_status = payment_status
            if payment_status == PaymentStatus.PAID.value and self.paid_at is None:
                self.paid_at = now

        if status == OrderStatus.COMPLETED.value:
            self.mark_as_completed(now)
            return
        self.status = status
        if status == OrderStatus.CANCELLED.value and self.cancelled_at is None:
            self.cancelled_at = now

    def __repr__(self) -> str:
        return f"<Order {self.order_number}>"


class OrderItem(Base):
    """
    Line-item snapshot taken at order creation.

    Name and price are copied from the product so historical orders stay
    correct after the catalog changes. Never updated after insert.
    """

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        index=True,
    )
    product_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="SET NULL"),
        index=True,
    )

    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
    )

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    product: Mapped[Optional["Product"]] = relationship("Product", lazy="selectin")
    download: Mapped[Optional["ProductDownload"]] = relationship(
        "ProductDownload",
        back_populates="order_item",
        uselist=False,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<OrderItem {self.product_name} x{self.quantity}>"
