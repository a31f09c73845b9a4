"""
Order Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

OrderStatusValue = Literal["pending", "processing", "completed", "cancelled"]
PaymentStatusValue = Literal["pending", "paid", "failed", "cancelled", "refunded"]


class OrderItemCreate(BaseModel):
    """One cart line as submitted by the storefront."""

    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    """
    Checkout submission.

    Totals are advisory; the server recomputes them from product prices.
    ``guest_email`` is required only when no customer token is presented,
    which the order service enforces.
    """

    items: list[OrderItemCreate] = Field(..., min_length=1)
    subtotal: float = Field(..., ge=0)
    tax_amount: Optional[float] = Field(None, ge=0)
    discount_amount: Optional[float] = Field(None, ge=0)
    total_amount: float = Field(..., ge=0)
    currency: Optional[str] = Field(None, max_length=3)
    guest_email: Optional[EmailStr] = None
    guest_name: Optional[str] = Field(None, max_length=255)
    billing_address: Optional[dict[str, Any]] = None
    shipping_address: Optional[dict[str, Any]] = None


class OrderStatusUpdate(BaseModel):
    """Back-office status change."""

    status: OrderStatusValue
    payment_status: Optional[PaymentStatusValue] = None


class ItemDownloadResponse(BaseModel):
    """Entitlement attached to an order item."""

    download_token: str
    download_count: int
    max_downloads: int
    expires_at: Optional[datetime] = None
    last_downloaded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderItemResponse(BaseModel):
    id: int
    product_id: Optional[int] = None
    product_name: str
    product_price: float
    quantity: int
    subtotal: float
    download: Optional[ItemDownloadResponse] = None

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Schema for order API responses."""

    id: int
    order_number: str
    customer_id: Optional[int] = None
    guest_email: Optional[str] = None
    guest_name: Optional[str] = None
    status: str
    payment_status: str
    payment_method: Optional[str] = None
    subtotal: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    currency: str
    billing_address: Optional[dict[str, Any]] = None
    shipping_address: Optional[dict[str, Any]] = None
    payment_gateway_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    items: list[OrderItemResponse] = []

    model_config = ConfigDict(from_attributes=True)


class OrderEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    order: OrderResponse


class Pagination(BaseModel):
    current_page: int
    last_page: int
    per_page: int
    total: int


class OrderListResponse(BaseModel):
    success: bool = True
    orders: list[OrderResponse]
    pagination: Pagination
