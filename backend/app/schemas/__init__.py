"""
Pydantic schemas package.
"""
from app.schemas.download import (
    BackfillResponse,
    DownloadInfo,
    DownloadInfoResponse,
    DownloadListResponse,
)
from app.schemas.order import (
    OrderCreate,
    OrderEnvelope,
    OrderItemCreate,
    OrderItemResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    Pagination,
)
from app.schemas.payment import (
    CheckoutCustomer,
    CheckoutRequest,
    CheckoutResponse,
    CheckoutSession,
    WebhookAck,
)

__all__ = [
    # Order
    "OrderCreate",
    "OrderItemCreate",
    "OrderStatusUpdate",
    "OrderResponse",
    "OrderItemResponse",
    "OrderEnvelope",
    "OrderListResponse",
    "Pagination",
    # Payment
    "CheckoutCustomer",
    "CheckoutRequest",
    "CheckoutSession",
    "CheckoutResponse",
    "WebhookAck",
    # Download
    "DownloadInfo",
    "DownloadInfoResponse",
    "DownloadListResponse",
    "BackfillResponse",
]
