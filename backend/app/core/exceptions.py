"""
Domain exceptions raised by the order, payment and download services.

Each carries the HTTP status it maps to and a message that is safe to show
to the caller. Routers do not catch these; the handler registered in
``app.main`` renders them as ``{"success": false, "message": ...}``.
"""
from typing import Any, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from app.core.logging import get_logger

logger = get_logger(__name__)


class OrderError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request could not be processed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ProductNotFoundError(OrderError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Product not found"


class ProductUnavailableError(OrderError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Product is not available"


class OrderValidationError(OrderError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Validation failed"


class OrderNotFoundError(OrderError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Order not found"


class OrderAccessDeniedError(OrderError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Unauthorized access to this order"


class AuthenticationRequiredError(OrderError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthenticated"


class DownloadNotFoundError(OrderError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Invalid download link"


class PaymentGatewayError(OrderError):
    """Checkout API failure; the gateway's own message is passed through."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Failed to create checkout session"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=details)
        if status_code:
            self.status_code = status_code


async def order_error_handler(request: Request, exc: OrderError) -> JSONResponse:
    """Render domain errors with their status code."""
    logger.info(
        "Request rejected",
        error=type(exc).__name__,
        status=exc.status_code,
        message=exc.message,
    )
    content: dict[str, Any] = {"success": False, "message": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)
