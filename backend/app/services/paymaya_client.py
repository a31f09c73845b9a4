"""
PayMaya (Maya) Checkout API client.

Only checkout creation is needed: the buyer is redirected to the hosted
page and the outcome arrives later through the webhook.
"""
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import PaymentGatewayError
from app.core.logging import get_logger

logger = get_logger(__name__)


class PayMayaClient:
    """
    Async PayMaya Checkout client.

    Authenticates with HTTP Basic auth (public key as user, secret key as
    password) and uses a bounded timeout on every call.
    """

    CHECKOUTS_PATH = "/checkout/v1/checkouts"

    def __init__(
        self,
        public_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.public_key = public_key if public_key is not None else settings.paymaya_public_key
        self.secret_key = secret_key if secret_key is not None else settings.paymaya_secret_key
        self.base_url = base_url or settings.paymaya_api_base_url
        self.timeout = timeout or settings.paymaya_timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self.public_key and self.secret_key)

    def hosted_checkout_url(self, checkout_id: str) -> str:
        return f"{self.base_url}{self.CHECKOUTS_PATH}/{checkout_id}"

    async def create_checkout(self, checkout_data: dict[str, Any]) -> dict[str, Any]:
        """
        Create a hosted checkout session.

        Returns:
            Gateway response containing at least ``checkoutId``

        Raises:
            PaymentGatewayError: missing credentials, transport failure or
                a non-2xx response (gateway message passed through)
        """
        if not self.is_configured:
            raise PaymentGatewayError(
                "PayMaya credentials are not configured. "
                "Please set PAYMAYA_PUBLIC_KEY and PAYMAYA_SECRET_KEY.",
                status_code=400,
            )

        url = f"{self.base_url}{self.CHECKOUTS_PATH}"
        logger.info(
            "PayMaya checkout request",
            url=url,
            environment=settings.paymaya_environment,
            reference=checkout_data.get("requestReferenceNumber"),
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    json=checkout_data,
                    auth=(self.public_key, self.secret_key),
                    headers={"Accept": "application/json"},
                )
        except httpx.RequestError as e:
            logger.error("PayMaya request failed", url=url, error=str(e))
            raise PaymentGatewayError(
                f"An error occurred while creating the checkout session: {e}",
            ) from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {"response": data}

        if response.is_success and data.get("checkoutId"):
            return data

        message = data.get("message") or data.get("error") or "Failed to create checkout session"
        logger.error(
            "PayMaya checkout error",
            status=response.status_code,
            response=data,
        )
        raise PaymentGatewayError(
            str(message),
            status_code=response.status_code if not response.is_success else None,
            details=data,
        )
