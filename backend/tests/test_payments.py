"""
Tests for PayMaya checkout creation.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.core.config import settings
from app.core.exceptions import PaymentGatewayError
from app.models import Order
from app.services.paymaya_client import PayMayaClient

CHECKOUT_URL = "/api/payments/paymaya/checkout"
SANDBOX_CHECKOUTS = "https://pg-sandbox.maya.ph/checkout/v1/checkouts"


@pytest.fixture
def paymaya_keys(monkeypatch):
    monkeypatch.setattr(settings, "paymaya_public_key", "pk-test-123")
    monkeypatch.setattr(settings, "paymaya_secret_key", "sk-test-456")
    monkeypatch.setattr(settings, "paymaya_environment", "sandbox")


@pytest.fixture
def mock_gateway():
    """Patch httpx.AsyncClient as used by the PayMaya client."""
    with patch("app.services.paymaya_client.httpx.AsyncClient") as mock_client_cls:
        http = AsyncMock()
        mock_client_cls.return_value.__aenter__.return_value = http

        def respond(status_code=200, json=None):
            http.post.return_value = httpx.Response(
                status_code,
                json=json,
                request=httpx.Request("POST", SANDBOX_CHECKOUTS),
            )
            return http

        yield respond


@pytest.fixture
def pending_order(async_client, make_product, order_payload):
    async def _pending_order(**overrides):
        product = await make_product(price="250.00")
        response = await async_client.post(
            "/api/orders",
            json=order_payload(product, quantity=2, **overrides),
        )
        return response.json()["order"]

    return _pending_order


def checkout_request(**overrides) -> dict:
    body = {
        "amount": 500,
        "success_url": "https://shop.example.com/payment/success",
        "cancel_url": "https://shop.example.com/payment/cancel",
    }
    body.update(overrides)
    return body


class TestPayMayaClient:
    async def test_posts_with_basic_auth(self, paymaya_keys, mock_gateway):
        http = mock_gateway(json={"checkoutId": "chk-1", "redirectUrl": "https://pay/chk-1"})

        result = await PayMayaClient().create_checkout({"requestReferenceNumber": "ORD-1"})

        assert result["checkoutId"] == "chk-1"
        args, kwargs = http.post.call_args
        assert args[0] == SANDBOX_CHECKOUTS
        assert kwargs["auth"] == ("pk-test-123", "sk-test-456")
        assert kwargs["json"] == {"requestReferenceNumber": "ORD-1"}

    async def test_production_base_url(self, paymaya_keys, monkeypatch):
        monkeypatch.setattr(settings, "paymaya_environment", "production")

        client = PayMayaClient()

        assert client.hosted_checkout_url("abc") == "https://pg.maya.ph/checkout/v1/checkouts/abc"

    async def test_missing_credentials(self):
        with pytest.raises(PaymentGatewayError) as exc_info:
            await PayMayaClient().create_checkout({})

        assert exc_info.value.status_code == 400

    async def test_gateway_error_passes_message_and_status(self, paymaya_keys, mock_gateway):
        mock_gateway(status_code=401, json={"error": "Invalid public key"})

        with pytest.raises(PaymentGatewayError) as exc_info:
            await PayMayaClient().create_checkout({})

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid public key"
        assert exc_info.value.details == {"error": "Invalid public key"}

    async def test_success_without_checkout_id_is_an_error(self, paymaya_keys, mock_gateway):
        mock_gateway(json={"message": "Something odd"})

        with pytest.raises(PaymentGatewayError) as exc_info:
            await PayMayaClient().create_checkout({})

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Something odd"

    async def test_transport_error(self, paymaya_keys):
        with patch("app.services.paymaya_client.httpx.AsyncClient") as mock_client_cls:
            http = AsyncMock()
            http.post.side_effect = httpx.ConnectError("connection refused")
            mock_client_cls.return_value.__aenter__.return_value = http

            with pytest.raises(PaymentGatewayError) as exc_info:
                await PayMayaClient().create_checkout({})

        assert exc_info.value.status_code == 502
        assert "connection refused" in exc_info.value.message


class TestCheckoutEndpoint:
    """POST /api/payments/paymaya/checkout"""

    async def test_checkout_for_order(
        self, async_client, db_session, paymaya_keys, mock_gateway, pending_order
    ):
        order = await pending_order()
        http = mock_gateway(json={"checkoutId": "chk-xyz", "redirectUrl": "https://pay/chk-xyz"})

        response = await async_client.post(
            CHECKOUT_URL,
            json=checkout_request(order_id=order["id"]),
        )

        assert response.status_code == 200
        checkout = response.json()["checkout"]
        assert checkout == {
            "id": "chk-xyz",
            "redirect_url": "https://pay/chk-xyz",
            "order_id": order["order_number"],
            "order_db_id": order["id"],
            "amount": 500.0,
            "currency": "PHP",
        }

        sent = http.post.call_args.kwargs["json"]
        assert sent["requestReferenceNumber"] == order["order_number"]
        assert sent["totalAmount"] == {"value": "500.00", "currency": "PHP"}
        assert sent["buyer"]["firstName"] == "Maria"
        assert sent["buyer"]["lastName"] == "Santos"
        assert sent["buyer"]["contact"]["email"] == "guest@example.com"
        assert sent["buyer"]["contact"]["phone"] == "+639000000000"
        assert sent["redirectUrl"]["failure"] == "https://shop.example.com/payment/cancel"

        stored = await db_session.get(Order, order["id"])
        assert stored.payment_gateway_id == "chk-xyz"
        assert stored.payment_method == "paymaya"

    async def test_request_customer_overrides_order_buyer(
        self, async_client, paymaya_keys, mock_gateway, pending_order
    ):
        order = await pending_order()
        http = mock_gateway(json={"checkoutId": "chk-1"})

        response = await async_client.post(CHECKOUT_URL, json=checkout_request(
            order_number=order["order_number"],
            failure_url="https://shop.example.com/payment/failed",
            customer={"name": "Jose Rizal", "email": "jose@example.com", "phone": "+639171234567"},
        ))

        assert response.status_code == 200
        sent = http.post.call_args.kwargs["json"]
        assert sent["buyer"]["firstName"] == "Jose"
        assert sent["buyer"]["lastName"] == "Rizal"
        assert sent["buyer"]["contact"] == {"phone": "+639171234567", "email": "jose@example.com"}
        assert sent["redirectUrl"]["failure"] == "https://shop.example.com/payment/failed"
        assert response.json()["checkout"]["redirect_url"] == f"{SANDBOX_CHECKOUTS}/chk-1"

    async def test_checkout_without_order(self, async_client, paymaya_keys, mock_gateway):
        http = mock_gateway(json={"checkoutId": "chk-2", "redirectUrl": "https://pay/chk-2"})

        response = await async_client.post(CHECKOUT_URL, json=checkout_request(amount=99.5))

        assert response.status_code == 200
        reference = http.post.call_args.kwargs["json"]["requestReferenceNumber"]
        assert reference.startswith("ORDER-")
        assert len(reference) == len("ORDER-") + 13
        assert response.json()["checkout"]["order_db_id"] is None

    async def test_amount_mismatch(
        self, async_client, db_session, paymaya_keys, mock_gateway, pending_order
    ):
        order = await pending_order()
        http = mock_gateway(json={"checkoutId": "chk-3"})

        response = await async_client.post(
            CHECKOUT_URL,
            json=checkout_request(order_id=order["id"], amount=400),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Payment amount does not match order total"
        http.post.assert_not_called()
        assert (await db_session.get(Order, order["id"])).payment_gateway_id is None

    async def test_unknown_order(self, async_client, paymaya_keys, mock_gateway):
        response = await async_client.post(CHECKOUT_URL, json=checkout_request(order_id=404))

        assert response.status_code == 422
        assert "order_id" in response.json()["details"]

    async def test_missing_credentials(self, async_client):
        response = await async_client.post(CHECKOUT_URL, json=checkout_request())

        assert response.status_code == 400
        assert "PAYMAYA_PUBLIC_KEY" in response.json()["message"]

    async def test_gateway_rejection(self, async_client, paymaya_keys, mock_gateway):
        mock_gateway(status_code=422, json={"message": "Invalid buyer phone"})

        response = await async_client.post(CHECKOUT_URL, json=checkout_request())

        assert response.status_code == 422
        assert response.json() == {
            "success": False,
            "message": "Invalid buyer phone",
            "details": {"message": "Invalid buyer phone"},
        }

    async def test_amount_below_minimum(self, async_client, paymaya_keys):
        response = await async_client.post(CHECKOUT_URL, json=checkout_request(amount=0.5))

        assert response.status_code == 422
