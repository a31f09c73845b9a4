"""
Services package for business logic layer.
"""
from app.services.checkout import CheckoutService
from app.services.entitlements import EntitlementGenerator
from app.services.notification_service import NotificationService
from app.services.order_confirmation import OrderConfirmationDispatcher
from app.services.order_service import OrderService
from app.services.paymaya_client import PayMayaClient
from app.services.webhook_events import classify_webhook
from app.services.webhook_reconciler import WebhookReconciler

__all__ = [
    "OrderService",
    "CheckoutService",
    "PayMayaClient",
    "WebhookReconciler",
    "classify_webhook",
    "EntitlementGenerator",
    "OrderConfirmationDispatcher",
    "NotificationService",
]
