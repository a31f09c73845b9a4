"""
API routers package.
"""
from app.routers.admin import router as admin_router
from app.routers.downloads import router as downloads_router
from app.routers.health import router as health_router
from app.routers.orders import router as orders_router
from app.routers.payments import router as payments_router
from app.routers.webhooks import router as webhooks_router

__all__ = [
    "health_router",
    "orders_router",
    "payments_router",
    "webhooks_router",
    "downloads_router",
    "admin_router",
]
