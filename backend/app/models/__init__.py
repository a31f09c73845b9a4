"""
SQLAlchemy models package.
All models are imported here for easy access and Alembic discovery.
"""
from app.models.customer import Customer, CustomerCart
from app.models.download import ProductDownload
from app.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from app.models.product import Product

__all__ = [
    "Customer",
    "CustomerCart",
    "Product",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "ProductDownload",
]
