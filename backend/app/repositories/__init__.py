"""
Repository package for data access layer.
"""
from app.repositories.base import BaseRepository
from app.repositories.customer import CustomerRepository
from app.repositories.download import DownloadRepository
from app.repositories.order import OrderRepository
from app.repositories.product import ProductRepository

__all__ = [
    "BaseRepository",
    "CustomerRepository",
    "DownloadRepository",
    "OrderRepository",
    "ProductRepository",
]
