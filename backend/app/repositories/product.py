"""
Product repository - read-only lookups used by checkout.
"""
from typing import Iterable

from sqlalchemy import select

from app.models.product import Product
from app.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    """Repository for Product model operations."""

    model = Product

    async def get_many(self, product_ids: Iterable[int]) -> dict[int, Product]:
        """Products keyed by id; missing ids are simply absent."""
        ids = set(product_ids)
        if not ids:
            return {}
        stmt = select(Product).where(Product.id.in_(ids))
        result = await self.session.execute(stmt)
        return {product.id: product for product in result.scalars().all()}
