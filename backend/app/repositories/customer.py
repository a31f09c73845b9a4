"""
Customer repository for data access operations.
"""
from typing import Optional

from sqlalchemy import delete, select

from app.models.customer import Customer, CustomerCart
from app.repositories.base import BaseRepository


class CustomerRepository(BaseRepository[Customer]):
    """Repository for Customer model operations."""

    model = Customer

    async def get_active(self, customer_id: int) -> Optional[Customer]:
        stmt = select(Customer).where(
            Customer.id == customer_id,
            Customer.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def clear_cart(self, customer_id: int) -> int:
        """Remove every saved cart line of a customer. Returns rows deleted."""
        stmt = delete(CustomerCart).where(CustomerCart.customer_id == customer_id)
        result = await self.session.execute(stmt)
        return result.rowcount or 0
