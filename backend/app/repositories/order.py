"""
Order repository for data access operations.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from app.core.logging import get_logger
from app.models.order import Order, OrderItem, PaymentStatus
from app.repositories.base import BaseRepository

logger = get_logger(__name__)

ORDER_NUMBER_PREFIX = "ORD"
ORDER_NUMBER_ATTEMPTS = 5


def format_order_number(day: datetime, sequence: int) -> str:
    """ORD-YYYYMMDD-NNNN."""
    return f"{ORDER_NUMBER_PREFIX}-{day:%Y%m%d}-{sequence:04d}"


def detail_options() -> tuple:
    """Eager loads needed to render an order with its items and downloads."""
    return (
        selectinload(Order.customer),
        selectinload(Order.items).selectinload(OrderItem.download),
    )


class OrderRepository(BaseRepository[Order]):
    """Repository for Order model operations."""

    model = Order

    async def get_detail(
        self,
        *,
        order_id: Optional[int] = None,
        order_number: Optional[str] = None,
    ) -> Optional[Order]:
        """
        Load an order for display with items and their downloads.

        Always re-reads the row so objects already in the session are
        refreshed rather than reused.
        """
        stmt = select(Order).options(*detail_options())
        if order_id is not None:
            stmt = stmt.where(Order.id == order_id)
        elif order_number is not None:
            stmt = stmt.where(Order.order_number == order_number)
        else:
            return None
        stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_order_number(
        self,
        order_number: str,
        *,
        for_update: bool = False,
    ) -> Optional[Order]:
        """Get an order by its human-facing number."""
        stmt = select(Order).where(Order.order_number == order_number)
        if for_update:
            stmt = self.locked(stmt)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_gateway_id(
        self,
        checkout_id: str,
        *,
        for_update: bool = False,
    ) -> Optional[Order]:
        """Get an order by the PayMaya checkout id stored at checkout creation."""
        stmt = select(Order).where(Order.payment_gateway_id == checkout_id)
        if for_update:
            stmt = self.locked(stmt)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def next_order_number(self, now: Optional[datetime] = None) -> str:
        """
        Next number in today's sequence.

        The sequence restarts at 0001 every day. Numbers are zero-padded to
        four digits and grow wider past 9999, so the longest then greatest
        suffix is the latest one.
        """
        day = now or datetime.now(timezone.utc)
        prefix = f"{ORDER_NUMBER_PREFIX}-{day:%Y%m%d}-"
        stmt = (
            select(Order.order_number)
            .where(Order.order_number.like(f"{prefix}%"))
            .order_by(func.length(Order.order_number).desc(), Order.order_number.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        last = result.scalar_one_or_none()

        sequence = 1
        if last:
            try:
                sequence = int(last.rsplit("-", 1)[1]) + 1
            except (IndexError, ValueError):
                logger.warning("Unparseable order number in sequence", order_number=last)
        return format_order_number(day, sequence)

    async def create_with_items(
        self,
        order_data: dict[str, Any],
        items_data: list[dict[str, Any]],
    ) -> Order:
        """
        Insert an order and its line items.

        The order number is generated here, never taken from the caller.
        A concurrent insert that grabbed the same number surfaces as an
        IntegrityError inside the savepoint; the next number is tried.
        """
        for attempt in range(ORDER_NUMBER_ATTEMPTS):
            order_number = await self.next_order_number()
            order = Order(
                **order_data,
                order_number=order_number,
                items=[OrderItem(**item) for item in items_data],
            )
            try:
                async with self.session.begin_nested():
                    self.session.add(order)
                    await self.session.flush()
            except IntegrityError:
                logger.warning(
                    "Order number collision, retrying",
                    order_number=order_number,
                    attempt=attempt + 1,
                )
                continue

            await self.session.refresh(order)
            return order

        raise RuntimeError("Could not allocate a unique order number")

    async def list_orders(
        self,
        *,
        customer_id: Optional[int] = None,
        guest_email: Optional[str] = None,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        skip: int = 0,
        limit: int = 15,
    ) -> tuple[list[Order], int]:
        """
        Filtered, newest-first order listing.
        Returns (orders, total_count) tuple.
        """
        base_query = select(Order)

        if customer_id is not None:
            base_query = base_query.where(Order.customer_id == customer_id)
        if guest_email is not None:
            base_query = base_query.where(
                Order.customer_id.is_(None),
                func.lower(Order.guest_email) == guest_email.strip().lower(),
            )
        if status:
            base_query = base_query.where(Order.status == status)
        if payment_status:
            base_query = base_query.where(Order.payment_status == payment_status)

        count_stmt = select(func.count()).select_from(base_query.subquery())
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar() or 0

        stmt = (
            base_query
            .options(*detail_options())
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def get_items(self, order_id: int) -> list[OrderItem]:
        """Line items of an order with their products freshly loaded."""
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .options(selectinload(OrderItem.product))
            .order_by(OrderItem.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_paid_orders(self) -> list[Order]:
        """All paid orders, oldest first."""
        stmt = (
            select(Order)
            .where(Order.payment_status == PaymentStatus.PAID.value)
            .order_by(Order.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
