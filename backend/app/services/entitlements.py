"""
Entitlement generation - one download token per downloadable order item.

Safe to run any number of times for the same order: an item that already
has a ProductDownload is skipped, and the unique constraint on
``order_item_id`` turns a lost race into a skip as well. Items are handled
independently, so one failing item does not block the others.
"""
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import get_logger
from app.core.security import generate_download_token
from app.models.download import ProductDownload
from app.models.order import Order, OrderItem
from app.repositories.download import DownloadRepository
from app.repositories.order import OrderRepository

logger = get_logger(__name__)

MAX_TOKEN_ATTEMPTS = 10


@dataclass
class EntitlementResult:
    created: list[ProductDownload] = field(default_factory=list)
    skipped_existing: int = 0
    skipped_no_file: int = 0
    failed: int = 0


class EntitlementGenerator:
    """Issues ProductDownload rows for a paid order."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.downloads = DownloadRepository(session)

    async def _unique_token(self) -> str:
        for _ in range(MAX_TOKEN_ATTEMPTS):
            token = generate_download_token()
            if not await self.downloads.token_exists(token):
                return token
        raise RuntimeError("Could not generate a unique download token")

    async def _issue(self, order: Order, item: OrderItem) -> Optional[ProductDownload]:
        """Insert one entitlement in its own savepoint. None if it already exists."""
        download = ProductDownload(
            order_id=order.id,
            order_item_id=item.id,
            product_id=item.product_id,
            customer_id=order.customer_id,
            guest_email=None if order.customer_id else order.guest_email,
            download_token=await self._unique_token(),
            download_count=0,
            max_downloads=settings.unlimited_downloads,
            expires_at=None,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(download)
                await self.session.flush()
        except IntegrityError:
            # Another delivery inserted the row first
            logger.info(
                "Download token already exists for order item",
                order_item_id=item.id,
            )
            return None
        return download

    async def generate(self, order: Order) -> EntitlementResult:
        result = EntitlementResult()

        for item in await OrderRepository(self.session).get_items(order.id):
            product = item.product
            if product is None or not product.has_file:
                logger.info(
                    "Skipping download token generation - product has no file",
                    order_item_id=item.id,
                    product_id=item.product_id,
                )
                result.skipped_no_file += 1
                continue

            try:
                # A database error here only rolls back this item
                async with self.session.begin_nested():
                    existing = await self.downloads.get_by_order_item(item.id)
                    download = None if existing else await self._issue(order, item)
            except Exception as e:
                logger.exception(
                    "Download token generation failed for order item",
                    order_number=order.order_number,
                    order_item_id=item.id,
                    error=str(e),
                )
                result.failed += 1
                continue

            if existing is not None:
                logger.info(
                    "Download token already exists for order item",
                    order_item_id=item.id,
                )
                result.skipped_existing += 1
                continue
            if download is None:
                result.skipped_existing += 1
                continue

            result.created.append(download)
            logger.info(
                "Download token generated for order item",
                order_number=order.order_number,
                order_item_id=item.id,
                product_id=item.product_id,
                token_prefix=download.download_token[:8],
            )

        return result

    async def backfill_paid_orders(self) -> tuple[int, int]:
        """
        Generate missing entitlements for every paid order.
        Returns (orders_processed, tokens_generated).
        """
        orders_processed = 0
        tokens_generated = 0

        for order in await OrderRepository(self.session).get_paid_orders():
            result = await self.generate(order)
            if result.created:
                orders_processed += 1
                tokens_generated += len(result.created)

        logger.info(
            "Download token backfill completed",
            orders_processed=orders_processed,
            tokens_generated=tokens_generated,
        )
        return orders_processed, tokens_generated
