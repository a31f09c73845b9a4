"""
ProductDownload repository for data access operations.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update

from app.models.download import ProductDownload
from app.repositories.base import BaseRepository


class DownloadRepository(BaseRepository[ProductDownload]):
    """Repository for ProductDownload model operations."""

    model = ProductDownload

    async def get_by_token(self, token: str) -> Optional[ProductDownload]:
        stmt = select(ProductDownload).where(ProductDownload.download_token == token)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_order_item(self, order_item_id: int) -> Optional[ProductDownload]:
        stmt = select(ProductDownload).where(ProductDownload.order_item_id == order_item_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def token_exists(self, token: str) -> bool:
        stmt = select(ProductDownload.id).where(ProductDownload.download_token == token)
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def get_for_order(self, order_id: int) -> dict[int, ProductDownload]:
        """Downloads of an order keyed by order_item_id."""
        stmt = select(ProductDownload).where(ProductDownload.order_id == order_id)
        result = await self.session.execute(stmt)
        return {download.order_item_id: download for download in result.scalars().all()}

    async def list_for_customer(self, customer_id: int) -> list[ProductDownload]:
        stmt = (
            select(ProductDownload)
            .where(ProductDownload.customer_id == customer_id)
            .order_by(ProductDownload.created_at.desc(), ProductDownload.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def record_download(
        self,
        download: ProductDownload,
        now: Optional[datetime] = None,
    ) -> ProductDownload:
        """Increment the counter in the database and stamp the redemption time."""
        stmt = (
            update(ProductDownload)
            .where(ProductDownload.id == download.id)
            .values(
                download_count=ProductDownload.download_count + 1,
                last_downloaded_at=now or datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.refresh(download, attribute_names=["download_count", "last_downloaded_at"])
        return download
