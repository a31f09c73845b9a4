"""
ProductDownload model - a tokenized entitlement to a purchased file.
"""
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import as_utc, utc_now

if TYPE_CHECKING:
    from app.models.order import Order, OrderItem
    from app.models.product import Product


class ProductDownload(Base):
    """
    One row per downloadable order item.

    ``order_item_id`` is unique: a second insert for the same item fails,
    which is how concurrent webhook deliveries are kept from issuing two
    tokens. ``expires_at`` NULL means the link never expires.
    """

    __tablename__ = "product_downloads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        index=True,
    )
    order_item_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("order_items.id", ondelete="CASCADE"),
        unique=True,
    )
    product_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        index=True,
    )
    customer_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("customers.id", ondelete="SET NULL"),
        index=True,
    )
    guest_email: Mapped[Optional[str]] = mapped_column(String(255))

    download_token: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    download_count: Mapped[int] = mapped_column(Integer, default=0)
    max_downloads: Mapped[int] = mapped_column(Integer, nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_downloaded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
    )

    order: Mapped["Order"] = relationship("Order", back_populates="downloads", lazy="selectin")
    order_item: Mapped["OrderItem"] = relationship("OrderItem", back_populates="download", lazy="selectin")
    product: Mapped[Optional["Product"]] = relationship("Product", lazy="selectin")

    @property
    def is_expired(self) -> bool:
        expires_at = as_utc(self.expires_at)
        return expires_at is not None and expires_at <= utc_now()

    @property
    def can_download(self) -> bool:
        # max_downloads is a display sentinel; redemption is never capped
        return not self.is_expired

    @property
    def remaining_downloads(self) -> int:
        return self.max_downloads

    def __repr__(self) -> str:
        return f"<ProductDownload {self.download_token[:8]}...>"
