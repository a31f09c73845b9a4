"""
Order confirmation dispatch.

Sends at most one confirmation per paid order. Guards, in order:
the order must have ``paid_at``; the payment must be recent (the caller is
then the one that just marked it paid); the order must not be in the
recently-sent map. Transport errors are logged and swallowed.
"""
import csv
import os
import tempfile
import time
from datetime import datetime, timezone
from threading import Lock
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import get_logger
from app.models.base import as_utc
from app.models.order import Order
from app.repositories.download import DownloadRepository
from app.repositories.order import OrderRepository
from app.services.notification_service import (
    ConfirmationLine,
    EmailAttachment,
    NotificationService,
    format_peso,
    notification_service,
)

logger = get_logger(__name__)

CSV_HEADER = ["Order Number", "Product Name", "Quantity", "Unit Price", "Subtotal"]


class SentConfirmations:
    """
    Process-local record of recently sent confirmations with a TTL.

    Expired entries are swept on every access.
    """

    def __init__(self, ttl_seconds: float) -> None:
        self.ttl_seconds = ttl_seconds
        self._sent: dict[int, float] = {}
        self._lock = Lock()

    def _sweep(self, now: float) -> None:
        expired = [key for key, expires in self._sent.items() if expires <= now]
        for key in expired:
            del self._sent[key]

    def contains(self, order_id: int, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        with self._lock:
            self._sweep(now)
            return order_id in self._sent

    def add(self, order_id: int, now: Optional[float] = None) -> None:
        now = time.monotonic() if now is None else now
        with self._lock:
            self._sweep(now)
            self._sent[order_id] = now + self.ttl_seconds

    def clear(self) -> None:
        with self._lock:
            self._sent.clear()

    def __len__(self) -> int:
        return len(self._sent)


sent_confirmations = SentConfirmations(settings.confirmation_email_dedup_ttl_seconds)


def write_order_csv(path: str, order: Order, lines: list[ConfirmationLine]) -> None:
    """Line items followed by the totals block. UTF-8 with BOM for Excel."""
    with open(path, "w", encoding="utf-8-sig", newline="") as fh:
        writer = csv.writer(fh)
        writer.writerow(CSV_HEADER)
        for line in lines:
            writer.writerow([
                order.order_number,
                line.product_name,
                line.quantity,
                format_peso(line.unit_price),
                format_peso(line.subtotal),
            ])
        writer.writerow([])
        writer.writerow(["", "", "", "Subtotal", format_peso(order.subtotal)])
        if order.tax_amount and order.tax_amount > 0:
            writer.writerow(["", "", "", "Tax", format_peso(order.tax_amount)])
        if order.discount_amount and order.discount_amount > 0:
            writer.writerow(["", "", "", "Discount", f"-{format_peso(order.discount_amount)}"])
        writer.writerow(["", "", "", "TOTAL", format_peso(order.total_amount)])


class OrderConfirmationDispatcher:
    """Builds and sends the confirmation email for a freshly paid order."""

    def __init__(
        self,
        session: AsyncSession,
        mailer: Optional[NotificationService] = None,
        sent: Optional[SentConfirmations] = None,
    ) -> None:
        self.session = session
        self.mailer = mailer or notification_service
        self.sent = sent if sent is not None else sent_confirmations

    async def _build_lines(self, order: Order) -> list[ConfirmationLine]:
        downloads = await DownloadRepository(self.session).get_for_order(order.id)
        order_url = f"{settings.frontend_url}/order/{order.order_number}"

        lines = []
        for item in await OrderRepository(self.session).get_items(order.id):
            download = downloads.get(item.id)
            lines.append(ConfirmationLine(
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.product_price,
                subtotal=item.subtotal,
                order_url=order_url,
                download_url=(
                    f"{settings.app_url}/api/downloads/{download.download_token}"
                    if download else None
                ),
            ))
        return lines

    async def send_confirmation(
        self,
        order: Order,
        now: Optional[datetime] = None,
    ) -> bool:
        """Returns True only when an email actually went out."""
        if order.paid_at is None:
            logger.info(
                "Order not paid, skipping confirmation email",
                order_number=order.order_number,
            )
            return False

        now = as_utc(now) if now else datetime.now(timezone.utc)
        paid_seconds_ago = (now - as_utc(order.paid_at)).total_seconds()
        if paid_seconds_ago > settings.confirmation_email_window_seconds:
            logger.info(
                "Order was not recently paid, skipping confirmation email",
                order_number=order.order_number,
                paid_seconds_ago=round(paid_seconds_ago, 1),
            )
            return False

        if self.sent.contains(order.id):
            logger.info(
                "Confirmation email already sent recently",
                order_number=order.order_number,
            )
            return False

        recipient = order.contact_email
        if not recipient:
            logger.warning("Order has no contact email", order_number=order.order_number)
            return False

        lines = await self._build_lines(order)
        html, text = self.mailer.format_order_confirmation_email(
            order_number=order.order_number,
            customer_name=order.contact_name or "Customer",
            lines=lines,
            subtotal=order.subtotal,
            tax_amount=order.tax_amount,
            discount_amount=order.discount_amount,
            total_amount=order.total_amount,
        )

        fd, csv_path = tempfile.mkstemp(prefix="order_", suffix=".csv")
        os.close(fd)
        try:
            write_order_csv(csv_path, order, lines)
            with open(csv_path, "rb") as fh:
                attachment = EmailAttachment(
                    filename=f"order_{order.order_number}.csv",
                    content=fh.read(),
                )

            sent = await self.mailer.send_email(
                to=recipient,
                subject=f"Order Confirmation - {order.order_number}",
                html_content=html,
                text_content=text,
                attachments=[attachment],
            )
        except Exception as e:
            logger.exception(
                "Failed to send order confirmation email",
                order_number=order.order_number,
                error=str(e),
            )
            return False
        finally:
            if os.path.exists(csv_path):
                os.unlink(csv_path)

        if sent:
            self.sent.add(order.id)
            logger.info(
                "Order confirmation email sent",
                order_number=order.order_number,
                items=len(lines),
            )
        return sent
