"""
Notification Service - transactional email via the Resend API.

Used for order confirmations. Delivery is best effort: failures are logged
and reported as False, never raised to the caller.
"""
import base64
import html
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class EmailAttachment:
    filename: str
    content: bytes


@dataclass
class ConfirmationLine:
    """One line item as it appears in the confirmation email."""

    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    order_url: str
    download_url: Optional[str] = None


def format_peso(amount: Any) -> str:
    return f"₱{Decimal(str(amount or 0)):,.2f}"


class NotificationService:
    """
    Email notification channel.

    Messages go through Resend's HTTP API; attachments are sent inline as
    base64 content.
    """

    RESEND_API_URL = "https://api.resend.com/emails"

    def __init__(self) -> None:
        self.resend_api_key = settings.resend_api_key

    async def send_email(
        self,
        to: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        attachments: Optional[list[EmailAttachment]] = None,
    ) -> bool:
        """
        Send email via Resend API.

        Returns:
            True if sent successfully
        """
        if not self.resend_api_key:
            logger.warning("Resend API key not configured, skipping email", to=to)
            return False

        payload: dict[str, Any] = {
            "from": settings.mail_from,
            "to": [to],
            "subject": subject,
            "html": html_content,
            "text": text_content or subject,
        }
        if attachments:
            payload["attachments"] = [
                {
                    "filename": attachment.filename,
                    "content": base64.b64encode(attachment.content).decode("ascii"),
                }
                for attachment in attachments
            ]

        try:
            async with httpx.AsyncClient(timeout=settings.mail_timeout_seconds) as client:
                response = await client.post(
                    self.RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {self.resend_api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error("Email send error", to=to, error=str(e))
            return False

        if response.is_success:
            logger.info("Email sent", to=to, subject=subject)
            return True

        logger.error(
            "Email send failed",
            to=to,
            status=response.status_code,
            response=response.text,
        )
        return False

    def format_order_confirmation_email(
        self,
        *,
        order_number: str,
        customer_name: str,
        lines: list[ConfirmationLine],
        subtotal: Any,
        tax_amount: Any,
        discount_amount: Any,
        total_amount: Any,
    ) -> tuple[str, str]:
        """
        Format an order confirmation.

        Returns:
            Tuple of (html_content, text_content)
        """
        rows_html = []
        rows_text = []
        for line in lines:
            if line.download_url:
                link_html = (
                    f'<a href="{line.download_url}" '
                    f'style="color: #2563eb;">Download</a>'
                )
                link_text = f"Download: {line.download_url}"
            else:
                link_html = f'<a href="{line.order_url}" style="color: #6b7280;">View order</a>'
                link_text = f"View order: {line.order_url}"

            rows_html.append(f"""
                <tr>
                    <td style="padding: 8px 0;">{html.escape(line.product_name)}</td>
                    <td style="padding: 8px 0; text-align: center;">{line.quantity}</td>
                    <td style="padding: 8px 0; text-align: right;">{format_peso(line.subtotal)}</td>
                    <td style="padding: 8px 0; text-align: right;">{link_html}</td>
                </tr>""")
            rows_text.append(
                f"- {line.product_name} x{line.quantity} "
                f"@ {format_peso(line.unit_price)} = {format_peso(line.subtotal)}\n"
                f"  {link_text}"
            )

        totals_html = [f"<div>Subtotal: {format_peso(subtotal)}</div>"]
        totals_text = [f"Subtotal: {format_peso(subtotal)}"]
        if Decimal(str(tax_amount or 0)) > 0:
            totals_html.append(f"<div>Tax: {format_peso(tax_amount)}</div>")
            totals_text.append(f"Tax: {format_peso(tax_amount)}")
        if Decimal(str(discount_amount or 0)) > 0:
            totals_html.append(f"<div>Discount: -{format_peso(discount_amount)}</div>")
            totals_text.append(f"Discount: -{format_peso(discount_amount)}")

        order_url = f"{settings.frontend_url}/order/{order_number}"
        items_html = "".join(rows_html)
        summary_html = "".join(totals_html)
        items_text = "\n".join(rows_text)
        summary_text = "\n".join(totals_text)

        html_content = f"""
<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: system-ui, sans-serif; line-height: 1.5; color: #1f2937; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background: #16a34a; color: white; padding: 30px; border-radius: 12px 12px 0 0; }}
        .content {{ background: #f9fafb; padding: 30px; border-radius: 0 0 12px 12px; }}
        .totals {{ margin-top: 20px; text-align: right; }}
        .total {{ font-size: 20px; font-weight: bold; }}
        .footer {{ text-align: center; padding: 20px; color: #6b7280; font-size: 12px; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1 style="margin: 0;">Thank you for your order!</h1>
            <p style="margin: 10px 0 0;">Order {order_number}</p>
        </div>
        <div class="content">
            <p>Hi {html.escape(customer_name)},</p>
            <p>Your payment was received. Your files are ready to download.</p>
            <table style="width: 100%; border-collapse: collapse;">
                <tr>
                    <th style="text-align: left;">Product</th>
                    <th>Qty</th>
                    <th style="text-align: right;">Subtotal</th>
                    <th></th>
                </tr>{items_html}
            </table>
            <div class="totals">
                {summary_html}
                <div class="total">Total: {format_peso(total_amount)}</div>
            </div>
            <a href="{order_url}"
               style="display: inline-block; margin-top: 20px; padding: 12px 24px; background: #16a34a; color: white; text-decoration: none; border-radius: 6px;">
                View Order
            </a>
        </div>
        <div class="footer">
            <p>A CSV summary of this order is attached.</p>
        </div>
    </div>
</body>
</html>
"""

        text = f"""
Thank you for your order!

Order {order_number}

Hi {customer_name},

Your payment was received. Your files are ready to download.

{items_text}

{summary_text}
TOTAL: {format_peso(total_amount)}

View your order: {order_url}
"""

        return html_content, text


# Singleton instance
notification_service = NotificationService()
