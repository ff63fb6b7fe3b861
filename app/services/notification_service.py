"""Notification Service for booking lifecycle emails.

Emails go out through SendGrid. Sending is best effort: a missing API key
or a failed delivery is logged and reported as ``False``, never raised into
the booking flow.
"""

import logging
from datetime import UTC, datetime
from typing import Any

import httpx

from app.config import settings
from app.domain.records import BookingRecord, Receipt
from app.utils.booking_number import short_reference

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for sending booking notifications to tenants."""

    # Notification types
    BOOKING_REQUESTED = "booking_requested"
    PAYMENT_RECEIVED = "payment_received"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_REJECTED = "booking_rejected"
    BOOKING_RESET = "booking_reset"

    SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    # ==================== EMAIL (SENDGRID) ====================

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
    ) -> bool:
        """Send an email via SendGrid.

        Args:
            to_email: Recipient email
            subject: Email subject
            html_content: HTML body
            text_content: Plain text body

        Returns:
            bool: True if sent successfully
        """
        if not settings.sendgrid_api_key:
            logger.debug("SendGrid not configured; skipping email to %s", to_email)
            return False

        headers = {
            "Authorization": f"Bearer {settings.sendgrid_api_key}",
            "Content-Type": "application/json",
        }
        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {
                "email": settings.email_from_address,
                "name": settings.email_from_name,
            },
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}],
        }
        if text_content:
            payload["content"].insert(0, {"type": "text/plain", "value": text_content})

        try:
            response = await self.http_client.post(self.SENDGRID_URL, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.warning("Email to %s failed: %s", to_email, e)
            return False

        if response.status_code not in (200, 202):
            logger.warning("SendGrid rejected email to %s (HTTP %s)", to_email, response.status_code)
            return False
        return True

    def _generate_email_html(self, title: str, body: str) -> str:
        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
                     max-width: 600px; margin: 0 auto; padding: 20px; color: #333;">
            <div style="background-color: #f9fafb; border-radius: 8px; padding: 24px;">
                <h1 style="color: #111827; font-size: 24px; margin-bottom: 16px;">{title}</h1>
                <p style="color: #4b5563; font-size: 16px; line-height: 1.6;">{body}</p>
            </div>
            <p style="color: #9ca3af; font-size: 12px; margin-top: 24px; text-align: center;">
                &copy; {datetime.now(UTC).year} {settings.app_name}. All rights reserved.
            </p>
        </body>
        </html>
        """

    async def notify_tenant(self, booking: BookingRecord, notification_type: str, title: str, body: str) -> bool:
        """Email the booking's requester."""
        if not booking.requester_email:
            return False
        sent = await self.send_email(
            to_email=booking.requester_email,
            subject=title,
            html_content=self._generate_email_html(title, body),
            text_content=body,
        )
        logger.info(
            "Notification %s for booking %s %s",
            notification_type, booking.id, "sent" if sent else "not sent",
        )
        return sent

    # ==================== SPECIFIC NOTIFICATION HELPERS ====================

    async def notify_booking_requested(self, booking: BookingRecord) -> bool:
        ref = short_reference(booking.id)
        return await self.notify_tenant(
            booking,
            self.BOOKING_REQUESTED,
            title="Booking request received",
            body=(
                f"Your request for {booking.listing_name} (ref {ref}) has been received. "
                f"Pay the booking fee of {settings.currency} {booking.booking_fee:,.2f} to "
                f"paybill {settings.mpesa_shortcode}, account {booking.id}, to send it for review."
            ),
        )

    async def notify_payment_received(self, booking: BookingRecord, receipt: Receipt) -> bool:
        return await self.notify_tenant(
            booking,
            self.PAYMENT_RECEIVED,
            title="Payment received",
            body=(
                f"We received {settings.currency} {receipt.amount:,.2f} for {booking.listing_name}. "
                f"Receipt {receipt.receipt_number}. Your booking is now awaiting admin confirmation."
            ),
        )

    async def notify_booking_confirmed(self, booking: BookingRecord) -> bool:
        return await self.notify_tenant(
            booking,
            self.BOOKING_CONFIRMED,
            title="Booking confirmed!",
            body=(
                f"Your booking at {booking.listing_name}, {booking.listing_address} is confirmed "
                f"for move-in on {booking.move_in_date:%d %b %Y}. "
                f"Contact {booking.agent_name} on {booking.agent_phone} to arrange your move."
            ),
        )

    async def notify_booking_rejected(self, booking: BookingRecord) -> bool:
        return await self.notify_tenant(
            booking,
            self.BOOKING_REJECTED,
            title="Booking not approved",
            body=(
                f"Your booking request for {booking.listing_name} was not approved. "
                "You can now request another listing."
            ),
        )

    async def notify_booking_reset(self, booking: BookingRecord) -> bool:
        return await self.notify_tenant(
            booking,
            self.BOOKING_RESET,
            title="Booking back under review",
            body=f"Your booking for {booking.listing_name} is being reviewed again.",
        )


# Singleton instance
notification_service = NotificationService()
