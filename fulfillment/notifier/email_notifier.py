"""
Email Notification Service

Delivers the "message" channel over SMTP.
"""

from __future__ import annotations

import html
import logging
import os
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from dotenv import load_dotenv

from fulfillment.shared import ChannelDeliveryError

from .base_notifier import BaseNotifier

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()


class EmailNotifier(BaseNotifier):
    """
    Email notification service using SMTP.

    Sends a plain-text body with an HTML alternative rendered from it.
    """

    channel = "message"

    def __init__(
        self,
        smtp_host: str | None = None,
        smtp_port: int | None = None,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_use_tls: bool = True,
        from_email: str | None = None,
        timeout: float = 10.0,
    ):
        """
        Initialize email notifier.

        Args:
            smtp_host: SMTP server hostname. If None, reads from SMTP_HOST env var.
            smtp_port: SMTP server port. If None, reads from SMTP_PORT env var (default: 587).
            smtp_user: SMTP username. If None, reads from SMTP_USER env var.
            smtp_password: SMTP password. If None, reads from SMTP_PASSWORD env var.
            smtp_use_tls: Whether to use TLS (default: True)
            from_email: From address. If None, reads SMTP_FROM_EMAIL, then smtp_user,
                then 'noreply@fulfillment.local'
            timeout: Socket timeout for the SMTP session in seconds
        """
        self.smtp_host = smtp_host or os.getenv("SMTP_HOST")
        self.smtp_port = smtp_port or int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = smtp_user or os.getenv("SMTP_USER")
        self.smtp_password = smtp_password or os.getenv("SMTP_PASSWORD")
        self.smtp_use_tls = smtp_use_tls
        self.from_email = (
            from_email
            or os.getenv("SMTP_FROM_EMAIL")
            or self.smtp_user
            or "noreply@fulfillment.local"
        )
        self.timeout = timeout

        if not self.smtp_host:
            logger.warning("SMTP_HOST not configured - email notifications will be disabled")

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host)

    def format_html(self, subject: str, content: str) -> str:
        """
        Render a plain-text body as a simple styled HTML email.

        Blank lines separate paragraphs; the text is escaped.
        """
        paragraphs = [block.strip() for block in content.split("\n\n") if block.strip()]
        body = "".join(
            f'<p style="margin: 0 0 16px 0;">{html.escape(block).replace(chr(10), "<br>")}</p>'
            for block in paragraphs
        )
        return f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 640px; margin: 0 auto; padding: 20px;">
                <h1 style="color: #007bff; font-size: 1.4em;">{html.escape(subject)}</h1>
                {body}
                <p style="margin-top: 30px; color: #666; font-size: 0.9em;">
                    This is an automated notification about your service request.
                </p>
            </div>
        </body>
        </html>
        """

    def send_notification(self, recipient: str, subject: str, content: str, **kwargs) -> bool:
        """
        Send an email notification.

        Args:
            recipient: Email address of recipient
            subject: Email subject
            content: Plain-text body
            **kwargs: Additional parameters (unused for email)

        Returns:
            True if email was sent successfully

        Raises:
            ChannelDeliveryError: If SMTP is not configured or delivery failed
        """
        if not self.smtp_host:
            raise ChannelDeliveryError(self.channel, "SMTP not configured")

        if not recipient:
            raise ChannelDeliveryError(self.channel, "No recipient email address provided")

        msg = MIMEMultipart("alternative")
        msg["From"] = self.from_email
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.attach(MIMEText(content, "plain"))
        msg.attach(MIMEText(self.format_html(subject, content), "html"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                if self.smtp_use_tls:
                    server.starttls()

                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)

                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {recipient}: {e}", exc_info=True)
            raise ChannelDeliveryError(self.channel, f"SMTP delivery failed: {e}") from e

        logger.info(f"Email sent successfully to {recipient}")
        return True
