"""SMTP delivery for account notifications.

Sends plain-text mail through an SMTP relay with aiosmtplib. Delivery failures
surface as UpstreamError; the form handlers log them and carry on, since the
account change they report has already been stored.
"""

from __future__ import annotations

from email.message import EmailMessage
from typing import NoReturn
from uuid import uuid4

import aiosmtplib

from services.libs.login_service_libs.error_handling import raise_upstream_error
from services.libs.login_service_libs.logging_utils import create_service_logger

from services.custom_login_service.config import Settings
from services.custom_login_service.protocols import NotificationSenderProtocol

logger = create_service_logger("custom_login_service.notifications_smtp")

NOTIFICATION_DELIVERY_FAILED = "notification_delivery_failed"


class SmtpNotificationSender(NotificationSenderProtocol):
    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _build_message(self, recipient: str, subject: str, body: str) -> EmailMessage:
        sender = f"{self._settings.NOTIFICATION_FROM_NAME} <{self._settings.NOTIFICATION_FROM_EMAIL}>"
        msg = EmailMessage()
        msg["From"] = sender
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content(body, charset="utf-8")
        return msg

    def _failed(self, recipient: str, reason: str) -> NoReturn:
        logger.error(
            f"SMTP delivery failed: {reason}",
            extra={"recipient": recipient, "smtp_host": self._settings.SMTP_HOST},
        )
        raise_upstream_error(
            service=self._settings.SERVICE_NAME,
            operation="send_notification",
            code=NOTIFICATION_DELIVERY_FAILED,
            message=f"Mail delivery failed: {reason}",
            correlation_id=uuid4(),
            external_service="smtp",
            recipient=recipient,
        )

    async def send(self, recipient: str, subject: str, body: str) -> None:
        msg = self._build_message(recipient, subject, body)
        try:
            async with aiosmtplib.SMTP(
                hostname=self._settings.SMTP_HOST,
                port=self._settings.SMTP_PORT,
                start_tls=self._settings.SMTP_USE_TLS,
                timeout=self._settings.SMTP_TIMEOUT,
            ) as smtp:
                # Relays on a private network may accept unauthenticated mail
                if self._settings.SMTP_USERNAME and self._settings.SMTP_PASSWORD:
                    await smtp.login(
                        self._settings.SMTP_USERNAME,
                        self._settings.SMTP_PASSWORD.get_secret_value(),
                    )
                refused, _ = await smtp.send_message(msg)
        except aiosmtplib.SMTPAuthenticationError as e:
            self._failed(recipient, f"authentication rejected ({e})")
        except aiosmtplib.SMTPException as e:
            self._failed(recipient, str(e))
        except OSError as e:
            self._failed(recipient, f"connection error ({e})")

        if refused:
            details = "; ".join(f"{addr}: {error}" for addr, error in refused.items())
            self._failed(recipient, f"recipient refused ({details})")

        logger.info(
            "Notification sent via SMTP",
            extra={
                "recipient": recipient,
                "subject": subject,
                "smtp_host": self._settings.SMTP_HOST,
            },
        )
