from __future__ import annotations

from services.libs.login_service_libs.logging_utils import create_service_logger

from services.custom_login_service.protocols import NotificationSenderProtocol

logger = create_service_logger("custom_login_service.notifications")


class LoggingNotificationSender(NotificationSenderProtocol):
    """Writes outgoing notifications to the service log instead of a mail server.

    The body is not logged; it may carry a generated password or a reset key.
    """

    async def send(self, recipient: str, subject: str, body: str) -> None:
        logger.info(
            "Notification queued",
            extra={"recipient": recipient, "subject": subject, "body_length": len(body)},
        )
