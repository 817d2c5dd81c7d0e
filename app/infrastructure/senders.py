"""Notification senders: one per delivery channel."""

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol

import structlog

from app.config import Settings
from app.infrastructure.evolution_api import EvolutionAPIClient, NotificationDeliveryError

logger = structlog.get_logger(__name__)

EMAIL_CHANNEL = "email"
WHATSAPP_CHANNEL = "whatsapp"


class NotificationSender(Protocol):
    async def send(self, destination: str, message: str, subject: Optional[str] = None) -> None:
        """Deliver a message; raise on failure."""
        ...


class SMTPEmailSender:
    """Plain SMTP delivery; the blocking client runs in a worker thread."""

    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.sender = settings.SMTP_FROM
        self.use_tls = settings.SMTP_USE_TLS

    def _send_sync(self, destination: str, message: str, subject: Optional[str]) -> None:
        email = EmailMessage()
        email["From"] = self.sender
        email["To"] = destination
        email["Subject"] = subject or "Travel Booking"
        email.set_content(message)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.user:
                    smtp.login(self.user, self.password)
                smtp.send_message(email)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationDeliveryError(f"SMTP delivery to {destination} failed: {e}") from e

    async def send(self, destination: str, message: str, subject: Optional[str] = None) -> None:
        await asyncio.to_thread(self._send_sync, destination, message, subject)
        logger.info("Email sent", destination=destination, subject=subject)


class ConsoleEmailSender:
    """Development sender: writes the message to the log instead of sending it."""

    async def send(self, destination: str, message: str, subject: Optional[str] = None) -> None:
        logger.info("Console email", destination=destination, subject=subject, body=message)


class WhatsAppSender:
    def __init__(self, settings: Settings):
        self.client = EvolutionAPIClient(settings)

    async def send(self, destination: str, message: str, subject: Optional[str] = None) -> None:
        text = f"*{subject}*\n\n{message}" if subject else message
        await self.client.send_text(destination, text)


def build_sender(channel: str, settings: Settings) -> NotificationSender:
    if channel == WHATSAPP_CHANNEL:
        return WhatsAppSender(settings)
    if channel == EMAIL_CHANNEL:
        if settings.EMAIL_BACKEND == "smtp":
            return SMTPEmailSender(settings)
        return ConsoleEmailSender()
    raise ValueError(f"Unknown notification channel: {channel}")
