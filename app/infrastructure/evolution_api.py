"""Evolution API HTTP client: WhatsApp delivery for OTP and booking messages."""

import asyncio
import re

import httpx
import structlog

from app.config import Settings

logger = structlog.get_logger(__name__)

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class NotificationDeliveryError(Exception):
    """Raised when a message could not be delivered after all retries."""


class EvolutionAPIClient:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.send_url = f"{settings.EVOLUTION_API_URL.rstrip('/')}/message/sendText/{settings.EVOLUTION_INSTANCE}"
        self.headers = {"apikey": settings.EVOLUTION_API_KEY, "Content-Type": "application/json"}
        self.max_retries = 3
        self.retry_delay = 2  # seconds
        self._transport = transport

    @staticmethod
    def normalize_phone(phone: str) -> str:
        """Keep digits only; the API expects the international number without '+'."""
        return re.sub(r"\D", "", phone)

    async def send_text(self, phone: str, message: str) -> dict:
        """
        Send a text message.

        Connection errors and 429/5xx responses are retried with a linear
        backoff. Any other 4xx means the request itself is wrong and fails
        on the spot.
        """
        number = self.normalize_phone(phone)
        payload = {
            "number": number,
            "textMessage": {"text": message},
            "options": {"delay": 1200, "presence": "composing"},
        }

        last_error: Exception | None = None
        async with httpx.AsyncClient(timeout=30, transport=self._transport) as client:
            for attempt in range(1, self.max_retries + 1):
                try:
                    response = await client.post(self.send_url, json=payload, headers=self.headers)
                    response.raise_for_status()
                except httpx.HTTPStatusError as e:
                    last_error = e
                    status = e.response.status_code
                    logger.warning(
                        "Evolution API rejected message",
                        number=number,
                        attempt=attempt,
                        status_code=status,
                        body=e.response.text[:200],
                    )
                    if status not in RETRYABLE_STATUS:
                        break
                except httpx.HTTPError as e:
                    last_error = e
                    logger.warning("Evolution API unreachable", number=number, attempt=attempt, error=str(e))
                else:
                    logger.info("WhatsApp message sent", number=number, attempt=attempt)
                    return response.json()

                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay * attempt)

        raise NotificationDeliveryError(f"WhatsApp delivery to {number} failed: {last_error}")
