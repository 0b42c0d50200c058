"""Delivery channels handing a due reminder to the recipient."""

from typing import Protocol

import httpx

from remindme.common.config import CommonSettings
from remindme.common.errors import DeliveryError
from remindme.common.logging import logger


class DeliveryChannel(Protocol):
    async def deliver(self, recipient: str, text: str) -> None:
        """Send `text` to `recipient`, raising `DeliveryError` on failure."""


class WebhookDeliveryChannel:
    """POST each reminder to a webhook that owns the real transport."""

    def __init__(self, url: str, timeout_seconds: float = 5.0, client: httpx.AsyncClient | None = None) -> None:
        self.url = url
        self.client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def deliver(self, recipient: str, text: str) -> None:
        try:
            resp = await self.client.post(self.url, json={"recipient": recipient, "text": text})
        except httpx.HTTPError as exc:
            raise DeliveryError(f"webhook request failed: {exc}") from exc
        if resp.status_code >= 400:
            raise DeliveryError(f"webhook rejected reminder (status={resp.status_code})")

    async def aclose(self) -> None:
        await self.client.aclose()


class LoggingDeliveryChannel:
    """Development channel that only logs what would have been sent."""

    async def deliver(self, recipient: str, text: str) -> None:
        logger.info("reminder_delivery_logged recipient=%s text=%s", recipient, text)

    async def aclose(self) -> None:
        return None


def build_delivery_channel(settings: CommonSettings) -> WebhookDeliveryChannel | LoggingDeliveryChannel:
    if settings.delivery_webhook_url:
        return WebhookDeliveryChannel(settings.delivery_webhook_url, settings.delivery_timeout_seconds)
    logger.warning("delivery_webhook_url unset; reminders will only be logged")
    return LoggingDeliveryChannel()
