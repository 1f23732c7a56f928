"""Alert delivery to the external notification collaborator."""

import asyncio
import logging
from typing import List, Optional, Protocol, Sequence

import httpx

from autolend.config import settings
from autolend.services.rule_engine.base import AlertEvent

logger = logging.getLogger(__name__)


class AlertPublisher(Protocol):
    """Pushes alert events out of the engine."""

    async def publish(self, events: Sequence[AlertEvent]) -> None:
        ...


class LoggingAlertPublisher:
    """Default publisher: one structured log line per event."""

    async def publish(self, events: Sequence[AlertEvent]) -> None:
        for event in events:
            logger.info(
                event.title,
                extra={
                    "step": "alert_published",
                    "lender_id": str(event.lender_id),
                    "alert_type": event.type.value,
                    "priority": event.priority.value,
                    "related_entity": event.related_entity,
                    "channels": [c.value for c in event.channels],
                },
            )


class WebhookAlertPublisher:
    """
    Client for posting alert events to a notification webhook.

    Retry strategy:
    - Exponential backoff: base, 2x base, 4x base...
    - Retries on 5xx responses and network failures; 4xx is final
    - Failures are logged, never raised, so delivery cannot change a decision
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        max_retries: Optional[int] = None,
        timeout: Optional[float] = None,
        backoff_base: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url or settings.ALERT_WEBHOOK_URL
        self.max_retries = (
            settings.ALERT_WEBHOOK_MAX_RETRIES if max_retries is None else max_retries
        )
        self.timeout = settings.ALERT_WEBHOOK_TIMEOUT_SECONDS if timeout is None else timeout
        self.backoff_base = backoff_base
        self._transport = transport

    async def publish(self, events: Sequence[AlertEvent]) -> None:
        if not events:
            return
        if not self.webhook_url:
            logger.warning("Alert webhook URL not configured; dropping %d alerts", len(events))
            return

        failed: List[AlertEvent] = []
        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
            for event in events:
                if not await self._send(client, event):
                    failed.append(event)

        if failed:
            logger.error(
                "Alert delivery failed",
                extra={"failed": len(failed), "webhook_url": self.webhook_url},
            )

    async def _send(self, client: httpx.AsyncClient, event: AlertEvent) -> bool:
        # Every event is posted at least once
        attempts = max(self.max_retries, 1)
        attempt = 0
        while attempt < attempts:
            try:
                response = await client.post(self.webhook_url, json=event.to_payload())
                response.raise_for_status()
                return True
            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500:
                    logger.warning(
                        "Alert webhook rejected event",
                        extra={"status_code": e.response.status_code, "title": event.title},
                    )
                    return False
            except httpx.RequestError as e:
                logger.warning("Alert webhook request error: %s", e)

            attempt += 1
            if attempt < attempts:
                await asyncio.sleep(self.backoff_base * (2 ** (attempt - 1)))
        return False


def build_publisher() -> AlertPublisher:
    """Webhook publisher when a URL is configured, logging otherwise."""
    if settings.ALERT_WEBHOOK_URL:
        return WebhookAlertPublisher()
    return LoggingAlertPublisher()
