"""Webhook notification adapter — implements NotificationPort over HTTP."""

from __future__ import annotations

import logging

import httpx

from ackflow.application.ports.notification_port import NotificationPort
from ackflow.config import settings
from ackflow.domain.value_objects.enums import DeliveryOutcome, NotificationTemplate

logger = logging.getLogger(__name__)


class WebhookNotificationAdapter(NotificationPort):
    """POSTs each message as JSON to a single webhook endpoint.

    Any 2xx response counts as delivered. Transport errors and non-2xx
    responses are reported as FAILED; the caller decides whether to retry.
    """

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._url = url or settings.notification_webhook_url
        self._timeout = timeout if timeout is not None else settings.notification_timeout_seconds
        self._client = client

    async def send(
        self, user_id: str, template: NotificationTemplate, payload: dict
    ) -> DeliveryOutcome:
        if not self._url:
            logger.warning("Notification webhook URL is not set. Skipping delivery.")
            return DeliveryOutcome.FAILED

        body = {"user_id": user_id, "template": template.value, "payload": payload}
        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=body, timeout=self._timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(self._url, json=body, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Webhook rejected %s for %s: HTTP %d",
                template.value, user_id, e.response.status_code,
            )
            return DeliveryOutcome.FAILED
        except httpx.HTTPError:
            logger.exception("Webhook delivery error for %s (%s)", user_id, template.value)
            return DeliveryOutcome.FAILED

        logger.info("Delivered %s to %s", template.value, user_id)
        return DeliveryOutcome.DELIVERED
