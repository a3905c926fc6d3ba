"""Logging notification adapter — used when no webhook is configured."""

import logging

from ackflow.application.ports.notification_port import NotificationPort
from ackflow.domain.value_objects.enums import DeliveryOutcome, NotificationTemplate

logger = logging.getLogger(__name__)


class LoggingNotificationAdapter(NotificationPort):
    async def send(
        self, user_id: str, template: NotificationTemplate, payload: dict
    ) -> DeliveryOutcome:
        logger.info("Notify %s [%s]: %s", user_id, template.value, payload)
        return DeliveryOutcome.DELIVERED
