"""Port interface for outbound notifications."""

from abc import ABC, abstractmethod

from ackflow.domain.value_objects.enums import DeliveryOutcome, NotificationTemplate


class NotificationPort(ABC):
    @abstractmethod
    async def send(
        self, user_id: str, template: NotificationTemplate, payload: dict
    ) -> DeliveryOutcome:
        """Deliver one message.

        Returns FAILED (or raises DeliveryError) when the channel is
        unreachable; callers own the retry policy.
        """
        ...
