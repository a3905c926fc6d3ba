"""Port interface for the append-only audit log."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ackflow.domain.entities.audit_event import AuditEvent
from ackflow.domain.value_objects.enums import AuditEventType


class AuditRepository(ABC):
    @abstractmethod
    async def append(self, event: AuditEvent) -> AuditEvent:
        """Link ``event`` to its organization's hash chain and persist it.

        Must hold the chain head for the organization while linking so that
        concurrent appenders cannot fork the chain.
        """
        ...

    @abstractmethod
    async def get_for_organization(self, organization_id: str) -> list[AuditEvent]:
        """Events of one organization in append order."""
        ...

    @abstractmethod
    async def has_event(self, assignment_id: int, event_type: AuditEventType) -> bool:
        ...

    @abstractmethod
    async def count_for_assignment(
        self, assignment_id: int, event_type: AuditEventType | None = None
    ) -> int:
        ...
