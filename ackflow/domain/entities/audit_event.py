"""AuditEvent entity — one append-only record of a transition or admin action."""

from dataclasses import dataclass, field
from datetime import datetime

from ackflow.domain.value_objects.enums import (
    AuditCategory,
    AuditEventType,
    AuditSeverity,
)

SYSTEM_ACTOR = "system"


@dataclass
class AuditEvent:
    id: int | None
    organization_id: str
    assignment_id: int | None
    event_type: AuditEventType
    actor_id: str
    timestamp: datetime
    payload: dict = field(default_factory=dict)
    category: AuditCategory = AuditCategory.ASSIGNMENT
    severity: AuditSeverity = AuditSeverity.INFO
    prev_hash: str = ""
    hash: str = ""

    def sort_key(self) -> tuple:
        return (self.timestamp, self.id or 0)
