"""ComplianceSnapshot — ephemeral roll-up of assignment statuses for a scope."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ackflow.domain.value_objects.enums import AssignmentStatus


@dataclass
class ComplianceSnapshot:
    scope: dict
    computed_at: datetime
    total_assigned: int = 0
    acknowledged: int = 0
    pending: int = 0
    overdue: int = 0
    expired: int = 0
    declined: int = 0
    percentages: dict[str, float] = field(default_factory=dict)
    group_key: str | None = None
    as_of: datetime | None = None
    partial: bool = False
    missing_documents: list[str] = field(default_factory=list)

    @property
    def compliance_rate(self) -> float:
        return self.percentages.get(AssignmentStatus.ACKNOWLEDGED.value, 0.0)

    def count_for(self, status: AssignmentStatus) -> int:
        return getattr(self, status.value)

    def to_dict(self) -> dict:
        return {
            "scope": self.scope,
            "group_key": self.group_key,
            "total_assigned": self.total_assigned,
            "acknowledged": self.acknowledged,
            "pending": self.pending,
            "overdue": self.overdue,
            "expired": self.expired,
            "declined": self.declined,
            "percentages": dict(self.percentages),
            "compliance_rate": self.compliance_rate,
            "computed_at": self.computed_at.isoformat(),
            "as_of": self.as_of.isoformat() if self.as_of else None,
            "partial": self.partial,
            "missing_documents": list(self.missing_documents),
        }
