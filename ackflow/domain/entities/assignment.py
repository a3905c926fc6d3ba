"""Assignment entity — the obligation linking one user to one document version."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ackflow.domain.errors import StateTransitionError
from ackflow.domain.value_objects.enums import Priority


@dataclass
class Assignment:
    id: int | None
    organization_id: str
    document_id: str
    document_version: str
    user_id: str
    department: str | None
    due_date: datetime
    priority: Priority
    created_at: datetime
    created_by: str | None = None
    acknowledged_at: datetime | None = None
    declined_at: datetime | None = None
    decline_reason: str | None = None
    reminders_sent: int = 0
    last_reminder_at: datetime | None = None
    review_date: datetime | None = None
    superseded_by_id: int | None = None
    superseded_at: datetime | None = None
    version: int = 1

    def has_terminal_fact(self) -> bool:
        return self.acknowledged_at is not None or self.declined_at is not None

    def is_superseded(self) -> bool:
        return self.superseded_by_id is not None

    def is_open(self) -> bool:
        """Not acknowledged, not declined and not replaced by a reassignment."""
        return not self.has_terminal_fact() and not self.is_superseded()

    def reminder_anchor(self) -> datetime:
        return self.last_reminder_at or self.created_at

    def mark_acknowledged(self, at: datetime) -> None:
        if self.declined_at is not None:
            raise StateTransitionError(
                f"Assignment {self.id} was declined and cannot be acknowledged",
                assignment_id=self.id,
            )
        if self.acknowledged_at is not None:
            raise StateTransitionError(
                f"Assignment {self.id} is already acknowledged",
                assignment_id=self.id,
            )
        self.acknowledged_at = at

    def mark_declined(self, at: datetime, reason: str) -> None:
        if self.acknowledged_at is not None:
            raise StateTransitionError(
                f"Assignment {self.id} was acknowledged and cannot be declined",
                assignment_id=self.id,
            )
        if self.declined_at is not None:
            raise StateTransitionError(
                f"Assignment {self.id} is already declined",
                assignment_id=self.id,
            )
        self.declined_at = at
        self.decline_reason = reason

    def record_reminder(self, at: datetime) -> None:
        self.reminders_sent += 1
        self.last_reminder_at = at

    def is_superseded_at(self, as_of: datetime) -> bool:
        """Whether the reassignment had already happened at ``as_of``.

        Rows superseded before the timestamp was tracked count as superseded
        at every instant.
        """
        if self.superseded_by_id is None:
            return False
        return self.superseded_at is None or self.superseded_at <= as_of

    def supersede(self, new_assignment_id: int, at: datetime) -> None:
        if self.superseded_by_id is not None:
            raise StateTransitionError(
                f"Assignment {self.id} was already reassigned "
                f"to {self.superseded_by_id}",
                assignment_id=self.id,
            )
        self.superseded_by_id = new_assignment_id
        self.superseded_at = at
