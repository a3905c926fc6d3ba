"""Domain enums — pure Python, no external dependencies."""

from datetime import timedelta
from enum import Enum


class AssignmentStatus(str, Enum):
    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    DECLINED = "declined"
    OVERDUE = "overdue"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in (
            AssignmentStatus.ACKNOWLEDGED,
            AssignmentStatus.DECLINED,
            AssignmentStatus.EXPIRED,
        )


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DocumentType(str, Enum):
    SOP = "SOP"
    POLICY = "Policy"
    PROCEDURE = "Procedure"
    GUIDELINE = "Guideline"


class ReminderCadence(str, Enum):
    NONE = "none"
    DAILY = "daily"
    EVERY_3_DAYS = "every_3_days"
    WEEKLY = "weekly"

    @property
    def interval(self) -> timedelta | None:
        return _CADENCE_INTERVALS[self]


_CADENCE_INTERVALS: dict[ReminderCadence, timedelta | None] = {
    ReminderCadence.NONE: None,
    ReminderCadence.DAILY: timedelta(days=1),
    ReminderCadence.EVERY_3_DAYS: timedelta(days=3),
    ReminderCadence.WEEKLY: timedelta(days=7),
}


class AuditEventType(str, Enum):
    CREATED = "created"
    REMINDED = "reminded"
    ACKNOWLEDGED = "acknowledged"
    DECLINED = "declined"
    ESCALATED = "escalated"
    EXPIRED = "expired"
    REMINDER_FAILED = "reminder_failed"


class AuditCategory(str, Enum):
    ASSIGNMENT = "assignment"
    REMINDER = "reminder"
    ADMIN = "admin"


class AuditSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    FAILED = "failed"


class GroupBy(str, Enum):
    DEPARTMENT = "department"
    DOCUMENT = "document"
    USER = "user"
    MONTH = "month"


class NotificationTemplate(str, Enum):
    ASSIGNMENT_CREATED = "assignment_created"
    REMINDER = "acknowledgment_reminder"
    ESCALATION = "acknowledgment_escalation"
    ACKNOWLEDGMENT_COMPLETED = "acknowledgment_completed"
    ACKNOWLEDGMENT_DECLINED = "acknowledgment_declined"
