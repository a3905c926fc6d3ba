"""ReminderPolicy — when a reminder is due and when it escalates."""

from __future__ import annotations

from datetime import datetime

from ackflow.domain.entities.assignment import Assignment
from ackflow.domain.policies.status_resolver import status_of
from ackflow.domain.value_objects.enums import AssignmentStatus
from ackflow.domain.value_objects.escalation_policy import EscalationPolicy
from ackflow.domain.value_objects.timeutil import ensure_utc

REMINDABLE_STATUSES = frozenset({AssignmentStatus.PENDING, AssignmentStatus.OVERDUE})


def is_remindable(
    assignment: Assignment, now: datetime, policy: EscalationPolicy
) -> bool:
    """Pending or overdue, and not replaced by a reassignment."""
    if assignment.is_superseded():
        return False
    return status_of(assignment, now, policy) in REMINDABLE_STATUSES


def reminder_due(
    assignment: Assignment, now: datetime, policy: EscalationPolicy
) -> bool:
    """True when the cadence interval has elapsed since the last reminder.

    The anchor is ``last_reminder_at`` or, before the first reminder,
    ``created_at``. Cadence ``none`` disables scheduled reminders.
    """
    interval = policy.reminder_cadence.interval
    if interval is None:
        return False
    if not is_remindable(assignment, now, policy):
        return False
    elapsed = ensure_utc(now) - ensure_utc(assignment.reminder_anchor())
    return elapsed >= interval


def needs_escalation(reminders_sent: int, policy: EscalationPolicy) -> bool:
    return reminders_sent > policy.escalation_threshold


def backoff_delays(max_attempts: int, base_seconds: float) -> list[float]:
    """Delays slept between attempts: base, 2·base, 4·base, ...

    ``max_attempts`` attempts need ``max_attempts - 1`` waits.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    return [base_seconds * (2 ** n) for n in range(max_attempts - 1)]
