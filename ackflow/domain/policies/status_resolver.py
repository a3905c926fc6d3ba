"""StatusResolver — derive an assignment's lifecycle state from stored facts.

Status is never persisted. It is recomputed from immutable facts and the
current instant on every read, so policy changes reinterpret history
consistently without migrations.
"""

from __future__ import annotations

from datetime import datetime

from ackflow.domain.entities.assignment import Assignment
from ackflow.domain.value_objects.enums import AssignmentStatus
from ackflow.domain.value_objects.escalation_policy import EscalationPolicy
from ackflow.domain.value_objects.timeutil import ensure_utc


def resolve_status(
    now: datetime,
    due_date: datetime,
    acknowledged_at: datetime | None,
    declined_at: datetime | None,
    policy: EscalationPolicy,
) -> AssignmentStatus:
    """Apply the lifecycle rules in order.

    1. acknowledged_at set → ACKNOWLEDGED (overrides lateness)
    2. declined_at set → DECLINED
    3. auto-expire on and now > due_date + grace_period → EXPIRED
    4. now > due_date → OVERDUE (strict: exactly at due_date is still pending)
    5. otherwise → PENDING
    """
    if acknowledged_at is not None:
        return AssignmentStatus.ACKNOWLEDGED
    if declined_at is not None:
        return AssignmentStatus.DECLINED

    now = ensure_utc(now)
    due_date = ensure_utc(due_date)

    if policy.auto_expire_enabled and now > due_date + policy.grace_period:
        return AssignmentStatus.EXPIRED
    if now > due_date:
        return AssignmentStatus.OVERDUE
    return AssignmentStatus.PENDING


def status_of(
    assignment: Assignment, now: datetime, policy: EscalationPolicy
) -> AssignmentStatus:
    return resolve_status(
        now,
        assignment.due_date,
        assignment.acknowledged_at,
        assignment.declined_at,
        policy,
    )


def status_as_of(
    assignment: Assignment, as_of: datetime, policy: EscalationPolicy
) -> AssignmentStatus:
    """Status as it stood at ``as_of``; facts recorded later are ignored."""
    as_of = ensure_utc(as_of)
    acknowledged_at = _fact_before(assignment.acknowledged_at, as_of)
    declined_at = _fact_before(assignment.declined_at, as_of)
    return resolve_status(
        as_of, assignment.due_date, acknowledged_at, declined_at, policy
    )


def existed_at(assignment: Assignment, as_of: datetime) -> bool:
    return ensure_utc(assignment.created_at) <= ensure_utc(as_of)


def _fact_before(value: datetime | None, as_of: datetime) -> datetime | None:
    if value is None:
        return None
    return value if ensure_utc(value) <= as_of else None
