"""Compliance arithmetic — status counts, percentages and grouping keys."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from ackflow.domain.entities.assignment import Assignment
from ackflow.domain.entities.compliance_snapshot import ComplianceSnapshot
from ackflow.domain.value_objects.enums import AssignmentStatus, GroupBy
from ackflow.domain.value_objects.timeutil import month_key

UNASSIGNED_GROUP = "(none)"


def percentage(count: int, total: int) -> float:
    """``count / total * 100`` rounded half-up to one decimal; 0.0 when total is 0."""
    if total <= 0:
        return 0.0
    value = Decimal(count) * Decimal(100) / Decimal(total)
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def build_snapshot(
    statuses: Iterable[AssignmentStatus],
    *,
    scope: dict,
    computed_at: datetime,
    group_key: str | None = None,
    as_of: datetime | None = None,
) -> ComplianceSnapshot:
    snapshot = ComplianceSnapshot(
        scope=scope, computed_at=computed_at, group_key=group_key, as_of=as_of
    )
    counts = {status: 0 for status in AssignmentStatus}
    for status in statuses:
        counts[status] += 1

    total = sum(counts.values())
    snapshot.total_assigned = total
    for status, count in counts.items():
        setattr(snapshot, status.value, count)
        snapshot.percentages[status.value] = percentage(count, total)
    return snapshot


def group_key_for(
    assignment: Assignment,
    group_by: GroupBy,
) -> str:
    if group_by == GroupBy.DEPARTMENT:
        return assignment.department or UNASSIGNED_GROUP
    if group_by == GroupBy.DOCUMENT:
        return assignment.document_id
    if group_by == GroupBy.USER:
        return assignment.user_id
    if group_by == GroupBy.MONTH:
        return month_key(assignment.created_at)
    raise ValueError(f"Unsupported grouping: {group_by}")
