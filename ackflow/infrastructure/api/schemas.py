"""Request bodies and response serializers for the HTTP API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from ackflow.application.use_cases.assignment_query import AssignmentView
from ackflow.application.use_cases.send_reminders import BulkReminderResult, DispatchResult
from ackflow.domain.entities.assignment import Assignment
from ackflow.domain.entities.audit_event import AuditEvent
from ackflow.domain.policies.status_resolver import status_of
from ackflow.domain.value_objects.enums import Priority
from ackflow.domain.value_objects.escalation_policy import EscalationPolicy
from ackflow.domain.value_objects.timeutil import utcnow


# ─── Requests ────────────────────────────────────────────────────────


class CreateAssignmentsBody(BaseModel):
    document_id: str = Field(min_length=1, max_length=100)
    due_date: datetime
    user_ids: list[str] = Field(default_factory=list, max_length=5000)
    departments: list[str] = Field(default_factory=list, max_length=100)
    priority: Priority = Priority.MEDIUM
    review_date: datetime | None = None
    skip_existing: bool = True
    notify: bool = False


class AcknowledgeBody(BaseModel):
    expected_version: int | None = None
    notes: str | None = Field(default=None, max_length=2000)


class DeclineBody(BaseModel):
    reason: str = Field(min_length=1, max_length=2000)
    expected_version: int | None = None


class ReassignBody(BaseModel):
    due_date: datetime
    expected_version: int | None = None


class BulkReminderBody(BaseModel):
    assignment_ids: list[int] = Field(min_length=1, max_length=500)


# ─── Serializers ─────────────────────────────────────────────────────


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_assignment(a: Assignment, status: str) -> dict:
    return {
        "id": a.id,
        "organization_id": a.organization_id,
        "document_id": a.document_id,
        "document_version": a.document_version,
        "user_id": a.user_id,
        "department": a.department,
        "priority": a.priority.value,
        "status": status,
        "due_date": _iso(a.due_date),
        "created_at": _iso(a.created_at),
        "created_by": a.created_by,
        "acknowledged_at": _iso(a.acknowledged_at),
        "declined_at": _iso(a.declined_at),
        "decline_reason": a.decline_reason,
        "reminders_sent": a.reminders_sent,
        "last_reminder_at": _iso(a.last_reminder_at),
        "review_date": _iso(a.review_date),
        "superseded_by_id": a.superseded_by_id,
        "superseded_at": _iso(a.superseded_at),
        "version": a.version,
    }


def serialize_view(view: AssignmentView) -> dict:
    data = serialize_assignment(view.assignment, view.status.value)
    doc = view.document
    data["document"] = (
        {
            "title": doc.title,
            "document_type": doc.document_type.value,
            "tags": sorted(doc.tags),
        }
        if doc
        else None
    )
    return data


def serialize_with_status(a: Assignment, policy: EscalationPolicy) -> dict:
    return serialize_assignment(a, status_of(a, utcnow(), policy).value)


def serialize_event(e: AuditEvent) -> dict:
    return {
        "id": e.id,
        "assignment_id": e.assignment_id,
        "event_type": e.event_type.value,
        "actor_id": e.actor_id,
        "timestamp": _iso(e.timestamp),
        "category": e.category.value,
        "severity": e.severity.value,
        "payload": e.payload,
        "hash": e.hash,
        "prev_hash": e.prev_hash,
    }


def serialize_dispatch(r: DispatchResult) -> dict:
    return {
        "assignment_id": r.assignment_id,
        "reminders_sent": r.reminders_sent,
        "delivered": r.delivered,
        "attempts": r.attempts,
        "escalated": r.escalated,
        "error": r.error,
    }


def serialize_bulk(r: BulkReminderResult) -> dict:
    return {
        "total": len(r.items),
        "succeeded": r.succeeded,
        "failed": r.failed,
        "results": [
            {
                "assignment_id": item.assignment_id,
                "ok": item.ok,
                "reminders_sent": item.reminders_sent,
                "delivered": item.delivered,
                "error": item.error,
                "message": item.message,
            }
            for item in r.items
        ],
    }
