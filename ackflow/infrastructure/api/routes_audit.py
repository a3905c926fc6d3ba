"""Audit log endpoints — filtered history and chain verification."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends

from ackflow.application.use_cases.audit_recorder import AuditFilter, AuditRecorder
from ackflow.domain.policies.query_filter import PageRequest, SortSpec
from ackflow.domain.value_objects.enums import (
    AuditCategory,
    AuditEventType,
    AuditSeverity,
)
from ackflow.infrastructure.api.dependencies import Actor, get_actor, get_audit_recorder
from ackflow.infrastructure.api.schemas import serialize_event

router = APIRouter(prefix="/audit-events", tags=["audit"])


@router.get("")
async def list_audit_events(
    actor_id: str | None = None,
    assignment_id: int | None = None,
    event_type: AuditEventType | None = None,
    category: AuditCategory | None = None,
    severity: AuditSeverity | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    sort_by: str = "timestamp",
    descending: bool = True,
    page: int = 1,
    size: int = 50,
    actor: Actor = Depends(get_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    result = await recorder.list_events(
        actor.organization_id,
        AuditFilter(
            actor_id=actor_id,
            assignment_id=assignment_id,
            event_type=event_type,
            category=category,
            severity=severity,
            since=since,
            until=until,
        ),
        SortSpec(key=sort_by, descending=descending),
        PageRequest(page=page, size=size),
    )
    return {
        "items": [serialize_event(e) for e in result.items],
        "total": result.total,
        "page": result.page,
        "size": result.size,
        "pages": result.pages,
    }


@router.get("/verify")
async def verify_audit_chain(
    actor: Actor = Depends(get_actor),
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    """Walk the organization's hash chain and report the first broken link."""
    result = await recorder.verify(actor.organization_id)
    return {
        "valid": result.valid,
        "checked": result.checked,
        "broken_event_id": result.broken_event_id,
        "reason": result.reason,
    }
