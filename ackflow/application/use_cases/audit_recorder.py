"""AuditRecorder — append transitions and query the audit log."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from ackflow.application.ports.audit_repo import AuditRepository
from ackflow.domain.entities.assignment import Assignment
from ackflow.domain.entities.audit_event import AuditEvent
from ackflow.domain.errors import ValidationError
from ackflow.domain.policies.audit_chain import ChainVerification, verify_chain
from ackflow.domain.policies.query_filter import (
    Eq,
    Page,
    PageRequest,
    Predicate,
    Query,
    Range,
    SortSpec,
    run_query,
)
from ackflow.domain.value_objects.enums import (
    AuditCategory,
    AuditEventType,
    AuditSeverity,
)
from ackflow.domain.value_objects.timeutil import ensure_utc, utcnow

logger = logging.getLogger(__name__)

_CATEGORY_BY_TYPE: dict[AuditEventType, AuditCategory] = {
    AuditEventType.CREATED: AuditCategory.ASSIGNMENT,
    AuditEventType.ACKNOWLEDGED: AuditCategory.ASSIGNMENT,
    AuditEventType.DECLINED: AuditCategory.ASSIGNMENT,
    AuditEventType.EXPIRED: AuditCategory.ASSIGNMENT,
    AuditEventType.REMINDED: AuditCategory.REMINDER,
    AuditEventType.ESCALATED: AuditCategory.REMINDER,
    AuditEventType.REMINDER_FAILED: AuditCategory.REMINDER,
}

_SEVERITY_BY_TYPE: dict[AuditEventType, AuditSeverity] = {
    AuditEventType.ESCALATED: AuditSeverity.WARNING,
    AuditEventType.REMINDER_FAILED: AuditSeverity.WARNING,
    AuditEventType.EXPIRED: AuditSeverity.WARNING,
}

AUDIT_SORT_KEYS = frozenset({"timestamp", "actor_id", "event_type", "severity", "id"})


@dataclass(frozen=True)
class AuditFilter:
    actor_id: str | None = None
    assignment_id: int | None = None
    event_type: AuditEventType | None = None
    category: AuditCategory | None = None
    severity: AuditSeverity | None = None
    since: datetime | None = None
    until: datetime | None = None

    def predicates(self) -> list[Predicate]:
        predicates: list[Predicate] = []
        for name in ("actor_id", "assignment_id", "event_type", "category", "severity"):
            value = getattr(self, name)
            if value is not None:
                predicates.append(Eq(name, value))
        if self.since is not None or self.until is not None:
            predicates.append(
                Range("timestamp", ensure_utc(self.since), ensure_utc(self.until))
            )
        return predicates


class AuditRecorder:
    """Single entry point for writing and reading audit events."""

    def __init__(self, audit_repo: AuditRepository, clock=utcnow):
        self._events = audit_repo
        self._clock = clock

    async def record(
        self,
        assignment: Assignment,
        event_type: AuditEventType,
        actor_id: str,
        payload: dict | None = None,
        timestamp: datetime | None = None,
    ) -> AuditEvent:
        event = AuditEvent(
            id=None,
            organization_id=assignment.organization_id,
            assignment_id=assignment.id,
            event_type=event_type,
            actor_id=actor_id,
            timestamp=ensure_utc(timestamp) if timestamp else self._clock(),
            payload=payload or {},
            category=_CATEGORY_BY_TYPE.get(event_type, AuditCategory.ADMIN),
            severity=_SEVERITY_BY_TYPE.get(event_type, AuditSeverity.INFO),
        )
        saved = await self._events.append(event)
        logger.debug(
            "Audit %s: assignment=%s actor=%s",
            event_type.value, assignment.id, actor_id,
        )
        return saved

    async def list_events(
        self,
        organization_id: str,
        audit_filter: AuditFilter | None = None,
        sort: SortSpec | None = None,
        page: PageRequest | None = None,
    ) -> Page[AuditEvent]:
        sort = sort or SortSpec(key="timestamp", descending=True)
        if sort.key not in AUDIT_SORT_KEYS:
            raise ValidationError(f"Cannot sort audit events by '{sort.key}'")
        events = await self._events.get_for_organization(organization_id)
        query = Query(
            predicates=(audit_filter or AuditFilter()).predicates(),
            sort=sort,
            page=page or PageRequest(),
        )
        return run_query(events, query)

    async def has_event(self, assignment_id: int, event_type: AuditEventType) -> bool:
        return await self._events.has_event(assignment_id, event_type)

    async def verify(self, organization_id: str) -> ChainVerification:
        events = await self._events.get_for_organization(organization_id)
        result = verify_chain(events)
        if not result.valid:
            logger.warning(
                "Audit chain broken for organization %s at event %s (%s)",
                organization_id, result.broken_event_id, result.reason,
            )
        return result
