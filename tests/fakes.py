"""In-memory port implementations shared by the unit tests."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from ackflow.application.ports.assignment_repo import AssignmentRepository, StoreCriteria
from ackflow.application.ports.audit_repo import AuditRepository
from ackflow.application.ports.directory_port import DocumentService, UserDirectory
from ackflow.application.ports.notification_port import NotificationPort
from ackflow.application.ports.unit_of_work import UnitOfWork
from ackflow.domain.entities.assignment import Assignment
from ackflow.domain.entities.audit_event import AuditEvent
from ackflow.domain.entities.directory import DocumentInfo, UserInfo
from ackflow.domain.errors import AggregationError, ConflictError, NotFoundError
from ackflow.domain.policies.audit_chain import GENESIS_HASH, link_event
from ackflow.domain.value_objects.enums import (
    AuditEventType,
    DeliveryOutcome,
    NotificationTemplate,
    Priority,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_assignment(
    assignment_id: int | None = None,
    *,
    organization_id: str = "org-1",
    document_id: str = "sop-1",
    user_id: str = "u1",
    department: str | None = "Lab",
    due_date: datetime | None = None,
    created_at: datetime | None = None,
    priority: Priority = Priority.MEDIUM,
    **facts,
) -> Assignment:
    return Assignment(
        id=assignment_id,
        organization_id=organization_id,
        document_id=document_id,
        document_version="1.0",
        user_id=user_id,
        department=department,
        due_date=due_date or T0 + timedelta(days=7),
        priority=priority,
        created_at=created_at or T0 - timedelta(days=1),
        **facts,
    )


class InMemoryAssignmentRepository(AssignmentRepository):
    def __init__(self):
        self.rows: dict[int, Assignment] = {}
        self._next_id = 1

    async def add(self, assignment):
        assignment.id = self._next_id
        assignment.version = 1
        self._next_id += 1
        self.rows[assignment.id] = dataclasses.replace(assignment)
        return assignment

    async def get(self, organization_id, assignment_id):
        row = self.rows.get(assignment_id)
        if row is None or row.organization_id != organization_id:
            return None
        return dataclasses.replace(row)

    async def get_by_id(self, assignment_id):
        row = self.rows.get(assignment_id)
        return dataclasses.replace(row) if row else None

    async def find(self, organization_id, criteria=None):
        criteria = criteria or StoreCriteria()
        out = []
        for row in sorted(self.rows.values(), key=lambda a: a.id):
            if row.organization_id != organization_id:
                continue
            if criteria.document_id is not None and row.document_id != criteria.document_id:
                continue
            if criteria.user_id is not None and row.user_id != criteria.user_id:
                continue
            if criteria.department is not None and row.department != criteria.department:
                continue
            if not criteria.include_superseded and row.is_superseded():
                continue
            out.append(dataclasses.replace(row))
        return out

    async def find_open_for_user_document(self, organization_id, user_id, document_id):
        return [
            dataclasses.replace(row)
            for row in self.rows.values()
            if row.organization_id == organization_id
            and row.user_id == user_id
            and row.document_id == document_id
            and row.is_open()
        ]

    async def get_open_ids(self):
        return sorted(
            row.id
            for row in self.rows.values()
            if not row.has_terminal_fact() and not row.is_superseded()
        )

    async def update(self, assignment, expected_version):
        stored = self.rows.get(assignment.id)
        if stored is None:
            raise NotFoundError(f"Assignment {assignment.id} not found")
        if stored.version != expected_version:
            raise ConflictError(f"Assignment {assignment.id} was modified concurrently")
        assignment.version = expected_version + 1
        self.rows[assignment.id] = dataclasses.replace(assignment)
        return assignment


class InMemoryAuditRepository(AuditRepository):
    def __init__(self):
        self.events: list[AuditEvent] = []
        self._heads: dict[str, str] = {}

    async def append(self, event):
        link_event(event, self._heads.get(event.organization_id, GENESIS_HASH))
        event.id = len(self.events) + 1
        self._heads[event.organization_id] = event.hash
        self.events.append(dataclasses.replace(event, payload=dict(event.payload)))
        return event

    async def get_for_organization(self, organization_id):
        return [
            dataclasses.replace(e, payload=dict(e.payload))
            for e in self.events
            if e.organization_id == organization_id
        ]

    async def has_event(self, assignment_id, event_type):
        return await self.count_for_assignment(assignment_id, event_type) > 0

    async def count_for_assignment(self, assignment_id, event_type=None):
        return sum(
            1
            for e in self.events
            if e.assignment_id == assignment_id
            and (event_type is None or e.event_type == event_type)
        )

    def of_type(self, event_type: AuditEventType) -> list[AuditEvent]:
        return [e for e in self.events if e.event_type == event_type]


class FakeDocumentService(DocumentService):
    def __init__(self, documents: Iterable[DocumentInfo] = (), unavailable: Iterable[str] = ()):
        self._docs = {(d.organization_id, d.id): d for d in documents}
        self._unavailable = set(unavailable)

    async def get(self, organization_id, document_id):
        if document_id in self._unavailable:
            raise AggregationError(f"Document service down for {document_id}")
        return self._docs.get((organization_id, document_id))


class FakeUserDirectory(UserDirectory):
    def __init__(self, users: Iterable[UserInfo] = ()):
        self._users = {(u.organization_id, u.id): u for u in users}

    async def get(self, organization_id, user_id):
        return self._users.get((organization_id, user_id))

    async def list_by_department(self, organization_id, department):
        return sorted(
            (
                u
                for (org, _), u in self._users.items()
                if org == organization_id and u.department == department and u.active
            ),
            key=lambda u: u.id,
        )


class FakeNotifier(NotificationPort):
    """Delivers everything except to user ids listed in ``fail_for``.

    ``fail_times`` makes the first N sends fail regardless of recipient.
    """

    def __init__(self, fail_for: Iterable[str] = (), fail_times: int = 0):
        self.sent: list[tuple[str, NotificationTemplate, dict]] = []
        self.attempts = 0
        self._fail_for = set(fail_for)
        self._fail_times = fail_times

    async def send(self, user_id, template, payload):
        self.attempts += 1
        if self._fail_times > 0:
            self._fail_times -= 1
            return DeliveryOutcome.FAILED
        if user_id in self._fail_for:
            return DeliveryOutcome.FAILED
        self.sent.append((user_id, template, payload))
        return DeliveryOutcome.DELIVERED

    def sent_to(self, user_id: str, template: NotificationTemplate | None = None) -> int:
        return sum(
            1 for uid, tpl, _ in self.sent
            if uid == user_id and (template is None or tpl == template)
        )


class FakeUnitOfWork(UnitOfWork):
    def __init__(self):
        self.commits = 0
        self.rollbacks = 0

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
