"""SQLAlchemy repository implementations."""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from ackflow.adapters.persistence.models import (
    AssignmentModel,
    AuditChainHeadModel,
    AuditEventModel,
    DocumentModel,
    UserModel,
)
from ackflow.application.ports.assignment_repo import AssignmentRepository, StoreCriteria
from ackflow.application.ports.audit_repo import AuditRepository
from ackflow.application.ports.directory_port import DocumentService, UserDirectory
from ackflow.application.ports.unit_of_work import UnitOfWork
from ackflow.domain.entities.assignment import Assignment
from ackflow.domain.entities.audit_event import AuditEvent
from ackflow.domain.entities.directory import DocumentInfo, UserInfo
from ackflow.domain.errors import AggregationError, ConflictError, NotFoundError
from ackflow.domain.policies.audit_chain import GENESIS_HASH, link_event
from ackflow.domain.value_objects.enums import (
    AuditCategory,
    AuditEventType,
    AuditSeverity,
    DocumentType,
    Priority,
)
from ackflow.domain.value_objects.timeutil import ensure_utc

logger = logging.getLogger(__name__)

# ─── Mappers ─────────────────────────────────────────────────────────


def _assignment_to_domain(m: AssignmentModel) -> Assignment:
    return Assignment(
        id=m.id,
        organization_id=m.organization_id,
        document_id=m.document_id,
        document_version=m.document_version,
        user_id=m.user_id,
        department=m.department,
        due_date=ensure_utc(m.due_date),
        priority=Priority(m.priority),
        created_at=ensure_utc(m.created_at),
        created_by=m.created_by,
        acknowledged_at=ensure_utc(m.acknowledged_at),
        declined_at=ensure_utc(m.declined_at),
        decline_reason=m.decline_reason,
        reminders_sent=m.reminders_sent,
        last_reminder_at=ensure_utc(m.last_reminder_at),
        review_date=ensure_utc(m.review_date),
        superseded_by_id=m.superseded_by_id,
        superseded_at=ensure_utc(m.superseded_at),
        version=m.version,
    )


def _event_to_domain(m: AuditEventModel) -> AuditEvent:
    return AuditEvent(
        id=m.id,
        organization_id=m.organization_id,
        assignment_id=m.assignment_id,
        event_type=AuditEventType(m.event_type),
        actor_id=m.actor_id,
        timestamp=ensure_utc(m.timestamp),
        payload=m.payload or {},
        category=AuditCategory(m.category),
        severity=AuditSeverity(m.severity),
        prev_hash=m.prev_hash,
        hash=m.hash,
    )


def _document_to_domain(m: DocumentModel) -> DocumentInfo:
    return DocumentInfo(
        id=m.id,
        organization_id=m.organization_id,
        title=m.title,
        version=m.version,
        department=m.department,
        document_type=DocumentType(m.document_type),
        tags=frozenset(m.tags or ()),
    )


def _user_to_domain(m: UserModel) -> UserInfo:
    return UserInfo(
        id=m.id,
        organization_id=m.organization_id,
        name=m.name,
        email=m.email,
        department=m.department,
        manager_id=m.manager_id,
        active=m.active,
    )


def _open_clause():
    return (
        AssignmentModel.acknowledged_at.is_(None),
        AssignmentModel.declined_at.is_(None),
        AssignmentModel.superseded_by_id.is_(None),
    )


# ─── Repositories ────────────────────────────────────────────────────


class SqlAssignmentRepository(AssignmentRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def add(self, assignment: Assignment) -> Assignment:
        m = AssignmentModel(
            organization_id=assignment.organization_id,
            document_id=assignment.document_id,
            document_version=assignment.document_version,
            user_id=assignment.user_id,
            department=assignment.department,
            due_date=assignment.due_date,
            priority=assignment.priority.value,
            created_at=assignment.created_at,
            created_by=assignment.created_by,
            review_date=assignment.review_date,
            reminders_sent=assignment.reminders_sent,
            version=1,
        )
        self._s.add(m)
        await self._s.flush()
        assignment.id = m.id
        assignment.version = 1
        return assignment

    async def get(self, organization_id: str, assignment_id: int) -> Assignment | None:
        result = await self._s.execute(
            select(AssignmentModel)
            .where(
                AssignmentModel.id == assignment_id,
                AssignmentModel.organization_id == organization_id,
            )
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        return _assignment_to_domain(m) if m else None

    async def get_by_id(self, assignment_id: int) -> Assignment | None:
        result = await self._s.execute(
            select(AssignmentModel)
            .where(AssignmentModel.id == assignment_id)
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        return _assignment_to_domain(m) if m else None

    async def find(
        self, organization_id: str, criteria: StoreCriteria | None = None
    ) -> list[Assignment]:
        criteria = criteria or StoreCriteria()
        stmt = select(AssignmentModel).where(
            AssignmentModel.organization_id == organization_id
        )
        if criteria.document_id is not None:
            stmt = stmt.where(AssignmentModel.document_id == criteria.document_id)
        if criteria.user_id is not None:
            stmt = stmt.where(AssignmentModel.user_id == criteria.user_id)
        if criteria.department is not None:
            stmt = stmt.where(AssignmentModel.department == criteria.department)
        if not criteria.include_superseded:
            stmt = stmt.where(AssignmentModel.superseded_by_id.is_(None))
        result = await self._s.execute(
            stmt.order_by(AssignmentModel.id).execution_options(populate_existing=True)
        )
        return [_assignment_to_domain(m) for m in result.scalars()]

    async def find_open_for_user_document(
        self, organization_id: str, user_id: str, document_id: str
    ) -> list[Assignment]:
        result = await self._s.execute(
            select(AssignmentModel)
            .where(
                AssignmentModel.organization_id == organization_id,
                AssignmentModel.user_id == user_id,
                AssignmentModel.document_id == document_id,
                *_open_clause(),
            )
            .order_by(AssignmentModel.id)
        )
        return [_assignment_to_domain(m) for m in result.scalars()]

    async def get_open_ids(self) -> list[int]:
        result = await self._s.execute(
            select(AssignmentModel.id).where(*_open_clause()).order_by(AssignmentModel.id)
        )
        return list(result.scalars())

    async def update(self, assignment: Assignment, expected_version: int) -> Assignment:
        result = await self._s.execute(
            update(AssignmentModel)
            .where(
                AssignmentModel.id == assignment.id,
                AssignmentModel.version == expected_version,
            )
            .values(
                acknowledged_at=assignment.acknowledged_at,
                declined_at=assignment.declined_at,
                decline_reason=assignment.decline_reason,
                reminders_sent=assignment.reminders_sent,
                last_reminder_at=assignment.last_reminder_at,
                superseded_by_id=assignment.superseded_by_id,
                superseded_at=assignment.superseded_at,
                version=expected_version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            exists = await self._s.execute(
                select(AssignmentModel.id).where(AssignmentModel.id == assignment.id)
            )
            if exists.scalar_one_or_none() is None:
                raise NotFoundError(
                    f"Assignment {assignment.id} not found", assignment_id=assignment.id
                )
            raise ConflictError(
                f"Assignment {assignment.id} was modified concurrently",
                assignment_id=assignment.id,
                expected_version=expected_version,
            )
        await self._s.flush()
        assignment.version = expected_version + 1
        return assignment


class SqlAuditRepository(AuditRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def _lock_head(self, organization_id: str) -> AuditChainHeadModel:
        result = await self._s.execute(
            select(AuditChainHeadModel)
            .where(AuditChainHeadModel.organization_id == organization_id)
            .with_for_update()
        )
        head = result.scalar_one_or_none()
        if head is None:
            head = AuditChainHeadModel(
                organization_id=organization_id, last_hash=GENESIS_HASH, length=0
            )
            self._s.add(head)
            await self._s.flush()
        return head

    async def append(self, event: AuditEvent) -> AuditEvent:
        head = await self._lock_head(event.organization_id)
        link_event(event, head.last_hash)
        m = AuditEventModel(
            organization_id=event.organization_id,
            assignment_id=event.assignment_id,
            event_type=event.event_type.value,
            actor_id=event.actor_id,
            timestamp=event.timestamp,
            payload=event.payload,
            category=event.category.value,
            severity=event.severity.value,
            prev_hash=event.prev_hash,
            hash=event.hash,
        )
        self._s.add(m)
        head.last_hash = event.hash
        head.length += 1
        await self._s.flush()
        event.id = m.id
        return event

    async def get_for_organization(self, organization_id: str) -> list[AuditEvent]:
        result = await self._s.execute(
            select(AuditEventModel)
            .where(AuditEventModel.organization_id == organization_id)
            .order_by(AuditEventModel.id)
        )
        return [_event_to_domain(m) for m in result.scalars()]

    async def has_event(self, assignment_id: int, event_type: AuditEventType) -> bool:
        return await self.count_for_assignment(assignment_id, event_type) > 0

    async def count_for_assignment(
        self, assignment_id: int, event_type: AuditEventType | None = None
    ) -> int:
        stmt = select(func.count(AuditEventModel.id)).where(
            AuditEventModel.assignment_id == assignment_id
        )
        if event_type is not None:
            stmt = stmt.where(AuditEventModel.event_type == event_type.value)
        result = await self._s.execute(stmt)
        return int(result.scalar_one())


class SqlDocumentService(DocumentService):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def get(self, organization_id: str, document_id: str) -> DocumentInfo | None:
        try:
            result = await self._s.execute(
                select(DocumentModel).where(
                    DocumentModel.id == document_id,
                    DocumentModel.organization_id == organization_id,
                )
            )
        except DBAPIError as e:
            logger.exception("Document lookup failed for %s", document_id)
            raise AggregationError(
                f"Document {document_id} metadata unavailable", document_id=document_id
            ) from e
        m = result.scalar_one_or_none()
        return _document_to_domain(m) if m else None


class SqlUserDirectory(UserDirectory):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def get(self, organization_id: str, user_id: str) -> UserInfo | None:
        result = await self._s.execute(
            select(UserModel).where(
                UserModel.id == user_id, UserModel.organization_id == organization_id
            )
        )
        m = result.scalar_one_or_none()
        return _user_to_domain(m) if m else None

    async def list_by_department(
        self, organization_id: str, department: str
    ) -> list[UserInfo]:
        result = await self._s.execute(
            select(UserModel)
            .where(
                UserModel.organization_id == organization_id,
                UserModel.department == department,
                UserModel.active.is_(True),
            )
            .order_by(UserModel.id)
        )
        return [_user_to_domain(m) for m in result.scalars()]


class SqlUnitOfWork(UnitOfWork):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def commit(self) -> None:
        await self._s.commit()

    async def rollback(self) -> None:
        await self._s.rollback()
