"""CreateAssignmentsUseCase — fan a document out to users and departments."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from ackflow.application.ports.assignment_repo import AssignmentRepository
from ackflow.application.ports.directory_port import DocumentService, UserDirectory
from ackflow.application.ports.notification_port import NotificationPort
from ackflow.application.use_cases.audit_recorder import AuditRecorder
from ackflow.domain.entities.assignment import Assignment
from ackflow.domain.entities.directory import DocumentInfo, UserInfo
from ackflow.domain.errors import (
    ConflictError,
    DeliveryError,
    NotFoundError,
    StateTransitionError,
    ValidationError,
)
from ackflow.domain.value_objects.enums import (
    AuditEventType,
    DeliveryOutcome,
    NotificationTemplate,
    Priority,
)
from ackflow.domain.value_objects.timeutil import ensure_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class AssignmentRequest:
    document_id: str
    due_date: datetime
    user_ids: list[str] = field(default_factory=list)
    departments: list[str] = field(default_factory=list)
    priority: Priority = Priority.MEDIUM
    review_date: datetime | None = None
    skip_existing: bool = True
    notify: bool = False


@dataclass
class CreateAssignmentsResult:
    assignment_ids: list[int]
    skipped_user_ids: list[str] = field(default_factory=list)


class CreateAssignmentsUseCase:
    """Create one assignment per resolved target user.

    Targets are the union of explicit user ids and the active members of
    each listed department, de-duplicated in first-seen order.
    """

    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        documents: DocumentService,
        users: UserDirectory,
        audit: AuditRecorder,
        notifier: NotificationPort | None = None,
        clock=utcnow,
    ):
        self._assignments = assignment_repo
        self._documents = documents
        self._users = users
        self._audit = audit
        self._notifier = notifier
        self._clock = clock

    async def execute(
        self, organization_id: str, actor_id: str, request: AssignmentRequest
    ) -> CreateAssignmentsResult:
        now = self._clock()
        due_date = ensure_utc(request.due_date)
        review_date = ensure_utc(request.review_date)
        _validate(request, due_date, review_date, now)

        document = await self._documents.get(organization_id, request.document_id)
        if document is None:
            raise NotFoundError(
                f"Document {request.document_id} not found",
                document_id=request.document_id,
            )

        targets = await self._resolve_targets(organization_id, request)
        if not targets:
            raise ValidationError(
                "No users resolved from the given targets",
                departments=request.departments,
            )

        result = CreateAssignmentsResult(assignment_ids=[])
        for user in targets:
            if request.skip_existing and await self._has_open_assignment(
                organization_id, user.id, document
            ):
                result.skipped_user_ids.append(user.id)
                continue

            assignment = await self._assignments.add(
                Assignment(
                    id=None,
                    organization_id=organization_id,
                    document_id=document.id,
                    document_version=document.version,
                    user_id=user.id,
                    department=user.department or document.department,
                    due_date=due_date,
                    priority=request.priority,
                    created_at=now,
                    created_by=actor_id,
                    review_date=review_date,
                )
            )
            await self._audit.record(
                assignment,
                AuditEventType.CREATED,
                actor_id,
                payload={
                    "document_id": document.id,
                    "document_version": document.version,
                    "user_id": user.id,
                    "due_date": due_date.isoformat(),
                    "priority": request.priority.value,
                },
                timestamp=now,
            )
            result.assignment_ids.append(assignment.id)
            if request.notify:
                await self._notify_assignee(assignment, document)

        logger.info(
            "Document %s assigned to %d users (%d skipped) in organization %s",
            document.id, len(result.assignment_ids),
            len(result.skipped_user_ids), organization_id,
        )
        return result

    async def _resolve_targets(
        self, organization_id: str, request: AssignmentRequest
    ) -> list[UserInfo]:
        resolved: dict[str, UserInfo] = {}
        for user_id in request.user_ids:
            if user_id in resolved:
                continue
            user = await self._users.get(organization_id, user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found", user_id=user_id)
            resolved[user_id] = user

        for department in request.departments:
            members = await self._users.list_by_department(organization_id, department)
            if not members:
                logger.warning(
                    "Department '%s' has no active users in organization %s",
                    department, organization_id,
                )
            for user in members:
                resolved.setdefault(user.id, user)
        return list(resolved.values())

    async def _has_open_assignment(
        self, organization_id: str, user_id: str, document: DocumentInfo
    ) -> bool:
        existing = await self._assignments.find_open_for_user_document(
            organization_id, user_id, document.id
        )
        return any(a.document_version == document.version for a in existing)

    async def _notify_assignee(self, assignment: Assignment, document: DocumentInfo) -> None:
        if self._notifier is None:
            return
        try:
            outcome = await self._notifier.send(
                assignment.user_id,
                NotificationTemplate.ASSIGNMENT_CREATED,
                {
                    "assignment_id": assignment.id,
                    "document_title": document.title,
                    "due_date": assignment.due_date.isoformat(),
                },
            )
        except DeliveryError:
            outcome = DeliveryOutcome.FAILED
        if outcome != DeliveryOutcome.DELIVERED:
            logger.warning(
                "Assignment notice for %s to user %s was not delivered",
                assignment.id, assignment.user_id,
            )


class ReassignUseCase:
    """Issue a fresh assignment with a new due date and supersede the old one.

    The old row keeps its facts (due date, decline, reminders) for history;
    only ``superseded_by_id`` is set on it.
    """

    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        audit: AuditRecorder,
        clock=utcnow,
    ):
        self._assignments = assignment_repo
        self._audit = audit
        self._clock = clock

    async def execute(
        self,
        organization_id: str,
        assignment_id: int,
        actor_id: str,
        due_date: datetime,
        expected_version: int | None = None,
    ) -> Assignment:
        now = self._clock()
        due_date = ensure_utc(due_date)
        if due_date <= now:
            raise ValidationError("due_date must be in the future", due_date=due_date.isoformat())

        old = await self._assignments.get(organization_id, assignment_id)
        if old is None:
            raise NotFoundError(f"Assignment {assignment_id} not found", assignment_id=assignment_id)
        if old.acknowledged_at is not None:
            raise StateTransitionError(
                f"Assignment {assignment_id} is acknowledged; nothing to reassign",
                assignment_id=assignment_id,
            )
        if old.is_superseded():
            raise StateTransitionError(
                f"Assignment {assignment_id} was already reassigned",
                assignment_id=assignment_id,
            )
        if expected_version is not None and expected_version != old.version:
            raise ConflictError(
                f"Assignment {assignment_id} changed (version {old.version})",
                assignment_id=assignment_id,
                current_version=old.version,
            )
        version = old.version

        new = await self._assignments.add(
            Assignment(
                id=None,
                organization_id=organization_id,
                document_id=old.document_id,
                document_version=old.document_version,
                user_id=old.user_id,
                department=old.department,
                due_date=due_date,
                priority=old.priority,
                created_at=now,
                created_by=actor_id,
                review_date=old.review_date,
            )
        )
        old.supersede(new.id, now)
        await self._assignments.update(old, expected_version=version)

        await self._audit.record(
            new,
            AuditEventType.CREATED,
            actor_id,
            payload={
                "document_id": new.document_id,
                "user_id": new.user_id,
                "due_date": due_date.isoformat(),
                "reassigned_from": old.id,
            },
            timestamp=now,
        )
        logger.info("Assignment %s reassigned as %s", old.id, new.id)
        return new


def _validate(
    request: AssignmentRequest,
    due_date: datetime,
    review_date: datetime | None,
    now: datetime,
) -> None:
    if not request.document_id:
        raise ValidationError("document_id is required")
    if not request.user_ids and not request.departments:
        raise ValidationError("At least one user or department target is required")
    if due_date <= now:
        raise ValidationError(
            "due_date must be in the future", due_date=due_date.isoformat()
        )
    if review_date is not None and review_date < due_date:
        raise ValidationError(
            "review_date must not precede due_date", review_date=review_date.isoformat()
        )
