"""Acknowledge / Decline — the assignee's terminal responses."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ackflow.application.ports.assignment_repo import AssignmentRepository
from ackflow.application.ports.notification_port import NotificationPort
from ackflow.application.use_cases.audit_recorder import AuditRecorder
from ackflow.domain.entities.assignment import Assignment
from ackflow.domain.errors import (
    ConflictError,
    DeliveryError,
    NotFoundError,
    StateTransitionError,
    ValidationError,
)
from ackflow.domain.policies.status_resolver import status_of
from ackflow.domain.value_objects.enums import (
    AssignmentStatus,
    AuditEventType,
    DeliveryOutcome,
    NotificationTemplate,
)
from ackflow.domain.value_objects.escalation_policy import EscalationPolicy
from ackflow.domain.value_objects.timeutil import utcnow

logger = logging.getLogger(__name__)

MAX_DECLINE_REASON = 2000
MAX_ACKNOWLEDGMENT_NOTES = 2000


@dataclass(frozen=True)
class ClientInfo:
    """Where a response came from, as reported by the HTTP layer."""

    ip_address: str | None = None
    user_agent: str | None = None


class _RespondBase:
    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        audit: AuditRecorder,
        policy: EscalationPolicy,
        notifier: NotificationPort | None = None,
        clock=utcnow,
    ):
        self._assignments = assignment_repo
        self._audit = audit
        self._policy = policy
        self._notifier = notifier
        self._clock = clock

    async def _load(self, organization_id: str, assignment_id: int) -> Assignment:
        assignment = await self._assignments.get(organization_id, assignment_id)
        if assignment is None:
            raise NotFoundError(
                f"Assignment {assignment_id} not found", assignment_id=assignment_id
            )
        return assignment

    @staticmethod
    def _check_version(assignment: Assignment, expected_version: int | None) -> None:
        if expected_version is not None and expected_version != assignment.version:
            raise ConflictError(
                f"Assignment {assignment.id} changed (version {assignment.version})",
                assignment_id=assignment.id,
                current_version=assignment.version,
            )

    @staticmethod
    def _actor_payload(assignment: Assignment, actor_id: str) -> dict:
        if actor_id == assignment.user_id:
            return {}
        return {"on_behalf_of": assignment.user_id}

    async def _confirm(
        self, assignment: Assignment, template: NotificationTemplate, payload: dict
    ) -> None:
        """Best-effort confirmation to the assignee; never fails the response."""
        if self._notifier is None:
            return
        try:
            outcome = await self._notifier.send(assignment.user_id, template, payload)
        except DeliveryError:
            outcome = DeliveryOutcome.FAILED
        if outcome != DeliveryOutcome.DELIVERED:
            logger.warning(
                "%s notice for assignment %s to user %s was not delivered",
                template.value, assignment.id, assignment.user_id,
            )


class AcknowledgeUseCase(_RespondBase):
    """Record that the assignee read and accepted the document.

    Acknowledging an already acknowledged assignment is a no-op that returns
    the stored record without writing a second audit event. Notes and the
    client's address and user agent go into the audit payload, so the hash
    chain covers them.
    """

    async def execute(
        self,
        organization_id: str,
        assignment_id: int,
        actor_id: str,
        expected_version: int | None = None,
        notes: str | None = None,
        client: ClientInfo | None = None,
    ) -> Assignment:
        notes = (notes or "").strip() or None
        if notes is not None and len(notes) > MAX_ACKNOWLEDGMENT_NOTES:
            raise ValidationError(
                f"Acknowledgment notes exceed {MAX_ACKNOWLEDGMENT_NOTES} characters"
            )

        assignment = await self._load(organization_id, assignment_id)
        if assignment.acknowledged_at is not None:
            logger.debug("Assignment %s already acknowledged", assignment_id)
            return assignment

        self._check_version(assignment, expected_version)
        now = self._clock()
        status = status_of(assignment, now, self._policy)
        if status in (AssignmentStatus.DECLINED, AssignmentStatus.EXPIRED):
            raise StateTransitionError(
                f"Assignment {assignment_id} is {status.value}; reassign it first",
                assignment_id=assignment_id,
                status=status.value,
            )
        if assignment.is_superseded():
            raise StateTransitionError(
                f"Assignment {assignment_id} was replaced by "
                f"{assignment.superseded_by_id}",
                assignment_id=assignment_id,
            )

        version = assignment.version
        assignment.mark_acknowledged(now)
        saved = await self._assignments.update(assignment, expected_version=version)

        payload = {"late": status == AssignmentStatus.OVERDUE}
        payload.update(self._actor_payload(saved, actor_id))
        if notes is not None:
            payload["notes"] = notes
        if client is not None:
            payload["ip_address"] = client.ip_address
            payload["user_agent"] = client.user_agent
        await self._audit.record(
            saved, AuditEventType.ACKNOWLEDGED, actor_id, payload=payload, timestamp=now
        )
        logger.info("Assignment %s acknowledged by %s", assignment_id, actor_id)

        await self._confirm(
            saved,
            NotificationTemplate.ACKNOWLEDGMENT_COMPLETED,
            {
                "assignment_id": saved.id,
                "document_id": saved.document_id,
                "document_version": saved.document_version,
                "acknowledged_at": now.isoformat(),
            },
        )
        return saved


class DeclineUseCase(_RespondBase):
    """Record that the assignee refuses the document, with a reason."""

    async def execute(
        self,
        organization_id: str,
        assignment_id: int,
        actor_id: str,
        reason: str,
        expected_version: int | None = None,
    ) -> Assignment:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A decline reason is required")
        if len(reason) > MAX_DECLINE_REASON:
            raise ValidationError(
                f"Decline reason exceeds {MAX_DECLINE_REASON} characters"
            )

        assignment = await self._load(organization_id, assignment_id)
        if assignment.declined_at is not None:
            logger.debug("Assignment %s already declined", assignment_id)
            return assignment

        self._check_version(assignment, expected_version)
        now = self._clock()
        status = status_of(assignment, now, self._policy)
        if status in (AssignmentStatus.ACKNOWLEDGED, AssignmentStatus.EXPIRED):
            raise StateTransitionError(
                f"Assignment {assignment_id} is {status.value} and cannot be declined",
                assignment_id=assignment_id,
                status=status.value,
            )
        if assignment.is_superseded():
            raise StateTransitionError(
                f"Assignment {assignment_id} was replaced by "
                f"{assignment.superseded_by_id}",
                assignment_id=assignment_id,
            )

        version = assignment.version
        assignment.mark_declined(now, reason)
        saved = await self._assignments.update(assignment, expected_version=version)

        payload = {"reason": reason}
        payload.update(self._actor_payload(saved, actor_id))
        await self._audit.record(
            saved, AuditEventType.DECLINED, actor_id, payload=payload, timestamp=now
        )
        logger.info("Assignment %s declined by %s", assignment_id, actor_id)

        await self._confirm(
            saved,
            NotificationTemplate.ACKNOWLEDGMENT_DECLINED,
            {
                "assignment_id": saved.id,
                "document_id": saved.document_id,
                "reason": reason,
            },
        )
        return saved
