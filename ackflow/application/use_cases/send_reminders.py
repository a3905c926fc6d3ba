"""Reminder dispatch — claim, deliver with backoff, escalate, audit.

A reminder is first *claimed* with a compare-and-swap write on the
assignment (reminders_sent + 1, last_reminder_at = now). Only the writer
whose claim succeeds delivers, so two replicas never double-send. Delivery
happens after the claim is committed; its outcome is recorded in the audit
log but never rolls the claim back.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

from ackflow.application.ports.assignment_repo import AssignmentRepository
from ackflow.application.ports.directory_port import UserDirectory
from ackflow.application.ports.notification_port import NotificationPort
from ackflow.application.ports.unit_of_work import UnitOfWork
from ackflow.application.use_cases.audit_recorder import AuditRecorder
from ackflow.domain.entities.assignment import Assignment
from ackflow.domain.errors import (
    AckflowError,
    DeliveryError,
    NotFoundError,
    StateTransitionError,
)
from ackflow.domain.policies.reminder_policy import (
    backoff_delays,
    is_remindable,
    needs_escalation,
)
from ackflow.domain.policies.status_resolver import status_of
from ackflow.domain.value_objects.enums import (
    AuditEventType,
    DeliveryOutcome,
    NotificationTemplate,
)
from ackflow.domain.value_objects.escalation_policy import EscalationPolicy
from ackflow.domain.value_objects.timeutil import utcnow

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    assignment_id: int
    reminders_sent: int
    delivered: bool
    attempts: int
    escalated: bool = False
    error: str | None = None


async def claim_reminder(
    assignment_repo: AssignmentRepository, assignment: Assignment, now: datetime
) -> Assignment:
    """CAS-increment the reminder counter; raises ConflictError if beaten to it."""
    version = assignment.version
    assignment.record_reminder(now)
    return await assignment_repo.update(assignment, expected_version=version)


class ReminderDispatcher:
    """Deliver a claimed reminder, retrying with exponential backoff."""

    def __init__(
        self,
        notifier: NotificationPort,
        users: UserDirectory,
        audit: AuditRecorder,
        policy: EscalationPolicy,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        sleep=asyncio.sleep,
    ):
        self._notifier = notifier
        self._users = users
        self._audit = audit
        self._policy = policy
        self._delays = backoff_delays(max_attempts, backoff_seconds)
        self._max_attempts = max_attempts
        self._sleep = sleep

    async def deliver(
        self, user_id: str, template: NotificationTemplate, payload: dict
    ) -> tuple[bool, int, str | None]:
        """Return (delivered, attempts used, last error)."""
        last_error: str | None = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                outcome = await self._notifier.send(user_id, template, payload)
                if outcome == DeliveryOutcome.DELIVERED:
                    return True, attempt, None
                last_error = "channel reported failure"
            except DeliveryError as e:
                last_error = e.message
            logger.info(
                "Delivery of %s to %s failed (attempt %d/%d): %s",
                template.value, user_id, attempt, self._max_attempts, last_error,
            )
            if attempt < self._max_attempts:
                await self._sleep(self._delays[attempt - 1])
        return False, self._max_attempts, last_error

    async def dispatch(
        self, assignment: Assignment, actor_id: str, now: datetime, manual: bool = False
    ) -> DispatchResult:
        payload = {
            "assignment_id": assignment.id,
            "document_id": assignment.document_id,
            "due_date": assignment.due_date.isoformat(),
            "reminder_number": assignment.reminders_sent,
            "status": status_of(assignment, now, self._policy).value,
        }
        delivered, attempts, error = await self.deliver(
            assignment.user_id, NotificationTemplate.REMINDER, payload
        )
        if delivered:
            await self._audit.record(
                assignment,
                AuditEventType.REMINDED,
                actor_id,
                payload={
                    "reminder_number": assignment.reminders_sent,
                    "attempts": attempts,
                    "manual": manual,
                },
                timestamp=now,
            )
        else:
            logger.warning(
                "Reminder for assignment %s undeliverable after %d attempts",
                assignment.id, attempts,
            )
            await self._audit.record(
                assignment,
                AuditEventType.REMINDER_FAILED,
                actor_id,
                payload={
                    "reminder_number": assignment.reminders_sent,
                    "attempts": attempts,
                    "error": error,
                },
                timestamp=now,
            )

        result = DispatchResult(
            assignment_id=assignment.id,
            reminders_sent=assignment.reminders_sent,
            delivered=delivered,
            attempts=attempts,
            error=error,
        )
        if needs_escalation(assignment.reminders_sent, self._policy):
            result.escalated = await self._escalate(assignment, actor_id, now)
        return result

    async def _escalate(self, assignment: Assignment, actor_id: str, now: datetime) -> bool:
        user = await self._users.get(assignment.organization_id, assignment.user_id)
        supervisor_id = user.manager_id if user else None
        delivered = False
        if supervisor_id is None:
            logger.warning(
                "Assignment %s needs escalation but user %s has no supervisor",
                assignment.id, assignment.user_id,
            )
        else:
            delivered, _, _ = await self.deliver(
                supervisor_id,
                NotificationTemplate.ESCALATION,
                {
                    "assignment_id": assignment.id,
                    "assignee_id": assignment.user_id,
                    "document_id": assignment.document_id,
                    "reminders_sent": assignment.reminders_sent,
                },
            )
        await self._audit.record(
            assignment,
            AuditEventType.ESCALATED,
            actor_id,
            payload={
                "supervisor_id": supervisor_id,
                "reminders_sent": assignment.reminders_sent,
                "delivered": delivered,
            },
            timestamp=now,
        )
        return True


class SendReminderUseCase:
    """Manually remind one assignee, ignoring the cadence."""

    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        dispatcher: ReminderDispatcher,
        uow: UnitOfWork,
        policy: EscalationPolicy,
        clock=utcnow,
    ):
        self._assignments = assignment_repo
        self._dispatcher = dispatcher
        self._uow = uow
        self._policy = policy
        self._clock = clock

    async def execute(
        self, organization_id: str, assignment_id: int, actor_id: str
    ) -> DispatchResult:
        assignment = await self._assignments.get(organization_id, assignment_id)
        if assignment is None:
            raise NotFoundError(
                f"Assignment {assignment_id} not found", assignment_id=assignment_id
            )
        now = self._clock()
        if not is_remindable(assignment, now, self._policy):
            status = status_of(assignment, now, self._policy)
            raise StateTransitionError(
                f"Assignment {assignment_id} is {status.value}; no reminder sent",
                assignment_id=assignment_id,
                status=status.value,
            )

        claimed = await claim_reminder(self._assignments, assignment, now)
        await self._uow.commit()
        result = await self._dispatcher.dispatch(claimed, actor_id, now, manual=True)
        await self._uow.commit()
        return result


@dataclass
class BulkItemResult:
    assignment_id: int
    ok: bool
    reminders_sent: int | None = None
    delivered: bool | None = None
    error: str | None = None
    message: str | None = None


@dataclass
class BulkReminderResult:
    items: list[BulkItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.ok)

    @property
    def failed(self) -> int:
        return sum(1 for item in self.items if not item.ok)


class SendBulkRemindersUseCase:
    """Remind many assignees; each id succeeds or fails on its own."""

    def __init__(self, send_one: SendReminderUseCase, uow: UnitOfWork):
        self._send_one = send_one
        self._uow = uow

    async def execute(
        self, organization_id: str, assignment_ids: list[int], actor_id: str
    ) -> BulkReminderResult:
        result = BulkReminderResult()
        for assignment_id in dict.fromkeys(assignment_ids):
            try:
                dispatched = await self._send_one.execute(
                    organization_id, assignment_id, actor_id
                )
                result.items.append(
                    BulkItemResult(
                        assignment_id=assignment_id,
                        ok=True,
                        reminders_sent=dispatched.reminders_sent,
                        delivered=dispatched.delivered,
                    )
                )
            except AckflowError as e:
                await self._uow.rollback()
                result.items.append(
                    BulkItemResult(
                        assignment_id=assignment_id, ok=False, error=e.code, message=e.message
                    )
                )
            except Exception as e:
                logger.exception("Bulk reminder failed for assignment %s", assignment_id)
                await self._uow.rollback()
                result.items.append(
                    BulkItemResult(
                        assignment_id=assignment_id,
                        ok=False,
                        error="internal_error",
                        message=str(e),
                    )
                )

        logger.info(
            "Bulk reminders: %d/%d succeeded", result.succeeded, len(result.items)
        )
        return result
