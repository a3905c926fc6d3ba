"""ReminderScheduler — one periodic pass over open assignments.

Each tick re-reads every open assignment fresh, sends cadence reminders that
are due, escalates past the threshold and records expiry once. Work is
committed per assignment; a conflict or failure on one assignment is logged
and counted, never fatal to the tick.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime

from ackflow.application.ports.assignment_repo import AssignmentRepository
from ackflow.application.ports.unit_of_work import UnitOfWork
from ackflow.application.use_cases.audit_recorder import AuditRecorder
from ackflow.application.use_cases.send_reminders import ReminderDispatcher, claim_reminder
from ackflow.domain.entities.audit_event import SYSTEM_ACTOR
from ackflow.domain.errors import ConflictError
from ackflow.domain.policies.reminder_policy import reminder_due
from ackflow.domain.policies.status_resolver import status_of
from ackflow.domain.value_objects.enums import AssignmentStatus, AuditEventType
from ackflow.domain.value_objects.escalation_policy import EscalationPolicy
from ackflow.domain.value_objects.timeutil import ensure_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    examined: int = 0
    reminded: int = 0
    failed: int = 0
    escalated: int = 0
    expired: int = 0
    skipped: int = 0
    conflicts: int = 0
    errors: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class ReminderScheduler:
    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        audit: AuditRecorder,
        dispatcher: ReminderDispatcher,
        uow: UnitOfWork,
        policy: EscalationPolicy,
        clock=utcnow,
    ):
        self._assignments = assignment_repo
        self._audit = audit
        self._dispatcher = dispatcher
        self._uow = uow
        self._policy = policy
        self._clock = clock

    async def tick(self, now: datetime | None = None) -> TickReport:
        now = ensure_utc(now) or self._clock()
        report = TickReport()
        ids = await self._assignments.get_open_ids()
        logger.info("Scheduler tick at %s: %d open assignments", now.isoformat(), len(ids))

        for assignment_id in ids:
            report.examined += 1
            try:
                await self._process(assignment_id, now, report)
            except ConflictError:
                await self._uow.rollback()
                report.conflicts += 1
                logger.info(
                    "Assignment %s changed concurrently; skipped this tick", assignment_id
                )
            except Exception:
                await self._uow.rollback()
                report.errors += 1
                logger.exception("Scheduler failed on assignment %s", assignment_id)

        logger.info("Scheduler tick done: %s", report.to_dict())
        return report

    async def _process(self, assignment_id: int, now: datetime, report: TickReport) -> None:
        assignment = await self._assignments.get_by_id(assignment_id)
        if assignment is None or assignment.is_superseded():
            report.skipped += 1
            return

        status = status_of(assignment, now, self._policy)
        if status == AssignmentStatus.EXPIRED:
            if await self._audit.has_event(assignment.id, AuditEventType.EXPIRED):
                report.skipped += 1
                return
            # version bump claims the expiry; a racing replica gets ConflictError
            assignment = await self._assignments.update(
                assignment, expected_version=assignment.version
            )
            await self._audit.record(
                assignment,
                AuditEventType.EXPIRED,
                SYSTEM_ACTOR,
                payload={
                    "due_date": ensure_utc(assignment.due_date).isoformat(),
                    "grace_period_days": self._policy.grace_period.days,
                },
                timestamp=now,
            )
            await self._uow.commit()
            report.expired += 1
            return

        if not reminder_due(assignment, now, self._policy):
            report.skipped += 1
            return

        claimed = await claim_reminder(self._assignments, assignment, now)
        await self._uow.commit()

        result = await self._dispatcher.dispatch(claimed, SYSTEM_ACTOR, now)
        await self._uow.commit()
        if result.delivered:
            report.reminded += 1
        else:
            report.failed += 1
        if result.escalated:
            report.escalated += 1
