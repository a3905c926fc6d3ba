"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from fastapi import Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ackflow.adapters.notifications.logging_adapter import LoggingNotificationAdapter
from ackflow.adapters.notifications.webhook_adapter import WebhookNotificationAdapter
from ackflow.adapters.persistence.database import get_session
from ackflow.adapters.persistence.repositories import (
    SqlAssignmentRepository,
    SqlAuditRepository,
    SqlDocumentService,
    SqlUnitOfWork,
    SqlUserDirectory,
)
from ackflow.application.ports.notification_port import NotificationPort
from ackflow.application.use_cases.assignment_query import AssignmentFilter, AssignmentScope
from ackflow.application.use_cases.audit_recorder import AuditRecorder
from ackflow.application.use_cases.compliance_stats import ComplianceStatsUseCase
from ackflow.application.use_cases.create_assignments import (
    CreateAssignmentsUseCase,
    ReassignUseCase,
)
from ackflow.application.use_cases.list_assignments import (
    ExportAssignmentsUseCase,
    ListAssignmentsUseCase,
)
from ackflow.application.use_cases.reminder_scheduler import ReminderScheduler
from ackflow.application.use_cases.respond_to_assignment import (
    AcknowledgeUseCase,
    ClientInfo,
    DeclineUseCase,
)
from ackflow.application.use_cases.send_reminders import (
    ReminderDispatcher,
    SendBulkRemindersUseCase,
    SendReminderUseCase,
)
from ackflow.config import settings
from ackflow.domain.value_objects.enums import (
    AssignmentStatus,
    DocumentType,
    Priority,
)
from ackflow.domain.value_objects.escalation_policy import EscalationPolicy

logger = logging.getLogger(__name__)


def build_policy() -> EscalationPolicy:
    return EscalationPolicy(
        auto_expire_enabled=settings.auto_expire_enabled,
        grace_period=timedelta(days=settings.grace_period_days),
        reminder_cadence=settings.reminder_cadence,
        escalation_threshold=settings.escalation_threshold,
    )


def build_notifier() -> NotificationPort:
    if settings.notification_webhook_url:
        logger.info("Using webhook notifications at %s", settings.notification_webhook_url)
        return WebhookNotificationAdapter()
    logger.info("No notification webhook configured; notifications are logged only")
    return LoggingNotificationAdapter()


# Singletons (stateless)
_policy = build_policy()
_notifier = build_notifier()


def get_policy() -> EscalationPolicy:
    return _policy


def get_notifier() -> NotificationPort:
    return _notifier


# ─── Identity ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Actor:
    organization_id: str
    actor_id: str


def get_actor(
    organization_id: str = Header(..., alias="X-Organization-Id", min_length=1),
    actor_id: str = Header(..., alias="X-Actor-Id", min_length=1),
) -> Actor:
    return Actor(organization_id=organization_id, actor_id=actor_id)


def get_client_info(request: Request) -> ClientInfo:
    """Client address (first X-Forwarded-For hop when proxied) and user agent."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip() or None
    else:
        ip_address = request.client.host if request.client else None
    return ClientInfo(ip_address=ip_address, user_agent=request.headers.get("user-agent"))


# ─── Filters ─────────────────────────────────────────────────────────


def get_assignment_filter(
    department: str | None = None,
    document_id: str | None = None,
    document_type: DocumentType | None = None,
    tag: str | None = None,
    user_id: str | None = None,
    priority: Priority | None = None,
    status: AssignmentStatus | None = None,
    due_from: datetime | None = None,
    due_to: datetime | None = None,
    search: str | None = Query(default=None, max_length=200),
    include_superseded: bool = False,
) -> AssignmentFilter:
    return AssignmentFilter(
        department=department,
        document_id=document_id,
        document_type=document_type,
        tag=tag,
        user_id=user_id,
        priority=priority,
        status=status,
        due_from=due_from,
        due_to=due_to,
        search=search,
        include_superseded=include_superseded,
    )


# ─── Use cases ───────────────────────────────────────────────────────


def _audit(session: AsyncSession) -> AuditRecorder:
    return AuditRecorder(SqlAuditRepository(session))


def _scope(session: AsyncSession, policy: EscalationPolicy) -> AssignmentScope:
    return AssignmentScope(
        assignment_repo=SqlAssignmentRepository(session),
        documents=SqlDocumentService(session),
        policy=policy,
    )


def _dispatcher(
    session: AsyncSession, policy: EscalationPolicy, notifier: NotificationPort
) -> ReminderDispatcher:
    return ReminderDispatcher(
        notifier=notifier,
        users=SqlUserDirectory(session),
        audit=_audit(session),
        policy=policy,
        max_attempts=settings.notification_max_attempts,
        backoff_seconds=settings.notification_backoff_seconds,
    )


def get_audit_recorder(session: AsyncSession = Depends(get_session)) -> AuditRecorder:
    return _audit(session)


def get_create_assignments_uc(
    session: AsyncSession = Depends(get_session),
    notifier: NotificationPort = Depends(get_notifier),
) -> CreateAssignmentsUseCase:
    return CreateAssignmentsUseCase(
        assignment_repo=SqlAssignmentRepository(session),
        documents=SqlDocumentService(session),
        users=SqlUserDirectory(session),
        audit=_audit(session),
        notifier=notifier,
    )


def get_reassign_uc(session: AsyncSession = Depends(get_session)) -> ReassignUseCase:
    return ReassignUseCase(
        assignment_repo=SqlAssignmentRepository(session), audit=_audit(session)
    )


def get_acknowledge_uc(
    session: AsyncSession = Depends(get_session),
    policy: EscalationPolicy = Depends(get_policy),
    notifier: NotificationPort = Depends(get_notifier),
) -> AcknowledgeUseCase:
    return AcknowledgeUseCase(
        SqlAssignmentRepository(session), _audit(session), policy, notifier=notifier
    )


def get_decline_uc(
    session: AsyncSession = Depends(get_session),
    policy: EscalationPolicy = Depends(get_policy),
    notifier: NotificationPort = Depends(get_notifier),
) -> DeclineUseCase:
    return DeclineUseCase(
        SqlAssignmentRepository(session), _audit(session), policy, notifier=notifier
    )


def get_list_assignments_uc(
    session: AsyncSession = Depends(get_session),
    policy: EscalationPolicy = Depends(get_policy),
) -> ListAssignmentsUseCase:
    return ListAssignmentsUseCase(_scope(session, policy))


def get_export_assignments_uc(
    session: AsyncSession = Depends(get_session),
    policy: EscalationPolicy = Depends(get_policy),
) -> ExportAssignmentsUseCase:
    return ExportAssignmentsUseCase(_scope(session, policy))


def get_compliance_stats_uc(
    session: AsyncSession = Depends(get_session),
    policy: EscalationPolicy = Depends(get_policy),
) -> ComplianceStatsUseCase:
    return ComplianceStatsUseCase(_scope(session, policy))


def get_send_reminder_uc(
    session: AsyncSession = Depends(get_session),
    policy: EscalationPolicy = Depends(get_policy),
    notifier: NotificationPort = Depends(get_notifier),
) -> SendReminderUseCase:
    return SendReminderUseCase(
        assignment_repo=SqlAssignmentRepository(session),
        dispatcher=_dispatcher(session, policy, notifier),
        uow=SqlUnitOfWork(session),
        policy=policy,
    )


def get_bulk_reminders_uc(
    session: AsyncSession = Depends(get_session),
    send_one: SendReminderUseCase = Depends(get_send_reminder_uc),
) -> SendBulkRemindersUseCase:
    return SendBulkRemindersUseCase(send_one=send_one, uow=SqlUnitOfWork(session))


def build_scheduler(
    session: AsyncSession,
    policy: EscalationPolicy | None = None,
    notifier: NotificationPort | None = None,
) -> ReminderScheduler:
    """Scheduler bound to one session; also used outside request scope."""
    policy = policy or _policy
    return ReminderScheduler(
        assignment_repo=SqlAssignmentRepository(session),
        audit=_audit(session),
        dispatcher=_dispatcher(session, policy, notifier or _notifier),
        uow=SqlUnitOfWork(session),
        policy=policy,
    )


def get_scheduler(
    session: AsyncSession = Depends(get_session),
    policy: EscalationPolicy = Depends(get_policy),
    notifier: NotificationPort = Depends(get_notifier),
) -> ReminderScheduler:
    return build_scheduler(session, policy, notifier)
