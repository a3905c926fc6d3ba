"""Tests for the periodic reminder scheduler."""

from __future__ import annotations

from datetime import timedelta

import pytest

from ackflow.application.use_cases.reminder_scheduler import ReminderScheduler
from ackflow.application.use_cases.send_reminders import ReminderDispatcher
from ackflow.domain.errors import ConflictError
from ackflow.domain.value_objects.enums import AuditEventType, ReminderCadence
from ackflow.domain.value_objects.escalation_policy import EscalationPolicy
from tests.fakes import (
    FakeNotifier,
    InMemoryAssignmentRepository,
    RecordingSleep,
    T0,
    make_assignment,
)


def _scheduler(assignment_repo, users, recorder, uow, clock, notifier, policy=None):
    policy = policy or EscalationPolicy()
    dispatcher = ReminderDispatcher(
        notifier, users, recorder, policy, max_attempts=2, sleep=RecordingSleep()
    )
    return ReminderScheduler(assignment_repo, recorder, dispatcher, uow, policy, clock=clock)


class ConflictingRepository(InMemoryAssignmentRepository):
    """Simulates another replica winning every claim on ``contested``."""

    def __init__(self, contested: int):
        super().__init__()
        self._contested = contested

    async def update(self, assignment, expected_version):
        if assignment.id == self._contested:
            raise ConflictError("claimed elsewhere")
        return await super().update(assignment, expected_version)


class InterleavingRepository(InMemoryAssignmentRepository):
    """Runs ``rival`` (another replica) just before the first update lands."""

    def __init__(self):
        super().__init__()
        self.rival = None

    async def update(self, assignment, expected_version):
        rival, self.rival = self.rival, None
        if rival is not None:
            await rival()
        return await super().update(assignment, expected_version)


@pytest.mark.asyncio
async def test_tick_reminds_due_assignments_once(
    assignment_repo, users, recorder, uow, clock, notifier, audit_repo
):
    due = await assignment_repo.add(make_assignment(created_at=T0 - timedelta(days=1)))
    fresh = await assignment_repo.add(make_assignment(user_id="u2", created_at=T0 - timedelta(hours=2)))
    await assignment_repo.add(make_assignment(user_id="u3", acknowledged_at=T0))
    scheduler = _scheduler(assignment_repo, users, recorder, uow, clock, notifier)

    report = await scheduler.tick()

    assert report.examined == 2
    assert report.reminded == 1
    assert report.skipped == 1
    assert (await assignment_repo.get_by_id(due.id)).reminders_sent == 1
    assert (await assignment_repo.get_by_id(fresh.id)).reminders_sent == 0

    again = await scheduler.tick()
    assert again.reminded == 0
    assert len(audit_repo.of_type(AuditEventType.REMINDED)) == 1


@pytest.mark.asyncio
async def test_cadence_elapses_between_ticks(
    assignment_repo, users, recorder, uow, clock, notifier
):
    a = await assignment_repo.add(make_assignment(created_at=T0 - timedelta(days=1)))
    scheduler = _scheduler(assignment_repo, users, recorder, uow, clock, notifier)

    await scheduler.tick()
    clock.advance(days=1)
    report = await scheduler.tick()

    assert report.reminded == 1
    assert (await assignment_repo.get_by_id(a.id)).reminders_sent == 2


@pytest.mark.asyncio
async def test_cadence_none_sends_nothing(assignment_repo, users, recorder, uow, clock, notifier):
    await assignment_repo.add(make_assignment(created_at=T0 - timedelta(days=30)))
    policy = EscalationPolicy(reminder_cadence=ReminderCadence.NONE)
    report = await _scheduler(assignment_repo, users, recorder, uow, clock, notifier, policy).tick()
    assert report.reminded == 0
    assert notifier.attempts == 0


@pytest.mark.asyncio
async def test_expired_recorded_once_and_never_reminded(
    assignment_repo, users, recorder, uow, clock, notifier, audit_repo
):
    policy = EscalationPolicy(auto_expire_enabled=True, grace_period=timedelta(days=14))
    await assignment_repo.add(
        make_assignment(due_date=T0 - timedelta(days=20), created_at=T0 - timedelta(days=40))
    )
    scheduler = _scheduler(assignment_repo, users, recorder, uow, clock, notifier, policy)

    first = await scheduler.tick()
    second = await scheduler.tick()

    assert first.expired == 1
    assert second.expired == 0
    assert len(audit_repo.of_type(AuditEventType.EXPIRED)) == 1
    assert notifier.attempts == 0


@pytest.mark.asyncio
async def test_concurrent_replicas_record_expiry_once(
    users, recorder, uow, clock, notifier, audit_repo
):
    policy = EscalationPolicy(auto_expire_enabled=True, grace_period=timedelta(days=14))
    repo = InterleavingRepository()
    expired = await repo.add(
        make_assignment(due_date=T0 - timedelta(days=20), created_at=T0 - timedelta(days=40))
    )
    ours = _scheduler(repo, users, recorder, uow, clock, notifier, policy)
    theirs = _scheduler(repo, users, recorder, uow, clock, notifier, policy)
    rival_reports = []

    async def rival():
        rival_reports.append(await theirs.tick())

    repo.rival = rival
    report = await ours.tick()

    assert rival_reports[0].expired == 1
    assert report.expired == 0
    assert report.conflicts == 1
    assert len(audit_repo.of_type(AuditEventType.EXPIRED)) == 1
    assert (await repo.get_by_id(expired.id)).version == 2


@pytest.mark.asyncio
async def test_conflicting_claim_is_skipped(users, recorder, uow, clock, notifier):
    repo = ConflictingRepository(contested=1)
    await repo.add(make_assignment(created_at=T0 - timedelta(days=2)))
    other = await repo.add(make_assignment(user_id="u2", created_at=T0 - timedelta(days=2)))

    report = await _scheduler(repo, users, recorder, uow, clock, notifier).tick()

    assert report.conflicts == 1
    assert report.reminded == 1
    assert (await repo.get_by_id(other.id)).reminders_sent == 1
    assert notifier.sent_to("u1") == 0


@pytest.mark.asyncio
async def test_failed_delivery_counted(assignment_repo, users, recorder, uow, clock, audit_repo):
    notifier = FakeNotifier(fail_for={"u1"})
    await assignment_repo.add(make_assignment(created_at=T0 - timedelta(days=1)))

    report = await _scheduler(assignment_repo, users, recorder, uow, clock, notifier).tick()

    assert report.failed == 1
    assert notifier.attempts == 2
    assert len(audit_repo.of_type(AuditEventType.REMINDER_FAILED)) == 1


@pytest.mark.asyncio
async def test_escalation_counted(assignment_repo, users, recorder, uow, clock, notifier):
    policy = EscalationPolicy(escalation_threshold=2)
    await assignment_repo.add(
        make_assignment(
            created_at=T0 - timedelta(days=5),
            reminders_sent=2,
            last_reminder_at=T0 - timedelta(days=1),
        )
    )
    report = await _scheduler(assignment_repo, users, recorder, uow, clock, notifier, policy).tick()
    assert report.escalated == 1


@pytest.mark.asyncio
async def test_unexpected_error_does_not_stop_tick(users, recorder, uow, clock, notifier):
    class FlakyRepository(InMemoryAssignmentRepository):
        async def get_by_id(self, assignment_id):
            if assignment_id == 1:
                raise RuntimeError("connection reset")
            return await super().get_by_id(assignment_id)

    repo = FlakyRepository()
    await repo.add(make_assignment(created_at=T0 - timedelta(days=1)))
    await repo.add(make_assignment(user_id="u2", created_at=T0 - timedelta(days=1)))

    report = await _scheduler(repo, users, recorder, uow, clock, notifier).tick()

    assert report.errors == 1
    assert report.reminded == 1
    assert uow.rollbacks == 1
