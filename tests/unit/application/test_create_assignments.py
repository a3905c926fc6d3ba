"""Tests for assignment fan-out and reassignment."""

from __future__ import annotations

from datetime import timedelta

import pytest

from ackflow.application.use_cases.create_assignments import (
    AssignmentRequest,
    CreateAssignmentsUseCase,
    ReassignUseCase,
)
from ackflow.application.use_cases.respond_to_assignment import AcknowledgeUseCase
from ackflow.domain.errors import ConflictError, NotFoundError, StateTransitionError, ValidationError
from ackflow.domain.value_objects.enums import AuditEventType, NotificationTemplate, Priority
from tests.fakes import T0

ORG = "org-1"


@pytest.fixture
def create_uc(assignment_repo, documents, users, recorder, notifier, clock):
    return CreateAssignmentsUseCase(
        assignment_repo, documents, users, recorder, notifier=notifier, clock=clock
    )


def _request(**overrides) -> AssignmentRequest:
    values = dict(document_id="sop-1", due_date=T0 + timedelta(days=14), departments=["Lab"])
    values.update(overrides)
    return AssignmentRequest(**values)


@pytest.mark.asyncio
async def test_department_fan_out_creates_unique_assignments(create_uc, assignment_repo, audit_repo):
    result = await create_uc.execute(ORG, "admin", _request())

    # boss, u1, u2 are active in Lab; the inactive user and other org are excluded
    assert len(result.assignment_ids) == 3
    assert len(set(result.assignment_ids)) == 3
    stored = await assignment_repo.find(ORG)
    assert sorted(a.user_id for a in stored) == ["boss", "u1", "u2"]
    assert {a.document_version for a in stored} == {"2.1"}
    assert len(audit_repo.of_type(AuditEventType.CREATED)) == 3


@pytest.mark.asyncio
async def test_explicit_users_and_departments_are_deduplicated(create_uc):
    result = await create_uc.execute(
        ORG, "admin", _request(user_ids=["u1", "u3", "u1"], departments=["Lab"])
    )
    assert len(result.assignment_ids) == 4


@pytest.mark.asyncio
async def test_skip_existing_skips_open_assignments(create_uc):
    await create_uc.execute(ORG, "admin", _request())
    again = await create_uc.execute(ORG, "admin", _request())
    assert again.assignment_ids == []
    assert sorted(again.skipped_user_ids) == ["boss", "u1", "u2"]


@pytest.mark.asyncio
async def test_skip_existing_off_creates_duplicates(create_uc):
    await create_uc.execute(ORG, "admin", _request(user_ids=["u3"], departments=[]))
    again = await create_uc.execute(
        ORG, "admin", _request(user_ids=["u3"], departments=[], skip_existing=False)
    )
    assert len(again.assignment_ids) == 1


@pytest.mark.asyncio
async def test_acknowledged_assignment_does_not_block_new_one(
    create_uc, assignment_repo, recorder, policy, clock
):
    first = await create_uc.execute(ORG, "admin", _request(user_ids=["u3"], departments=[]))
    ack = AcknowledgeUseCase(assignment_repo, recorder, policy, clock=clock)
    await ack.execute(ORG, first.assignment_ids[0], "u3")

    again = await create_uc.execute(ORG, "admin", _request(user_ids=["u3"], departments=[]))
    assert len(again.assignment_ids) == 1


@pytest.mark.asyncio
async def test_notify_sends_assignment_notice(create_uc, notifier):
    await create_uc.execute(ORG, "admin", _request(user_ids=["u3"], departments=[], notify=True))
    assert notifier.sent_to("u3", NotificationTemplate.ASSIGNMENT_CREATED) == 1


@pytest.mark.asyncio
async def test_priority_and_creator_are_recorded(create_uc, assignment_repo):
    result = await create_uc.execute(
        ORG, "admin", _request(user_ids=["u3"], departments=[], priority=Priority.CRITICAL)
    )
    stored = await assignment_repo.get(ORG, result.assignment_ids[0])
    assert stored.priority == Priority.CRITICAL
    assert stored.created_by == "admin"
    assert stored.department == "QA"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"due_date": T0},
        {"due_date": T0 - timedelta(days=1)},
        {"departments": [], "user_ids": []},
        {"review_date": T0 + timedelta(days=1)},
    ],
)
async def test_invalid_requests_rejected(create_uc, overrides):
    with pytest.raises(ValidationError):
        await create_uc.execute(ORG, "admin", _request(**overrides))


@pytest.mark.asyncio
async def test_unknown_document_or_user(create_uc):
    with pytest.raises(NotFoundError):
        await create_uc.execute(ORG, "admin", _request(document_id="nope"))
    with pytest.raises(NotFoundError):
        await create_uc.execute(ORG, "admin", _request(user_ids=["ghost"], departments=[]))


@pytest.mark.asyncio
async def test_document_from_other_organization_not_found(create_uc):
    with pytest.raises(NotFoundError):
        await create_uc.execute("org-2", "admin", _request(departments=["Lab"]))


@pytest.mark.asyncio
async def test_empty_department_resolves_no_targets(create_uc):
    with pytest.raises(ValidationError):
        await create_uc.execute(ORG, "admin", _request(departments=["Nobody"]))


# ─── Reassign ────────────────────────────────────────────────────────


@pytest.fixture
def reassign_uc(assignment_repo, recorder, clock):
    return ReassignUseCase(assignment_repo, recorder, clock=clock)


@pytest.mark.asyncio
async def test_reassign_supersedes_old(create_uc, reassign_uc, assignment_repo, audit_repo):
    created = await create_uc.execute(ORG, "admin", _request(user_ids=["u3"], departments=[]))
    old_id = created.assignment_ids[0]

    new = await reassign_uc.execute(ORG, old_id, "admin", T0 + timedelta(days=30))

    old = await assignment_repo.get(ORG, old_id)
    assert old.superseded_by_id == new.id
    assert old.superseded_at == T0
    assert new.due_date == T0 + timedelta(days=30)
    assert [a.id for a in await assignment_repo.find(ORG)] == [new.id]
    events = audit_repo.of_type(AuditEventType.CREATED)
    assert events[-1].payload["reassigned_from"] == old_id


@pytest.mark.asyncio
async def test_reassign_twice_rejected(create_uc, reassign_uc):
    created = await create_uc.execute(ORG, "admin", _request(user_ids=["u3"], departments=[]))
    old_id = created.assignment_ids[0]
    await reassign_uc.execute(ORG, old_id, "admin", T0 + timedelta(days=30))
    with pytest.raises(StateTransitionError):
        await reassign_uc.execute(ORG, old_id, "admin", T0 + timedelta(days=40))


@pytest.mark.asyncio
async def test_reassign_acknowledged_rejected(
    create_uc, reassign_uc, assignment_repo, recorder, policy, clock
):
    created = await create_uc.execute(ORG, "admin", _request(user_ids=["u3"], departments=[]))
    await AcknowledgeUseCase(assignment_repo, recorder, policy, clock=clock).execute(
        ORG, created.assignment_ids[0], "u3"
    )
    with pytest.raises(StateTransitionError):
        await reassign_uc.execute(ORG, created.assignment_ids[0], "admin", T0 + timedelta(days=30))


@pytest.mark.asyncio
async def test_reassign_with_stale_version(create_uc, reassign_uc):
    created = await create_uc.execute(ORG, "admin", _request(user_ids=["u3"], departments=[]))
    with pytest.raises(ConflictError):
        await reassign_uc.execute(
            ORG, created.assignment_ids[0], "admin", T0 + timedelta(days=30), expected_version=7
        )
