"""Assignment endpoints — fan-out, responses, listing and export."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ackflow.adapters.persistence.database import get_session
from ackflow.application.use_cases.assignment_query import AssignmentFilter
from ackflow.application.use_cases.create_assignments import (
    AssignmentRequest,
    CreateAssignmentsUseCase,
    ReassignUseCase,
)
from ackflow.application.use_cases.list_assignments import (
    ExportAssignmentsUseCase,
    ListAssignmentsUseCase,
    resolve_sort,
)
from ackflow.application.use_cases.respond_to_assignment import (
    AcknowledgeUseCase,
    ClientInfo,
    DeclineUseCase,
)
from ackflow.domain.policies.query_filter import PageRequest
from ackflow.domain.value_objects.escalation_policy import EscalationPolicy
from ackflow.infrastructure.api.dependencies import (
    Actor,
    get_acknowledge_uc,
    get_actor,
    get_assignment_filter,
    get_client_info,
    get_create_assignments_uc,
    get_decline_uc,
    get_export_assignments_uc,
    get_list_assignments_uc,
    get_policy,
    get_reassign_uc,
)
from ackflow.infrastructure.api.schemas import (
    AcknowledgeBody,
    CreateAssignmentsBody,
    DeclineBody,
    ReassignBody,
    serialize_view,
    serialize_with_status,
)

router = APIRouter(prefix="/assignments", tags=["assignments"])


@router.post("", status_code=201)
async def create_assignments(
    body: CreateAssignmentsBody,
    actor: Actor = Depends(get_actor),
    uc: CreateAssignmentsUseCase = Depends(get_create_assignments_uc),
    session: AsyncSession = Depends(get_session),
):
    """Assign a document to users and/or whole departments."""
    result = await uc.execute(
        actor.organization_id,
        actor.actor_id,
        AssignmentRequest(
            document_id=body.document_id,
            due_date=body.due_date,
            user_ids=body.user_ids,
            departments=body.departments,
            priority=body.priority,
            review_date=body.review_date,
            skip_existing=body.skip_existing,
            notify=body.notify,
        ),
    )
    await session.commit()
    return {
        "assignment_ids": result.assignment_ids,
        "skipped_user_ids": result.skipped_user_ids,
        "created": len(result.assignment_ids),
    }


@router.get("")
async def list_assignments(
    flt: AssignmentFilter = Depends(get_assignment_filter),
    sort_by: str | None = None,
    descending: bool = True,
    page: int = 1,
    size: int = 20,
    actor: Actor = Depends(get_actor),
    uc: ListAssignmentsUseCase = Depends(get_list_assignments_uc),
):
    """Filtered, sorted, paged assignments with derived status."""
    result = await uc.execute(
        actor.organization_id,
        flt,
        resolve_sort(sort_by, descending),
        PageRequest(page=page, size=size),
    )
    return {
        "items": [serialize_view(v) for v in result.page.items],
        "total": result.page.total,
        "page": result.page.page,
        "size": result.page.size,
        "pages": result.page.pages,
        "partial": result.partial,
    }


@router.get("/export")
async def export_assignments(
    flt: AssignmentFilter = Depends(get_assignment_filter),
    sort_by: str | None = "id",
    descending: bool = False,
    actor: Actor = Depends(get_actor),
    uc: ExportAssignmentsUseCase = Depends(get_export_assignments_uc),
):
    """Flat rows for the export service to render."""
    rows = await uc.execute(actor.organization_id, flt, resolve_sort(sort_by, descending))
    return {"total": len(rows), "rows": rows}


@router.get("/{assignment_id}")
async def get_assignment(
    assignment_id: int,
    actor: Actor = Depends(get_actor),
    uc: ListAssignmentsUseCase = Depends(get_list_assignments_uc),
):
    view = await uc.get_one(actor.organization_id, assignment_id)
    return serialize_view(view)


@router.post("/{assignment_id}/acknowledge")
async def acknowledge(
    assignment_id: int,
    body: AcknowledgeBody | None = Body(default=None),
    actor: Actor = Depends(get_actor),
    client: ClientInfo = Depends(get_client_info),
    uc: AcknowledgeUseCase = Depends(get_acknowledge_uc),
    policy: EscalationPolicy = Depends(get_policy),
    session: AsyncSession = Depends(get_session),
):
    saved = await uc.execute(
        actor.organization_id,
        assignment_id,
        actor.actor_id,
        expected_version=body.expected_version if body else None,
        notes=body.notes if body else None,
        client=client,
    )
    await session.commit()
    return serialize_with_status(saved, policy)


@router.post("/{assignment_id}/decline")
async def decline(
    assignment_id: int,
    body: DeclineBody,
    actor: Actor = Depends(get_actor),
    uc: DeclineUseCase = Depends(get_decline_uc),
    policy: EscalationPolicy = Depends(get_policy),
    session: AsyncSession = Depends(get_session),
):
    saved = await uc.execute(
        actor.organization_id,
        assignment_id,
        actor.actor_id,
        body.reason,
        expected_version=body.expected_version,
    )
    await session.commit()
    return serialize_with_status(saved, policy)


@router.post("/{assignment_id}/reassign", status_code=201)
async def reassign(
    assignment_id: int,
    body: ReassignBody,
    actor: Actor = Depends(get_actor),
    uc: ReassignUseCase = Depends(get_reassign_uc),
    policy: EscalationPolicy = Depends(get_policy),
    session: AsyncSession = Depends(get_session),
):
    """Issue a fresh assignment with a new due date; the old one is superseded."""
    new = await uc.execute(
        actor.organization_id,
        assignment_id,
        actor.actor_id,
        body.due_date,
        expected_version=body.expected_version,
    )
    await session.commit()
    return {"replaces": assignment_id, **serialize_with_status(new, policy)}
