"""Compliance dashboard endpoint."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends

from ackflow.application.use_cases.assignment_query import AssignmentFilter
from ackflow.application.use_cases.compliance_stats import ComplianceStatsUseCase
from ackflow.domain.value_objects.enums import GroupBy
from ackflow.infrastructure.api.dependencies import (
    Actor,
    get_actor,
    get_assignment_filter,
    get_compliance_stats_uc,
)

router = APIRouter(prefix="/compliance", tags=["compliance"])


@router.get("/stats")
async def compliance_stats(
    flt: AssignmentFilter = Depends(get_assignment_filter),
    group_by: GroupBy | None = None,
    as_of: datetime | None = None,
    actor: Actor = Depends(get_actor),
    uc: ComplianceStatsUseCase = Depends(get_compliance_stats_uc),
):
    """Counts and percentages per status, optionally grouped or historical."""
    result = await uc.execute(actor.organization_id, flt, group_by=group_by, as_of=as_of)
    if group_by is None:
        return result.to_dict()
    return {
        "group_by": group_by.value,
        "groups": [snapshot.to_dict() for snapshot in result],
        "partial": any(snapshot.partial for snapshot in result),
    }
