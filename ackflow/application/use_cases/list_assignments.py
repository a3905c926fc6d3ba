"""ListAssignments / ExportAssignments — paged listing and flat export rows."""

from __future__ import annotations

from dataclasses import dataclass

from ackflow.application.use_cases.assignment_query import (
    AssignmentFilter,
    AssignmentScope,
    AssignmentView,
    view_accessor,
)
from ackflow.domain.errors import ValidationError
from ackflow.domain.policies.query_filter import (
    Page,
    PageRequest,
    SortSpec,
    paginate,
    sort_items,
)

# Public sort names → accessor keys.
SORT_KEYS: dict[str, str] = {
    "id": "id",
    "created_at": "created_at",
    "due_date": "due_date",
    "priority": "priority_rank",
    "status": "status",
    "department": "department",
    "user_id": "user_id",
    "document_id": "document_id",
    "document_title": "document_title",
    "reminders_sent": "reminders_sent",
}

@dataclass
class AssignmentPage:
    page: Page[AssignmentView]
    partial: bool = False


def resolve_sort(sort_by: str | None, descending: bool = False) -> SortSpec:
    key = sort_by or "created_at"
    if key not in SORT_KEYS:
        raise ValidationError(
            f"Cannot sort assignments by '{key}'", allowed=sorted(SORT_KEYS)
        )
    return SortSpec(key=SORT_KEYS[key], descending=descending)


class ListAssignmentsUseCase:
    def __init__(self, scope: AssignmentScope):
        self._scope = scope

    async def execute(
        self,
        organization_id: str,
        assignment_filter: AssignmentFilter | None = None,
        sort: SortSpec | None = None,
        page: PageRequest | None = None,
    ) -> AssignmentPage:
        scoped = await self._scope.load(organization_id, assignment_filter)
        ordered = sort_items(
            scoped.views, sort or SortSpec(key="created_at", descending=True), view_accessor
        )
        return AssignmentPage(
            page=paginate(ordered, page or PageRequest()), partial=scoped.partial
        )

    async def get_one(self, organization_id: str, assignment_id: int) -> AssignmentView:
        return await self._scope.get_view(organization_id, assignment_id)


class ExportAssignmentsUseCase:
    """Return structured rows for the export collaborator to render."""

    def __init__(self, scope: AssignmentScope, max_rows: int = 50_000):
        self._scope = scope
        self._max_rows = max_rows

    async def execute(
        self,
        organization_id: str,
        assignment_filter: AssignmentFilter | None = None,
        sort: SortSpec | None = None,
    ) -> list[dict]:
        scoped = await self._scope.load(organization_id, assignment_filter)
        if len(scoped.views) > self._max_rows:
            raise ValidationError(
                f"Export of {len(scoped.views)} rows exceeds the limit of "
                f"{self._max_rows}; narrow the filter",
            )
        ordered = sort_items(scoped.views, sort or SortSpec(key="id"), view_accessor)
        return [to_export_row(view) for view in ordered]


def to_export_row(view: AssignmentView) -> dict:
    a = view.assignment
    return {
        "assignment_id": a.id,
        "document_id": a.document_id,
        "document_title": view.document.title if view.document else None,
        "document_version": a.document_version,
        "user_id": a.user_id,
        "department": a.department,
        "priority": a.priority.value,
        "status": view.status.value,
        "due_date": a.due_date.isoformat(),
        "created_at": a.created_at.isoformat(),
        "acknowledged_at": a.acknowledged_at.isoformat() if a.acknowledged_at else None,
        "declined_at": a.declined_at.isoformat() if a.declined_at else None,
        "decline_reason": a.decline_reason,
        "reminders_sent": a.reminders_sent,
        "last_reminder_at": a.last_reminder_at.isoformat() if a.last_reminder_at else None,
    }
