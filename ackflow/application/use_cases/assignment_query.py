"""Shared read path: scope assignments to an organization and filter them.

Listing, export and aggregation all go through :class:`AssignmentScope`, so
a filter means the same thing on every screen.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from ackflow.application.ports.assignment_repo import AssignmentRepository, StoreCriteria
from ackflow.application.ports.directory_port import DocumentService
from ackflow.domain.entities.assignment import Assignment
from ackflow.domain.entities.directory import DocumentInfo
from ackflow.domain.errors import AggregationError, NotFoundError
from ackflow.domain.policies.query_filter import (
    Contains,
    Eq,
    Has,
    Predicate,
    Range,
    attribute_accessor,
    filter_items,
)
from ackflow.domain.policies.status_resolver import existed_at, status_as_of, status_of
from ackflow.domain.value_objects.enums import (
    AssignmentStatus,
    DocumentType,
    Priority,
)
from ackflow.domain.value_objects.escalation_policy import EscalationPolicy
from ackflow.domain.value_objects.timeutil import ensure_utc, utcnow

logger = logging.getLogger(__name__)

PRIORITY_RANK: dict[Priority, int] = {
    Priority.LOW: 0,
    Priority.MEDIUM: 1,
    Priority.HIGH: 2,
    Priority.CRITICAL: 3,
}

SEARCH_FIELDS = ("document_title", "document_id", "user_id", "department")


@dataclass(frozen=True)
class AssignmentFilter:
    department: str | None = None
    document_id: str | None = None
    document_type: DocumentType | None = None
    tag: str | None = None
    user_id: str | None = None
    priority: Priority | None = None
    status: AssignmentStatus | None = None
    due_from: datetime | None = None
    due_to: datetime | None = None
    search: str | None = None
    include_superseded: bool = False

    def store_criteria(self) -> StoreCriteria:
        return StoreCriteria(
            document_id=self.document_id,
            user_id=self.user_id,
            department=self.department,
            include_superseded=self.include_superseded,
        )

    def needs_document_metadata(self) -> bool:
        return bool(self.document_type or self.tag or self.search)

    def predicates(self) -> list[Predicate]:
        predicates: list[Predicate] = []
        if self.priority is not None:
            predicates.append(Eq("priority", self.priority))
        if self.status is not None:
            predicates.append(Eq("status", self.status))
        if self.document_type is not None:
            predicates.append(Eq("document_type", self.document_type))
        if self.tag:
            predicates.append(Has("tags", self.tag))
        if self.due_from is not None or self.due_to is not None:
            predicates.append(
                Range("due_date", ensure_utc(self.due_from), ensure_utc(self.due_to))
            )
        if self.search:
            predicates.append(Contains(SEARCH_FIELDS, self.search))
        return predicates

    def describe(self) -> dict:
        """JSON-friendly scope descriptor, omitting unset fields."""
        out: dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if value is None or value is False:
                continue
            if isinstance(value, datetime):
                value = ensure_utc(value).isoformat()
            out[name] = getattr(value, "value", value)
        return out


@dataclass
class AssignmentView:
    """An assignment with its derived status and document metadata."""

    assignment: Assignment
    status: AssignmentStatus
    document: DocumentInfo | None = None

    @property
    def id(self) -> int:
        return self.assignment.id


def view_accessor(view: AssignmentView, name: str) -> Any:
    if name == "status":
        return view.status.value
    if name == "document_title":
        return view.document.title if view.document else None
    if name == "document_type":
        return view.document.document_type.value if view.document else None
    if name == "tags":
        return view.document.tags if view.document else frozenset()
    if name == "priority_rank":
        return PRIORITY_RANK[view.assignment.priority]
    return attribute_accessor(view.assignment, name)


@dataclass
class ScopedAssignments:
    views: list[AssignmentView]
    evaluated_at: datetime
    partial: bool = False
    missing_documents: list[str] = field(default_factory=list)


class AssignmentScope:
    """Loads one organization's assignments and applies an AssignmentFilter."""

    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        documents: DocumentService,
        policy: EscalationPolicy,
        clock=utcnow,
    ):
        self._assignments = assignment_repo
        self._documents = documents
        self._policy = policy
        self._clock = clock

    async def load(
        self,
        organization_id: str,
        assignment_filter: AssignmentFilter | None = None,
        as_of: datetime | None = None,
    ) -> ScopedAssignments:
        """Return matching views, evaluated at ``as_of`` or at the current instant."""
        flt = assignment_filter or AssignmentFilter()
        as_of = ensure_utc(as_of)
        evaluated_at = as_of or self._clock()

        criteria = flt.store_criteria()
        if as_of is not None:
            # superseded rows still count up to their reassignment instant
            criteria = replace(criteria, include_superseded=True)
        assignments = await self._assignments.find(organization_id, criteria)
        if as_of is not None:
            assignments = [
                a
                for a in assignments
                if existed_at(a, as_of)
                and (flt.include_superseded or not a.is_superseded_at(as_of))
            ]

        documents, missing = await self._resolve_documents(organization_id, assignments)

        views = []
        for assignment in assignments:
            if as_of is not None:
                status = status_as_of(assignment, as_of, self._policy)
            else:
                status = status_of(assignment, evaluated_at, self._policy)
            views.append(
                AssignmentView(
                    assignment=assignment,
                    status=status,
                    document=documents.get(assignment.document_id),
                )
            )

        matched = filter_items(views, flt.predicates(), view_accessor)
        # Missing metadata only matters when a filter depends on it.
        partial = bool(missing) and flt.needs_document_metadata()
        return ScopedAssignments(
            views=matched,
            evaluated_at=evaluated_at,
            partial=partial,
            missing_documents=sorted(missing) if partial else [],
        )

    async def _resolve_documents(
        self, organization_id: str, assignments: list[Assignment]
    ) -> tuple[dict[str, DocumentInfo], set[str]]:
        documents: dict[str, DocumentInfo] = {}
        missing: set[str] = set()
        for document_id in sorted({a.document_id for a in assignments}):
            try:
                document = await self._documents.get(organization_id, document_id)
            except AggregationError:
                logger.warning(
                    "Document %s metadata unavailable for organization %s",
                    document_id, organization_id,
                )
                missing.add(document_id)
                continue
            if document is not None:
                documents[document_id] = document
        return documents, missing

    async def get_view(self, organization_id: str, assignment_id: int) -> AssignmentView:
        assignment = await self._assignments.get(organization_id, assignment_id)
        if assignment is None:
            raise NotFoundError(
                f"Assignment {assignment_id} not found", assignment_id=assignment_id
            )
        documents, _ = await self._resolve_documents(organization_id, [assignment])
        return AssignmentView(
            assignment=assignment,
            status=status_of(assignment, self._clock(), self._policy),
            document=documents.get(assignment.document_id),
        )
