"""ComplianceStatsUseCase — roll assignment statuses into dashboard snapshots."""

from __future__ import annotations

import logging
from datetime import datetime

from ackflow.application.use_cases.assignment_query import (
    AssignmentFilter,
    AssignmentScope,
    AssignmentView,
)
from ackflow.domain.entities.compliance_snapshot import ComplianceSnapshot
from ackflow.domain.errors import ValidationError
from ackflow.domain.policies.compliance import build_snapshot, group_key_for
from ackflow.domain.value_objects.enums import GroupBy
from ackflow.domain.value_objects.timeutil import ensure_utc, utcnow

logger = logging.getLogger(__name__)


class ComplianceStatsUseCase:
    """Counts and half-up percentages per status, optionally grouped.

    With ``as_of`` the snapshot is evaluated at that past instant from facts
    recorded up to it, so replaying a historical snapshot yields the same
    numbers.
    """

    def __init__(self, scope: AssignmentScope, clock=utcnow):
        self._scope = scope
        self._clock = clock

    async def execute(
        self,
        organization_id: str,
        assignment_filter: AssignmentFilter | None = None,
        group_by: GroupBy | None = None,
        as_of: datetime | None = None,
    ) -> ComplianceSnapshot | list[ComplianceSnapshot]:
        flt = assignment_filter or AssignmentFilter()
        computed_at = self._clock()
        as_of = ensure_utc(as_of)
        if as_of is not None and as_of > computed_at:
            raise ValidationError("as_of must not be in the future", as_of=as_of.isoformat())

        scoped = await self._scope.load(organization_id, flt, as_of=as_of)
        scope = {"organization_id": organization_id, **flt.describe()}

        if group_by is None:
            snapshot = self._snapshot(scoped.views, scope, computed_at, as_of)
            snapshot.partial = scoped.partial
            snapshot.missing_documents = list(scoped.missing_documents)
            return snapshot

        buckets: dict[str, list[AssignmentView]] = {}
        for view in scoped.views:
            buckets.setdefault(group_key_for(view.assignment, group_by), []).append(view)

        series = []
        for key in sorted(buckets):
            snapshot = self._snapshot(
                buckets[key], {**scope, "group_by": group_by.value}, computed_at, as_of, key
            )
            snapshot.partial = scoped.partial
            snapshot.missing_documents = list(scoped.missing_documents)
            series.append(snapshot)

        logger.debug(
            "Computed %d %s groups for organization %s",
            len(series), group_by.value, organization_id,
        )
        return series

    @staticmethod
    def _snapshot(
        views: list[AssignmentView],
        scope: dict,
        computed_at: datetime,
        as_of: datetime | None,
        group_key: str | None = None,
    ) -> ComplianceSnapshot:
        return build_snapshot(
            (view.status for view in views),
            scope=scope,
            computed_at=computed_at,
            group_key=group_key,
            as_of=as_of,
        )
