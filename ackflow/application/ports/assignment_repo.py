"""Port interface for assignment persistence (the AssignmentStore)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ackflow.domain.entities.assignment import Assignment


@dataclass(frozen=True)
class StoreCriteria:
    """Equality filters cheap enough to push down into the store query."""

    document_id: str | None = None
    user_id: str | None = None
    department: str | None = None
    include_superseded: bool = False


class AssignmentRepository(ABC):
    @abstractmethod
    async def add(self, assignment: Assignment) -> Assignment:
        """Persist a new assignment; sets ``id`` and ``version = 1``."""
        ...

    @abstractmethod
    async def get(self, organization_id: str, assignment_id: int) -> Assignment | None:
        ...

    @abstractmethod
    async def get_by_id(self, assignment_id: int) -> Assignment | None:
        """Unscoped lookup, reserved for the background scheduler."""
        ...

    @abstractmethod
    async def find(
        self, organization_id: str, criteria: StoreCriteria | None = None
    ) -> list[Assignment]:
        """All assignments of one organization matching ``criteria``."""
        ...

    @abstractmethod
    async def find_open_for_user_document(
        self, organization_id: str, user_id: str, document_id: str
    ) -> list[Assignment]:
        ...

    @abstractmethod
    async def get_open_ids(self) -> list[int]:
        """Ids of every assignment without a terminal fact, across organizations."""
        ...

    @abstractmethod
    async def update(self, assignment: Assignment, expected_version: int) -> Assignment:
        """Compare-and-swap write.

        Writes the mutable fields only if the stored version still equals
        ``expected_version``; bumps ``version`` on success.

        Raises:
            ConflictError: the stored version moved on.
            NotFoundError: the assignment does not exist.
        """
        ...
