"""Port interfaces for the document and user directories."""

from abc import ABC, abstractmethod

from ackflow.domain.entities.directory import DocumentInfo, UserInfo


class DocumentService(ABC):
    @abstractmethod
    async def get(self, organization_id: str, document_id: str) -> DocumentInfo | None:
        """Return the document or ``None``.

        Raises:
            AggregationError: the directory is temporarily unavailable.
        """
        ...


class UserDirectory(ABC):
    @abstractmethod
    async def get(self, organization_id: str, user_id: str) -> UserInfo | None:
        ...

    @abstractmethod
    async def list_by_department(
        self, organization_id: str, department: str
    ) -> list[UserInfo]:
        """Active users of one department."""
        ...
