"""Read-only views of collaborator records (documents and users)."""

from dataclasses import dataclass, field

from ackflow.domain.value_objects.enums import DocumentType


@dataclass(frozen=True)
class DocumentInfo:
    id: str
    organization_id: str
    title: str
    version: str = "1.0"
    department: str | None = None
    document_type: DocumentType = DocumentType.SOP
    tags: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class UserInfo:
    id: str
    organization_id: str
    name: str
    email: str | None = None
    department: str | None = None
    manager_id: str | None = None
    active: bool = True
