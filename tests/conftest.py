"""Pytest configuration and shared fixtures."""

import pytest

from ackflow.application.use_cases.audit_recorder import AuditRecorder
from ackflow.domain.entities.directory import DocumentInfo, UserInfo
from ackflow.domain.value_objects.enums import DocumentType
from ackflow.domain.value_objects.escalation_policy import EscalationPolicy
from tests.fakes import (
    FakeClock,
    FakeDocumentService,
    FakeNotifier,
    FakeUnitOfWork,
    FakeUserDirectory,
    InMemoryAssignmentRepository,
    InMemoryAuditRepository,
)

ORG = "org-1"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def policy():
    return EscalationPolicy()


@pytest.fixture
def assignment_repo():
    return InMemoryAssignmentRepository()


@pytest.fixture
def audit_repo():
    return InMemoryAuditRepository()


@pytest.fixture
def recorder(audit_repo, clock):
    return AuditRecorder(audit_repo, clock=clock)


@pytest.fixture
def sample_documents():
    return [
        DocumentInfo(
            id="sop-1", organization_id=ORG, title="Cleanroom Gowning",
            version="2.1", department="Lab", tags=frozenset({"safety", "gmp"}),
        ),
        DocumentInfo(
            id="pol-7", organization_id=ORG, title="Data Retention Policy",
            document_type=DocumentType.POLICY, tags=frozenset({"it"}),
        ),
    ]


@pytest.fixture
def sample_users():
    return [
        UserInfo(id="boss", organization_id=ORG, name="Dana Boss", department="Lab"),
        UserInfo(id="u1", organization_id=ORG, name="Ari", department="Lab", manager_id="boss"),
        UserInfo(id="u2", organization_id=ORG, name="Bo", department="Lab", manager_id="boss"),
        UserInfo(id="u3", organization_id=ORG, name="Cy", department="QA"),
        UserInfo(id="gone", organization_id=ORG, name="Ex", department="Lab", active=False),
        UserInfo(id="x1", organization_id="org-2", name="Other", department="Lab"),
    ]


@pytest.fixture
def documents(sample_documents):
    return FakeDocumentService(sample_documents)


@pytest.fixture
def users(sample_users):
    return FakeUserDirectory(sample_users)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def uow():
    return FakeUnitOfWork()
