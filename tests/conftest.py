"""
Shared fixtures for the DocFlow test suite.
"""

import pytest

from docflow.document import Document, DocumentStatus
from docflow.storage.memory import InMemoryRecordStore
from docflow.workflow import DocumentWorkflow


SAMPLE_INVOICE = (
    "Invoice #A100 dated Jan 5, 2024 for $1,200 from Acme Corp, contact a@b.com"
)

SAMPLE_CONTRACT = (
    "Service Agreement AGR-2024-07\n"
    "This agreement is made between John Smith and Jane Doe of Beta LLC.\n"
    "Effective 01/15/2024 and expiring 01/15/2026, for a term of 2 years.\n"
    "Total contract value: $8,500 payable monthly\n"
)


def make_document(
    document_type: str = 'invoice',
    fields=None,
    risk_score: int = 0,
    status: DocumentStatus = DocumentStatus.PROCESSING,
) -> Document:
    """Build an unsaved document snapshot for rule tests."""
    return Document(
        id='doc_test',
        type=document_type,
        name='test.txt',
        extracted_fields=dict(fields or {}),
        risk_score=risk_score,
        status=status,
    )


@pytest.fixture
def store():
    return InMemoryRecordStore(users=[
        {'id': 'u_alice', 'username': 'alice', 'role': 'reviewer'},
    ])


@pytest.fixture
def workflow(store):
    return DocumentWorkflow(store)
