"""
Record Store Interface

The persistence collaborator of the pipeline. Stores are the single source
of truth for documents, users and the audit trail.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol

from ..document import Document, DocumentStatus

if TYPE_CHECKING:
    from ..audit.audit_log import AuditEntry


DEFAULT_MAX_AUDIT_ENTRIES = 1000

STORE_FORMAT_VERSION = 1

# Record keys that ``update`` may change; id, version and created_at are
# managed by the store.
UPDATABLE_KEYS = frozenset({
    'type', 'name', 'raw_text', 'extracted_fields', 'risk_score', 'status',
    'auto_approved', 'workflow_reason', 'applied_rules', 'reviewed_by',
    'reviewed_at', 'review_comments', 'rejection_reason', 'uploaded_by',
})


class RecordStore(Protocol):
    """
    Storage operations used by the workflow.

    ``update`` applies a partial change and bumps the record version. When
    ``expected_version`` is given and differs from the stored version the
    update fails with ConcurrentModificationError and nothing is written.
    """

    def get_by_id(self, document_id: str) -> Optional[Document]:
        ...

    def add_document(self, document: Document) -> Document:
        ...

    def update(
        self,
        document_id: str,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Document:
        ...

    def delete_document(self, document_id: str) -> Document:
        ...

    def get_by_status(self, status: DocumentStatus) -> List[Document]:
        ...

    def get_by_user(self, user_id: str) -> List[Document]:
        ...

    def list_documents(self) -> List[Document]:
        ...

    def append(self, entry: 'AuditEntry') -> 'AuditEntry':
        ...

    def get_audit_logs(self) -> List['AuditEntry']:
        ...

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        ...

    def add_user(self, user: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def export_data(self) -> Dict[str, Any]:
        ...

    def import_data(self, data: Dict[str, Any]) -> Dict[str, int]:
        ...
