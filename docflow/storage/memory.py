"""
In-memory record store.

Documents are kept as plain record dicts and handed out as fresh Document
copies, so callers can never mutate stored state by accident. Every update
bumps the record version; the audit trail is capped and drops the oldest
entries first.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any, Deque, Dict, Iterable, Iterator, List, Optional

from ..document import Document, DocumentStatus, utc_now
from ..exceptions import (
    ConcurrentModificationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from .base import DEFAULT_MAX_AUDIT_ENTRIES, STORE_FORMAT_VERSION, UPDATABLE_KEYS

if TYPE_CHECKING:
    from ..audit.audit_log import AuditEntry

logger = logging.getLogger(__name__)


class InMemoryRecordStore:
    """
    Thread-safe record store held in process memory.

    Usage:
        store = InMemoryRecordStore()
        store.add_document(Document.new('inv.txt', 'invoice', text))
        store.update(doc_id, {'status': DocumentStatus.PROCESSING}, expected_version=0)
    """

    def __init__(
        self,
        max_audit_entries: int = DEFAULT_MAX_AUDIT_ENTRIES,
        users: Optional[Iterable[Dict[str, Any]]] = None,
    ):
        if max_audit_entries < 1:
            raise ValidationError(
                f"max_audit_entries must be positive, got {max_audit_entries}"
            )

        self.max_audit_entries = max_audit_entries
        self._lock = threading.RLock()
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._audit: Deque['AuditEntry'] = deque(maxlen=max_audit_entries)
        self._users: Dict[str, Dict[str, Any]] = {}

        for user in users or []:
            self.add_user(user)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @contextmanager
    def _read(self) -> Iterator[None]:
        with self._lock:
            yield

    @contextmanager
    def _write(self) -> Iterator[None]:
        """Scope of one state change; subclasses persist it on exit."""
        with self._lock:
            yield

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def get_by_id(self, document_id: str) -> Optional[Document]:
        with self._read():
            record = self._documents.get(document_id)
            return Document.from_dict(record) if record else None

    def add_document(self, document: Document) -> Document:
        with self._write():
            if document.id in self._documents:
                raise PersistenceError(
                    f"Document already exists: {document.id}",
                    details={'id': document.id},
                )
            self._documents[document.id] = document.to_dict()
            logger.debug(f"Stored document {document.id}")
            return Document.from_dict(self._documents[document.id])

    def update(
        self,
        document_id: str,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Document:
        """
        Apply a partial update and bump the version.

        Raises:
            NotFoundError: Unknown document id
            PersistenceError: A key outside UPDATABLE_KEYS was given
            ConcurrentModificationError: The stored version differs from
                ``expected_version``
        """
        unknown = set(changes) - UPDATABLE_KEYS
        if unknown:
            raise PersistenceError(
                f"Cannot update fields: {', '.join(sorted(unknown))}",
                details={'id': document_id, 'fields': sorted(unknown)},
            )

        with self._write():
            record = self._documents.get(document_id)
            if record is None:
                raise NotFoundError('document', document_id)

            if expected_version is not None and record['version'] != expected_version:
                raise ConcurrentModificationError(document_id, expected_version, record['version'])

            updated = dict(record)
            for key, value in changes.items():
                updated[key] = _to_record_value(value)
            updated['version'] = record['version'] + 1
            updated['updated_at'] = utc_now()

            self._documents[document_id] = updated
            return Document.from_dict(updated)

    def delete_document(self, document_id: str) -> Document:
        """
        Remove a document and return its last stored state.

        Raises:
            NotFoundError: Unknown document id
        """
        with self._write():
            record = self._documents.pop(document_id, None)
            if record is None:
                raise NotFoundError('document', document_id)
            logger.debug(f"Deleted document {document_id}")
            return Document.from_dict(record)

    def get_by_status(self, status: DocumentStatus) -> List[Document]:
        with self._read():
            return [
                Document.from_dict(r) for r in self._documents.values()
                if r['status'] == status.value
            ]

    def get_by_user(self, user_id: str) -> List[Document]:
        """Documents uploaded by a user."""
        with self._read():
            return [
                Document.from_dict(r) for r in self._documents.values()
                if r.get('uploaded_by') == user_id
            ]

    def list_documents(self) -> List[Document]:
        with self._read():
            return [Document.from_dict(r) for r in self._documents.values()]

    # -------------------------------------------------------------------------
    # Audit trail
    # -------------------------------------------------------------------------

    def append(self, entry: 'AuditEntry') -> 'AuditEntry':
        with self._write():
            if len(self._audit) == self.max_audit_entries:
                logger.debug(f"Audit retention cap reached, dropping {self._audit[0].id}")
            self._audit.append(entry)
            return entry

    def get_audit_logs(self) -> List['AuditEntry']:
        with self._read():
            return list(self._audit)

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._read():
            user = self._users.get(user_id)
            return dict(user) if user else None

    def add_user(self, user: Dict[str, Any]) -> Dict[str, Any]:
        if not user.get('id'):
            raise ValidationError('User record requires an id')

        with self._write():
            self._users[user['id']] = dict(user)
            return dict(user)

    # -------------------------------------------------------------------------
    # Export / import
    # -------------------------------------------------------------------------

    def export_data(self) -> Dict[str, Any]:
        """Snapshot of users, documents and the audit trail."""
        with self._read():
            data = self._state()
        data['exported_at'] = utc_now()
        return data

    def import_data(self, data: Dict[str, Any]) -> Dict[str, int]:
        """
        Replace every section present in ``data``; absent sections are kept.

        Returns:
            Number of records imported per section

        Raises:
            ValidationError: Malformed data; nothing is changed
        """
        if not isinstance(data, dict):
            raise ValidationError('Import data must be a mapping')

        try:
            sections = _parse_state(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ValidationError(f"Malformed import data: {e}") from e

        with self._write():
            self._replace(sections)

        counts = {name: len(records) for name, records in sections.items()}
        logger.info(f"Imported {counts}")
        return counts

    def _state(self) -> Dict[str, Any]:
        return {
            'format_version': STORE_FORMAT_VERSION,
            'users': [dict(u) for u in self._users.values()],
            'documents': [dict(r) for r in self._documents.values()],
            'audit_log': [entry.to_dict() for entry in self._audit],
        }

    def _replace(self, sections: Dict[str, list]) -> None:
        if 'users' in sections:
            self._users = {u['id']: u for u in sections['users']}
        if 'documents' in sections:
            self._documents = {r['id']: r for r in sections['documents']}
        if 'audit_log' in sections:
            self._audit = deque(sections['audit_log'], maxlen=self.max_audit_entries)


def _parse_state(data: Dict[str, Any]) -> Dict[str, list]:
    """Validate the sections of an exported state into store records."""
    from ..audit.audit_log import AuditEntry

    sections: Dict[str, list] = {}

    if data.get('users') is not None:
        users = []
        for user in data['users']:
            if not user.get('id'):
                raise ValueError('user record without an id')
            users.append(dict(user))
        sections['users'] = users

    if data.get('documents') is not None:
        sections['documents'] = [
            Document.from_dict(record).to_dict() for record in data['documents']
        ]

    if data.get('audit_log') is not None:
        sections['audit_log'] = [AuditEntry.from_dict(entry) for entry in data['audit_log']]

    return sections


def _to_record_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value
