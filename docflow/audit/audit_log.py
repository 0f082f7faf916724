"""
Audit Log

Append-only record of every system action, with query helpers, CSV export
and summary statistics.

Entries are immutable. The only way an entry disappears is the store's
retention cap, which drops the oldest entries first.
"""

from __future__ import annotations

import csv
import io
import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, List, Dict, Any, Union

from ..document import Document, utc_now
from ..identity import Actor, SYSTEM_ACTOR

if TYPE_CHECKING:
    from ..storage.base import RecordStore

logger = logging.getLogger(__name__)


class AuditAction(Enum):
    """Action tags written to the audit log."""

    # User actions
    LOGIN = 'login'
    LOGOUT = 'logout'

    # Document actions
    UPLOAD = 'upload_document'
    VIEW = 'view_document'
    DELETE = 'delete_document'

    # Processing actions
    OCR_START = 'ocr_start'
    OCR_COMPLETE = 'ocr_complete'
    OCR_FAILED = 'ocr_failed'
    NLP_PROCESS = 'nlp_process'
    AI_ANALYSIS = 'ai_analysis'

    # Workflow actions
    AUTO_APPROVE = 'auto_approve'
    FLAG_REVIEW = 'flag_for_review'
    APPROVE = 'approve'
    REJECT = 'reject'

    # System actions
    SYSTEM_ERROR = 'system_error'


@dataclass(frozen=True)
class AuditEntry:
    """One audited action."""

    id: str
    timestamp: str
    action: str
    user_id: Optional[str] = None
    user_name: str = SYSTEM_ACTOR.name
    document_id: Optional[str] = None
    document_name: Optional[str] = None
    details: str = ''
    comments: str = ''
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        action: Union[AuditAction, str],
        actor: Optional[Actor] = None,
        document: Optional[Document] = None,
        details: str = '',
        comments: str = '',
        metadata: Optional[Dict[str, Any]] = None,
        document_id: Optional[str] = None,
    ) -> 'AuditEntry':
        """Build an entry with a fresh identifier and the current UTC time."""
        actor = actor or SYSTEM_ACTOR
        if isinstance(action, AuditAction):
            action = action.value

        return cls(
            id=f"log_{uuid.uuid4().hex[:12]}",
            timestamp=utc_now(),
            action=action,
            user_id=actor.id,
            user_name=actor.name,
            document_id=document.id if document else document_id,
            document_name=(document.name or None) if document else None,
            details=details or '',
            comments=comments or '',
            metadata=dict(metadata or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'action': self.action,
            'user_id': self.user_id,
            'user_name': self.user_name,
            'document_id': self.document_id,
            'document_name': self.document_name,
            'details': self.details,
            'comments': self.comments,
            'metadata': dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditEntry':
        """Create from dictionary."""
        return cls(
            id=data['id'],
            timestamp=data['timestamp'],
            action=data['action'],
            user_id=data.get('user_id'),
            user_name=data.get('user_name') or SYSTEM_ACTOR.name,
            document_id=data.get('document_id'),
            document_name=data.get('document_name'),
            details=data.get('details', ''),
            comments=data.get('comments', ''),
            metadata=dict(data.get('metadata') or {}),
        )


CSV_HEADER = ['Timestamp', 'User', 'Action', 'Document', 'Details', 'Comments']


def _parse_time(value: Union[str, datetime]) -> datetime:
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class AuditLog:
    """
    Query and export facade over a store's audit trail.

    Usage:
        audit = AuditLog(store)
        audit.log(AuditAction.UPLOAD, actor=user, document=doc)
        csv_text = audit.export_to_csv()
    """

    def __init__(self, store: 'RecordStore'):
        self.store = store

    def log(
        self,
        action: Union[AuditAction, str],
        actor: Optional[Actor] = None,
        document: Optional[Document] = None,
        details: str = '',
        comments: str = '',
        metadata: Optional[Dict[str, Any]] = None,
        document_id: Optional[str] = None,
    ) -> AuditEntry:
        """
        Append an entry.

        Raises:
            PersistenceError: If the store cannot write the entry
        """
        entry = AuditEntry.create(
            action,
            actor=actor,
            document=document,
            details=details,
            comments=comments,
            metadata=metadata,
            document_id=document_id,
        )
        return self.store.append(entry)

    def get_logs(self) -> List[AuditEntry]:
        """All retained entries, oldest first."""
        return self.store.get_audit_logs()

    def get_document_logs(self, document_id: str) -> List[AuditEntry]:
        return [e for e in self.get_logs() if e.document_id == document_id]

    def get_user_logs(self, user_id: str) -> List[AuditEntry]:
        return [e for e in self.get_logs() if e.user_id == user_id]

    def get_logs_by_action(self, action: Union[AuditAction, str]) -> List[AuditEntry]:
        if isinstance(action, AuditAction):
            action = action.value
        return [e for e in self.get_logs() if e.action == action]

    def get_logs_by_date_range(
        self,
        start: Union[str, datetime],
        end: Union[str, datetime],
    ) -> List[AuditEntry]:
        """Entries with start <= timestamp <= end (naive times are UTC)."""
        start_dt = _parse_time(start)
        end_dt = _parse_time(end)
        return [
            e for e in self.get_logs()
            if start_dt <= _parse_time(e.timestamp) <= end_dt
        ]

    def export_to_csv(self) -> str:
        """
        Export the audit trail as CSV.

        Every field is wrapped in double quotes and embedded quotes are
        doubled; entries without a document show "N/A".
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')

        # Header is written bare
        buffer.write(','.join(CSV_HEADER) + '\n')

        for entry in self.get_logs():
            writer.writerow([
                entry.timestamp,
                entry.user_name,
                entry.action,
                entry.document_name or 'N/A',
                entry.details,
                entry.comments or '',
            ])

        return buffer.getvalue()

    def get_statistics(self, recent: int = 10) -> Dict[str, Any]:
        """Counts by action and by user plus the most recent entries."""
        logs = self.get_logs()

        by_action = Counter(e.action for e in logs)
        by_user = Counter(e.user_name for e in logs)
        recent_activity = sorted(logs, key=lambda e: _parse_time(e.timestamp), reverse=True)[:recent]

        return {
            'total_logs': len(logs),
            'by_action': dict(by_action),
            'by_user': dict(by_user),
            'recent_activity': recent_activity,
        }
