"""
Document Model

The record the pipeline reads and updates, plus the status state machine.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any, FrozenSet


def utc_now() -> str:
    """Current UTC time as ISO-8601 text."""
    return datetime.now(timezone.utc).isoformat()


class DocumentStatus(Enum):
    """Lifecycle status of a document."""

    PENDING = 'pending'
    PROCESSING = 'processing'
    NEEDS_REVIEW = 'needs-review'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    @property
    def is_terminal(self) -> bool:
        """Approved and rejected documents never change status again."""
        return self in (DocumentStatus.APPROVED, DocumentStatus.REJECTED)

    def can_transition(self, target: 'DocumentStatus') -> bool:
        """Check whether ``self -> target`` is an edge of the state machine."""
        return target in _TRANSITIONS[self]


# A flagged document leaves NEEDS_REVIEW only by manual approval or
# rejection. Manual review may also short-cut a document that never reached
# NEEDS_REVIEW.
_TRANSITIONS: Dict[DocumentStatus, FrozenSet[DocumentStatus]] = {
    DocumentStatus.PENDING: frozenset({
        DocumentStatus.PROCESSING,
        DocumentStatus.APPROVED,
        DocumentStatus.REJECTED,
    }),
    DocumentStatus.PROCESSING: frozenset({
        DocumentStatus.NEEDS_REVIEW,
        DocumentStatus.APPROVED,
        DocumentStatus.REJECTED,
    }),
    DocumentStatus.NEEDS_REVIEW: frozenset({
        DocumentStatus.APPROVED,
        DocumentStatus.REJECTED,
    }),
    DocumentStatus.APPROVED: frozenset(),
    DocumentStatus.REJECTED: frozenset(),
}


@dataclass
class Document:
    """
    A business document moving through the review pipeline.

    ``extracted_fields`` may be partially populated: an absent key means the
    extractor found nothing, which is different from an empty string.
    """

    id: str
    type: str
    raw_text: str = ''
    name: str = ''
    extracted_fields: Dict[str, str] = field(default_factory=dict)
    risk_score: int = 0
    status: DocumentStatus = DocumentStatus.PENDING
    auto_approved: bool = False
    workflow_reason: str = ''
    applied_rules: List[str] = field(default_factory=list)

    # Set only by manual review
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[str] = None
    review_comments: Optional[str] = None
    rejection_reason: Optional[str] = None

    uploaded_by: Optional[str] = None
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)
    version: int = 0

    @classmethod
    def new(
        cls,
        name: str,
        document_type: str,
        raw_text: str = '',
        uploaded_by: Optional[str] = None,
    ) -> 'Document':
        """Create a pending document with a fresh identifier."""
        return cls(
            id=f"doc_{uuid.uuid4().hex[:12]}",
            type=document_type,
            raw_text=raw_text or '',
            name=name,
            uploaded_by=uploaded_by,
        )

    @property
    def field_count(self) -> int:
        """Number of distinct extracted fields."""
        return len(self.extracted_fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the record form used by stores."""
        return {
            'id': self.id,
            'type': self.type,
            'name': self.name,
            'raw_text': self.raw_text,
            'extracted_fields': dict(self.extracted_fields),
            'risk_score': self.risk_score,
            'status': self.status.value,
            'auto_approved': self.auto_approved,
            'workflow_reason': self.workflow_reason,
            'applied_rules': list(self.applied_rules),
            'reviewed_by': self.reviewed_by,
            'reviewed_at': self.reviewed_at,
            'review_comments': self.review_comments,
            'rejection_reason': self.rejection_reason,
            'uploaded_by': self.uploaded_by,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
            'version': self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Document':
        """Create from a stored record."""
        status = data.get('status', DocumentStatus.PENDING.value)
        if not isinstance(status, DocumentStatus):
            status = DocumentStatus(status)

        return cls(
            id=data['id'],
            type=data.get('type', ''),
            raw_text=data.get('raw_text') or '',
            name=data.get('name', ''),
            extracted_fields=dict(data.get('extracted_fields') or {}),
            risk_score=int(data.get('risk_score') or 0),
            status=status,
            auto_approved=bool(data.get('auto_approved', False)),
            workflow_reason=data.get('workflow_reason', ''),
            applied_rules=list(data.get('applied_rules') or []),
            reviewed_by=data.get('reviewed_by'),
            reviewed_at=data.get('reviewed_at'),
            review_comments=data.get('review_comments'),
            rejection_reason=data.get('rejection_reason'),
            uploaded_by=data.get('uploaded_by'),
            created_at=data.get('created_at') or utc_now(),
            updated_at=data.get('updated_at') or utc_now(),
            version=int(data.get('version', 0)),
        )
