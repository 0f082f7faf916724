"""
Document Workflow

Entry points of the decision pipeline:

    raw text ──► PatternExtractor ──► RiskScorer ──► RuleEngine ──► DecisionRecorder
                  (fields)             (0..10)        (Decision)     (store + audit)

plus manual review (approve / reject), review queue and statistics.

Each call that touches a document runs its read, compute, write and audit
steps under a per-document lock, and every store write carries the version
it was computed from. Errors raised at this boundary are written to the
audit log as system_error entries before they propagate.
"""

from __future__ import annotations

import logging
import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .audit.audit_log import AuditAction, AuditLog
from .audit.recorder import DecisionRecorder
from .config import DocflowConfig
from .decision.decision_engine import Decision, RuleEngine
from .document import Document, DocumentStatus, utc_now
from .doctypes.extractors import PatternExtractor
from .doctypes.registry import DocumentTypeRegistry, get_registry
from .exceptions import DocflowError, ExtractionError, NotFoundError, ValidationError
from .identity import Actor, IdentityProvider, resolve_actor
from .parser.keywords import extract_keywords
from .parser.summary import generate_summary
from .scoring.risk_scorer import RiskBreakdown, RiskScorer
from .sources import TextSource, source_for
from .storage.base import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class DocumentAnalysis:
    """Fields, risk, keywords and summary computed for a text, without storing anything."""

    document_type: str
    fields: Dict[str, str] = field(default_factory=dict)
    risk_score: int = 0
    risk: Optional[RiskBreakdown] = None
    keywords: List[str] = field(default_factory=list)
    summary: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'document_type': self.document_type,
            'fields': dict(self.fields),
            'risk_score': self.risk_score,
            'risk': self.risk.to_dict() if self.risk else None,
            'keywords': list(self.keywords),
            'summary': self.summary,
        }


class DocumentWorkflow:
    """
    Orchestrates extraction, scoring, decisions and manual review.

    Usage:
        workflow = DocumentWorkflow(InMemoryRecordStore())
        doc = workflow.add_document('inv-100.txt', 'invoice', text)
        decision = workflow.process_document(doc.id)

        if decision.needs_review:
            workflow.approve_document(doc.id, reviewer_id='u_1', comments='Checked')
    """

    def __init__(
        self,
        store: RecordStore,
        config: Optional[DocflowConfig] = None,
        registry: Optional[DocumentTypeRegistry] = None,
        identity: Optional[IdentityProvider] = None,
    ):
        """
        Initialize workflow.

        Args:
            store: Record store for documents, users and the audit trail
            config: Pipeline configuration (defaults if None)
            registry: Document type registry (global registry if None)
            identity: Provider of the current actor when none is passed
        """
        self.store = store
        self.config = config or DocflowConfig()
        self.registry = registry or get_registry()
        self.identity = identity

        if self.config.document_type_files:
            self.config.load_document_types(self.registry)

        self.extractor = PatternExtractor(self.registry)
        self.scorer = RiskScorer(self.config.risk_model)
        self.engine = RuleEngine(thresholds=self.config.rules, registry=self.registry)
        self.audit_log = AuditLog(store)
        self.recorder = DecisionRecorder(store, self.audit_log)

        # Entries vanish once no caller holds the lock
        self._locks: 'weakref.WeakValueDictionary[str, threading.Lock]' = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # -------------------------------------------------------------------------
    # Intake
    # -------------------------------------------------------------------------

    def add_document(
        self,
        name: str,
        document_type: str,
        raw_text: str,
        actor: Optional[Actor] = None,
    ) -> Document:
        """
        Store a new pending document.

        Raises:
            ValidationError: Blank name or non-text content
        """
        actor = resolve_actor(actor, self.identity)
        with self._guard('add_document', actor):
            if not name or not name.strip():
                raise ValidationError('Document name is required')
            if raw_text is not None and not isinstance(raw_text, str):
                raise ValidationError(
                    f"Document text must be a string, got {type(raw_text).__name__}"
                )
            if self.registry.get(document_type) is None:
                logger.warning(f"Document type '{document_type}' is not registered")

            document = Document.new(name, document_type, raw_text or '', uploaded_by=actor.id)
            document = self.store.add_document(document)

            self.audit_log.log(
                AuditAction.UPLOAD,
                actor=actor,
                document=document,
                details=f"Uploaded {document_type} document",
                metadata={'characters': len(document.raw_text)},
            )
            logger.info(f"Added document {document.id} ({document_type})")
            return document

    def ingest(
        self,
        path: Union[str, Path],
        document_type: str,
        source: Optional[TextSource] = None,
        actor: Optional[Actor] = None,
    ) -> Document:
        """
        Read a file through a text source and store it as a new document.

        Raises:
            ExtractionError: The source could not produce text
        """
        path = Path(path)
        source = source or source_for(path)
        actor = resolve_actor(actor, self.identity)

        with self._guard('ingest', actor):
            self.audit_log.log(
                AuditAction.OCR_START,
                actor=actor,
                details=f"Reading text from {path.name}",
            )
            try:
                text = source.produce_text(path)
            except ExtractionError as e:
                self.audit_log.log(
                    AuditAction.OCR_FAILED,
                    actor=actor,
                    details=e.message,
                    metadata={'path': str(path)},
                )
                raise

            self.audit_log.log(
                AuditAction.OCR_COMPLETE,
                actor=actor,
                details=f"Read {len(text)} characters from {path.name}",
            )

        return self.add_document(path.name, document_type, text, actor=actor)

    # -------------------------------------------------------------------------
    # Automated pipeline
    # -------------------------------------------------------------------------

    def analyze(self, text: str, document_type: str) -> DocumentAnalysis:
        """Extract, score and summarize a text without touching the store."""
        fields = self.extractor.extract(text, document_type)
        breakdown = self.scorer.explain(text, fields)
        return DocumentAnalysis(
            document_type=document_type,
            fields=fields,
            risk_score=breakdown.score,
            risk=breakdown,
            keywords=extract_keywords(text or ''),
            summary=generate_summary(text or '', fields, document_type),
        )

    def process_document(self, document_id: str, actor: Optional[Actor] = None) -> Decision:
        """
        Run extraction, scoring and the rule engine, then record the decision.

        Processes a pending document. A run that failed after marking
        the document as processing leaves it in that status without a
        decision; calling process_document again resumes it. Flagged
        documents wait for a reviewer and are never re-decided automatically.

        Args:
            document_id: Stored document id
            actor: Who triggered processing

        Returns:
            The recorded Decision

        Raises:
            NotFoundError: Unknown document id
            ValidationError: Document is flagged for review, approved or rejected
            PersistenceError: Store failure or concurrent modification
        """
        actor = resolve_actor(actor, self.identity)
        with self._guard('process_document', actor, document_id):
            with self._document_lock(document_id):
                document = self._require(document_id)

                status = document.status
                if status not in (DocumentStatus.PENDING, DocumentStatus.PROCESSING):
                    raise ValidationError(
                        f"Cannot process document with status '{status.value}'",
                        details={'id': document_id, 'status': status.value},
                    )

                analysis = self.analyze(document.raw_text, document.type)

                document = self.store.update(
                    document_id,
                    {
                        'status': DocumentStatus.PROCESSING,
                        'extracted_fields': analysis.fields,
                        'risk_score': analysis.risk_score,
                    },
                    expected_version=document.version,
                )
                self.audit_log.log(
                    AuditAction.NLP_PROCESS,
                    actor=actor,
                    document=document,
                    details=(
                        f"Extracted {len(analysis.fields)} fields, "
                        f"risk score {analysis.risk_score}/10"
                    ),
                    metadata={
                        'fields': sorted(analysis.fields),
                        'risk': analysis.risk.to_dict() if analysis.risk else None,
                    },
                )

                decision = self.engine.evaluate_rules(document)
                self.recorder.record(document, decision, actor)
                return decision

    # -------------------------------------------------------------------------
    # Manual review
    # -------------------------------------------------------------------------

    def approve_document(
        self,
        document_id: str,
        reviewer_id: str,
        comments: str = '',
    ) -> Dict[str, Any]:
        """
        Approve a document on behalf of a reviewer.

        Raises:
            NotFoundError: Unknown document id
            ValidationError: Blank reviewer or a terminal document
        """
        with self._guard('approve_document', resolve_actor(None, self.identity), document_id):
            with self._document_lock(document_id):
                document = self._require(document_id)
                reviewer = self._reviewer(reviewer_id)
                self._check_review_transition(document, DocumentStatus.APPROVED, 'approve')

                document = self.store.update(
                    document_id,
                    {
                        'status': DocumentStatus.APPROVED,
                        'reviewed_by': reviewer.id,
                        'reviewed_at': utc_now(),
                        'review_comments': comments or '',
                    },
                    expected_version=document.version,
                )
                self.audit_log.log(
                    AuditAction.APPROVE,
                    actor=reviewer,
                    document=document,
                    details='Document approved',
                    comments=comments or '',
                )

        logger.info(f"Document {document_id} approved by {reviewer.name}")
        return {'success': True, 'message': 'Document approved successfully'}

    def reject_document(
        self,
        document_id: str,
        reviewer_id: str,
        reason: str,
    ) -> Dict[str, Any]:
        """
        Reject a document; a non-blank reason is required.

        Raises:
            NotFoundError: Unknown document id
            ValidationError: Blank reason, blank reviewer or a terminal document
        """
        with self._guard('reject_document', resolve_actor(None, self.identity), document_id):
            with self._document_lock(document_id):
                document = self._require(document_id)
                reviewer = self._reviewer(reviewer_id)

                if not reason or not reason.strip():
                    raise ValidationError(
                        'Rejection reason is required',
                        details={'id': document_id},
                    )
                self._check_review_transition(document, DocumentStatus.REJECTED, 'reject')

                document = self.store.update(
                    document_id,
                    {
                        'status': DocumentStatus.REJECTED,
                        'reviewed_by': reviewer.id,
                        'reviewed_at': utc_now(),
                        'rejection_reason': reason,
                    },
                    expected_version=document.version,
                )
                self.audit_log.log(
                    AuditAction.REJECT,
                    actor=reviewer,
                    document=document,
                    details='Document rejected',
                    comments=reason,
                )

        logger.info(f"Document {document_id} rejected by {reviewer.name}")
        return {'success': True, 'message': 'Document rejected'}

    def delete_document(self, document_id: str, actor: Optional[Actor] = None) -> Dict[str, Any]:
        """
        Remove a document. The audit trail keeps its history.

        Raises:
            NotFoundError: Unknown document id
        """
        actor = resolve_actor(actor, self.identity)
        with self._guard('delete_document', actor, document_id):
            with self._document_lock(document_id):
                document = self.store.delete_document(document_id)
                self.audit_log.log(
                    AuditAction.DELETE,
                    actor=actor,
                    document=document,
                    details=f"Deleted {document.type} document",
                    metadata={'status': document.status.value},
                )

        logger.info(f"Document {document_id} deleted by {actor.name}")
        return {'success': True, 'message': 'Document deleted'}

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_document(self, document_id: str) -> Document:
        """Fetch a document or raise NotFoundError."""
        return self._require(document_id)

    def get_pending_reviews(self) -> List[Document]:
        """Documents waiting for a reviewer."""
        return self.store.get_by_status(DocumentStatus.NEEDS_REVIEW)

    def get_documents_by_user(self, user_id: str) -> List[Document]:
        """Documents uploaded by a user."""
        return self.store.get_by_user(user_id)

    def get_statistics(self) -> Dict[str, Any]:
        """Counts by outcome and the average risk score."""
        documents = self.store.list_documents()
        total = len(documents)

        average = 0
        if total:
            average = round(sum(d.risk_score or 0 for d in documents) / total, 2)

        return {
            'total': total,
            'auto_approved': sum(1 for d in documents if d.auto_approved),
            'manually_reviewed': sum(1 for d in documents if d.reviewed_by),
            'pending': sum(1 for d in documents if d.status is DocumentStatus.NEEDS_REVIEW),
            'approved': sum(1 for d in documents if d.status is DocumentStatus.APPROVED),
            'rejected': sum(1 for d in documents if d.status is DocumentStatus.REJECTED),
            'average_risk_score': average,
        }

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require(self, document_id: str) -> Document:
        document = self.store.get_by_id(document_id)
        if document is None:
            raise NotFoundError('document', document_id)
        return document

    def _reviewer(self, reviewer_id: str) -> Actor:
        if not reviewer_id or not str(reviewer_id).strip():
            raise ValidationError('Reviewer id is required')
        user = self.store.get_user(reviewer_id)
        name = (user or {}).get('username') or 'Unknown'
        return Actor(id=reviewer_id, name=name)

    @staticmethod
    def _check_review_transition(document: Document, target: DocumentStatus, verb: str) -> None:
        if not document.status.can_transition(target):
            raise ValidationError(
                f"Cannot {verb} document with status '{document.status.value}'",
                details={'id': document.id, 'status': document.status.value},
            )

    def _document_lock(self, document_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(document_id)
            if lock is None:
                lock = self._locks[document_id] = threading.Lock()
            return lock

    @contextmanager
    def _guard(
        self,
        operation: str,
        actor: Actor,
        document_id: Optional[str] = None,
    ) -> Iterator[None]:
        """Write failures to the audit log as system_error entries, then re-raise."""
        try:
            yield
        except DocflowError as e:
            logger.error(f"{operation} failed: {e.message}")
            self._audit_failure(operation, actor, document_id, e.message, e.to_dict())
            raise
        except Exception as e:
            logger.exception(f"{operation} failed unexpectedly: {e}")
            self._audit_failure(operation, actor, document_id, str(e), {
                'error_code': DocflowError.error_code,
                'error_type': type(e).__name__,
                'message': str(e),
                'details': {},
            })
            raise

    def _audit_failure(
        self,
        operation: str,
        actor: Actor,
        document_id: Optional[str],
        message: str,
        metadata: Dict[str, Any],
    ) -> None:
        try:
            self.audit_log.log(
                AuditAction.SYSTEM_ERROR,
                actor=actor,
                document_id=document_id,
                details=f"{operation}: {message}",
                metadata=metadata,
            )
        except Exception as audit_error:
            logger.error(f"Could not audit {operation} failure: {audit_error}")
