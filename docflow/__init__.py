"""
DocFlow Decision Pipeline

Automated review of business documents: extract structured fields from raw
text, score the document's risk, apply an ordered rule set to decide between
auto-approval and human review, and record every decision for audit.

Features:
- Declarative document types (invoice, contract, custom types from JSON)
- Versioned, configurable risk model
- Short-circuiting rule engine with explainable decisions
- Append-only audit trail with CSV export
- Manual review with a strict status state machine
- In-memory and JSON-file record stores, with JSON export and import

Quick Start:
    from docflow import DocumentWorkflow, InMemoryRecordStore

    workflow = DocumentWorkflow(InMemoryRecordStore())
    doc = workflow.add_document('inv-100.txt', 'invoice', text)
    decision = workflow.process_document(doc.id)
    print(decision.status, decision.reason)

    # Extraction and scoring only
    analysis = workflow.analyze(text, 'invoice')
    print(analysis.fields, analysis.risk_score)

CLI Usage:
    docflow add invoice.pdf --type invoice --process
    docflow pending
    docflow approve <id> --reviewer <user id>
    docflow audit-export -o audit.csv
"""

__version__ = '1.0.0'
__author__ = 'Document Intelligence Team'

# Errors
from .exceptions import (
    DocflowError,
    NotFoundError,
    ValidationError,
    ExtractionError,
    PersistenceError,
    ConcurrentModificationError,
)

# Records
from .document import Document, DocumentStatus
from .identity import Actor, SYSTEM_ACTOR, IdentityProvider

# Document types
from .doctypes.document_type import (
    DocumentType,
    FieldDefinition,
    FieldType,
    create_field,
)
from .doctypes.registry import DocumentTypeRegistry, get_registry
from .doctypes.builtin_types import (
    INVOICE_TYPE,
    CONTRACT_TYPE,
    register_builtin_types,
)
from .doctypes.extractors import PatternExtractor

# Scoring and decisions
from .scoring.risk_scorer import RiskScorer, RiskModel
from .decision.decision_engine import (
    Decision,
    Rule,
    RuleResult,
    NoMatch,
    Matched,
    NO_MATCH,
    RuleThresholds,
    RuleEngine,
)

# Audit and storage
from .audit.audit_log import AuditAction, AuditEntry, AuditLog
from .audit.recorder import DecisionRecorder
from .storage.memory import InMemoryRecordStore
from .storage.json_store import JsonFileRecordStore

# Configuration and workflow
from .config import DocflowConfig, load_config
from .sources import TextSource, PlainTextSource, PdfTextSource
from .workflow import DocumentWorkflow, DocumentAnalysis

# Initialize built-in types on import
register_builtin_types()

__all__ = [
    # Version
    '__version__',

    # Errors
    'DocflowError',
    'NotFoundError',
    'ValidationError',
    'ExtractionError',
    'PersistenceError',
    'ConcurrentModificationError',

    # Records
    'Document',
    'DocumentStatus',
    'Actor',
    'SYSTEM_ACTOR',
    'IdentityProvider',

    # Document types
    'DocumentType',
    'FieldDefinition',
    'FieldType',
    'create_field',
    'DocumentTypeRegistry',
    'get_registry',
    'INVOICE_TYPE',
    'CONTRACT_TYPE',
    'register_builtin_types',
    'PatternExtractor',

    # Scoring and decisions
    'RiskScorer',
    'RiskModel',
    'Decision',
    'Rule',
    'RuleResult',
    'NoMatch',
    'Matched',
    'NO_MATCH',
    'RuleThresholds',
    'RuleEngine',

    # Audit and storage
    'AuditAction',
    'AuditEntry',
    'AuditLog',
    'DecisionRecorder',
    'InMemoryRecordStore',
    'JsonFileRecordStore',

    # Configuration and workflow
    'DocflowConfig',
    'load_config',
    'TextSource',
    'PlainTextSource',
    'PdfTextSource',
    'DocumentWorkflow',
    'DocumentAnalysis',
]
