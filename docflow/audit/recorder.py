"""
Decision Recorder

Persists a decision onto its document and appends the matching audit entry.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from ..decision.decision_engine import Decision
from ..document import Document
from ..identity import Actor, SYSTEM_ACTOR
from .audit_log import AuditAction, AuditEntry, AuditLog

if TYPE_CHECKING:
    from ..storage.base import RecordStore

logger = logging.getLogger(__name__)


class DecisionRecorder:
    """
    Writes decisions to the store and the audit trail.

    The document update is checked against the snapshot's version, so a
    decision computed from stale data is never written.
    """

    def __init__(self, store: 'RecordStore', audit_log: Optional[AuditLog] = None):
        self.store = store
        self.audit_log = audit_log or AuditLog(store)

    def record(
        self,
        document: Document,
        decision: Decision,
        actor: Optional[Actor] = None,
    ) -> AuditEntry:
        """
        Record a decision.

        Args:
            document: Snapshot the decision was computed from
            decision: Rule engine output
            actor: Who triggered processing (System when None)

        Returns:
            The appended audit entry

        Raises:
            NotFoundError: Document no longer exists
            PersistenceError: Store write failed or the version changed
        """
        actor = actor or SYSTEM_ACTOR

        updated = self.store.update(
            document.id,
            {
                'status': decision.status,
                'auto_approved': decision.auto_approved,
                'workflow_reason': decision.reason,
                'applied_rules': list(decision.applied_rules),
            },
            expected_version=document.version,
        )

        action = AuditAction.AUTO_APPROVE if decision.auto_approved else AuditAction.FLAG_REVIEW
        entry = self.audit_log.log(
            action,
            actor=actor,
            document=updated,
            details=decision.reason,
            metadata={
                'status': decision.status.value,
                'applied_rules': list(decision.applied_rules),
                'risk_score': updated.risk_score,
            },
        )

        logger.info(f"Recorded {action.value} for {document.id}: {decision.reason}")
        return entry
