"""
Audit Module

Append-only audit trail and the recorder that writes decisions to it.
"""

from .audit_log import AuditAction, AuditEntry, AuditLog, CSV_HEADER
from .recorder import DecisionRecorder

__all__ = [
    'AuditAction',
    'AuditEntry',
    'AuditLog',
    'CSV_HEADER',
    'DecisionRecorder',
]
