"""
Storage Module

Record stores holding documents, users and the audit trail.
"""

from .base import RecordStore, UPDATABLE_KEYS, DEFAULT_MAX_AUDIT_ENTRIES
from .memory import InMemoryRecordStore
from .json_store import JsonFileRecordStore

__all__ = [
    'RecordStore',
    'UPDATABLE_KEYS',
    'DEFAULT_MAX_AUDIT_ENTRIES',
    'InMemoryRecordStore',
    'JsonFileRecordStore',
]
