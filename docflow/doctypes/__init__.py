"""
Pluggable Document Types

This package provides configurable document type definitions and the
pattern extractor that reads fields out of raw text.
Supports invoices, contracts, and custom types loaded from JSON.
"""

from .document_type import (
    DocumentType,
    FieldDefinition,
    FieldType,
    AmountSelection,
    create_field,
)
from .registry import (
    DocumentTypeRegistry,
    get_registry,
    read_type_file,
)
from .extractors import PatternExtractor
from .builtin_types import (
    INVOICE_TYPE,
    CONTRACT_TYPE,
    register_builtin_types,
)

__all__ = [
    'DocumentType',
    'FieldDefinition',
    'FieldType',
    'AmountSelection',
    'create_field',
    'DocumentTypeRegistry',
    'read_type_file',
    'get_registry',
    'PatternExtractor',
    'INVOICE_TYPE',
    'CONTRACT_TYPE',
    'register_builtin_types',
]
