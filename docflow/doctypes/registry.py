"""
Document Type Registry

Named document type definitions, consulted by the extractor and by the
missing-fields rule. Types come from code (the built-in invoice and contract)
or from JSON type files listed in the configuration:

    {"types": {"receipt": {"name": "receipt", "fields": [...], ...}}}

A type loaded later replaces an earlier one of the same name, so a type file
can refine a built-in type.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..exceptions import ValidationError
from .document_type import DocumentType

logger = logging.getLogger(__name__)


class DocumentTypeRegistry:
    """
    Name -> DocumentType lookup.

    Usage:
        registry = DocumentTypeRegistry()
        registry.register(receipt_type)
        registry.load('types/receipt.json')

        registry.get('receipt')
    """

    def __init__(self):
        self._types: Dict[str, DocumentType] = {}

    def register(self, doc_type: DocumentType, overwrite: bool = False) -> None:
        """
        Add a document type.

        Raises:
            ValidationError: The name is taken and ``overwrite`` is False
        """
        if doc_type.name in self._types and not overwrite:
            raise ValidationError(
                f"Document type '{doc_type.name}' already registered",
                details={'type': doc_type.name},
            )
        self._types[doc_type.name] = doc_type
        logger.debug(f"Registered document type: {doc_type.name}")

    def get(self, name: str) -> Optional[DocumentType]:
        """The type registered under ``name``, or None."""
        return self._types.get(name)

    def get_all(self) -> List[DocumentType]:
        """Registered types in registration order."""
        return list(self._types.values())

    def load(self, path: Union[str, Path]) -> int:
        """
        Register every type of a JSON type file.

        Returns:
            Number of types loaded

        Raises:
            ValidationError: Unreadable file or malformed type
        """
        types = read_type_file(path)
        for doc_type in types:
            self.register(doc_type, overwrite=True)

        logger.info(f"Loaded {len(types)} document types from {path}")
        return len(types)

    def load_from_directory(self, directory: Union[str, Path]) -> int:
        """Load every ``*.json`` type file of a directory, in name order."""
        return sum(self.load(p) for p in sorted(Path(directory).glob('*.json')))


def read_type_file(path: Union[str, Path]) -> List[DocumentType]:
    """
    Parse a JSON type file.

    Raises:
        ValidationError: Unreadable file or malformed type
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValidationError(
            f"Cannot read document types from {path}: {e}",
            details={'path': str(path)},
        ) from e

    if not isinstance(data, dict) or not isinstance(data.get('types', {}), dict):
        raise ValidationError(
            f"Document type file {path} must map 'types' to type definitions",
            details={'path': str(path)},
        )

    types = []
    for name, type_data in data.get('types', {}).items():
        try:
            types.append(DocumentType.from_dict(type_data))
        except (KeyError, ValueError, TypeError, AttributeError, re.error) as e:
            raise ValidationError(
                f"Malformed document type '{name}' in {path}: {e}",
                details={'path': str(path), 'type': name},
            ) from e
    return types


_global_registry = DocumentTypeRegistry()


def get_registry() -> DocumentTypeRegistry:
    """The process-wide registry used when a workflow gets none."""
    return _global_registry
