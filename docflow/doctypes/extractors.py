"""
Pattern Extractor

Extraction engine that uses document type definitions to pull named fields
out of raw document text.

Extraction is a pure function of (text, document type): no state is kept
between calls and a field that cannot be found is simply left out of the
result. Malformed or empty text yields an empty mapping, never an error.
"""

from typing import Dict, List, Optional, Union
import logging

from ..parser.entities import find_organizations, find_people
from ..parser.normalizers import CurrencyNormalizer, format_term
from .document_type import DocumentType, FieldDefinition, FieldType, AmountSelection
from .registry import DocumentTypeRegistry, get_registry

logger = logging.getLogger(__name__)


class PatternExtractor:
    """
    Extracts fields from text according to a DocumentType.

    Usage:
        extractor = PatternExtractor()
        fields = extractor.extract(text, 'invoice')
        print(fields.get('Invoice Number'))
    """

    def __init__(self, registry: Optional[DocumentTypeRegistry] = None):
        """
        Initialize extractor.

        Args:
            registry: Registry used to resolve type names (global if None)
        """
        self.registry = registry or get_registry()
        self.currency = CurrencyNormalizer()

    def extract(
        self,
        text: Optional[str],
        document_type: Union[str, DocumentType],
    ) -> Dict[str, str]:
        """
        Extract all fields declared by a document type.

        Args:
            text: Raw document text
            document_type: Type name or definition

        Returns:
            Mapping of field name to string value; missing fields are omitted
        """
        doc_type = self._resolve_type(document_type)
        if doc_type is None:
            logger.debug(f"No extraction rules for document type {document_type!r}")
            return {}

        text = '' if text is None else str(text)
        if not text.strip():
            return {}

        # Entity scans are shared by every field of the same kind
        entities: Dict[FieldType, List[str]] = {}

        fields: Dict[str, str] = {}
        for field_def in doc_type.fields:
            value = self.extract_field(text, field_def, entities)
            if value:
                fields[field_def.name] = value

        logger.debug(f"Extracted {len(fields)}/{len(doc_type.fields)} fields for {doc_type.name}")
        return fields

    def extract_field(
        self,
        text: str,
        field_def: FieldDefinition,
        entities: Optional[Dict[FieldType, List[str]]] = None,
    ) -> Optional[str]:
        """Extract a single field, or None when nothing matches."""
        field_type = field_def.field_type

        if field_type in (FieldType.ORGANIZATION, FieldType.PERSON):
            cache = entities if entities is not None else {}
            if field_type not in cache:
                finder = find_organizations if field_type is FieldType.ORGANIZATION else find_people
                cache[field_type] = finder(text)
            return self._nth(cache[field_type], field_def.occurrence)

        if field_type is FieldType.IDENTIFIER:
            return self._first_capture(text, field_def)

        if field_type is FieldType.DATE:
            return self._nth(self._all_matches(text, field_def), field_def.occurrence)

        if field_type is FieldType.CURRENCY:
            return self._select_amount(text, field_def)

        if field_type is FieldType.DURATION:
            for pattern in field_def.compiled_patterns:
                match = pattern.search(text)
                if match and len(match.groups()) >= 2:
                    return format_term(match.group(1), match.group(2))
            return None

        # EMAIL, PHONE: first full match
        matches = self._all_matches(text, field_def)
        return matches[0] if matches else None

    def _resolve_type(self, document_type: Union[str, DocumentType]) -> Optional[DocumentType]:
        if isinstance(document_type, DocumentType):
            return document_type
        if isinstance(document_type, str):
            return self.registry.get(document_type)
        return None

    @staticmethod
    def _nth(values: List[str], index: int) -> Optional[str]:
        return values[index] if 0 <= index < len(values) else None

    @staticmethod
    def _first_capture(text: str, field_def: FieldDefinition) -> Optional[str]:
        """First pattern (in priority order) that matches; its first group."""
        for pattern in field_def.compiled_patterns:
            match = pattern.search(text)
            if match:
                return match.group(1) if match.groups() else match.group(0)
        return None

    @staticmethod
    def _all_matches(text: str, field_def: FieldDefinition) -> List[str]:
        """Full matches of every pattern, ordered by position in the text."""
        found = []
        for pattern in field_def.compiled_patterns:
            for match in pattern.finditer(text):
                found.append((match.start(), match.group(0)))
        found.sort(key=lambda item: item[0])
        return [value for _, value in found]

    def _select_amount(self, text: str, field_def: FieldDefinition) -> Optional[str]:
        """
        Pick the canonical amount among all currency matches.

        LARGEST compares numerically with separators stripped; the earliest
        match wins a tie and unparseable captures are ignored.
        """
        captures = []
        for pattern in field_def.compiled_patterns:
            for match in pattern.finditer(text):
                raw = match.group(1) if match.groups() else match.group(0)
                captures.append((match.start(), raw))
        captures.sort(key=lambda item: item[0])

        if not captures:
            return None

        if field_def.selection is AmountSelection.FIRST:
            return self.currency.to_display(captures[0][1])

        best_raw = None
        best_value = None
        for _, raw in captures:
            value = self.currency.parse(raw)
            if value is None:
                continue
            if best_value is None or value > best_value:
                best_value = value
                best_raw = raw

        return self.currency.to_display(best_raw) if best_raw is not None else None
