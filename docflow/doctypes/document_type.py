"""
Document Type Definition

Defines the structure for configurable document types. Each type declares
which fields to extract and how, which fields are critical for review, and
which fields hold the document's monetary amount.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, List, Dict, Any, Pattern, Union


class FieldType(Enum):
    """Extraction strategy for a field."""

    IDENTIFIER = auto()     # Pattern with one capture group
    DATE = auto()           # Date-shaped substring
    CURRENCY = auto()       # Currency-marked amount
    EMAIL = auto()          # Email address
    PHONE = auto()          # Phone number
    ORGANIZATION = auto()   # Organisation-like phrase
    PERSON = auto()         # Person-like name
    DURATION = auto()       # Count + unit ("2 years")


class AmountSelection(Enum):
    """Which currency match becomes the field value."""

    FIRST = auto()
    LARGEST = auto()


@dataclass
class FieldDefinition:
    """
    Definition of a field to extract from document text.

    ``occurrence`` picks the n-th match (0-based) for dates and people, so
    "Expiration Date" is simply the second date in the text.
    """

    name: str
    field_type: FieldType
    description: str = ''
    patterns: List[str] = field(default_factory=list)
    case_sensitive: bool = False
    occurrence: int = 0
    selection: AmountSelection = AmountSelection.FIRST

    _compiled_patterns: List[Pattern] = field(default_factory=list, repr=False)

    def __post_init__(self):
        """Compile regex patterns."""
        flags = 0 if self.case_sensitive else re.IGNORECASE
        self._compiled_patterns = [re.compile(p, flags) for p in self.patterns]

    @property
    def compiled_patterns(self) -> List[Pattern]:
        return self._compiled_patterns

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FieldDefinition':
        """Create from dictionary."""
        return cls(
            name=data['name'],
            field_type=FieldType[data['field_type'].upper()],
            description=data.get('description', ''),
            patterns=data.get('patterns', []),
            case_sensitive=data.get('case_sensitive', False),
            occurrence=data.get('occurrence', 0),
            selection=AmountSelection[data.get('selection', 'FIRST').upper()],
        )


@dataclass
class DocumentType:
    """
    Definition of a document type.

    ``critical_fields`` is independent of ``fields``: a type may name a
    critical key that the extractor never produces, in which case every
    document of that type is flagged by the missing-fields rule.
    """

    # Identity
    name: str
    display_name: str
    description: str = ''
    version: str = '1.0'

    # Fields
    fields: List[FieldDefinition] = field(default_factory=list)
    critical_fields: List[str] = field(default_factory=list)
    amount_fields: List[str] = field(default_factory=lambda: ['Amount', 'Value', 'Total'])

    def missing_critical_fields(self, extracted: Dict[str, str]) -> List[str]:
        """Critical field names that are absent or blank, in declared order."""
        return [name for name in self.critical_fields if not extracted.get(name)]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DocumentType':
        """Create from dictionary."""
        kwargs = {}
        if 'amount_fields' in data:
            kwargs['amount_fields'] = list(data['amount_fields'])

        return cls(
            name=data['name'],
            display_name=data.get('display_name', data['name']),
            description=data.get('description', ''),
            version=data.get('version', '1.0'),
            fields=[FieldDefinition.from_dict(f) for f in data.get('fields', [])],
            critical_fields=list(data.get('critical_fields', [])),
            **kwargs,
        )


def create_field(
    name: str,
    field_type: Union[str, FieldType],
    patterns: Optional[List[str]] = None,
    **kwargs,
) -> FieldDefinition:
    """
    Convenience function to create a field definition.

    Args:
        name: Field name
        field_type: Field type (string or FieldType)
        patterns: Regex patterns
        **kwargs: Additional field options

    Returns:
        FieldDefinition
    """
    if isinstance(field_type, str):
        field_type = FieldType[field_type.upper()]

    return FieldDefinition(
        name=name,
        field_type=field_type,
        patterns=patterns or [],
        **kwargs,
    )
