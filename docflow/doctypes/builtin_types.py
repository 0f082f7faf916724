"""
Built-in Document Types

Pre-defined document types for invoices and contracts.
"""

from .document_type import (
    DocumentType,
    FieldType,
    AmountSelection,
    create_field,
)


# Shared patterns
DATE_PATTERN = (
    r'\b\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}\b'
    r'|\b(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\s+\d{1,2},?\s+\d{4}\b'
)
CURRENCY_PATTERN = r'(?:\$|USD|EUR|GBP)\s*([0-9,]+\.?[0-9]*)'
EMAIL_PATTERN = r'[a-zA-Z0-9._-]+@[a-zA-Z0-9._-]+\.[a-zA-Z0-9_-]+'
PHONE_PATTERN = r'(\+?[0-9]{1,3}[-.\s]?)?(\(?[0-9]{3}\)?[-.\s]?)?[0-9]{3}[-.\s]?[0-9]{4}'


# =============================================================================
# INVOICE TYPE
# =============================================================================

INVOICE_TYPE = DocumentType(
    name='invoice',
    display_name='Invoice',
    description='Commercial invoice for goods or services',
    version='2.0',
    fields=[
        create_field(
            name='Invoice Number',
            field_type=FieldType.IDENTIFIER,
            description='Invoice identifier following the invoice/inv token',
            patterns=[r'(?:invoice|inv)[\s#:-]*([A-Z0-9-]+)'],
        ),
        create_field(
            name='Date',
            field_type=FieldType.DATE,
            description='First date in the document',
            patterns=[DATE_PATTERN],
        ),
        create_field(
            name='Amount',
            field_type=FieldType.CURRENCY,
            description='Largest currency-marked amount',
            patterns=[CURRENCY_PATTERN],
            case_sensitive=True,
            selection=AmountSelection.LARGEST,
        ),
        create_field(
            name='Email',
            field_type=FieldType.EMAIL,
            patterns=[EMAIL_PATTERN],
            case_sensitive=True,
        ),
        create_field(
            name='Phone',
            field_type=FieldType.PHONE,
            patterns=[PHONE_PATTERN],
            case_sensitive=True,
        ),
        create_field(
            name='Vendor',
            field_type=FieldType.ORGANIZATION,
            description='First organisation named in the document',
        ),
    ],
    critical_fields=['Invoice Number', 'Amount', 'Date'],
)


# =============================================================================
# CONTRACT TYPE
# =============================================================================

CONTRACT_TYPE = DocumentType(
    name='contract',
    display_name='Contract',
    description='Agreement between two or more parties',
    version='2.0',
    fields=[
        create_field(
            name='Contract Number',
            field_type=FieldType.IDENTIFIER,
            description='Identifier following the contract/agreement token',
            patterns=[r'(?:contract|agreement)[\s#:-]*([A-Z0-9-]+)'],
        ),
        create_field(
            name='Party 1',
            field_type=FieldType.PERSON,
            occurrence=0,
        ),
        create_field(
            name='Party 2',
            field_type=FieldType.PERSON,
            occurrence=1,
        ),
        create_field(
            name='Company',
            field_type=FieldType.ORGANIZATION,
        ),
        create_field(
            name='Effective Date',
            field_type=FieldType.DATE,
            patterns=[DATE_PATTERN],
            occurrence=0,
        ),
        create_field(
            name='Expiration Date',
            field_type=FieldType.DATE,
            patterns=[DATE_PATTERN],
            occurrence=1,
        ),
        create_field(
            name='Term',
            field_type=FieldType.DURATION,
            patterns=[r'(\d+)\s*(year|month|day)s?'],
        ),
        create_field(
            name='Value',
            field_type=FieldType.CURRENCY,
            description='First currency-marked amount',
            patterns=[CURRENCY_PATTERN],
            case_sensitive=True,
            selection=AmountSelection.FIRST,
        ),
    ],
    # 'Parties' is not a key the extractor produces (it emits 'Party 1' and
    # 'Party 2'), so contracts are always flagged for review.
    critical_fields=['Contract Number', 'Parties', 'Effective Date'],
)


def get_builtin_types():
    """Get list of all built-in document types."""
    return [INVOICE_TYPE, CONTRACT_TYPE]


def register_builtin_types(registry=None):
    """
    Register all built-in types with a registry.

    Args:
        registry: Registry to use (uses global if None)
    """
    from .registry import get_registry

    registry = registry or get_registry()

    for doc_type in get_builtin_types():
        registry.register(doc_type, overwrite=True)
