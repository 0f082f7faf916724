"""
Summary Module

Builds the markdown analysis shown next to a document: key fields, a
one-line content overview, an assessment and recommended actions.
"""

import re
from typing import List, Mapping

from .normalizers import CurrencyNormalizer


_SENTENCE_END = re.compile(r'(?<=[.!?])\s+')

CONTRACT_RISK_TERMS = [
    ('termination', 'termination clauses'),
    ('penalty', 'penalty provisions'),
    ('liability', 'liability terms'),
    ('dispute', 'dispute resolution'),
]


def split_sentences(text: str) -> List[str]:
    """Split text into trimmed, non-empty sentences."""
    if not text:
        return []
    return [s.strip() for s in _SENTENCE_END.split(text.strip()) if s.strip()]


def _amount(value: str) -> float:
    parsed = CurrencyNormalizer().parse(value)
    return parsed if parsed is not None else 0.0


def generate_summary(text: str, fields: Mapping[str, str], document_type: str) -> str:
    """
    Generate a markdown summary for a document.

    Args:
        text: Raw document text
        fields: Extracted fields
        document_type: Type name; unknown types get a generic summary

    Returns:
        Markdown text
    """
    text = text or ''
    sentences = split_sentences(text)

    if document_type == 'invoice':
        return _invoice_summary(fields, sentences)
    if document_type == 'contract':
        return _contract_summary(text, fields, sentences)

    word_count = len(text.split())
    summary = ''
    if sentences:
        summary = ' '.join(sentences[:2]) + '\n\n'
    summary += f"**Document Analysis:** {word_count} words analyzed. "
    summary += f"Key fields extracted: {len(fields)}. "
    summary += 'Manual review recommended for complete verification.'
    return summary


def _invoice_summary(fields: Mapping[str, str], sentences: List[str]) -> str:
    invoice_num = fields.get('Invoice Number') or 'Not found'
    amount = fields.get('Amount') or 'Not specified'
    date = fields.get('Date') or 'Not specified'
    vendor = fields.get('Vendor') or 'Unknown'

    lines = [
        '#### Invoice Analysis',
        '',
        f"**Invoice {invoice_num}** from {vendor}",
        '',
        f"**Amount:** {amount} | **Date:** {date}",
        '',
    ]
    if sentences:
        lines += [f"**Content Overview:** {sentences[0]}", '']

    amount_value = _amount(amount)
    lines.append('**Assessment:**')
    if amount_value > 10000:
        lines.append('- High-value transaction detected - verify authorization')
    elif amount_value > 5000:
        lines.append('- Moderate amount - standard approval process')
    else:
        lines.append('- Low-value transaction - eligible for expedited processing')

    if not fields.get('Invoice Number'):
        lines.append('- Missing invoice number - request from vendor')
    if not fields.get('Date'):
        lines.append('- Missing date - verify invoice validity')
    if fields.get('Email'):
        lines.append(f"- Contact available at {fields['Email']}")

    lines += ['', '**Recommended Actions:**']
    if amount_value < 5000 and fields.get('Invoice Number') and fields.get('Date'):
        lines.append('1. Auto-approve payment processing')
        lines.append('2. Schedule payment according to terms')
    else:
        lines.append('1. Verify invoice against purchase order')
        lines.append('2. Confirm vendor details and amounts')
        if amount_value > 10000:
            lines.append('3. Obtain management approval')

    return '\n'.join(lines) + '\n'


def _contract_summary(text: str, fields: Mapping[str, str], sentences: List[str]) -> str:
    contract_num = fields.get('Contract Number') or 'Not specified'
    company = fields.get('Company') or 'Unknown party'
    value = fields.get('Value') or 'Not specified'
    effective_date = fields.get('Effective Date') or 'Not specified'
    term = fields.get('Term') or 'Not specified'

    lines = [
        '#### Contract Analysis',
        '',
        f"**Contract {contract_num}** with {company}",
        '',
        f"**Value:** {value} | **Term:** {term}",
        '',
        f"**Effective Date:** {effective_date}",
        '',
    ]
    if sentences:
        lines += [f"**Overview:** {sentences[0]}", '']

    lines.append('**Assessment:**')
    value_amount = _amount(value)
    if value_amount > 100000:
        lines.append('- High-value contract - legal review required')

    text_lower = text.lower()
    risk_terms = [label for keyword, label in CONTRACT_RISK_TERMS if keyword in text_lower]
    if risk_terms:
        lines.append(f"- Contains: {', '.join(risk_terms)} - review carefully")

    if 'year' in term:
        lines.append(f"- Long-term commitment ({term}) - consider renewal implications")
    if not fields.get('Effective Date'):
        lines.append('- Missing effective date - clarify start date')

    lines += [
        '',
        '**Recommended Actions:**',
        '1. Verify all parties have signed the agreement',
        '2. Review key terms and conditions carefully',
    ]
    if risk_terms:
        lines.append(f"3. Pay special attention to {risk_terms[0]}")
    if value_amount > 50000 or len(risk_terms) > 2:
        lines.append('4. Escalate to legal team for detailed review')
    else:
        lines.append('4. File in document management system')
    follow_up = 'renewal/expiration' if term != 'Not specified' else 'follow-up'
    lines.append(f"5. Set reminder for {follow_up}")

    return '\n'.join(lines) + '\n'
