"""
Parser Package

Text-level helpers used by the extractor and the decision layer:
- Amount parsing and display formatting
- Capitalised-run entity heuristics for organisations and people
- Frequency-ranked keywords
- Markdown analysis summaries

Usage:
    from docflow.parser import CurrencyNormalizer, find_organizations

    CurrencyNormalizer().parse('$1,234.56')   # 1234.56
    find_organizations('Payment to Acme Corp') # ['Acme Corp']
"""

from .normalizers import (
    CurrencyNormalizer,
    canonical_amount,
    format_term,
)

from .entities import (
    capitalized_runs,
    find_organizations,
    find_people,
)

from .keywords import extract_keywords

from .summary import generate_summary

__all__ = [
    'extract_keywords',
    'CurrencyNormalizer',
    'canonical_amount',
    'format_term',
    'capitalized_runs',
    'find_organizations',
    'find_people',
    'generate_summary',
]
