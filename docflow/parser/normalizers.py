"""
Normalizers Module

Amount and duration handling shared by the extractor, the risk scorer and
the rule engine.

Amounts are kept in two forms:
- Display form: what the document said, prefixed with '$' ("$12,000", "$99.50")
- Numeric form: '$' and thousands separators stripped before any comparison

Numeric parsing reads the longest leading number and ignores trailing text,
so "1,200 USD" parses as 1200.0 and "N/A" does not parse at all.
"""

import re
from typing import Optional, Mapping, Sequence

from loguru import logger


_LEADING_NUMBER = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+))')


class CurrencyNormalizer:
    """Parses and formats monetary amounts."""

    STRIP_CHARS = re.compile(r'[$,]')

    def parse(self, value: Optional[str]) -> Optional[float]:
        """
        Parse an amount string to a float.

        Args:
            value: Amount text such as "$1,234.56"

        Returns:
            Parsed value or None if no number could be read
        """
        if value is None:
            return None

        cleaned = self.STRIP_CHARS.sub('', str(value))
        match = _LEADING_NUMBER.match(cleaned)
        if not match:
            logger.debug(f"Unparseable amount: {value!r}")
            return None

        return float(match.group(1))

    @staticmethod
    def to_display(raw_amount: str) -> str:
        """Prefix a captured amount with '$', keeping its digits as written."""
        return f"${raw_amount}"

    @staticmethod
    def format_grouped(amount: float) -> str:
        """
        Format a number with grouped thousands.

        Whole numbers print without decimals, others with up to three
        fraction digits: 12000.0 -> "12,000", 1234.5 -> "1,234.5".
        """
        if float(amount).is_integer():
            return f"{int(amount):,}"
        return f"{amount:,.3f}".rstrip('0').rstrip('.')


def canonical_amount(
    fields: Mapping[str, str],
    keys: Sequence[str],
    normalizer: Optional[CurrencyNormalizer] = None,
) -> Optional[float]:
    """
    Resolve the canonical amount of a document.

    The first key with a non-blank value wins, even if that value does not
    parse; later keys are not consulted in that case.

    Returns:
        Parsed amount, or None when absent or unparseable
    """
    normalizer = normalizer or CurrencyNormalizer()

    for key in keys:
        value = fields.get(key)
        if value:
            return normalizer.parse(value)

    return None


def format_term(count: str, unit: str) -> str:
    """Render a duration, pluralising the unit when the count exceeds one."""
    suffix = 's' if int(count) > 1 else ''
    return f"{count} {unit}{suffix}"
