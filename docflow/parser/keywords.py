"""
Keyword Extraction

The most frequent content words of a document, for quick triage in the
analysis output. Words shorter than three letters, stop words and document
vocabulary are skipped; e-mail addresses and URLs are removed first.
Ties keep the order of first appearance, and each keyword is shown the way
it was first written.
"""

import re
from collections import Counter
from typing import Dict, List

from .entities import STOP_WORDS

DEFAULT_KEYWORD_LIMIT = 10
MIN_KEYWORD_LENGTH = 3

_CONTACT = re.compile(r'\S+@\S+|https?://\S+|www\.\S+', re.IGNORECASE)
_WORD = re.compile(r"[A-Za-z][A-Za-z'-]*[A-Za-z]")

FILLER_WORDS = frozenset({
    'not', 'but', 'also', 'than', 'then', 'which', 'who', 'whom', 'were',
    'will', 'shall', 'would', 'could', 'should', 'can', 'has', 'have', 'had',
    'been', 'being', 'into', 'upon', 'such', 'other', 'made', 'make',
    'after', 'before', 'under', 'over', 'within', 'without', 'about',
    'there', 'here', 'their', 'they', 'them', 'his', 'her', 'him', 'she',
    'when', 'where', 'what', 'more', 'most', 'only', 'same', 'very', 'via',
})


def extract_keywords(text: str, limit: int = DEFAULT_KEYWORD_LIMIT) -> List[str]:
    """
    Rank content words by frequency.

    Args:
        text: Document text
        limit: Maximum number of keywords

    Returns:
        Keywords, most frequent first
    """
    if not text or limit < 1:
        return []

    counts: Counter = Counter()
    first_form: Dict[str, str] = {}

    for match in _WORD.finditer(_CONTACT.sub(' ', text)):
        word = match.group(0)
        key = word.lower()
        if len(key) < MIN_KEYWORD_LENGTH or key in STOP_WORDS or key in FILLER_WORDS:
            continue
        counts[key] += 1
        first_form.setdefault(key, word)

    # Counter keeps insertion order, so the stable sort breaks ties by first appearance
    ranked = sorted(counts, key=lambda k: -counts[k])
    return [first_form[k] for k in ranked[:limit]]
