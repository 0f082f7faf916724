"""
Entity Heuristics Module

Lightweight named-entity spotting for organisations and people.

No tagger is involved: entities are read off runs of capitalised words.
A run is a sequence of capitalised tokens separated only by spaces or tabs;
line breaks, punctuation and lowercase words end it.

Organisations:
    A run carrying a corporate suffix ("Acme Corp", "Beta Widgets LLC"), cut
    after the last suffix, or a head word followed by "of" ("Bank of Boston").
    When the text holds no such run, the first multi-word run that is not
    person-like and not document vocabulary is used instead.

People:
    A run introduced by an honorific ("Mr. John Smith" -> "John Smith") or
    starting with a common given name ("Jane Doe").
"""

import re
from dataclasses import dataclass
from typing import List, Optional


_TOKEN = re.compile(r"[A-Za-z][A-Za-z0-9'&-]*\.?|&")
_RUN_GAP = re.compile(r'^[ \t]+$')

ORG_SUFFIXES = frozenset({
    'inc', 'incorporated', 'corp', 'corporation', 'co', 'company', 'llc',
    'llp', 'lp', 'ltd', 'limited', 'plc', 'gmbh', 'group', 'holdings',
    'partners', 'associates', 'industries', 'solutions', 'services',
    'technologies', 'systems', 'enterprises', 'labs', 'consulting',
    'international', 'ventures', 'agency', 'foundation',
})

ORG_HEADS = frozenset({
    'bank', 'university', 'institute', 'department', 'ministry', 'bureau',
    'office', 'college', 'board',
})

HONORIFICS = frozenset({'mr', 'mrs', 'ms', 'miss', 'dr', 'prof', 'sir', 'madam'})

MONTHS = frozenset({
    'jan', 'january', 'feb', 'february', 'mar', 'march', 'apr', 'april',
    'may', 'jun', 'june', 'jul', 'july', 'aug', 'august', 'sep', 'sept',
    'september', 'oct', 'october', 'nov', 'november', 'dec', 'december',
})

WEEKDAYS = frozenset({
    'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday',
})

STOP_WORDS = frozenset({
    # determiners, prepositions, conjunctions
    'a', 'an', 'the', 'this', 'that', 'these', 'those', 'and', 'or', 'by',
    'between', 'with', 'for', 'in', 'on', 'at', 'to', 'from', 'of', 'as',
    'is', 'are', 'was', 'be', 'we', 'our', 'you', 'your', 'it', 'its',
    'please', 'thank', 'thanks', 'dear', 're', 'subject', 'whereas', 'hereby',
    'attn', 'attention', 'note', 'notes', 'per', 'all', 'any', 'each', 'no',
    # document vocabulary
    'invoice', 'inv', 'contract', 'agreement', 'date', 'dated', 'number',
    'total', 'subtotal', 'amount', 'due', 'balance', 'bill', 'billed', 'ship',
    'shipped', 'payment', 'pay', 'paid', 'terms', 'term', 'effective',
    'expiration', 'party', 'parties', 'page', 'tax', 'vat', 'description',
    'quantity', 'qty', 'price', 'unit', 'rate', 'phone', 'tel', 'email',
    'fax', 'address', 'vendor', 'supplier', 'customer', 'client', 'buyer',
    'seller', 'signed', 'signature', 'name', 'title', 'item', 'items',
    'order', 'purchase', 'reference', 'ref', 'id', 'usd', 'eur', 'gbp',
    'summary', 'service', 'statement', 'account', 'memo', 'remit',
    'section', 'clause', 'schedule', 'exhibit', 'appendix',
}) | MONTHS | WEEKDAYS | HONORIFICS

GIVEN_NAMES = frozenset({
    'james', 'john', 'robert', 'michael', 'william', 'david', 'richard',
    'joseph', 'thomas', 'charles', 'christopher', 'daniel', 'matthew',
    'anthony', 'mark', 'donald', 'steven', 'paul', 'andrew', 'joshua',
    'kenneth', 'kevin', 'brian', 'george', 'edward', 'ronald', 'timothy',
    'jason', 'jeffrey', 'ryan', 'jacob', 'gary', 'eric', 'stephen', 'jonathan',
    'larry', 'justin', 'scott', 'brandon', 'benjamin', 'samuel', 'peter',
    'frank', 'henry', 'alex', 'alexander', 'patrick', 'jack', 'tom', 'bob',
    'mary', 'patricia', 'jennifer', 'linda', 'elizabeth', 'barbara', 'susan',
    'jessica', 'sarah', 'karen', 'nancy', 'lisa', 'betty', 'margaret',
    'sandra', 'ashley', 'kimberly', 'emily', 'donna', 'michelle', 'dorothy',
    'carol', 'amanda', 'melissa', 'deborah', 'stephanie', 'rebecca', 'laura',
    'sharon', 'cynthia', 'kathleen', 'amy', 'anna', 'angela', 'helen',
    'emma', 'olivia', 'sophia', 'jane', 'alice', 'maria', 'julia', 'rachel',
    'chris', 'sam', 'mike', 'dave', 'jim', 'kate', 'anne', 'ann',
})


@dataclass
class Token:
    """A word with its position in the source text."""
    text: str
    start: int
    end: int

    @property
    def key(self) -> str:
        """Lowercase form without a trailing period."""
        return self.text.rstrip('.').lower()

    @property
    def clean(self) -> str:
        """Display form without a trailing period."""
        return self.text.rstrip('.')

    @property
    def is_capitalized(self) -> bool:
        return self.text[0].isupper()


def _join(tokens: List[Token]) -> str:
    return ' '.join(t.clean for t in tokens)


def capitalized_runs(text: str) -> List[List[Token]]:
    """
    Split text into runs of capitalised tokens, in order of appearance.

    '&' may join tokens inside a run, and 'of' may follow an organisation
    head word ("Bank of Boston"). A token ending in '.' closes the run unless
    it is an honorific or a corporate suffix abbreviation.
    """
    if not text:
        return []

    runs: List[List[Token]] = []
    current: List[Token] = []
    previous: Optional[Token] = None

    for match in _TOKEN.finditer(text):
        token = Token(match.group(0), match.start(), match.end())

        joined = (
            previous is not None
            and bool(_RUN_GAP.match(text[previous.end:token.start]))
            and not _closes_run(previous)
        )
        if not joined and current:
            runs.append(current)
            current = []

        if token.is_capitalized:
            current.append(token)
        elif current and (
            token.text == '&'
            or (token.key == 'of' and current[-1].key in ORG_HEADS)
        ):
            current.append(token)
        elif current:
            runs.append(current)
            current = []

        previous = token

    if current:
        runs.append(current)

    # Connectors never end a run
    cleaned = []
    for run in runs:
        while run and run[-1].text in ('&', 'of'):
            run = run[:-1]
        if run:
            cleaned.append(run)

    return cleaned


def _closes_run(token: Token) -> bool:
    return (
        token.text.endswith('.')
        and token.key not in HONORIFICS
        and token.key not in ORG_SUFFIXES
    )


def _strip_stop_words(run: List[Token]) -> List[Token]:
    start = 0
    while start < len(run) and run[start].key in STOP_WORDS:
        start += 1
    end = len(run)
    while end > start and run[end - 1].key in STOP_WORDS:
        end -= 1
    return run[start:end]


def _suffixed_organization(run: List[Token]) -> Optional[str]:
    run = _strip_stop_words(run)
    suffix_positions = [i for i, t in enumerate(run) if t.key in ORG_SUFFIXES and i >= 1]
    if suffix_positions:
        return _join(run[:suffix_positions[-1] + 1])

    for i, token in enumerate(run[:-2]):
        if token.key in ORG_HEADS and run[i + 1].key == 'of':
            return _join(run[i:])

    return None


def _person(run: List[Token]) -> Optional[str]:
    if any(t.key in ORG_SUFFIXES for t in run):
        return None

    for i, token in enumerate(run):
        if token.key in HONORIFICS:
            name = []
            for follower in run[i + 1:i + 4]:
                if follower.key in STOP_WORDS or follower.text == '&':
                    break
                name.append(follower)
            return _join(name) if name else None

    run = _strip_stop_words(run)
    if len(run) >= 2 and run[0].key in GIVEN_NAMES:
        name = [run[0]]
        for follower in run[1:3]:
            if follower.key in STOP_WORDS or follower.text == '&':
                break
            name.append(follower)
        if len(name) >= 2:
            return _join(name)

    return None


def find_organizations(text: str) -> List[str]:
    """
    Find organisation-like phrases in order of appearance.

    Returns:
        Suffix or head-word organisations if any exist, otherwise the
        generic multi-word capitalised phrases
    """
    runs = capitalized_runs(text)

    organizations = []
    for run in runs:
        org = _suffixed_organization(run)
        if org:
            organizations.append(org)

    if organizations:
        return organizations

    for run in runs:
        if _person(run):
            continue
        core = _strip_stop_words(run)
        words = [t for t in core if t.text != '&']
        if len(words) >= 2 and not any(t.key in STOP_WORDS for t in words):
            organizations.append(_join(core))

    return organizations


def find_people(text: str) -> List[str]:
    """Find person-like names in order of appearance."""
    people = []
    for run in capitalized_runs(text):
        person = _person(run)
        if person:
            people.append(person)
    return people
