"""
Risk Scorer

Computes a bounded integer risk score for a document from its raw text and
extracted fields.

Scoring is additive and order-independent:
- Keyword tiers: distinct keywords found (case-insensitive substring match)
  times the tier's points, capped per tier
- Amount tier: points for the canonical amount exceeding a threshold
- Sparsity penalty: points for documents with few extracted fields
The sum is clamped to [min_score, max_score].

The weights live in a RiskModel, a named and versioned table that is loaded
from configuration, so the model can be tuned without touching rule logic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Mapping, Tuple

from ..parser.normalizers import CurrencyNormalizer, canonical_amount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeywordTier:
    """A keyword list with its per-keyword points and cap."""

    name: str
    keywords: Tuple[str, ...]
    points_per_keyword: int
    cap: int

    def matched(self, text_lower: str) -> List[str]:
        """Distinct keywords present in the (lowercased) text."""
        return [kw for kw in self.keywords if kw.lower() in text_lower]

    def points(self, match_count: int) -> int:
        return min(match_count * self.points_per_keyword, self.cap)

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> 'KeywordTier':
        return cls(
            name=name,
            keywords=tuple(dict.fromkeys(str(k) for k in data.get('keywords', []))),
            points_per_keyword=int(data.get('points_per_keyword', 1)),
            cap=int(data.get('cap', 0)),
        )


@dataclass(frozen=True)
class AmountTier:
    """Points awarded when the amount is strictly above a threshold."""

    above: float
    points: int


HIGH_RISK_TIER = KeywordTier(
    name='high_risk',
    keywords=(
        'penalty', 'termination', 'breach', 'liability', 'lawsuit',
        'dispute', 'overdue', 'default', 'cancel', 'void',
    ),
    points_per_keyword=2,
    cap=6,
)

MEDIUM_RISK_TIER = KeywordTier(
    name='medium_risk',
    keywords=(
        'amendment', 'modification', 'renewal', 'extension',
        'warning', 'notice', 'urgent', 'immediate',
    ),
    points_per_keyword=1,
    cap=3,
)


@dataclass(frozen=True)
class RiskModel:
    """
    Versioned weights for the risk score.

    ``sparsity_penalties[n]`` is added when exactly ``n`` fields were
    extracted; counts past the end of the tuple add nothing.
    """

    version: str = '1.0'
    keyword_tiers: Tuple[KeywordTier, ...] = (HIGH_RISK_TIER, MEDIUM_RISK_TIER)
    amount_fields: Tuple[str, ...] = ('Amount', 'Value')
    amount_tiers: Tuple[AmountTier, ...] = (AmountTier(10000, 2), AmountTier(5000, 1))
    sparsity_penalties: Tuple[int, ...] = (3, 2, 1)
    min_score: int = 0
    max_score: int = 10

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RiskModel':
        """Create from a configuration mapping."""
        tiers = tuple(
            KeywordTier.from_dict(name, tier_data)
            for name, tier_data in (data.get('keyword_tiers') or {}).items()
        )
        amount_tiers = tuple(
            AmountTier(above=float(t['above']), points=int(t['points']))
            for t in data.get('amount_tiers', [])
        )
        return cls(
            version=str(data.get('version', '1.0')),
            keyword_tiers=tiers,
            amount_fields=tuple(data.get('amount_fields', ('Amount', 'Value'))),
            # Highest threshold first so the first match is the best tier
            amount_tiers=tuple(sorted(amount_tiers, key=lambda t: t.above, reverse=True)),
            sparsity_penalties=tuple(int(p) for p in data.get('sparsity_penalties', ())),
            min_score=int(data.get('min_score', 0)),
            max_score=int(data.get('max_score', 10)),
        )


@dataclass
class RiskBreakdown:
    """Per-component contributions behind a risk score."""

    score: int
    raw_total: int
    keyword_points: Dict[str, int] = field(default_factory=dict)
    matched_keywords: Dict[str, List[str]] = field(default_factory=dict)
    amount: Optional[float] = None
    amount_points: int = 0
    field_count: int = 0
    sparsity_points: int = 0
    model_version: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': self.score,
            'raw_total': self.raw_total,
            'keyword_points': self.keyword_points,
            'matched_keywords': self.matched_keywords,
            'amount': self.amount,
            'amount_points': self.amount_points,
            'field_count': self.field_count,
            'sparsity_points': self.sparsity_points,
            'model_version': self.model_version,
        }


class RiskScorer:
    """
    Scores document risk from text and extracted fields.

    Usage:
        scorer = RiskScorer()
        score = scorer.score(text, {'Amount': '$12,000'})
    """

    def __init__(self, model: Optional[RiskModel] = None):
        self.model = model or RiskModel()
        self.currency = CurrencyNormalizer()

    def score(self, text: Optional[str], fields: Mapping[str, str]) -> int:
        """
        Compute the risk score.

        Args:
            text: Raw document text (None is treated as empty)
            fields: Extracted fields

        Returns:
            Integer in [model.min_score, model.max_score]
        """
        return self.explain(text, fields).score

    def explain(self, text: Optional[str], fields: Mapping[str, str]) -> RiskBreakdown:
        """Compute the risk score together with its breakdown."""
        model = self.model
        text_lower = (text or '').lower()
        fields = fields or {}

        breakdown = RiskBreakdown(score=0, raw_total=0, model_version=model.version)

        for tier in model.keyword_tiers:
            matched = tier.matched(text_lower)
            breakdown.matched_keywords[tier.name] = matched
            breakdown.keyword_points[tier.name] = tier.points(len(matched))

        amount = canonical_amount(fields, model.amount_fields, self.currency)
        breakdown.amount = amount
        if amount is not None:
            for tier in model.amount_tiers:
                if amount > tier.above:
                    breakdown.amount_points = tier.points
                    break

        breakdown.field_count = len(fields)
        if breakdown.field_count < len(model.sparsity_penalties):
            breakdown.sparsity_points = model.sparsity_penalties[breakdown.field_count]

        breakdown.raw_total = (
            sum(breakdown.keyword_points.values())
            + breakdown.amount_points
            + breakdown.sparsity_points
        )
        breakdown.score = max(model.min_score, min(model.max_score, breakdown.raw_total))

        logger.debug(
            f"Risk score {breakdown.score} (raw {breakdown.raw_total}, model {model.version})"
        )
        return breakdown
