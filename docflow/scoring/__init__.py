"""
Risk Scoring Package

Bounded integer risk scores driven by a versioned, configurable RiskModel.

Usage:
    from docflow.scoring import RiskScorer

    scorer = RiskScorer()
    scorer.score('Payment overdue, penalty applies', {'Amount': '$12,000'})
"""

from .risk_scorer import (
    RiskScorer,
    RiskModel,
    RiskBreakdown,
    KeywordTier,
    AmountTier,
    HIGH_RISK_TIER,
    MEDIUM_RISK_TIER,
)

__all__ = [
    'RiskScorer',
    'RiskModel',
    'RiskBreakdown',
    'KeywordTier',
    'AmountTier',
    'HIGH_RISK_TIER',
    'MEDIUM_RISK_TIER',
]
