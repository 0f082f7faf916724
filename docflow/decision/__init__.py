"""
Decision System Package

Converts extracted data into an approval decision with an ordered,
short-circuiting rule list.

Each decision includes:
- The resulting status (needs-review or approved)
- Whether it was reached without a human reviewer
- The reason from the last matching rule
- The names of all rules that matched, in order

Usage:
    from docflow.decision import RuleEngine

    engine = RuleEngine()
    decision = engine.evaluate_rules(document)

    if decision.needs_review:
        print(decision.reason)
"""

from .decision_engine import (
    Decision,
    DEFAULT_DECISION,
    RuleResult,
    NoMatch,
    Matched,
    NO_MATCH,
    Rule,
    HighRiskRule,
    LargeAmountRule,
    MissingFieldsRule,
    ModerateRiskRule,
    AutoApproveRule,
    RuleThresholds,
    RuleEngine,
    default_rules,
)

__all__ = [
    'Decision',
    'DEFAULT_DECISION',
    'RuleResult',
    'NoMatch',
    'Matched',
    'NO_MATCH',
    'Rule',
    'HighRiskRule',
    'LargeAmountRule',
    'MissingFieldsRule',
    'ModerateRiskRule',
    'AutoApproveRule',
    'RuleThresholds',
    'RuleEngine',
    'default_rules',
]
