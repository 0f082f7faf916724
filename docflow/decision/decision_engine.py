"""
Decision Engine

This module turns a document's extracted fields, type and risk score into a
single approval decision by folding an ordered list of rules.

Evaluation:
- Start from the default decision: needs-review, not auto-approved
- Evaluate rules in their fixed order
- A matching rule replaces the running decision and appends its name
- Stop right after a match whose status is needs-review

A review verdict therefore can never be overridden to auto-approval by a
later rule, and a later auto-approval rule is never reached once a review
rule has matched.

Default rule order:
1. High Risk Review             risk score >= 7
2. Large Amount Review          amount >= 10,000
3. Missing Fields Review        a critical field of the type is absent
4. Moderate Risk Review         4 <= risk score < 7 and amount >= 5,000
5. Auto Approve Simple Documents
                                risk score <= 3, amount < 5,000 and enough fields

Rules are pure: evaluating a rule twice on an unchanged document gives the
same result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, List, Dict, Any, Sequence, Tuple, Union

from ..document import Document, DocumentStatus
from ..doctypes.registry import DocumentTypeRegistry, get_registry
from ..parser.normalizers import CurrencyNormalizer, canonical_amount

logger = logging.getLogger(__name__)


DEFAULT_AMOUNT_FIELDS = ('Amount', 'Value', 'Total')


# =============================================================================
# RESULTS AND DECISIONS
# =============================================================================

@dataclass(frozen=True)
class NoMatch:
    """The rule does not apply to the document."""

    matched = False


@dataclass(frozen=True)
class Matched:
    """The rule applies and proposes a verdict."""

    status: DocumentStatus
    auto_approved: bool
    reason: str

    matched = True


RuleResult = Union[NoMatch, Matched]

NO_MATCH = NoMatch()


@dataclass(frozen=True)
class Decision:
    """Outcome of rule evaluation for one document. Immutable once produced."""

    status: DocumentStatus
    auto_approved: bool
    reason: str
    applied_rules: Tuple[str, ...] = ()

    @property
    def needs_review(self) -> bool:
        return self.status is DocumentStatus.NEEDS_REVIEW

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'status': self.status.value,
            'auto_approved': self.auto_approved,
            'reason': self.reason,
            'applied_rules': list(self.applied_rules),
        }


DEFAULT_DECISION = Decision(
    status=DocumentStatus.NEEDS_REVIEW,
    auto_approved=False,
    reason='Document requires manual review',
)


@dataclass(frozen=True)
class RuleThresholds:
    """
    Numeric thresholds used by the default rules.

    Amount comparisons here are inclusive (>=) for review rules and strict
    (<) for the auto-approval rule.
    """

    high_risk_score: int = 7
    large_amount: float = 10000
    moderate_risk_min: int = 4
    moderate_amount: float = 5000
    auto_approve_max_risk: int = 3
    auto_approve_max_amount: float = 5000
    small_amount: float = 1000
    min_fields: int = 2
    min_fields_small_amount: int = 1

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RuleThresholds':
        """Create from a configuration mapping, ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


def format_amount(amount: float) -> str:
    """Format an amount for reasons: "$12,000", "$1,234.5"."""
    return f"${CurrencyNormalizer.format_grouped(amount)}"


# =============================================================================
# RULES
# =============================================================================

class Rule:
    """
    A named, stateless check over a document snapshot.

    Subclasses implement ``evaluate`` and must not keep state between calls.
    """

    name: str = 'Rule'

    def evaluate(self, document: Document) -> RuleResult:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class DocumentContext:
    """Type-aware accessors shared by the default rules."""

    def __init__(self, registry: Optional[DocumentTypeRegistry] = None):
        self.registry = registry or get_registry()
        self.currency = CurrencyNormalizer()

    def amount(self, document: Document) -> float:
        """Canonical amount of a document, 0 when absent or unparseable."""
        doc_type = self.registry.get(document.type)
        keys = doc_type.amount_fields if doc_type else DEFAULT_AMOUNT_FIELDS
        value = canonical_amount(document.extracted_fields or {}, keys, self.currency)
        return value if value is not None else 0.0

    def missing_critical_fields(self, document: Document) -> Optional[List[str]]:
        """Missing critical fields, or None when the type is unknown."""
        doc_type = self.registry.get(document.type)
        if doc_type is None:
            return None
        return doc_type.missing_critical_fields(document.extracted_fields or {})


class HighRiskRule(Rule):
    name = 'High Risk Review'

    def __init__(self, thresholds: RuleThresholds):
        self.thresholds = thresholds

    def evaluate(self, document: Document) -> RuleResult:
        score = document.risk_score or 0
        if score >= self.thresholds.high_risk_score:
            return Matched(
                status=DocumentStatus.NEEDS_REVIEW,
                auto_approved=False,
                reason=f"High risk score ({score}/10) requires manual review",
            )
        return NO_MATCH


class LargeAmountRule(Rule):
    name = 'Large Amount Review'

    def __init__(self, thresholds: RuleThresholds, context: DocumentContext):
        self.thresholds = thresholds
        self.context = context

    def evaluate(self, document: Document) -> RuleResult:
        amount = self.context.amount(document)
        if amount >= self.thresholds.large_amount:
            return Matched(
                status=DocumentStatus.NEEDS_REVIEW,
                auto_approved=False,
                reason=(
                    f"Amount of {format_amount(amount)} requires manual review "
                    f"(threshold: {format_amount(self.thresholds.large_amount)})"
                ),
            )
        return NO_MATCH


class MissingFieldsRule(Rule):
    name = 'Missing Fields Review'

    def __init__(self, context: DocumentContext):
        self.context = context

    def evaluate(self, document: Document) -> RuleResult:
        missing = self.context.missing_critical_fields(document)

        if missing is None:
            return Matched(
                status=DocumentStatus.NEEDS_REVIEW,
                auto_approved=False,
                reason=f"No critical field definition for document type '{document.type}'",
            )

        if missing:
            return Matched(
                status=DocumentStatus.NEEDS_REVIEW,
                auto_approved=False,
                reason=f"Missing critical fields: {', '.join(missing)}",
            )
        return NO_MATCH


class ModerateRiskRule(Rule):
    name = 'Moderate Risk Review'

    def __init__(self, thresholds: RuleThresholds, context: DocumentContext):
        self.thresholds = thresholds
        self.context = context

    def evaluate(self, document: Document) -> RuleResult:
        t = self.thresholds
        score = document.risk_score or 0
        amount = self.context.amount(document)

        if t.moderate_risk_min <= score < t.high_risk_score and amount >= t.moderate_amount:
            return Matched(
                status=DocumentStatus.NEEDS_REVIEW,
                auto_approved=False,
                reason=(
                    f"Moderate risk ({score}/10) with amount "
                    f"{format_amount(amount)} requires review"
                ),
            )
        return NO_MATCH


class AutoApproveRule(Rule):
    name = 'Auto Approve Simple Documents'

    def __init__(self, thresholds: RuleThresholds, context: DocumentContext):
        self.thresholds = thresholds
        self.context = context

    def evaluate(self, document: Document) -> RuleResult:
        t = self.thresholds
        score = document.risk_score or 0
        amount = self.context.amount(document)
        field_count = len(document.extracted_fields or {})

        has_enough_fields = field_count >= t.min_fields or (
            amount < t.small_amount and field_count >= t.min_fields_small_amount
        )

        if score <= t.auto_approve_max_risk and amount < t.auto_approve_max_amount and has_enough_fields:
            return Matched(
                status=DocumentStatus.APPROVED,
                auto_approved=True,
                reason=(
                    f"Auto-approved: Low risk ({score}/10), amount {format_amount(amount)} "
                    f"under threshold, {field_count} fields extracted"
                ),
            )
        return NO_MATCH


def default_rules(
    thresholds: Optional[RuleThresholds] = None,
    registry: Optional[DocumentTypeRegistry] = None,
) -> List[Rule]:
    """Build the default rule list in precedence order."""
    thresholds = thresholds or RuleThresholds()
    context = DocumentContext(registry)

    return [
        HighRiskRule(thresholds),
        LargeAmountRule(thresholds, context),
        MissingFieldsRule(context),
        ModerateRiskRule(thresholds, context),
        AutoApproveRule(thresholds, context),
    ]


# =============================================================================
# ENGINE
# =============================================================================

class RuleEngine:
    """
    Evaluates an ordered rule list against a document.

    Usage:
        engine = RuleEngine()
        decision = engine.evaluate_rules(document)

        if decision.needs_review:
            print(decision.reason, decision.applied_rules)
    """

    def __init__(
        self,
        rules: Optional[Sequence[Rule]] = None,
        thresholds: Optional[RuleThresholds] = None,
        registry: Optional[DocumentTypeRegistry] = None,
    ):
        """
        Initialize rule engine.

        Args:
            rules: Rules in precedence order (default rules if None)
            thresholds: Thresholds for the default rules
            registry: Registry used to resolve document types
        """
        if rules is None:
            rules = default_rules(thresholds, registry)
        self.rules: Tuple[Rule, ...] = tuple(rules)

    @property
    def rule_names(self) -> List[str]:
        return [rule.name for rule in self.rules]

    def evaluate_rules(self, document: Document) -> Decision:
        """
        Fold the rules over a document.

        Args:
            document: Document snapshot (fields, type and risk score are read)

        Returns:
            The resulting Decision
        """
        decision = DEFAULT_DECISION

        for rule in self.rules:
            result = rule.evaluate(document)
            if not result.matched:
                continue

            decision = Decision(
                status=result.status,
                auto_approved=result.auto_approved,
                reason=result.reason,
                applied_rules=decision.applied_rules + (rule.name,),
            )

            if result.status is DocumentStatus.NEEDS_REVIEW:
                decision = replace(decision, auto_approved=False)
                break

        logger.debug(
            f"Document {document.id}: {decision.status.value} "
            f"via {list(decision.applied_rules) or 'default'}"
        )
        return decision
