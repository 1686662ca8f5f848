"""Eligibility evaluation - ordered AND-chain of catalog threshold rules"""

from typing import List, Optional

from opencredit.domain.catalog import EligibilityRule, RuleCatalog
from opencredit.domain.models import DerivedMetrics, EligibilityResult, RuleOutcome

SUSPICIOUS_PATTERN_REASON = "Suspicious transaction patterns detected"
SUSPICIOUS_PATTERN_RECOMMENDATION = "Manual review required before any credit decision"


def evaluate_eligibility(
    metrics: DerivedMetrics,
    fraud_indicator_count: int,
    catalog: RuleCatalog,
) -> EligibilityResult:
    """
    Check every eligibility rule and AND the outcomes.

    Every rule is evaluated so the trace is complete. The reported failure
    is the first failing rule in catalog order, except that any fraud
    indicator takes priority and forces eligibility to False.
    """
    outcomes: List[RuleOutcome] = []
    failure_reason: Optional[str] = None
    recommendation: Optional[str] = None

    for rule in catalog.eligibility_rules:
        outcome = evaluate_rule(rule, metrics, fraud_indicator_count)
        outcomes.append(outcome)

        if not outcome.passed and failure_reason is None:
            failure_reason = rule.failure_message or f"Eligibility rule {rule.id} not met"
            recommendation = rule.recommendation

    all_passed = all(outcome.passed for outcome in outcomes)

    if fraud_indicator_count > 0:
        failure_reason = SUSPICIOUS_PATTERN_REASON
        recommendation = SUSPICIOUS_PATTERN_RECOMMENDATION

    return EligibilityResult(
        eligible=all_passed and fraud_indicator_count == 0,
        failure_reason=failure_reason,
        recommendation=recommendation,
        rule_results=tuple(outcomes),
        rules_checked=len(outcomes),
        rules_passed=sum(1 for outcome in outcomes if outcome.passed),
        catalog_version=catalog.version,
    )


def evaluate_rule(rule: EligibilityRule, metrics: DerivedMetrics, fraud_indicator_count: int = 0) -> RuleOutcome:
    actual = rule.metric.read(metrics, fraud_indicator_count)
    return RuleOutcome(
        rule_id=rule.id,
        name=rule.name or rule.id,
        passed=rule.operator.apply(actual, rule.threshold),
        actual_value=actual,
        threshold=rule.threshold,
        operator=rule.operator.value,
    )
