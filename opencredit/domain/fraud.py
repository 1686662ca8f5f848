"""Fraud screening - catalog pattern rules that override eligibility when triggered"""

import logging
from typing import List

from opencredit.domain.catalog import RuleCatalog
from opencredit.domain.models import DerivedMetrics, FraudIndicator

logger = logging.getLogger(__name__)


def evaluate_fraud(metrics: DerivedMetrics, catalog: RuleCatalog) -> List[FraudIndicator]:
    """Return one indicator per triggered fraud rule, in catalog order"""
    indicators: List[FraudIndicator] = []

    for rule in catalog.fraud_rules:
        actual = rule.metric.read(metrics)
        if not rule.operator.apply(actual, rule.threshold):
            continue

        indicators.append(
            FraudIndicator(
                rule_id=rule.id,
                name=rule.name or rule.id,
                severity=rule.severity,
                action=rule.action,
                explanation=rule.explanation,
                actual_value=actual,
                threshold=rule.threshold,
                catalog_version=catalog.version,
            )
        )

    if indicators:
        logger.debug("Fraud rules triggered", extra={"rule_ids": [i.rule_id for i in indicators]})

    return indicators
