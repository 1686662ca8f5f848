"""Credit assessment - runs every evaluator against one catalog snapshot"""

from opencredit.domain.catalog import RuleCatalog
from opencredit.domain.eligibility import evaluate_eligibility
from opencredit.domain.fraud import evaluate_fraud
from opencredit.domain.loan_terms import compute_loan_terms, recommend_repayment
from opencredit.domain.models import CreditAssessment, DerivedMetrics
from opencredit.domain.scoring import evaluate_score
from opencredit.utils.decimal_utils import ZERO


def assess(metrics: DerivedMetrics, catalog: RuleCatalog) -> CreditAssessment:
    """
    Main entry point: screen, score, check eligibility and price a subject.

    Flow:
    1. Fraud screening
    2. Composite score and risk band
    3. Eligibility chain, with the fraud count as a priority failure
    4. Loan terms for the band (kept for audit even when ineligible)

    The caller passes the catalog explicitly so every step sees the same
    version.
    """
    fraud_indicators = evaluate_fraud(metrics, catalog)
    score = evaluate_score(metrics, catalog)
    eligibility = evaluate_eligibility(metrics, len(fraud_indicators), catalog)
    terms = compute_loan_terms(
        score.risk_band,
        metrics.average_monthly_volume,
        metrics.consistency_score,
        catalog,
    )

    eligible = eligibility.eligible
    warnings = score.warnings + tuple(indicator.name for indicator in fraud_indicators)

    return CreditAssessment(
        eligible=eligible,
        ineligibility_reason=None if eligible else eligibility.failure_reason,
        score=score,
        eligibility=eligibility,
        fraud_indicators=tuple(fraud_indicators),
        loan_terms=terms,
        offered_amount=terms.eligible_amount if eligible else ZERO,
        offered_tenure_days=terms.max_tenure_days if eligible else 0,
        repayment=recommend_repayment(terms, metrics.average_monthly_volume) if eligible else None,
        warnings=warnings,
        strengths=score.strengths,
        catalog_version=catalog.version,
    )
