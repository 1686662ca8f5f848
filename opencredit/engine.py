"""
Engine boundary operations.

Evaluators are pure functions of (metrics, catalog). This module owns the
single shared piece of state, the active catalog store, and hands each
caller a consistent snapshot of it.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from opencredit.config import settings
from opencredit.domain import assessment, eligibility, fraud, loan_terms, metrics, scoring
from opencredit.domain.catalog import RuleCatalog
from opencredit.domain.models import (
    CreditAssessment,
    DerivedMetrics,
    EligibilityResult,
    FraudIndicator,
    LoanTerms,
    ScoreResult,
    Transaction,
)
from opencredit.infrastructure.catalog.store import CatalogStore
from opencredit.infrastructure.observability.logging import log_assessment
from opencredit.infrastructure.observability.metrics import assessment_duration_histogram, record_assessment

logger = logging.getLogger(__name__)

_store = CatalogStore(settings.catalog_source)


def load_catalog(source: Optional[str] = None) -> RuleCatalog:
    """Load a catalog from `source` (default: configured source) and make it active"""
    return _store.reload(source)


def reload_catalog() -> RuleCatalog:
    return _store.reload()


def current_catalog() -> RuleCatalog:
    return _store.snapshot()


def current_catalog_version() -> str:
    return _store.snapshot().version


def compute_metrics(transactions: Sequence[Transaction], as_of: Optional[date] = None) -> DerivedMetrics:
    return metrics.compute_metrics(transactions, as_of=as_of)


def evaluate_score(derived: DerivedMetrics, catalog: Optional[RuleCatalog] = None) -> ScoreResult:
    return scoring.evaluate_score(derived, catalog or _store.snapshot())


def evaluate_eligibility(
    derived: DerivedMetrics,
    fraud_indicator_count: int,
    catalog: Optional[RuleCatalog] = None,
) -> EligibilityResult:
    return eligibility.evaluate_eligibility(derived, fraud_indicator_count, catalog or _store.snapshot())


def evaluate_fraud(derived: DerivedMetrics, catalog: Optional[RuleCatalog] = None) -> List[FraudIndicator]:
    return fraud.evaluate_fraud(derived, catalog or _store.snapshot())


def compute_loan_terms(
    risk_band: str,
    average_monthly_volume: Decimal,
    consistency_score: Optional[Decimal],
    catalog: Optional[RuleCatalog] = None,
) -> LoanTerms:
    return loan_terms.compute_loan_terms(
        risk_band,
        average_monthly_volume,
        consistency_score,
        catalog or _store.snapshot(),
    )


def assess_transactions(
    transactions: Sequence[Transaction],
    subject_id: Optional[str] = None,
    as_of: Optional[date] = None,
    catalog: Optional[RuleCatalog] = None,
) -> CreditAssessment:
    """
    Derive metrics and run the full assessment for one subject.

    The catalog is resolved once up front; a reload that lands mid-call
    does not affect this result.
    """
    snapshot = catalog or _store.snapshot()
    start = time.perf_counter()

    derived = metrics.compute_metrics(transactions, as_of=as_of)
    result = assessment.assess(derived, snapshot)

    elapsed = time.perf_counter() - start
    assessment_duration_histogram.observe(elapsed)
    record_assessment(
        result.eligible,
        result.risk_band,
        [indicator.severity for indicator in result.fraud_indicators],
    )
    log_assessment(
        subject_id=subject_id,
        eligible=result.eligible,
        credit_score=result.credit_score,
        risk_band=result.risk_band,
        fraud_indicator_count=len(result.fraud_indicators),
        catalog_version=result.catalog_version,
        duration_ms=round(elapsed * 1000, 3),
    )
    return result


def evaluate_batch(
    subjects: Mapping[str, Sequence[Transaction]],
    as_of: Optional[date] = None,
    max_workers: Optional[int] = None,
) -> Dict[str, CreditAssessment]:
    """
    Re-score a population in parallel.

    Every subject in the batch is evaluated against the same catalog
    snapshot, taken before the first task starts.
    """
    if not subjects:
        return {}

    snapshot = _store.snapshot()
    workers = max(1, min(max_workers or settings.batch_max_workers, len(subjects)))
    logger.info(
        "Batch assessment started",
        extra={"subjects": len(subjects), "workers": workers, "catalog_version": snapshot.version},
    )

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            subject_id: executor.submit(assess_transactions, transactions, subject_id, as_of, snapshot)
            for subject_id, transactions in subjects.items()
        }
        return {subject_id: future.result() for subject_id, future in futures.items()}
