"""Prometheus metrics for catalog health, score distribution and fraud flags"""

from prometheus_client import Counter, Gauge, Histogram

# Catalog metrics
catalog_load_counter = Counter(
    "opencredit_catalog_loads_total",
    "Rule catalog load attempts by outcome",
    ["outcome"],  # loaded | fallback | kept_previous
)

catalog_fallback_gauge = Gauge(
    "opencredit_catalog_fallback_active",
    "1 while the built-in default catalog is being served",
)

catalog_warning_gauge = Gauge(
    "opencredit_catalog_validation_warnings",
    "Validation warnings on the active catalog",
)

# Assessment metrics
assessment_counter = Counter(
    "opencredit_assessments_total",
    "Credit assessments completed",
    ["outcome"],  # eligible | ineligible
)

risk_band_counter = Counter(
    "opencredit_risk_band_total",
    "Assessments by risk band",
    ["band"],
)

fraud_indicator_counter = Counter(
    "opencredit_fraud_indicators_total",
    "Fraud indicators raised by severity",
    ["severity"],
)

assessment_duration_histogram = Histogram(
    "opencredit_assessment_duration_seconds",
    "Time to derive metrics and assess one subject",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 1.0],
)


def record_catalog_load(outcome: str, is_fallback: bool, warning_count: int) -> None:
    """Record a load attempt and the state of the catalog now being served"""
    catalog_load_counter.labels(outcome=outcome).inc()
    catalog_fallback_gauge.set(1 if is_fallback else 0)
    catalog_warning_gauge.set(warning_count)


def record_assessment(eligible: bool, risk_band: str, fraud_severities) -> None:
    """Record assessment metrics for monitoring approval rates and band mix"""
    outcome = "eligible" if eligible else "ineligible"
    assessment_counter.labels(outcome=outcome).inc()
    risk_band_counter.labels(band=risk_band).inc()

    for severity in fraud_severities:
        fraud_indicator_counter.labels(severity=severity).inc()
