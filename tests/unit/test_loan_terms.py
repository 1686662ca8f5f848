"""Unit tests for loan terms and repayment"""

from decimal import Decimal

import pytest

from opencredit.domain.catalog import default_catalog
from opencredit.domain.loan_terms import calculate_emi, compute_loan_terms, recommend_repayment
from opencredit.infrastructure.catalog.parser import build_catalog


@pytest.mark.parametrize(
    "band, volume, amount, tenure, rate",
    [
        ("LOW", "200000", "60000", 365, "18"),
        ("MEDIUM", "150000", "37500", 90, "24"),
        ("HIGH", "100000", "15000", 30, "30"),
        ("medium", "150000", "37500", 90, "24"),
    ],
)
def test_terms_by_band(bundled_catalog, band, volume, amount, tenure, rate):
    terms = compute_loan_terms(band, Decimal(volume), Decimal("75"), bundled_catalog)

    assert terms.eligible_amount == Decimal(amount)
    assert terms.max_tenure_days == tenure
    assert terms.annual_interest_rate == Decimal(rate)
    assert terms.tenure_reduced is False
    assert terms.catalog_version == "2.0.0"


def test_amount_clamped_to_minimum(bundled_catalog):
    terms = compute_loan_terms("HIGH", Decimal("20000"), Decimal("75"), bundled_catalog)

    assert terms.eligible_amount == Decimal("10000")


def test_amount_clamped_to_maximum(bundled_catalog):
    terms = compute_loan_terms("LOW", Decimal("50000000"), Decimal("90"), bundled_catalog)

    assert terms.eligible_amount == Decimal("5000000")


def test_amount_rounds_half_up(bundled_catalog):
    terms = compute_loan_terms("MEDIUM", Decimal("150002"), Decimal("75"), bundled_catalog)

    assert terms.eligible_amount == Decimal("37501")


def test_low_consistency_halves_tenure(bundled_catalog):
    terms = compute_loan_terms("MEDIUM", Decimal("150000"), Decimal("59.99"), bundled_catalog)

    assert terms.max_tenure_days == 45
    assert terms.tenure_reduced is True


def test_consistency_at_threshold_keeps_tenure(bundled_catalog):
    terms = compute_loan_terms("MEDIUM", Decimal("150000"), Decimal("60"), bundled_catalog)

    assert terms.max_tenure_days == 90
    assert terms.tenure_reduced is False


def test_missing_consistency_keeps_tenure(bundled_catalog):
    assert compute_loan_terms("LOW", Decimal("150000"), None, bundled_catalog).max_tenure_days == 365


def test_reduced_tenure_never_below_one_day():
    catalog = build_catalog(
        {
            "version": "tiny-factor",
            "scoring": {"components": {"volume": {"weight": 1, "metric": "average_monthly_volume", "tiers": [{"score": 50}]}}},
            "loan_parameters": {
                "tenure": {
                    "by_risk_category": {"high_risk": {"max_days": 30}},
                    "consistency_adjustment": {"enabled": True, "threshold": 60, "reduction_factor": 0.001},
                }
            },
        }
    )

    terms = compute_loan_terms("HIGH", Decimal("100000"), Decimal("10"), catalog)

    assert terms.max_tenure_days == 1
    assert terms.tenure_reduced is True


def test_unknown_band_uses_high_defaults(bundled_catalog):
    terms = compute_loan_terms("VERY_HIGH", Decimal("100000"), Decimal("75"), bundled_catalog)

    assert terms.amount_multiplier == Decimal("0.15")
    assert terms.max_tenure_days == 30
    assert terms.annual_interest_rate == Decimal("30")


def test_catalog_without_loan_section_uses_defaults():
    terms = compute_loan_terms("LOW", Decimal("1000"), Decimal("75"), default_catalog())

    assert terms.eligible_amount == Decimal("10000")
    assert terms.max_tenure_days == 365
    assert terms.annual_interest_rate == Decimal("18")


def test_repayment_recommendation(bundled_catalog):
    """Test EMI = P * r * (1 + r)^n / ((1 + r)^n - 1)"""
    terms = compute_loan_terms("MEDIUM", Decimal("150000"), Decimal("75"), bundled_catalog)

    repayment = recommend_repayment(terms, Decimal("150000"))

    assert repayment.tenure_months == 3
    assert repayment.recommended_emi == Decimal("13003")
    assert repayment.max_monthly_repayment == Decimal("30000")


def test_short_tenure_repays_in_one_instalment(bundled_catalog):
    terms = compute_loan_terms("HIGH", Decimal("100000"), Decimal("40"), bundled_catalog)

    repayment = recommend_repayment(terms, Decimal("100000"))

    assert terms.max_tenure_days == 15
    assert repayment.tenure_months == 1
    # One month at 30% / 12 = 2.5%: 15000 * 1.025
    assert repayment.recommended_emi == Decimal("15375")


def test_zero_rate_emi_splits_evenly():
    assert calculate_emi(Decimal("12000"), Decimal("0"), 12) == Decimal("1000")
