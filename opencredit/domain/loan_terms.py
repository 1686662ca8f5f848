"""Loan terms and repayment recommendation for an assessed subject"""

from decimal import Decimal
from typing import Mapping, Optional

from opencredit.domain.catalog import LoanParameters, RuleCatalog
from opencredit.domain.models import LoanTerms, RepaymentRecommendation
from opencredit.utils.decimal_utils import ONE, ZERO, clamp, quantize, truncate_to_int

# Built-in tables used when the catalog omits a section or a band
DEFAULT_MULTIPLIERS: Mapping[str, Decimal] = {
    "LOW": Decimal("0.30"),
    "MEDIUM": Decimal("0.25"),
    "HIGH": Decimal("0.15"),
}
DEFAULT_TENURE_DAYS: Mapping[str, int] = {"LOW": 365, "MEDIUM": 90, "HIGH": 30}
DEFAULT_ANNUAL_RATES: Mapping[str, Decimal] = {
    "LOW": Decimal("18"),
    "MEDIUM": Decimal("24"),
    "HIGH": Decimal("30"),
}
DEFAULT_MIN_AMOUNT = Decimal("10000")
DEFAULT_MAX_AMOUNT = Decimal("5000000")

# Share of average monthly volume a subject can service each month
MAX_REPAYMENT_SHARE = Decimal("0.20")
DAYS_PER_MONTH = 30


def compute_loan_terms(
    risk_band: str,
    average_monthly_volume: Decimal,
    consistency_score: Optional[Decimal],
    catalog: RuleCatalog,
) -> LoanTerms:
    """
    Derive loan amount, tenure and rate for a risk band.

    Requirements:
    - Amount = average monthly volume * band multiplier, clamped to the
      catalog limits, rounded half-up to whole units
    - Tenure is the band maximum, scaled down by the consistency adjustment
      when enabled and the consistency score is below its threshold
      (rounded toward zero, never below 1 day)
    - Every missing catalog section or band falls back to the built-in
      tables; unknown bands use the HIGH defaults

    Example:
        MEDIUM, 150,000/month, multiplier 0.25 -> 37,500 for up to 90 days
    """
    band = risk_band.upper()
    params = catalog.loan_parameters or LoanParameters()

    multiplier = _lookup(params.multipliers, DEFAULT_MULTIPLIERS, band)
    if params.has_limits:
        min_amount, max_amount = params.min_amount, params.max_amount
    else:
        min_amount, max_amount = DEFAULT_MIN_AMOUNT, DEFAULT_MAX_AMOUNT
    amount = clamp(average_monthly_volume * multiplier, min_amount, max_amount)

    tenure_days = _lookup(params.tenure_days, DEFAULT_TENURE_DAYS, band)
    tenure_reduced = False
    adjustment = params.consistency_adjustment
    if (
        adjustment is not None
        and adjustment.enabled
        and consistency_score is not None
        and consistency_score < adjustment.threshold
    ):
        tenure_days = max(1, truncate_to_int(Decimal(tenure_days) * adjustment.reduction_factor))
        tenure_reduced = True

    return LoanTerms(
        eligible_amount=quantize(amount, 0),
        max_tenure_days=tenure_days,
        annual_interest_rate=_lookup(params.annual_rates, DEFAULT_ANNUAL_RATES, band),
        amount_multiplier=multiplier,
        tenure_reduced=tenure_reduced,
        catalog_version=catalog.version,
    )


def recommend_repayment(terms: LoanTerms, average_monthly_volume: Decimal) -> RepaymentRecommendation:
    """
    Suggested monthly instalment for the full amount over the full tenure.

    EMI = P * r * (1 + r)^n / ((1 + r)^n - 1), r = annual rate / 1200.
    Tenures shorter than a month repay in a single instalment; a zero rate
    splits the principal evenly.
    """
    months = max(1, terms.max_tenure_days // DAYS_PER_MONTH)
    monthly_rate = quantize(terms.annual_interest_rate / Decimal("1200"), 6)

    return RepaymentRecommendation(
        recommended_emi=calculate_emi(terms.eligible_amount, monthly_rate, months),
        max_monthly_repayment=quantize(average_monthly_volume * MAX_REPAYMENT_SHARE, 0),
        tenure_months=months,
    )


def calculate_emi(principal: Decimal, monthly_rate: Decimal, months: int) -> Decimal:
    if months <= 0 or monthly_rate == 0:
        return quantize(principal / Decimal(max(months, 1)), 0)

    growth = (ONE + monthly_rate) ** months
    denominator = growth - ONE
    if denominator == ZERO:
        return quantize(principal / Decimal(months), 0)

    return quantize(principal * monthly_rate * growth / denominator, 0)


def _lookup(table: Mapping, defaults: Mapping, band: str):
    if band in table:
        return table[band]
    return defaults.get(band, defaults["HIGH"])
