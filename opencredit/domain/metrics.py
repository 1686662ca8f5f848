"""Transaction history analysis - derives the metrics every rule evaluates"""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from opencredit.domain.models import (
    DerivedMetrics,
    Direction,
    MonthlyVolume,
    Transaction,
    TransactionStatus,
)
from opencredit.utils.date_utils import in_window, month_key, subtract_months, to_date
from opencredit.utils.decimal_utils import (
    HUNDRED,
    PERCENT_SCALE,
    ZERO,
    clamp,
    divide,
    mean,
    percentage,
    population_std_dev,
    quantize,
)

logger = logging.getLogger(__name__)

# Insufficient-data policy: fewer than two monthly buckets
DEFAULT_CONSISTENCY_SCORE = Decimal("50.00")

SEASONAL_CV_THRESHOLD = Decimal("0.50")
SPIKE_THRESHOLD_PERCENT = Decimal("200")
LOW_DIVERSITY_COUNTERPARTIES = 5
DOMINANCE_THRESHOLD_PERCENT = Decimal("80")
TOP_COUNTERPARTIES = 10
NO_MONTH = "N/A"


def compute_metrics(transactions: Sequence[Transaction], as_of: Optional[date] = None) -> DerivedMetrics:
    """
    Derive the metrics snapshot for a transaction history.

    Requirements:
    - Volume basis is successful CREDIT transactions
    - Rolling windows are anchored on as_of (today when omitted), not on the
      latest transaction
    - Bounce rate counts failures across all directions
    - Never raises: empty input gives all-zero metrics with low diversity set
    """
    now = as_of or date.today()

    if not transactions:
        return empty_metrics()

    successful_credits = [
        t for t in transactions
        if t.direction == Direction.CREDIT and t.status == TransactionStatus.SUCCESS
    ]

    # Rolling windows
    three_months_ago = subtract_months(now, 3)
    last_3 = volume_between(successful_credits, three_months_ago, now)
    last_6 = volume_between(successful_credits, subtract_months(now, 6), now)
    last_12 = volume_between(successful_credits, subtract_months(now, 12), now)
    previous_3 = volume_between(successful_credits, subtract_months(now, 6), three_months_ago)

    average_monthly_volume = divide(last_3, Decimal(3))

    # Counts
    total_count = len(transactions)
    successful_count = sum(1 for t in transactions if t.status == TransactionStatus.SUCCESS)
    failed_count = sum(1 for t in transactions if t.status == TransactionStatus.FAILED)

    # 12-month volume over every successful credit in the history
    average_transaction_value = divide(last_12, Decimal(len(successful_credits)))

    # Counterparties
    unique_counterparties = len({t.counterparty_id for t in successful_credits if t.counterparty_id is not None})
    # Top-10 volume shares the 3-month window of its denominator, keeping concentration <= 100
    recent_credits = [t for t in successful_credits if in_window(to_date(t.timestamp), three_months_ago, now)]
    top_10_volume = top_counterparty_volume(counterparty_volumes(recent_credits))
    concentration = percentage(top_10_volume, last_3)

    # Monthly series
    monthly = monthly_breakdown(successful_credits)
    volumes = [m.volume for m in monthly]
    cv = coefficient_of_variation(volumes)
    consistency = consistency_score(volumes)
    max_change = max_month_over_month_change(volumes)

    metrics = DerivedMetrics(
        last_3_months_volume=last_3,
        last_6_months_volume=last_6,
        last_12_months_volume=last_12,
        previous_3_months_volume=previous_3,
        average_monthly_volume=average_monthly_volume,
        average_transaction_value=average_transaction_value,
        total_transaction_count=total_count,
        successful_transaction_count=successful_count,
        failed_transaction_count=failed_count,
        unique_counterparty_count=unique_counterparties,
        top_10_counterparty_volume=top_10_volume,
        customer_concentration=concentration,
        monthly_volumes=tuple(monthly),
        consistency_score=consistency,
        growth_rate=growth_rate(last_3, previous_3),
        bounce_rate=bounce_rate(total_count, failed_count),
        coefficient_of_variation=cv,
        max_month_over_month_change=max_change,
        is_seasonal=cv > SEASONAL_CV_THRESHOLD,
        peak_month=max(monthly, key=lambda m: m.volume).month if monthly else NO_MONTH,
        trough_month=min(monthly, key=lambda m: m.volume).month if monthly else NO_MONTH,
        has_sudden_volume_spike=max_change > SPIKE_THRESHOLD_PERCENT,
        has_low_customer_diversity=unique_counterparties < LOW_DIVERSITY_COUNTERPARTIES,
        has_single_payer_dominance=concentration > DOMINANCE_THRESHOLD_PERCENT,
    )

    logger.debug(
        "Computed metrics",
        extra={
            "transaction_count": total_count,
            "monthly_buckets": len(monthly),
            "as_of": now.isoformat(),
        },
    )
    return metrics


def empty_metrics() -> DerivedMetrics:
    """Metrics for a subject with no transaction history"""
    return DerivedMetrics(
        last_3_months_volume=ZERO,
        last_6_months_volume=ZERO,
        last_12_months_volume=ZERO,
        previous_3_months_volume=ZERO,
        average_monthly_volume=ZERO,
        average_transaction_value=ZERO,
        total_transaction_count=0,
        successful_transaction_count=0,
        failed_transaction_count=0,
        unique_counterparty_count=0,
        top_10_counterparty_volume=ZERO,
        customer_concentration=ZERO,
        monthly_volumes=(),
        consistency_score=DEFAULT_CONSISTENCY_SCORE,
        growth_rate=ZERO,
        bounce_rate=ZERO,
        coefficient_of_variation=ZERO,
        max_month_over_month_change=ZERO,
        is_seasonal=False,
        peak_month=NO_MONTH,
        trough_month=NO_MONTH,
        has_sudden_volume_spike=False,
        has_low_customer_diversity=True,
        has_single_payer_dominance=False,
    )


def volume_between(
    transactions: Iterable[Transaction],
    start: date,
    end: date,
) -> Decimal:
    """Sum of amounts dated within [start, end]"""
    return sum(
        (t.amount for t in transactions if in_window(to_date(t.timestamp), start, end)),
        ZERO,
    )


def counterparty_volumes(transactions: Iterable[Transaction]) -> Dict[str, Decimal]:
    """Volume per counterparty, skipping transactions without one"""
    volumes: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in transactions:
        if t.counterparty_id is not None:
            volumes[t.counterparty_id] += t.amount
    return dict(volumes)


def top_counterparty_volume(volumes: Dict[str, Decimal], limit: int = TOP_COUNTERPARTIES) -> Decimal:
    return sum(sorted(volumes.values(), reverse=True)[:limit], ZERO)


def monthly_breakdown(transactions: Iterable[Transaction]) -> List[MonthlyVolume]:
    """Group by calendar month, sorted chronologically"""
    by_month: Dict[str, List[Transaction]] = defaultdict(list)
    for t in transactions:
        by_month[month_key(t.timestamp)].append(t)

    return [
        MonthlyVolume(
            month=month,
            volume=sum((t.amount for t in month_txns), ZERO),
            transaction_count=len(month_txns),
            unique_counterparties=len({t.counterparty_id for t in month_txns if t.counterparty_id is not None}),
        )
        for month, month_txns in sorted(by_month.items())
    ]


def coefficient_of_variation(volumes: Sequence[Decimal]) -> Decimal:
    """stddev / mean of the monthly series; zero with fewer than two months or a zero mean"""
    if len(volumes) < 2:
        return ZERO
    center = mean(volumes)
    if center == 0:
        return ZERO
    return divide(population_std_dev(volumes, center), center)


def consistency_score(volumes: Sequence[Decimal]) -> Decimal:
    """
    Consistency score (0-100) = 100 - CV * 100.

    Fewer than two monthly buckets return the fixed default of 50; a zero
    mean (every month empty) scores 0.
    """
    if len(volumes) < 2:
        return DEFAULT_CONSISTENCY_SCORE
    if mean(volumes) == 0:
        return quantize(ZERO, PERCENT_SCALE)
    cv = coefficient_of_variation(volumes)
    return quantize(clamp(HUNDRED - cv * HUNDRED), PERCENT_SCALE)


def growth_rate(current_period: Decimal, previous_period: Decimal) -> Decimal:
    """Percent change vs the previous period; from zero it is 100 if anything grew, else 0"""
    if previous_period == 0:
        return quantize(HUNDRED if current_period > 0 else ZERO, PERCENT_SCALE)
    return quantize(divide(current_period - previous_period, previous_period) * HUNDRED, PERCENT_SCALE)


def bounce_rate(total_transactions: int, failed_transactions: int) -> Decimal:
    return percentage(Decimal(failed_transactions), Decimal(total_transactions))


def max_month_over_month_change(volumes: Sequence[Decimal]) -> Decimal:
    """Largest percent increase between consecutive months with a non-zero predecessor"""
    largest = ZERO
    for previous, current in zip(volumes, volumes[1:]):
        if previous > 0:
            change = quantize(divide(current - previous, previous) * HUNDRED, PERCENT_SCALE)
            largest = max(largest, change)
    return quantize(largest, PERCENT_SCALE)
