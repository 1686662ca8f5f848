"""
Closed registry of metric keys a rule catalog may reference.

Keys are resolved to accessors once, when a catalog is compiled, so rule
evaluation never interprets metric names. A key the registry does not know
resolves to an accessor that always reads zero and is marked unknown; the
catalog loader logs it (or rejects it in strict mode).
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Mapping

from opencredit.domain.models import DerivedMetrics
from opencredit.utils.decimal_utils import ZERO, to_decimal

# (metrics, fraud_indicator_count) -> value
Getter = Callable[[DerivedMetrics, int], Decimal]


@dataclass(frozen=True)
class MetricAccessor:
    """Compiled reference to a metric"""

    key: str
    getter: Getter
    known: bool = True

    def read(self, metrics: DerivedMetrics, fraud_indicator_count: int = 0) -> Decimal:
        return self.getter(metrics, fraud_indicator_count)


def _field(name: str) -> Getter:
    def getter(metrics: DerivedMetrics, _fraud_count: int) -> Decimal:
        return to_decimal(getattr(metrics, name))

    return getter


def _business_tenure(metrics: DerivedMetrics, _fraud_count: int) -> Decimal:
    return Decimal(metrics.business_tenure_months)


def _fraud_indicators(_metrics: DerivedMetrics, fraud_count: int) -> Decimal:
    return Decimal(fraud_count)


def _unknown(_metrics: DerivedMetrics, _fraud_count: int) -> Decimal:
    return ZERO


METRIC_GETTERS: Mapping[str, Getter] = {
    # Volume
    "average_monthly_volume": _field("average_monthly_volume"),
    "average_transaction_value": _field("average_transaction_value"),
    "last_3_months_volume": _field("last_3_months_volume"),
    "last_6_months_volume": _field("last_6_months_volume"),
    "last_12_months_volume": _field("last_12_months_volume"),
    "previous_3_months_volume": _field("previous_3_months_volume"),
    # Counts
    "total_transaction_count": _field("total_transaction_count"),
    "successful_transaction_count": _field("successful_transaction_count"),
    "failed_transaction_count": _field("failed_transaction_count"),
    "unique_customer_count": _field("unique_counterparty_count"),
    "business_tenure_months": _business_tenure,
    # Performance
    "consistency_score": _field("consistency_score"),
    "coefficient_of_variation": _field("coefficient_of_variation"),
    "growth_rate_percentage": _field("growth_rate"),
    "bounce_rate_percentage": _field("bounce_rate"),
    "top_10_customer_concentration_percentage": _field("customer_concentration"),
    "top_10_customer_volume": _field("top_10_counterparty_volume"),
    "volume_spike_percentage": _field("max_month_over_month_change"),
    # Flags as 0/1
    "is_seasonal_business": _field("is_seasonal"),
    "has_sudden_volume_spike": _field("has_sudden_volume_spike"),
    "has_low_customer_diversity": _field("has_low_customer_diversity"),
    "has_single_payer_dominance": _field("has_single_payer_dominance"),
    # Supplied by the caller, not derived from transactions
    "fraud_indicators": _fraud_indicators,
}

METRIC_ALIASES: Mapping[str, str] = {
    "growth_rate": "growth_rate_percentage",
    "bounce_rate": "bounce_rate_percentage",
    "customer_concentration": "top_10_customer_concentration_percentage",
    "top_customer_percentage": "top_10_customer_concentration_percentage",
    "unique_counterparty_count": "unique_customer_count",
}


def canonical_key(key: str) -> str:
    normalized = key.strip().lower()
    return METRIC_ALIASES.get(normalized, normalized)


def resolve(key: str) -> MetricAccessor:
    """Bind a metric key to its accessor; unknown keys read as zero"""
    getter = METRIC_GETTERS.get(canonical_key(key))
    if getter is None:
        return MetricAccessor(key=key, getter=_unknown, known=False)
    return MetricAccessor(key=key, getter=getter)
