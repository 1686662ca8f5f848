"""Pytest fixtures for testing"""

import dataclasses
from datetime import date, datetime, time
from decimal import Decimal
from typing import Callable, Optional

import pytest

from opencredit import engine
from opencredit.config import BUNDLED_CATALOG_PATH
from opencredit.domain.catalog import RuleCatalog
from opencredit.domain.metrics import empty_metrics
from opencredit.domain.models import (
    DerivedMetrics,
    Direction,
    MonthlyVolume,
    Transaction,
    TransactionStatus,
)
from opencredit.infrastructure.catalog.store import CatalogStore, load_catalog_strict

# Fixed evaluation date so rolling windows are deterministic
AS_OF = date(2026, 6, 30)


@pytest.fixture(scope="session")
def bundled_catalog() -> RuleCatalog:
    """The rule catalog shipped with the package"""
    return load_catalog_strict(str(BUNDLED_CATALOG_PATH), strict_metric_keys=True)


@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def make_transaction() -> Callable[..., Transaction]:
    """Build a transaction; defaults to a successful credit"""

    def _make(
        day: date,
        amount,
        counterparty_id: Optional[str] = "cust_1",
        direction: Direction = Direction.CREDIT,
        status: TransactionStatus = TransactionStatus.SUCCESS,
    ) -> Transaction:
        return Transaction(
            timestamp=datetime.combine(day, time(12, 0)),
            amount=Decimal(str(amount)),
            direction=direction,
            status=status,
            counterparty_id=counterparty_id,
            category="sales",
        )

    return _make


@pytest.fixture
def make_metrics() -> Callable[..., DerivedMetrics]:
    """
    Healthy merchant metrics with selective overrides.

    `tenure_months` sets the number of monthly buckets, which is what
    business_tenure_months reports.
    """

    def _make(tenure_months: int = 6, **overrides) -> DerivedMetrics:
        monthly = tuple(
            MonthlyVolume(
                month=f"2026-{month:02d}",
                volume=Decimal("150000"),
                transaction_count=50,
                unique_counterparties=20,
            )
            for month in range(1, tenure_months + 1)
        )
        defaults = dict(
            last_3_months_volume=Decimal("450000"),
            last_6_months_volume=Decimal("900000"),
            last_12_months_volume=Decimal("900000"),
            previous_3_months_volume=Decimal("391304.35"),
            average_monthly_volume=Decimal("150000"),
            average_transaction_value=Decimal("3000"),
            total_transaction_count=300,
            successful_transaction_count=279,
            failed_transaction_count=21,
            unique_counterparty_count=25,
            top_10_counterparty_volume=Decimal("157500"),
            customer_concentration=Decimal("35.00"),
            monthly_volumes=monthly,
            consistency_score=Decimal("75.00"),
            growth_rate=Decimal("15.00"),
            bounce_rate=Decimal("7.00"),
            coefficient_of_variation=Decimal("0.25"),
            max_month_over_month_change=Decimal("12.00"),
            is_seasonal=False,
            peak_month="2026-06",
            trough_month="2026-01",
            has_sudden_volume_spike=False,
            has_low_customer_diversity=False,
            has_single_payer_dominance=False,
        )
        defaults.update(overrides)
        return dataclasses.replace(empty_metrics(), **defaults)

    return _make


@pytest.fixture
def catalog_store(monkeypatch) -> CatalogStore:
    """Engine wired to a fresh store over the bundled catalog"""
    store = CatalogStore(str(BUNDLED_CATALOG_PATH), strict_metric_keys=True)
    monkeypatch.setattr(engine, "_store", store)
    return store
